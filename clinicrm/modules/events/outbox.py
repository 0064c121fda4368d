import uuid
from datetime import datetime, timedelta
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from clinicrm.core.base import utcnow
from clinicrm.modules.events.models import EventOutbox

# Event types written by the services
PORTAL_SESSION_ACTIVATED = "PORTAL_SESSION_ACTIVATED"
DOCUMENT_SIGNED = "DOCUMENT_SIGNED"
APPOINTMENT_STATUS_CHANGED = "APPOINTMENT_STATUS_CHANGED"
CUSTOM_FIELD_DEFINITION_DELETED = "CUSTOM_FIELD_DEFINITION_DELETED"

MAX_BACKOFF_SECONDS = 60
MAX_ATTEMPTS = 10

def retry_delay(attempts: int) -> timedelta:
    """1, 2, 4 ... seconds, capped at a minute."""
    return timedelta(seconds=min(MAX_BACKOFF_SECONDS, 2 ** min(attempts - 1, 6)))

class OutboxRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def add(self, ev: EventOutbox) -> EventOutbox:
        self.session.add(ev)
        await self.session.flush()
        return ev

    async def claim_due(self, limit: int = 50) -> list[EventOutbox]:
        """Pending events whose retry time has come, oldest first, switched to ``processing``.

        On PostgreSQL the rows are locked with SKIP LOCKED so parallel relays split the work.
        """
        q = (
            select(EventOutbox)
            .where(
                EventOutbox.deleted_at.is_(None),
                EventOutbox.status == "pending",
                EventOutbox.next_attempt_at <= utcnow(),
            )
            .order_by(EventOutbox.occurred_at.asc(), EventOutbox.created_at.asc())
            .limit(limit)
            .with_for_update(skip_locked=True)
        )
        rows = list((await self.session.execute(q)).scalars().all())
        for ev in rows:
            ev.status = "processing"
        await self.session.flush()
        return rows

    async def count_by_status(self) -> dict[str, int]:
        q = select(EventOutbox.status, func.count()).where(EventOutbox.deleted_at.is_(None)).group_by(EventOutbox.status)
        return {status: n for status, n in (await self.session.execute(q)).all()}

class OutboxService:
    """Writes events in the caller's transaction; the relay publishes them after commit."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.repo = OutboxRepository(session)

    async def enqueue(self, org_id: uuid.UUID, event_type: str, subject_type: str, subject_id: str | uuid.UUID, payload: dict, occurred_at: datetime | None = None) -> EventOutbox:
        now = utcnow()
        return await self.repo.add(EventOutbox(
            org_id=org_id,
            event_type=event_type,
            subject_type=subject_type,
            subject_id=str(subject_id),
            payload=payload,
            occurred_at=occurred_at or now,
            status="pending",
            attempts=0,
            next_attempt_at=now,
        ))

    @staticmethod
    def mark_sent(ev: EventOutbox) -> None:
        ev.status = "sent"
        ev.attempts = (ev.attempts or 0) + 1
        ev.last_error = None

    @staticmethod
    def mark_failed(ev: EventOutbox, error: str) -> None:
        """Schedule a retry with back-off, or park the event as ``dead`` once MAX_ATTEMPTS is reached."""
        ev.attempts = (ev.attempts or 0) + 1
        ev.last_error = error[:2000]
        if ev.attempts >= MAX_ATTEMPTS:
            ev.status = "dead"
            return
        ev.status = "pending"
        ev.next_attempt_at = utcnow() + retry_delay(ev.attempts)
