import asyncio
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from clinicrm.core.base import as_utc
from clinicrm.core.db import SessionLocal
from clinicrm.modules.events.outbox import OutboxRepository, OutboxService
from clinicrm.modules.events.models import EventOutbox
from clinicrm.platform.ports.event_bus import EventBusPort
from clinicrm.platform.provider_registry import registry

log = logging.getLogger("event.outbox")

TOPIC = "clinicrm.events"

def _envelope(ev: EventOutbox) -> dict:
    return {
        "org_id": str(ev.org_id),
        "event_type": ev.event_type,
        "subject": {"type": ev.subject_type, "id": ev.subject_id},
        "payload": ev.payload,
        "occurred_at": as_utc(ev.occurred_at).isoformat() if ev.occurred_at else None,
        "outbox_id": str(ev.id),
    }

async def relay_once(session: AsyncSession, bus: EventBusPort, limit: int = 50) -> int:
    """Publish one batch of due events. Returns how many were claimed."""
    batch = await OutboxRepository(session).claim_due(limit=limit)
    for ev in batch:
        try:
            await bus.publish(topic=TOPIC, key=ev.subject_id or "-", value=_envelope(ev))
        except Exception as ex:
            log.exception("Publish failed for outbox event %s (%s)", ev.id, ev.event_type)
            OutboxService.mark_failed(ev, error=str(ex))
            if ev.status == "dead":
                log.error("Outbox event %s gave up after %d attempts", ev.id, ev.attempts)
        else:
            OutboxService.mark_sent(ev)
    await session.commit()
    return len(batch)

async def run_outbox_relay(poll_interval_seconds: float = 1.0):
    bus = registry.event_bus()
    log.info("Outbox relay started with bus=%s", bus.__class__.__name__)
    try:
        while True:
            async with SessionLocal() as session:
                try:
                    claimed = await relay_once(session, bus)
                except Exception:
                    log.exception("Outbox relay iteration failed")
                    await session.rollback()
                    claimed = 0
            # drain a backlog without sleeping between full batches
            await asyncio.sleep(0 if claimed else poll_interval_seconds)
    except asyncio.CancelledError:
        log.info("Outbox relay cancelled; shutting down")
        raise
