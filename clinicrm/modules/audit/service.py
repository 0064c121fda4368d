import json
import uuid
from typing import Sequence
from datetime import datetime
from fastapi import Request
from sqlalchemy import select, desc
from sqlalchemy.ext.asyncio import AsyncSession
from clinicrm.modules.audit.models import AuditEvent

class AuditService:
    """Adds audit rows to the caller's session; the caller's commit persists them."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def log(self,
                  org_id: uuid.UUID,
                  actor_id: uuid.UUID | None,
                  action: str,
                  resource_type: str,
                  resource_id: str | uuid.UUID,
                  details: dict | None = None,
                  request: Request | None = None,
                  success: bool = True,
                  actor_type: str = "user") -> AuditEvent:
        ev = AuditEvent(
            org_id=org_id,
            actor_type=actor_type,
            actor_id=actor_id,
            action=action,
            resource_type=resource_type,
            resource_id=str(resource_id),
            details=json.dumps(details, default=str) if details is not None else None,
            success=success,
            client_ip=(request.client.host if request and request.client else None),
            user_agent=(request.headers.get("user-agent") if request else None),
        )
        self.session.add(ev)
        await self.session.flush()
        return ev

    async def list_events(self, org_id: uuid.UUID, *, action: str | None = None, actor_id: uuid.UUID | None = None,
                          start: datetime | None = None, end: datetime | None = None, limit: int = 50) -> Sequence[AuditEvent]:
        cond = [AuditEvent.org_id == org_id, AuditEvent.deleted_at.is_(None)]
        if action:
            cond.append(AuditEvent.action == action)
        if actor_id:
            cond.append(AuditEvent.actor_id == actor_id)
        if start:
            cond.append(AuditEvent.occurred_at >= start)
        if end:
            cond.append(AuditEvent.occurred_at <= end)
        q = select(AuditEvent).where(*cond).order_by(desc(AuditEvent.occurred_at), desc(AuditEvent.created_at)).limit(limit)
        res = await self.session.execute(q)
        return res.scalars().all()
