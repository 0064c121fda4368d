import uuid
from datetime import datetime
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from clinicrm.core.db import get_session
from clinicrm.core.security import get_principal, Principal, require_org_admin
from clinicrm.modules.audit.service import AuditService

router = APIRouter()

@router.get("/audit", dependencies=[Depends(require_org_admin)])
async def list_audit(
    action: str | None = None,
    actor_id: uuid.UUID | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
    limit: int = Query(50, ge=1, le=200),
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(get_session),
):
    rows = await AuditService(session).list_events(principal.org_id, action=action, actor_id=actor_id, start=start, end=end, limit=limit)
    # Return raw dicts for simplicity
    return [
        {
            "id": row.id,
            "org_id": row.org_id,
            "actor_type": row.actor_type,
            "actor_id": row.actor_id,
            "action": row.action,
            "resource_type": row.resource_type,
            "resource_id": row.resource_id,
            "details": row.details,
            "success": row.success,
            "occurred_at": row.occurred_at,
        }
        for row in rows
    ]
