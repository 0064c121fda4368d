from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from clinicrm.core.db import get_session
from clinicrm.core.security import require_org_admin
from clinicrm.modules.events.outbox import OutboxRepository

router = APIRouter()

@router.get("/events/outbox", dependencies=[Depends(require_org_admin)])
async def outbox_stats(session: AsyncSession = Depends(get_session)):
    """Outbox backlog per delivery status."""
    counts = await OutboxRepository(session).count_by_status()
    return {s: counts.get(s, 0) for s in ("pending", "processing", "sent", "dead")}
