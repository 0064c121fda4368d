import uuid
from typing import Sequence
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from clinicrm.modules.saved_views.models import SavedView

class SavedViewRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, org_id: uuid.UUID, **data) -> SavedView:
        obj = SavedView(org_id=org_id, **data)
        self.session.add(obj)
        await self.session.flush()
        return obj

    async def get(self, org_id: uuid.UUID, view_id: uuid.UUID) -> SavedView | None:
        q = select(SavedView).where(
            SavedView.id == view_id,
            SavedView.org_id == org_id,
            SavedView.deleted_at.is_(None),
        )
        res = await self.session.execute(q)
        return res.scalar_one_or_none()

    async def list_by_entity_type(self, org_id: uuid.UUID, entity_type: str) -> Sequence[SavedView]:
        q = select(SavedView).where(
            SavedView.org_id == org_id,
            SavedView.entity_type == entity_type,
            SavedView.deleted_at.is_(None),
        ).order_by(SavedView.order.asc(), SavedView.created_at.asc())
        res = await self.session.execute(q)
        return res.scalars().all()

    async def delete(self, obj: SavedView) -> None:
        await self.session.delete(obj)
        await self.session.flush()
