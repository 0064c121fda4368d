import uuid
from typing import Sequence
from sqlalchemy import select, delete, func
from sqlalchemy.ext.asyncio import AsyncSession
from clinicrm.modules.custom_fields.models import CustomFieldDefinition, CustomFieldValue

class CustomFieldRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    # ---- definitions ----

    async def list_definitions(self, org_id: uuid.UUID, entity_type: str, activity_type_key: str | None = None) -> Sequence[CustomFieldDefinition]:
        cond = [
            CustomFieldDefinition.org_id == org_id,
            CustomFieldDefinition.entity_type == entity_type,
            CustomFieldDefinition.deleted_at.is_(None),
        ]
        if activity_type_key is not None:
            cond.append(CustomFieldDefinition.activity_type_key == activity_type_key)
        q = select(CustomFieldDefinition).where(*cond).order_by(CustomFieldDefinition.order.asc(), CustomFieldDefinition.created_at.asc())
        res = await self.session.execute(q)
        return res.scalars().all()

    async def get_definition(self, org_id: uuid.UUID, definition_id: uuid.UUID) -> CustomFieldDefinition | None:
        q = select(CustomFieldDefinition).where(
            CustomFieldDefinition.id == definition_id,
            CustomFieldDefinition.org_id == org_id,
            CustomFieldDefinition.deleted_at.is_(None),
        )
        res = await self.session.execute(q)
        return res.scalar_one_or_none()

    async def get_definition_by_key(self, org_id: uuid.UUID, entity_type: str, field_key: str) -> CustomFieldDefinition | None:
        q = select(CustomFieldDefinition).where(
            CustomFieldDefinition.org_id == org_id,
            CustomFieldDefinition.entity_type == entity_type,
            CustomFieldDefinition.field_key == field_key,
            CustomFieldDefinition.deleted_at.is_(None),
        )
        res = await self.session.execute(q)
        return res.scalar_one_or_none()

    async def next_order(self, org_id: uuid.UUID, entity_type: str) -> int:
        q = select(func.max(CustomFieldDefinition.order)).where(
            CustomFieldDefinition.org_id == org_id,
            CustomFieldDefinition.entity_type == entity_type,
            CustomFieldDefinition.deleted_at.is_(None),
        )
        current = (await self.session.execute(q)).scalar_one_or_none()
        return 0 if current is None else current + 1

    async def create_definition(self, org_id: uuid.UUID, **data) -> CustomFieldDefinition:
        obj = CustomFieldDefinition(org_id=org_id, **data)
        self.session.add(obj)
        await self.session.flush()
        return obj

    async def delete_definition(self, obj: CustomFieldDefinition) -> int:
        """Hard-deletes the definition and every value stored for it; returns the number of values removed."""
        res = await self.session.execute(
            delete(CustomFieldValue).where(
                CustomFieldValue.org_id == obj.org_id,
                CustomFieldValue.field_definition_id == obj.id,
            )
        )
        await self.session.delete(obj)
        await self.session.flush()
        return res.rowcount or 0

    # ---- values ----

    async def list_values(self, org_id: uuid.UUID, entity_type: str, entity_ids: list[str]) -> Sequence[CustomFieldValue]:
        if not entity_ids:
            return []
        q = select(CustomFieldValue).where(
            CustomFieldValue.org_id == org_id,
            CustomFieldValue.entity_type == entity_type,
            CustomFieldValue.entity_id.in_(entity_ids),
            CustomFieldValue.deleted_at.is_(None),
        )
        res = await self.session.execute(q)
        return res.scalars().all()

    async def get_value(self, org_id: uuid.UUID, entity_type: str, entity_id: str, definition_id: uuid.UUID) -> CustomFieldValue | None:
        q = select(CustomFieldValue).where(
            CustomFieldValue.org_id == org_id,
            CustomFieldValue.entity_type == entity_type,
            CustomFieldValue.entity_id == entity_id,
            CustomFieldValue.field_definition_id == definition_id,
        )
        res = await self.session.execute(q)
        return res.scalar_one_or_none()

    async def create_value(self, org_id: uuid.UUID, **data) -> CustomFieldValue:
        obj = CustomFieldValue(org_id=org_id, **data)
        self.session.add(obj)
        await self.session.flush()
        return obj
