import uuid
import logging
from typing import Any, Mapping, Sequence
from sqlalchemy.ext.asyncio import AsyncSession
from clinicrm.core.base import utcnow
from clinicrm.core.errors import ConflictError, NotFoundError
from clinicrm.modules.audit.service import AuditService
from clinicrm.modules.custom_fields.merge import merge_custom_values
from clinicrm.modules.custom_fields.models import CustomFieldDefinition, CustomFieldValue
from clinicrm.modules.custom_fields.repository import CustomFieldRepository
from clinicrm.modules.custom_fields.schemas import DefinitionCreate, DefinitionUpdate, FieldValueIn
from clinicrm.modules.events.outbox import OutboxService, CUSTOM_FIELD_DEFINITION_DELETED

log = logging.getLogger(__name__)

DEFINITION_NOT_FOUND = "Field definition not found"

class CustomFieldService:
    def __init__(self, session: AsyncSession):
        self.session = session
        self.repo = CustomFieldRepository(session)
        self.audit = AuditService(session)

    async def get_definitions(self, org_id: uuid.UUID, entity_type: str, activity_type_key: str | None = None) -> Sequence[CustomFieldDefinition]:
        return await self.repo.list_definitions(org_id, entity_type, activity_type_key)

    async def _require_definition(self, org_id: uuid.UUID, definition_id: uuid.UUID) -> CustomFieldDefinition:
        obj = await self.repo.get_definition(org_id, definition_id)
        if not obj:
            raise NotFoundError(DEFINITION_NOT_FOUND)
        return obj

    async def create_definition(self, org_id: uuid.UUID, payload: DefinitionCreate, actor_id: uuid.UUID) -> CustomFieldDefinition:
        existing = await self.repo.get_definition_by_key(org_id, payload.entity_type, payload.field_key)
        if existing:
            raise ConflictError(f'Field key "{payload.field_key}" already exists')
        data = payload.model_dump()
        if data["order"] is None:
            data["order"] = await self.repo.next_order(org_id, payload.entity_type)
        obj = await self.repo.create_definition(org_id, **data)
        await self.audit.log(org_id, actor_id, "created", "custom_field_definition", obj.id,
                             details={"entity_type": obj.entity_type, "field_key": obj.field_key})
        await self.session.commit()
        return obj

    async def update_definition(self, org_id: uuid.UUID, definition_id: uuid.UUID, payload: DefinitionUpdate, actor_id: uuid.UUID) -> CustomFieldDefinition:
        obj = await self._require_definition(org_id, definition_id)
        updates = payload.model_dump(exclude_unset=True)
        for k, v in updates.items():
            setattr(obj, k, v)
        obj.updated_at = utcnow()
        await self.session.flush()
        await self.audit.log(org_id, actor_id, "updated", "custom_field_definition", obj.id, details=updates)
        await self.session.commit()
        return obj

    async def delete_definition(self, org_id: uuid.UUID, definition_id: uuid.UUID, actor_id: uuid.UUID) -> uuid.UUID:
        obj = await self._require_definition(org_id, definition_id)
        details = {"entity_type": obj.entity_type, "field_key": obj.field_key}
        removed = await self.repo.delete_definition(obj)
        log.info("Deleted custom field %s (%s) with %d values", definition_id, details["field_key"], removed)
        await self.audit.log(org_id, actor_id, "deleted", "custom_field_definition", definition_id,
                             details={**details, "values_removed": removed})
        await OutboxService(self.session).enqueue(org_id, CUSTOM_FIELD_DEFINITION_DELETED, "custom_field_definition",
                                                  definition_id, details)
        await self.session.commit()
        return definition_id

    async def reorder_definitions(self, org_id: uuid.UUID, definition_ids: list[uuid.UUID], actor_id: uuid.UUID) -> None:
        now = utcnow()
        # resolve everything first so a bad id leaves the order untouched
        defs = [await self._require_definition(org_id, did) for did in definition_ids]
        for i, obj in enumerate(defs):
            obj.order = i
            obj.updated_at = now
        await self.session.flush()
        await self.audit.log(org_id, actor_id, "reordered", "custom_field_definition", "-",
                             details={"definition_ids": [str(d) for d in definition_ids]})
        await self.session.commit()

    # ---- values ----

    async def get_values(self, org_id: uuid.UUID, entity_type: str, entity_id: str) -> Sequence[CustomFieldValue]:
        return await self.repo.list_values(org_id, entity_type, [entity_id])

    async def get_values_bulk(self, org_id: uuid.UUID, entity_type: str, entity_ids: list[str]) -> dict[str, dict[str, Any]]:
        results: dict[str, dict[str, Any]] = {}
        for v in await self.repo.list_values(org_id, entity_type, entity_ids):
            results.setdefault(v.entity_id, {})[str(v.field_definition_id)] = v.value
        return results

    async def set_values(self, org_id: uuid.UUID, entity_type: str, entity_id: str, fields: list[FieldValueIn]) -> None:
        now = utcnow()
        for field in fields:
            definition = await self.repo.get_definition(org_id, field.field_definition_id)
            if not definition or definition.entity_type != entity_type:
                raise NotFoundError(DEFINITION_NOT_FOUND)
            existing = await self.repo.get_value(org_id, entity_type, entity_id, field.field_definition_id)
            if existing:
                existing.value = field.value
                existing.updated_at = now
            else:
                await self.repo.create_value(
                    org_id,
                    field_definition_id=field.field_definition_id,
                    entity_type=entity_type,
                    entity_id=entity_id,
                    value=field.value,
                )
        await self.session.flush()
        await self.session.commit()

    async def merge_onto_rows(self, org_id: uuid.UUID, entity_type: str, rows: list[Mapping[str, Any]]) -> list[dict[str, Any]]:
        definitions = await self.repo.list_definitions(org_id, entity_type)
        values = await self.get_values_bulk(org_id, entity_type, [str(r["id"]) for r in rows])
        return merge_custom_values(rows, definitions, values)
