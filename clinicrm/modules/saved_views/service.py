import uuid
from typing import Any, Mapping, Sequence
from sqlalchemy.ext.asyncio import AsyncSession
from clinicrm.core.base import utcnow
from clinicrm.core.config import settings
from clinicrm.core.errors import NotFoundError, PermissionDeniedError, ValidationError
from clinicrm.modules.audit.service import AuditService
from clinicrm.modules.saved_views.filters import apply_filter_config, sort_rows
from clinicrm.modules.saved_views.models import SavedView
from clinicrm.modules.saved_views.repository import SavedViewRepository
from clinicrm.modules.saved_views.schemas import FilterConfig, SavedViewCreate, SavedViewUpdate

VIEW_NOT_FOUND = "Saved view not found"

# Seeded per organization the first time an entity type's views are listed.
DEFAULT_SYSTEM_VIEWS: dict[str, list[dict[str, Any]]] = {
    "gabinet_patient": [
        {"name": "All patients", "is_default": True, "filters": {"conditions": [], "logic": "and"},
         "sort_field": "last_name", "sort_direction": "asc"},
        {"name": "Active", "filters": {"conditions": [{"field": "is_active", "operator": "equals", "value": True}], "logic": "and"},
         "sort_field": "last_name", "sort_direction": "asc"},
        {"name": "Inactive", "filters": {"conditions": [{"field": "is_active", "operator": "equals", "value": False}], "logic": "and"}},
    ],
}

def apply_view(rows: Sequence[Mapping[str, Any]], view: SavedView | None) -> list:
    """Filter then sort rows the way a saved view describes."""
    if view is None:
        return list(rows)
    config = FilterConfig.model_validate(view.filters) if view.filters else None
    return sort_rows(apply_filter_config(rows, config), view.sort_field, view.sort_direction)

class SavedViewService:
    def __init__(self, session: AsyncSession):
        self.session = session
        self.repo = SavedViewRepository(session)
        self.audit = AuditService(session)

    async def _require(self, org_id: uuid.UUID, view_id: uuid.UUID) -> SavedView:
        obj = await self.repo.get(org_id, view_id)
        if not obj:
            raise NotFoundError(VIEW_NOT_FOUND)
        return obj

    async def seed_system_views(self, org_id: uuid.UUID, entity_type: str, created_by: uuid.UUID) -> list[SavedView]:
        created = []
        for i, spec in enumerate(DEFAULT_SYSTEM_VIEWS.get(entity_type, [])):
            created.append(await self.repo.create(
                org_id, entity_type=entity_type, is_system=True, created_by=created_by, order=i,
                is_default=spec.get("is_default", False), name=spec["name"], filters=spec.get("filters"),
                sort_field=spec.get("sort_field"), sort_direction=spec.get("sort_direction"),
            ))
        return created

    async def list_by_entity_type(self, org_id: uuid.UUID, entity_type: str, user_id: uuid.UUID) -> Sequence[SavedView]:
        views = await self.repo.list_by_entity_type(org_id, entity_type)
        if not any(v.is_system for v in views) and entity_type in DEFAULT_SYSTEM_VIEWS:
            # existing custom views keep their places after the seeded ones
            seeded = await self.seed_system_views(org_id, entity_type, user_id)
            for v in views:
                v.order += len(seeded)
            await self.session.commit()
            views = await self.repo.list_by_entity_type(org_id, entity_type)
        return views

    async def get_by_id(self, org_id: uuid.UUID, view_id: uuid.UUID) -> SavedView:
        return await self._require(org_id, view_id)

    async def create(self, org_id: uuid.UUID, payload: SavedViewCreate, user_id: uuid.UUID, *, is_admin: bool) -> SavedView:
        if payload.is_system and not is_admin:
            raise PermissionDeniedError("Only admins can create system views")
        existing = await self.repo.list_by_entity_type(org_id, payload.entity_type)
        if not payload.is_system:
            custom = [v for v in existing if not v.is_system]
            if len(custom) >= settings.MAX_CUSTOM_VIEWS_PER_ENTITY:
                raise ValidationError(f"Maximum of {settings.MAX_CUSTOM_VIEWS_PER_ENTITY} custom views per entity type reached")
        max_order = max((v.order for v in existing), default=-1)

        data = payload.model_dump()
        obj = await self.repo.create(org_id, created_by=user_id, order=max_order + 1, **data)
        await self.audit.log(org_id, user_id, "created", "saved_view", obj.id,
                             details={"entity_type": obj.entity_type, "name": obj.name})
        await self.session.commit()
        return obj

    async def update(self, org_id: uuid.UUID, view_id: uuid.UUID, payload: SavedViewUpdate, user_id: uuid.UUID) -> SavedView:
        obj = await self._require(org_id, view_id)
        if obj.is_system:
            raise PermissionDeniedError("System views cannot be modified")
        updates = payload.model_dump(exclude_unset=True)
        for k, v in updates.items():
            setattr(obj, k, v)
        obj.updated_at = utcnow()
        await self.session.flush()
        await self.audit.log(org_id, user_id, "updated", "saved_view", obj.id, details={"fields": sorted(updates)})
        await self.session.commit()
        return obj

    async def remove(self, org_id: uuid.UUID, view_id: uuid.UUID, user_id: uuid.UUID) -> uuid.UUID:
        obj = await self._require(org_id, view_id)
        if obj.is_system:
            raise PermissionDeniedError("System views cannot be deleted")
        await self.repo.delete(obj)
        await self.audit.log(org_id, user_id, "deleted", "saved_view", view_id)
        await self.session.commit()
        return view_id

    async def reorder(self, org_id: uuid.UUID, view_ids: list[uuid.UUID], user_id: uuid.UUID) -> None:
        views = [await self._require(org_id, vid) for vid in view_ids]
        now = utcnow()
        for i, obj in enumerate(views):
            obj.order = i
            obj.updated_at = now
        await self.session.flush()
        await self.session.commit()
