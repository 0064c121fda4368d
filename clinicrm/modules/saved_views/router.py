import uuid
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from clinicrm.core.db import get_session
from clinicrm.core.security import get_principal, require_scopes, Principal
from clinicrm.modules.saved_views.schemas import SavedViewCreate, SavedViewUpdate, SavedViewReorder, SavedViewOut
from clinicrm.modules.saved_views.service import SavedViewService

router = APIRouter()

def svc(session: AsyncSession = Depends(get_session)) -> SavedViewService:
    return SavedViewService(session)

@router.get("", response_model=list[SavedViewOut], dependencies=[Depends(require_scopes("views:read"))])
async def list_views(
    entity_type: str,
    principal: Principal = Depends(get_principal),
    service: SavedViewService = Depends(svc),
):
    return await service.list_by_entity_type(principal.org_id, entity_type, principal.user_id)

@router.post("", response_model=SavedViewOut, status_code=201, dependencies=[Depends(require_scopes("views:write"))])
async def create_view(
    payload: SavedViewCreate,
    principal: Principal = Depends(get_principal),
    service: SavedViewService = Depends(svc),
):
    return await service.create(principal.org_id, payload, principal.user_id, is_admin=principal.is_admin)

@router.post("/reorder", status_code=204, dependencies=[Depends(require_scopes("views:write"))])
async def reorder_views(
    payload: SavedViewReorder,
    principal: Principal = Depends(get_principal),
    service: SavedViewService = Depends(svc),
):
    await service.reorder(principal.org_id, payload.view_ids, principal.user_id)

@router.get("/{view_id}", response_model=SavedViewOut, dependencies=[Depends(require_scopes("views:read"))])
async def get_view(
    view_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    service: SavedViewService = Depends(svc),
):
    return await service.get_by_id(principal.org_id, view_id)

@router.patch("/{view_id}", response_model=SavedViewOut, dependencies=[Depends(require_scopes("views:write"))])
async def update_view(
    view_id: uuid.UUID,
    payload: SavedViewUpdate,
    principal: Principal = Depends(get_principal),
    service: SavedViewService = Depends(svc),
):
    return await service.update(principal.org_id, view_id, payload, principal.user_id)

@router.delete("/{view_id}", status_code=204, dependencies=[Depends(require_scopes("views:write"))])
async def delete_view(
    view_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    service: SavedViewService = Depends(svc),
):
    await service.remove(principal.org_id, view_id, principal.user_id)
