import uuid
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from clinicrm.core.db import get_session
from clinicrm.core.security import get_principal, require_scopes, require_org_admin, Principal
from clinicrm.modules.custom_fields.schemas import (
    EntityType, DefinitionCreate, DefinitionUpdate, DefinitionReorder, DefinitionOut,
    SetValues, BulkValuesQuery, ValueOut,
)
from clinicrm.modules.custom_fields.service import CustomFieldService

router = APIRouter()

def svc(session: AsyncSession = Depends(get_session)) -> CustomFieldService:
    return CustomFieldService(session)

@router.get("/definitions", response_model=list[DefinitionOut], dependencies=[Depends(require_scopes("custom_fields:read"))])
async def get_definitions(
    entity_type: EntityType,
    activity_type_key: str | None = None,
    principal: Principal = Depends(get_principal),
    service: CustomFieldService = Depends(svc),
):
    return await service.get_definitions(principal.org_id, entity_type, activity_type_key)

@router.post("/definitions", response_model=DefinitionOut, status_code=201, dependencies=[Depends(require_org_admin)])
async def create_definition(
    payload: DefinitionCreate,
    principal: Principal = Depends(get_principal),
    service: CustomFieldService = Depends(svc),
):
    return await service.create_definition(principal.org_id, payload, principal.user_id)

@router.post("/definitions/reorder", status_code=204, dependencies=[Depends(require_org_admin)])
async def reorder_definitions(
    payload: DefinitionReorder,
    principal: Principal = Depends(get_principal),
    service: CustomFieldService = Depends(svc),
):
    await service.reorder_definitions(principal.org_id, payload.definition_ids, principal.user_id)

@router.patch("/definitions/{definition_id}", response_model=DefinitionOut, dependencies=[Depends(require_org_admin)])
async def update_definition(
    definition_id: uuid.UUID,
    payload: DefinitionUpdate,
    principal: Principal = Depends(get_principal),
    service: CustomFieldService = Depends(svc),
):
    return await service.update_definition(principal.org_id, definition_id, payload, principal.user_id)

@router.delete("/definitions/{definition_id}", status_code=204, dependencies=[Depends(require_org_admin)])
async def delete_definition(
    definition_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    service: CustomFieldService = Depends(svc),
):
    await service.delete_definition(principal.org_id, definition_id, principal.user_id)

@router.get("/values/{entity_type}/{entity_id}", response_model=list[ValueOut], dependencies=[Depends(require_scopes("custom_fields:read"))])
async def get_values(
    entity_type: EntityType,
    entity_id: str,
    principal: Principal = Depends(get_principal),
    service: CustomFieldService = Depends(svc),
):
    return await service.get_values(principal.org_id, entity_type, entity_id)

@router.post("/values/bulk", dependencies=[Depends(require_scopes("custom_fields:read"))])
async def get_values_bulk(
    payload: BulkValuesQuery,
    principal: Principal = Depends(get_principal),
    service: CustomFieldService = Depends(svc),
):
    return await service.get_values_bulk(principal.org_id, payload.entity_type, payload.entity_ids)

@router.put("/values/{entity_type}/{entity_id}", status_code=204, dependencies=[Depends(require_scopes("custom_fields:write"))])
async def set_values(
    entity_type: EntityType,
    entity_id: str,
    payload: SetValues,
    principal: Principal = Depends(get_principal),
    service: CustomFieldService = Depends(svc),
):
    await service.set_values(principal.org_id, entity_type, entity_id, payload.fields)
