import uuid
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from clinicrm.core.db import get_session
from clinicrm.core.security import get_principal, require_scopes, Principal
from clinicrm.modules.documents.schemas import DocumentCreate, DocumentOut
from clinicrm.modules.documents.service import DocumentService

router = APIRouter()

def svc(session: AsyncSession = Depends(get_session)) -> DocumentService:
    return DocumentService(session)

@router.post("", response_model=DocumentOut, status_code=201, dependencies=[Depends(require_scopes("documents:write"))])
async def create_document(payload: DocumentCreate, principal: Principal = Depends(get_principal), service: DocumentService = Depends(svc)):
    return await service.create(principal.org_id, payload, principal.user_id)

@router.get("", response_model=list[DocumentOut], dependencies=[Depends(require_scopes("documents:read"))])
async def list_documents(patient_id: uuid.UUID, principal: Principal = Depends(get_principal), service: DocumentService = Depends(svc)):
    return await service.list_for_patient(principal.org_id, patient_id)

@router.get("/{doc_id}", response_model=DocumentOut, dependencies=[Depends(require_scopes("documents:read"))])
async def get_document(doc_id: uuid.UUID, principal: Principal = Depends(get_principal), service: DocumentService = Depends(svc)):
    obj = await service.get(principal.org_id, doc_id)
    if not obj:
        raise HTTPException(status_code=404, detail="Document not found")
    return obj

@router.post("/{doc_id}/request-signature", response_model=DocumentOut, dependencies=[Depends(require_scopes("documents:write"))])
async def request_signature(doc_id: uuid.UUID, principal: Principal = Depends(get_principal), service: DocumentService = Depends(svc)):
    return await service.request_signature(principal.org_id, doc_id)
