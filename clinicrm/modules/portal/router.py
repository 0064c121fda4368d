import uuid
from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from clinicrm.core.config import settings
from clinicrm.core.db import get_session
from clinicrm.modules.portal.schemas import (
    OtpRequest, OtpSent, OtpVerify, PortalLogin, PortalSessionOut, PortalProfile, PortalProfileUpdate,
    PortalAppointment, PortalDocument, SignRequest,
)
from clinicrm.modules.portal.service import PortalService

# Patients are not staff principals: the portal token is checked by the service, not by get_principal.
router = APIRouter()
portal_bearer = HTTPBearer(auto_error=False)

def svc(session: AsyncSession = Depends(get_session)) -> PortalService:
    return PortalService(session)

def portal_token(creds: HTTPAuthorizationCredentials | None = Depends(portal_bearer)) -> str | None:
    return creds.credentials if creds else None

def _org(org_id: uuid.UUID | None) -> uuid.UUID:
    return org_id or uuid.UUID(settings.DEFAULT_ORG_ID)

@router.post("/otp", response_model=OtpSent)
async def send_otp(payload: OtpRequest, service: PortalService = Depends(svc)):
    return await service.send_portal_otp(_org(payload.org_id), payload.email)

@router.post("/verify", response_model=PortalLogin)
async def verify_otp(payload: OtpVerify, request: Request, service: PortalService = Depends(svc)):
    return await service.verify_portal_otp(_org(payload.org_id), payload.email, payload.otp, request=request)

@router.get("/session", response_model=PortalSessionOut)
async def get_session_info(token: str | None = Depends(portal_token), service: PortalService = Depends(svc)):
    data = await service.get_portal_session(token)
    if not data:
        raise HTTPException(status_code=401, detail="Invalid or expired session")
    return data

@router.post("/logout")
async def logout(token: str | None = Depends(portal_token), service: PortalService = Depends(svc)):
    await service.logout_portal(token)
    return {"success": True}

@router.get("/me", response_model=PortalProfile)
async def get_profile(token: str | None = Depends(portal_token), service: PortalService = Depends(svc)):
    return await service.get_my_profile(token)

@router.patch("/me", response_model=PortalProfile)
async def update_profile(payload: PortalProfileUpdate, token: str | None = Depends(portal_token), service: PortalService = Depends(svc)):
    return await service.update_my_profile(token, payload)

@router.get("/me/appointments", response_model=list[PortalAppointment])
async def my_appointments(token: str | None = Depends(portal_token), service: PortalService = Depends(svc)):
    return await service.get_my_appointments(token)

@router.get("/me/documents", response_model=list[PortalDocument])
async def my_documents(token: str | None = Depends(portal_token), service: PortalService = Depends(svc)):
    return await service.get_my_documents(token)

@router.post("/me/documents/{doc_id}/sign", response_model=PortalDocument)
async def sign_document(doc_id: uuid.UUID, payload: SignRequest, token: str | None = Depends(portal_token), service: PortalService = Depends(svc)):
    return await service.sign_document(token, doc_id, payload.signature_data)
