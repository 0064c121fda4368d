import uuid
import logging
from datetime import timedelta
from typing import Any
from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from clinicrm.core.base import utcnow, as_utc
from clinicrm.core.config import settings
from clinicrm.core.errors import AuthenticationError, ServiceError
from clinicrm.modules.appointments.service import AppointmentService
from clinicrm.modules.audit.service import AuditService
from clinicrm.modules.documents.models import PatientDocument
from clinicrm.modules.documents.repository import DocumentRepository
from clinicrm.modules.documents.service import DocumentService
from clinicrm.modules.events.outbox import OutboxService, PORTAL_SESSION_ACTIVATED
from clinicrm.modules.notifications.service import NotificationsService
from clinicrm.modules.patients.models import Patient
from clinicrm.modules.patients.repository import PatientRepository
from clinicrm.modules.portal.hashing import hash_secret, secrets_match, generate_otp, generate_token
from clinicrm.modules.portal.models import PortalSession
from clinicrm.modules.portal.repository import PortalSessionRepository
from clinicrm.modules.portal.schemas import PortalProfileUpdate

log = logging.getLogger(__name__)

INVALID_SESSION = "Invalid or expired session"

class PortalService:
    """Patient self-service: OTP login, bearer-token sessions and the endpoints they gate."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.sessions = PortalSessionRepository(session)
        self.patients = PatientRepository(session)

    # --- login ---

    async def send_portal_otp(self, org_id: uuid.UUID, email: str) -> dict[str, Any]:
        # The answer is the same whether or not the email belongs to a patient.
        result: dict[str, Any] = {"success": True, "dev_otp": None}
        patient = await self.patients.get_by_email(org_id, email)
        if not patient:
            log.info("Portal OTP requested for unknown email")
            return result

        otp = generate_otp()
        expires = utcnow() + timedelta(minutes=settings.PORTAL_OTP_TTL_MINUTES)
        await self.sessions.store_otp(org_id, patient.id, hash_secret(otp), expires)
        await NotificationsService(self.session).send_portal_otp(
            org_id, to=patient.email, name=patient.first_name, otp=otp, minutes=settings.PORTAL_OTP_TTL_MINUTES,
        )
        await self.session.commit()

        if settings.is_local:
            log.debug("Portal OTP for patient %s: %s", patient.id, otp)
            result["dev_otp"] = otp
        return result

    async def verify_portal_otp(self, org_id: uuid.UUID, email: str, otp: str, request: Request | None = None) -> dict[str, Any]:
        patient = await self.patients.get_by_email(org_id, email)
        if not patient:
            raise AuthenticationError("Invalid credentials")

        ps = await self.sessions.get_by_patient(patient.id)
        if not ps or not ps.otp_hash or not ps.otp_expires_at:
            raise ServiceError("No pending OTP")
        now = utcnow()
        if as_utc(ps.otp_expires_at) < now:
            raise AuthenticationError("OTP expired")
        if not secrets_match(otp.strip(), ps.otp_hash):
            await AuditService(self.session).log(org_id, patient.id, "portal_login", "gabinet_patient", patient.id,
                                                 request=request, success=False, actor_type="patient")
            await self.session.commit()
            raise AuthenticationError("Invalid OTP")

        token = generate_token()
        ps.token_hash = hash_secret(token)
        ps.otp_hash = None
        ps.otp_expires_at = None
        ps.is_active = True
        ps.last_accessed_at = now
        ps.expires_at = now + timedelta(days=settings.PORTAL_SESSION_TTL_DAYS)
        await self.session.flush()

        await AuditService(self.session).log(org_id, patient.id, "portal_login", "gabinet_patient", patient.id,
                                             request=request, actor_type="patient")
        await OutboxService(self.session).enqueue(org_id, PORTAL_SESSION_ACTIVATED, "gabinet_patient", patient.id,
                                                  {"session_id": str(ps.id)})
        await self.session.commit()
        return {
            "token": token,
            "patient_id": patient.id,
            "patient_name": patient.full_name,
            "expires_at": ps.expires_at,
        }

    # --- sessions ---

    async def _resolve(self, token: str | None) -> tuple[PortalSession, Patient] | None:
        if not token:
            return None
        ps = await self.sessions.get_by_token_hash(hash_secret(token))
        if not ps or not ps.is_active or not ps.expires_at:
            return None
        now = utcnow()
        if as_utc(ps.expires_at) < now:
            return None
        patient = await self.patients.get(ps.org_id, ps.patient_id)
        if not patient or not patient.is_active:
            return None
        ps.last_accessed_at = now
        await self.session.commit()
        return ps, patient

    async def get_portal_session(self, token: str | None) -> dict[str, Any] | None:
        resolved = await self._resolve(token)
        if not resolved:
            return None
        ps, patient = resolved
        summary = {"id": patient.id, "first_name": patient.first_name, "last_name": patient.last_name, "email": patient.email}
        return {"patient": summary, "expires_at": ps.expires_at, "last_accessed_at": ps.last_accessed_at}

    async def validate_session(self, token: str | None) -> tuple[PortalSession, Patient]:
        resolved = await self._resolve(token)
        if not resolved:
            raise AuthenticationError(INVALID_SESSION)
        return resolved

    async def logout_portal(self, token: str | None) -> bool:
        if not token:
            return False
        ps = await self.sessions.get_by_token_hash(hash_secret(token))
        if not ps:
            return False
        ps.is_active = False
        ps.token_hash = None
        await self.session.commit()
        return True

    # --- endpoints gated by the token ---

    async def get_my_profile(self, token: str | None) -> Patient:
        _, patient = await self.validate_session(token)
        return patient

    async def update_my_profile(self, token: str | None, payload: PortalProfileUpdate) -> Patient:
        ps, patient = await self.validate_session(token)
        data = payload.model_dump(exclude_unset=True)
        for k, v in data.items():
            setattr(patient, k, v)
        await AuditService(self.session).log(ps.org_id, patient.id, "updated", "gabinet_patient", patient.id,
                                             details={"fields": sorted(data)}, actor_type="patient")
        await self.session.commit()
        return patient

    async def get_my_appointments(self, token: str | None) -> list[dict]:
        ps, patient = await self.validate_session(token)
        return await AppointmentService(self.session).list_for_patient(ps.org_id, patient.id)

    async def get_my_documents(self, token: str | None) -> list[PatientDocument]:
        ps, patient = await self.validate_session(token)
        return list(await DocumentRepository(self.session).list_for_patient(ps.org_id, patient.id))

    async def sign_document(self, token: str | None, doc_id: uuid.UUID, signature_data: str) -> PatientDocument:
        ps, patient = await self.validate_session(token)
        return await DocumentService(self.session).sign_by_patient(ps.org_id, patient.id, doc_id, signature_data)
