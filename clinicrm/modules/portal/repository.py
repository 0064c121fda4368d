import uuid
from datetime import datetime
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from clinicrm.modules.portal.models import PortalSession

class PortalSessionRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_patient(self, patient_id: uuid.UUID) -> PortalSession | None:
        res = await self.session.execute(select(PortalSession).where(PortalSession.patient_id == patient_id))
        return res.scalar_one_or_none()

    async def get_by_token_hash(self, token_hash: str) -> PortalSession | None:
        res = await self.session.execute(select(PortalSession).where(PortalSession.token_hash == token_hash))
        return res.scalar_one_or_none()

    async def store_otp(self, org_id: uuid.UUID, patient_id: uuid.UUID, otp_hash: str, otp_expires_at: datetime) -> PortalSession:
        """Put the patient's single session row back into the otp-pending state."""
        obj = await self.get_by_patient(patient_id)
        if obj is None:
            try:
                async with self.session.begin_nested():
                    obj = PortalSession(org_id=org_id, patient_id=patient_id, is_active=False)
                    self.session.add(obj)
            except IntegrityError:
                # a concurrent request created the row first
                obj = await self.get_by_patient(patient_id)
                if obj is None:
                    raise
        obj.otp_hash = otp_hash
        obj.otp_expires_at = otp_expires_at
        obj.token_hash = None
        obj.is_active = False
        await self.session.flush()
        return obj
