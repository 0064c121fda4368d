import uuid
from typing import Sequence
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from clinicrm.modules.documents.models import PatientDocument

class DocumentRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, org_id: uuid.UUID, **data) -> PatientDocument:
        obj = PatientDocument(org_id=org_id, **data)
        self.session.add(obj)
        await self.session.flush()
        return obj

    async def get(self, org_id: uuid.UUID, doc_id: uuid.UUID) -> PatientDocument | None:
        q = select(PatientDocument).where(
            PatientDocument.id == doc_id,
            PatientDocument.org_id == org_id,
            PatientDocument.deleted_at.is_(None),
        )
        res = await self.session.execute(q)
        return res.scalar_one_or_none()

    async def list_for_patient(self, org_id: uuid.UUID, patient_id: uuid.UUID) -> Sequence[PatientDocument]:
        q = select(PatientDocument).where(
            PatientDocument.org_id == org_id,
            PatientDocument.patient_id == patient_id,
            PatientDocument.deleted_at.is_(None),
        ).order_by(PatientDocument.created_at.desc())
        res = await self.session.execute(q)
        return res.scalars().all()
