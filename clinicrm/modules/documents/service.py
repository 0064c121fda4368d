import uuid
from typing import Sequence
from sqlalchemy.ext.asyncio import AsyncSession
from clinicrm.core.base import utcnow
from clinicrm.core.errors import NotFoundError, ValidationError
from clinicrm.modules.audit.service import AuditService
from clinicrm.modules.documents.models import PatientDocument
from clinicrm.modules.documents.repository import DocumentRepository
from clinicrm.modules.documents.schemas import DocumentCreate
from clinicrm.modules.events.outbox import OutboxService, DOCUMENT_SIGNED
from clinicrm.modules.patients.repository import PatientRepository

DOCUMENT_NOT_FOUND = "Document not found"

class DocumentService:
    def __init__(self, session: AsyncSession):
        self.session = session
        self.repo = DocumentRepository(session)

    async def create(self, org_id: uuid.UUID, payload: DocumentCreate, actor_id: uuid.UUID) -> PatientDocument:
        if not await PatientRepository(self.session).get(org_id, payload.patient_id):
            raise NotFoundError("Patient not found")
        data = payload.model_dump(exclude={"request_signature"})
        status = "pending_signature" if payload.request_signature else "draft"
        obj = await self.repo.create(org_id, **data, status=status, created_by=actor_id)
        await self.session.commit()
        return obj

    async def get(self, org_id: uuid.UUID, doc_id: uuid.UUID) -> PatientDocument | None:
        return await self.repo.get(org_id, doc_id)

    async def list_for_patient(self, org_id: uuid.UUID, patient_id: uuid.UUID) -> Sequence[PatientDocument]:
        return await self.repo.list_for_patient(org_id, patient_id)

    async def request_signature(self, org_id: uuid.UUID, doc_id: uuid.UUID) -> PatientDocument:
        doc = await self.repo.get(org_id, doc_id)
        if not doc:
            raise NotFoundError(DOCUMENT_NOT_FOUND)
        if doc.status != "draft":
            raise ValidationError("Only draft documents can be sent for signature")
        doc.status = "pending_signature"
        doc.updated_at = utcnow()
        await self.session.commit()
        return doc

    async def sign_by_patient(self, org_id: uuid.UUID, patient_id: uuid.UUID, doc_id: uuid.UUID, signature_data: str) -> PatientDocument:
        doc = await self.repo.get(org_id, doc_id)
        # another patient's document is reported exactly like a missing one
        if not doc or doc.patient_id != patient_id:
            raise NotFoundError(DOCUMENT_NOT_FOUND)
        if doc.status != "pending_signature":
            raise ValidationError("Document is not pending signature")
        now = utcnow()
        doc.status = "signed"
        doc.signature_data = signature_data
        doc.signed_at = now
        doc.signed_by_patient = True
        doc.updated_at = now
        await self.session.flush()
        await AuditService(self.session).log(org_id, patient_id, "document_signed", "gabinet_document", doc.id, actor_type="patient")
        await OutboxService(self.session).enqueue(org_id, DOCUMENT_SIGNED, "gabinet_document", doc.id, {"patient_id": str(patient_id)})
        await self.session.commit()
        return doc
