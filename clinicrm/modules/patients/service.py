import uuid
from typing import Any
from sqlalchemy.ext.asyncio import AsyncSession
from clinicrm.core.errors import ConflictError, NotFoundError
from clinicrm.modules.custom_fields.service import CustomFieldService
from clinicrm.modules.patients.repository import PatientRepository
from clinicrm.modules.patients.schemas import PatientCreate, PatientUpdate, PatientOut
from clinicrm.modules.patients.models import Patient
from clinicrm.modules.saved_views.service import SavedViewService, VIEW_NOT_FOUND, apply_view

ENTITY_TYPE = "gabinet_patient"

class PatientService:
    def __init__(self, session: AsyncSession):
        self.repo = PatientRepository(session)
        self.session = session

    async def _ensure_email_free(self, org_id: uuid.UUID, email: str, exclude_id: uuid.UUID | None = None):
        other = await self.repo.get_by_email(org_id, email)
        if other and other.id != exclude_id:
            raise ConflictError("A patient with this email already exists")

    async def create(self, org_id: uuid.UUID, payload: PatientCreate) -> Patient:
        await self._ensure_email_free(org_id, payload.email)
        obj = await self.repo.create(org_id, **payload.model_dump(exclude_unset=True))
        await self.session.commit()
        return obj

    async def get(self, org_id: uuid.UUID, patient_id: uuid.UUID) -> Patient | None:
        return await self.repo.get(org_id, patient_id)

    async def list_rows(self, org_id: uuid.UUID, *, view_id: uuid.UUID | None = None, search: str | None = None,
                        limit: int = 50, offset: int = 0) -> list[dict[str, Any]]:
        """Patients as table rows: custom fields merged in, then the saved view applied, then paged."""
        patients = await self.repo.list(org_id, limit=None, search=search)
        rows = [PatientOut.model_validate(p).model_dump() for p in patients]
        rows = await CustomFieldService(self.session).merge_onto_rows(org_id, ENTITY_TYPE, rows)
        if view_id is not None:
            view = await SavedViewService(self.session).get_by_id(org_id, view_id)
            if view.entity_type != ENTITY_TYPE:
                raise NotFoundError(VIEW_NOT_FOUND)
            rows = apply_view(rows, view)
        return rows[offset:offset + limit]

    async def update(self, org_id: uuid.UUID, patient_id: uuid.UUID, payload: PatientUpdate) -> Patient | None:
        data = payload.model_dump(exclude_unset=True)
        if data.get("email"):
            await self._ensure_email_free(org_id, data["email"], exclude_id=patient_id)
        obj = await self.repo.update(org_id, patient_id, **data)
        if obj:
            await self.session.commit()
        return obj

    async def delete(self, org_id: uuid.UUID, patient_id: uuid.UUID) -> bool:
        # Patients are deactivated, not removed: appointments and documents keep pointing at them.
        obj = await self.repo.update(org_id, patient_id, is_active=False)
        if obj:
            await self.session.commit()
        return obj is not None
