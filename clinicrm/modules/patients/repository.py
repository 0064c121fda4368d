import uuid
from typing import Sequence
from sqlalchemy import select, or_, func
from sqlalchemy.ext.asyncio import AsyncSession
from clinicrm.modules.patients.models import Patient

class PatientRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, org_id: uuid.UUID, **data) -> Patient:
        obj = Patient(org_id=org_id, **data)
        self.session.add(obj)
        await self.session.flush()
        return obj

    async def get(self, org_id: uuid.UUID, patient_id: uuid.UUID) -> Patient | None:
        q = select(Patient).where(
            Patient.id == patient_id,
            Patient.org_id == org_id,
            Patient.deleted_at.is_(None),
        )
        res = await self.session.execute(q)
        return res.scalar_one_or_none()

    async def get_by_email(self, org_id: uuid.UUID, email: str, *, active_only: bool = True) -> Patient | None:
        cond = [
            Patient.org_id == org_id,
            func.lower(Patient.email) == email.strip().lower(),
            Patient.deleted_at.is_(None),
        ]
        if active_only:
            cond.append(Patient.is_active.is_(True))
        q = select(Patient).where(*cond).order_by(Patient.created_at.asc()).limit(1)
        res = await self.session.execute(q)
        return res.scalars().first()

    async def list(self, org_id: uuid.UUID, limit: int | None = 50, offset: int = 0, search: str | None = None) -> Sequence[Patient]:
        cond = [Patient.org_id == org_id, Patient.deleted_at.is_(None)]
        if search:
            like = f"%{search.lower()}%"
            cond.append(or_(
                func.lower(Patient.first_name).like(like),
                func.lower(Patient.last_name).like(like),
                func.lower(Patient.email).like(like),
            ))
        q = select(Patient).where(*cond).order_by(Patient.created_at.desc()).offset(offset)
        if limit:
            q = q.limit(limit)
        res = await self.session.execute(q)
        return res.scalars().all()

    async def update(self, org_id: uuid.UUID, patient_id: uuid.UUID, **data) -> Patient | None:
        obj = await self.get(org_id, patient_id)
        if not obj:
            return None
        for k, v in data.items():
            setattr(obj, k, v)
        await self.session.flush()
        return obj
