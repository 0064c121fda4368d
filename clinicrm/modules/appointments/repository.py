import uuid
from typing import Sequence
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_
from clinicrm.modules.appointments.models import Appointment, Treatment

INACTIVE_STATUSES = ("cancelled", "no_show")

class TreatmentRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, org_id: uuid.UUID, **data) -> Treatment:
        obj = Treatment(org_id=org_id, **data)
        self.session.add(obj)
        await self.session.flush()
        return obj

    async def get(self, org_id: uuid.UUID, treatment_id: uuid.UUID) -> Treatment | None:
        q = select(Treatment).where(
            Treatment.id == treatment_id,
            Treatment.org_id == org_id,
            Treatment.deleted_at.is_(None),
        )
        res = await self.session.execute(q)
        return res.scalar_one_or_none()

    async def list(self, org_id: uuid.UUID, *, active_only: bool = False) -> Sequence[Treatment]:
        cond = [Treatment.org_id == org_id, Treatment.deleted_at.is_(None)]
        if active_only:
            cond.append(Treatment.is_active.is_(True))
        res = await self.session.execute(select(Treatment).where(*cond).order_by(Treatment.name.asc()))
        return res.scalars().all()

    async def names_by_id(self, org_id: uuid.UUID, ids: set[uuid.UUID]) -> dict[uuid.UUID, str]:
        if not ids:
            return {}
        res = await self.session.execute(
            select(Treatment.id, Treatment.name).where(Treatment.org_id == org_id, Treatment.id.in_(ids))
        )
        return {row.id: row.name for row in res}


class AppointmentRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, org_id: uuid.UUID, **data) -> Appointment:
        obj = Appointment(org_id=org_id, **data)
        self.session.add(obj)
        await self.session.flush()
        return obj

    async def get(self, org_id: uuid.UUID, appt_id: uuid.UUID) -> Appointment | None:
        q = select(Appointment).where(
            and_(Appointment.id == appt_id,
                 Appointment.org_id == org_id,
                 Appointment.deleted_at.is_(None))
        )
        res = await self.session.execute(q)
        return res.scalar_one_or_none()

    async def list(self, org_id: uuid.UUID, *, status: str | None = None, patient_id: uuid.UUID | None = None,
                   employee_id: uuid.UUID | None = None, date_from: str | None = None, date_to: str | None = None,
                   limit: int | None = 50, offset: int = 0) -> Sequence[Appointment]:
        cond = [Appointment.org_id == org_id, Appointment.deleted_at.is_(None)]
        if status:
            cond.append(Appointment.status == status)
        if patient_id:
            cond.append(Appointment.patient_id == patient_id)
        if employee_id:
            cond.append(Appointment.employee_id == employee_id)
        # ISO dates compare correctly as strings
        if date_from:
            cond.append(Appointment.date >= date_from)
        if date_to:
            cond.append(Appointment.date <= date_to)
        q = select(Appointment).where(and_(*cond)).order_by(Appointment.date.asc(), Appointment.start_time.asc()).offset(offset)
        if limit:
            q = q.limit(limit)
        res = await self.session.execute(q)
        return res.scalars().all()

    async def list_for_employee_day(self, org_id: uuid.UUID, employee_id: uuid.UUID, day: str) -> Sequence[Appointment]:
        q = select(Appointment).where(
            Appointment.org_id == org_id,
            Appointment.employee_id == employee_id,
            Appointment.date == day,
            Appointment.status.not_in(INACTIVE_STATUSES),
            Appointment.deleted_at.is_(None),
        )
        res = await self.session.execute(q)
        return res.scalars().all()
