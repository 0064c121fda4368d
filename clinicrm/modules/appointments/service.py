import uuid
import logging
from collections import Counter
from datetime import date
from typing import Sequence
from sqlalchemy.ext.asyncio import AsyncSession

from clinicrm.core.base import utcnow
from clinicrm.core.errors import ConflictError, NotFoundError, ValidationError
from clinicrm.modules.appointments.models import Appointment, Treatment
from clinicrm.modules.appointments.repository import AppointmentRepository, TreatmentRepository
from clinicrm.modules.appointments.scheduling import month_grid, overlaps, recurring_dates, time_to_minutes
from clinicrm.modules.appointments.schemas import AppointmentCreate, TreatmentCreate
from clinicrm.modules.audit.service import AuditService
from clinicrm.modules.events.outbox import OutboxService, APPOINTMENT_STATUS_CHANGED
from clinicrm.modules.patients.repository import PatientRepository

logger = logging.getLogger(__name__)

VALID_NEXT = {
    "scheduled": {"confirmed", "cancelled", "no_show"},
    "confirmed": {"in_progress", "cancelled", "no_show"},
    "in_progress": {"completed", "cancelled"},
    "completed": set(),
    "cancelled": set(),
    "no_show": set(),
}

APPOINTMENT_NOT_FOUND = "Appointment not found"

class AppointmentService:
    def __init__(self, session: AsyncSession):
        self.session = session
        self.appts = AppointmentRepository(session)
        self.treatments = TreatmentRepository(session)
        self.patients = PatientRepository(session)
        self.audit = AuditService(session)

    # ---- treatments ----

    async def create_treatment(self, org_id: uuid.UUID, payload: TreatmentCreate) -> Treatment:
        obj = await self.treatments.create(org_id, **payload.model_dump())
        await self.session.commit()
        return obj

    async def list_treatments(self, org_id: uuid.UUID, active_only: bool = False) -> Sequence[Treatment]:
        return await self.treatments.list(org_id, active_only=active_only)

    # ---- appointments ----

    async def _check_conflict(self, org_id: uuid.UUID, employee_id: uuid.UUID, day: str, start: str, end: str) -> None:
        for other in await self.appts.list_for_employee_day(org_id, employee_id, day):
            if overlaps(start, end, other.start_time, other.end_time):
                raise ConflictError("Time slot conflict")

    async def create(self, org_id: uuid.UUID, payload: AppointmentCreate, actor_id: uuid.UUID) -> list[Appointment]:
        """Book an appointment; a recurring rule books every occurrence or none."""
        if time_to_minutes(payload.end_time) <= time_to_minutes(payload.start_time):
            raise ValidationError("End time must be after start time")
        if not await self.patients.get(org_id, payload.patient_id):
            raise NotFoundError("Patient not found")
        if not await self.treatments.get(org_id, payload.treatment_id):
            raise NotFoundError("Treatment not found")

        rule = payload.recurring_rule
        dates = [payload.date]
        if rule:
            dates += recurring_dates(payload.date, rule.frequency, rule.count, rule.until)
        group_id = uuid.uuid4() if rule else None

        for day in dates:
            await self._check_conflict(org_id, payload.employee_id, day, payload.start_time, payload.end_time)

        base = payload.model_dump(exclude={"date", "recurring_rule"})
        created = []
        for i, day in enumerate(dates):
            created.append(await self.appts.create(
                org_id, **base, date=day, status="scheduled", created_by=actor_id,
                is_recurring=rule is not None,
                recurring_rule=rule.model_dump() if rule else None,
                recurring_group_id=group_id,
                recurring_index=i if rule else None,
            ))
        await self.audit.log(org_id, actor_id, "created", "gabinet_appointment", created[0].id,
                             details={"occurrences": len(created), "date": payload.date})
        await self.session.commit()
        logger.info("Booked %d appointment(s) for patient %s", len(created), payload.patient_id)
        return created

    async def get(self, org_id: uuid.UUID, appt_id: uuid.UUID) -> Appointment | None:
        return await self.appts.get(org_id, appt_id)

    async def list_appointments(self, org_id: uuid.UUID, **filters) -> Sequence[Appointment]:
        return await self.appts.list(org_id, **filters)

    async def change_status(self, org_id: uuid.UUID, appt_id: uuid.UUID, new_status: str, actor_id: uuid.UUID,
                            reason: str | None = None) -> Appointment:
        appt = await self.appts.get(org_id, appt_id)
        if not appt:
            raise NotFoundError(APPOINTMENT_NOT_FOUND)
        old_status = appt.status
        if new_status not in VALID_NEXT.get(old_status, set()):
            raise ValidationError(f"Cannot transition from {old_status} to {new_status}")

        appt.status = new_status
        appt.updated_at = utcnow()
        if new_status == "cancelled":
            appt.cancelled_at = utcnow()
            appt.cancelled_by = actor_id
            appt.cancellation_reason = reason
        await self.session.flush()

        details = {"old_status": old_status, "new_status": new_status}
        await self.audit.log(org_id, actor_id, "status_changed", "gabinet_appointment", appt.id, details=details)
        await OutboxService(self.session).enqueue(org_id, APPOINTMENT_STATUS_CHANGED, "gabinet_appointment", appt.id,
                                                  {**details, "patient_id": str(appt.patient_id)})
        await self.session.commit()
        return appt

    async def cancel(self, org_id: uuid.UUID, appt_id: uuid.UUID, actor_id: uuid.UUID, reason: str | None = None) -> Appointment:
        appt = await self.appts.get(org_id, appt_id)
        if not appt:
            raise NotFoundError(APPOINTMENT_NOT_FOUND)
        if appt.status in ("cancelled", "completed"):
            raise ValidationError(f"Cannot cancel a {appt.status} appointment")
        return await self.change_status(org_id, appt_id, "cancelled", actor_id, reason=reason)

    async def calendar_month(self, org_id: uuid.UUID, year: int, month: int, employee_id: uuid.UUID | None = None) -> dict:
        grid = month_grid(year, month)
        first = date(year, month, 1).isoformat()
        last = max(d for week in grid for d in week if d)
        appts = await self.appts.list(org_id, employee_id=employee_id, date_from=first, date_to=last, limit=None)
        counts = Counter(a.date for a in appts if a.status != "cancelled")
        return {
            "year": year,
            "month": month,
            "weeks": [[{"date": d, "appointments": counts.get(d, 0)} if d else None for d in week] for week in grid],
        }

    async def list_for_patient(self, org_id: uuid.UUID, patient_id: uuid.UUID) -> list[dict]:
        """Patient-facing listing: newest first, with treatment names, without internal notes."""
        appts = await self.appts.list(org_id, patient_id=patient_id, limit=None)
        names = await self.treatments.names_by_id(org_id, {a.treatment_id for a in appts})
        rows = [
            {
                "id": a.id,
                "date": a.date,
                "start_time": a.start_time,
                "end_time": a.end_time,
                "status": a.status,
                "treatment_name": names.get(a.treatment_id, "Unknown"),
                "notes": a.notes,
            }
            for a in appts
        ]
        rows.sort(key=lambda r: (r["date"], r["start_time"]), reverse=True)
        return rows
