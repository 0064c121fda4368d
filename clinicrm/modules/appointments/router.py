import uuid
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession
from clinicrm.core.db import get_session
from clinicrm.core.security import get_principal, require_scopes, Principal
from clinicrm.modules.appointments.schemas import (
    AppointmentCreate, AppointmentOut, AppointmentStatusChange, AppointmentCancel, AppointmentStatus,
    TreatmentCreate, TreatmentOut, CalendarMonth, DATE_PATTERN,
)
from clinicrm.modules.appointments.service import AppointmentService

router = APIRouter()

def svc(session: AsyncSession = Depends(get_session)) -> AppointmentService:
    return AppointmentService(session)

# ---- Treatments ----

@router.post("/treatments", response_model=TreatmentOut, status_code=201, dependencies=[Depends(require_scopes("treatments:write"))])
async def create_treatment(payload: TreatmentCreate, principal: Principal = Depends(get_principal), service: AppointmentService = Depends(svc)):
    return await service.create_treatment(principal.org_id, payload)

@router.get("/treatments", response_model=list[TreatmentOut], dependencies=[Depends(require_scopes("treatments:read"))])
async def list_treatments(active_only: bool = False, principal: Principal = Depends(get_principal), service: AppointmentService = Depends(svc)):
    return await service.list_treatments(principal.org_id, active_only)

# ---- Appointments ----

@router.post("/appointments", response_model=list[AppointmentOut], status_code=201, dependencies=[Depends(require_scopes("appointments:write"))])
async def create_appointment(payload: AppointmentCreate, principal: Principal = Depends(get_principal), service: AppointmentService = Depends(svc)):
    return await service.create(principal.org_id, payload, principal.user_id)

@router.get("/appointments", response_model=list[AppointmentOut], dependencies=[Depends(require_scopes("appointments:read"))])
async def list_appointments(
    status: AppointmentStatus | None = None,
    patient_id: uuid.UUID | None = None,
    employee_id: uuid.UUID | None = None,
    date_from: str | None = Query(None, pattern=DATE_PATTERN),
    date_to: str | None = Query(None, pattern=DATE_PATTERN),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    principal: Principal = Depends(get_principal),
    service: AppointmentService = Depends(svc),
):
    return await service.list_appointments(principal.org_id, status=status, patient_id=patient_id, employee_id=employee_id,
                                           date_from=date_from, date_to=date_to, limit=limit, offset=offset)

@router.get("/appointments/calendar", response_model=CalendarMonth, dependencies=[Depends(require_scopes("appointments:read"))])
async def appointment_calendar(
    year: int = Query(..., ge=1900, le=2999),
    month: int = Query(..., ge=1, le=12),
    employee_id: uuid.UUID | None = None,
    principal: Principal = Depends(get_principal),
    service: AppointmentService = Depends(svc),
):
    return await service.calendar_month(principal.org_id, year, month, employee_id)

@router.get("/appointments/{appt_id}", response_model=AppointmentOut, dependencies=[Depends(require_scopes("appointments:read"))])
async def get_appointment(appt_id: uuid.UUID, principal: Principal = Depends(get_principal), service: AppointmentService = Depends(svc)):
    obj = await service.get(principal.org_id, appt_id)
    if not obj:
        raise HTTPException(status_code=404, detail="Appointment not found")
    return obj

@router.post("/appointments/{appt_id}/status", response_model=AppointmentOut, dependencies=[Depends(require_scopes("appointments:write"))])
async def change_status(appt_id: uuid.UUID, payload: AppointmentStatusChange, principal: Principal = Depends(get_principal), service: AppointmentService = Depends(svc)):
    return await service.change_status(principal.org_id, appt_id, payload.status, principal.user_id)

@router.post("/appointments/{appt_id}/cancel", response_model=AppointmentOut, dependencies=[Depends(require_scopes("appointments:write"))])
async def cancel_appointment(appt_id: uuid.UUID, payload: AppointmentCancel, principal: Principal = Depends(get_principal), service: AppointmentService = Depends(svc)):
    return await service.cancel(principal.org_id, appt_id, principal.user_id, payload.reason)
