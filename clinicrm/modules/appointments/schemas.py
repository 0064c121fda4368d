import uuid
from datetime import date, datetime
from typing import Literal
from pydantic import BaseModel, Field, field_validator

DATE_PATTERN = r"^\d{4}-\d{2}-\d{2}$"
TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"

def _real_date(v: str | None) -> str | None:
    if v is not None:
        try:
            date.fromisoformat(v)
        except ValueError:
            raise ValueError(f"{v} is not a valid calendar date")
    return v

AppointmentStatus = Literal["scheduled", "confirmed", "in_progress", "completed", "cancelled", "no_show"]

# ---- Treatments ----

class TreatmentCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: str | None = None
    category: str | None = None
    duration: int = Field(..., gt=0, le=24 * 60)
    price: float = Field(..., ge=0)
    currency: str | None = Field(default=None, min_length=3, max_length=3)

class TreatmentOut(BaseModel):
    id: uuid.UUID
    org_id: uuid.UUID
    name: str
    description: str | None
    category: str | None
    duration: int
    price: float
    currency: str | None
    is_active: bool

    class Config:
        from_attributes = True

# ---- Appointments ----

class RecurringRule(BaseModel):
    frequency: Literal["daily", "weekly", "biweekly", "monthly"]
    count: int | None = Field(default=None, ge=1, le=366)
    until: str | None = Field(default=None, pattern=DATE_PATTERN)

    check_until = field_validator("until")(_real_date)

class AppointmentCreate(BaseModel):
    patient_id: uuid.UUID
    treatment_id: uuid.UUID
    employee_id: uuid.UUID
    date: str = Field(..., pattern=DATE_PATTERN)
    start_time: str = Field(..., pattern=TIME_PATTERN)
    end_time: str = Field(..., pattern=TIME_PATTERN)
    notes: str | None = None
    internal_notes: str | None = None
    color: str | None = None
    recurring_rule: RecurringRule | None = None

    check_date = field_validator("date")(_real_date)

class AppointmentStatusChange(BaseModel):
    status: AppointmentStatus

class AppointmentCancel(BaseModel):
    reason: str | None = None

class AppointmentOut(BaseModel):
    id: uuid.UUID
    org_id: uuid.UUID
    patient_id: uuid.UUID
    treatment_id: uuid.UUID
    employee_id: uuid.UUID
    date: str
    start_time: str
    end_time: str
    status: str
    notes: str | None
    internal_notes: str | None
    color: str | None
    is_recurring: bool
    recurring_group_id: uuid.UUID | None
    recurring_index: int | None
    cancelled_at: datetime | None
    cancellation_reason: str | None

    class Config:
        from_attributes = True

class CalendarDay(BaseModel):
    date: str
    appointments: int

class CalendarMonth(BaseModel):
    year: int
    month: int
    weeks: list[list[CalendarDay | None]]
