import uuid
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Text, TIMESTAMP, ForeignKey, Boolean, Integer, Numeric, JSON, Index
from clinicrm.core.base import Base, TimestampedTenantMixin

class Treatment(Base, TimestampedTenantMixin):
    name: Mapped[str] = mapped_column(String(200))
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    category: Mapped[str | None] = mapped_column(String(64), nullable=True)
    duration: Mapped[int] = mapped_column(Integer)  # minutes
    price: Mapped[float] = mapped_column(Numeric(10, 2, asdecimal=False))
    currency: Mapped[str | None] = mapped_column(String(3), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)


class Appointment(Base, TimestampedTenantMixin):
    __table_args__ = (
        Index("ix_appointment_org_date", "org_id", "date"),
        Index("ix_appointment_org_patient", "org_id", "patient_id"),
        Index("ix_appointment_org_employee_date", "org_id", "employee_id", "date"),
    )

    patient_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("patient.id"))
    treatment_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("treatment.id"))
    employee_id: Mapped[uuid.UUID] = mapped_column()

    # Scheduling: clinic-local wall time
    date: Mapped[str] = mapped_column(String(10))  # YYYY-MM-DD
    start_time: Mapped[str] = mapped_column(String(5))  # HH:MM
    end_time: Mapped[str] = mapped_column(String(5))
    status: Mapped[str] = mapped_column(String(16), default="scheduled")  # scheduled, confirmed, in_progress, completed, cancelled, no_show

    notes: Mapped[str | None] = mapped_column(Text, nullable=True)  # visible to the patient
    internal_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    color: Mapped[str | None] = mapped_column(String(16), nullable=True)

    is_recurring: Mapped[bool] = mapped_column(Boolean, default=False)
    recurring_rule: Mapped[dict | None] = mapped_column(JSON, nullable=True)  # {"frequency": "weekly", "count": 4, "until": "2025-12-31"}
    recurring_group_id: Mapped[uuid.UUID | None] = mapped_column(nullable=True)
    recurring_index: Mapped[int | None] = mapped_column(Integer, nullable=True)

    created_by: Mapped[uuid.UUID | None] = mapped_column(nullable=True)
    cancelled_at: Mapped[datetime | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
    cancelled_by: Mapped[uuid.UUID | None] = mapped_column(nullable=True)
    cancellation_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
