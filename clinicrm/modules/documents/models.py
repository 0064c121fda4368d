import uuid
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Text, TIMESTAMP, ForeignKey, Boolean, Index
from clinicrm.core.base import Base, TimestampedTenantMixin

class PatientDocument(Base, TimestampedTenantMixin):
    __table_args__ = (
        Index("ix_patientdocument_org_patient", "org_id", "patient_id"),
    )

    patient_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("patient.id"))
    appointment_id: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("appointment.id"), nullable=True)
    title: Mapped[str] = mapped_column(String(200))
    type: Mapped[str] = mapped_column(String(24))  # consent | medical_record | prescription | referral | custom
    content: Mapped[str] = mapped_column(Text)
    status: Mapped[str] = mapped_column(String(24), default="draft")  # draft | pending_signature | signed | archived

    signature_data: Mapped[str | None] = mapped_column(Text, nullable=True)
    signed_at: Mapped[datetime | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
    signed_by_patient: Mapped[bool] = mapped_column(Boolean, default=False)
    signed_by_employee: Mapped[uuid.UUID | None] = mapped_column(nullable=True)
    created_by: Mapped[uuid.UUID | None] = mapped_column(nullable=True)
