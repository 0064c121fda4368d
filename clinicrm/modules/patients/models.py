from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Text, Boolean, JSON, Index
from clinicrm.core.base import Base, TimestampedTenantMixin

class Patient(Base, TimestampedTenantMixin):
    __table_args__ = (
        Index("ix_patient_org_email", "org_id", "email"),
    )

    first_name: Mapped[str] = mapped_column(String(100))
    last_name: Mapped[str] = mapped_column(String(100))
    email: Mapped[str] = mapped_column(String(320))  # portal login key
    phone: Mapped[str | None] = mapped_column(String(32), nullable=True)
    date_of_birth: Mapped[str | None] = mapped_column(String(10), nullable=True)  # YYYY-MM-DD
    gender: Mapped[str | None] = mapped_column(String(8), nullable=True)  # male | female | other
    address: Mapped[dict | None] = mapped_column(JSON, nullable=True)  # {"street", "city", "postal_code"}
    medical_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    allergies: Mapped[str | None] = mapped_column(Text, nullable=True)
    blood_type: Mapped[str | None] = mapped_column(String(8), nullable=True)
    emergency_contact_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    emergency_contact_phone: Mapped[str | None] = mapped_column(String(32), nullable=True)
    referral_source: Mapped[str | None] = mapped_column(String(64), nullable=True)
    tags: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"
