import uuid
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, TIMESTAMP, Text, text
from clinicrm.core.base import Base, TimestampedTenantMixin, utcnow

class AuditEvent(Base, TimestampedTenantMixin):
    # who: a staff user, or a patient acting through the portal
    actor_type: Mapped[str] = mapped_column(String(16), default="user")  # user | patient
    actor_id: Mapped[uuid.UUID | None] = mapped_column(nullable=True)
    # what happened
    action: Mapped[str] = mapped_column(String(48))  # created | updated | deleted | status_changed | portal_login | document_signed ...
    resource_type: Mapped[str] = mapped_column(String(48))  # custom_field_definition | saved_view | gabinet_appointment | ...
    resource_id: Mapped[str] = mapped_column(String(64))
    details: Mapped[str | None] = mapped_column(Text, nullable=True)
    success: Mapped[bool] = mapped_column(default=True)
    client_ip: Mapped[str | None] = mapped_column(String(64), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(String(256), nullable=True)
    occurred_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), default=utcnow, server_default=text("CURRENT_TIMESTAMP"))
