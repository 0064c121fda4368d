from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Text, JSON
from clinicrm.core.base import Base, TimestampedTenantMixin

class OutboundMessage(Base, TimestampedTenantMixin):
    channel: Mapped[str] = mapped_column(String(16))  # sms | email
    to: Mapped[str] = mapped_column(String(320))
    subject: Mapped[str | None] = mapped_column(String(200), nullable=True)
    body: Mapped[str] = mapped_column(Text)
    meta: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    status: Mapped[str] = mapped_column(String(16), default="queued")  # queued | sent | failed
