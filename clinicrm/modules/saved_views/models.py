import uuid
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Integer, Boolean, JSON, Index
from clinicrm.core.base import Base, TimestampedTenantMixin

class SavedView(Base, TimestampedTenantMixin):
    __table_args__ = (
        Index("ix_savedview_org_entity", "org_id", "entity_type"),
    )

    entity_type: Mapped[str] = mapped_column(String(32))
    name: Mapped[str] = mapped_column(String(120))
    filters: Mapped[dict | None] = mapped_column(JSON, nullable=True)  # {"conditions": [...], "logic": "and"}
    columns: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)
    sort_field: Mapped[str | None] = mapped_column(String(64), nullable=True)
    sort_direction: Mapped[str | None] = mapped_column(String(4), nullable=True)  # asc | desc
    is_default: Mapped[bool] = mapped_column(Boolean, default=False)
    is_system: Mapped[bool] = mapped_column(Boolean, default=False)
    created_by: Mapped[uuid.UUID] = mapped_column()
    order: Mapped[int] = mapped_column(Integer, default=0)
