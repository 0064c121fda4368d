import uuid
from typing import Any
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Integer, Boolean, ForeignKey, JSON, UniqueConstraint, Index
from clinicrm.core.base import Base, TimestampedTenantMixin

class CustomFieldDefinition(Base, TimestampedTenantMixin):
    __table_args__ = (
        UniqueConstraint("org_id", "entity_type", "field_key", name="uq_customfield_org_entity_key"),
        Index("ix_customfield_org_entity_order", "org_id", "entity_type", "order"),
    )

    entity_type: Mapped[str] = mapped_column(String(32))
    name: Mapped[str] = mapped_column(String(120))
    field_key: Mapped[str] = mapped_column(String(64))
    field_type: Mapped[str] = mapped_column(String(16))
    options: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)  # select / multi_select choices
    is_required: Mapped[bool] = mapped_column(Boolean, default=False)
    order: Mapped[int] = mapped_column(Integer, default=0)
    group: Mapped[str | None] = mapped_column(String(64), nullable=True)  # display group on forms
    activity_type_key: Mapped[str | None] = mapped_column(String(64), nullable=True)

class CustomFieldValue(Base, TimestampedTenantMixin):
    __table_args__ = (
        UniqueConstraint("org_id", "entity_type", "entity_id", "field_definition_id", name="uq_customvalue_entity_field"),
        Index("ix_customvalue_entity", "org_id", "entity_type", "entity_id"),
    )

    field_definition_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("customfielddefinition.id", ondelete="CASCADE"), index=True)
    entity_type: Mapped[str] = mapped_column(String(32))
    entity_id: Mapped[str] = mapped_column(String(64))  # kept text so any entity kind can carry values
    value: Mapped[Any] = mapped_column(JSON, nullable=True)
