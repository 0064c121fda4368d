import uuid
from datetime import datetime
from typing import Any, Literal
from pydantic import BaseModel, Field

EntityType = Literal[
    "contact", "company", "lead", "document", "activity",
    "gabinet_patient", "gabinet_treatment", "gabinet_appointment", "gabinet_package", "gabinet_document",
]
FieldType = Literal["text", "number", "date", "select", "multi_select", "checkbox", "url", "email", "phone", "file"]

class DefinitionCreate(BaseModel):
    entity_type: EntityType
    name: str = Field(..., min_length=1, max_length=120)
    field_key: str = Field(..., min_length=1, max_length=64, pattern=r"^[A-Za-z_][A-Za-z0-9_]*$")
    field_type: FieldType
    options: list[str] | None = None
    is_required: bool = False
    order: int | None = None  # appended after the last definition when omitted
    group: str | None = None
    activity_type_key: str | None = None

class DefinitionUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=120)
    options: list[str] | None = None
    is_required: bool | None = None
    order: int | None = None
    group: str | None = None

class DefinitionReorder(BaseModel):
    definition_ids: list[uuid.UUID]

class DefinitionOut(BaseModel):
    id: uuid.UUID
    org_id: uuid.UUID
    entity_type: str
    name: str
    field_key: str
    field_type: str
    options: list[str] | None
    is_required: bool
    order: int
    group: str | None
    activity_type_key: str | None

    class Config:
        from_attributes = True

class FieldValueIn(BaseModel):
    field_definition_id: uuid.UUID
    value: Any = None

class SetValues(BaseModel):
    fields: list[FieldValueIn]

class BulkValuesQuery(BaseModel):
    entity_type: EntityType
    entity_ids: list[str]

class ValueOut(BaseModel):
    id: uuid.UUID
    field_definition_id: uuid.UUID
    entity_type: str
    entity_id: str
    value: Any
    updated_at: datetime | None = None

    class Config:
        from_attributes = True
