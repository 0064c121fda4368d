import uuid
from typing import Any, Literal
from pydantic import BaseModel, Field

class FilterCondition(BaseModel):
    field: str = ""
    # kept as free text: stored configurations may carry operators this build does not know
    operator: str
    value: Any = None
    value_end: Any = None

class FilterConfig(BaseModel):
    conditions: list[FilterCondition] = []
    logic: Literal["and", "or"] = "and"

SortDirection = Literal["asc", "desc"]

class SavedViewCreate(BaseModel):
    entity_type: str = Field(..., min_length=1, max_length=32)
    name: str = Field(..., min_length=1, max_length=120)
    filters: FilterConfig = FilterConfig()
    columns: list[str] | None = None
    sort_field: str | None = None
    sort_direction: SortDirection | None = None
    is_default: bool = False
    is_system: bool = False

class SavedViewUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=120)
    filters: FilterConfig | None = None
    columns: list[str] | None = None
    sort_field: str | None = None
    sort_direction: SortDirection | None = None
    is_default: bool | None = None

class SavedViewReorder(BaseModel):
    view_ids: list[uuid.UUID]

class SavedViewOut(BaseModel):
    id: uuid.UUID
    org_id: uuid.UUID
    entity_type: str
    name: str
    filters: FilterConfig | None
    columns: list[str] | None
    sort_field: str | None
    sort_direction: str | None
    is_default: bool
    is_system: bool
    created_by: uuid.UUID
    order: int

    class Config:
        from_attributes = True
