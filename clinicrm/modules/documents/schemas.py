import uuid
from datetime import datetime
from typing import Literal
from pydantic import BaseModel, Field

DocumentType = Literal["consent", "medical_record", "prescription", "referral", "custom"]

class DocumentCreate(BaseModel):
    patient_id: uuid.UUID
    appointment_id: uuid.UUID | None = None
    title: str = Field(..., min_length=1, max_length=200)
    type: DocumentType
    content: str
    request_signature: bool = False

class DocumentSign(BaseModel):
    signature_data: str = Field(..., min_length=1)

class DocumentOut(BaseModel):
    id: uuid.UUID
    org_id: uuid.UUID
    patient_id: uuid.UUID
    appointment_id: uuid.UUID | None
    title: str
    type: str
    content: str
    status: str
    signed_at: datetime | None
    signed_by_patient: bool
    created_at: datetime | None = None

    class Config:
        from_attributes = True
