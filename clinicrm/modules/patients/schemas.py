import uuid
from typing import Literal
from pydantic import BaseModel, EmailStr, Field

DATE_PATTERN = r"^\d{4}-\d{2}-\d{2}$"

class Address(BaseModel):
    street: str | None = None
    city: str | None = None
    postal_code: str | None = None

class PatientCreate(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    phone: str | None = None
    date_of_birth: str | None = Field(default=None, pattern=DATE_PATTERN)
    gender: Literal["male", "female", "other"] | None = None
    address: Address | None = None
    medical_notes: str | None = None
    allergies: str | None = None
    blood_type: str | None = None
    emergency_contact_name: str | None = None
    emergency_contact_phone: str | None = None
    referral_source: str | None = None
    tags: list[str] | None = None

class PatientUpdate(BaseModel):
    first_name: str | None = Field(default=None, min_length=1, max_length=100)
    last_name: str | None = Field(default=None, min_length=1, max_length=100)
    email: EmailStr | None = None
    phone: str | None = None
    date_of_birth: str | None = Field(default=None, pattern=DATE_PATTERN)
    gender: Literal["male", "female", "other"] | None = None
    address: Address | None = None
    medical_notes: str | None = None
    allergies: str | None = None
    blood_type: str | None = None
    emergency_contact_name: str | None = None
    emergency_contact_phone: str | None = None
    referral_source: str | None = None
    tags: list[str] | None = None
    is_active: bool | None = None

class PatientOut(BaseModel):
    id: uuid.UUID
    org_id: uuid.UUID
    first_name: str
    last_name: str
    email: str
    phone: str | None
    date_of_birth: str | None
    gender: str | None
    address: Address | None
    medical_notes: str | None
    allergies: str | None
    blood_type: str | None
    emergency_contact_name: str | None
    emergency_contact_phone: str | None
    referral_source: str | None
    tags: list[str] | None
    is_active: bool

    class Config:
        from_attributes = True
