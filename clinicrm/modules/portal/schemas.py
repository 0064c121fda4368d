import uuid
from datetime import datetime
from pydantic import BaseModel, EmailStr, Field
from clinicrm.modules.patients.schemas import Address

class OtpRequest(BaseModel):
    email: EmailStr
    org_id: uuid.UUID | None = None

class OtpSent(BaseModel):
    success: bool = True
    dev_otp: str | None = None

class OtpVerify(BaseModel):
    email: EmailStr
    otp: str = Field(..., min_length=1, max_length=12)
    org_id: uuid.UUID | None = None

class PortalLogin(BaseModel):
    token: str
    patient_id: uuid.UUID
    patient_name: str
    expires_at: datetime

class PortalPatientSummary(BaseModel):
    id: uuid.UUID
    first_name: str
    last_name: str
    email: str

class PortalSessionOut(BaseModel):
    patient: PortalPatientSummary
    expires_at: datetime
    last_accessed_at: datetime | None

class PortalProfile(BaseModel):
    id: uuid.UUID
    first_name: str
    last_name: str
    email: str
    phone: str | None
    date_of_birth: str | None
    gender: str | None
    address: Address | None
    allergies: str | None
    emergency_contact_name: str | None
    emergency_contact_phone: str | None

    class Config:
        from_attributes = True

class PortalProfileUpdate(BaseModel):
    phone: str | None = None
    address: Address | None = None
    emergency_contact_name: str | None = None
    emergency_contact_phone: str | None = None

class PortalAppointment(BaseModel):
    id: uuid.UUID
    date: str
    start_time: str
    end_time: str
    status: str
    treatment_name: str
    notes: str | None = None

class PortalDocument(BaseModel):
    id: uuid.UUID
    title: str
    type: str
    content: str
    status: str
    signed_at: datetime | None

    class Config:
        from_attributes = True

class SignRequest(BaseModel):
    signature_data: str = Field(..., min_length=1)
