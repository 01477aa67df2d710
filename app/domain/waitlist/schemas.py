"""Waitlist domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator

from ...shared.validators import validate_email, validate_required_text, validate_us_phone


class WaitlistJoin(BaseModel):
    name: str
    email: str
    phone: Optional[str] = None
    partySize: int = 1
    notes: Optional[str] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        return validate_required_text(v, "Name")

    @field_validator("email")
    @classmethod
    def validate_email_field(cls, v):
        return validate_email(validate_required_text(v, "Email"))

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v):
        return validate_us_phone(v)

    @field_validator("partySize")
    @classmethod
    def validate_party_size(cls, v):
        if v < 1:
            raise ValueError("Party size must be at least 1")
        return v


class WaitlistEntryResponse(BaseModel):
    id: int
    name: str
    email: str
    phone: Optional[str] = None
    partySize: int
    notes: Optional[str] = None
    status: str
    invitationExpires: Optional[datetime] = None
    notifiedAt: Optional[datetime] = None
    createdAt: Optional[datetime] = None
