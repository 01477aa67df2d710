"""Organization domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator

from ...permissions import ROLES
from ...plan_limits import TIER_LIMITS
from ...shared.validators import validate_email, validate_required_text


class OrganizationCreate(BaseModel):
    """Schema for creating an organization during onboarding"""

    name: str
    contactEmail: Optional[str] = None
    subscriptionTier: str = "starter"

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        return validate_required_text(v, "Organization name")

    @field_validator("contactEmail")
    @classmethod
    def validate_contact_email(cls, v):
        return validate_email(v)

    @field_validator("subscriptionTier")
    @classmethod
    def validate_tier(cls, v):
        if v not in TIER_LIMITS:
            raise ValueError(f"Unknown subscription tier: {v}")
        return v


class OrganizationUpdate(BaseModel):
    name: Optional[str] = None
    contactEmail: Optional[str] = None

    @field_validator("contactEmail")
    @classmethod
    def validate_contact_email(cls, v):
        return validate_email(v)


class DigestSettingsUpdate(BaseModel):
    enabled: Optional[bool] = None
    recipients: Optional[list[str]] = None

    @field_validator("recipients")
    @classmethod
    def validate_recipients(cls, v):
        if v is None:
            return v
        return [validate_email(email) for email in v if email and email.strip()]


class TierUpdate(BaseModel):
    subscriptionTier: str

    @field_validator("subscriptionTier")
    @classmethod
    def validate_tier(cls, v):
        if v not in TIER_LIMITS:
            raise ValueError(f"Unknown subscription tier: {v}")
        return v


class OrganizationResponse(BaseModel):
    id: int
    publicId: str
    name: str
    contactEmail: Optional[str] = None
    subscriptionTier: str
    status: str
    weeklyDigestEnabled: bool
    weeklyDigestRecipients: list[str] = []
    usage: dict
    createdAt: Optional[datetime] = None


class TeamInvite(BaseModel):
    email: str
    role: str
    fullName: Optional[str] = None

    @field_validator("email")
    @classmethod
    def validate_invite_email(cls, v):
        return validate_email(v)

    @field_validator("role")
    @classmethod
    def validate_role(cls, v):
        if v not in ROLES[1:8]:
            raise ValueError("Role must be an organization staff role")
        return v


class TeamRoleUpdate(BaseModel):
    role: str
    permissions: Optional[dict[str, bool]] = None

    @field_validator("role")
    @classmethod
    def validate_role(cls, v):
        if v not in ROLES[1:8]:
            raise ValueError("Role must be an organization staff role")
        return v


class TeamMemberResponse(BaseModel):
    id: int
    email: str
    fullName: Optional[str] = None
    role: str
    permissions: Optional[dict] = None
    invitedAt: Optional[datetime] = None
    lastLoginAt: Optional[datetime] = None
    hasSignedIn: bool

    class Config:
        from_attributes = True
