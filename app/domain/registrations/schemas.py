"""Registration domain schemas - Pydantic models for validation"""

from typing import Optional

from pydantic import BaseModel, field_validator

from ...option_capacity import HOUSING_TYPES, ROOM_TYPES
from ...shared.validators import (
    validate_email,
    validate_gender,
    validate_required_text,
    validate_tshirt_size,
    validate_us_phone,
)

PAYMENT_METHODS = ("card", "check")


def _housing_type(v):
    if v not in HOUSING_TYPES:
        raise ValueError(f"Housing type must be one of: {', '.join(HOUSING_TYPES)}")
    return v


def _payment_method(v):
    if v not in PAYMENT_METHODS:
        raise ValueError("Payment method must be 'card' or 'check'")
    return v


class GroupRegistrationCreate(BaseModel):
    """Public group registration form"""

    groupName: str
    parishName: Optional[str] = None
    dioceseName: Optional[str] = None
    groupLeaderName: str
    groupLeaderEmail: str
    groupLeaderPhone: str
    housingType: str
    dayPassOptionId: Optional[int] = None
    youthCountMaleU18: int = 0
    youthCountFemaleU18: int = 0
    youthCountMaleO18: int = 0
    youthCountFemaleO18: int = 0
    chaperoneCountMale: int = 0
    chaperoneCountFemale: int = 0
    priestCount: int = 0
    paymentMethod: str = "card"
    couponCode: Optional[str] = None
    waitlistToken: Optional[str] = None
    specialRequests: Optional[str] = None

    check_housing_type = field_validator("housingType")(_housing_type)
    check_payment_method = field_validator("paymentMethod")(_payment_method)

    @field_validator("groupName")
    @classmethod
    def validate_group_name(cls, v):
        return validate_required_text(v, "Group name")

    @field_validator("groupLeaderName")
    @classmethod
    def validate_leader_name(cls, v):
        return validate_required_text(v, "Group leader name")

    @field_validator("groupLeaderEmail")
    @classmethod
    def validate_leader_email(cls, v):
        return validate_email(validate_required_text(v, "Group leader email"))

    @field_validator("groupLeaderPhone")
    @classmethod
    def validate_leader_phone(cls, v):
        return validate_us_phone(validate_required_text(v, "Group leader phone"))

    @field_validator(
        "youthCountMaleU18",
        "youthCountFemaleU18",
        "youthCountMaleO18",
        "youthCountFemaleO18",
        "chaperoneCountMale",
        "chaperoneCountFemale",
        "priestCount",
    )
    @classmethod
    def validate_count(cls, v):
        if v < 0:
            raise ValueError("Counts cannot be negative")
        return v

    def participant_counts(self) -> dict:
        """Head counts keyed by participant type"""
        return {
            "youth_u18": self.youthCountMaleU18 + self.youthCountFemaleU18,
            "youth_o18": self.youthCountMaleO18 + self.youthCountFemaleO18,
            "chaperone": self.chaperoneCountMale + self.chaperoneCountFemale,
            "priest": self.priestCount,
        }

    def total_participants(self) -> int:
        return sum(self.participant_counts().values())


class IndividualRegistrationCreate(BaseModel):
    """Public individual registration form"""

    firstName: str
    lastName: str
    preferredName: Optional[str] = None
    email: str
    phone: str
    age: Optional[int] = None
    gender: Optional[str] = None
    parishName: Optional[str] = None
    housingType: str
    roomType: Optional[str] = None
    dayPassOptionId: Optional[int] = None
    tShirtSize: Optional[str] = None
    dietaryRestrictions: Optional[str] = None
    adaAccommodations: Optional[str] = None
    emergencyContact1Name: str
    emergencyContact1Phone: str
    emergencyContact1Relation: str
    emergencyContact2Name: Optional[str] = None
    emergencyContact2Phone: Optional[str] = None
    emergencyContact2Relation: Optional[str] = None
    paymentMethod: str = "card"
    couponCode: Optional[str] = None
    waitlistToken: Optional[str] = None

    check_housing_type = field_validator("housingType")(_housing_type)
    check_payment_method = field_validator("paymentMethod")(_payment_method)

    @field_validator("firstName", "lastName", "emergencyContact1Name", "emergencyContact1Relation")
    @classmethod
    def validate_required(cls, v, info):
        return validate_required_text(v, info.field_name)

    @field_validator("email")
    @classmethod
    def validate_email_field(cls, v):
        return validate_email(validate_required_text(v, "Email"))

    @field_validator("phone", "emergencyContact1Phone")
    @classmethod
    def validate_phone(cls, v, info):
        return validate_us_phone(validate_required_text(v, info.field_name))

    @field_validator("emergencyContact2Phone")
    @classmethod
    def validate_optional_phone(cls, v):
        return validate_us_phone(v)

    @field_validator("gender")
    @classmethod
    def validate_gender_field(cls, v):
        return validate_gender(v)

    @field_validator("tShirtSize")
    @classmethod
    def validate_size(cls, v):
        return validate_tshirt_size(v)

    @field_validator("roomType")
    @classmethod
    def validate_room_type(cls, v):
        if v is not None and v not in ROOM_TYPES:
            raise ValueError(f"Room type must be one of: {', '.join(ROOM_TYPES)}")
        return v


class GroupRegistrationUpdate(BaseModel):
    """Admin edits; every change is written to the audit trail"""

    groupName: Optional[str] = None
    parishName: Optional[str] = None
    dioceseName: Optional[str] = None
    groupLeaderName: Optional[str] = None
    groupLeaderEmail: Optional[str] = None
    groupLeaderPhone: Optional[str] = None
    specialRequests: Optional[str] = None
    registrationStatus: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("groupLeaderEmail")
    @classmethod
    def validate_leader_email(cls, v):
        return validate_email(v)

    @field_validator("groupLeaderPhone")
    @classmethod
    def validate_leader_phone(cls, v):
        return validate_us_phone(v)


class IndividualRegistrationUpdate(BaseModel):
    firstName: Optional[str] = None
    lastName: Optional[str] = None
    preferredName: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    age: Optional[int] = None
    gender: Optional[str] = None
    parishName: Optional[str] = None
    tShirtSize: Optional[str] = None
    dietaryRestrictions: Optional[str] = None
    adaAccommodations: Optional[str] = None
    registrationStatus: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("email")
    @classmethod
    def validate_email_field(cls, v):
        return validate_email(v)

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v):
        return validate_us_phone(v)

    @field_validator("gender")
    @classmethod
    def validate_gender_field(cls, v):
        return validate_gender(v)

    @field_validator("tShirtSize")
    @classmethod
    def validate_size(cls, v):
        return validate_tshirt_size(v)


class CancelRegistrationRequest(BaseModel):
    reason: Optional[str] = None
    hardDelete: bool = False


class ParticipantCreate(BaseModel):
    """Group leaders add participants to their roster"""

    firstName: str
    lastName: str
    preferredName: Optional[str] = None
    email: Optional[str] = None
    age: Optional[int] = None
    gender: str
    participantType: str
    tShirtSize: Optional[str] = None

    @field_validator("firstName", "lastName")
    @classmethod
    def validate_names(cls, v, info):
        return validate_required_text(v, info.field_name)

    @field_validator("gender")
    @classmethod
    def validate_gender_field(cls, v):
        return validate_gender(v)

    @field_validator("participantType")
    @classmethod
    def validate_type(cls, v):
        if v not in ("youth_u18", "youth_o18", "chaperone", "priest"):
            raise ValueError("Invalid participant type")
        return v

    @field_validator("tShirtSize")
    @classmethod
    def validate_size(cls, v):
        return validate_tshirt_size(v)


class PortalLinkRequest(BaseModel):
    accessCode: str


class PortalPaymentRequest(BaseModel):
    amount: float

    @field_validator("amount")
    @classmethod
    def validate_amount(cls, v):
        if v <= 0:
            raise ValueError("Amount must be greater than 0")
        return round(v, 2)

