"""Liability form schemas - Pydantic models for the three Poros form flows"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator

from ...shared.validators import (
    validate_email,
    validate_gender,
    validate_required_text,
    validate_tshirt_size,
    validate_us_phone,
)

FORM_TYPES = ("youth_u18", "youth_o18_chaperone", "clergy")


def _required(v, info):
    return validate_required_text(v, info.field_name)


def _optional_phone(v):
    return validate_us_phone(v)


class MedicalInfo(BaseModel):
    """Medical, emergency contact and insurance details shared by every form"""

    allergies: Optional[str] = None
    medications: Optional[str] = None
    medicalConditions: Optional[str] = None
    dietaryRestrictions: Optional[str] = None
    adaAccommodations: Optional[str] = None
    emergencyContact1Name: str
    emergencyContact1Phone: str
    emergencyContact1Relation: str
    emergencyContact2Name: Optional[str] = None
    emergencyContact2Phone: Optional[str] = None
    emergencyContact2Relation: Optional[str] = None
    insuranceProvider: Optional[str] = None
    insurancePolicyNumber: Optional[str] = None
    insuranceGroupNumber: Optional[str] = None

    check_emergency_contact = field_validator("emergencyContact1Name", "emergencyContact1Relation")(_required)
    check_contact_2_phone = field_validator("emergencyContact2Phone")(_optional_phone)

    @field_validator("emergencyContact1Phone")
    @classmethod
    def validate_contact_phone(cls, v):
        return validate_us_phone(validate_required_text(v, "Emergency contact phone"))

    def medical_columns(self) -> dict:
        return {
            "allergies": self.allergies or None,
            "medications": self.medications or None,
            "medical_conditions": self.medicalConditions or None,
            "dietary_restrictions": self.dietaryRestrictions or None,
            "ada_accommodations": self.adaAccommodations or None,
            "emergency_contact_1_name": self.emergencyContact1Name,
            "emergency_contact_1_phone": self.emergencyContact1Phone,
            "emergency_contact_1_relation": self.emergencyContact1Relation,
            "emergency_contact_2_name": self.emergencyContact2Name or None,
            "emergency_contact_2_phone": self.emergencyContact2Phone or None,
            "emergency_contact_2_relation": self.emergencyContact2Relation or None,
            "insurance_provider": self.insuranceProvider or None,
            "insurance_policy_number": self.insurancePolicyNumber or None,
            "insurance_group_number": self.insuranceGroupNumber or None,
        }


class SignatureInfo(BaseModel):
    signatureFullName: str
    signatureInitials: str
    signatureDate: Optional[str] = None
    certifyAccurate: bool

    check_signature = field_validator("signatureFullName", "signatureInitials")(_required)

    @field_validator("certifyAccurate")
    @classmethod
    def validate_certification(cls, v):
        if not v:
            raise ValueError("You must certify that the information is accurate")
        return v


# ============================================================================
# YOUTH UNDER 18
# ============================================================================


class YouthU18Initiate(BaseModel):
    """Group member starts a form; the parent finishes it"""

    accessCode: str
    firstName: str
    lastName: str
    preferredName: Optional[str] = None
    age: int
    gender: str
    tShirtSize: str
    parentEmail: str

    check_names = field_validator("accessCode", "firstName", "lastName")(_required)

    @field_validator("gender")
    @classmethod
    def validate_gender_field(cls, v):
        return validate_gender(validate_required_text(v, "Gender"))

    @field_validator("tShirtSize")
    @classmethod
    def validate_size(cls, v):
        return validate_tshirt_size(validate_required_text(v, "T-shirt size"))

    @field_validator("parentEmail")
    @classmethod
    def validate_parent_email(cls, v):
        return validate_email(validate_required_text(v, "Parent email"))


class ParentFormComplete(MedicalInfo, SignatureInfo):
    insuranceProvider: str
    insurancePolicyNumber: str

    check_insurance = field_validator("insuranceProvider", "insurancePolicyNumber")(_required)


# ============================================================================
# ADULTS AND CLERGY
# ============================================================================


class SafeEnvironmentInfo(BaseModel):
    programName: str
    completionDate: Optional[datetime] = None
    expirationDate: Optional[datetime] = None

    check_program = field_validator("programName")(_required)


class AdultFormSubmit(MedicalInfo, SignatureInfo):
    """Youth over 18 and chaperones complete their own form"""

    accessCode: str
    firstName: str
    lastName: str
    preferredName: Optional[str] = None
    age: int
    gender: str
    participantType: str
    email: str
    phone: str
    tShirtSize: str
    safeEnvironment: Optional[SafeEnvironmentInfo] = None

    check_names = field_validator("accessCode", "firstName", "lastName")(_required)

    @field_validator("age")
    @classmethod
    def validate_age(cls, v):
        if v < 18:
            raise ValueError("Participants must be 18 or older to complete this form")
        return v

    @field_validator("participantType")
    @classmethod
    def validate_type(cls, v):
        if v not in ("youth_o18", "chaperone"):
            raise ValueError("Participant type must be 'youth_o18' or 'chaperone'")
        return v

    @field_validator("gender")
    @classmethod
    def validate_gender_field(cls, v):
        return validate_gender(validate_required_text(v, "Gender"))

    @field_validator("email")
    @classmethod
    def validate_email_field(cls, v):
        return validate_email(validate_required_text(v, "Email"))

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v):
        return validate_us_phone(validate_required_text(v, "Phone"))

    @field_validator("tShirtSize")
    @classmethod
    def validate_size(cls, v):
        return validate_tshirt_size(validate_required_text(v, "T-shirt size"))


class ClergyFormSubmit(MedicalInfo, SignatureInfo):
    accessCode: str
    firstName: str
    lastName: str
    clergyTitle: str
    faithFacility: str
    email: Optional[str] = None
    phone: Optional[str] = None
    tShirtSize: Optional[str] = None

    check_names = field_validator("accessCode", "firstName", "lastName", "clergyTitle", "faithFacility")(_required)
    check_phone = field_validator("phone")(_optional_phone)

    @field_validator("email")
    @classmethod
    def validate_email_field(cls, v):
        return validate_email(v)

    @field_validator("tShirtSize")
    @classmethod
    def validate_size(cls, v):
        return validate_tshirt_size(v)


class CertificateReview(BaseModel):
    status: str
    notes: Optional[str] = None

    @field_validator("status")
    @classmethod
    def validate_status(cls, v):
        if v not in ("verified", "rejected"):
            raise ValueError("Status must be 'verified' or 'rejected'")
        return v
