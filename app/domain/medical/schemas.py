"""Rapha schemas - Medical incident payloads"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator

SEVERITIES = ("minor", "moderate", "severe")
INCIDENT_STATUSES = ("active", "monitoring", "resolved")


def check_severity(v):
    if v is not None and v not in SEVERITIES:
        raise ValueError(f"Severity must be one of: {', '.join(SEVERITIES)}")
    return v


class IncidentCreate(BaseModel):
    participantId: Optional[int] = None
    individualRegistrationId: Optional[int] = None
    incidentType: Optional[str] = None
    severity: Optional[str] = None
    description: Optional[str] = None
    treatmentProvided: Optional[str] = None
    staffMemberName: Optional[str] = None
    location: Optional[str] = None
    incidentDate: Optional[datetime] = None
    incidentTime: Optional[str] = None
    parentContacted: bool = False
    parentContactTime: Optional[datetime] = None
    parentContactMethod: Optional[str] = None
    parentContactNotes: Optional[str] = None
    ambulanceCalled: bool = False
    sentToHospital: bool = False
    hospitalName: Optional[str] = None
    disposition: Optional[str] = None
    followUpRequired: bool = False
    followUpNotes: Optional[str] = None
    nextCheckTime: Optional[datetime] = None

    validate_severity = field_validator("severity")(check_severity)


class IncidentUpdate(BaseModel):
    updateNote: Optional[str] = None
    status: Optional[str] = None
    severity: Optional[str] = None
    treatmentProvided: Optional[str] = None
    parentContacted: Optional[bool] = None
    parentContactTime: Optional[datetime] = None
    parentContactMethod: Optional[str] = None
    parentContactNotes: Optional[str] = None
    ambulanceCalled: Optional[bool] = None
    sentToHospital: Optional[bool] = None
    hospitalName: Optional[str] = None
    disposition: Optional[str] = None
    followUpRequired: Optional[bool] = None
    followUpNotes: Optional[str] = None
    nextCheckTime: Optional[datetime] = None
    staffMemberName: Optional[str] = None

    validate_severity = field_validator("severity")(check_severity)

    @field_validator("status")
    @classmethod
    def validate_status(cls, v):
        if v is not None and v not in INCIDENT_STATUSES:
            raise ValueError(f"Status must be one of: {', '.join(INCIDENT_STATUSES)}")
        return v
