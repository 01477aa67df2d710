"""Support ticket schemas"""

from typing import Optional

from pydantic import BaseModel, field_validator

TICKET_PRIORITIES = ("low", "normal", "high", "urgent")
TICKET_STATUSES = ("open", "in_progress", "resolved", "closed")


class SupportTicketCreate(BaseModel):
    subject: str
    description: str
    priority: str = "normal"

    @field_validator("subject", "description")
    @classmethod
    def validate_text(cls, v, info):
        if not v or not v.strip():
            raise ValueError(f"{info.field_name} is required")
        return v.strip()

    @field_validator("priority")
    @classmethod
    def validate_priority(cls, v):
        if v not in TICKET_PRIORITIES:
            raise ValueError(f"Priority must be one of: {', '.join(TICKET_PRIORITIES)}")
        return v


class SupportTicketUpdate(BaseModel):
    status: Optional[str] = None
    priority: Optional[str] = None

    @field_validator("status")
    @classmethod
    def validate_status(cls, v):
        if v is not None and v not in TICKET_STATUSES:
            raise ValueError(f"Status must be one of: {', '.join(TICKET_STATUSES)}")
        return v

    @field_validator("priority")
    @classmethod
    def validate_priority(cls, v):
        if v is not None and v not in TICKET_PRIORITIES:
            raise ValueError(f"Priority must be one of: {', '.join(TICKET_PRIORITIES)}")
        return v
