"""Event domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator, model_validator

from ...shared.validators import validate_required_text

EVENT_STATUSES = (
    "draft",
    "published",
    "registration_open",
    "registration_closed",
    "in_progress",
    "completed",
)


class EventCreate(BaseModel):
    """Schema for creating a new event"""

    name: str
    description: Optional[str] = None
    locationName: Optional[str] = None
    locationAddress: Optional[str] = None
    startDate: datetime
    endDate: datetime
    status: str = "draft"
    capacityTotal: Optional[int] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        return validate_required_text(v, "Event name")

    @field_validator("status")
    @classmethod
    def validate_status(cls, v):
        if v not in EVENT_STATUSES:
            raise ValueError(f"Invalid status. Must be one of: {', '.join(EVENT_STATUSES)}")
        return v

    @field_validator("capacityTotal")
    @classmethod
    def validate_capacity(cls, v):
        if v is not None and v < 0:
            raise ValueError("Capacity cannot be negative")
        return v

    @model_validator(mode="after")
    def validate_dates(self):
        if self.endDate < self.startDate:
            raise ValueError("End date must be after start date")
        return self


class EventUpdate(BaseModel):
    """Schema for updating an event; capacityTotal may be set to null for unlimited"""

    name: Optional[str] = None
    description: Optional[str] = None
    locationName: Optional[str] = None
    locationAddress: Optional[str] = None
    startDate: Optional[datetime] = None
    endDate: Optional[datetime] = None
    status: Optional[str] = None
    capacityTotal: Optional[int] = None

    @field_validator("status")
    @classmethod
    def validate_status(cls, v):
        if v is not None and v not in EVENT_STATUSES:
            raise ValueError(f"Invalid status. Must be one of: {', '.join(EVENT_STATUSES)}")
        return v


class EventSettingsUpdate(BaseModel):
    """Partial update of event settings; capacity fields accept null for unlimited"""

    registrationOpensAt: Optional[datetime] = None
    registrationClosesAt: Optional[datetime] = None
    registrationClosedMessage: Optional[str] = None
    enableWaitlist: Optional[bool] = None
    showCountdownBeforeOpen: Optional[bool] = None
    showCountdownBeforeClose: Optional[bool] = None
    allowOnCampus: Optional[bool] = None
    allowOffCampus: Optional[bool] = None
    allowDayPass: Optional[bool] = None
    onCampusCapacity: Optional[int] = None
    offCampusCapacity: Optional[int] = None
    dayPassCapacity: Optional[int] = None
    singleRoomCapacity: Optional[int] = None
    doubleRoomCapacity: Optional[int] = None
    tripleRoomCapacity: Optional[int] = None
    quadRoomCapacity: Optional[int] = None
    allowCheckPayment: Optional[bool] = None
    checkPayableTo: Optional[str] = None
    checkMailingAddress: Optional[str] = None
    porosEnabled: Optional[bool] = None
    salveEnabled: Optional[bool] = None
    raphaEnabled: Optional[bool] = None
    tshirtsEnabled: Optional[bool] = None


class EventPricingUpdate(BaseModel):
    youthEarlyBirdPrice: Optional[float] = None
    youthRegularPrice: Optional[float] = None
    youthLatePrice: Optional[float] = None
    chaperoneEarlyBirdPrice: Optional[float] = None
    chaperoneRegularPrice: Optional[float] = None
    chaperoneLatePrice: Optional[float] = None
    priestPrice: Optional[float] = None
    onCampusYouthPrice: Optional[float] = None
    offCampusYouthPrice: Optional[float] = None
    dayPassYouthPrice: Optional[float] = None
    onCampusChaperonePrice: Optional[float] = None
    offCampusChaperonePrice: Optional[float] = None
    dayPassChaperonePrice: Optional[float] = None
    earlyBirdDeadline: Optional[datetime] = None
    regularDeadline: Optional[datetime] = None
    depositAmount: Optional[float] = None
    depositPercentage: Optional[float] = None
    requireFullPayment: Optional[bool] = None

    @field_validator("depositPercentage")
    @classmethod
    def validate_percentage(cls, v):
        if v is not None and not 0 <= v <= 100:
            raise ValueError("Deposit percentage must be between 0 and 100")
        return v


class DayPassOptionCreate(BaseModel):
    name: str
    date: Optional[datetime] = None
    price: float = 0
    capacity: int = 0
    isActive: bool = True

    @field_validator("capacity")
    @classmethod
    def validate_capacity(cls, v):
        if v < 0:
            raise ValueError("Capacity cannot be negative")
        return v


class DayPassOptionUpdate(BaseModel):
    name: Optional[str] = None
    date: Optional[datetime] = None
    price: Optional[float] = None
    capacity: Optional[int] = None
    isActive: Optional[bool] = None


class EventResponse(BaseModel):
    id: int
    publicId: str
    name: str
    slug: Optional[str] = None
    description: Optional[str] = None
    locationName: Optional[str] = None
    locationAddress: Optional[str] = None
    startDate: datetime
    endDate: datetime
    status: str
    capacityTotal: Optional[int] = None
    capacityRemaining: Optional[int] = None
    createdAt: Optional[datetime] = None
    settings: Optional[dict] = None
    pricing: Optional[dict] = None
