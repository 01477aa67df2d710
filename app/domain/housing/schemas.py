"""Housing schemas - Pydantic models for buildings, rooms and assignments"""

from typing import Optional

from pydantic import BaseModel, field_validator, model_validator

BUILDING_HOUSING_TYPES = ("youth_u18", "chaperone_18plus", "clergy", "general")
ROOM_GENDERS = ("male", "female", "mixed")
AUTO_ASSIGN_STRATEGIES = ("parish_together", "fill_rooms", "balance")
HOUSING_CATEGORIES = ("male_u18", "female_u18", "male_chaperone", "female_chaperone")


def check_gender(v):
    if v is not None and v not in ROOM_GENDERS:
        raise ValueError(f"Gender must be one of: {', '.join(ROOM_GENDERS)}")
    return v


def check_housing_type(v):
    if v is not None and v not in BUILDING_HOUSING_TYPES:
        raise ValueError(f"Housing type must be one of: {', '.join(BUILDING_HOUSING_TYPES)}")
    return v


class BuildingCreate(BaseModel):
    name: str
    gender: Optional[str] = None
    housingType: Optional[str] = None
    totalFloors: int = 1
    notes: Optional[str] = None

    validate_gender = field_validator("gender")(check_gender)
    validate_housing_type = field_validator("housingType")(check_housing_type)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if not v or not v.strip():
            raise ValueError("Building name is required")
        return v.strip()

    @field_validator("totalFloors")
    @classmethod
    def validate_floors(cls, v):
        if v < 1:
            raise ValueError("A building needs at least one floor")
        return v


class BuildingUpdate(BaseModel):
    name: Optional[str] = None
    gender: Optional[str] = None
    housingType: Optional[str] = None
    totalFloors: Optional[int] = None
    notes: Optional[str] = None

    validate_gender = field_validator("gender")(check_gender)
    validate_housing_type = field_validator("housingType")(check_housing_type)


class RoomCreate(BaseModel):
    buildingId: int
    roomNumber: str
    floor: int = 1
    gender: Optional[str] = None
    housingType: Optional[str] = None
    capacity: int
    isAvailable: bool = True
    notes: Optional[str] = None

    validate_gender = field_validator("gender")(check_gender)
    validate_housing_type = field_validator("housingType")(check_housing_type)

    @field_validator("capacity")
    @classmethod
    def validate_capacity(cls, v):
        if v < 1:
            raise ValueError("Room capacity must be at least 1")
        return v


class RoomUpdate(BaseModel):
    roomNumber: Optional[str] = None
    floor: Optional[int] = None
    gender: Optional[str] = None
    housingType: Optional[str] = None
    capacity: Optional[int] = None
    isAvailable: Optional[bool] = None
    notes: Optional[str] = None

    validate_gender = field_validator("gender")(check_gender)
    validate_housing_type = field_validator("housingType")(check_housing_type)


class RoomAllocation(BaseModel):
    """Allocate a room to a group, or release it with null"""

    groupRegistrationId: Optional[int] = None


class AssignmentCreate(BaseModel):
    participantId: int
    roomId: int
    bedNumber: Optional[int] = None


class AutoAssignRequest(BaseModel):
    strategy: str = "parish_together"
    onlyUnassigned: bool = True
    genderFilter: str = "all"
    typeFilter: str = "all"
    buildingIds: list[int] = []

    @field_validator("strategy")
    @classmethod
    def validate_strategy(cls, v):
        if v not in AUTO_ASSIGN_STRATEGIES:
            raise ValueError(f"Strategy must be one of: {', '.join(AUTO_ASSIGN_STRATEGIES)}")
        return v

    @model_validator(mode="after")
    def validate_filters(self):
        if self.genderFilter not in ("all", "male", "female"):
            raise ValueError("genderFilter must be all, male or female")
        if self.typeFilter not in ("all", "youth", "chaperone"):
            raise ValueError("typeFilter must be all, youth or chaperone")
        return self


class HousingLockRequest(BaseModel):
    locked: bool


class PortalHousingAutoAssignRequest(BaseModel):
    category: str
    registrationId: Optional[int] = None

    @field_validator("category")
    @classmethod
    def validate_category(cls, v):
        if v not in HOUSING_CATEGORIES:
            raise ValueError(f"Category must be one of: {', '.join(HOUSING_CATEGORIES)}")
        return v
