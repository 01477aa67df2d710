"""Housing router - Poros room management and group leader assignment"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user, require_permission
from ...database import get_db
from ...models import User
from .schemas import (
    AssignmentCreate,
    AutoAssignRequest,
    BuildingCreate,
    BuildingUpdate,
    HousingLockRequest,
    PortalHousingAutoAssignRequest,
    RoomAllocation,
    RoomCreate,
    RoomUpdate,
)
from .service import HousingService

router = APIRouter(prefix="/events/{event_id}/housing", tags=["Housing"])
portal_router = APIRouter(prefix="/portal/group/housing", tags=["Group Portal"])


def get_housing_service(db: Session = Depends(get_db)) -> HousingService:
    """Dependency injection for HousingService"""
    return HousingService(db)


# ============================================================================
# OVERVIEW & BUILDINGS
# ============================================================================


@router.get("")
async def get_housing_overview(
    event_id: int,
    current_user: User = Depends(require_permission("poros.access")),
    service: HousingService = Depends(get_housing_service),
):
    """Buildings with rooms and assignments, plus bed totals"""
    return service.get_overview(event_id, current_user)


@router.post("/buildings", status_code=201)
async def create_building(
    event_id: int,
    data: BuildingCreate,
    current_user: User = Depends(require_permission("poros.access")),
    service: HousingService = Depends(get_housing_service),
):
    return service.create_building(event_id, data, current_user)


@router.patch("/buildings/{building_id}")
async def update_building(
    event_id: int,
    building_id: int,
    data: BuildingUpdate,
    current_user: User = Depends(require_permission("poros.access")),
    service: HousingService = Depends(get_housing_service),
):
    return service.update_building(event_id, building_id, data, current_user)


@router.delete("/buildings/{building_id}")
async def delete_building(
    event_id: int,
    building_id: int,
    current_user: User = Depends(require_permission("poros.access")),
    service: HousingService = Depends(get_housing_service),
):
    return service.delete_building(event_id, building_id, current_user)


# ============================================================================
# ROOMS
# ============================================================================


@router.post("/rooms", status_code=201)
async def create_room(
    event_id: int,
    data: RoomCreate,
    current_user: User = Depends(require_permission("poros.access")),
    service: HousingService = Depends(get_housing_service),
):
    return service.create_room(event_id, data, current_user)


@router.patch("/rooms/{room_id}")
async def update_room(
    event_id: int,
    room_id: int,
    data: RoomUpdate,
    current_user: User = Depends(require_permission("poros.access")),
    service: HousingService = Depends(get_housing_service),
):
    return service.update_room(event_id, room_id, data, current_user)


@router.delete("/rooms/{room_id}")
async def delete_room(
    event_id: int,
    room_id: int,
    current_user: User = Depends(require_permission("poros.access")),
    service: HousingService = Depends(get_housing_service),
):
    return service.delete_room(event_id, room_id, current_user)


@router.put("/rooms/{room_id}/allocation")
async def allocate_room(
    event_id: int,
    room_id: int,
    data: RoomAllocation,
    current_user: User = Depends(require_permission("poros.access")),
    service: HousingService = Depends(get_housing_service),
):
    """Reserve a room for one group so its leader can fill it"""
    return service.allocate_room(event_id, room_id, data, current_user)


# ============================================================================
# ASSIGNMENTS
# ============================================================================


@router.post("/assignments", status_code=201)
async def assign_participant(
    event_id: int,
    data: AssignmentCreate,
    current_user: User = Depends(require_permission("poros.access")),
    service: HousingService = Depends(get_housing_service),
):
    return service.assign_participant(event_id, data, current_user)


@router.delete("/assignments/{participant_id}")
async def unassign_participant(
    event_id: int,
    participant_id: int,
    current_user: User = Depends(require_permission("poros.access")),
    service: HousingService = Depends(get_housing_service),
):
    return service.unassign_participant(event_id, participant_id, current_user)


@router.post("/auto-assign")
async def auto_assign(
    event_id: int,
    data: AutoAssignRequest,
    current_user: User = Depends(require_permission("poros.access")),
    service: HousingService = Depends(get_housing_service),
):
    return service.auto_assign(event_id, data, current_user)


@router.put("/groups/{group_id}/lock")
async def set_group_lock(
    event_id: int,
    group_id: int,
    data: HousingLockRequest,
    current_user: User = Depends(require_permission("poros.access")),
    service: HousingService = Depends(get_housing_service),
):
    return service.set_group_lock(event_id, group_id, data.locked, current_user)


# ============================================================================
# GROUP LEADER PORTAL
# ============================================================================


@portal_router.get("")
async def get_group_housing(
    registration_id: Optional[int] = Query(None, alias="registrationId"),
    current_user: User = Depends(get_current_user),
    service: HousingService = Depends(get_housing_service),
):
    return service.get_group_housing(current_user, registration_id)


@portal_router.post("/auto-assign")
async def group_auto_assign(
    data: PortalHousingAutoAssignRequest,
    current_user: User = Depends(get_current_user),
    service: HousingService = Depends(get_housing_service),
):
    return service.group_auto_assign(current_user, data)
