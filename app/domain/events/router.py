"""Event router - FastAPI endpoints for event management and public event info"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import require_permission
from ...database import get_db
from ...models import DayPassOption, User
from .schemas import (
    DayPassOptionCreate,
    DayPassOptionUpdate,
    EventCreate,
    EventPricingUpdate,
    EventResponse,
    EventSettingsUpdate,
    EventUpdate,
)
from .service import EventService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/events", tags=["Events"])
public_router = APIRouter(prefix="/public/events", tags=["Public Events"])


def get_event_service(db: Session = Depends(get_db)) -> EventService:
    """Dependency injection for EventService"""
    return EventService(db)


def _day_pass_response(option: DayPassOption) -> dict:
    return {
        "id": option.id,
        "name": option.name,
        "date": option.date,
        "price": option.price,
        "capacity": option.capacity,
        "remaining": option.remaining,
        "isActive": option.is_active,
    }


# ============================================================================
# EVENTS
# ============================================================================


@router.get("", response_model=list[EventResponse])
async def list_events(
    status: Optional[str] = Query(None),
    current_user: User = Depends(require_permission("events.view")),
    service: EventService = Depends(get_event_service),
):
    """List the organization's events, newest first"""
    return [service.to_response(e, include_details=False) for e in service.list_events(current_user, status)]


@router.post("", response_model=EventResponse, status_code=201)
async def create_event(
    data: EventCreate,
    current_user: User = Depends(require_permission("events.create")),
    service: EventService = Depends(get_event_service),
):
    """Create an event; counts against the organization's yearly event limit"""
    return service.to_response(service.create_event(data, current_user))


@router.get("/{event_id}", response_model=EventResponse)
async def get_event(
    event_id: int,
    current_user: User = Depends(require_permission("events.view")),
    service: EventService = Depends(get_event_service),
):
    return service.to_response(service.get_event(event_id, current_user))


@router.patch("/{event_id}", response_model=EventResponse)
async def update_event(
    event_id: int,
    data: EventUpdate,
    current_user: User = Depends(require_permission("events.edit")),
    service: EventService = Depends(get_event_service),
):
    return service.to_response(service.update_event(event_id, data, current_user))


@router.delete("/{event_id}")
async def delete_event(
    event_id: int,
    current_user: User = Depends(require_permission("events.delete")),
    service: EventService = Depends(get_event_service),
):
    return service.delete_event(event_id, current_user)


@router.put("/{event_id}/settings", response_model=EventResponse)
async def update_event_settings(
    event_id: int,
    data: EventSettingsUpdate,
    current_user: User = Depends(require_permission("events.edit")),
    service: EventService = Depends(get_event_service),
):
    """Update registration window, capacities, check payment info and module flags"""
    return service.to_response(service.update_settings(event_id, data, current_user))


@router.put("/{event_id}/pricing", response_model=EventResponse)
async def update_event_pricing(
    event_id: int,
    data: EventPricingUpdate,
    current_user: User = Depends(require_permission("events.edit")),
    service: EventService = Depends(get_event_service),
):
    return service.to_response(service.update_pricing(event_id, data, current_user))


@router.get("/{event_id}/stats")
async def get_event_stats(
    event_id: int,
    current_user: User = Depends(require_permission("events.view")),
    service: EventService = Depends(get_event_service),
):
    return service.get_stats(event_id, current_user)


# ============================================================================
# DAY PASS OPTIONS
# ============================================================================


@router.get("/{event_id}/day-passes")
async def list_day_pass_options(
    event_id: int,
    current_user: User = Depends(require_permission("events.view")),
    service: EventService = Depends(get_event_service),
):
    return [_day_pass_response(o) for o in service.list_day_pass_options(event_id, current_user)]


@router.post("/{event_id}/day-passes", status_code=201)
async def create_day_pass_option(
    event_id: int,
    data: DayPassOptionCreate,
    current_user: User = Depends(require_permission("events.edit")),
    service: EventService = Depends(get_event_service),
):
    return _day_pass_response(service.create_day_pass_option(event_id, data, current_user))


@router.patch("/{event_id}/day-passes/{option_id}")
async def update_day_pass_option(
    event_id: int,
    option_id: int,
    data: DayPassOptionUpdate,
    current_user: User = Depends(require_permission("events.edit")),
    service: EventService = Depends(get_event_service),
):
    return _day_pass_response(service.update_day_pass_option(event_id, option_id, data, current_user))


@router.delete("/{event_id}/day-passes/{option_id}")
async def delete_day_pass_option(
    event_id: int,
    option_id: int,
    current_user: User = Depends(require_permission("events.edit")),
    service: EventService = Depends(get_event_service),
):
    return service.delete_day_pass_option(event_id, option_id, current_user)


# ============================================================================
# PUBLIC
# ============================================================================


@public_router.get("/{public_id}")
async def get_public_event(public_id: str, service: EventService = Depends(get_event_service)):
    """Event info for the registration page: pricing, status and what can still be selected"""
    return service.get_public_event_info(public_id)
