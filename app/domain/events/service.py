"""Event service - Business logic for events, settings, pricing and day pass options"""

import logging
import re
from datetime import datetime
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import DayPassOption, Event, Organization, User
from ...option_capacity import HOUSING_TYPES, ROOM_TYPES, get_available_options
from ...plan_limits import can_create_event, record_event_created
from ...registration_status import get_registration_status, get_spots_remaining_message, get_time_remaining
from ...shared.event_access import get_event_for_user, get_public_event
from ...shared.serialization import row_to_camel_dict, to_snake_updates
from ...utils.sanitization import sanitize_html
from .repository import EventRepository
from .schemas import (
    DayPassOptionCreate,
    DayPassOptionUpdate,
    EventCreate,
    EventPricingUpdate,
    EventSettingsUpdate,
    EventUpdate,
)

logger = logging.getLogger(__name__)

CAPACITY_FIELDS = [f"{h}_capacity" for h in HOUSING_TYPES] + [f"{r}_room_capacity" for r in ROOM_TYPES]


def slugify(name: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")
    return slug or "event"


def apply_capacity_change(obj, capacity_field: str, remaining_field: str, new_capacity: Optional[int]) -> None:
    """
    Change a capacity while keeping the number of spots already taken.
    Setting capacity to None (unlimited) clears the remaining counter.
    """
    if new_capacity is None:
        setattr(obj, capacity_field, None)
        setattr(obj, remaining_field, None)
        return

    old_capacity = getattr(obj, capacity_field)
    old_remaining = getattr(obj, remaining_field)
    used = 0
    if old_capacity is not None and old_remaining is not None:
        used = max(0, old_capacity - old_remaining)

    setattr(obj, capacity_field, new_capacity)
    setattr(obj, remaining_field, max(0, new_capacity - used))


class EventService:
    """Service layer for event business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = EventRepository()

    def to_response(self, event: Event, include_details: bool = True) -> dict:
        response = {
            "id": event.id,
            "publicId": event.public_id,
            "name": event.name,
            "slug": event.slug,
            "description": event.description,
            "locationName": event.location_name,
            "locationAddress": event.location_address,
            "startDate": event.start_date,
            "endDate": event.end_date,
            "status": event.status,
            "capacityTotal": event.capacity_total,
            "capacityRemaining": event.capacity_remaining,
            "createdAt": event.created_at,
        }
        if include_details:
            response["settings"] = row_to_camel_dict(event.settings, exclude=("id", "event_id"))
            response["pricing"] = row_to_camel_dict(event.pricing, exclude=("id", "event_id"))
        return response

    # ========================================================================
    # EVENTS
    # ========================================================================

    def list_events(self, user: User, status: Optional[str] = None) -> list[Event]:
        return self.repo.get_events(self.db, user.organization_id, status)

    def get_event(self, event_id: int, user: User) -> Event:
        return get_event_for_user(self.db, event_id, user)

    def create_event(self, data: EventCreate, user: User) -> Event:
        organization = self.db.get(Organization, user.organization_id)
        allowed, message = can_create_event(organization, self.db)
        if not allowed:
            logger.warning(f"⚠️ Organization {organization.id} hit its event limit")
            raise HTTPException(status_code=403, detail=message)

        logger.info(f"📥 Creating event '{data.name}' for organization {organization.id}")
        try:
            event = self.repo.create_event(
                self.db,
                organization_id=organization.id,
                name=data.name,
                slug=slugify(data.name),
                description=sanitize_html(data.description),
                location_name=data.locationName,
                location_address=data.locationAddress,
                start_date=data.startDate,
                end_date=data.endDate,
                status=data.status,
                capacity_total=data.capacityTotal,
                capacity_remaining=data.capacityTotal,
                created_by_id=user.id,
            )
            record_event_created(organization, self.db)
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"❌ Failed to create event: {e}")
            self.db.rollback()
            raise HTTPException(status_code=500, detail="Failed to create event")

        logger.info(f"✅ Event {event.id} created ({organization.events_used} used this year)")
        return event

    def update_event(self, event_id: int, data: EventUpdate, user: User) -> Event:
        event = self.get_event(event_id, user)
        updates = data.model_dump(exclude_unset=True)

        if "capacityTotal" in updates:
            apply_capacity_change(event, "capacity_total", "capacity_remaining", updates.pop("capacityTotal"))
        if "description" in updates:
            updates["description"] = sanitize_html(updates["description"])
        if updates.get("name"):
            updates["slug"] = slugify(updates["name"])

        start = updates.get("startDate") or event.start_date
        end = updates.get("endDate") or event.end_date
        if end < start:
            raise HTTPException(status_code=400, detail="End date must be after start date")

        return self.repo.update(self.db, event, **to_snake_updates(updates))

    def delete_event(self, event_id: int, user: User) -> dict:
        event = self.get_event(event_id, user)
        registrations = self.repo.count_registrations(self.db, event.id)
        if registrations:
            raise HTTPException(
                status_code=400,
                detail=f"Cannot delete an event with {registrations} registration(s). Cancel the event instead.",
            )
        self.repo.delete_event(self.db, event)
        logger.info(f"🗑️ Deleted event {event_id}")
        return {"message": "Event deleted"}

    # ========================================================================
    # SETTINGS & PRICING
    # ========================================================================

    def update_settings(self, event_id: int, data: EventSettingsUpdate, user: User) -> Event:
        event = self.get_event(event_id, user)
        updates = to_snake_updates(data.model_dump(exclude_unset=True))

        if updates.get("registration_closed_message"):
            updates["registration_closed_message"] = sanitize_html(updates["registration_closed_message"])

        settings = event.settings
        for field in CAPACITY_FIELDS:
            if field in updates:
                new_capacity = updates.pop(field)
                if new_capacity is not None and new_capacity < 0:
                    raise HTTPException(status_code=400, detail="Capacity cannot be negative")
                apply_capacity_change(settings, field, field.replace("_capacity", "_remaining"), new_capacity)

        for key, value in updates.items():
            setattr(settings, key, value)

        self.db.commit()
        self.db.refresh(event)
        logger.info(f"✅ Updated settings for event {event.id}")
        return event

    def update_pricing(self, event_id: int, data: EventPricingUpdate, user: User) -> Event:
        event = self.get_event(event_id, user)
        updates = to_snake_updates(data.model_dump(exclude_unset=True))

        for key, value in updates.items():
            if key.endswith("_price") and value is not None and value < 0:
                raise HTTPException(status_code=400, detail="Prices cannot be negative")
            setattr(event.pricing, key, value)

        self.db.commit()
        self.db.refresh(event)
        logger.info(f"✅ Updated pricing for event {event.id}")
        return event

    # ========================================================================
    # DAY PASS OPTIONS
    # ========================================================================

    def list_day_pass_options(self, event_id: int, user: User) -> list[DayPassOption]:
        event = self.get_event(event_id, user)
        return self.repo.get_day_pass_options(self.db, event.id)

    def create_day_pass_option(self, event_id: int, data: DayPassOptionCreate, user: User) -> DayPassOption:
        event = self.get_event(event_id, user)
        return self.repo.create_day_pass_option(
            self.db,
            event_id=event.id,
            name=data.name,
            date=data.date,
            price=data.price,
            capacity=data.capacity,
            remaining=data.capacity,
            is_active=data.isActive,
        )

    def _get_day_pass_option(self, event_id: int, option_id: int, user: User) -> DayPassOption:
        event = self.get_event(event_id, user)
        option = self.repo.get_day_pass_option(self.db, event.id, option_id)
        if not option:
            raise HTTPException(status_code=404, detail="Day pass option not found")
        return option

    def update_day_pass_option(
        self, event_id: int, option_id: int, data: DayPassOptionUpdate, user: User
    ) -> DayPassOption:
        option = self._get_day_pass_option(event_id, option_id, user)
        updates = data.model_dump(exclude_unset=True)

        if "capacity" in updates:
            new_capacity = updates.pop("capacity") or 0
            sold = max(0, option.capacity - option.remaining) if option.capacity else 0
            option.capacity = new_capacity
            option.remaining = max(0, new_capacity - sold) if new_capacity else 0

        return self.repo.update(self.db, option, **to_snake_updates(updates))

    def delete_day_pass_option(self, event_id: int, option_id: int, user: User) -> dict:
        option = self._get_day_pass_option(event_id, option_id, user)
        if self.repo.day_pass_option_in_use(self.db, option.id):
            # Sold options are deactivated instead of removed
            option.is_active = False
            self.db.commit()
            return {"message": "Day pass option has registrations and was deactivated"}

        self.db.delete(option)
        self.db.commit()
        return {"message": "Day pass option deleted"}

    # ========================================================================
    # STATS & PUBLIC
    # ========================================================================

    def get_stats(self, event_id: int, user: User) -> dict:
        event = self.get_event(event_id, user)
        stats = self.repo.get_stats(self.db, event.id)
        stats["capacityTotal"] = event.capacity_total
        stats["capacityRemaining"] = event.capacity_remaining
        logger.info(f"📊 Stats for event {event.id}: {stats['totalParticipants']} participants")
        return stats

    def get_public_event_info(self, public_id: str) -> dict:
        event = get_public_event(self.db, public_id)
        now = datetime.utcnow()
        status = get_registration_status(event, event.settings, now)

        time_remaining = None
        if status["countdownTarget"]:
            time_remaining = get_time_remaining(datetime.fromisoformat(status["countdownTarget"]), now)

        settings = event.settings
        response = self.to_response(event, include_details=False)
        response.pop("id")
        response["pricing"] = row_to_camel_dict(event.pricing, exclude=("id", "event_id"))
        response["registrationStatus"] = status
        response["spotsMessage"] = get_spots_remaining_message(status["spotsRemaining"])
        response["timeRemaining"] = time_remaining
        response["availableOptions"] = get_available_options(settings)
        response["dayPassOptions"] = [
            {
                "id": option.id,
                "name": option.name,
                "date": option.date,
                "price": option.price,
                "soldOut": bool(option.capacity) and option.remaining <= 0,
            }
            for option in self.repo.get_day_pass_options(self.db, event.id, active_only=True)
        ]
        response["allowCheckPayment"] = settings.allow_check_payment if settings else True
        response["tshirtsEnabled"] = settings.tshirts_enabled if settings else True
        return response
