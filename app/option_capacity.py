"""
Housing, room-type and day pass capacity tracking.

Capacity columns on EventSettings come in pairs: `<option>_capacity` and
`<option>_remaining`. A capacity of None means unlimited and the remaining
counter is never touched.
"""

import logging
from typing import Optional

logger = logging.getLogger(__name__)

HOUSING_TYPES = ("on_campus", "off_campus", "day_pass")
ROOM_TYPES = ("single", "double", "triple", "quad")

HOUSING_LABELS = {
    "on_campus": "on campus",
    "off_campus": "off campus",
    "day_pass": "day pass",
}


def _housing_fields(housing_type: str) -> tuple:
    return f"{housing_type}_capacity", f"{housing_type}_remaining"


def _room_fields(room_type: str) -> tuple:
    return f"{room_type}_room_capacity", f"{room_type}_room_remaining"


def _remaining(settings, capacity_field: str, remaining_field: str) -> Optional[int]:
    capacity = getattr(settings, capacity_field, None)
    if capacity is None:
        return None
    remaining = getattr(settings, remaining_field, None)
    return capacity if remaining is None else remaining


def check_option_capacity(
    settings, housing_type: Optional[str], room_type: Optional[str] = None, party_size: int = 1
) -> dict:
    """Returns {"has_capacity": bool, "error": str | None}"""
    if settings is None:
        return {"has_capacity": True, "error": None}

    if housing_type in HOUSING_TYPES:
        remaining = _remaining(settings, *_housing_fields(housing_type))
        label = HOUSING_LABELS[housing_type]
        if remaining is not None:
            if remaining <= 0:
                return {
                    "has_capacity": False,
                    "error": f"No {label} spots available. Please join the waitlist or select a different housing option.",
                }
            if remaining < party_size:
                return {
                    "has_capacity": False,
                    "error": f"Only {remaining} {label} spot(s) remaining, but {party_size} requested.",
                }

    # Room types only apply to on-campus housing
    if housing_type == "on_campus" and room_type in ROOM_TYPES:
        remaining = _remaining(settings, *_room_fields(room_type))
        if remaining is not None:
            if remaining <= 0:
                return {
                    "has_capacity": False,
                    "error": f"No {room_type} room spots available. Please join the waitlist or select a different room type.",
                }
            if remaining < party_size:
                return {
                    "has_capacity": False,
                    "error": f"Only {remaining} {room_type} room spot(s) remaining.",
                }

    return {"has_capacity": True, "error": None}


def _adjust(settings, capacity_field: str, remaining_field: str, delta: int) -> None:
    capacity = getattr(settings, capacity_field, None)
    if capacity is None:
        return
    remaining = getattr(settings, remaining_field, None)
    if remaining is None:
        remaining = capacity
    remaining = min(capacity, max(0, remaining + delta))
    setattr(settings, remaining_field, remaining)


def decrement_option_capacity(
    settings, housing_type: Optional[str], room_type: Optional[str] = None, count: int = 1
) -> None:
    """Consume capacity; caller commits"""
    if settings is None:
        return
    if housing_type in HOUSING_TYPES:
        _adjust(settings, *_housing_fields(housing_type), -count)
    if housing_type == "on_campus" and room_type in ROOM_TYPES:
        _adjust(settings, *_room_fields(room_type), -count)


def increment_option_capacity(
    settings, housing_type: Optional[str], room_type: Optional[str] = None, count: int = 1
) -> None:
    """Release capacity, never beyond the configured capacity; caller commits"""
    if settings is None:
        return
    if housing_type in HOUSING_TYPES:
        _adjust(settings, *_housing_fields(housing_type), count)
    if housing_type == "on_campus" and room_type in ROOM_TYPES:
        _adjust(settings, *_room_fields(room_type), count)


def get_available_options(settings) -> dict:
    """Housing and room types that can still be selected"""
    if settings is None:
        return {"housingTypes": list(HOUSING_TYPES), "roomTypes": list(ROOM_TYPES)}

    allowed = {
        "on_campus": settings.allow_on_campus is not False,
        "off_campus": settings.allow_off_campus is not False,
        "day_pass": bool(settings.allow_day_pass),
    }

    housing = []
    for housing_type in HOUSING_TYPES:
        if not allowed[housing_type]:
            continue
        remaining = _remaining(settings, *_housing_fields(housing_type))
        if remaining is None or remaining > 0:
            housing.append(housing_type)

    rooms = []
    for room_type in ROOM_TYPES:
        remaining = _remaining(settings, *_room_fields(room_type))
        if remaining is None or remaining > 0:
            rooms.append(room_type)

    return {"housingTypes": housing, "roomTypes": rooms}


# ============================================================================
# DAY PASS OPTIONS
# ============================================================================


def check_day_pass_capacity(option, party_size: int = 1) -> dict:
    if option is None:
        return {"has_capacity": False, "error": "Day pass option not found"}
    if not option.is_active:
        return {"has_capacity": False, "error": f"{option.name} is no longer available"}

    # capacity 0 = unlimited
    if not option.capacity:
        return {"has_capacity": True, "error": None}

    if option.remaining <= 0:
        return {
            "has_capacity": False,
            "error": f"No spots available for {option.name}. Please select a different day pass option.",
        }
    if option.remaining < party_size:
        return {
            "has_capacity": False,
            "error": f"Only {option.remaining} spot(s) remaining for {option.name}, but {party_size} requested.",
        }
    return {"has_capacity": True, "error": None}


def decrement_day_pass_capacity(option, count: int = 1) -> None:
    if option is None or not option.capacity:
        return
    option.remaining = max(0, option.remaining - count)


def increment_day_pass_capacity(option, count: int = 1) -> None:
    if option is None or not option.capacity:
        return
    option.remaining = min(option.capacity, option.remaining + count)
    logger.info(f"🔄 Restored {count} spot(s) to day pass option {option.id}")
