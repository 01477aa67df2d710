"""
Public registration status for an event: open, closing soon, closed, full, etc.
"""

from datetime import datetime
from typing import Optional

from .config import CLOSING_SOON_HOURS


def _result(status, message, allow_registration, **extra) -> dict:
    result = {
        "status": status,
        "message": message,
        "showCountdown": False,
        "countdownTarget": None,
        "allowRegistration": allow_registration,
        "allowWaitlist": False,
        "spotsRemaining": None,
        "urgentStyle": False,
    }
    result.update(extra)
    return result


def get_registration_status(event, settings=None, now: Optional[datetime] = None) -> dict:
    """Rules are evaluated in order; the first match wins"""
    now = now or datetime.utcnow()
    enable_waitlist = bool(settings and settings.enable_waitlist)
    spots_remaining = event.capacity_remaining if event.capacity_total is not None else None

    if event.status == "registration_closed":
        message = (settings.registration_closed_message if settings else None) or "Registration is closed"
        return _result("closed", message, False, allowWaitlist=enable_waitlist)

    if event.end_date and now > event.end_date:
        return _result("event_ended", "This event has ended", False)

    if event.capacity_total is not None and (event.capacity_remaining or 0) <= 0:
        return _result(
            "at_capacity",
            "This event is at full capacity",
            False,
            allowWaitlist=enable_waitlist,
            spotsRemaining=0,
        )

    opens_at = settings.registration_opens_at if settings else None
    if opens_at and now < opens_at:
        show_countdown = settings.show_countdown_before_open is not False
        return _result(
            "not_yet_open",
            f"Registration opens {opens_at.strftime('%B')} {opens_at.day}, {opens_at.year}",
            False,
            showCountdown=show_countdown,
            countdownTarget=opens_at.isoformat() if show_countdown else None,
            spotsRemaining=spots_remaining,
        )

    closes_at = settings.registration_closes_at if settings else None
    effective_close = min(closes_at, event.start_date) if closes_at else event.start_date
    if effective_close and now > effective_close:
        return _result("closed", "Registration is closed", False, allowWaitlist=enable_waitlist)

    if effective_close:
        hours_until_close = (effective_close - now).total_seconds() / 3600
        if hours_until_close <= CLOSING_SOON_HOURS:
            show_countdown = not settings or settings.show_countdown_before_close is not False
            return _result(
                "closing_soon",
                "Registration closes soon!",
                True,
                showCountdown=show_countdown,
                countdownTarget=effective_close.isoformat() if show_countdown else None,
                spotsRemaining=spots_remaining,
                urgentStyle=True,
            )

    return _result("open", "Registration is open", True, spotsRemaining=spots_remaining)


def get_spots_remaining_message(spots: Optional[int], threshold: int = 20) -> Optional[str]:
    if spots is None:
        return None
    if spots <= 0:
        return "Event is full"
    if spots <= threshold:
        return f"Only {spots} spot{'s' if spots != 1 else ''} remaining!"
    return f"{spots} spots available"


def get_time_remaining(target: datetime, now: Optional[datetime] = None) -> dict:
    now = now or datetime.utcnow()
    total = max(0, int((target - now).total_seconds()))
    return {
        "days": total // 86400,
        "hours": (total % 86400) // 3600,
        "minutes": (total % 3600) // 60,
        "seconds": total % 60,
        "total": total,
    }
