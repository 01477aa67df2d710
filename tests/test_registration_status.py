from datetime import datetime, timedelta
from types import SimpleNamespace

from app.registration_status import get_registration_status, get_spots_remaining_message, get_time_remaining

NOW = datetime(2026, 6, 1, 12, 0)


def make_event(**overrides):
    values = dict(
        status="registration_open",
        start_date=NOW + timedelta(days=30),
        end_date=NOW + timedelta(days=33),
        capacity_total=None,
        capacity_remaining=None,
    )
    values.update(overrides)
    return SimpleNamespace(**values)


def make_settings(**overrides):
    values = dict(
        enable_waitlist=False,
        registration_closed_message=None,
        registration_opens_at=None,
        registration_closes_at=None,
        show_countdown_before_open=True,
        show_countdown_before_close=True,
    )
    values.update(overrides)
    return SimpleNamespace(**values)


def test_open():
    status = get_registration_status(make_event(), make_settings(), NOW)
    assert status["status"] == "open"
    assert status["allowRegistration"] is True
    assert status["spotsRemaining"] is None


def test_manually_closed_uses_custom_message_and_waitlist():
    settings = make_settings(enable_waitlist=True, registration_closed_message="See you next year!")
    status = get_registration_status(make_event(status="registration_closed"), settings, NOW)
    assert status["status"] == "closed"
    assert status["message"] == "See you next year!"
    assert status["allowWaitlist"] is True


def test_event_ended():
    event = make_event(start_date=NOW - timedelta(days=5), end_date=NOW - timedelta(days=2))
    assert get_registration_status(event, make_settings(), NOW)["status"] == "event_ended"


def test_at_capacity():
    event = make_event(capacity_total=100, capacity_remaining=0)
    status = get_registration_status(event, make_settings(enable_waitlist=True), NOW)
    assert status["status"] == "at_capacity"
    assert status["allowRegistration"] is False
    assert status["allowWaitlist"] is True
    assert status["spotsRemaining"] == 0


def test_not_yet_open_shows_countdown():
    opens = NOW + timedelta(days=3)
    status = get_registration_status(make_event(), make_settings(registration_opens_at=opens), NOW)
    assert status["status"] == "not_yet_open"
    assert status["message"] == "Registration opens June 4, 2026"
    assert status["countdownTarget"] == opens.isoformat()


def test_closes_at_or_event_start_whichever_first():
    settings = make_settings(registration_closes_at=NOW - timedelta(hours=1))
    assert get_registration_status(make_event(), settings, NOW)["status"] == "closed"

    event = make_event(start_date=NOW - timedelta(hours=1), end_date=NOW + timedelta(days=2))
    assert get_registration_status(event, make_settings(), NOW)["status"] == "closed"


def test_closing_soon():
    settings = make_settings(registration_closes_at=NOW + timedelta(hours=12))
    status = get_registration_status(make_event(capacity_total=50, capacity_remaining=8), settings, NOW)
    assert status["status"] == "closing_soon"
    assert status["urgentStyle"] is True
    assert status["allowRegistration"] is True
    assert status["spotsRemaining"] == 8


def test_spots_remaining_message():
    assert get_spots_remaining_message(None) is None
    assert get_spots_remaining_message(0) == "Event is full"
    assert get_spots_remaining_message(1) == "Only 1 spot remaining!"
    assert get_spots_remaining_message(50) == "50 spots available"


def test_time_remaining_never_negative():
    assert get_time_remaining(NOW - timedelta(hours=1), NOW)["total"] == 0
    remaining = get_time_remaining(NOW + timedelta(days=1, hours=2, minutes=3, seconds=4), NOW)
    assert (remaining["days"], remaining["hours"], remaining["minutes"], remaining["seconds"]) == (1, 2, 3, 4)
