from datetime import datetime
from unittest.mock import MagicMock

from app.models import Organization
from app.plan_limits import can_add_participants, can_create_event, check_and_reset_yearly_usage, get_tier_limits


def make_org(**overrides):
    values = dict(
        name="St. Joseph",
        subscription_tier="starter",
        events_used=0,
        people_used=0,
        usage_reset_date=datetime(2099, 1, 1),
    )
    values.update(overrides)
    return Organization(**values)


def test_unknown_tier_falls_back_to_starter():
    assert get_tier_limits("nonexistent") == get_tier_limits("starter")
    assert get_tier_limits(None)["events_per_year"] == 3


def test_event_limit():
    db = MagicMock()
    allowed, message = can_create_event(make_org(events_used=3), db)
    assert allowed is False
    assert "3 events per year" in message
    assert can_create_event(make_org(events_used=2), db) == (True, None)


def test_unlimited_events_on_basilica():
    assert can_create_event(make_org(subscription_tier="basilica", events_used=500), MagicMock()) == (True, None)


def test_people_limit_counts_the_whole_party():
    db = MagicMock()
    assert can_add_participants(make_org(people_used=495), 5, db)[0] is True
    assert can_add_participants(make_org(people_used=495), 6, db)[0] is False


def test_yearly_reset_rolls_forward():
    db = MagicMock()
    org = make_org(events_used=3, people_used=120, usage_reset_date=datetime(2024, 3, 1))

    assert check_and_reset_yearly_usage(org, db, now=datetime(2026, 5, 1)) is True
    assert org.events_used == 0
    assert org.people_used == 0
    assert org.usage_reset_date == datetime(2027, 3, 1)


def test_first_check_sets_reset_date():
    db = MagicMock()
    org = make_org(usage_reset_date=None)
    assert check_and_reset_yearly_usage(org, db, now=datetime(2026, 5, 1)) is False
    assert org.usage_reset_date == datetime(2027, 5, 1)
