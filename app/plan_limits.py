"""
Subscription tiers and yearly usage limits for organizations.
"""

from datetime import datetime
from typing import Optional

from dateutil.relativedelta import relativedelta
from sqlalchemy.orm import Session

from .models import Organization

# events / people are per subscription year; None means unlimited
TIER_LIMITS = {
    "starter": {
        "events_per_year": 3,
        "people_per_year": 500,
        "storage_gb": 5,
        "modules": False,
        "monthly_price": 25,
        "annual_price": 250,
    },
    "parish": {
        "events_per_year": 5,
        "people_per_year": 1000,
        "storage_gb": 10,
        "modules": False,
        "monthly_price": 45,
        "annual_price": 450,
    },
    "cathedral": {
        "events_per_year": 10,
        "people_per_year": 3000,
        "storage_gb": 25,
        "modules": True,
        "monthly_price": 89,
        "annual_price": 900,
    },
    "shrine": {
        "events_per_year": 25,
        "people_per_year": 8000,
        "storage_gb": 100,
        "modules": True,
        "monthly_price": 120,
        "annual_price": 1200,
    },
    "basilica": {
        "events_per_year": None,
        "people_per_year": 15000,
        "storage_gb": 500,
        "modules": True,
        "monthly_price": 200,
        "annual_price": 2000,
    },
    "test": {
        "events_per_year": 1,
        "people_per_year": 100,
        "storage_gb": 1,
        "modules": True,
        "monthly_price": 0,
        "annual_price": 0,
    },
}

DEFAULT_TIER = "starter"


def get_tier_limits(tier: Optional[str]) -> dict:
    """Get the limits for a tier, falling back to the starter tier for unknown values"""
    if not tier:
        return TIER_LIMITS[DEFAULT_TIER]
    return TIER_LIMITS.get(tier.lower(), TIER_LIMITS[DEFAULT_TIER])


def check_and_reset_yearly_usage(org: Organization, db: Session, now: Optional[datetime] = None) -> bool:
    """
    Reset the usage counters once the subscription year has rolled over.
    Returns True when a reset happened.
    """
    now = now or datetime.utcnow()

    if org.usage_reset_date is None:
        org.usage_reset_date = now + relativedelta(years=1)
        db.commit()
        return False

    if now < org.usage_reset_date:
        return False

    org.events_used = 0
    org.people_used = 0
    next_reset = org.usage_reset_date
    # Catch up if several years were skipped
    while next_reset <= now:
        next_reset = next_reset + relativedelta(years=1)
    org.usage_reset_date = next_reset
    db.commit()
    return True


def can_create_event(org: Organization, db: Session) -> tuple:
    """
    Check if the organization can create another event this subscription year.
    Returns (can_create, error_message).
    """
    check_and_reset_yearly_usage(org, db)
    limit = get_tier_limits(org.subscription_tier)["events_per_year"]

    if limit is None or org.events_used < limit:
        return (True, None)

    return (
        False,
        f"Your {org.subscription_tier} plan allows {limit} events per year. Please upgrade to create more events.",
    )


def can_add_participants(org: Organization, count: int, db: Session) -> tuple:
    """
    Check if the organization can register `count` more people this subscription year.
    Returns (can_add, error_message).
    """
    check_and_reset_yearly_usage(org, db)
    limit = get_tier_limits(org.subscription_tier)["people_per_year"]

    if limit is None or org.people_used + count <= limit:
        return (True, None)

    return (
        False,
        "This organization has reached its yearly registration limit. Please contact the event organizer.",
    )


def record_event_created(org: Organization, db: Session) -> None:
    org.events_used += 1
    db.commit()


def record_participants(org: Organization, count: int, db: Session) -> None:
    """Adjust people usage; negative counts release usage (never below zero)"""
    org.people_used = max(0, org.people_used + count)
    db.commit()


def module_access_allowed(org: Organization) -> bool:
    """Whether the tier includes the Poros / SALVE / Rapha modules"""
    return get_tier_limits(org.subscription_tier)["modules"]


def get_usage_stats(org: Organization, db: Session) -> dict:
    """Current usage for the organization's subscription year"""
    check_and_reset_yearly_usage(org, db)
    limits = get_tier_limits(org.subscription_tier)
    event_limit = limits["events_per_year"]
    people_limit = limits["people_per_year"]

    return {
        "tier": org.subscription_tier,
        "limits": limits,
        "eventsUsed": org.events_used,
        "eventsRemaining": None if event_limit is None else max(0, event_limit - org.events_used),
        "peopleUsed": org.people_used,
        "peopleRemaining": None if people_limit is None else max(0, people_limit - org.people_used),
        "resetDate": org.usage_reset_date.isoformat() if org.usage_reset_date else None,
    }
