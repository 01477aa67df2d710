"""Organization scoping and module gating for admin event routes"""

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ..models import Event, Organization, User
from ..plan_limits import module_access_allowed

MODULE_NAMES = {"poros": "Poros", "salve": "SALVE", "rapha": "Rapha"}


def get_event_for_user(db: Session, event_id: int, user: User) -> Event:
    """
    Load an event the user's organization owns.
    Events of other organizations are reported as missing; master admins see all.
    """
    query = db.query(Event).filter(Event.id == event_id)
    if user.role != "master_admin":
        query = query.filter(Event.organization_id == user.organization_id)
    event = query.first()
    if not event:
        raise HTTPException(status_code=404, detail="Event not found")
    return event


def get_public_event(db: Session, public_id: str) -> Event:
    """Events visible to registrants (anything but drafts)"""
    event = db.query(Event).filter(Event.public_id == public_id, Event.status != "draft").first()
    if not event:
        raise HTTPException(status_code=404, detail="Event not found")
    return event


def get_module_event(db: Session, event_id: int, user: User, module: str) -> Event:
    """
    Load an event for a Poros, SALVE or Rapha route.
    The organization's tier must include the modules and the event must have the module switched on.
    """
    event = get_event_for_user(db, event_id, user)
    organization = db.get(Organization, event.organization_id)
    if not module_access_allowed(organization):
        raise HTTPException(
            status_code=403,
            detail=f"The {organization.subscription_tier} plan does not include the {MODULE_NAMES[module]} module",
        )
    settings = event.settings
    if settings is not None and not getattr(settings, f"{module}_enabled"):
        raise HTTPException(status_code=400, detail=f"{MODULE_NAMES[module]} is not enabled for this event")
    return event
