"""Waitlist service - Joining, invitations and registration tokens"""

import logging
import secrets
from datetime import datetime, timedelta
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...config import FRONTEND_URL, WAITLIST_INVITATION_HOURS
from ...models import Organization, User, WaitlistEntry
from ...shared.event_access import get_event_for_user, get_public_event
from .schemas import WaitlistJoin

logger = logging.getLogger(__name__)

TOKEN_ERRORS = {
    "not_found": (404, "Invalid waitlist token"),
    "already_registered": (400, "This invitation has already been used"),
    "expired": (400, "This invitation has expired"),
    "invalid_status": (400, "This waitlist entry has not been invited to register"),
}


def entry_to_dict(entry: WaitlistEntry) -> dict:
    return {
        "id": entry.id,
        "name": entry.name,
        "email": entry.email,
        "phone": entry.phone,
        "partySize": entry.party_size,
        "notes": entry.notes,
        "status": entry.status,
        "invitationExpires": entry.invitation_expires,
        "notifiedAt": entry.notified_at,
        "createdAt": entry.created_at,
    }


def check_waitlist_token(db: Session, token: Optional[str], now: Optional[datetime] = None) -> tuple:
    """
    Classify a registration token.
    Returns (status, entry) where status is valid, not_found, already_registered,
    expired or invalid_status.
    """
    now = now or datetime.utcnow()
    entry = db.query(WaitlistEntry).filter(WaitlistEntry.registration_token == token).first() if token else None
    if not entry:
        return "not_found", None
    if entry.status == "registered":
        return "already_registered", entry
    if entry.invitation_expires and now > entry.invitation_expires:
        return "expired", entry
    if entry.status != "contacted":
        return "invalid_status", entry
    return "valid", entry


def mark_registered_by_token(db: Session, token: str) -> Optional[WaitlistEntry]:
    """Caller commits"""
    entry = db.query(WaitlistEntry).filter(WaitlistEntry.registration_token == token).first()
    if entry:
        entry.status = "registered"
    return entry


def mark_registered_by_email(db: Session, event_id: int, email: str) -> Optional[WaitlistEntry]:
    """Close out an invited entry when its person registers without the link; caller commits"""
    entry = (
        db.query(WaitlistEntry)
        .filter(
            WaitlistEntry.event_id == event_id,
            WaitlistEntry.email == email.strip().lower(),
            WaitlistEntry.status == "contacted",
        )
        .first()
    )
    if entry:
        entry.status = "registered"
    return entry


class WaitlistService:
    """Service layer for waitlist business logic"""

    def __init__(self, db: Session):
        self.db = db

    def join(self, public_id: str, data: WaitlistJoin) -> dict:
        event = get_public_event(self.db, public_id)
        if not (event.settings and event.settings.enable_waitlist):
            raise HTTPException(status_code=400, detail="This event does not have a waitlist")

        existing = (
            self.db.query(WaitlistEntry)
            .filter(
                WaitlistEntry.event_id == event.id,
                WaitlistEntry.email == data.email,
                WaitlistEntry.status == "waiting",
            )
            .first()
        )
        if existing:
            raise HTTPException(status_code=409, detail="You are already on the waitlist for this event")

        entry = WaitlistEntry(
            event_id=event.id,
            name=data.name,
            email=data.email,
            phone=data.phone,
            party_size=data.partySize,
            notes=data.notes,
        )
        self.db.add(entry)
        self.db.commit()
        self.db.refresh(entry)

        position = (
            self.db.query(WaitlistEntry)
            .filter(WaitlistEntry.event_id == event.id, WaitlistEntry.status == "waiting")
            .count()
        )
        logger.info(f"📥 {data.email} joined the waitlist for event {event.id} (position {position})")
        return {"success": True, "entryId": entry.id, "position": position}

    def list_entries(self, event_id: int, user: User, status: Optional[str] = None) -> list[WaitlistEntry]:
        event = get_event_for_user(self.db, event_id, user)
        query = self.db.query(WaitlistEntry).filter(WaitlistEntry.event_id == event.id)
        if status:
            query = query.filter(WaitlistEntry.status == status)
        return query.order_by(WaitlistEntry.created_at.asc(), WaitlistEntry.id.asc()).all()

    def _get_entry(self, event_id: int, entry_id: int, user: User) -> WaitlistEntry:
        event = get_event_for_user(self.db, event_id, user)
        entry = (
            self.db.query(WaitlistEntry)
            .filter(WaitlistEntry.id == entry_id, WaitlistEntry.event_id == event.id)
            .first()
        )
        if not entry:
            raise HTTPException(status_code=404, detail="Waitlist entry not found")
        return entry

    def contact(self, event_id: int, entry_id: int, user: User) -> tuple:
        """
        Invite a waitlisted person to register.
        Returns (entry, email_args) for send_waitlist_invitation.
        """
        entry = self._get_entry(event_id, entry_id, user)
        if entry.status == "registered":
            raise HTTPException(status_code=400, detail="This person has already registered")

        now = datetime.utcnow()
        entry.registration_token = secrets.token_urlsafe(32)
        entry.invitation_expires = now + timedelta(hours=WAITLIST_INVITATION_HOURS)
        entry.status = "contacted"
        entry.notified_at = now
        self.db.commit()
        self.db.refresh(entry)

        event = entry.event
        organization = self.db.get(Organization, event.organization_id)
        registration_url = f"{FRONTEND_URL}/events/{event.public_id}/register?waitlist_token={entry.registration_token}"
        logger.info(f"📧 Inviting waitlist entry {entry.id} for event {event.id}")

        email_args = dict(
            organization_id=event.organization_id,
            event_id=event.id,
            to=entry.email,
            name=entry.name,
            event_name=event.name,
            registration_url=registration_url,
            organization_name=organization.name if organization else None,
        )
        return entry, email_args

    def delete(self, event_id: int, entry_id: int, user: User) -> dict:
        entry = self._get_entry(event_id, entry_id, user)
        self.db.delete(entry)
        self.db.commit()
        return {"message": "Waitlist entry removed"}

    def validate_token(self, token: str) -> dict:
        status, entry = check_waitlist_token(self.db, token)
        if status != "valid":
            code, message = TOKEN_ERRORS[status]
            raise HTTPException(status_code=code, detail={"status": status, "message": message})

        event = entry.event
        return {
            "valid": True,
            "status": status,
            "entry": entry_to_dict(entry),
            "event": {"publicId": event.public_id, "name": event.name, "startDate": event.start_date},
        }
