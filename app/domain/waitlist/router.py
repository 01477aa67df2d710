"""Waitlist router - FastAPI endpoints for the event waitlist"""

from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from sqlalchemy.orm import Session

from ...auth import require_permission
from ...database import get_db
from ...email_service import send_waitlist_invitation
from ...models import User
from ...rate_limiter import create_rate_limiter
from .schemas import WaitlistEntryResponse, WaitlistJoin
from .service import WaitlistService, entry_to_dict

router = APIRouter(prefix="/events/{event_id}/waitlist", tags=["Waitlist"])
public_router = APIRouter(prefix="/public", tags=["Waitlist"])

rate_limit_waitlist = create_rate_limiter(limit=10, window_seconds=60, key_prefix="waitlist_join")


def get_waitlist_service(db: Session = Depends(get_db)) -> WaitlistService:
    """Dependency injection for WaitlistService"""
    return WaitlistService(db)


@router.get("", response_model=list[WaitlistEntryResponse])
async def list_waitlist(
    event_id: int,
    status: Optional[str] = Query(None),
    current_user: User = Depends(require_permission("registrations.view")),
    service: WaitlistService = Depends(get_waitlist_service),
):
    return [entry_to_dict(e) for e in service.list_entries(event_id, current_user, status)]


@router.post("/{entry_id}/contact", response_model=WaitlistEntryResponse)
async def contact_waitlist_entry(
    event_id: int,
    entry_id: int,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(require_permission("registrations.edit")),
    service: WaitlistService = Depends(get_waitlist_service),
):
    """Send a time-limited registration invitation"""
    entry, email_args = service.contact(event_id, entry_id, current_user)
    background_tasks.add_task(send_waitlist_invitation, **email_args)
    return entry_to_dict(entry)


@router.delete("/{entry_id}")
async def delete_waitlist_entry(
    event_id: int,
    entry_id: int,
    current_user: User = Depends(require_permission("registrations.edit")),
    service: WaitlistService = Depends(get_waitlist_service),
):
    return service.delete(event_id, entry_id, current_user)


# ============================================================================
# PUBLIC
# ============================================================================


@public_router.post("/events/{public_id}/waitlist", status_code=201)
async def join_waitlist(
    public_id: str,
    data: WaitlistJoin,
    service: WaitlistService = Depends(get_waitlist_service),
    _: None = Depends(rate_limit_waitlist),
):
    return service.join(public_id, data)


@public_router.get("/waitlist/validate/{token}")
async def validate_waitlist_token(token: str, service: WaitlistService = Depends(get_waitlist_service)):
    return service.validate_token(token)
