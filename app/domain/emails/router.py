"""Email history router"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...auth import require_permission
from ...database import get_db
from ...models import User
from .service import EmailHistoryService

router = APIRouter(tags=["Emails"])


def get_email_history_service(db: Session = Depends(get_db)) -> EmailHistoryService:
    """Dependency injection for EmailHistoryService"""
    return EmailHistoryService(db)


@router.get("/events/{event_id}/registrations/{registration_type}/{registration_id}/emails")
async def list_registration_emails(
    event_id: int,
    registration_type: str,
    registration_id: int,
    current_user: User = Depends(require_permission("registrations.view")),
    service: EmailHistoryService = Depends(get_email_history_service),
):
    """Every email sent for a registration, newest first"""
    return service.list_for_registration(event_id, registration_type, registration_id, current_user)


@router.get("/emails/{email_id}")
async def get_email(
    email_id: int,
    current_user: User = Depends(require_permission("registrations.view")),
    service: EmailHistoryService = Depends(get_email_history_service),
):
    return service.get_email(email_id, current_user)


@router.post("/emails/{email_id}/resend")
async def resend_email(
    email_id: int,
    current_user: User = Depends(require_permission("registrations.edit")),
    service: EmailHistoryService = Depends(get_email_history_service),
):
    return await service.resend(email_id, current_user)
