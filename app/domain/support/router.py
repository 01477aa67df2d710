"""Support router"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_admin
from ...database import get_db
from ...models import User
from .schemas import SupportTicketCreate, SupportTicketUpdate
from .service import SupportService

router = APIRouter(prefix="/support/tickets", tags=["Support"])


def get_support_service(db: Session = Depends(get_db)) -> SupportService:
    """Dependency injection for SupportService"""
    return SupportService(db)


@router.post("", status_code=201)
async def create_ticket(
    data: SupportTicketCreate,
    current_user: User = Depends(get_current_admin),
    service: SupportService = Depends(get_support_service),
):
    return service.create_ticket(data, current_user)


@router.get("")
async def list_tickets(
    status: Optional[str] = Query(None),
    current_user: User = Depends(get_current_admin),
    service: SupportService = Depends(get_support_service),
):
    return service.list_tickets(current_user, status)


@router.patch("/{ticket_id}")
async def update_ticket(
    ticket_id: int,
    data: SupportTicketUpdate,
    current_user: User = Depends(get_current_admin),
    service: SupportService = Depends(get_support_service),
):
    """Resolving a ticket stamps resolved_at; reopening clears it"""
    return service.update_ticket(ticket_id, data, current_user)
