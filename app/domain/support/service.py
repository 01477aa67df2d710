"""Support ticket service"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import SupportTicket, User
from .schemas import SupportTicketCreate, SupportTicketUpdate

logger = logging.getLogger(__name__)


def ticket_to_dict(ticket: SupportTicket) -> dict:
    return {
        "id": ticket.id,
        "subject": ticket.subject,
        "description": ticket.description,
        "priority": ticket.priority,
        "status": ticket.status,
        "submittedById": ticket.submitted_by_id,
        "resolvedAt": ticket.resolved_at,
        "createdAt": ticket.created_at,
        "updatedAt": ticket.updated_at,
    }


class SupportService:
    """Service layer for support tickets"""

    def __init__(self, db: Session):
        self.db = db

    def create_ticket(self, data: SupportTicketCreate, user: User) -> dict:
        ticket = SupportTicket(
            organization_id=user.organization_id,
            submitted_by_id=user.id,
            subject=data.subject,
            description=data.description,
            priority=data.priority,
        )
        self.db.add(ticket)
        self.db.commit()
        self.db.refresh(ticket)
        logger.info(f"🎫 Support ticket {ticket.id} ({ticket.priority}) opened by {user.email}")
        return ticket_to_dict(ticket)

    def list_tickets(self, user: User, status: Optional[str] = None) -> list:
        query = self.db.query(SupportTicket)
        if user.role != "master_admin":
            query = query.filter(SupportTicket.organization_id == user.organization_id)
        if status:
            query = query.filter(SupportTicket.status == status)
        tickets = query.order_by(SupportTicket.created_at.desc(), SupportTicket.id.desc()).all()
        return [ticket_to_dict(t) for t in tickets]

    def update_ticket(self, ticket_id: int, data: SupportTicketUpdate, user: User) -> dict:
        query = self.db.query(SupportTicket).filter(SupportTicket.id == ticket_id)
        if user.role != "master_admin":
            query = query.filter(SupportTicket.organization_id == user.organization_id)
        ticket = query.first()
        if not ticket:
            raise HTTPException(status_code=404, detail="Ticket not found")

        if data.priority is not None:
            ticket.priority = data.priority
        if data.status is not None and data.status != ticket.status:
            ticket.status = data.status
            ticket.resolved_at = datetime.utcnow() if data.status == "resolved" else ticket.resolved_at
            if data.status in ("open", "in_progress"):
                ticket.resolved_at = None
        self.db.commit()
        self.db.refresh(ticket)
        return ticket_to_dict(ticket)
