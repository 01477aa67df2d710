"""Email history service - Per-registration email log and resends"""

import logging

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...email_service import deliver_html, log_email
from ...models import EmailLog, User
from ...shared.event_access import get_event_for_user
from ..registrations.repository import RegistrationRepository

logger = logging.getLogger(__name__)


def email_log_to_dict(log: EmailLog, include_html: bool = False) -> dict:
    data = {
        "id": log.id,
        "eventId": log.event_id,
        "registrationId": log.registration_id,
        "registrationType": log.registration_type,
        "recipientEmail": log.recipient_email,
        "recipientName": log.recipient_name,
        "emailType": log.email_type,
        "subject": log.subject,
        "sentStatus": log.sent_status,
        "errorMessage": log.error_message,
        "metadata": log.email_metadata,
        "sentAt": log.sent_at,
    }
    if include_html:
        data["htmlContent"] = log.html_content
    return data


class EmailHistoryService:
    """Service layer for the email log"""

    def __init__(self, db: Session):
        self.db = db

    def list_for_registration(
        self, event_id: int, registration_type: str, registration_id: int, user: User
    ) -> dict:
        event = get_event_for_user(self.db, event_id, user)
        if registration_type not in ("group", "individual"):
            raise HTTPException(status_code=400, detail="Registration type must be group or individual")
        if not RegistrationRepository.get_registration(self.db, event.id, registration_type, registration_id):
            raise HTTPException(status_code=404, detail="Registration not found")

        logs = (
            self.db.query(EmailLog)
            .filter(
                EmailLog.event_id == event.id,
                EmailLog.registration_id == registration_id,
                EmailLog.registration_type == registration_type,
            )
            .order_by(EmailLog.sent_at.desc(), EmailLog.id.desc())
            .all()
        )
        return {"emails": [email_log_to_dict(log) for log in logs], "total": len(logs)}

    def get_email(self, email_id: int, user: User) -> dict:
        return email_log_to_dict(self._get_log(email_id, user), include_html=True)

    def _get_log(self, email_id: int, user: User) -> EmailLog:
        query = self.db.query(EmailLog).filter(EmailLog.id == email_id)
        if user.role != "master_admin":
            query = query.filter(EmailLog.organization_id == user.organization_id)
        log = query.first()
        if not log:
            raise HTTPException(status_code=404, detail="Email not found")
        return log

    async def resend(self, email_id: int, user: User) -> dict:
        """Deliver a logged email again; the attempt gets its own log row"""
        log = self._get_log(email_id, user)
        if not log.html_content:
            raise HTTPException(status_code=400, detail="This email has no stored content to resend")

        log_kwargs = dict(
            organization_id=log.organization_id,
            recipient_email=log.recipient_email,
            email_type=log.email_type,
            subject=log.subject,
            html_content=log.html_content,
            event_id=log.event_id,
            registration_id=log.registration_id,
            registration_type=log.registration_type,
            recipient_name=log.recipient_name,
            metadata={**(log.email_metadata or {}), "resentFrom": log.id, "resentBy": user.email},
        )
        try:
            await deliver_html(log.recipient_email, log.subject, log.html_content)
        except Exception as e:
            logger.error(f"❌ Resend of email {log.id} to {log.recipient_email} failed: {e}")
            log_email(sent_status="failed", error_message=str(e), **log_kwargs)
            raise HTTPException(status_code=502, detail="Failed to resend email")

        log_email(sent_status="sent", **log_kwargs)
        logger.info(f"📧 Email {log.id} resent to {log.recipient_email} by {user.email}")
        return {"success": True, "message": f"Email resent to {log.recipient_email}"}
