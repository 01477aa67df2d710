"""
Email Service using Resend
Provides email functionality using MJML templates for responsive design.
Every send made on behalf of an organization is recorded in EmailLog.
"""

import logging
from typing import Optional, Union

import resend
from mjml import mjml_to_html

from .config import EMAIL_FROM_ADDRESS, PARENT_LINK_EXPIRY_DAYS, RESEND_API_KEY, WAITLIST_INVITATION_HOURS
from .database import session_scope
from .email_templates import (
    group_registration_confirmation_template,
    individual_registration_confirmation_template,
    liability_form_completed_template,
    parent_consent_request_template,
    payment_received_template,
    team_invitation_template,
    waitlist_invitation_template,
    weekly_digest_template,
)
from .models import EmailLog

logger = logging.getLogger(__name__)

resend.api_key = RESEND_API_KEY

PAYMENT_METHOD_LABELS = {
    "card": "Credit Card",
    "check": "Check",
    "cash": "Cash",
    "bank_transfer": "Wire Transfer",
    "other": "Other",
}


class EmailNotConfiguredError(Exception):
    pass


def compile_mjml_to_html(mjml_content: str) -> str:
    """Compile MJML template to production-ready HTML"""
    try:
        result = mjml_to_html(mjml_content)
        # mjml_to_html returns a dict with 'html' and 'errors' keys
        if isinstance(result, dict):
            if result.get("errors"):
                logger.warning(f"MJML compilation warnings: {result['errors']}")
            return result.get("html", "")
        return str(result)
    except Exception as e:
        logger.error(f"MJML compilation error: {e}")
        raise ValueError(f"Failed to compile MJML template: {str(e)}") from e


async def deliver_html(
    to: Union[str, list[str]],
    subject: str,
    html_content: str,
    from_address: Optional[str] = None,
    reply_to: Optional[str] = None,
    attachments: Optional[list[dict]] = None,
) -> dict:
    """Send already-compiled HTML through Resend"""
    if not RESEND_API_KEY:
        logger.error("❌ No email service configured - RESEND_API_KEY missing")
        raise EmailNotConfiguredError("Email service not configured")

    recipients = [to] if isinstance(to, str) else to
    email_data = {
        "from": from_address or EMAIL_FROM_ADDRESS,
        "to": recipients,
        "subject": subject,
        "html": html_content,
    }
    if reply_to:
        email_data["reply_to"] = reply_to
    if attachments:
        email_data["attachments"] = [
            {"filename": attachment["filename"], "content": attachment["content"]}
            for attachment in attachments
        ]

    logger.info(f"📧 Sending email via Resend to: {recipients}")
    response = resend.Emails.send(email_data)
    logger.info(f"✅ Email sent successfully via Resend: {response}")
    return response


async def send_email(
    to: Union[str, list[str]],
    subject: str,
    mjml_content: str,
    from_address: Optional[str] = None,
    reply_to: Optional[str] = None,
    attachments: Optional[list[dict]] = None,
) -> dict:
    """
    Compile an MJML template and send it

    Args:
        to: Recipient email(s)
        subject: Email subject line
        mjml_content: MJML template content (will be compiled to HTML)
        from_address: Optional custom from address
        attachments: Optional list of {"filename", "content"} dicts

    Returns:
        Resend response dict
    """
    html_content = compile_mjml_to_html(mjml_content)
    return await deliver_html(to, subject, html_content, from_address, reply_to, attachments)


def log_email(
    organization_id: Optional[int],
    recipient_email: str,
    email_type: str,
    subject: str,
    html_content: Optional[str],
    sent_status: str,
    error_message: Optional[str] = None,
    event_id: Optional[int] = None,
    registration_id: Optional[int] = None,
    registration_type: Optional[str] = None,
    recipient_name: Optional[str] = None,
    metadata: Optional[dict] = None,
) -> None:
    """Record an email attempt; logging failures never propagate"""
    try:
        with session_scope() as db:
            db.add(
                EmailLog(
                    organization_id=organization_id,
                    event_id=event_id,
                    registration_id=registration_id,
                    registration_type=registration_type,
                    recipient_email=recipient_email,
                    recipient_name=recipient_name,
                    email_type=email_type,
                    subject=subject,
                    html_content=html_content,
                    sent_status=sent_status,
                    error_message=error_message,
                    email_metadata=metadata,
                )
            )
            db.commit()
    except Exception as e:
        logger.error(f"❌ Failed to log {email_type} email to {recipient_email}: {e}")


async def send_logged_email(
    organization_id: Optional[int],
    recipient_email: str,
    subject: str,
    mjml_content: str,
    email_type: str,
    event_id: Optional[int] = None,
    registration_id: Optional[int] = None,
    registration_type: Optional[str] = None,
    recipient_name: Optional[str] = None,
    metadata: Optional[dict] = None,
    attachments: Optional[list[dict]] = None,
) -> bool:
    """
    Send an email and record the outcome in EmailLog.
    Returns True when sent. Never raises, so it is safe in background tasks.
    """
    html_content = None
    log_kwargs = dict(
        organization_id=organization_id,
        recipient_email=recipient_email,
        email_type=email_type,
        subject=subject,
        event_id=event_id,
        registration_id=registration_id,
        registration_type=registration_type,
        recipient_name=recipient_name,
        metadata=metadata,
    )
    try:
        html_content = compile_mjml_to_html(mjml_content)
        await deliver_html(recipient_email, subject, html_content, attachments=attachments)
    except Exception as e:
        logger.error(f"❌ {email_type} email to {recipient_email} failed: {e}")
        log_email(html_content=html_content or mjml_content, sent_status="failed", error_message=str(e), **log_kwargs)
        return False

    log_email(html_content=html_content, sent_status="sent", **log_kwargs)
    return True


# ============================================
# Pre-built emails
# Callers pass plain values, never ORM objects: these run as background
# tasks after the request session is closed.
# ============================================


async def send_group_registration_confirmation(
    organization_id: int,
    event_id: int,
    registration_id: int,
    to: str,
    leader_name: str,
    group_name: str,
    event_name: str,
    access_code: str,
    total_amount: float,
    deposit_amount: float,
    balance_remaining: float,
    payment_method: str,
    check_payable_to: Optional[str] = None,
    check_mailing_address: Optional[str] = None,
    organization_name: Optional[str] = None,
) -> bool:
    mjml_content = group_registration_confirmation_template(
        leader_name=leader_name,
        group_name=group_name,
        event_name=event_name,
        access_code=access_code,
        total_amount=total_amount,
        deposit_amount=deposit_amount,
        balance_remaining=balance_remaining,
        payment_method=payment_method,
        check_payable_to=check_payable_to,
        check_mailing_address=check_mailing_address,
        organization_name=organization_name,
    )
    return await send_logged_email(
        organization_id=organization_id,
        recipient_email=to,
        subject=f"Registration Confirmation - {event_name}",
        mjml_content=mjml_content,
        email_type="group_registration_confirmation",
        event_id=event_id,
        registration_id=registration_id,
        registration_type="group",
        recipient_name=leader_name,
        metadata={"accessCode": access_code, "paymentMethod": payment_method},
    )


async def send_individual_registration_confirmation(
    organization_id: int,
    event_id: int,
    registration_id: int,
    to: str,
    first_name: str,
    event_name: str,
    housing_type: str,
    total_amount: float,
    payment_method: str,
    qr_code_url: Optional[str] = None,
    check_payable_to: Optional[str] = None,
    organization_name: Optional[str] = None,
) -> bool:
    mjml_content = individual_registration_confirmation_template(
        first_name=first_name,
        event_name=event_name,
        housing_type=housing_type,
        total_amount=total_amount,
        payment_method=payment_method,
        qr_code_url=qr_code_url,
        check_payable_to=check_payable_to,
        organization_name=organization_name,
    )
    return await send_logged_email(
        organization_id=organization_id,
        recipient_email=to,
        subject=f"Registration Confirmation - {event_name}",
        mjml_content=mjml_content,
        email_type="individual_registration_confirmation",
        event_id=event_id,
        registration_id=registration_id,
        registration_type="individual",
        recipient_name=first_name,
    )


async def send_payment_received_email(
    organization_id: int,
    event_id: int,
    registration_id: int,
    registration_type: str,
    to: str,
    recipient_name: str,
    event_name: str,
    amount: float,
    payment_method: str,
    amount_paid: float,
    amount_remaining: float,
    organization_name: Optional[str] = None,
) -> bool:
    paid_in_full = amount_remaining <= 0
    subject = (
        f"Payment Received - PAID IN FULL! - {event_name}"
        if paid_in_full
        else f"Payment Received - {event_name}"
    )
    mjml_content = payment_received_template(
        recipient_name=recipient_name,
        event_name=event_name,
        amount=amount,
        payment_method_label=PAYMENT_METHOD_LABELS.get(payment_method, "Other"),
        amount_paid=amount_paid,
        amount_remaining=amount_remaining,
        organization_name=organization_name,
    )
    return await send_logged_email(
        organization_id=organization_id,
        recipient_email=to,
        subject=subject,
        mjml_content=mjml_content,
        email_type="payment_received",
        event_id=event_id,
        registration_id=registration_id,
        registration_type=registration_type,
        recipient_name=recipient_name,
        metadata={"amount": amount, "paymentMethod": payment_method},
    )


async def send_parent_consent_request(
    organization_id: int,
    event_id: int,
    group_registration_id: int,
    to: str,
    participant_name: str,
    event_name: str,
    consent_url: str,
    organization_name: Optional[str] = None,
) -> bool:
    mjml_content = parent_consent_request_template(
        participant_name=participant_name,
        event_name=event_name,
        consent_url=consent_url,
        expires_days=PARENT_LINK_EXPIRY_DAYS,
        organization_name=organization_name,
    )
    return await send_logged_email(
        organization_id=organization_id,
        recipient_email=to,
        subject=f"Action Required: Liability Form for {participant_name} - {event_name}",
        mjml_content=mjml_content,
        email_type="parent_consent_request",
        event_id=event_id,
        registration_id=group_registration_id,
        registration_type="group",
    )


async def send_liability_form_completed(
    organization_id: int,
    event_id: int,
    group_registration_id: Optional[int],
    to: str,
    recipient_name: str,
    participant_name: str,
    event_name: str,
    for_group_leader: bool = False,
    organization_name: Optional[str] = None,
) -> bool:
    mjml_content = liability_form_completed_template(
        recipient_name=recipient_name,
        participant_name=participant_name,
        event_name=event_name,
        for_group_leader=for_group_leader,
        organization_name=organization_name,
    )
    return await send_logged_email(
        organization_id=organization_id,
        recipient_email=to,
        subject=f"Liability Form Completed - {participant_name}",
        mjml_content=mjml_content,
        email_type="liability_form_leader_notice" if for_group_leader else "liability_form_confirmation",
        event_id=event_id,
        registration_id=group_registration_id,
        registration_type="group" if group_registration_id else None,
        recipient_name=recipient_name,
    )


async def send_waitlist_invitation(
    organization_id: int,
    event_id: int,
    to: str,
    name: str,
    event_name: str,
    registration_url: str,
    organization_name: Optional[str] = None,
) -> bool:
    mjml_content = waitlist_invitation_template(
        name=name,
        event_name=event_name,
        registration_url=registration_url,
        expires_hours=WAITLIST_INVITATION_HOURS,
        organization_name=organization_name,
    )
    return await send_logged_email(
        organization_id=organization_id,
        recipient_email=to,
        subject=f"A spot is available - {event_name}",
        mjml_content=mjml_content,
        email_type="waitlist_invitation",
        event_id=event_id,
        recipient_name=name,
    )


async def send_team_invitation(
    organization_id: int, to: str, inviter_name: str, organization_name: str, role: str
) -> bool:
    return await send_logged_email(
        organization_id=organization_id,
        recipient_email=to,
        subject=f"You're invited to join {organization_name} on ChiRho Events",
        mjml_content=team_invitation_template(inviter_name, organization_name, role),
        email_type="team_invitation",
        metadata={"role": role},
    )


async def send_weekly_digest(
    organization_id: int,
    to: str,
    subject: str,
    organization_name: str,
    date_range: str,
    stats: dict,
    action_items: list,
    upcoming_events: list,
    recent_activity: list,
) -> bool:
    return await send_logged_email(
        organization_id=organization_id,
        recipient_email=to,
        subject=subject,
        mjml_content=weekly_digest_template(
            organization_name, date_range, stats, action_items, upcoming_events, recent_activity
        ),
        email_type="weekly_digest",
        metadata={"dateRange": date_range},
    )
