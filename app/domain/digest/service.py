"""Weekly digest - Per-organization activity summary emailed to admins"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ...email_service import send_weekly_digest
from ...models import (
    Event,
    GroupRegistration,
    IndividualRegistration,
    LiabilityForm,
    Organization,
    Participant,
    Payment,
    PaymentBalance,
    SafeEnvironmentCertificate,
    SupportTicket,
    User,
)

logger = logging.getLogger(__name__)

DIGEST_ROLES = ("org_admin", "master_admin", "event_manager")
ACTIVE_EVENT_STATUSES = ("registration_open", "in_progress", "published")


def digest_window(now: datetime) -> tuple:
    """(week_start, labels): midnight seven days ago until now"""
    week_start = (now - timedelta(days=7)).replace(hour=0, minute=0, second=0, microsecond=0)
    labels = {
        "start": f"{week_start:%b} {week_start.day}",
        "end": f"{now:%b} {now.day}, {now.year}",
    }
    return week_start, labels


def digest_subject(organization_name: str, date_range: dict) -> str:
    return f"Weekly Digest: {organization_name} ({date_range['start']} - {date_range['end']})"


def build_action_items(stats: dict) -> list:
    items = []
    if stats["pendingCertificates"] > 0:
        items.append(
            {
                "priority": "warning",
                "message": f"{stats['pendingCertificates']} safe environment certificates awaiting verification",
            }
        )
    if stats["pendingChecks"] > 0:
        items.append({"priority": "info", "message": f"{stats['pendingChecks']} check payments awaiting receipt"})
    if stats["overdueBalances"] > 0:
        items.append(
            {"priority": "urgent", "message": f"{stats['overdueBalances']} registrations with unpaid balances"}
        )
    if stats["openTickets"] > 0:
        items.append(
            {
                "priority": "warning" if stats["openTickets"] > 5 else "info",
                "message": f"{stats['openTickets']} open support tickets",
            }
        )
    if stats["formsPending"] > 0:
        items.append(
            {"priority": "info", "message": f"{stats['formsPending']} participants have not completed liability forms"}
        )
    return items


def _sum(query) -> float:
    return round(query.scalar() or 0, 2)


def collect_organization_stats(db: Session, organization_id: int, week_start: datetime, now: datetime) -> dict:
    groups = db.query(GroupRegistration).filter(GroupRegistration.organization_id == organization_id)
    individuals = db.query(IndividualRegistration).filter(IndividualRegistration.organization_id == organization_id)
    participants = (
        db.query(Participant)
        .join(GroupRegistration, Participant.group_registration_id == GroupRegistration.id)
        .filter(GroupRegistration.organization_id == organization_id)
    )
    succeeded = db.query(func.sum(Payment.amount)).filter(
        Payment.organization_id == organization_id, Payment.payment_status == "succeeded"
    )
    tickets = db.query(SupportTicket).filter(SupportTicket.organization_id == organization_id)
    events = db.query(Event).filter(Event.organization_id == organization_id)

    new_groups = groups.filter(GroupRegistration.registered_at >= week_start).count()
    new_individuals = individuals.filter(IndividualRegistration.registered_at >= week_start).count()
    total_participants = participants.count()
    forms_pending = participants.filter(Participant.liability_form_completed.is_(False)).count()

    return {
        "newRegistrations": new_groups + new_individuals,
        "totalRegistrations": groups.count() + individuals.count(),
        "newParticipants": participants.filter(Participant.created_at >= week_start).count(),
        "totalParticipants": total_participants,
        "revenueThisWeek": _sum(succeeded.filter(Payment.created_at >= week_start, Payment.created_at <= now)),
        "totalRevenue": _sum(succeeded),
        "pendingChecks": db.query(Payment)
        .filter(
            Payment.organization_id == organization_id,
            Payment.payment_method == "check",
            Payment.payment_status == "pending",
        )
        .count(),
        "overdueBalances": db.query(PaymentBalance)
        .filter(
            PaymentBalance.organization_id == organization_id,
            PaymentBalance.payment_status.in_(("unpaid", "partial")),
            PaymentBalance.amount_remaining > 0,
        )
        .count(),
        "formsCompletedThisWeek": db.query(LiabilityForm)
        .filter(
            LiabilityForm.organization_id == organization_id,
            LiabilityForm.completed.is_(True),
            LiabilityForm.completed_at >= week_start,
        )
        .count(),
        "formsTotal": total_participants,
        "formsPending": forms_pending,
        "pendingCertificates": db.query(SafeEnvironmentCertificate)
        .filter(
            SafeEnvironmentCertificate.organization_id == organization_id,
            SafeEnvironmentCertificate.status == "pending",
        )
        .count(),
        "openTickets": tickets.filter(SupportTicket.status.in_(("open", "in_progress"))).count(),
        "ticketsResolvedThisWeek": tickets.filter(
            SupportTicket.status == "resolved", SupportTicket.resolved_at >= week_start
        ).count(),
        "newTicketsThisWeek": tickets.filter(SupportTicket.created_at >= week_start).count(),
        "activeEvents": events.filter(Event.status.in_(ACTIVE_EVENT_STATUSES), Event.end_date >= now).count(),
        "upcomingEvents": events.filter(Event.status != "draft", Event.start_date >= now).count(),
    }


def get_upcoming_events(db: Session, organization_id: int, now: datetime) -> list:
    events = (
        db.query(Event)
        .filter(Event.organization_id == organization_id, Event.status != "draft", Event.start_date >= now)
        .order_by(Event.start_date.asc())
        .limit(5)
        .all()
    )
    upcoming = []
    for event in events:
        start = event.start_date
        registrations = (
            db.query(GroupRegistration).filter(GroupRegistration.event_id == event.id).count()
            + db.query(IndividualRegistration).filter(IndividualRegistration.event_id == event.id).count()
        )
        upcoming.append(
            {
                "name": event.name,
                "startDate": f"{start:%a}, {start:%b} {start.day}, {start.year}",
                "registrations": registrations,
            }
        )
    return upcoming


def get_recent_activity(db: Session, organization_id: int, week_start: datetime) -> list:
    """Latest payments and group registrations, newest first"""
    payments = (
        db.query(Payment)
        .filter(
            Payment.organization_id == organization_id,
            Payment.payment_status == "succeeded",
            Payment.created_at >= week_start,
        )
        .order_by(Payment.created_at.desc())
        .limit(3)
        .all()
    )
    registrations = (
        db.query(GroupRegistration)
        .filter(GroupRegistration.organization_id == organization_id, GroupRegistration.registered_at >= week_start)
        .order_by(GroupRegistration.registered_at.desc())
        .limit(3)
        .all()
    )

    activity = []
    for payment in payments:
        if payment.registration_type == "group":
            group = db.get(GroupRegistration, payment.registration_id)
            name = group.group_name if group else "Unknown"
        else:
            individual = db.get(IndividualRegistration, payment.registration_id)
            name = f"{individual.first_name} {individual.last_name}" if individual else "Unknown"
        activity.append(
            {
                "type": "payment",
                "description": f"Payment of ${payment.amount:,.2f} from {name}",
                "at": payment.created_at,
            }
        )
    for registration in registrations:
        activity.append(
            {
                "type": "registration",
                "description": f"{registration.group_name} registered for {registration.event.name}",
                "at": registration.registered_at,
            }
        )
    activity.sort(key=lambda a: a["at"], reverse=True)
    return [{"type": a["type"], "description": a["description"]} for a in activity[:5]]


def digest_recipients(db: Session, organization: Organization) -> list:
    if organization.weekly_digest_recipients:
        return list(organization.weekly_digest_recipients)
    admins = (
        db.query(User)
        .filter(User.organization_id == organization.id, User.role.in_(DIGEST_ROLES))
        .order_by(User.id.asc())
        .all()
    )
    return [u.email for u in admins]


async def run_weekly_digest(
    db: Session, organization_id: Optional[int] = None, test: bool = False, now: Optional[datetime] = None
) -> dict:
    """
    Build and send the weekly digest for every active organization with the digest enabled.
    A specific organization_id is processed even when its digest is disabled.
    test=True collects everything but sends nothing.
    """
    now = now or datetime.utcnow()
    week_start, date_range = digest_window(now)

    query = db.query(Organization).filter(Organization.status == "active")
    if organization_id is not None:
        query = query.filter(Organization.id == organization_id)
    organizations = query.order_by(Organization.id.asc()).all()

    results = []
    for org in organizations:
        result = {"orgId": org.id, "orgName": org.name, "recipients": 0}
        try:
            if not org.weekly_digest_enabled and organization_id is None:
                results.append({**result, "status": "skipped"})
                continue

            recipients = digest_recipients(db, org)
            if not recipients:
                results.append({**result, "status": "no_recipients"})
                continue

            stats = collect_organization_stats(db, org.id, week_start, now)
            action_items = build_action_items(stats)
            upcoming = get_upcoming_events(db, org.id, now)
            activity = get_recent_activity(db, org.id, week_start)
            result["recipients"] = len(recipients)

            if test:
                results.append({**result, "status": "test_success", "stats": stats, "actionItems": action_items})
                continue

            subject = digest_subject(org.name, date_range)
            label = f"{date_range['start']} - {date_range['end']}"
            delivered = 0
            for recipient in recipients:
                sent = await send_weekly_digest(
                    organization_id=org.id,
                    to=recipient,
                    subject=subject,
                    organization_name=org.name,
                    date_range=label,
                    stats=stats,
                    action_items=action_items,
                    upcoming_events=upcoming,
                    recent_activity=activity,
                )
                delivered += int(sent)
            logger.info(f"📧 Weekly digest for {org.name}: {delivered}/{len(recipients)} delivered")
            results.append({**result, "status": "sent", "delivered": delivered})
        except Exception as e:
            logger.error(f"❌ Weekly digest failed for organization {org.id}: {e}")
            results.append({**result, "status": "error", "error": str(e)})

    return {
        "success": True,
        "dateRange": date_range,
        "processed": len(results),
        "sent": sum(1 for r in results if r["status"] == "sent"),
        "skipped": sum(1 for r in results if r["status"] == "skipped"),
        "errors": sum(1 for r in results if r["status"] == "error"),
        "results": results,
    }
