from datetime import datetime

from app.domain.digest.service import build_action_items, digest_subject, digest_window
from app.models import EmailLog, Organization, Payment, SupportTicket

from conftest import person

AUTH = {"Authorization": "Bearer test-cron-secret"}

QUIET_WEEK = {
    "pendingCertificates": 0,
    "pendingChecks": 0,
    "overdueBalances": 0,
    "openTickets": 0,
    "formsPending": 0,
}


def test_digest_window_labels():
    week_start, labels = digest_window(datetime(2026, 10, 19, 13, 0))

    assert week_start == datetime(2026, 10, 12)
    assert labels == {"start": "Oct 12", "end": "Oct 19, 2026"}
    assert digest_subject("St. Anne", labels) == "Weekly Digest: St. Anne (Oct 12 - Oct 19, 2026)"


def test_action_items_for_quiet_week():
    assert build_action_items(QUIET_WEEK) == []


def test_action_item_priorities():
    items = build_action_items(
        {**QUIET_WEEK, "pendingCertificates": 2, "pendingChecks": 1, "overdueBalances": 3, "openTickets": 6, "formsPending": 4}
    )

    assert [i["priority"] for i in items] == ["warning", "info", "urgent", "warning", "info"]
    assert items[2]["message"] == "3 registrations with unpaid balances"


def test_few_open_tickets_are_informational():
    items = build_action_items({**QUIET_WEEK, "openTickets": 5})
    assert items == [{"priority": "info", "message": "5 open support tickets"}]


def test_cron_requires_secret(client):
    assert client.post("/cron/weekly-digest").status_code == 401
    assert client.post("/cron/weekly-digest", headers={"Authorization": "Bearer wrong"}).status_code == 401


def test_test_mode_collects_without_sending(client, db, admin, organization, event, make_group):
    group = make_group(event, participants=[person("Luke"), person("Mark", liability_form_completed=True)])
    db.add(
        Payment(
            event_id=event.id,
            organization_id=organization.id,
            registration_id=group.id,
            registration_type="group",
            amount=150.0,
            payment_type="deposit",
            payment_method="check",
            payment_status="pending",
        )
    )
    db.add(SupportTicket(organization_id=organization.id, subject="Help", description="Login issue"))
    db.commit()

    response = client.post("/cron/weekly-digest", params={"test": "true"}, headers=AUTH)

    assert response.status_code == 200
    body = response.json()
    assert body["processed"] == 1
    assert body["sent"] == 0
    assert body["errors"] == 0

    result = body["results"][0]
    assert result["status"] == "test_success"
    assert result["recipients"] == 1
    assert result["stats"]["totalParticipants"] == 2
    assert result["stats"]["formsPending"] == 1
    assert result["stats"]["pendingChecks"] == 1
    assert result["stats"]["openTickets"] == 1
    assert {i["priority"] for i in result["actionItems"]} == {"info"}
    assert db.query(EmailLog).count() == 0


def test_disabled_and_unstaffed_organizations(client, db, admin, organization):
    organization.weekly_digest_enabled = False
    lonely = Organization(name="Lonely Parish", subscription_tier="starter")
    db.add(lonely)
    db.commit()

    body = client.post("/cron/weekly-digest", params={"test": "true"}, headers=AUTH).json()

    statuses = {r["orgName"]: r["status"] for r in body["results"]}
    assert statuses == {"St. Anne Youth Ministry": "skipped", "Lonely Parish": "no_recipients"}
    assert body["skipped"] == 1


def test_specific_organization_runs_even_when_disabled(client, db, admin, organization):
    organization.weekly_digest_enabled = False
    organization.weekly_digest_recipients = ["dre@stanne.org", "pastor@stanne.org"]
    db.commit()

    body = client.post(
        "/cron/weekly-digest", params={"orgId": organization.id}, headers=AUTH
    ).json()

    result = body["results"][0]
    assert result["status"] == "sent"
    assert result["recipients"] == 2
    # No email provider in tests: every delivery is logged as failed
    assert result["delivered"] == 0

    logs = db.query(EmailLog).filter(EmailLog.email_type == "weekly_digest").all()
    assert {log.recipient_email for log in logs} == {"dre@stanne.org", "pastor@stanne.org"}
    assert all(log.sent_status == "failed" for log in logs)
    assert all(log.subject.startswith("Weekly Digest: St. Anne Youth Ministry (") for log in logs)
