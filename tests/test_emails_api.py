import pytest

from app.models import EmailLog


@pytest.fixture
def make_log(db, organization):
    def _make_log(group=None, **overrides) -> EmailLog:
        values = dict(
            organization_id=organization.id,
            event_id=group.event_id if group else None,
            registration_id=group.id if group else None,
            registration_type="group" if group else None,
            recipient_email="leader@parish.org",
            email_type="group_registration_confirmation",
            subject="Registration Confirmed",
            html_content="<p>See you soon</p>",
            sent_status="sent",
        )
        values.update(overrides)
        log = EmailLog(**values)
        db.add(log)
        db.commit()
        db.refresh(log)
        return log

    return _make_log


def test_registration_email_history(client, admin, event, make_group, make_log):
    group = make_group(event)
    other = make_group(event)
    first = make_log(group)
    second = make_log(group, email_type="payment_received", subject="Payment Received")
    make_log(other)

    response = client.get(f"/events/{event.id}/registrations/group/{group.id}/emails")

    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 2
    assert [e["id"] for e in body["emails"]] == [second.id, first.id]
    assert "htmlContent" not in body["emails"][0]


def test_email_history_bad_type(client, admin, event, make_group):
    group = make_group(event)
    response = client.get(f"/events/{event.id}/registrations/parish/{group.id}/emails")
    assert response.status_code == 400


def test_email_history_unknown_registration(client, admin, event):
    response = client.get(f"/events/{event.id}/registrations/group/999/emails")
    assert response.status_code == 404


def test_get_email_includes_html(client, admin, make_log):
    log = make_log()

    response = client.get(f"/emails/{log.id}")

    assert response.status_code == 200
    assert response.json()["htmlContent"] == "<p>See you soon</p>"


def test_email_of_other_organization_hidden(client, db, admin, make_log):
    from app.models import Organization

    other = Organization(name="Other Parish", subscription_tier="starter")
    db.add(other)
    db.commit()
    log = make_log(organization_id=other.id)

    assert client.get(f"/emails/{log.id}").status_code == 404


def test_resend_without_provider_logs_failure(client, db, admin, make_log):
    log = make_log()

    response = client.post(f"/emails/{log.id}/resend")

    assert response.status_code == 502
    attempts = db.query(EmailLog).order_by(EmailLog.id.asc()).all()
    assert len(attempts) == 2
    assert attempts[1].sent_status == "failed"
    assert attempts[1].email_metadata["resentFrom"] == log.id


def test_resend_needs_stored_content(client, admin, make_log):
    log = make_log(html_content=None)
    assert client.post(f"/emails/{log.id}/resend").status_code == 400


def test_staff_cannot_resend(client, organization, make_user, login, make_log):
    log = make_log()
    login(make_user(organization, role="staff"))
    assert client.post(f"/emails/{log.id}/resend").status_code == 403
