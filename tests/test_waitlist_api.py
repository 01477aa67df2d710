from datetime import datetime, timedelta

import pytest

from app.models import EmailLog, GroupRegistration, WaitlistEntry

from test_registrations_api import register_group


@pytest.fixture
def full_event(make_event):
    return make_event(capacity_total=40, capacity_remaining=0, settings={"enable_waitlist": True})


def join(client, event, **overrides):
    payload = {"name": "Rosa Diaz", "email": "Rosa@Example.com", "phone": "555-555-0142", "partySize": 4}
    payload.update(overrides)
    return client.post(f"/public/events/{event.public_id}/waitlist", json=payload)


def test_join_waitlist(client, db, full_event):
    response = join(client, full_event)

    assert response.status_code == 201
    assert response.json()["position"] == 1
    entry = db.query(WaitlistEntry).one()
    assert entry.email == "rosa@example.com"
    assert entry.phone == "+15555550142"
    assert entry.status == "waiting"


def test_join_twice_conflicts(client, full_event):
    join(client, full_event)
    assert join(client, full_event, email="rosa@example.com").status_code == 409


def test_join_without_waitlist(client, event):
    response = join(client, event)
    assert response.status_code == 400
    assert response.json()["detail"] == "This event does not have a waitlist"


def test_join_validation(client, full_event):
    assert join(client, full_event, partySize=0).status_code == 422
    assert join(client, full_event, email="not-an-email").status_code == 422


def test_contact_sends_invitation(client, db, admin, full_event):
    entry_id = join(client, full_event).json()["entryId"]

    response = client.post(f"/events/{full_event.id}/waitlist/{entry_id}/contact")

    assert response.status_code == 200
    assert response.json()["status"] == "contacted"
    assert response.json()["invitationExpires"] is not None

    entry = db.get(WaitlistEntry, entry_id)
    db.refresh(entry)
    assert entry.registration_token
    invitation = db.query(EmailLog).filter(EmailLog.email_type == "waitlist_invitation").one()
    assert invitation.recipient_email == "rosa@example.com"


def test_validate_token_states(client, db, admin, full_event):
    entry_id = join(client, full_event).json()["entryId"]
    client.post(f"/events/{full_event.id}/waitlist/{entry_id}/contact")
    entry = db.get(WaitlistEntry, entry_id)
    db.refresh(entry)

    valid = client.get(f"/public/waitlist/validate/{entry.registration_token}")
    assert valid.status_code == 200
    assert valid.json()["event"]["publicId"] == full_event.public_id

    assert client.get("/public/waitlist/validate/not-a-token").status_code == 404

    entry.invitation_expires = datetime.utcnow() - timedelta(minutes=1)
    db.commit()
    expired = client.get(f"/public/waitlist/validate/{entry.registration_token}")
    assert expired.status_code == 400
    assert expired.json()["detail"]["status"] == "expired"


def test_invited_group_registers_past_capacity(client, db, admin, full_event):
    entry_id = join(client, full_event, email="pat.leader@parish.org").json()["entryId"]
    client.post(f"/events/{full_event.id}/waitlist/{entry_id}/contact")
    entry = db.get(WaitlistEntry, entry_id)
    db.refresh(entry)

    blocked = register_group(client, full_event)
    assert blocked.status_code == 400

    response = register_group(client, full_event, waitlistToken=entry.registration_token)

    assert response.status_code == 201
    assert db.query(GroupRegistration).count() == 1
    db.refresh(entry)
    assert entry.status == "registered"

    used = client.get(f"/public/waitlist/validate/{entry.registration_token}")
    assert used.json()["detail"]["status"] == "already_registered"


def test_list_and_delete(client, db, admin, full_event):
    join(client, full_event)
    join(client, full_event, name="Ben Ortiz", email="ben@example.com", partySize=2)

    entries = client.get(f"/events/{full_event.id}/waitlist").json()
    assert [e["name"] for e in entries] == ["Rosa Diaz", "Ben Ortiz"]

    waiting = client.get(f"/events/{full_event.id}/waitlist", params={"status": "contacted"}).json()
    assert waiting == []

    assert client.delete(f"/events/{full_event.id}/waitlist/{entries[0]['id']}").status_code == 200
    assert db.query(WaitlistEntry).count() == 1
