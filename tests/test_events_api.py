from datetime import datetime, timedelta

from app.models import DayPassOption, Event, GroupRegistration

from conftest import person


def event_payload(**overrides):
    start = datetime.utcnow() + timedelta(days=90)
    payload = {
        "name": "Fall Retreat 2026",
        "startDate": start.isoformat(),
        "endDate": (start + timedelta(days=2)).isoformat(),
        "status": "registration_open",
        "capacityTotal": 120,
    }
    payload.update(overrides)
    return payload


def test_create_event_with_defaults(client, db, admin, organization):
    response = client.post("/events", json=event_payload())

    assert response.status_code == 201
    body = response.json()
    assert body["slug"] == "fall-retreat-2026"
    assert body["capacityRemaining"] == 120
    assert body["settings"]["porosEnabled"] is True
    assert body["pricing"] is not None

    db.refresh(organization)
    assert organization.events_used == 1


def test_create_event_rejects_inverted_dates(client, admin):
    start = datetime.utcnow() + timedelta(days=10)
    response = client.post(
        "/events",
        json=event_payload(startDate=start.isoformat(), endDate=(start - timedelta(days=1)).isoformat()),
    )
    assert response.status_code == 422


def test_create_event_blocked_at_plan_limit(client, db, admin, organization):
    organization.subscription_tier = "starter"
    organization.events_used = 3
    organization.usage_reset_date = datetime.utcnow() + timedelta(days=200)
    db.commit()

    response = client.post("/events", json=event_payload())

    assert response.status_code == 403
    assert "3 events per year" in response.json()["detail"]


def test_list_and_get_only_own_events(client, db, admin, event, make_event):
    from app.models import Organization

    other = Organization(name="Other Parish", subscription_tier="starter")
    db.add(other)
    db.commit()
    foreign = make_event(org=other, name="Other Retreat")

    listed = client.get("/events")
    assert [e["name"] for e in listed.json()] == ["Summer Youth Conference"]

    assert client.get(f"/events/{event.id}").status_code == 200
    assert client.get(f"/events/{foreign.id}").status_code == 404


def test_update_capacity_keeps_spots_taken(client, db, admin, make_event):
    event = make_event(capacity_total=50, capacity_remaining=40)

    response = client.patch(f"/events/{event.id}", json={"capacityTotal": 60})

    assert response.status_code == 200
    assert response.json()["capacityTotal"] == 60
    assert response.json()["capacityRemaining"] == 50


def test_update_settings_and_pricing(client, admin, event):
    settings = client.put(
        f"/events/{event.id}/settings",
        json={
            "onCampusCapacity": 30,
            "allowCheckPayment": False,
            "registrationClosedMessage": "<p>See you next year</p><script>alert(1)</script>",
        },
    )
    assert settings.status_code == 200
    body = settings.json()["settings"]
    assert body["onCampusCapacity"] == 30
    assert body["onCampusRemaining"] == 30
    assert body["allowCheckPayment"] is False
    assert "<script>" not in body["registrationClosedMessage"]

    pricing = client.put(f"/events/{event.id}/pricing", json={"youthRegularPrice": 120, "depositAmount": 50})
    assert pricing.status_code == 200
    assert pricing.json()["pricing"]["youthRegularPrice"] == 120
    assert pricing.json()["pricing"]["depositAmount"] == 50


def test_negative_price_rejected(client, admin, event):
    response = client.put(f"/events/{event.id}/pricing", json={"youthRegularPrice": -5})
    assert response.status_code == 400


def test_delete_event(client, db, admin, event):
    response = client.delete(f"/events/{event.id}")
    assert response.status_code == 200
    assert db.query(Event).count() == 0


def test_delete_event_blocked_with_registrations(client, admin, event, make_group):
    make_group(event, participants=[person("Luke")])

    response = client.delete(f"/events/{event.id}")

    assert response.status_code == 400
    assert "1 registration" in response.json()["detail"]


def test_event_stats(client, admin, event, make_group):
    make_group(event, participants=[person("Luke"), person("Mary", gender="female")])

    response = client.get(f"/events/{event.id}/stats")

    assert response.status_code == 200
    assert response.json()["groupRegistrations"] == 1
    assert response.json()["totalParticipants"] == 2


def test_day_pass_lifecycle(client, db, admin, event, make_group):
    created = client.post(
        f"/events/{event.id}/day-passes",
        json={"name": "Saturday Only", "price": 40, "capacity": 25},
    )
    assert created.status_code == 201
    option_id = created.json()["id"]

    listed = client.get(f"/events/{event.id}/day-passes")
    assert [o["name"] for o in listed.json()] == ["Saturday Only"]

    # Five sold, then capacity raised
    option = db.get(DayPassOption, option_id)
    option.remaining = 20
    db.commit()
    make_group(event, housing_type="day_pass", day_pass_option_id=option_id)
    updated = client.patch(f"/events/{event.id}/day-passes/{option_id}", json={"capacity": 30})
    assert updated.status_code == 200
    assert updated.json()["remaining"] == 25

    deleted = client.delete(f"/events/{event.id}/day-passes/{option_id}")
    assert deleted.json()["message"] == "Day pass option has registrations and was deactivated"
    db.expire_all()
    assert db.get(DayPassOption, option_id).is_active is False


def test_unlimited_day_pass_with_registrations_is_kept(client, db, admin, event, make_group):
    created = client.post(f"/events/{event.id}/day-passes", json={"name": "Saturday Only", "capacity": 0})
    option_id = created.json()["id"]
    group = make_group(event, housing_type="day_pass", day_pass_option_id=option_id)

    response = client.delete(f"/events/{event.id}/day-passes/{option_id}")

    assert response.status_code == 200
    assert response.json()["message"] == "Day pass option has registrations and was deactivated"
    db.expire_all()
    assert db.get(DayPassOption, option_id).is_active is False
    assert db.get(GroupRegistration, group.id).day_pass_option_id == option_id


def test_unsold_day_pass_deleted(client, db, admin, event):
    created = client.post(f"/events/{event.id}/day-passes", json={"name": "Sunday", "capacity": 10})

    response = client.delete(f"/events/{event.id}/day-passes/{created.json()['id']}")

    assert response.json()["message"] == "Day pass option deleted"
    assert db.query(DayPassOption).count() == 0


def test_public_event_info(client, event):
    response = client.get(f"/public/events/{event.public_id}")

    assert response.status_code == 200
    body = response.json()
    assert "id" not in body
    assert body["registrationStatus"]["status"] == "open"
    assert body["pricing"]["youthRegularPrice"] == 100
    assert body["allowCheckPayment"] is True


def test_public_event_hidden_while_draft(client, make_event):
    event = make_event(status="draft")
    assert client.get(f"/public/events/{event.public_id}").status_code == 404


def test_staff_cannot_create_events(client, organization, make_user, login):
    login(make_user(organization, role="staff"))
    assert client.post("/events", json=event_payload()).status_code == 403
