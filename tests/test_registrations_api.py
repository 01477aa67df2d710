from datetime import datetime, timedelta
from types import SimpleNamespace

from app.domain.payments.dodo_service import DodoPaymentsService, get_dodo_service
from app.main import app
from app.models import EmailLog, GroupRegistration, Payment, PaymentBalance, RegistrationEdit


def group_payload(**overrides):
    payload = {
        "groupName": "St. Anne Youth",
        "parishName": "St. Anne",
        "groupLeaderName": "Pat Leader",
        "groupLeaderEmail": "Pat.Leader@Parish.org",
        "groupLeaderPhone": "(555) 555-0100",
        "housingType": "on_campus",
        "youthCountMaleU18": 2,
        "chaperoneCountFemale": 1,
        "paymentMethod": "check",
    }
    payload.update(overrides)
    return payload


def individual_payload(**overrides):
    payload = {
        "firstName": "Maria",
        "lastName": "Lopez",
        "email": "maria@example.com",
        "phone": "555-555-0199",
        "age": 19,
        "gender": "female",
        "housingType": "off_campus",
        "tShirtSize": "m",
        "emergencyContact1Name": "Ana Lopez",
        "emergencyContact1Phone": "5555550123",
        "emergencyContact1Relation": "Mother",
        "paymentMethod": "check",
    }
    payload.update(overrides)
    return payload


def register_group(client, event, **overrides):
    return client.post(f"/public/events/{event.public_id}/register/group", json=group_payload(**overrides))


# ============================================================================
# PUBLIC REGISTRATION
# ============================================================================


def test_group_registration_by_check(client, db, event):
    response = register_group(client, event)

    assert response.status_code == 201
    body = response.json()
    assert body["registrationStatus"] == "pending_payment"
    assert body["totalAmount"] == 275.0
    assert body["accessCode"].startswith("SUMMER-")
    assert body["checkoutUrl"] is None

    registration = db.query(GroupRegistration).one()
    assert registration.group_leader_email == "pat.leader@parish.org"
    assert registration.group_leader_phone == "+15555550100"
    assert registration.total_participants == 3

    balance = db.query(PaymentBalance).one()
    assert balance.total_amount_due == 275.0
    assert balance.payment_status == "pending_check_payment"
    payment = db.query(Payment).one()
    assert (payment.amount, payment.payment_method, payment.payment_status) == (275.0, "check", "pending")


def test_confirmation_email_is_logged(client, db, event):
    register_group(client, event)

    log = db.query(EmailLog).one()
    assert log.email_type == "group_registration_confirmation"
    assert log.recipient_email == "pat.leader@parish.org"
    # No email provider is configured in tests
    assert log.sent_status == "failed"


def test_card_registration_without_provider_keeps_registration(client, db, event):
    response = register_group(client, event, paymentMethod="card")

    assert response.status_code == 201
    body = response.json()
    assert body["registrationStatus"] == "incomplete"
    assert body["checkoutUrl"] is None
    assert body["checkoutError"] == "Card payments are not configured"
    assert db.query(GroupRegistration).count() == 1


def test_group_needs_participants(client, event):
    response = register_group(client, event, youthCountMaleU18=0, chaperoneCountFemale=0)
    assert response.status_code == 400
    assert response.json()["detail"] == "At least one participant is required"


def test_closed_event_rejects_registration(client, make_event):
    event = make_event(status="registration_closed", settings={"registration_closed_message": "Sold out, sorry"})
    response = register_group(client, event)
    assert response.status_code == 400
    assert response.json()["detail"] == "Sold out, sorry"


def test_draft_event_is_not_found(client, make_event):
    assert register_group(client, make_event(status="draft")).status_code == 404


def test_party_larger_than_event_capacity(client, make_event):
    event = make_event(capacity_total=10, capacity_remaining=2)
    response = register_group(client, event)
    assert response.status_code == 400
    assert "Only 2 spot(s) remaining" in response.json()["detail"]


def test_housing_option_capacity_is_consumed(client, db, make_event):
    event = make_event(capacity_total=50, capacity_remaining=50, settings={"on_campus_capacity": 20})
    register_group(client, event)

    db.expire_all()
    assert event.capacity_remaining == 47
    assert event.settings.on_campus_remaining == 17


def test_check_payments_can_be_disabled(client, make_event):
    event = make_event(settings={"allow_check_payment": False})
    response = register_group(client, event)
    assert response.status_code == 400
    assert response.json()["detail"] == "Check payments are not accepted for this event"


def test_invalid_phone_is_rejected(client, event):
    assert register_group(client, event, groupLeaderPhone="12345").status_code == 422


def test_free_registration_is_complete(client, db, make_event):
    event = make_event(pricing={"youth_regular_price": 0.0, "chaperone_regular_price": 0.0})
    response = register_group(client, event)

    assert response.json()["registrationStatus"] == "complete"
    assert db.query(Payment).count() == 0
    assert db.query(PaymentBalance).one().payment_status == "paid_full"


def test_deposit_is_due_at_registration(client, db, make_event):
    event = make_event(pricing={"deposit_amount": 50.0})
    body = register_group(client, event).json()

    assert body["depositAmount"] == 50.0
    assert body["balanceRemaining"] == 225.0
    assert db.query(Payment).one().amount == 50.0


def test_individual_registration(client, db, event):
    response = client.post(f"/public/events/{event.public_id}/register/individual", json=individual_payload())

    assert response.status_code == 201
    body = response.json()
    assert body["totalAmount"] == 100.0
    assert body["registrationStatus"] == "pending_payment"
    assert body["qrCode"].startswith("data:image/png;base64,")


def test_individual_missing_emergency_contact(client, event):
    payload = individual_payload(emergencyContact1Name="  ")
    response = client.post(f"/public/events/{event.public_id}/register/individual", json=payload)
    assert response.status_code == 422


# ============================================================================
# ADMIN
# ============================================================================


def test_admin_lists_registrations_with_balances(client, admin, event):
    register_group(client, event)

    response = client.get(f"/events/{event.id}/registrations")
    assert response.status_code == 200
    body = response.json()
    assert body["totals"] == {"groups": 1, "individuals": 0, "participants": 3}
    assert body["groups"][0]["balance"]["amountRemaining"] == 275.0


def test_other_organizations_events_are_hidden(client, db, admin, make_event):
    from app.models import Organization

    other = Organization(name="Other Diocese")
    db.add(other)
    db.commit()
    event = make_event(org=other)

    assert client.get(f"/events/{event.id}/registrations").status_code == 404


def test_staff_cannot_cancel(client, organization, make_user, login, event):
    registration_id = register_group(client, event).json()["registrationId"]
    login(make_user(organization, role="staff"))

    response = client.post(f"/events/{event.id}/registrations/group/{registration_id}/cancel", json={})
    assert response.status_code == 403


def test_update_records_audit_trail(client, db, admin, event):
    registration_id = register_group(client, event).json()["registrationId"]

    response = client.patch(
        f"/events/{event.id}/registrations/group/{registration_id}",
        json={"groupName": "St. Anne Teens", "notes": "Renamed at leader's request"},
    )

    assert response.status_code == 200
    assert response.json()["groupName"] == "St. Anne Teens"
    edit = db.query(RegistrationEdit).one()
    assert edit.edit_type == "info_updated"
    assert edit.changes["group_name"] == {"old": "St. Anne Youth", "new": "St. Anne Teens"}


def test_update_cannot_cancel(client, admin, event):
    registration_id = register_group(client, event).json()["registrationId"]
    response = client.patch(
        f"/events/{event.id}/registrations/group/{registration_id}", json={"registrationStatus": "cancelled"}
    )
    assert response.status_code == 400


def test_cancel_restores_capacity_once(client, db, admin, make_event):
    event = make_event(capacity_total=50, capacity_remaining=50)
    registration_id = register_group(client, event).json()["registrationId"]
    url = f"/events/{event.id}/registrations/group/{registration_id}/cancel"

    response = client.post(url, json={"reason": "Trip cancelled"})
    assert response.status_code == 200
    assert response.json()["capacityRestored"] == 3
    assert response.json()["event"] == {"previousCapacity": 47, "newCapacity": 50}

    second = client.post(url, json={"reason": "Again"})
    assert second.status_code == 409

    db.expire_all()
    assert event.capacity_remaining == 50


def test_hard_delete_removes_registration(client, db, admin, event):
    registration_id = register_group(client, event).json()["registrationId"]

    response = client.post(
        f"/events/{event.id}/registrations/group/{registration_id}/cancel", json={"hardDelete": True}
    )

    assert response.status_code == 200
    assert db.query(GroupRegistration).count() == 0
    assert db.query(PaymentBalance).count() == 0


def test_export_csv(client, admin, event):
    register_group(client, event)
    response = client.get(f"/events/{event.id}/registrations/export?type=group")
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert "St. Anne Youth" in response.text


# ============================================================================
# GROUP LEADER PORTAL
# ============================================================================


def test_leader_sees_registration_by_email(client, make_user, login, event):
    register_group(client, event)
    login(make_user(role="group_leader", email="pat.leader@parish.org"))

    response = client.get("/portal/group")
    assert response.status_code == 200
    registrations = response.json()["registrations"]
    assert len(registrations) == 1
    assert registrations[0]["event"]["name"] == "Summer Youth Conference"


def test_link_with_access_code(client, make_user, login, event):
    access_code = register_group(client, event).json()["accessCode"]
    first = login(make_user(role="group_leader"))
    assert client.post("/portal/group/link", json={"accessCode": access_code}).status_code == 200

    login(make_user(role="group_leader"))
    assert client.post("/portal/group/link", json={"accessCode": access_code}).status_code == 409

    login(first)
    assert client.post("/portal/group/link", json={"accessCode": "NOPE-00000000"}).status_code == 404


def test_leader_adds_participant(client, db, make_user, login, event):
    register_group(client, event)
    login(make_user(role="group_leader", email="pat.leader@parish.org"))

    response = client.post(
        "/portal/group/participants",
        json={"firstName": "John", "lastName": "Doe", "gender": "male", "participantType": "youth_u18", "age": 15},
    )
    assert response.status_code == 201
    assert response.json()["participantType"] == "youth_u18"


def test_portal_payment_requires_card_provider(client, make_user, login, event):
    register_group(client, event)
    login(make_user(role="group_leader", email="pat.leader@parish.org"))

    response = client.post("/portal/group/pay", json={"amount": 50})
    assert response.status_code == 503


def test_failed_portal_checkout_marks_payment_failed(client, db, make_user, login, event):
    async def unavailable(**_kwargs):
        raise RuntimeError("provider unavailable")

    dodo = DodoPaymentsService()
    dodo.client = SimpleNamespace(checkout_sessions=SimpleNamespace(create=unavailable))
    dodo.product_id = "prod_adhoc"
    app.dependency_overrides[get_dodo_service] = lambda: dodo
    register_group(client, event)
    login(make_user(role="group_leader", email="pat.leader@parish.org"))

    response = client.post("/portal/group/pay", json={"amount": 50})

    assert response.status_code == 502
    card = db.query(Payment).filter(Payment.payment_method == "card").one()
    assert card.payment_status == "failed"
    assert card.provider_checkout_id is None


def test_portal_payment_cannot_exceed_balance(client, make_user, login, event):
    register_group(client, event)
    login(make_user(role="group_leader", email="pat.leader@parish.org"))

    response = client.post("/portal/group/pay", json={"amount": 5000})
    assert response.status_code == 400
    assert response.json()["detail"] == "Amount exceeds the remaining balance"


def test_registration_window_not_open(client, make_event):
    event = make_event(settings={"registration_opens_at": datetime.utcnow() + timedelta(days=5)})
    response = register_group(client, event)
    assert response.status_code == 400
    assert response.json()["detail"].startswith("Registration opens")
