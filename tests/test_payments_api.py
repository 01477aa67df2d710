import json
import time
from datetime import datetime, timedelta
from types import SimpleNamespace

import pytest

from app.domain.payments.dodo_service import DodoPaymentsService, get_dodo_service
from app.main import app
from app.models import EmailLog, Payment, PaymentBalance, Refund, RegistrationEdit
from app.webhook_security import create_webhook_signature

from conftest import person

WEBHOOK_SECRET = "whsec_dGVzdHNlY3JldA=="


def payments_url(event, path=""):
    return f"/events/{event.id}/payments{path}"


@pytest.fixture
def owing_group(db, event, make_group):
    """A group of three owing $300 with nothing paid"""
    group = make_group(event, participants=[person("Luke"), person("Mark"), person("John")])
    balance = db.query(PaymentBalance).filter(PaymentBalance.registration_id == group.id).one()
    balance.total_amount_due = 300.0
    balance.amount_remaining = 300.0
    balance.payment_status = "unpaid"
    db.commit()
    return group


def manual_payment(group, **overrides):
    payload = {
        "registrationId": group.id,
        "registrationType": "group",
        "amount": 100,
        "paymentMethod": "check",
        "paymentDate": (datetime.utcnow() - timedelta(hours=1)).isoformat(),
        "checkNumber": "1042",
    }
    payload.update(overrides)
    return payload


def signed_webhook(client, payload: dict, secret=WEBHOOK_SECRET, webhook_id="msg_1"):
    body = json.dumps(payload).encode("utf-8")
    timestamp = str(int(time.time()))
    headers = {
        "webhook-id": webhook_id,
        "webhook-timestamp": timestamp,
        "webhook-signature": create_webhook_signature(secret, webhook_id, timestamp, body),
        "content-type": "application/json",
    }
    return client.post("/webhooks/dodo", content=body, headers=headers)


def test_record_manual_payment(client, db, admin, event, owing_group):
    response = client.post(payments_url(event, "/manual"), json=manual_payment(owing_group))

    assert response.status_code == 201
    body = response.json()
    assert body["payment"]["paymentStatus"] == "succeeded"
    assert body["payment"]["checkNumber"] == "1042"
    assert body["balance"]["amountPaid"] == 100.0
    assert body["balance"]["amountRemaining"] == 200.0
    assert body["balance"]["paymentStatus"] == "partial"

    receipt = db.query(EmailLog).filter(EmailLog.email_type == "payment_received").one()
    assert receipt.subject == f"Payment Received - {event.name}"
    assert db.query(RegistrationEdit).filter(RegistrationEdit.edit_type == "payment_recorded").count() == 1


def test_paying_in_full_changes_receipt_subject(client, db, admin, event, owing_group):
    client.post(payments_url(event, "/manual"), json=manual_payment(owing_group, amount=300, paymentMethod="cash"))

    receipt = db.query(EmailLog).filter(EmailLog.email_type == "payment_received").one()
    assert receipt.subject == f"Payment Received - PAID IN FULL! - {event.name}"


def test_manual_payment_validation(client, admin, event, owing_group):
    future = manual_payment(owing_group, paymentDate=(datetime.utcnow() + timedelta(days=2)).isoformat())
    response = client.post(payments_url(event, "/manual"), json=future)
    assert response.status_code == 400
    assert response.json()["detail"] == "Payment date cannot be in the future"

    assert client.post(payments_url(event, "/manual"), json=manual_payment(owing_group, amount=0)).status_code == 422
    assert (
        client.post(payments_url(event, "/manual"), json=manual_payment(owing_group, paymentMethod="crypto")).status_code
        == 422
    )

    missing = manual_payment(owing_group, registrationId=owing_group.id + 100)
    assert client.post(payments_url(event, "/manual"), json=missing).status_code == 404


def test_receipt_can_be_skipped(client, db, admin, event, owing_group):
    client.post(payments_url(event, "/manual"), json=manual_payment(owing_group, sendReceipt=False))
    assert db.query(EmailLog).count() == 0


def test_mark_check_received_completes_registration(client, db, admin, event, owing_group):
    owing_group.registration_status = "pending_payment"
    check = Payment(
        event_id=event.id,
        organization_id=event.organization_id,
        registration_id=owing_group.id,
        registration_type="group",
        amount=300.0,
        payment_type="deposit",
        payment_method="check",
        payment_status="pending",
    )
    db.add(check)
    db.commit()

    response = client.post(payments_url(event, f"/{check.id}/mark-received"))

    assert response.status_code == 200
    assert response.json()["balance"]["paymentStatus"] == "paid_full"
    db.refresh(owing_group)
    assert owing_group.registration_status == "complete"

    again = client.post(payments_url(event, f"/{check.id}/mark-received"))
    assert again.status_code == 400


def test_manual_refund_lifecycle(client, db, admin, event, owing_group):
    client.post(payments_url(event, "/manual"), json=manual_payment(owing_group, amount=100))
    refund_payload = {
        "registrationId": owing_group.id,
        "registrationType": "group",
        "refundMethod": "check",
        "refundReason": "One participant cancelled",
    }

    too_much = client.post(payments_url(event, "/refund"), json={**refund_payload, "refundAmount": 150})
    assert too_much.status_code == 400
    assert too_much.json()["detail"] == "Refund amount exceeds amount paid"

    response = client.post(payments_url(event, "/refund"), json={**refund_payload, "refundAmount": 40})
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "pending"
    assert body["balance"]["amountPaid"] == 60.0
    assert body["balance"]["amountRemaining"] == 240.0

    completed = client.post(payments_url(event, f"/refunds/{body['refundId']}/complete"))
    assert completed.json()["status"] == "completed"
    assert client.post(payments_url(event, f"/refunds/{body['refundId']}/complete")).status_code == 400

    assert db.query(RegistrationEdit).filter(RegistrationEdit.edit_type == "refund_processed").count() == 1


def test_card_refund_needs_card_payment(client, db, admin, event, owing_group):
    client.post(payments_url(event, "/manual"), json=manual_payment(owing_group, amount=100))

    response = client.post(
        payments_url(event, "/refund"),
        json={
            "registrationId": owing_group.id,
            "registrationType": "group",
            "refundAmount": 50,
            "refundMethod": "card",
            "refundReason": "Duplicate charge",
        },
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "No card payment found to refund"
    assert db.query(Refund).count() == 0


def test_list_payments_summary(client, db, admin, event, owing_group):
    client.post(payments_url(event, "/manual"), json=manual_payment(owing_group, amount=100))

    body = client.get(payments_url(event)).json()

    assert len(body["payments"]) == 1
    assert body["summary"]["totalDue"] == 300.0
    assert body["summary"]["totalPaid"] == 100.0
    assert body["summary"]["totalRemaining"] == 200.0


def test_staff_cannot_record_payments(client, organization, make_user, login, event, owing_group):
    login(make_user(organization, role="staff"))
    assert client.post(payments_url(event, "/manual"), json=manual_payment(owing_group)).status_code == 403


def test_finance_manager_can_record_payments(client, organization, make_user, login, event, owing_group):
    login(make_user(organization, role="finance_manager"))
    assert client.post(payments_url(event, "/manual"), json=manual_payment(owing_group)).status_code == 201


def succeeded_payload(event, group, payment_id="pay_123", cents=30000):
    return {
        "type": "payment.succeeded",
        "data": {
            "payment_id": payment_id,
            "total_amount": cents,
            "card_last_four": "4242",
            "metadata": {
                "registration_id": str(group.id),
                "registration_type": "group",
                "event_id": str(event.id),
                "payment_type": "deposit",
            },
        },
    }


def test_webhook_applies_card_payment(client, db, event, owing_group):
    owing_group.registration_status = "incomplete"
    db.commit()

    response = signed_webhook(client, succeeded_payload(event, owing_group))

    assert response.status_code == 200
    assert response.json()["status"] == "processed"

    db.expire_all()
    payment = db.query(Payment).one()
    assert payment.amount == 300.0
    assert payment.payment_method == "card"
    assert payment.card_last4 == "4242"
    assert owing_group.registration_status == "complete"
    balance = db.query(PaymentBalance).filter(PaymentBalance.registration_id == owing_group.id).one()
    assert balance.payment_status == "paid_full"
    assert db.query(EmailLog).filter(EmailLog.email_type == "payment_received").count() == 1


def test_webhook_is_idempotent(client, db, event, owing_group):
    signed_webhook(client, succeeded_payload(event, owing_group, cents=10000))
    response = signed_webhook(client, succeeded_payload(event, owing_group, cents=10000), webhook_id="msg_2")

    assert response.json()["status"] == "duplicate"
    assert db.query(Payment).count() == 1


def test_webhook_rejects_bad_signature(client, db, event, owing_group):
    response = signed_webhook(client, succeeded_payload(event, owing_group), secret="whsec_d3Jvbmc=")
    assert response.status_code == 401
    assert db.query(Payment).count() == 0


def test_webhook_ignores_unrelated_events(client, event, owing_group):
    response = signed_webhook(client, {"type": "subscription.active", "data": {}})
    assert response.json() == {"status": "ignored", "type": "subscription.active"}


@pytest.fixture
def dodo_refunds(client):
    """Records refund calls made through a Dodo client stand-in"""
    calls = []

    async def create(**kwargs):
        calls.append(kwargs)
        return SimpleNamespace(refund_id=f"ref_{len(calls)}")

    dodo = DodoPaymentsService()
    dodo.client = SimpleNamespace(refunds=SimpleNamespace(create=create))
    dodo.product_id = "prod_adhoc"
    app.dependency_overrides[get_dodo_service] = lambda: dodo
    return calls


def card_payment(db, event, group, amount=300.0, provider_payment_id="pay_1"):
    payment = Payment(
        event_id=event.id,
        organization_id=event.organization_id,
        registration_id=group.id,
        registration_type="group",
        amount=amount,
        payment_type="deposit",
        payment_method="card",
        payment_status="succeeded",
        provider_payment_id=provider_payment_id,
        processed_at=datetime.utcnow(),
    )
    db.add(payment)
    balance = db.query(PaymentBalance).filter(PaymentBalance.registration_id == group.id).one()
    balance.amount_paid = amount
    balance.amount_remaining = balance.total_amount_due - amount
    db.commit()
    return payment


def card_refund(client, event, group, amount):
    return client.post(
        payments_url(event, "/refund"),
        json={
            "registrationId": group.id,
            "registrationType": "group",
            "refundAmount": amount,
            "refundMethod": "card",
            "refundReason": "One participant cancelled",
        },
    )


def test_partial_card_refund_sends_amount_to_provider(client, db, admin, event, owing_group, dodo_refunds):
    card_payment(db, event, owing_group)

    response = card_refund(client, event, owing_group, 50)

    assert response.status_code == 200
    assert response.json()["status"] == "completed"
    assert response.json()["balance"]["amountPaid"] == 250.0
    assert dodo_refunds == [
        {
            "payment_id": "pay_1",
            "items": [{"item_id": "prod_adhoc", "amount": 5000}],
            "reason": "One participant cancelled",
        }
    ]
    refund = db.query(Refund).one()
    assert refund.provider_refund_id == "ref_1"
    assert refund.refund_amount == 50.0


def test_card_refund_cannot_exceed_the_card_payment(client, db, admin, event, owing_group, dodo_refunds):
    card_payment(db, event, owing_group, amount=100.0)
    client.post(payments_url(event, "/manual"), json=manual_payment(owing_group, amount=100))

    response = card_refund(client, event, owing_group, 150)

    assert response.status_code == 400
    assert response.json()["detail"] == "Refund amount exceeds the card payment of $100.00"
    assert dodo_refunds == []
    assert db.query(Refund).count() == 0
