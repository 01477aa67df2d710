from datetime import datetime, timedelta

from app.models import EmailLog, LiabilityForm, Participant, SafeEnvironmentCertificate

MEDICAL = {
    "allergies": "Peanuts",
    "emergencyContact1Name": "Maria Smith",
    "emergencyContact1Phone": "555-555-0199",
    "emergencyContact1Relation": "Mother",
}

SIGNATURE = {
    "signatureFullName": "Maria Smith",
    "signatureInitials": "MS",
    "certifyAccurate": True,
}


def initiate(client, access_code, **overrides):
    payload = {
        "accessCode": access_code,
        "firstName": "Luke",
        "lastName": "Smith",
        "age": 15,
        "gender": "male",
        "tShirtSize": "M",
        "parentEmail": "parent@example.com",
    }
    payload.update(overrides)
    return client.post("/public/liability/youth-u18/initiate", json=payload)


def parent_payload(**overrides):
    payload = {**MEDICAL, **SIGNATURE, "insuranceProvider": "Blue Cross", "insurancePolicyNumber": "BC-123"}
    payload.update(overrides)
    return payload


def adult_payload(access_code, **overrides):
    payload = {
        **MEDICAL,
        **SIGNATURE,
        "accessCode": access_code,
        "firstName": "Joan",
        "lastName": "Doe",
        "age": 42,
        "gender": "female",
        "participantType": "chaperone",
        "email": "joan@example.com",
        "phone": "(555) 555-0123",
        "tShirtSize": "L",
    }
    payload.update(overrides)
    return payload


def test_youth_form_initiated_and_parent_link_emailed(client, db, event, make_group):
    group = make_group(event)

    response = initiate(client, group.access_code)

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert "parent@example.com" in body["message"]

    form = db.query(LiabilityForm).one()
    assert form.form_type == "youth_u18"
    assert form.completed is False
    assert form.parent_token
    assert form.parent_token_expires_at > datetime.utcnow()

    log = db.query(EmailLog).filter(EmailLog.email_type == "parent_consent_request").one()
    assert log.recipient_email == "parent@example.com"


def test_youth_form_rejects_adult_age(client, event, make_group):
    group = make_group(event)
    response = initiate(client, group.access_code, age=18)
    assert response.status_code == 400
    assert "between 12 and 17" in response.json()["detail"]


def test_invalid_access_code(client, event):
    response = initiate(client, "NOPE-0000")
    assert response.status_code == 404


def test_forms_blocked_when_poros_disabled(client, make_event, make_group):
    event = make_event(settings={"poros_enabled": False})
    group = make_group(event)
    response = initiate(client, group.access_code)
    assert response.status_code == 400
    assert response.json()["detail"] == "Liability forms are not enabled for this event"


def test_parent_completes_form(client, db, event, make_group):
    group = make_group(event)
    initiate(client, group.access_code)
    token = db.query(LiabilityForm).one().parent_token

    form_view = client.get(f"/public/liability/parent/{token}")
    assert form_view.status_code == 200
    assert form_view.json()["event"]["name"] == event.name
    assert form_view.json()["organizationName"] == "St. Anne Youth Ministry"

    response = client.post(f"/public/liability/parent/{token}/complete", json=parent_payload())
    assert response.status_code == 200
    assert response.json()["success"] is True

    db.expire_all()
    form = db.query(LiabilityForm).one()
    assert form.completed is True
    assert form.allergies == "Peanuts"
    assert form.signature_data["full_legal_name"] == "Maria Smith"

    participant = db.get(Participant, form.participant_id)
    assert participant.group_registration_id == group.id
    assert participant.liability_form_completed is True
    assert participant.qr_code

    again = client.post(f"/public/liability/parent/{token}/complete", json=parent_payload())
    assert again.status_code == 400


def test_parent_form_requires_insurance(client, db, event, make_group):
    group = make_group(event)
    initiate(client, group.access_code)
    token = db.query(LiabilityForm).one().parent_token

    response = client.post(f"/public/liability/parent/{token}/complete", json=parent_payload(insuranceProvider=" "))
    assert response.status_code == 422


def test_parent_link_unknown_and_expired(client, db, event, make_group):
    assert client.get("/public/liability/parent/not-a-token").status_code == 404

    group = make_group(event)
    initiate(client, group.access_code)
    form = db.query(LiabilityForm).one()
    form.parent_token_expires_at = datetime.utcnow() - timedelta(minutes=1)
    db.commit()

    assert client.get(f"/public/liability/parent/{form.parent_token}").status_code == 410


def test_parent_link_closed_when_forms_disabled(client, db, event, make_group):
    group = make_group(event)
    initiate(client, group.access_code)
    form = db.query(LiabilityForm).one()
    event.settings.poros_enabled = False
    db.commit()

    view = client.get(f"/public/liability/parent/{form.parent_token}")
    assert view.status_code == 400
    assert view.json()["detail"] == "Liability forms are not enabled for this event"

    complete = client.post(f"/public/liability/parent/{form.parent_token}/complete", json=parent_payload())
    assert complete.status_code == 400
    db.expire_all()
    assert db.query(LiabilityForm).one().completed is False


def test_chaperone_form_records_certificate(client, db, event, make_group):
    group = make_group(event)
    payload = adult_payload(group.access_code, safeEnvironment={"programName": "VIRTUS"})

    response = client.post("/public/liability/adult", json=payload)

    assert response.status_code == 201
    participant = db.get(Participant, response.json()["participantId"])
    assert participant.participant_type == "chaperone"
    assert participant.email == "joan@example.com"

    certificate = db.query(SafeEnvironmentCertificate).one()
    assert certificate.program_name == "VIRTUS"
    assert certificate.status == "pending"

    emails = db.query(EmailLog).filter(EmailLog.email_type.like("liability_form%")).all()
    assert {log.recipient_email for log in emails} == {"joan@example.com", group.group_leader_email}


def test_adult_form_rejects_minor(client, event, make_group):
    group = make_group(event)
    response = client.post("/public/liability/adult", json=adult_payload(group.access_code, age=16))
    assert response.status_code == 422


def test_clergy_form(client, db, event, make_group):
    group = make_group(event)
    payload = {
        **MEDICAL,
        **SIGNATURE,
        "accessCode": group.access_code,
        "firstName": "John",
        "lastName": "Vianney",
        "clergyTitle": "Father",
        "faithFacility": "St. Anne Parish",
    }

    response = client.post("/public/liability/clergy", json=payload)

    assert response.status_code == 201
    form = db.query(LiabilityForm).one()
    assert form.form_type == "clergy"
    assert form.completed is True


def test_admin_reviews_certificate(client, db, admin, event, make_group):
    group = make_group(event)
    client.post(
        "/public/liability/adult",
        json=adult_payload(group.access_code, safeEnvironment={"programName": "VIRTUS"}),
    )
    certificate = db.query(SafeEnvironmentCertificate).one()

    listed = client.get(f"/events/{event.id}/liability/certificates", params={"status": "pending"})
    assert listed.status_code == 200
    assert len(listed.json()) == 1

    response = client.patch(
        f"/events/{event.id}/liability/certificates/{certificate.id}",
        json={"status": "verified", "notes": "Checked with diocese"},
    )
    assert response.status_code == 200
    assert response.json()["status"] == "verified"


def test_admin_downloads_completed_form_pdf(client, db, admin, event, make_group):
    group = make_group(event)
    client.post("/public/liability/adult", json=adult_payload(group.access_code))
    form = db.query(LiabilityForm).one()

    forms = client.get(f"/events/{event.id}/liability/forms", params={"completed": True})
    assert forms.status_code == 200

    response = client.get(f"/events/{event.id}/liability/forms/{form.id}/pdf")
    assert response.status_code == 200
    assert response.headers["content-type"] == "application/pdf"
    assert response.content.startswith(b"%PDF")


def test_staff_cannot_review_forms(client, organization, make_user, login, event):
    login(make_user(organization, role="staff"))
    response = client.get(f"/events/{event.id}/liability/forms")
    assert response.status_code == 403
