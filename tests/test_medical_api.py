import pytest

from app.domain.medical.service import initial_status
from app.models import LiabilityForm
from app.models_onsite import MedicalAccessLog, MedicalIncident

from conftest import person


def medical_url(event, path=""):
    return f"/events/{event.id}/medical{path}"


def incident_payload(participant_id=None, **overrides):
    payload = {
        "participantId": participant_id,
        "incidentType": "injury",
        "severity": "minor",
        "description": "Scraped knee during volleyball",
        "treatmentProvided": "Cleaned and bandaged",
        "staffMemberName": "Nurse Joy",
        "location": "Gym",
    }
    payload.update(overrides)
    return payload


@pytest.mark.parametrize(
    "disposition,follow_up,expected",
    [
        ("returned_to_activities", False, "resolved"),
        ("returned_to_activities", True, "monitoring"),
        ("resting_in_health_office", False, "monitoring"),
        ("sent_home", False, "active"),
        (None, False, "active"),
    ],
)
def test_initial_status(disposition, follow_up, expected):
    assert initial_status(disposition, follow_up) == expected


def test_create_incident_requires_fields(client, admin, event):
    response = client.post(medical_url(event, "/incidents"), json=incident_payload(staffMemberName=""))
    assert response.status_code == 400
    assert response.json()["detail"] == "Missing required fields"


def test_create_incident_rejects_unknown_severity(client, admin, event):
    response = client.post(medical_url(event, "/incidents"), json=incident_payload(severity="catastrophic"))
    assert response.status_code == 422


def test_create_incident_for_participant(client, db, admin, event, make_group):
    group = make_group(event, participants=[person("Luke")])
    participant = group.participants[0]

    response = client.post(
        medical_url(event, "/incidents"),
        json=incident_payload(participant.id, disposition="returned_to_activities"),
    )

    assert response.status_code == 201
    incident = response.json()["incident"]
    assert incident["status"] == "resolved"
    assert incident["resolvedAt"] is not None
    assert incident["participantName"] == "Luke Smith"
    assert incident["groupName"] == group.group_name

    log = db.query(MedicalAccessLog).one()
    assert log.action == "create_incident"
    assert log.user_id == admin.id


def test_create_incident_for_other_event_participant(client, admin, event, make_event, make_group):
    stranger = make_group(make_event(name="Winter Retreat"), participants=[person("Mark")])
    response = client.post(medical_url(event, "/incidents"), json=incident_payload(stranger.participants[0].id))
    assert response.status_code == 404


def test_update_incident_with_note_and_resolution(client, db, admin, event, make_group):
    group = make_group(event, participants=[person("Luke")])
    created = client.post(
        medical_url(event, "/incidents"),
        json=incident_payload(group.participants[0].id, followUpRequired=True),
    ).json()["incident"]
    assert created["status"] == "monitoring"

    response = client.put(
        medical_url(event, f"/incidents/{created['id']}"),
        json={"status": "resolved", "updateNote": "Feeling better, back with group"},
    )

    assert response.status_code == 200
    assert response.json()["incident"]["status"] == "resolved"

    detail = client.get(medical_url(event, f"/incidents/{created['id']}")).json()["incident"]
    assert detail["resolvedAt"] is not None
    assert detail["recentUpdates"][0]["note"] == "Feeling better, back with group"
    assert detail["recentUpdates"][0]["staffMemberName"] == admin.full_name


def test_update_unknown_incident(client, admin, event):
    response = client.put(medical_url(event, "/incidents/999"), json={"status": "resolved"})
    assert response.status_code == 404


def test_list_incidents_with_filters(client, db, admin, event):
    client.post(medical_url(event, "/incidents"), json=incident_payload(severity="severe"))
    client.post(
        medical_url(event, "/incidents"),
        json=incident_payload(disposition="returned_to_activities", incidentType="illness"),
    )

    everything = client.get(medical_url(event, "/incidents")).json()
    assert everything["stats"] == {"active": 1, "monitoring": 0, "resolved": 1, "total": 2}
    assert everything["incidents"][0]["status"] == "active"

    illness = client.get(medical_url(event, "/incidents"), params={"type": "illness"}).json()
    assert [i["type"] for i in illness["incidents"]] == ["illness"]


def test_roster_and_stats_from_completed_forms(client, db, admin, event, make_group):
    group = make_group(event)
    for first_name, allergies, completed in (("Ann", "EpiPen - bees", True), ("Ben", None, True), ("Cal", "Dust", False)):
        db.add(
            LiabilityForm(
                event_id=event.id,
                organization_id=event.organization_id,
                group_registration_id=group.id,
                form_type="youth_u18",
                participant_type="youth_u18",
                participant_first_name=first_name,
                participant_last_name="Jones",
                allergies=allergies,
                completed=completed,
            )
        )
    db.commit()

    roster = client.get(medical_url(event, "/roster")).json()
    assert roster["total"] == 1
    assert roster["participants"][0]["firstName"] == "Ann"
    assert roster["participants"][0]["severeAllergy"] is True

    stats = client.get(medical_url(event, "/stats")).json()["stats"]
    assert stats["severeAllergies"] == 1
    assert stats["allergies"] == 1

    logs = client.get(medical_url(event, "/access-logs")).json()["logs"]
    assert logs[0]["action"] == "view_roster"
    assert logs[0]["userEmail"] == "admin@stanne.org"


def test_medical_requires_rapha(client, admin, make_event):
    event = make_event(settings={"rapha_enabled": False})
    assert client.get(medical_url(event, "/incidents")).status_code == 400


def test_rapha_coordinator_can_record(client, db, organization, make_user, login, event):
    login(make_user(organization, role="rapha_coordinator"))
    response = client.post(medical_url(event, "/incidents"), json=incident_payload())
    assert response.status_code == 201
    assert db.query(MedicalIncident).count() == 1


def test_staff_cannot_view_medical(client, organization, make_user, login, event):
    login(make_user(organization, role="staff"))
    assert client.get(medical_url(event, "/incidents")).status_code == 403
