from app.models_onsite import CheckInLog

from conftest import person


def checkin_url(event, path=""):
    return f"/events/{event.id}/checkin{path}"


def test_lookup_by_participant_badge(client, admin, event, make_group):
    group = make_group(event, participants=[person("Luke"), person("Mary", gender="female")])
    mary = [p for p in group.participants if p.first_name == "Mary"][0]

    response = client.post(checkin_url(event, "/lookup"), json={"qrCode": mary.public_id.upper()})

    assert response.status_code == 200
    body = response.json()
    assert body["type"] == "participant"
    assert body["participantId"] == mary.id
    assert body["groups"][0]["id"] == group.id
    assert len(body["groups"][0]["participants"]) == 2


def test_lookup_by_access_code_link(client, admin, event, make_group):
    group = make_group(event, participants=[person("Luke")])

    response = client.post(
        checkin_url(event, "/lookup"),
        json={"qrCode": f"https://events.example.com/checkin/{group.access_code.lower()}"},
    )

    assert response.status_code == 200
    assert response.json()["type"] == "group"
    assert response.json()["groups"][0]["accessCode"] == group.access_code
    assert response.json()["groups"][0]["isFullyCheckedIn"] is False


def test_lookup_unknown_codes(client, admin, event, make_event, make_group):
    other_event = make_event(name="Winter Retreat")
    stranger = make_group(other_event, participants=[person("Luke")])

    wrong_event = client.post(
        checkin_url(event, "/lookup"), json={"qrCode": stranger.participants[0].public_id}
    )
    assert wrong_event.status_code == 404

    garbage = client.post(checkin_url(event, "/lookup"), json={"qrCode": "hello world"})
    assert garbage.status_code == 404


def test_search_needs_two_characters(client, admin, event):
    response = client.post(checkin_url(event, "/lookup"), json={"search": " a "})
    assert response.status_code == 400


def test_search_matches_participant_names(client, admin, event, make_group):
    make_group(event, participants=[person("Bartholomew")])
    make_group(event, participants=[person("Luke")])

    response = client.post(checkin_url(event, "/lookup"), json={"search": "bartho"})

    assert response.json()["type"] == "search"
    assert response.json()["count"] == 1


def test_check_in_and_out(client, db, admin, event, make_group):
    group = make_group(event, participants=[person("Luke"), person("Mark")])
    ids = [p.id for p in group.participants]

    response = client.post(
        checkin_url(event),
        json={"participantIds": ids, "action": "check_in", "station": " Main Desk ", "notes": "  "},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["count"] == 2
    assert all(p["checkedIn"] for p in body["participants"])

    db.expire_all()
    assert all(p.checked_in and p.check_in_station == "Main Desk" for p in group.participants)
    assert all(p.check_in_notes is None for p in group.participants)

    stats = client.get(checkin_url(event, "/stats")).json()
    assert stats["totalParticipants"] == 2
    assert stats["checkedIn"] == 2
    assert stats["percentCheckedIn"] == 100.0
    assert stats["groups"]["fullyCheckedIn"] == 1
    assert stats["byType"]["youth_u18"] == {"total": 2, "checkedIn": 2}

    out = client.post(checkin_url(event), json={"participantIds": ids[:1], "action": "check_out"})
    assert out.json()["participants"][0]["checkedIn"] is False
    assert db.query(CheckInLog).count() == 3


def test_check_in_validation(client, admin, event, make_event, make_group):
    group = make_group(event, participants=[person("Luke")])
    other = make_group(make_event(name="Winter Retreat"), participants=[person("Mark")])

    no_ids = client.post(checkin_url(event), json={"participantIds": [], "action": "check_in"})
    assert no_ids.status_code == 400

    bad_action = client.post(checkin_url(event), json={"participantIds": [group.participants[0].id], "action": "dance"})
    assert bad_action.status_code == 400

    foreign = client.post(
        checkin_url(event),
        json={"participantIds": [group.participants[0].id, other.participants[0].id], "action": "check_in"},
    )
    assert foreign.status_code == 404


def test_badge(client, admin, event, make_group):
    group = make_group(event, participants=[person("Luke", preferred_name="Lucky")])
    participant = group.participants[0]

    response = client.get(checkin_url(event, f"/badge/{participant.public_id}"))

    assert response.status_code == 200
    assert response.json()["name"] == "Lucky Smith"
    assert response.json()["groupName"] == group.group_name
    assert response.json()["qrCode"].startswith("data:image/png;base64,")


def test_staff_without_salve_access(client, organization, make_user, login, event):
    login(make_user(organization, role="staff"))
    assert client.get(checkin_url(event, "/stats")).status_code == 403


def test_checkin_requires_salve_enabled(client, admin, make_event):
    event = make_event(settings={"salve_enabled": False})
    response = client.get(checkin_url(event, "/stats"))
    assert response.status_code == 400
    assert response.json()["detail"] == "SALVE is not enabled for this event"


def test_checkin_requires_module_tier(client, db, admin, organization, event):
    organization.subscription_tier = "parish"
    db.commit()

    response = client.get(checkin_url(event, "/stats"))

    assert response.status_code == 403
    assert "parish plan" in response.json()["detail"]
