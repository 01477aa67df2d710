import pytest

from app.domain.housing.repository import HousingRepository
from app.models_housing import Building, Room, RoomAssignment

from conftest import person


@pytest.fixture
def building(db, event):
    building = Building(event_id=event.id, name="Benedict Hall", gender="male", housing_type="youth_u18", total_floors=3)
    db.add(building)
    db.commit()
    db.refresh(building)
    return building


@pytest.fixture
def make_room(db, event, building):
    def _make_room(room_number="101", capacity=2, **overrides) -> Room:
        values = dict(
            event_id=event.id,
            building_id=building.id,
            room_number=room_number,
            floor=1,
            capacity=capacity,
            gender="male",
            housing_type="youth_u18",
        )
        values.update(overrides)
        room = Room(**values)
        db.add(room)
        db.commit()
        db.refresh(room)
        return room

    return _make_room


def housing_url(event, path=""):
    return f"/events/{event.id}/housing{path}"


def test_create_building_and_room(client, admin, event):
    building = client.post(
        housing_url(event, "/buildings"),
        json={"name": " Scholastica Hall ", "gender": "female", "housingType": "youth_u18", "totalFloors": 2},
    )
    assert building.status_code == 201
    assert building.json()["name"] == "Scholastica Hall"

    room = client.post(
        housing_url(event, "/rooms"),
        json={"buildingId": building.json()["id"], "roomNumber": "201", "floor": 2, "capacity": 4, "gender": "female"},
    )
    assert room.status_code == 201
    assert room.json()["bedsAvailable"] == 4

    overview = client.get(housing_url(event))
    assert overview.json()["summary"]["totalBeds"] == 4


def test_room_floor_must_exist(client, admin, event, building):
    response = client.post(
        housing_url(event, "/rooms"),
        json={"buildingId": building.id, "roomNumber": "901", "floor": 9, "capacity": 2},
    )
    assert response.status_code == 400


def test_building_rejects_unknown_gender(client, admin, event):
    response = client.post(housing_url(event, "/buildings"), json={"name": "Hall", "gender": "other"})
    assert response.status_code == 422


def test_manual_assignment_rules(client, db, admin, event, make_group, make_room):
    group = make_group(event, participants=[person("Luke"), person("Mark"), person("John")])
    luke, mark, john = group.participants
    room = make_room(capacity=2)

    first = client.post(housing_url(event, "/assignments"), json={"participantId": luke.id, "roomId": room.id})
    assert first.status_code == 201
    assert first.json()["bedNumber"] == 1

    duplicate = client.post(housing_url(event, "/assignments"), json={"participantId": luke.id, "roomId": room.id})
    assert duplicate.status_code == 409

    bed_taken = client.post(
        housing_url(event, "/assignments"), json={"participantId": mark.id, "roomId": room.id, "bedNumber": 1}
    )
    assert bed_taken.status_code == 409

    out_of_range = client.post(
        housing_url(event, "/assignments"), json={"participantId": mark.id, "roomId": room.id, "bedNumber": 3}
    )
    assert out_of_range.status_code == 400

    second = client.post(housing_url(event, "/assignments"), json={"participantId": mark.id, "roomId": room.id})
    assert second.json()["bedNumber"] == 2

    full = client.post(housing_url(event, "/assignments"), json={"participantId": john.id, "roomId": room.id})
    assert full.status_code == 400
    assert full.json()["detail"] == "Room is full"

    db.refresh(room)
    assert room.current_occupancy == 2


def test_unassign_frees_bed(client, db, admin, event, make_group, make_room):
    group = make_group(event, participants=[person("Luke")])
    room = make_room()
    participant = group.participants[0]
    client.post(housing_url(event, "/assignments"), json={"participantId": participant.id, "roomId": room.id})

    response = client.delete(housing_url(event, f"/assignments/{participant.id}"))

    assert response.status_code == 200
    db.refresh(room)
    assert room.current_occupancy == 0
    assert db.query(RoomAssignment).count() == 0

    again = client.delete(housing_url(event, f"/assignments/{participant.id}"))
    assert again.status_code == 404


def test_auto_assign_matches_gender_and_age(client, db, admin, event, make_group, make_room):
    make_group(
        event,
        participants=[
            person("Luke"),
            person("Mark"),
            person("Mary", gender="female"),
            person("Joe", participant_type="chaperone", age=45),
            person("Sam", gender=None),
        ],
    )
    make_group(event, participants=[person("Paul")], housing_type="off_campus")
    make_room("101", capacity=2)
    make_room("102", capacity=2, gender="female")

    response = client.post(housing_url(event, "/auto-assign"), json={"strategy": "fill_rooms"})

    assert response.status_code == 200
    body = response.json()
    # Luke and Mark in 101, Mary in 102; Joe has no adult room and Sam has no gender
    assert body["assigned"] == 3
    assert body["skipped"] == 2
    assert body["errors"] == []
    assert db.query(RoomAssignment).count() == 3


def test_auto_assign_rejects_unknown_strategy(client, admin, event):
    response = client.post(housing_url(event, "/auto-assign"), json={"strategy": "random"})
    assert response.status_code == 422


def test_group_lock_blocks_leader_auto_assign(client, db, admin, event, make_group, make_room, make_user, login):
    group = make_group(event, participants=[person("Luke")])
    make_room(allocated_to_group_id=group.id)

    locked = client.put(housing_url(event, f"/groups/{group.id}/lock"), json={"locked": True})
    assert locked.json()["housingAssignmentsLocked"] is True

    login(make_user(role="group_leader", email=group.group_leader_email))
    response = client.post("/portal/group/housing/auto-assign", json={"category": "male_u18"})

    assert response.status_code == 400


def test_leader_auto_assigns_into_allocated_rooms(client, db, event, make_group, make_room, make_user, login):
    group = make_group(event, participants=[person("Luke"), person("Mark"), person("Mary", gender="female")])
    make_room("101", capacity=4, allocated_to_group_id=group.id)
    login(make_user(role="group_leader", email=group.group_leader_email))

    response = client.post("/portal/group/housing/auto-assign", json={"category": "male_u18"})

    assert response.status_code == 200
    assert response.json()["assigned"] == 2

    housing = client.get("/portal/group/housing")
    rooms = housing.json()["rooms"]
    assert rooms[0]["category"] == "male_u18"
    assert len(rooms[0]["assignments"]) == 2

    nothing_left = client.post("/portal/group/housing/auto-assign", json={"category": "male_u18"})
    assert nothing_left.json() == {"assigned": 0, "message": "No unassigned participants in this category"}


def test_staff_without_poros_access(client, organization, make_user, login, event):
    login(make_user(organization, role="staff"))
    assert client.get(housing_url(event)).status_code == 403


def test_room_capacity_cannot_drop_below_occupancy(client, db, admin, event, make_group, make_room):
    group = make_group(event, participants=[person("Luke"), person("Mark")])
    room = make_room(capacity=4)
    for participant in group.participants:
        client.post(housing_url(event, "/assignments"), json={"participantId": participant.id, "roomId": room.id})

    too_small = client.patch(housing_url(event, f"/rooms/{room.id}"), json={"capacity": 1})
    assert too_small.status_code == 400

    resized = client.patch(housing_url(event, f"/rooms/{room.id}"), json={"capacity": 3, "notes": "Bunk beds"})
    assert resized.json()["bedsAvailable"] == 1
    assert resized.json()["notes"] == "Bunk beds"

    assert client.delete(housing_url(event, f"/rooms/{room.id}")).status_code == 400


def test_building_update_and_delete(client, db, admin, event, building, make_room):
    make_room()

    renamed = client.patch(housing_url(event, f"/buildings/{building.id}"), json={"name": "St. Benedict Hall"})
    assert renamed.json()["name"] == "St. Benedict Hall"

    assert client.delete(housing_url(event, f"/buildings/{building.id}")).status_code == 200
    assert db.query(Room).count() == 0


def test_room_allocation(client, admin, event, make_event, make_group, make_room):
    group = make_group(event)
    other_event_group = make_group(make_event(name="Winter Retreat"))
    room = make_room()

    allocated = client.put(housing_url(event, f"/rooms/{room.id}/allocation"), json={"groupRegistrationId": group.id})
    assert allocated.json()["allocatedToGroupId"] == group.id

    foreign = client.put(
        housing_url(event, f"/rooms/{room.id}/allocation"), json={"groupRegistrationId": other_event_group.id}
    )
    assert foreign.status_code == 404

    released = client.put(housing_url(event, f"/rooms/{room.id}/allocation"), json={"groupRegistrationId": None})
    assert released.json()["allocatedToGroupId"] is None


def test_housing_requires_poros_enabled(client, admin, make_event):
    event = make_event(settings={"poros_enabled": False})
    response = client.get(housing_url(event))
    assert response.status_code == 400
    assert response.json()["detail"] == "Poros is not enabled for this event"


def occupants(db, room):
    assignments = db.query(RoomAssignment).filter(RoomAssignment.room_id == room.id).all()
    return sorted(a.participant.first_name for a in assignments)


def test_auto_assign_keeps_parishes_together(client, db, admin, event, make_group, make_room):
    make_group(event, parish_name="St. Anne", participants=[person("Luke"), person("Mark")])
    make_group(event, parish_name="Holy Family", participants=[person("Paul"), person("Peter")])
    first = make_room("101", capacity=2)
    second = make_room("102", capacity=2)

    response = client.post(housing_url(event, "/auto-assign"), json={"strategy": "parish_together"})

    assert response.json()["assigned"] == 4
    assert occupants(db, first) == ["Paul", "Peter"]
    assert occupants(db, second) == ["Luke", "Mark"]


def test_auto_assign_balance_spreads_occupancy(client, db, admin, event, make_group, make_room):
    make_group(event, participants=[person("Luke"), person("Mark"), person("John"), person("Paul")])
    first = make_room("101", capacity=4)
    second = make_room("102", capacity=4)

    response = client.post(housing_url(event, "/auto-assign"), json={"strategy": "balance"})

    assert response.json()["assigned"] == 4
    db.refresh(first)
    db.refresh(second)
    assert (first.current_occupancy, second.current_occupancy) == (2, 2)


def test_auto_assign_limited_to_buildings(client, db, admin, event, building, make_group, make_room):
    annex = Building(event_id=event.id, name="Annex", gender="male", housing_type="youth_u18", total_floors=1)
    db.add(annex)
    db.commit()
    make_group(event, participants=[person("Luke"), person("Mark")])
    main_room = make_room("101", capacity=4)
    annex_room = make_room("A1", capacity=4, building_id=annex.id)

    response = client.post(housing_url(event, "/auto-assign"), json={"buildingIds": [annex.id]})

    assert response.json()["assigned"] == 2
    assert occupants(db, annex_room) == ["Luke", "Mark"]
    assert occupants(db, main_room) == []


def test_auto_assign_type_filter(client, db, admin, event, make_group, make_room):
    make_group(event, participants=[person("Luke"), person("Joe", participant_type="chaperone", age=45)])
    youth_room = make_room("101", capacity=2)
    adult_room = make_room("102", capacity=2, housing_type="chaperone_18plus")

    youth = client.post(housing_url(event, "/auto-assign"), json={"typeFilter": "youth"})
    assert youth.json() == {"assigned": 1, "skipped": 0, "errors": []}
    assert occupants(db, youth_room) == ["Luke"]
    assert occupants(db, adult_room) == []

    chaperones = client.post(housing_url(event, "/auto-assign"), json={"typeFilter": "chaperone"})
    assert chaperones.json()["assigned"] == 1
    assert occupants(db, adult_room) == ["Joe"]


def test_auto_assign_failure_keeps_earlier_placements(client, db, admin, event, make_group, make_room, monkeypatch):
    make_group(event, participants=[person("Mark"), person("John")])
    late = make_group(event, participants=[person("Luke")])
    room = make_room("101", capacity=4)
    other = make_room("102", capacity=2, current_occupancy=1)
    # Luke is placed elsewhere after the run has checked for existing assignments
    db.add(RoomAssignment(room_id=other.id, participant_id=late.participants[0].id, bed_number=1))
    db.commit()
    monkeypatch.setattr(HousingRepository, "get_assignment_for_participant", staticmethod(lambda _db, _pid: None))

    response = client.post(
        housing_url(event, "/auto-assign"), json={"strategy": "fill_rooms", "onlyUnassigned": False}
    )

    assert response.status_code == 200
    body = response.json()
    assert body["assigned"] == 2
    assert body["skipped"] == 1
    assert body["errors"] == ["Failed to assign Luke Smith"]
    assert occupants(db, room) == ["John", "Mark"]
    db.refresh(room)
    assert room.current_occupancy == 2
