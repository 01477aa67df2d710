from types import SimpleNamespace

from app.domain.housing.service import (
    lowest_free_bed,
    participant_bucket,
    participant_category,
    pick_room,
    room_category,
    room_fits_bucket,
)


def participant(gender="male", participant_type="youth_u18", age=15):
    return SimpleNamespace(gender=gender, participant_type=participant_type, age=age)


def room(gender=None, housing_type=None, capacity=4, occupancy=0):
    return SimpleNamespace(gender=gender, housing_type=housing_type, capacity=capacity, current_occupancy=occupancy)


def test_buckets_split_minors_and_adults():
    assert participant_bucket(participant("male", "youth_u18", 15)) == "male_youth"
    assert participant_bucket(participant("female", "chaperone", 40)) == "female_adult"
    # Age wins over a mislabelled type
    assert participant_bucket(participant("female", "youth_o18", 17)) == "female_youth"
    assert participant_bucket(participant(None)) is None


def test_room_fit():
    assert room_fits_bucket(room(), "female_youth")
    assert room_fits_bucket(room("mixed", "general"), "male_adult")
    assert not room_fits_bucket(room("female"), "male_youth")
    assert room_fits_bucket(room("male", "youth_u18"), "male_youth")
    assert not room_fits_bucket(room("male", "chaperone_18plus"), "male_youth")
    assert not room_fits_bucket(room("male", "youth_u18"), "male_adult")


def test_pick_room_strategies():
    full = room(capacity=2, occupancy=2)
    busy = room(capacity=4, occupancy=3)
    quiet = room(capacity=4, occupancy=1)
    assert pick_room([full, busy, quiet], "fill_rooms") is busy
    assert pick_room([full, busy, quiet], "balance") is quiet
    assert pick_room([full], "parish_together") is None


def test_group_leader_categories():
    assert participant_category(participant("male", "youth_u18", 14)) == "male_u18"
    assert participant_category(participant("female", "youth_o18", 18)) == "female_chaperone"
    assert participant_category(participant("female", "chaperone", 45)) == "female_chaperone"
    assert participant_category(participant("male", "priest", 50)) is None


def test_room_categories():
    assert room_category(room("female", "youth_u18")) == "female_u18"
    assert room_category(room("male", "general")) == "male_chaperone"
    assert room_category(room("male", "chaperone_18plus")) == "male_chaperone"
    assert room_category(room("male", "clergy")) is None
    assert room_category(room("mixed", "general")) is None


def test_lowest_free_bed():
    assert lowest_free_bed(set(), 4) == 1
    assert lowest_free_bed({1, 2, 4}, 4) == 3
    assert lowest_free_bed({1, 2}, 2) is None
