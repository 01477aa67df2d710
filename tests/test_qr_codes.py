import re
import uuid

from app.qr_codes import generate_access_code, generate_qr_png, individual_qr_data, parse_qr_code


def test_access_code_format():
    code = generate_access_code("Summer Youth Conference 2026")
    assert re.match(r"^SUMMER-[A-Z0-9]{8}$", code)


def test_access_code_without_usable_name():
    assert generate_access_code("!!!").startswith("EVENT-")


def test_parse_participant_uuid():
    participant_id = str(uuid.uuid4())
    assert parse_qr_code(participant_id) == {"type": "participant", "participantId": participant_id}


def test_parse_individual_payload():
    data = individual_qr_data("reg-uuid", "event-uuid", "Maria Lopez")
    parsed = parse_qr_code(data)
    assert parsed["type"] == "individual"
    assert parsed["registrationId"] == "reg-uuid"
    assert parsed["name"] == "Maria Lopez"


def test_parse_access_codes():
    assert parse_qr_code("summer-4k2j9qxa") == {"type": "group", "accessCode": "SUMMER-4K2J9QXA"}
    assert parse_qr_code("ABC123")["type"] == "group"


def test_parse_check_in_link_uses_last_segment():
    participant_id = str(uuid.uuid4())
    parsed = parse_qr_code(f"https://events.example.org/checkin/{participant_id}?src=badge")
    assert parsed == {"type": "participant", "participantId": participant_id}


def test_unrecognized():
    assert parse_qr_code("")["type"] == "unknown"
    assert parse_qr_code("hello world, not a code")["type"] == "unknown"


def test_png_data_url():
    assert generate_qr_png("SUMMER-4K2J9QXA").startswith("data:image/png;base64,")
