"""
Badge QR codes: payload generation, PNG rendering and scanner parsing.

Payload formats:
  participant  -> the participant's public UUID
  individual   -> JSON {"registration_id", "event_id", "type": "individual", "name"}
  group        -> the group's access code
"""

import base64
import io
import json
import re
import secrets
import string
from typing import Optional

import qrcode

from .shared.validators import validate_uuid

SHORT_CODE_PATTERN = re.compile(r"^[A-Z0-9]{6,8}$", re.IGNORECASE)
ACCESS_CODE_PATTERN = re.compile(r"^[A-Z0-9]{1,6}-[A-Z0-9]{8}$", re.IGNORECASE)

ACCESS_CODE_ALPHABET = string.ascii_uppercase + string.digits


def generate_access_code(event_name: str) -> str:
    """`{first 6 alphanumerics of event name}-{8 random chars}`, e.g. SUMMER-4K2J9QXA"""
    prefix = re.sub(r"[^A-Z0-9]", "", (event_name or "").upper())[:6] or "EVENT"
    suffix = "".join(secrets.choice(ACCESS_CODE_ALPHABET) for _ in range(8))
    return f"{prefix}-{suffix}"


def participant_qr_data(participant_public_id: str) -> str:
    return participant_public_id


def individual_qr_data(registration_public_id: str, event_public_id: str, name: str) -> str:
    return json.dumps(
        {
            "registration_id": registration_public_id,
            "event_id": event_public_id,
            "type": "individual",
            "name": name,
        }
    )


def group_qr_data(access_code: str) -> str:
    return access_code.upper()


def generate_qr_png(data: str) -> str:
    """Render a QR code and return it as a data URL"""
    qr = qrcode.QRCode(version=1, box_size=10, border=4)
    qr.add_data(data)
    qr.make(fit=True)

    img = qr.make_image(fill_color="black", back_color="white")
    buffer = io.BytesIO()
    img.save(buffer, format="PNG")
    encoded = base64.b64encode(buffer.getvalue()).decode()
    return f"data:image/png;base64,{encoded}"


def _is_access_code(value: str) -> bool:
    return bool(SHORT_CODE_PATTERN.match(value) or ACCESS_CODE_PATTERN.match(value))


def _parse_plain(value: str) -> Optional[dict]:
    if validate_uuid(value):
        return {"type": "participant", "participantId": value.lower()}
    if _is_access_code(value):
        return {"type": "group", "accessCode": value.upper()}
    return None


def parse_qr_code(data: Optional[str]) -> dict:
    """
    Work out what a scanned QR code refers to.
    Returns {"type": "individual" | "participant" | "group" | "unknown", ...}
    """
    value = (data or "").strip()
    if not value:
        return {"type": "unknown", "raw": data}

    try:
        payload = json.loads(value)
    except ValueError:
        payload = None
    if isinstance(payload, dict) and payload.get("type") == "individual" and payload.get("registration_id"):
        return {
            "type": "individual",
            "registrationId": payload["registration_id"],
            "eventId": payload.get("event_id"),
            "name": payload.get("name"),
        }

    parsed = _parse_plain(value)
    if parsed:
        return parsed

    # Check-in links: take the last path segment
    if "/" in value:
        segment = value.rstrip("/").split("/")[-1].split("?")[0]
        parsed = _parse_plain(segment)
        if parsed:
            return parsed

    return {"type": "unknown", "raw": data}
