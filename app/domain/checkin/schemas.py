"""Check-in schemas"""

from typing import Optional

from pydantic import BaseModel


class CheckInLookup(BaseModel):
    """Either a scanned QR payload or a free-text search"""

    qrCode: Optional[str] = None
    search: Optional[str] = None


class CheckInRequest(BaseModel):
    participantIds: list[int] = []
    action: Optional[str] = None
    station: Optional[str] = None
    notes: Optional[str] = None
    registrationType: str = "group"
