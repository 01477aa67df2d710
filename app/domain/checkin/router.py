"""Check-in router - SALVE station endpoints"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...auth import require_permission
from ...database import get_db
from ...models import User
from .schemas import CheckInLookup, CheckInRequest
from .service import CheckInService

router = APIRouter(prefix="/events/{event_id}/checkin", tags=["Check-in"])


def get_checkin_service(db: Session = Depends(get_db)) -> CheckInService:
    """Dependency injection for CheckInService"""
    return CheckInService(db)


@router.post("/lookup")
async def lookup(
    event_id: int,
    data: CheckInLookup,
    current_user: User = Depends(require_permission("salve.access")),
    service: CheckInService = Depends(get_checkin_service),
):
    """Resolve a scanned badge or a name/access code search"""
    return service.lookup(event_id, data, current_user)


@router.post("")
async def check_in(
    event_id: int,
    data: CheckInRequest,
    current_user: User = Depends(require_permission("salve.access")),
    service: CheckInService = Depends(get_checkin_service),
):
    return service.check_in(event_id, data, current_user)


@router.get("/stats")
async def get_stats(
    event_id: int,
    current_user: User = Depends(require_permission("salve.access")),
    service: CheckInService = Depends(get_checkin_service),
):
    return service.get_stats(event_id, current_user)


@router.get("/badge/{participant_public_id}")
async def get_badge(
    event_id: int,
    participant_public_id: str,
    current_user: User = Depends(require_permission("salve.access")),
    service: CheckInService = Depends(get_checkin_service),
):
    return service.get_badge(event_id, participant_public_id, current_user)
