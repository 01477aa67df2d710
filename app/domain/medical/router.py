"""Rapha router - Health office endpoints"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import require_permission
from ...database import get_db
from ...models import User
from .schemas import IncidentCreate, IncidentUpdate
from .service import MedicalService

router = APIRouter(prefix="/events/{event_id}/medical", tags=["Medical"])


def get_medical_service(db: Session = Depends(get_db)) -> MedicalService:
    """Dependency injection for MedicalService"""
    return MedicalService(db)


# ============================================================================
# INCIDENTS
# ============================================================================


@router.get("/incidents")
async def list_incidents(
    event_id: int,
    status: str = Query("all"),
    severity: str = Query("all"),
    incident_type: str = Query("all", alias="type"),
    date_from: Optional[datetime] = Query(None, alias="dateFrom"),
    date_to: Optional[datetime] = Query(None, alias="dateTo"),
    current_user: User = Depends(require_permission("medical.view")),
    service: MedicalService = Depends(get_medical_service),
):
    return service.list_incidents(event_id, current_user, status, severity, incident_type, date_from, date_to)


@router.post("/incidents", status_code=201)
async def create_incident(
    event_id: int,
    data: IncidentCreate,
    current_user: User = Depends(require_permission("medical.edit")),
    service: MedicalService = Depends(get_medical_service),
):
    return service.create_incident(event_id, data, current_user)


@router.get("/incidents/{incident_id}")
async def get_incident(
    event_id: int,
    incident_id: int,
    current_user: User = Depends(require_permission("medical.view")),
    service: MedicalService = Depends(get_medical_service),
):
    return service.get_incident(event_id, incident_id, current_user)


@router.put("/incidents/{incident_id}")
async def update_incident(
    event_id: int,
    incident_id: int,
    data: IncidentUpdate,
    current_user: User = Depends(require_permission("medical.edit")),
    service: MedicalService = Depends(get_medical_service),
):
    """Update provided fields; an updateNote is appended to the incident timeline"""
    return service.update_incident(event_id, incident_id, data, current_user)


# ============================================================================
# STATS, ROSTER & AUDIT
# ============================================================================


@router.get("/stats")
async def get_stats(
    event_id: int,
    current_user: User = Depends(require_permission("medical.view")),
    service: MedicalService = Depends(get_medical_service),
):
    return service.get_stats(event_id, current_user)


@router.get("/roster")
async def get_roster(
    event_id: int,
    search: str = Query(""),
    roster_filter: str = Query("all", alias="filter"),
    sort_by: str = Query("name", alias="sortBy"),
    current_user: User = Depends(require_permission("medical.view")),
    service: MedicalService = Depends(get_medical_service),
):
    return service.get_roster(event_id, current_user, search, roster_filter, sort_by)


@router.get("/access-logs")
async def list_access_logs(
    event_id: int,
    limit: int = Query(100, ge=1, le=500),
    current_user: User = Depends(require_permission("medical.view")),
    service: MedicalService = Depends(get_medical_service),
):
    return service.list_access_logs(event_id, current_user, limit)
