"""Registration router - Public registration, admin management and the group leader portal"""

import csv
import io
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Body, Depends, Query
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from ...auth import get_current_user, require_permission
from ...database import get_db
from ...email_service import send_group_registration_confirmation, send_individual_registration_confirmation
from ...models import User
from ...rate_limiter import create_rate_limiter
from ..payments.dodo_service import DodoPaymentsService, get_dodo_service
from .schemas import (
    CancelRegistrationRequest,
    GroupRegistrationCreate,
    IndividualRegistrationCreate,
    ParticipantCreate,
    PortalLinkRequest,
    PortalPaymentRequest,
)
from .service import RegistrationService

router = APIRouter(prefix="/events/{event_id}/registrations", tags=["Registrations"])
public_router = APIRouter(prefix="/public/events/{public_id}/register", tags=["Registration"])
portal_router = APIRouter(prefix="/portal/group", tags=["Group Portal"])

rate_limit_registration = create_rate_limiter(limit=10, window_seconds=60, key_prefix="registration")


def get_registration_service(
    db: Session = Depends(get_db), dodo: DodoPaymentsService = Depends(get_dodo_service)
) -> RegistrationService:
    """Dependency injection for RegistrationService"""
    return RegistrationService(db, dodo)


# ============================================================================
# PUBLIC REGISTRATION
# ============================================================================


@public_router.post("/group", status_code=201)
async def register_group(
    public_id: str,
    data: GroupRegistrationCreate,
    background_tasks: BackgroundTasks,
    service: RegistrationService = Depends(get_registration_service),
    _: None = Depends(rate_limit_registration),
):
    """Register a group; card payments return a checkout URL"""
    response, email_args = await service.register_group(public_id, data)
    background_tasks.add_task(send_group_registration_confirmation, **email_args)
    return response


@public_router.post("/individual", status_code=201)
async def register_individual(
    public_id: str,
    data: IndividualRegistrationCreate,
    background_tasks: BackgroundTasks,
    service: RegistrationService = Depends(get_registration_service),
    _: None = Depends(rate_limit_registration),
):
    response, email_args = await service.register_individual(public_id, data)
    background_tasks.add_task(send_individual_registration_confirmation, **email_args)
    return response


# ============================================================================
# ADMIN
# ============================================================================


@router.get("")
async def list_registrations(
    event_id: int,
    type: str = Query("all", pattern="^(all|group|individual)$"),
    search: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    current_user: User = Depends(require_permission("registrations.view")),
    service: RegistrationService = Depends(get_registration_service),
):
    return service.list_registrations(event_id, current_user, type, search, status)


@router.get("/export")
async def export_registrations(
    event_id: int,
    type: str = Query("group", pattern="^(group|individual)$"),
    current_user: User = Depends(require_permission("reports.export")),
    service: RegistrationService = Depends(get_registration_service),
):
    """CSV download of every registration of one type"""
    header, rows = service.export_rows(event_id, current_user, type)
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(header)
    writer.writerows(rows)
    buffer.seek(0)
    return StreamingResponse(
        iter([buffer.getvalue()]),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="event-{event_id}-{type}-registrations.csv"'},
    )


@router.get("/{registration_type}/{registration_id}")
async def get_registration(
    event_id: int,
    registration_type: str,
    registration_id: int,
    current_user: User = Depends(require_permission("registrations.view")),
    service: RegistrationService = Depends(get_registration_service),
):
    return service.get_registration_detail(event_id, registration_type, registration_id, current_user)


@router.patch("/{registration_type}/{registration_id}")
async def update_registration(
    event_id: int,
    registration_type: str,
    registration_id: int,
    data: dict = Body(...),
    current_user: User = Depends(require_permission("registrations.edit")),
    service: RegistrationService = Depends(get_registration_service),
):
    """Body is validated against the group or individual update schema"""
    return service.update_registration(event_id, registration_type, registration_id, data, current_user)


@router.post("/{registration_type}/{registration_id}/cancel")
async def cancel_registration(
    event_id: int,
    registration_type: str,
    registration_id: int,
    data: CancelRegistrationRequest,
    current_user: User = Depends(require_permission("registrations.delete")),
    service: RegistrationService = Depends(get_registration_service),
):
    """Cancel (or hard delete) a registration and restore its capacity"""
    return service.cancel_registration(event_id, registration_type, registration_id, data, current_user)


# ============================================================================
# GROUP LEADER PORTAL
# ============================================================================


@portal_router.post("/link")
async def link_group_registration(
    data: PortalLinkRequest,
    current_user: User = Depends(get_current_user),
    service: RegistrationService = Depends(get_registration_service),
):
    """Claim a group registration with its access code"""
    return service.link_group(data.accessCode, current_user)


@portal_router.get("")
async def get_group_portal(
    current_user: User = Depends(get_current_user),
    service: RegistrationService = Depends(get_registration_service),
):
    return service.get_portal(current_user)


@portal_router.post("/pay")
async def pay_group_balance(
    data: PortalPaymentRequest,
    registration_id: Optional[int] = Query(None, alias="registrationId"),
    current_user: User = Depends(get_current_user),
    service: RegistrationService = Depends(get_registration_service),
):
    return await service.create_portal_payment(current_user, data.amount, registration_id)


@portal_router.post("/participants", status_code=201)
async def add_group_participant(
    data: ParticipantCreate,
    registration_id: Optional[int] = Query(None, alias="registrationId"),
    current_user: User = Depends(get_current_user),
    service: RegistrationService = Depends(get_registration_service),
):
    return service.add_participant(current_user, data, registration_id)
