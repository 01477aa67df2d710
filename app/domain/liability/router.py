"""Liability router - Public Poros form endpoints and admin review"""

from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request
from fastapi.responses import Response
from sqlalchemy.orm import Session

from ...auth import require_permission
from ...database import get_db
from ...email_service import send_liability_form_completed, send_parent_consent_request
from ...models import User
from ...rate_limiter import create_rate_limiter
from .schemas import AdultFormSubmit, CertificateReview, ClergyFormSubmit, ParentFormComplete, YouthU18Initiate
from .service import LiabilityService

router = APIRouter(prefix="/events/{event_id}/liability", tags=["Liability Forms"])
public_router = APIRouter(prefix="/public/liability", tags=["Liability Forms"])

rate_limit_forms = create_rate_limiter(limit=20, window_seconds=60, key_prefix="liability_forms")


def get_liability_service(db: Session = Depends(get_db)) -> LiabilityService:
    """Dependency injection for LiabilityService"""
    return LiabilityService(db)


def client_details(request: Request) -> tuple:
    """(ip address, user agent) recorded with a signature"""
    ip_address = request.headers.get("x-forwarded-for") or request.headers.get("x-real-ip") or "unknown"
    user_agent = request.headers.get("user-agent") or "unknown"
    return ip_address, user_agent


def queue_completion_emails(background_tasks: BackgroundTasks, emails: list[dict]) -> None:
    for email_args in emails:
        background_tasks.add_task(send_liability_form_completed, **email_args)


# ============================================================================
# PUBLIC
# ============================================================================


@public_router.post("/youth-u18/initiate", status_code=201)
async def initiate_youth_form(
    data: YouthU18Initiate,
    background_tasks: BackgroundTasks,
    service: LiabilityService = Depends(get_liability_service),
    _: None = Depends(rate_limit_forms),
):
    """Start an under-18 form; the parent receives a link to finish it"""
    response, email_args = service.initiate_youth_u18(data)
    background_tasks.add_task(send_parent_consent_request, **email_args)
    return response


@public_router.get("/parent/{token}")
async def get_parent_form(token: str, service: LiabilityService = Depends(get_liability_service)):
    return service.get_parent_form(token)


@public_router.post("/parent/{token}/complete")
async def complete_parent_form(
    token: str,
    data: ParentFormComplete,
    request: Request,
    background_tasks: BackgroundTasks,
    service: LiabilityService = Depends(get_liability_service),
    _: None = Depends(rate_limit_forms),
):
    ip_address, user_agent = client_details(request)
    response, emails = service.complete_parent_form(token, data, ip_address, user_agent)
    queue_completion_emails(background_tasks, emails)
    return response


@public_router.post("/adult", status_code=201)
async def submit_adult_form(
    data: AdultFormSubmit,
    request: Request,
    background_tasks: BackgroundTasks,
    service: LiabilityService = Depends(get_liability_service),
    _: None = Depends(rate_limit_forms),
):
    """Youth 18+ and chaperones"""
    ip_address, user_agent = client_details(request)
    response, emails = service.submit_adult(data, ip_address, user_agent)
    queue_completion_emails(background_tasks, emails)
    return response


@public_router.post("/clergy", status_code=201)
async def submit_clergy_form(
    data: ClergyFormSubmit,
    request: Request,
    background_tasks: BackgroundTasks,
    service: LiabilityService = Depends(get_liability_service),
    _: None = Depends(rate_limit_forms),
):
    ip_address, user_agent = client_details(request)
    response, emails = service.submit_clergy(data, ip_address, user_agent)
    queue_completion_emails(background_tasks, emails)
    return response


# ============================================================================
# ADMIN
# ============================================================================


@router.get("/forms")
async def list_forms(
    event_id: int,
    completed: Optional[bool] = Query(None),
    form_type: Optional[str] = Query(None, alias="formType"),
    current_user: User = Depends(require_permission("forms.view")),
    service: LiabilityService = Depends(get_liability_service),
):
    return service.list_forms(event_id, current_user, completed, form_type)


@router.get("/forms/{form_id}/pdf")
async def download_form_pdf(
    event_id: int,
    form_id: int,
    current_user: User = Depends(require_permission("forms.view")),
    service: LiabilityService = Depends(get_liability_service),
):
    pdf_bytes, filename = service.get_form_pdf(event_id, form_id, current_user)
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/certificates")
async def list_certificates(
    event_id: int,
    status: Optional[str] = Query(None),
    current_user: User = Depends(require_permission("forms.view")),
    service: LiabilityService = Depends(get_liability_service),
):
    return service.list_certificates(event_id, current_user, status)


@router.patch("/certificates/{certificate_id}")
async def review_certificate(
    event_id: int,
    certificate_id: int,
    data: CertificateReview,
    current_user: User = Depends(require_permission("forms.edit")),
    service: LiabilityService = Depends(get_liability_service),
):
    """Verify or reject a safe-environment certificate"""
    return service.review_certificate(event_id, certificate_id, data, current_user)
