"""Reports router - Report templates and standard event reports"""

import csv
import io

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from ...auth import require_permission
from ...database import get_db
from ...models import User
from .schemas import ExecuteReportRequest, ReportTemplateCreate, ReportTemplateUpdate
from .service import ReportService

router = APIRouter(prefix="/reports", tags=["Reports"])
event_router = APIRouter(prefix="/events/{event_id}/reports", tags=["Reports"])


def get_report_service(db: Session = Depends(get_db)) -> ReportService:
    """Dependency injection for ReportService"""
    return ReportService(db)


def rows_to_csv(rows: list[dict]) -> str:
    buffer = io.StringIO()
    if rows:
        writer = csv.DictWriter(buffer, fieldnames=list(rows[0].keys()))
        writer.writeheader()
        writer.writerows(rows)
    return buffer.getvalue()


# ============================================================================
# TEMPLATES
# ============================================================================


@router.get("/templates")
async def list_templates(
    current_user: User = Depends(require_permission("reports.view")),
    service: ReportService = Depends(get_report_service),
):
    """Public templates of the organization plus the caller's own"""
    return service.list_templates(current_user)


@router.post("/templates", status_code=201)
async def create_template(
    data: ReportTemplateCreate,
    current_user: User = Depends(require_permission("reports.view")),
    service: ReportService = Depends(get_report_service),
):
    return service.create_template(data, current_user)


@router.get("/templates/{template_id}")
async def get_template(
    template_id: int,
    current_user: User = Depends(require_permission("reports.view")),
    service: ReportService = Depends(get_report_service),
):
    return service.get_template(template_id, current_user)


@router.patch("/templates/{template_id}")
async def update_template(
    template_id: int,
    data: ReportTemplateUpdate,
    current_user: User = Depends(require_permission("reports.view")),
    service: ReportService = Depends(get_report_service),
):
    return service.update_template(template_id, data, current_user)


@router.delete("/templates/{template_id}")
async def delete_template(
    template_id: int,
    current_user: User = Depends(require_permission("reports.view")),
    service: ReportService = Depends(get_report_service),
):
    return service.delete_template(template_id, current_user)


@router.post("/templates/{template_id}/execute")
async def execute_template(
    template_id: int,
    data: ExecuteReportRequest,
    current_user: User = Depends(require_permission("reports.view")),
    service: ReportService = Depends(get_report_service),
):
    return service.execute_template(template_id, data, current_user)


# ============================================================================
# STANDARD REPORTS
# ============================================================================


@event_router.get("/{report_type}")
async def get_standard_report(
    event_id: int,
    report_type: str,
    format: str = Query("json", pattern="^(json|csv)$"),
    current_user: User = Depends(require_permission("reports.view")),
    service: ReportService = Depends(get_report_service),
):
    report = service.standard_report(event_id, report_type, current_user)
    if format == "csv":
        return StreamingResponse(
            iter([rows_to_csv(report["rows"])]),
            media_type="text/csv",
            headers={"Content-Disposition": f'attachment; filename="event-{event_id}-{report_type}.csv"'},
        )
    return report
