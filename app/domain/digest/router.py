"""Cron router - Scheduler-triggered jobs"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from ...config import CRON_SECRET
from ...database import get_db
from ...webhook_security import constant_time_compare
from .service import run_weekly_digest

router = APIRouter(prefix="/cron", tags=["Cron"])


def verify_cron_secret(request: Request) -> None:
    """Cron callers authenticate with `Authorization: Bearer <CRON_SECRET>`"""
    header = request.headers.get("authorization") or ""
    if not CRON_SECRET or not constant_time_compare(header, f"Bearer {CRON_SECRET}"):
        raise HTTPException(status_code=401, detail="Unauthorized")


@router.post("/weekly-digest")
async def weekly_digest(
    org_id: Optional[int] = Query(None, alias="orgId"),
    test: bool = Query(False),
    _: None = Depends(verify_cron_secret),
    db: Session = Depends(get_db),
):
    return await run_weekly_digest(db, organization_id=org_id, test=test)
