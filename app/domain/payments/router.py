"""Payment router - FastAPI endpoints for payments, refunds and the Dodo webhook"""

import json
import logging
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from ...auth import require_permission
from ...config import DODO_PAYMENTS_WEBHOOK_SECRET
from ...database import get_db
from ...email_service import send_payment_received_email
from ...models import User
from ...rate_limiter import create_rate_limiter
from ...webhook_security import verify_dodo_webhook
from .dodo_service import DodoPaymentsService, get_dodo_service
from .schemas import ManualPaymentCreate, RefundCreate
from .service import PaymentService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/events/{event_id}/payments", tags=["Payments"])
webhooks_router = APIRouter(prefix="/webhooks", tags=["Webhooks"])

rate_limit_payment_webhook = create_rate_limiter(limit=100, window_seconds=60, key_prefix="dodo_webhook")


def get_payment_service(
    db: Session = Depends(get_db), dodo: DodoPaymentsService = Depends(get_dodo_service)
) -> PaymentService:
    """Dependency injection for PaymentService"""
    return PaymentService(db, dodo)


# ============================================================================
# ADMIN
# ============================================================================


@router.get("")
async def list_payments(
    event_id: int,
    status: Optional[str] = Query(None),
    current_user: User = Depends(require_permission("payments.view")),
    service: PaymentService = Depends(get_payment_service),
):
    """Payments, refunds and per-registration balances for an event"""
    return service.list_payments(event_id, current_user, status)


@router.post("/manual", status_code=201)
async def record_manual_payment(
    event_id: int,
    data: ManualPaymentCreate,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(require_permission("payments.record_manual")),
    service: PaymentService = Depends(get_payment_service),
):
    result = service.record_manual_payment(event_id, data, current_user)
    email_args = result.pop("email")
    if data.sendReceipt:
        background_tasks.add_task(send_payment_received_email, **email_args)
    return {"success": True, **result}


@router.post("/{payment_id}/mark-received")
async def mark_check_received(
    event_id: int,
    payment_id: int,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(require_permission("payments.record_manual")),
    service: PaymentService = Depends(get_payment_service),
):
    """Mark a mailed check as received"""
    result = service.mark_check_received(event_id, payment_id, current_user)
    background_tasks.add_task(send_payment_received_email, **result.pop("email"))
    return {"success": True, **result}


@router.post("/refund")
async def process_refund(
    event_id: int,
    data: RefundCreate,
    current_user: User = Depends(require_permission("payments.refund")),
    service: PaymentService = Depends(get_payment_service),
):
    """Card refunds go through Dodo; other methods are recorded as pending until sent"""
    return await service.process_refund(event_id, data, current_user)


@router.post("/refunds/{refund_id}/complete")
async def complete_refund(
    event_id: int,
    refund_id: int,
    current_user: User = Depends(require_permission("payments.refund")),
    service: PaymentService = Depends(get_payment_service),
):
    return service.complete_refund(event_id, refund_id, current_user)


# ============================================================================
# DODO WEBHOOK
# ============================================================================


@webhooks_router.post("/dodo")
async def handle_dodo_webhook(
    request: Request,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    _: None = Depends(rate_limit_payment_webhook),
):
    """
    Verify signature and apply registration payment events.

    Headers:
      - 'webhook-id': Unique webhook ID
      - 'webhook-timestamp': Unix timestamp (seconds)
      - 'webhook-signature': 'v1,{base64(hmac_sha256(webhook-id.webhook-timestamp.payload))}'
    """
    _, raw_body = await verify_dodo_webhook(request, DODO_PAYMENTS_WEBHOOK_SECRET, raise_on_failure=True)
    webhook_id = request.headers.get("webhook-id", "unknown")

    try:
        payload = json.loads(raw_body.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.error(f"❌ Failed to parse webhook JSON: {e}")
        raise HTTPException(status_code=400, detail="Invalid JSON payload") from e

    event_type = payload.get("type")
    data = payload.get("data") or {}
    logger.info(f"🔔 Webhook received id={webhook_id} type={event_type}")

    if event_type not in ("payment.succeeded", "payment.failed"):
        return {"status": "ignored", "type": event_type}

    service = PaymentService(db)
    try:
        result = service.handle_payment_webhook(event_type, data)
    except Exception as e:
        logger.error(f"❌ Webhook {webhook_id} processing failed: {e}")
        db.rollback()
        raise HTTPException(status_code=500, detail="Webhook processing failed") from e

    email_args = result.pop("email", None)
    if email_args:
        background_tasks.add_task(send_payment_received_email, **email_args)
    return result
