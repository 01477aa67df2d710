"""
Webhook Security Module

Signature verification for inbound webhooks and scheduler calls:
- Constant-time signature comparison
- Timestamp validation against replays
- Standard Webhooks (Dodo Payments) HMAC-SHA256 signatures
"""

import base64
import binascii
import hashlib
import hmac
import logging
import time
from typing import Optional

from fastapi import HTTPException, Request

logger = logging.getLogger(__name__)

# Maximum age of webhook in seconds (5 minutes)
MAX_WEBHOOK_AGE_SECONDS = 300


class WebhookSignatureError(Exception):
    """Raised when webhook signature verification fails"""

    pass


def constant_time_compare(a: Optional[str], b: Optional[str]) -> bool:
    """Compare two strings in constant time"""
    if not a or not b:
        return False
    return hmac.compare_digest(a.encode("utf-8"), b.encode("utf-8"))


def extract_signing_key(secret: str) -> bytes:
    """
    Signing key bytes from a Standard Webhooks secret.
    "whsec_BASE64KEY" -> base64-decoded key; anything that is not base64 is used as raw bytes.
    """
    encoded = secret[6:] if secret.startswith("whsec_") else secret
    try:
        return base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError):
        return secret.encode("utf-8")


def verify_timestamp(timestamp: Optional[str], max_age: int = MAX_WEBHOOK_AGE_SECONDS) -> bool:
    """Reject timestamps further than max_age seconds from now"""
    try:
        age = abs(int(time.time()) - int(timestamp))
    except (ValueError, TypeError):
        logger.warning(f"🚫 Invalid webhook timestamp format: {timestamp}")
        return False

    if age > max_age:
        logger.warning(f"🚫 Webhook timestamp too old: {age}s (max: {max_age}s)")
        return False
    return True


def create_webhook_signature(secret: str, webhook_id: str, timestamp: str, payload: bytes) -> str:
    """Standard Webhooks signature header value: "v1,<base64 hmac>" over id.timestamp.payload"""
    signed_message = b".".join([webhook_id.encode("utf-8"), timestamp.encode("utf-8"), payload])
    digest = hmac.new(extract_signing_key(secret), signed_message, hashlib.sha256).digest()
    return f"v1,{base64.b64encode(digest).decode('utf-8')}"


def verify_standard_webhook(
    secret: str, webhook_id: str, timestamp: str, signature_header: str, payload: bytes
) -> None:
    """Raise WebhookSignatureError unless one of the v1 signatures matches"""
    if not webhook_id or not timestamp or not signature_header:
        raise WebhookSignatureError("Missing webhook signature headers")

    if not verify_timestamp(timestamp):
        raise WebhookSignatureError("Webhook timestamp expired")

    expected = create_webhook_signature(secret, webhook_id, timestamp, payload)

    # The header may carry several space-separated signatures during key rotation
    for candidate in signature_header.split(" "):
        if candidate.startswith("v1,") and constant_time_compare(expected, candidate):
            return

    raise WebhookSignatureError("Invalid webhook signature")


async def verify_dodo_webhook(
    request: Request, secret: Optional[str], raise_on_failure: bool = True
) -> tuple[bool, bytes]:
    """
    Verify a Dodo Payments webhook (Standard Webhooks signing scheme).

    Returns:
        Tuple of (is_valid, raw_body)
    """
    # Raw body BEFORE any parsing - the signature covers exact bytes
    raw_body = await request.body()
    webhook_id = request.headers.get("webhook-id", "")

    logger.info(f"📥 Dodo webhook received: id={webhook_id}")

    if not secret:
        logger.error("❌ DODO_PAYMENTS_WEBHOOK_SECRET not configured")
        if raise_on_failure:
            raise HTTPException(status_code=500, detail="Webhook secret not configured")
        return False, raw_body

    try:
        verify_standard_webhook(
            secret,
            webhook_id,
            request.headers.get("webhook-timestamp", ""),
            request.headers.get("webhook-signature", ""),
            raw_body,
        )
    except WebhookSignatureError as e:
        logger.error(f"❌ Dodo webhook verification failed for {webhook_id}: {e}")
        if raise_on_failure:
            raise HTTPException(status_code=401, detail=str(e)) from e
        return False, raw_body

    logger.info(f"✅ Dodo webhook signature verified: {webhook_id}")
    return True, raw_body
