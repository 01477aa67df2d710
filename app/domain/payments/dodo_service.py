"""Dodo Payments service - Card checkouts and refunds for registration payments"""

import logging
from typing import Optional

from dodopayments import AsyncDodoPayments  # type: ignore

from ...config import DODO_ADHOC_PRODUCT_ID, DODO_PAYMENTS_API_KEY, DODO_PAYMENTS_ENVIRONMENT

logger = logging.getLogger(__name__)


class PaymentProviderNotConfiguredError(Exception):
    """Raised when card payments are requested without Dodo credentials"""


def normalize_dodo_environment(env: Optional[str]) -> str:
    """Normalize Dodo environment value to expected format"""
    value = (env or "test_mode").strip().lower()
    if value in {"live", "production", "prod"}:
        return "live_mode"
    if value in {"test", "sandbox", "staging", "dev", "development"}:
        return "test_mode"
    if value in {"test_mode", "live_mode"}:
        return value
    logger.warning(f"Unknown DODO environment '{env}', defaulting to test_mode")
    return "test_mode"


def to_cents(amount: float) -> int:
    return int(round(float(amount) * 100))


class DodoPaymentsService:
    """Service for Dodo Payments API operations"""

    def __init__(self):
        self.api_key = DODO_PAYMENTS_API_KEY
        self.product_id = DODO_ADHOC_PRODUCT_ID
        self.environment = normalize_dodo_environment(DODO_PAYMENTS_ENVIRONMENT)
        self.client = None

        if self.api_key:
            self.client = AsyncDodoPayments(bearer_token=self.api_key, environment=self.environment)

    def is_available(self) -> bool:
        """Card checkouts need both a client and the pay-what-you-want product"""
        return self.client is not None and bool(self.product_id)

    async def create_checkout(
        self,
        amount: float,
        customer_email: str,
        customer_name: str,
        return_url: str,
        metadata: dict,
    ) -> dict:
        """
        Create a hosted checkout for an arbitrary dollar amount.

        Returns:
            {"checkoutId", "checkoutUrl"}
        """
        if not self.is_available():
            raise PaymentProviderNotConfiguredError("Card payments are not configured")

        # Metadata values must be strings
        session = await self.client.checkout_sessions.create(
            product_cart=[{"product_id": self.product_id, "quantity": 1, "amount": to_cents(amount)}],
            customer={"email": customer_email, "name": customer_name},
            metadata={k: str(v) for k, v in metadata.items() if v is not None},
            return_url=return_url,
        )
        checkout_url = getattr(session, "checkout_url", None)
        checkout_id = getattr(session, "session_id", None)
        logger.info(f"💳 Created checkout {checkout_id} for ${amount:.2f} ({customer_email})")
        return {"checkoutId": checkout_id, "checkoutUrl": checkout_url}

    async def create_refund(self, payment_id: str, amount: float, reason: Optional[str] = None) -> Optional[str]:
        """
        Refund part or all of a provider payment.

        Checkouts carry a single pay-what-you-want line item, so a partial
        refund is expressed as an amount against that item.

        Returns:
            The provider refund id
        """
        if not self.is_available():
            raise PaymentProviderNotConfiguredError("Card payments are not configured")

        refund = await self.client.refunds.create(
            payment_id=payment_id,
            items=[{"item_id": self.product_id, "amount": to_cents(amount)}],
            reason=reason,
        )
        refund_id = getattr(refund, "refund_id", None)
        logger.info(f"↩️ Refund {refund_id} of ${amount:.2f} created for payment {payment_id}")
        return refund_id


def get_dodo_service() -> DodoPaymentsService:
    """Dependency injection for DodoPaymentsService"""
    return DodoPaymentsService()
