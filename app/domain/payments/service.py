"""Payment service - Manual payments, check receipts, refunds and Dodo webhook processing"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import Event, Organization, Payment, PaymentBalance, Refund, User
from ...pricing import round_money
from ...shared.event_access import get_event_for_user
from ...shared.validators import to_naive_utc
from ..registrations.repository import Registration, RegistrationRepository
from .balances import apply_payment, balance_to_dict, get_balance, payment_to_dict, recalculate_balance
from .dodo_service import DodoPaymentsService, PaymentProviderNotConfiguredError
from .repository import PaymentRepository
from .schemas import ManualPaymentCreate, RefundCreate

logger = logging.getLogger(__name__)


def registration_contact(registration: Registration, registration_type: str) -> tuple:
    """(email, display name) of whoever pays for a registration"""
    if registration_type == "group":
        return registration.group_leader_email, registration.group_leader_name
    return registration.email, f"{registration.first_name} {registration.last_name}"


class PaymentService:
    """Service layer for payment business logic"""

    def __init__(self, db: Session, dodo: Optional[DodoPaymentsService] = None):
        self.db = db
        self.repo = PaymentRepository()
        self.registrations = RegistrationRepository()
        self.dodo = dodo

    def _receipt_email_args(self, event: Event, registration, registration_type: str, payment, balance) -> dict:
        """Plain values for send_payment_received_email"""
        email, name = registration_contact(registration, registration_type)
        organization = self.db.get(Organization, event.organization_id)
        return dict(
            organization_id=event.organization_id,
            event_id=event.id,
            registration_id=registration.id,
            registration_type=registration_type,
            to=email,
            recipient_name=name,
            event_name=event.name,
            amount=payment.amount,
            payment_method=payment.payment_method,
            amount_paid=balance.amount_paid,
            amount_remaining=balance.amount_remaining,
            organization_name=organization.name if organization else None,
        )

    def _get_registration_and_balance(self, event_id: int, registration_type: str, registration_id: int):
        registration = self.registrations.get_registration(self.db, event_id, registration_type, registration_id)
        if not registration:
            raise HTTPException(status_code=404, detail="Registration not found")
        balance = get_balance(self.db, registration.id, registration_type)
        if not balance:
            raise HTTPException(status_code=404, detail="Payment balance not found for this registration")
        return registration, balance

    # ========================================================================
    # LISTING
    # ========================================================================

    def list_payments(self, event_id: int, user: User, status: Optional[str] = None) -> dict:
        event = get_event_for_user(self.db, event_id, user)
        payments = self.repo.list_payments(self.db, event.id, status)
        balances = self.repo.list_balances(self.db, event.id)
        refunds = self.repo.list_refunds(self.db, event.id)

        return {
            "payments": [payment_to_dict(p) for p in payments],
            "balances": [balance_to_dict(b) for b in balances],
            "refunds": [
                {
                    "id": r.id,
                    "registrationId": r.registration_id,
                    "registrationType": r.registration_type,
                    "refundAmount": r.refund_amount,
                    "refundMethod": r.refund_method,
                    "refundReason": r.refund_reason,
                    "status": r.status,
                    "createdAt": r.created_at,
                }
                for r in refunds
            ],
            "summary": {
                "totalDue": round_money(sum(b.total_amount_due for b in balances)),
                "totalPaid": round_money(sum(b.amount_paid for b in balances)),
                "totalRemaining": round_money(sum(max(0, b.amount_remaining) for b in balances)),
                "pendingChecks": sum(
                    1 for p in payments if p.payment_method == "check" and p.payment_status == "pending"
                ),
            },
        }

    # ========================================================================
    # MANUAL PAYMENTS
    # ========================================================================

    def record_manual_payment(self, event_id: int, data: ManualPaymentCreate, user: User) -> dict:
        """
        Record a check/cash/transfer payment and update the balance.
        Returns the payment, the new balance and email arguments for the receipt.
        """
        event = get_event_for_user(self.db, event_id, user)
        payment_date = to_naive_utc(data.paymentDate)
        if payment_date > datetime.utcnow():
            raise HTTPException(status_code=400, detail="Payment date cannot be in the future")

        registration, balance = self._get_registration_and_balance(
            event.id, data.registrationType, data.registrationId
        )

        logger.info(
            f"📥 Recording ${data.amount:.2f} {data.paymentMethod} payment for "
            f"{data.registrationType} registration {registration.id}"
        )
        try:
            payment = Payment(
                event_id=event.id,
                organization_id=event.organization_id,
                registration_id=registration.id,
                registration_type=data.registrationType,
                amount=data.amount,
                payment_type="partial",
                payment_method=data.paymentMethod,
                payment_status="succeeded",
                check_number=data.checkNumber,
                card_last4=data.cardLast4,
                transaction_reference=data.transactionReference,
                notes=data.notes,
                recorded_by_id=user.id,
                processed_at=payment_date,
            )
            self.db.add(payment)
            apply_payment(balance, data.amount, payment_date)
            self.registrations.add_edit(
                self.db,
                event_id=event.id,
                registration_id=registration.id,
                registration_type=data.registrationType,
                edited_by_id=user.id,
                edit_type="payment_recorded",
                changes={"amount": data.amount, "paymentMethod": data.paymentMethod},
                notes=data.notes,
            )
            self.db.commit()
            self.db.refresh(payment)
        except Exception as e:
            logger.error(f"❌ Failed to record payment: {e}")
            self.db.rollback()
            raise HTTPException(status_code=500, detail="Failed to record payment")

        logger.info(f"✅ Payment {payment.id} recorded, balance now ${balance.amount_remaining:.2f}")
        return {
            "payment": payment_to_dict(payment),
            "balance": balance_to_dict(balance),
            "email": self._receipt_email_args(event, registration, data.registrationType, payment, balance),
        }

    def mark_check_received(self, event_id: int, payment_id: int, user: User) -> dict:
        event = get_event_for_user(self.db, event_id, user)
        payment = self.repo.get_payment(self.db, event.id, payment_id)
        if not payment:
            raise HTTPException(status_code=404, detail="Payment not found")
        if payment.payment_method != "check":
            raise HTTPException(status_code=400, detail="Only check payments can be marked as received")
        if payment.payment_status != "pending":
            raise HTTPException(status_code=400, detail="This payment has already been processed")

        registration, balance = self._get_registration_and_balance(
            event.id, payment.registration_type, payment.registration_id
        )

        now = datetime.utcnow()
        payment.payment_status = "succeeded"
        payment.processed_at = now
        payment.recorded_by_id = user.id
        apply_payment(balance, payment.amount, now)
        if registration.registration_status == "pending_payment":
            registration.registration_status = "complete"
        self.db.commit()

        logger.info(f"✅ Check payment {payment.id} received (${payment.amount:.2f})")
        return {
            "payment": payment_to_dict(payment),
            "balance": balance_to_dict(balance),
            "email": self._receipt_email_args(event, registration, payment.registration_type, payment, balance),
        }

    # ========================================================================
    # REFUNDS
    # ========================================================================

    async def process_refund(self, event_id: int, data: RefundCreate, user: User) -> dict:
        event = get_event_for_user(self.db, event_id, user)
        registration, balance = self._get_registration_and_balance(
            event.id, data.registrationType, data.registrationId
        )

        if data.refundAmount > round_money(balance.amount_paid):
            raise HTTPException(status_code=400, detail="Refund amount exceeds amount paid")

        original_payment = None
        provider_refund_id = None
        status = "pending"

        if data.refundMethod == "card":
            original_payment = self.repo.get_latest_card_payment(self.db, registration.id, data.registrationType)
            if not original_payment:
                raise HTTPException(status_code=400, detail="No card payment found to refund")
            if data.refundAmount > round_money(original_payment.amount):
                raise HTTPException(
                    status_code=400,
                    detail=f"Refund amount exceeds the card payment of ${original_payment.amount:.2f}",
                )
            try:
                provider_refund_id = await self.dodo.create_refund(
                    original_payment.provider_payment_id, data.refundAmount, reason=data.refundReason
                )
            except PaymentProviderNotConfiguredError:
                raise HTTPException(status_code=503, detail="Card payments are not configured")
            except Exception as e:
                logger.error(f"❌ Provider refund failed for payment {original_payment.id}: {e}")
                raise HTTPException(status_code=502, detail="The payment provider rejected the refund")
            status = "completed"

        try:
            refund = Refund(
                event_id=event.id,
                registration_id=registration.id,
                registration_type=data.registrationType,
                payment_id=original_payment.id if original_payment else None,
                refund_amount=data.refundAmount,
                refund_method=data.refundMethod,
                refund_reason=data.refundReason,
                notes=data.notes,
                status=status,
                provider_refund_id=provider_refund_id,
                processed_by_id=user.id,
            )
            self.db.add(refund)

            balance.amount_paid = balance.amount_paid - data.refundAmount
            recalculate_balance(balance)

            self.registrations.add_edit(
                self.db,
                event_id=event.id,
                registration_id=registration.id,
                registration_type=data.registrationType,
                edited_by_id=user.id,
                edit_type="refund_processed",
                changes={
                    "refundAmount": data.refundAmount,
                    "refundMethod": data.refundMethod,
                    "refundReason": data.refundReason,
                },
                notes=data.notes,
            )
            self.db.commit()
            self.db.refresh(refund)
        except Exception as e:
            logger.error(f"❌ Failed to save refund: {e}")
            self.db.rollback()
            raise HTTPException(status_code=500, detail="Failed to process refund")

        logger.info(f"↩️ Refund {refund.id} of ${data.refundAmount:.2f} ({status})")
        return {
            "success": True,
            "refundId": refund.id,
            "status": refund.status,
            "balance": balance_to_dict(balance),
        }

    def complete_refund(self, event_id: int, refund_id: int, user: User) -> dict:
        """Mark a manual (check/cash) refund as sent"""
        event = get_event_for_user(self.db, event_id, user)
        refund = self.repo.get_refund(self.db, event.id, refund_id)
        if not refund:
            raise HTTPException(status_code=404, detail="Refund not found")
        if refund.status == "completed":
            raise HTTPException(status_code=400, detail="Refund is already completed")
        refund.status = "completed"
        self.db.commit()
        return {"success": True, "refundId": refund.id, "status": refund.status}

    # ========================================================================
    # WEBHOOK
    # ========================================================================

    def handle_payment_webhook(self, event_type: str, data: dict) -> dict:
        """
        Apply a Dodo payment event to the registration it was created for.
        Returns a status dict; "email" holds receipt arguments when one should be sent.
        """
        meta = data.get("metadata") or {}
        registration_type = meta.get("registration_type")
        try:
            registration_id = int(meta.get("registration_id"))
            event_id = int(meta.get("event_id"))
        except (TypeError, ValueError):
            logger.warning(f"⚠️ {event_type} without registration metadata, ignoring")
            return {"status": "ignored"}

        provider_payment_id = data.get("payment_id")
        event = self.db.get(Event, event_id)
        registration = self.registrations.get_registration(self.db, event_id, registration_type, registration_id)
        if not event or not registration:
            logger.warning(f"⚠️ Webhook for unknown registration {registration_type}/{registration_id}")
            return {"status": "ignored"}

        pending = None
        if meta.get("payment_record_id"):
            pending = (
                self.db.query(Payment)
                .filter(
                    Payment.id == int(meta["payment_record_id"]),
                    Payment.registration_id == registration.id,
                    Payment.registration_type == registration_type,
                )
                .first()
            )

        if event_type == "payment.failed":
            if pending and pending.payment_status == "pending":
                pending.payment_status = "failed"
                pending.provider_payment_id = provider_payment_id
                self.db.commit()
            logger.warning(f"⚠️ Card payment failed for {registration_type} registration {registration.id}")
            return {"status": "failed_recorded"}

        if provider_payment_id and self.repo.get_by_provider_payment_id(self.db, provider_payment_id):
            logger.info(f"🔄 Payment {provider_payment_id} already processed, skipping")
            return {"status": "duplicate"}

        if data.get("total_amount") is not None:
            amount = round_money(int(data["total_amount"]) / 100)
        elif pending:
            amount = pending.amount
        else:
            logger.warning(f"⚠️ Webhook payment {provider_payment_id} has no amount, ignoring")
            return {"status": "ignored"}

        balance = get_balance(self.db, registration.id, registration_type)
        now = datetime.utcnow()

        if pending is None or pending.payment_status != "pending":
            pending = Payment(
                event_id=event.id,
                organization_id=event.organization_id,
                registration_id=registration.id,
                registration_type=registration_type,
                payment_type=meta.get("payment_type") or "balance",
                payment_method="card",
            )
            self.db.add(pending)

        pending.amount = amount
        pending.payment_status = "succeeded"
        pending.provider_payment_id = provider_payment_id
        pending.provider_checkout_id = data.get("checkout_session_id") or pending.provider_checkout_id
        pending.card_last4 = (data.get("card_last_four") or "")[-4:] or None
        pending.processed_at = now

        if balance:
            apply_payment(balance, amount, now)
        if registration.registration_status in ("incomplete", "pending_payment"):
            registration.registration_status = "complete"

        self.db.commit()
        logger.info(
            f"✅ Card payment {provider_payment_id} (${amount:.2f}) applied to "
            f"{registration_type} registration {registration.id}"
        )

        result = {"status": "processed", "paymentId": pending.id}
        if balance:
            result["email"] = self._receipt_email_args(event, registration, registration_type, pending, balance)
        return result
