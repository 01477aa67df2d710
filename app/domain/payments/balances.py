"""Payment balance bookkeeping shared by registrations, payments and webhooks"""

from datetime import datetime
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ...models import Payment, PaymentBalance
from ...pricing import round_money

REGISTRATION_TYPES = ("group", "individual")


def recalculate_balance(balance: PaymentBalance) -> PaymentBalance:
    """remaining = total - paid; status follows from the two"""
    balance.amount_paid = round_money(balance.amount_paid)
    balance.amount_remaining = round_money(balance.total_amount_due - balance.amount_paid)

    if balance.amount_remaining == 0:
        balance.payment_status = "paid_full"
    elif balance.amount_remaining < 0:
        balance.payment_status = "overpaid"
    elif balance.amount_paid > 0:
        balance.payment_status = "partial"
    else:
        balance.payment_status = "unpaid"
    return balance


def get_balance(db: Session, registration_id: int, registration_type: str) -> Optional[PaymentBalance]:
    return (
        db.query(PaymentBalance)
        .filter(
            PaymentBalance.registration_id == registration_id,
            PaymentBalance.registration_type == registration_type,
        )
        .first()
    )


def apply_payment(balance: PaymentBalance, amount: float, paid_at: Optional[datetime] = None) -> PaymentBalance:
    balance.amount_paid = (balance.amount_paid or 0) + amount
    balance.last_payment_date = paid_at or datetime.utcnow()
    return recalculate_balance(balance)


def total_succeeded(db: Session, registration_id: int, registration_type: str) -> float:
    total = (
        db.query(func.coalesce(func.sum(Payment.amount), 0))
        .filter(
            Payment.registration_id == registration_id,
            Payment.registration_type == registration_type,
            Payment.payment_status == "succeeded",
        )
        .scalar()
    )
    return round_money(total)


def payment_to_dict(payment: Payment) -> dict:
    return {
        "id": payment.id,
        "publicId": payment.public_id,
        "registrationId": payment.registration_id,
        "registrationType": payment.registration_type,
        "amount": payment.amount,
        "paymentType": payment.payment_type,
        "paymentMethod": payment.payment_method,
        "paymentStatus": payment.payment_status,
        "checkNumber": payment.check_number,
        "cardLast4": payment.card_last4,
        "transactionReference": payment.transaction_reference,
        "notes": payment.notes,
        "processedAt": payment.processed_at,
        "createdAt": payment.created_at,
    }


def balance_to_dict(balance: Optional[PaymentBalance]) -> Optional[dict]:
    if balance is None:
        return None
    return {
        "registrationId": balance.registration_id,
        "registrationType": balance.registration_type,
        "totalAmountDue": balance.total_amount_due,
        "amountPaid": balance.amount_paid,
        "amountRemaining": balance.amount_remaining,
        "paymentStatus": balance.payment_status,
        "lastPaymentDate": balance.last_payment_date,
    }
