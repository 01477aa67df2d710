"""Payment repository - Database operations for payments, balances and refunds"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import Payment, PaymentBalance, Refund


class PaymentRepository:
    """Repository for payment database operations"""

    @staticmethod
    def list_payments(db: Session, event_id: int, status: Optional[str] = None) -> list[Payment]:
        query = db.query(Payment).filter(Payment.event_id == event_id)
        if status:
            query = query.filter(Payment.payment_status == status)
        return query.order_by(Payment.created_at.desc(), Payment.id.desc()).all()

    @staticmethod
    def list_balances(db: Session, event_id: int) -> list[PaymentBalance]:
        return db.query(PaymentBalance).filter(PaymentBalance.event_id == event_id).all()

    @staticmethod
    def get_payment(db: Session, event_id: int, payment_id: int) -> Optional[Payment]:
        return db.query(Payment).filter(Payment.id == payment_id, Payment.event_id == event_id).first()

    @staticmethod
    def get_by_provider_payment_id(db: Session, provider_payment_id: str) -> Optional[Payment]:
        return db.query(Payment).filter(Payment.provider_payment_id == provider_payment_id).first()

    @staticmethod
    def get_latest_card_payment(db: Session, registration_id: int, registration_type: str) -> Optional[Payment]:
        return (
            db.query(Payment)
            .filter(
                Payment.registration_id == registration_id,
                Payment.registration_type == registration_type,
                Payment.payment_status == "succeeded",
                Payment.provider_payment_id.isnot(None),
            )
            .order_by(Payment.processed_at.desc(), Payment.id.desc())
            .first()
        )

    @staticmethod
    def get_refund(db: Session, event_id: int, refund_id: int) -> Optional[Refund]:
        return db.query(Refund).filter(Refund.id == refund_id, Refund.event_id == event_id).first()

    @staticmethod
    def list_refunds(db: Session, event_id: int) -> list[Refund]:
        return db.query(Refund).filter(Refund.event_id == event_id).order_by(Refund.created_at.desc()).all()
