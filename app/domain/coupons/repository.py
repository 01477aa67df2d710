"""Coupon repository - Database operations for coupons and redemptions"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import Coupon, CouponRedemption


class CouponRepository:
    """Repository for coupon database operations"""

    @staticmethod
    def list_coupons(db: Session, event_id: int) -> list[Coupon]:
        return db.query(Coupon).filter(Coupon.event_id == event_id).order_by(Coupon.created_at.desc()).all()

    @staticmethod
    def get_coupon(db: Session, event_id: int, coupon_id: int) -> Optional[Coupon]:
        return db.query(Coupon).filter(Coupon.id == coupon_id, Coupon.event_id == event_id).first()

    @staticmethod
    def get_by_code(db: Session, event_id: int, code: str) -> Optional[Coupon]:
        return db.query(Coupon).filter(Coupon.event_id == event_id, Coupon.code == code.strip().upper()).first()

    @staticmethod
    def create(db: Session, **data) -> Coupon:
        coupon = Coupon(**data)
        db.add(coupon)
        db.commit()
        db.refresh(coupon)
        return coupon

    @staticmethod
    def add_redemption(db: Session, **data) -> CouponRedemption:
        """Caller commits"""
        redemption = CouponRedemption(**data)
        db.add(redemption)
        return redemption

    @staticmethod
    def count_redemptions(db: Session, coupon_id: int) -> int:
        return db.query(CouponRedemption).filter(CouponRedemption.coupon_id == coupon_id).count()
