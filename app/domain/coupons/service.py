"""Coupon service - Coupon management, validation and redemption"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import Coupon, User
from ...pricing import calculate_coupon_discount
from ...shared.event_access import get_event_for_user, get_public_event
from ...shared.validators import to_naive_utc
from .repository import CouponRepository
from .schemas import CouponCreate, CouponUpdate, CouponValidateRequest

logger = logging.getLogger(__name__)


def coupon_to_dict(coupon: Coupon) -> dict:
    return {
        "id": coupon.id,
        "name": coupon.name,
        "code": coupon.code,
        "discountType": coupon.discount_type,
        "discountValue": coupon.discount_value,
        "usageLimitType": coupon.usage_limit_type,
        "maxUses": coupon.max_uses,
        "currentUses": coupon.current_uses,
        "isStackable": coupon.is_stackable,
        "restrictToEmail": coupon.restrict_to_email,
        "expirationDate": coupon.expiration_date,
        "active": coupon.active,
        "createdAt": coupon.created_at,
    }


def check_coupon(coupon: Optional[Coupon], email: Optional[str], now: Optional[datetime] = None) -> Optional[str]:
    """Returns the rejection message, or None when the coupon can be used"""
    now = now or datetime.utcnow()
    if coupon is None or not coupon.active:
        return "Invalid coupon code"
    if coupon.expiration_date and now > coupon.expiration_date:
        return "This coupon has expired"
    if coupon.usage_limit_type == "single_use" and coupon.current_uses >= 1:
        return "This coupon has reached its usage limit"
    if coupon.usage_limit_type == "limited" and coupon.current_uses >= (coupon.max_uses or 0):
        return "This coupon has reached its usage limit"
    if coupon.restrict_to_email and (email or "").strip().lower() != coupon.restrict_to_email.lower():
        return "This coupon is not valid for this email address"
    return None


class CouponService:
    """Service layer for coupon business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = CouponRepository()

    # ========================================================================
    # ADMIN
    # ========================================================================

    def list_coupons(self, event_id: int, user: User) -> list[Coupon]:
        event = get_event_for_user(self.db, event_id, user)
        return self.repo.list_coupons(self.db, event.id)

    def create_coupon(self, event_id: int, data: CouponCreate, user: User) -> Coupon:
        event = get_event_for_user(self.db, event_id, user)
        if self.repo.get_by_code(self.db, event.id, data.code):
            raise HTTPException(status_code=400, detail="A coupon with this code already exists for this event")

        coupon = self.repo.create(
            self.db,
            event_id=event.id,
            name=data.name,
            code=data.code,
            discount_type=data.discountType,
            discount_value=data.discountValue,
            usage_limit_type=data.usageLimitType,
            max_uses=data.maxUses if data.usageLimitType == "limited" else None,
            is_stackable=data.isStackable,
            restrict_to_email=data.restrictToEmail,
            expiration_date=to_naive_utc(data.expirationDate),
        )
        logger.info(f"✅ Created coupon {coupon.code} for event {event.id}")
        return coupon

    def _get_coupon(self, event_id: int, coupon_id: int, user: User) -> Coupon:
        event = get_event_for_user(self.db, event_id, user)
        coupon = self.repo.get_coupon(self.db, event.id, coupon_id)
        if not coupon:
            raise HTTPException(status_code=404, detail="Coupon not found")
        return coupon

    def update_coupon(self, event_id: int, coupon_id: int, data: CouponUpdate, user: User) -> Coupon:
        coupon = self._get_coupon(event_id, coupon_id, user)
        updates = data.model_dump(exclude_unset=True)

        if "discountValue" in updates:
            value = updates["discountValue"]
            if value is None or value <= 0:
                raise HTTPException(status_code=400, detail="Discount value must be greater than 0")
            if coupon.discount_type == "percentage" and value > 100:
                raise HTTPException(status_code=400, detail="Percentage discount cannot exceed 100")
            coupon.discount_value = value
        if "name" in updates and updates["name"]:
            coupon.name = updates["name"].strip()
        if "maxUses" in updates:
            coupon.max_uses = updates["maxUses"]
        if "isStackable" in updates:
            coupon.is_stackable = bool(updates["isStackable"])
        if "restrictToEmail" in updates:
            coupon.restrict_to_email = updates["restrictToEmail"]
        if "expirationDate" in updates:
            coupon.expiration_date = to_naive_utc(updates["expirationDate"])
        if "active" in updates and updates["active"] is not None:
            coupon.active = updates["active"]

        self.db.commit()
        self.db.refresh(coupon)
        return coupon

    def delete_coupon(self, event_id: int, coupon_id: int, user: User) -> dict:
        coupon = self._get_coupon(event_id, coupon_id, user)
        uses = max(coupon.current_uses, self.repo.count_redemptions(self.db, coupon.id))
        if uses > 0:
            raise HTTPException(
                status_code=400,
                detail=f"Cannot delete coupon that has been used {uses} time(s). Deactivate it instead.",
            )
        self.db.delete(coupon)
        self.db.commit()
        logger.info(f"🗑️ Deleted coupon {coupon_id}")
        return {"message": "Coupon deleted"}

    # ========================================================================
    # VALIDATION & REDEMPTION
    # ========================================================================

    def validate_for_event(self, event_id: int, code: str, email: Optional[str], subtotal: float) -> dict:
        coupon = self.repo.get_by_code(self.db, event_id, code)
        error = check_coupon(coupon, email)
        if error:
            return {"valid": False, "discountAmount": 0, "message": error, "coupon": None}

        discount = calculate_coupon_discount(subtotal, coupon.discount_type, coupon.discount_value)
        return {
            "valid": True,
            "discountAmount": discount,
            "message": f"Coupon applied: ${discount:.2f} off",
            "coupon": {
                "code": coupon.code,
                "name": coupon.name,
                "discountType": coupon.discount_type,
                "discountValue": coupon.discount_value,
            },
        }

    def validate_public(self, public_id: str, data: CouponValidateRequest) -> dict:
        event = get_public_event(self.db, public_id)
        return self.validate_for_event(event.id, data.code, data.email, data.subtotal)

    def redeem(
        self, event_id: int, code: str, email: Optional[str], subtotal: float,
        registration_id: int, registration_type: str,
    ) -> float:
        """
        Apply a coupon to a new registration and record the redemption.
        Raises 400 when the coupon cannot be used; caller commits.
        """
        coupon = self.repo.get_by_code(self.db, event_id, code)
        error = check_coupon(coupon, email)
        if error:
            raise HTTPException(status_code=400, detail=error)

        discount = calculate_coupon_discount(subtotal, coupon.discount_type, coupon.discount_value)
        coupon.current_uses += 1
        self.repo.add_redemption(
            self.db,
            coupon_id=coupon.id,
            registration_id=registration_id,
            registration_type=registration_type,
            discount_amount=discount,
        )
        logger.info(f"🎟️ Coupon {coupon.code} redeemed for ${discount:.2f} on {registration_type} {registration_id}")
        return discount
