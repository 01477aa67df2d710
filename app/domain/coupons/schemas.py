"""Coupon domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator, model_validator

from ...shared.validators import validate_email, validate_required_text

DISCOUNT_TYPES = ("percentage", "fixed")
USAGE_LIMIT_TYPES = ("unlimited", "single_use", "limited")


class CouponCreate(BaseModel):
    name: str
    code: str
    discountType: str
    discountValue: float
    usageLimitType: str = "unlimited"
    maxUses: Optional[int] = None
    isStackable: bool = False
    restrictToEmail: Optional[str] = None
    expirationDate: Optional[datetime] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        return validate_required_text(v, "Coupon name")

    @field_validator("code")
    @classmethod
    def normalize_code(cls, v):
        return validate_required_text(v, "Coupon code").upper()

    @field_validator("discountType")
    @classmethod
    def validate_discount_type(cls, v):
        if v not in DISCOUNT_TYPES:
            raise ValueError("Discount type must be 'percentage' or 'fixed'")
        return v

    @field_validator("usageLimitType")
    @classmethod
    def validate_usage_limit_type(cls, v):
        if v not in USAGE_LIMIT_TYPES:
            raise ValueError(f"Usage limit type must be one of: {', '.join(USAGE_LIMIT_TYPES)}")
        return v

    @field_validator("restrictToEmail")
    @classmethod
    def validate_restrict_email(cls, v):
        return validate_email(v)

    @model_validator(mode="after")
    def validate_values(self):
        if self.discountValue <= 0:
            raise ValueError("Discount value must be greater than 0")
        if self.discountType == "percentage" and self.discountValue > 100:
            raise ValueError("Percentage discount cannot exceed 100")
        if self.usageLimitType == "limited" and not self.maxUses:
            raise ValueError("Max uses is required for limited coupons")
        return self


class CouponUpdate(BaseModel):
    name: Optional[str] = None
    discountValue: Optional[float] = None
    maxUses: Optional[int] = None
    isStackable: Optional[bool] = None
    restrictToEmail: Optional[str] = None
    expirationDate: Optional[datetime] = None
    active: Optional[bool] = None

    @field_validator("restrictToEmail")
    @classmethod
    def validate_restrict_email(cls, v):
        return validate_email(v)


class CouponValidateRequest(BaseModel):
    code: str
    email: Optional[str] = None
    subtotal: float = 0


class CouponResponse(BaseModel):
    id: int
    name: str
    code: str
    discountType: str
    discountValue: float
    usageLimitType: str
    maxUses: Optional[int] = None
    currentUses: int
    isStackable: bool
    restrictToEmail: Optional[str] = None
    expirationDate: Optional[datetime] = None
    active: bool
    createdAt: Optional[datetime] = None
