"""Payment domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator

MANUAL_PAYMENT_METHODS = ("card", "check", "cash", "bank_transfer", "other")
REFUND_METHODS = ("card", "check", "cash", "other")


def _validate_registration_type(v):
    if v not in ("group", "individual"):
        raise ValueError("Registration type must be 'group' or 'individual'")
    return v


class ManualPaymentCreate(BaseModel):
    """Schema for recording a payment received outside the card checkout"""

    registrationId: int
    registrationType: str
    amount: float
    paymentMethod: str
    paymentDate: datetime
    checkNumber: Optional[str] = None
    cardLast4: Optional[str] = None
    transactionReference: Optional[str] = None
    notes: Optional[str] = None
    sendReceipt: bool = True

    check_registration_type = field_validator("registrationType")(_validate_registration_type)

    @field_validator("amount")
    @classmethod
    def validate_amount(cls, v):
        if v <= 0:
            raise ValueError("Amount must be greater than 0")
        return round(v, 2)

    @field_validator("paymentMethod")
    @classmethod
    def validate_method(cls, v):
        if v not in MANUAL_PAYMENT_METHODS:
            raise ValueError(f"Invalid payment method. Must be one of: {', '.join(MANUAL_PAYMENT_METHODS)}")
        return v

    @field_validator("cardLast4")
    @classmethod
    def validate_last4(cls, v):
        if v and (len(v) != 4 or not v.isdigit()):
            raise ValueError("Card last 4 must be 4 digits")
        return v


class RefundCreate(BaseModel):
    registrationId: int
    registrationType: str
    refundAmount: float
    refundMethod: str
    refundReason: str
    notes: Optional[str] = None

    check_registration_type = field_validator("registrationType")(_validate_registration_type)

    @field_validator("refundAmount")
    @classmethod
    def validate_amount(cls, v):
        if v <= 0:
            raise ValueError("Refund amount must be greater than 0")
        return round(v, 2)

    @field_validator("refundMethod")
    @classmethod
    def validate_method(cls, v):
        if v not in REFUND_METHODS:
            raise ValueError(f"Invalid refund method. Must be one of: {', '.join(REFUND_METHODS)}")
        return v


class PaymentResponse(BaseModel):
    id: int
    publicId: str
    registrationId: int
    registrationType: str
    amount: float
    paymentType: str
    paymentMethod: str
    paymentStatus: str
    checkNumber: Optional[str] = None
    cardLast4: Optional[str] = None
    transactionReference: Optional[str] = None
    notes: Optional[str] = None
    processedAt: Optional[datetime] = None
    createdAt: Optional[datetime] = None


class BalanceResponse(BaseModel):
    registrationId: int
    registrationType: str
    totalAmountDue: float
    amountPaid: float
    amountRemaining: float
    paymentStatus: str
    lastPaymentDate: Optional[datetime] = None
