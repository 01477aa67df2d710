"""Shared validation utilities"""

import re
import uuid
from datetime import datetime, timezone
from typing import Optional

T_SHIRT_SIZES = ("YXS", "YS", "YM", "YL", "XS", "S", "M", "L", "XL", "2XL", "3XL", "4XL")
GENDERS = ("male", "female")


def validate_uuid(value: str) -> bool:
    """Validate UUID format"""
    try:
        uuid.UUID(value)
        return True
    except (ValueError, AttributeError, TypeError):
        return False


def validate_us_phone(phone: Optional[str]) -> Optional[str]:
    """
    Validate and normalize US phone number to E.164 format.

    Args:
        phone: Phone number string in various formats

    Returns:
        Normalized phone number in E.164 format (+1XXXXXXXXXX)

    Raises:
        ValueError: If phone number is invalid
    """
    if not phone:
        return phone

    # Remove all non-digit characters
    digits = re.sub(r"\D", "", phone)

    # Handle +1 prefix
    if digits.startswith("1") and len(digits) == 11:
        digits = digits[1:]

    if len(digits) != 10:
        raise ValueError("Phone number must be 10 digits for US numbers")

    return f"+1{digits}"


def validate_email(email: Optional[str]) -> Optional[str]:
    """
    Validate email format.

    Returns:
        Lowercase email address

    Raises:
        ValueError: If email format is invalid
    """
    if not email:
        return email

    email = email.strip().lower()

    email_pattern = r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"

    if not re.match(email_pattern, email):
        raise ValueError("Invalid email format")

    return email


def validate_gender(gender: Optional[str]) -> Optional[str]:
    if not gender:
        return gender
    gender = gender.strip().lower()
    if gender not in GENDERS:
        raise ValueError("Gender must be 'male' or 'female'")
    return gender


def validate_tshirt_size(size: Optional[str]) -> Optional[str]:
    if not size:
        return size
    size = size.strip().upper()
    if size not in T_SHIRT_SIZES:
        raise ValueError(f"Invalid t-shirt size. Choose one of: {', '.join(T_SHIRT_SIZES)}")
    return size


def validate_required_text(value: Optional[str], field_name: str) -> str:
    """Strip whitespace and reject blank strings"""
    if value is None or not value.strip():
        raise ValueError(f"{field_name} is required")
    return value.strip()


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Timestamps are stored as naive UTC"""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)
