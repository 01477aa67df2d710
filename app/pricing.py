"""
Registration pricing: tier selection, per-type prices, deposits and coupon discounts.

Prices are in dollars. A price of None or 0 on a specific field means
"not configured" and falls through to the next rule.
"""

from datetime import datetime
from typing import Optional

PARTICIPANT_TYPES = ("youth_u18", "youth_o18", "chaperone", "priest")


def round_money(value: float) -> float:
    return round(float(value or 0) + 1e-9, 2)


def determine_tier(pricing, now: Optional[datetime] = None) -> str:
    """early_bird until its deadline, then regular until its deadline, then late"""
    now = now or datetime.utcnow()
    if pricing.early_bird_deadline and now <= pricing.early_bird_deadline:
        return "early_bird"
    if pricing.regular_deadline and now <= pricing.regular_deadline:
        return "regular"
    return "late"


def _price_for(pricing, prefix: str, housing_type: Optional[str], tier: str) -> float:
    if housing_type:
        housing_price = getattr(pricing, f"{housing_type}_{prefix}_price", None)
        if housing_price:
            return float(housing_price)

    tier_price = getattr(pricing, f"{prefix}_{tier}_price", None)
    if tier_price:
        return float(tier_price)

    return float(getattr(pricing, f"{prefix}_regular_price", None) or 0)


def get_price_per_person(pricing, participant_type: str, housing_type: Optional[str], tier: str) -> float:
    if participant_type == "priest":
        return float(pricing.priest_price or 0)
    if participant_type == "chaperone":
        return _price_for(pricing, "chaperone", housing_type, tier)
    # youth_u18 and youth_o18 share youth pricing
    return _price_for(pricing, "youth", housing_type, tier)


def calculate_registration_price(
    pricing, counts: dict, housing_type: Optional[str], now: Optional[datetime] = None
) -> dict:
    """
    Price a registration.

    Args:
        pricing: EventPricing row
        counts: participant type -> head count
        housing_type: on_campus, off_campus or day_pass

    Returns:
        {"total", "breakdown": [{participantType, count, pricePerPerson, subtotal}], "tier"}
    """
    tier = determine_tier(pricing, now)
    breakdown = []
    total = 0.0

    for participant_type in PARTICIPANT_TYPES:
        count = int(counts.get(participant_type) or 0)
        if count <= 0:
            continue
        price = get_price_per_person(pricing, participant_type, housing_type, tier)
        subtotal = round_money(price * count)
        breakdown.append(
            {
                "participantType": participant_type,
                "count": count,
                "pricePerPerson": round_money(price),
                "subtotal": subtotal,
            }
        )
        total += subtotal

    return {"total": round_money(total), "breakdown": breakdown, "tier": tier}


def calculate_deposit(pricing, total: float) -> dict:
    """
    Deposit due at registration.
    Order: full payment, percentage, flat amount, nothing.
    """
    if pricing.require_full_payment:
        deposit = total
    elif pricing.deposit_percentage:
        deposit = total * float(pricing.deposit_percentage) / 100
    elif pricing.deposit_amount:
        deposit = float(pricing.deposit_amount)
    else:
        deposit = 0.0

    deposit = round_money(min(deposit, total))
    return {"depositAmount": deposit, "balanceRemaining": round_money(total - deposit)}


def calculate_coupon_discount(total: float, discount_type: str, discount_value: float) -> float:
    """Discount never exceeds the total"""
    if total <= 0:
        return 0.0
    if discount_type == "percentage":
        discount = total * float(discount_value) / 100
    else:
        discount = float(discount_value)
    return round_money(min(max(discount, 0.0), total))


def calculate_individual_price(pricing, housing_type: Optional[str], day_pass_option=None) -> float:
    """Day pass option price when one was chosen, else the housing youth price, else youth regular"""
    if housing_type == "day_pass" and day_pass_option is not None:
        return round_money(day_pass_option.price)
    if housing_type:
        housing_price = getattr(pricing, f"{housing_type}_youth_price", None)
        if housing_price:
            return round_money(housing_price)
    return round_money(pricing.youth_regular_price or 0)
