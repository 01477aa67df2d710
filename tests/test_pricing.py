from datetime import datetime, timedelta
from types import SimpleNamespace

from app.pricing import (
    calculate_coupon_discount,
    calculate_deposit,
    calculate_individual_price,
    calculate_registration_price,
    determine_tier,
)

NOW = datetime(2026, 6, 1, 12, 0)


def make_pricing(**overrides):
    values = dict(
        youth_early_bird_price=80.0,
        youth_regular_price=100.0,
        youth_late_price=120.0,
        chaperone_early_bird_price=None,
        chaperone_regular_price=75.0,
        chaperone_late_price=None,
        priest_price=0.0,
        on_campus_youth_price=None,
        off_campus_youth_price=None,
        day_pass_youth_price=None,
        on_campus_chaperone_price=None,
        off_campus_chaperone_price=None,
        day_pass_chaperone_price=None,
        early_bird_deadline=NOW + timedelta(days=10),
        regular_deadline=NOW + timedelta(days=30),
        deposit_amount=None,
        deposit_percentage=None,
        require_full_payment=False,
    )
    values.update(overrides)
    return SimpleNamespace(**values)


def test_tier_follows_deadlines():
    pricing = make_pricing()
    assert determine_tier(pricing, NOW) == "early_bird"
    assert determine_tier(pricing, NOW + timedelta(days=20)) == "regular"
    assert determine_tier(pricing, NOW + timedelta(days=40)) == "late"


def test_tier_without_deadlines_is_late():
    pricing = make_pricing(early_bird_deadline=None, regular_deadline=None)
    assert determine_tier(pricing, NOW) == "late"


def test_group_price_uses_tier_and_falls_back_to_regular():
    pricing = make_pricing()
    result = calculate_registration_price(
        pricing, {"youth_u18": 3, "youth_o18": 1, "chaperone": 2, "priest": 1}, "off_campus", NOW
    )

    assert result["tier"] == "early_bird"
    # youth early bird 80 x 4, chaperones have no early bird price so regular 75 x 2, priests free
    assert result["total"] == 470.0
    types = [row["participantType"] for row in result["breakdown"]]
    assert types == ["youth_u18", "youth_o18", "chaperone", "priest"]


def test_housing_price_overrides_tier_price():
    pricing = make_pricing(on_campus_youth_price=150.0)
    result = calculate_registration_price(pricing, {"youth_u18": 2}, "on_campus", NOW)
    assert result["total"] == 300.0
    assert result["breakdown"][0]["pricePerPerson"] == 150.0


def test_zero_counts_are_left_out_of_breakdown():
    result = calculate_registration_price(make_pricing(), {"youth_u18": 0, "chaperone": 1}, None, NOW)
    assert [row["participantType"] for row in result["breakdown"]] == ["chaperone"]


def test_deposit_order():
    assert calculate_deposit(make_pricing(require_full_payment=True, deposit_amount=50), 400) == {
        "depositAmount": 400.0,
        "balanceRemaining": 0.0,
    }
    assert calculate_deposit(make_pricing(deposit_percentage=25, deposit_amount=50), 400)["depositAmount"] == 100.0
    assert calculate_deposit(make_pricing(deposit_amount=50), 400)["balanceRemaining"] == 350.0
    assert calculate_deposit(make_pricing(), 400)["depositAmount"] == 0.0


def test_deposit_never_exceeds_total():
    assert calculate_deposit(make_pricing(deposit_amount=500), 200)["depositAmount"] == 200.0


def test_coupon_discount_is_capped_at_total():
    assert calculate_coupon_discount(200, "percentage", 10) == 20.0
    assert calculate_coupon_discount(200, "fixed", 250) == 200.0
    assert calculate_coupon_discount(0, "fixed", 25) == 0.0


def test_individual_price_prefers_day_pass_option():
    pricing = make_pricing(off_campus_youth_price=90.0)
    option = SimpleNamespace(price=35.0)
    assert calculate_individual_price(pricing, "day_pass", option) == 35.0
    assert calculate_individual_price(pricing, "off_campus") == 90.0
    assert calculate_individual_price(pricing, "on_campus") == 100.0
