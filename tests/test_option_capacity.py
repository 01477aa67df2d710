from types import SimpleNamespace

from app.option_capacity import (
    check_day_pass_capacity,
    check_option_capacity,
    decrement_day_pass_capacity,
    decrement_option_capacity,
    get_available_options,
    increment_day_pass_capacity,
    increment_option_capacity,
)


def make_settings(**overrides):
    values = {
        "allow_on_campus": True,
        "allow_off_campus": True,
        "allow_day_pass": False,
    }
    for option in ("on_campus", "off_campus", "day_pass"):
        values[f"{option}_capacity"] = None
        values[f"{option}_remaining"] = None
    for room in ("single", "double", "triple", "quad"):
        values[f"{room}_room_capacity"] = None
        values[f"{room}_room_remaining"] = None
    values.update(overrides)
    return SimpleNamespace(**values)


def test_unlimited_capacity_always_available():
    assert check_option_capacity(make_settings(), "on_campus", party_size=500)["has_capacity"] is True


def test_missing_settings_is_unlimited():
    assert check_option_capacity(None, "on_campus")["has_capacity"] is True


def test_sold_out_housing_option():
    settings = make_settings(on_campus_capacity=10, on_campus_remaining=0)
    result = check_option_capacity(settings, "on_campus")
    assert result["has_capacity"] is False
    assert "No on campus spots available" in result["error"]


def test_party_larger_than_remaining():
    settings = make_settings(off_campus_capacity=10, off_campus_remaining=3)
    result = check_option_capacity(settings, "off_campus", party_size=4)
    assert result["has_capacity"] is False
    assert result["error"] == "Only 3 off campus spot(s) remaining, but 4 requested."


def test_room_type_only_checked_on_campus():
    settings = make_settings(double_room_capacity=4, double_room_remaining=0)
    assert check_option_capacity(settings, "on_campus", "double")["has_capacity"] is False
    assert check_option_capacity(settings, "off_campus", "double")["has_capacity"] is True


def test_room_type_messages():
    sold_out = make_settings(single_room_capacity=2, single_room_remaining=0)
    assert check_option_capacity(sold_out, "on_campus", "single")["error"] == (
        "No single room spots available. Please join the waitlist or select a different room type."
    )

    short = make_settings(quad_room_capacity=8, quad_room_remaining=2)
    assert check_option_capacity(short, "on_campus", "quad", party_size=3)["error"] == (
        "Only 2 quad room spot(s) remaining."
    )


def test_remaining_defaults_to_capacity_and_is_clamped():
    settings = make_settings(on_campus_capacity=10, double_room_capacity=4)
    decrement_option_capacity(settings, "on_campus", "double", 3)
    assert settings.on_campus_remaining == 7
    assert settings.double_room_remaining == 1

    decrement_option_capacity(settings, "on_campus", "double", 5)
    assert settings.double_room_remaining == 0

    increment_option_capacity(settings, "on_campus", "double", 20)
    assert settings.on_campus_remaining == 10
    assert settings.double_room_remaining == 4


def test_unlimited_remaining_is_never_touched():
    settings = make_settings()
    decrement_option_capacity(settings, "on_campus", None, 5)
    assert settings.on_campus_remaining is None


def test_available_options_hide_disabled_and_full():
    settings = make_settings(off_campus_capacity=5, off_campus_remaining=0, quad_room_capacity=2, quad_room_remaining=0)
    options = get_available_options(settings)
    assert options["housingTypes"] == ["on_campus"]
    assert "quad" not in options["roomTypes"]


def test_day_pass_capacity():
    option = SimpleNamespace(id=1, name="Saturday", is_active=True, capacity=2, remaining=1)
    assert check_day_pass_capacity(option, 1)["has_capacity"] is True
    assert check_day_pass_capacity(option, 2)["has_capacity"] is False

    decrement_day_pass_capacity(option, 1)
    assert check_day_pass_capacity(option)["error"].startswith("No spots available for Saturday")

    increment_day_pass_capacity(option, 5)
    assert option.remaining == 2


def test_inactive_or_missing_day_pass():
    assert check_day_pass_capacity(None)["error"] == "Day pass option not found"
    option = SimpleNamespace(id=1, name="Friday", is_active=False, capacity=0, remaining=0)
    assert check_day_pass_capacity(option)["has_capacity"] is False


def test_zero_capacity_day_pass_is_unlimited():
    option = SimpleNamespace(id=1, name="Sunday", is_active=True, capacity=0, remaining=0)
    assert check_day_pass_capacity(option, 100)["has_capacity"] is True
