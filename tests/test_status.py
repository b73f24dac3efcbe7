"""Tests for status derivation: level fallback, charging trend and low battery."""

import pytest

from apcups_battery.status import DerivedStatus, INITIAL_STATUS, derive_status


def snap(charge):
    return {"STATUS": "ONLINE", "BCHARGE": charge}


def prev(level):
    return DerivedStatus(battery_level=level, is_charging=False, is_low_battery=level < 10)


class TestBatteryLevel:
    @pytest.mark.parametrize("charge,expected", [
        ("100.0 Percent", 100.0),
        ("0.0 Percent", 0.0),
        ("36.7 Percent", 36.7),
        ("  52 Percent", 52.0),
    ])
    def test_valid_charge_is_kept(self, charge, expected):
        assert derive_status(snap(charge), None).battery_level == expected

    @pytest.mark.parametrize("charge", [
        "abc Percent",
        "",
        "   ",
        "100.1 Percent",
        "-1.0 Percent",
        "nan Percent",
        "inf Percent",
        None,
    ])
    def test_malformed_or_out_of_range_is_zero(self, charge):
        status = derive_status(snap(charge), prev(50.0))
        assert status.battery_level == 0.0
        assert status.is_low_battery
        assert not status.is_charging

    @pytest.mark.parametrize("charge,expected", [
        ("45abc Percent", 45.0),
        ("95.0% charged", 95.0),
        ("1_0 Percent", 1.0),
        ("+80 Percent", 80.0),
        (".5 Percent", 0.5),
    ])
    def test_leading_numeric_prefix(self, charge, expected):
        assert derive_status(snap(charge), None).battery_level == expected

    def test_missing_field_is_zero(self):
        status = derive_status({"STATUS": "ONLINE"}, None)
        assert status == DerivedStatus(0.0, False, True)


class TestLowBattery:
    @pytest.mark.parametrize("level,low", [
        (9.9, True),
        (10.0, False),
        (0.0, True),
        (55.0, False),
    ])
    def test_threshold_is_strict(self, level, low):
        assert derive_status(snap(f"{level} Percent"), None).is_low_battery is low


class TestCharging:
    def test_first_reading_never_charging(self):
        assert not derive_status(snap("40.0 Percent"), None).is_charging

    def test_rising_level_is_charging(self):
        assert derive_status(snap("70.0 Percent"), prev(50.0)).is_charging

    def test_falling_level_is_not_charging(self):
        assert not derive_status(snap("30.0 Percent"), prev(50.0)).is_charging

    def test_steady_level_is_not_charging(self):
        assert not derive_status(snap("50.0 Percent"), prev(50.0)).is_charging

    def test_previous_zero_is_not_charging(self):
        assert not derive_status(snap("40.0 Percent"), prev(0.0)).is_charging

    def test_full_is_not_charging(self):
        assert not derive_status(snap("100.0 Percent"), prev(99.0)).is_charging

    def test_initial_status_as_previous(self):
        assert not derive_status(snap("5.0 Percent"), INITIAL_STATUS).is_charging


class TestDerivedStatus:
    def test_immutable(self):
        status = derive_status(snap("50.0 Percent"), None)
        with pytest.raises(AttributeError):
            status.battery_level = 10.0

    def test_initial_status(self):
        assert INITIAL_STATUS == DerivedStatus(0.0, False, False)
