"""Tests for the slot/day calculator."""

import pytest

from assignment_engine.scheduling.slot_calculator import (
    SlotKind,
    calculate_slot,
    format_slot_label,
)
from assignment_engine.schemas.job_schema import SlotType


class TestThresholds:
    def test_exactly_three_hours_is_half_day(self):
        calc = calculate_slot(6.0, 2)
        assert calc.hours_per_person == pytest.approx(3.0)
        assert calc.kind == SlotKind.HALF_DAY
        assert calc.slot_type == SlotType.MORNING
        assert calc.day_count == 1

    def test_just_over_three_hours_is_full_day(self):
        calc = calculate_slot(6.02, 2)
        assert calc.kind == SlotKind.FULL_DAY
        assert calc.slot_type == SlotType.FULL

    def test_exactly_eight_hours_is_one_full_day(self):
        calc = calculate_slot(16.0, 2)
        assert calc.kind == SlotKind.FULL_DAY
        assert calc.day_count == 1

    def test_just_over_eight_hours_is_two_days(self):
        calc = calculate_slot(8.01, 1)
        assert calc.kind == SlotKind.MULTI_DAY
        assert calc.day_count == 2

    def test_twenty_hours_for_two_installers_is_two_days(self):
        calc = calculate_slot(20.0, 2)
        assert calc.hours_per_person == pytest.approx(10.0)
        assert calc.day_count == 2
        assert calc.slot_type == SlotType.FULL

    def test_long_job_rounds_days_up(self):
        calc = calculate_slot(50.0, 2)
        assert calc.day_count == 4

    def test_zero_hours_is_half_day(self):
        calc = calculate_slot(0.0, 2)
        assert calc.kind == SlotKind.HALF_DAY


class TestCrewSize:
    def test_zero_crew_is_treated_as_one(self):
        calc = calculate_slot(6.0, 0)
        assert calc.hours_per_person == pytest.approx(6.0)
        assert calc.kind == SlotKind.FULL_DAY

    def test_negative_crew_is_treated_as_one(self):
        calc = calculate_slot(2.0, -3)
        assert calc.hours_per_person == pytest.approx(2.0)

    def test_default_crew_from_settings(self):
        calc = calculate_slot(6.0)
        assert calc.hours_per_person == pytest.approx(3.0)


class TestHalfSelection:
    def test_afternoon_requested(self):
        calc = calculate_slot(4.0, 2, half=SlotType.AFTERNOON)
        assert calc.slot_type == SlotType.AFTERNOON

    def test_full_requested_for_half_day_falls_back_to_morning(self):
        calc = calculate_slot(4.0, 2, half=SlotType.FULL)
        assert calc.slot_type == SlotType.MORNING

    def test_half_ignored_for_full_day(self):
        calc = calculate_slot(12.0, 2, half=SlotType.AFTERNOON)
        assert calc.slot_type == SlotType.FULL


class TestLabels:
    def test_half_day_label(self):
        assert calculate_slot(4.0, 2).label == "Half day (morning) - 2 installers"

    def test_full_day_label_single_installer(self):
        assert format_slot_label(SlotType.FULL, 1, 1) == "Full day - 1 installer"

    def test_multi_day_label(self):
        assert calculate_slot(20.0, 2).label == "2 days - 2 installers"

    def test_afternoon_label(self):
        assert format_slot_label(SlotType.AFTERNOON, 1, 3) == "Half day (afternoon) - 3 installers"
