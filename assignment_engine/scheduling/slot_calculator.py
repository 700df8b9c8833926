"""
Slot/day calculator for installer scheduling.

Given total labour hours and crew size, works out the hours each installer
carries, whether the job fits a half day, a full day, or a run of
consecutive full days, and a label for notifications and calendars.

Rules (thresholds from ``settings.slots``):
    hours/person <= 3  -> half day (morning unless afternoon requested)
    hours/person <= 8  -> one full day
    hours/person >  8  -> ceil(hours / 8) consecutive full days
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from assignment_engine.config import settings
from assignment_engine.schemas.job_schema import SlotType


class SlotKind(str, Enum):
    HALF_DAY = "half_day"
    FULL_DAY = "full_day"
    MULTI_DAY = "multi_day"


@dataclass(frozen=True)
class SlotCalculation:
    """Classification of a job's labour into a schedulable slot."""
    kind: SlotKind
    slot_type: SlotType
    day_count: int
    hours_per_person: float
    label: str


def calculate_slot(
    total_hours: float,
    crew_size: Optional[int] = None,
    half: SlotType = SlotType.MORNING,
) -> SlotCalculation:
    """Classify ``total_hours`` of work split across ``crew_size`` installers.

    A crew size of zero or less is treated as one installer.
    """
    if crew_size is None:
        crew_size = settings.slots.default_crew_size
    crew = max(crew_size, 1)
    hours_per_person = total_hours / crew

    if hours_per_person <= settings.slots.half_day_max_hours:
        kind = SlotKind.HALF_DAY
        slot_type = half if half != SlotType.FULL else SlotType.MORNING
        day_count = 1
    elif hours_per_person <= settings.slots.full_day_max_hours:
        kind = SlotKind.FULL_DAY
        slot_type = SlotType.FULL
        day_count = 1
    else:
        kind = SlotKind.MULTI_DAY
        slot_type = SlotType.FULL
        day_count = math.ceil(hours_per_person / settings.slots.full_day_max_hours)

    return SlotCalculation(
        kind=kind,
        slot_type=slot_type,
        day_count=day_count,
        hours_per_person=hours_per_person,
        label=format_slot_label(slot_type, day_count, crew),
    )


def format_slot_label(slot_type: SlotType, day_count: int, crew_size: int) -> str:
    crew_label = "1 installer" if crew_size == 1 else f"{crew_size} installers"
    if day_count > 1:
        return f"{day_count} days - {crew_label}"
    if slot_type == SlotType.MORNING:
        return f"Half day (morning) - {crew_label}"
    if slot_type == SlotType.AFTERNOON:
        return f"Half day (afternoon) - {crew_label}"
    return f"Full day - {crew_label}"
