"""Job data models."""

from datetime import date
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from assignment_engine.schemas.confirmation_schema import Channel
from assignment_engine.utils import covered_dates


class SlotType(str, Enum):
    MORNING = "morning"
    AFTERNOON = "afternoon"
    FULL = "full"


class JobStatus(str, Enum):
    SCHEDULED = "scheduled"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class Job(BaseModel):
    """A scheduled installation requiring one or more installers."""
    id: str
    scheduled_date: date
    slot_type: SlotType = SlotType.FULL
    day_count: int = Field(default=1, ge=1)
    crew_size: int = Field(default=2, ge=1)
    total_hours: float = Field(default=0.0, ge=0.0)
    status: JobStatus = JobStatus.SCHEDULED
    required_capabilities: list[str] = Field(default_factory=list)
    channels: Optional[list[Channel]] = None
    customer_name: str = ""
    customer_address: str = ""
    overbooking_resolved: Optional[bool] = None

    @property
    def dates(self) -> list[date]:
        """Every date this job occupies (one entry per consecutive day)."""
        return covered_dates(self.scheduled_date, self.day_count)

    @property
    def hours_per_person(self) -> float:
        return self.total_hours / max(self.crew_size, 1)
