"""Installer data models and blocked dates."""

from datetime import date
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from assignment_engine.config import settings
from assignment_engine.schemas.job_schema import SlotType
from assignment_engine.utils import full_name


class InstallerType(str, Enum):
    EMPLOYEE = "employee"
    SUBCONTRACTOR = "subcontractor"


class Certification(BaseModel):
    """A named capability, optionally with an expiry date."""
    name: str
    expires_on: Optional[date] = None

    def valid_on(self, on_date: date) -> bool:
        return self.expires_on is None or self.expires_on >= on_date


class Installer(BaseModel):
    """
    A worker eligible for assignment.

    Priority and certifications are owned by administrators; the engine
    only reads them, fresh on every transaction.
    """
    id: str
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    priority_rank: int = Field(default_factory=lambda: settings.dispatch.default_priority_rank)
    certifications: list[Certification] = Field(default_factory=list)
    is_active: bool = True
    installer_type: InstallerType = InstallerType.EMPLOYEE
    hourly_rate: float = 0.0

    @property
    def name(self) -> str:
        return full_name(self.first_name, self.last_name) or self.id

    def has_valid_capability(self, capability: str, on_date: date) -> bool:
        """True if a certification named ``capability`` is valid on ``on_date``."""
        return any(
            cert.name == capability and cert.valid_on(on_date)
            for cert in self.certifications
        )


class InstallerBlock(BaseModel):
    """A date (or half of one) an installer has marked as unavailable."""
    installer_id: str
    blocked_date: date
    slot: SlotType = SlotType.FULL
    reason: Optional[str] = None
