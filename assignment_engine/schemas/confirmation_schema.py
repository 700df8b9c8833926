"""Confirmation requests, assignments and manual follow-up tasks."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from assignment_engine.utils import utcnow


class Channel(str, Enum):
    IN_APP = "in_app"
    EMAIL = "email"
    CHAT = "chat"

    @property
    def uses_token(self) -> bool:
        """Link-based channels carry a token the installer answers with."""
        return self is not Channel.IN_APP


class RequestStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    CANCELLED = "cancelled"


class AssignmentStatus(str, Enum):
    ACCEPTED = "accepted"
    DECLINED = "declined"
    REMOVED = "removed"


class RespondAction(str, Enum):
    ACCEPT = "accept"
    DECLINE = "decline"


class TaskKind(str, Enum):
    INSUFFICIENT_CANDIDATES = "insufficient_candidates"
    OVERBOOKED_HOURS = "overbooked_hours"


class TaskStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"


class ConfirmationRequest(BaseModel):
    """One outstanding ask to one installer on one channel."""
    id: str
    job_id: str
    installer_id: str
    channel: Channel
    status: RequestStatus = RequestStatus.PENDING
    token: Optional[str] = None
    delivered: Optional[bool] = None
    delivery_error: Optional[str] = None
    decline_reason: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    responded_at: Optional[datetime] = None

    @property
    def key(self) -> tuple[str, str, Channel]:
        return (self.job_id, self.installer_id, self.channel)

    @property
    def is_pending(self) -> bool:
        return self.status == RequestStatus.PENDING


class Assignment(BaseModel):
    """The committed link between a job and an installer."""
    job_id: str
    installer_id: str
    status: AssignmentStatus = AssignmentStatus.ACCEPTED
    is_lead: bool = False
    declared_hours: float = 0.0
    actual_hours: Optional[float] = None
    debitable_hours: Optional[float] = None
    accepted_at: Optional[datetime] = None
    removed_at: Optional[datetime] = None

    @property
    def key(self) -> tuple[str, str]:
        return (self.job_id, self.installer_id)

    @property
    def billable_hours(self) -> float:
        """Debitable hours when set, else actual, else the declared share."""
        if self.debitable_hours is not None:
            return self.debitable_hours
        if self.actual_hours is not None:
            return self.actual_hours
        return self.declared_hours


class ManualTask(BaseModel):
    """A follow-up for an administrator when automation cannot proceed."""
    id: str
    job_id: str
    kind: TaskKind
    title: str
    description: str = ""
    status: TaskStatus = TaskStatus.PENDING
    created_at: datetime = Field(default_factory=utcnow)
    completed_at: Optional[datetime] = None
