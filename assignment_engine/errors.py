"""Engine error taxonomy.

``NotFoundError`` and ``ConflictError`` reject an operation with no partial
effect. ``InsufficientCandidatesError`` is raised by the priority selector and
degraded into a manual task by the dispatcher. ``DeliveryFailure`` describes a
notification channel that could not be reached; it is logged and reported,
never allowed to block a state transition.
"""

from typing import Any, Optional


class EngineError(Exception):
    """Base class for all assignment engine errors."""


class NotFoundError(EngineError):
    """A referenced job, installer or confirmation request does not exist."""


class ConflictError(EngineError):
    """The requested transition is invalid for the current state."""


class UnauthorizedError(EngineError):
    """The caller could not be authenticated as the claimed installer."""


class InsufficientCandidatesError(EngineError):
    """Fewer eligible installers remain than seats to fill."""

    def __init__(self, needed: int, candidates: Optional[list[Any]] = None) -> None:
        self.needed = needed
        self.candidates = list(candidates or [])
        super().__init__(
            f"Needed {needed} installer(s), found {len(self.candidates)} eligible"
        )

    @property
    def shortfall(self) -> int:
        return self.needed - len(self.candidates)


class DeliveryFailure(EngineError):
    """A notification channel could not deliver a confirmation request."""

    def __init__(self, channel: str, installer_id: str, reason: str) -> None:
        self.channel = channel
        self.installer_id = installer_id
        self.reason = reason
        super().__init__(f"Delivery via {channel} to {installer_id} failed: {reason}")
