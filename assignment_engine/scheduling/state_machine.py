"""
Finite state machine for confirmation request status.

A request starts ``pending`` and moves exactly once to a terminal status.
Every transition is explicit; anything else is rejected with a
``InvalidTransitionError`` naming the triggers that would have been valid.

Usage:
    sm = ConfirmationStateMachine()
    request = sm.transition(request, RequestTrigger.ACCEPT)
    assert request.status == RequestStatus.ACCEPTED
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from assignment_engine.errors import ConflictError
from assignment_engine.schemas.confirmation_schema import ConfirmationRequest, RequestStatus
from assignment_engine.utils import utcnow

logger = logging.getLogger(__name__)


class RequestTrigger(str, Enum):
    """Events that move a confirmation request out of ``pending``."""
    ACCEPT = "accept"
    DECLINE = "decline"
    TIMEOUT = "timeout"
    SIBLING_ACCEPTED = "sibling_accepted"
    ADMIN_CANCEL = "admin_cancel"


@dataclass
class Transition:
    """A single valid status transition."""
    from_status: RequestStatus
    to_status: RequestStatus
    trigger: RequestTrigger


class InvalidTransitionError(ConflictError):
    """Raised when a transition is not valid from the current status."""


class ConfirmationStateMachine:
    """Applies status transitions to confirmation requests."""

    TRANSITIONS: list[Transition] = [
        Transition(RequestStatus.PENDING, RequestStatus.ACCEPTED, RequestTrigger.ACCEPT),
        Transition(RequestStatus.PENDING, RequestStatus.DECLINED, RequestTrigger.DECLINE),
        Transition(RequestStatus.PENDING, RequestStatus.DECLINED, RequestTrigger.TIMEOUT),
        Transition(RequestStatus.PENDING, RequestStatus.CANCELLED,
                   RequestTrigger.SIBLING_ACCEPTED),
        Transition(RequestStatus.PENDING, RequestStatus.CANCELLED,
                   RequestTrigger.ADMIN_CANCEL),
    ]

    TERMINAL = frozenset({
        RequestStatus.ACCEPTED, RequestStatus.DECLINED, RequestStatus.CANCELLED,
    })

    def transition(
        self,
        request: ConfirmationRequest,
        trigger: RequestTrigger,
        now: Optional[datetime] = None,
    ) -> ConfirmationRequest:
        """
        Return a copy of ``request`` moved by ``trigger``.

        Raises:
            InvalidTransitionError: If no valid transition exists.
        """
        for t in self.TRANSITIONS:
            if t.from_status == request.status and t.trigger == trigger:
                update: dict = {"status": t.to_status, "responded_at": now or utcnow()}
                if t.to_status == RequestStatus.DECLINED:
                    update["decline_reason"] = trigger.value
                logger.debug(
                    "Request %s: %s -> %s (trigger: %s)",
                    request.id, request.status.value, t.to_status.value, trigger.value,
                )
                return request.model_copy(update=update)

        valid = [t.value for t in self.get_valid_triggers(request.status)]
        raise InvalidTransitionError(
            f"Request {request.id} is '{request.status.value}'; cannot apply "
            f"'{trigger.value}'. Valid triggers: {valid}"
        )

    def get_valid_triggers(self, status: RequestStatus) -> list[RequestTrigger]:
        """Return all triggers valid from ``status``."""
        return [t.trigger for t in self.TRANSITIONS if t.from_status == status]

    def is_terminal(self, status: RequestStatus) -> bool:
        return status in self.TERMINAL
