from assignment_engine.scheduling.availability import AvailabilityResolver, InstallerAvailability
from assignment_engine.scheduling.priority import rank_installers, select_candidates
from assignment_engine.scheduling.slot_calculator import SlotCalculation, SlotKind, calculate_slot
from assignment_engine.scheduling.state_machine import (
    ConfirmationStateMachine,
    InvalidTransitionError,
    RequestTrigger,
)

__all__ = [
    "AvailabilityResolver",
    "InstallerAvailability",
    "rank_installers",
    "select_candidates",
    "SlotCalculation",
    "SlotKind",
    "calculate_slot",
    "ConfirmationStateMachine",
    "InvalidTransitionError",
    "RequestTrigger",
]
