from assignment_engine.engine.dispatcher import ConfirmationDispatcher, DispatchResult
from assignment_engine.engine.overbooking import OverbookingGuard, ReconciliationResult
from assignment_engine.engine.resolver import (
    CancellationResult,
    ConfirmationResolver,
    ResponseResult,
)
from assignment_engine.engine.service import AssignmentEngine, JobStaffing
from assignment_engine.engine.triggers import ResponseGateway

__all__ = [
    "AssignmentEngine", "JobStaffing",
    "ConfirmationDispatcher", "DispatchResult",
    "ConfirmationResolver", "ResponseResult", "CancellationResult",
    "OverbookingGuard", "ReconciliationResult",
    "ResponseGateway",
]
