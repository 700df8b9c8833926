"""
AssignmentEngine wires the scheduling components into one entry point.

Usage:
    store = InMemoryStore()
    engine = AssignmentEngine(store)
    engine.submit_job(job)                       # ask the first candidates
    engine.respond("INST-A", job.id, "INST-A", "in_app", "accept")
    engine.reconcile(job.id, {"INST-A": 8.0})
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional, Union

from assignment_engine.errors import ConflictError, NotFoundError
from assignment_engine.engine.dispatcher import ConfirmationDispatcher, DispatchResult
from assignment_engine.engine.overbooking import OverbookingGuard, ReconciliationResult
from assignment_engine.engine.resolver import (
    CancellationResult,
    ConfirmationResolver,
    ResponseResult,
)
from assignment_engine.engine.triggers import ResponseGateway
from assignment_engine.logging_context import job_context
from assignment_engine.notifications.registry import NotificationRouter, default_router
from assignment_engine.reporting.hours_report import HoursReportBuilder, InstallerReport
from assignment_engine.scheduling.availability import AvailabilityResolver, InstallerAvailability
from assignment_engine.scheduling.slot_calculator import SlotCalculation, calculate_slot
from assignment_engine.schemas.confirmation_schema import (
    AssignmentStatus,
    Channel,
    ManualTask,
    RequestStatus,
    RespondAction,
    TaskStatus,
)
from assignment_engine.schemas.job_schema import Job, JobStatus, SlotType
from assignment_engine.store.base import Store
from assignment_engine.utils import parse_date


@dataclass
class JobStaffing:
    """Snapshot of who is accepted, asked and declined on a job."""
    job_id: str
    crew_size: int
    accepted: list[str] = field(default_factory=list)
    pending: list[str] = field(default_factory=list)
    declined: list[str] = field(default_factory=list)
    lead: Optional[str] = None

    @property
    def seats_open(self) -> int:
        return max(self.crew_size - len(self.accepted), 0)

    @property
    def fully_staffed(self) -> bool:
        return self.seats_open == 0


class AssignmentEngine:
    """Facade over slot calculation, availability, dispatch and resolution."""

    def __init__(
        self,
        store: Store,
        router: Optional[NotificationRouter] = None,
        webhook_api_key: Optional[str] = None,
        overbooking_tolerance_hours: Optional[float] = None,
    ) -> None:
        self.store = store
        self.router = router or default_router()
        self.availability = AvailabilityResolver(store)
        self.dispatcher = ConfirmationDispatcher(store, self.availability, self.router)
        self.resolver = ConfirmationResolver(store, self.dispatcher, self.availability)
        self.guard = OverbookingGuard(store, overbooking_tolerance_hours)
        self.gateway = ResponseGateway(store, self.resolver, webhook_api_key)
        self.reports = HoursReportBuilder(store)

    # ------------------------------------------------------------------ #
    # Planning
    # ------------------------------------------------------------------ #

    @staticmethod
    def calculate_slot(total_hours: float, crew_size: Optional[int] = None) -> SlotCalculation:
        return calculate_slot(total_hours, crew_size)

    def availability_grid(
        self,
        from_date: Union[date, str],
        to_date: Union[date, str],
        slot_type: SlotType = SlotType.FULL,
    ) -> dict[date, list[InstallerAvailability]]:
        return self.availability.for_range(parse_date(from_date), parse_date(to_date), slot_type)

    # ------------------------------------------------------------------ #
    # Dispatch
    # ------------------------------------------------------------------ #

    def submit_job(self, job: Job) -> DispatchResult:
        """Store a newly booked job and ask its first candidates.

        The job and its first requests are committed together; a job whose
        requests cannot be planned is not stored.
        """
        with job_context(job.id):
            with self.store.transaction() as uow:
                if uow.get_job(job.id) is not None:
                    raise ConflictError(f"Job {job.id} already exists")
                if job.status != JobStatus.SCHEDULED:
                    raise ConflictError(
                        f"Job {job.id} is {job.status.value}; only scheduled jobs are dispatched"
                    )
                uow.save_job(job)
                plan = self.dispatcher.plan(uow, job)
            return self.dispatcher.deliver(plan)

    def dispatch(self, job_id: str) -> DispatchResult:
        return self.dispatcher.dispatch(job_id)

    # ------------------------------------------------------------------ #
    # Responses
    # ------------------------------------------------------------------ #

    def respond(
        self,
        caller_id: Optional[str],
        job_id: str,
        installer_id: str,
        channel: Union[Channel, str],
        action: Union[RespondAction, str],
    ) -> ResponseResult:
        return self.gateway.respond(caller_id, job_id, installer_id, channel, action)

    def respond_by_token(self, token: str, action: Union[RespondAction, str]) -> ResponseResult:
        return self.gateway.respond_by_token(token, action)

    def chat_webhook(
        self,
        api_key: Optional[str],
        installer_email: str,
        job_id: str,
        action: Union[RespondAction, str],
    ) -> ResponseResult:
        return self.gateway.chat_webhook(api_key, installer_email, job_id, action)

    def expire_pending(self, now: Optional[datetime] = None) -> list[ResponseResult]:
        return self.resolver.expire_pending(now)

    # ------------------------------------------------------------------ #
    # Administration
    # ------------------------------------------------------------------ #

    def cancel_job(self, job_id: str) -> CancellationResult:
        return self.resolver.cancel_job(job_id)

    def reschedule_job(
        self,
        job_id: str,
        new_date: Union[date, str],
        slot_type: Optional[SlotType] = None,
        day_count: Optional[int] = None,
    ) -> CancellationResult:
        return self.resolver.reschedule_job(job_id, new_date, slot_type, day_count)

    def reconcile(self, job_id: str, actual_hours: Mapping[str, float]) -> ReconciliationResult:
        return self.guard.reconcile(job_id, actual_hours)

    def resolve_overbooking(
        self, job_id: str, debitable_hours: Mapping[str, float]
    ) -> ReconciliationResult:
        return self.guard.resolve(job_id, debitable_hours)

    # ------------------------------------------------------------------ #
    # Read side
    # ------------------------------------------------------------------ #

    def staffing(self, job_id: str) -> JobStaffing:
        with self.store.transaction() as uow:
            job = uow.get_job(job_id)
            if job is None:
                raise NotFoundError(f"Job {job_id} not found")
            accepted = uow.list_assignments(job_id=job_id, status=AssignmentStatus.ACCEPTED)
            requests = uow.list_requests(job_id=job_id)

        staffing = JobStaffing(job_id=job_id, crew_size=job.crew_size)
        for assignment in sorted(accepted, key=lambda a: (a.accepted_at is None, a.accepted_at)):
            staffing.accepted.append(assignment.installer_id)
            if assignment.is_lead:
                staffing.lead = assignment.installer_id
        for request in requests:
            bucket = {
                RequestStatus.PENDING: staffing.pending,
                RequestStatus.DECLINED: staffing.declined,
            }.get(request.status)
            if bucket is not None and request.installer_id not in bucket:
                bucket.append(request.installer_id)
        return staffing

    def open_tasks(self, job_id: Optional[str] = None) -> list[ManualTask]:
        with self.store.transaction() as uow:
            return uow.list_tasks(job_id=job_id, status=TaskStatus.PENDING)

    def hours_report(
        self,
        installer_id: str,
        from_date: Union[date, str],
        to_date: Union[date, str],
    ) -> InstallerReport:
        return self.reports.build(installer_id, from_date, to_date)
