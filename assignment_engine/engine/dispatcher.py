"""
Confirmation dispatcher: offers open seats on a job to the next candidates.

Dispatch happens in two steps so a crash never loses state:

1. Plan (inside the caller's transaction): count open seats, select one
   candidate per seat and stage one ``pending`` request per channel.
2. Deliver (after commit): hand each request to its channel's notifier and
   record the delivery outcome. A failed delivery leaves the request
   pending; the installer can still answer on any other channel.

Re-running ``dispatch`` for a job is always safe: installers with a pending
ask, a decline or an accepted assignment on the job are never asked again.
An installer released by a reschedule may be asked for the new date.
"""

import uuid
from dataclasses import dataclass, field
from typing import Optional

from assignment_engine.config import settings
from assignment_engine.errors import (
    ConflictError,
    DeliveryFailure,
    InsufficientCandidatesError,
    NotFoundError,
)
from assignment_engine.engine.tasks import new_id, open_task
from assignment_engine.logging_context import get_job_logger, job_context
from assignment_engine.messages import build_insufficient_candidates_task
from assignment_engine.notifications.registry import NotificationRouter
from assignment_engine.scheduling.availability import AvailabilityResolver
from assignment_engine.scheduling.priority import select_candidates
from assignment_engine.schemas.confirmation_schema import (
    AssignmentStatus,
    Channel,
    ConfirmationRequest,
    ManualTask,
    RequestStatus,
    TaskKind,
)
from assignment_engine.schemas.installer_schema import Installer
from assignment_engine.schemas.job_schema import Job, JobStatus
from assignment_engine.store.base import Store, UnitOfWork

logger = get_job_logger(__name__)


@dataclass
class DispatchPlan:
    """Requests staged in a transaction, awaiting delivery after commit."""
    job: Job
    seats_open: int = 0
    requests: list[ConfirmationRequest] = field(default_factory=list)
    installers: dict[str, Installer] = field(default_factory=dict)
    manual_task: Optional[ManualTask] = None


@dataclass
class DispatchResult:
    """Outcome of a dispatch round."""
    job_id: str
    seats_open: int = 0
    requests: list[ConfirmationRequest] = field(default_factory=list)
    failures: list[DeliveryFailure] = field(default_factory=list)
    manual_task: Optional[ManualTask] = None

    @property
    def invited(self) -> list[str]:
        """Installer ids asked in this round, in priority order."""
        seen: list[str] = []
        for request in self.requests:
            if request.installer_id not in seen:
                seen.append(request.installer_id)
        return seen

    @property
    def unreachable(self) -> list[str]:
        """Installers for whom every channel failed to deliver."""
        failed = {(f.installer_id, f.channel) for f in self.failures}
        return [
            installer_id for installer_id in self.invited
            if all(
                (installer_id, r.channel.value) in failed
                for r in self.requests if r.installer_id == installer_id
            )
        ]

    @property
    def warnings(self) -> list[str]:
        return [str(f) for f in self.failures]


class ConfirmationDispatcher:
    """Creates confirmation requests for open seats and sends them out."""

    def __init__(
        self,
        store: Store,
        availability: AvailabilityResolver,
        router: NotificationRouter,
    ) -> None:
        self._store = store
        self._availability = availability
        self._router = router

    # ------------------------------------------------------------------ #
    # Public entry point
    # ------------------------------------------------------------------ #

    def dispatch(self, job_id: str) -> DispatchResult:
        """Offer every open seat on the job to the next eligible installers."""
        with job_context(job_id):
            with self._store.transaction() as uow:
                job = uow.get_job(job_id)
                if job is None:
                    raise NotFoundError(f"Job {job_id} not found")
                if job.status != JobStatus.SCHEDULED:
                    raise ConflictError(
                        f"Job {job_id} is {job.status.value}; only scheduled jobs are dispatched"
                    )
                plan = self.plan(uow, job)
            return self.deliver(plan)

    # ------------------------------------------------------------------ #
    # Plan / deliver
    # ------------------------------------------------------------------ #

    def seats_open(self, uow: UnitOfWork, job: Job) -> int:
        """Seats not yet accepted and not covered by an outstanding ask."""
        accepted = uow.list_assignments(job_id=job.id, status=AssignmentStatus.ACCEPTED)
        pending = {
            r.installer_id
            for r in uow.list_requests(job_id=job.id, status=RequestStatus.PENDING)
        }
        return job.crew_size - len(accepted) - len(pending)

    def plan(self, uow: UnitOfWork, job: Job) -> DispatchPlan:
        """Stage requests for the job's open seats inside ``uow``."""
        seats = self.seats_open(uow, job)
        plan = DispatchPlan(job=job, seats_open=max(seats, 0))
        if seats <= 0:
            logger.debug("Job %s has no open seats", job.id)
            return plan

        exclude = {
            r.installer_id
            for r in uow.list_requests(job_id=job.id)
            if r.status in (RequestStatus.PENDING, RequestStatus.DECLINED)
        }
        exclude |= {
            a.installer_id
            for a in uow.list_assignments(job_id=job.id, status=AssignmentStatus.ACCEPTED)
        }

        available = self._availability.available_for_job(uow, job)
        try:
            candidates = select_candidates(available, seats, exclude)
        except InsufficientCandidatesError as exc:
            candidates = exc.candidates
            title, description = build_insufficient_candidates_task(
                job, offered=len(candidates), needed=seats
            )
            plan.manual_task = open_task(
                uow, job.id, TaskKind.INSUFFICIENT_CANDIDATES, title, description
            )

        for installer in candidates:
            plan.installers[installer.id] = installer
            for channel in self._channels_for(job):
                request = ConfirmationRequest(
                    id=new_id("CR"),
                    job_id=job.id,
                    installer_id=installer.id,
                    channel=channel,
                    token=uuid.uuid4().hex if channel.uses_token else None,
                )
                uow.save_request(request)
                plan.requests.append(request)

        if candidates:
            logger.info(
                "Job %s: asking %s for %d open seat(s)",
                job.id, [i.id for i in candidates], seats,
            )
        return plan

    def deliver(self, plan: DispatchPlan) -> DispatchResult:
        """Send staged requests and record delivery outcomes. Call after commit."""
        result = DispatchResult(
            job_id=plan.job.id,
            seats_open=plan.seats_open,
            requests=list(plan.requests),
            manual_task=plan.manual_task,
        )
        if not plan.requests:
            return result

        outcomes: dict[str, Optional[DeliveryFailure]] = {}
        for request in plan.requests:
            installer = plan.installers[request.installer_id]
            failure = self._router.send(installer, plan.job, request)
            outcomes[request.id] = failure
            if failure is not None:
                result.failures.append(failure)

        with self._store.transaction() as uow:
            for request_id, failure in outcomes.items():
                current = uow.get_request(request_id)
                if current is None:
                    continue
                uow.save_request(current.model_copy(update={
                    "delivered": failure is None,
                    "delivery_error": failure.reason if failure else None,
                }))

        for installer_id in result.unreachable:
            logger.warning(
                "No channel reached installer %s for job %s; request stays pending",
                installer_id, plan.job.id,
            )
        return result

    def _channels_for(self, job: Job) -> list[Channel]:
        names = job.channels or list(settings.dispatch.channels)
        return [Channel(name) for name in names]
