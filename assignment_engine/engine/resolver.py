"""
Confirmation resolver: turns installer answers into assignments.

Each answer is applied in one store transaction:

- accept:  the request becomes ``accepted``, sibling requests on other
           channels become ``cancelled`` and the assignment is committed.
           Accepting an already accepted pair is a no-op.
- decline: the installer's pending requests become ``declined`` and, in
           the same transaction, the open seat is re-offered to the next
           candidate (or a manual task is opened when nobody is left).
           No assignment is created; an installer whose assignment was
           removed by a reschedule has that row marked ``declined``.
- cancel:  an administrator cancels or reschedules the job; pending asks
           are cancelled and accepted assignments removed, without any
           decline cascade.

Notifications for re-offered seats are sent only after the transaction
commits, so the cascade can always be resumed from stored state.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Optional, Union

from assignment_engine.config import settings
from assignment_engine.errors import ConflictError, NotFoundError
from assignment_engine.engine.dispatcher import ConfirmationDispatcher, DispatchPlan, DispatchResult
from assignment_engine.engine.tasks import complete_tasks
from assignment_engine.logging_context import get_job_logger, job_context
from assignment_engine.scheduling.availability import AvailabilityResolver
from assignment_engine.scheduling.state_machine import ConfirmationStateMachine, RequestTrigger
from assignment_engine.schemas.confirmation_schema import (
    Assignment,
    AssignmentStatus,
    Channel,
    ConfirmationRequest,
    RequestStatus,
    RespondAction,
    TaskKind,
)
from assignment_engine.schemas.job_schema import Job, JobStatus, SlotType
from assignment_engine.store.base import Store, UnitOfWork
from assignment_engine.utils import as_utc, parse_date, utcnow

logger = get_job_logger(__name__)


@dataclass
class ResponseResult:
    """Outcome of an installer's accept or decline."""
    job_id: str
    installer_id: str
    action: RespondAction
    changed: bool
    message: str
    request: Optional[ConfirmationRequest] = None
    assignment: Optional[Assignment] = None
    fully_staffed: bool = False
    dispatch: Optional[DispatchResult] = None

    @property
    def reassigned(self) -> bool:
        return bool(self.dispatch and self.dispatch.requests)

    @property
    def warnings(self) -> list[str]:
        return self.dispatch.warnings if self.dispatch else []


@dataclass
class CancellationResult:
    """Outcome of an administrative cancellation or reschedule."""
    job_id: str
    changed: bool
    cancelled_requests: list[str] = field(default_factory=list)
    removed_installers: list[str] = field(default_factory=list)
    dispatch: Optional[DispatchResult] = None


class ConfirmationResolver:
    """Applies accept / decline / cancel events to a job's confirmation state."""

    def __init__(
        self,
        store: Store,
        dispatcher: ConfirmationDispatcher,
        availability: AvailabilityResolver,
    ) -> None:
        self._store = store
        self._dispatcher = dispatcher
        self._availability = availability
        self._sm = ConfirmationStateMachine()

    def respond(
        self,
        job_id: str,
        installer_id: str,
        channel: Union[Channel, str],
        action: Union[RespondAction, str],
    ) -> ResponseResult:
        """Apply an installer's answer received on ``channel``."""
        action = RespondAction(action)
        if action == RespondAction.ACCEPT:
            return self.accept(job_id, installer_id, channel)
        return self.decline(job_id, installer_id, channel)

    # ------------------------------------------------------------------ #
    # Accept
    # ------------------------------------------------------------------ #

    def accept(
        self, job_id: str, installer_id: str, channel: Union[Channel, str, None] = None
    ) -> ResponseResult:
        preferred = Channel(channel) if channel is not None else None
        with job_context(job_id):
            with self._store.transaction() as uow:
                job = self._require_job(uow, job_id)
                self._require_installer(uow, installer_id)

                existing = uow.get_assignment(job_id, installer_id)
                if existing is not None and existing.status == AssignmentStatus.ACCEPTED:
                    logger.info("Installer %s already accepted job %s", installer_id, job_id)
                    return ResponseResult(
                        job_id=job_id, installer_id=installer_id,
                        action=RespondAction.ACCEPT, changed=False,
                        message="Already accepted", assignment=existing,
                        fully_staffed=self._accepted_count(uow, job_id) >= job.crew_size,
                    )

                pending = self._pending_for(uow, job_id, installer_id)
                self._require_scheduled(job)

                accepted = uow.list_assignments(job_id=job_id, status=AssignmentStatus.ACCEPTED)
                if len(accepted) >= job.crew_size:
                    raise ConflictError(f"Job {job_id} is already fully staffed")

                clash = self._availability.conflicting_job(uow, installer_id, job)
                if clash is not None:
                    raise ConflictError(
                        f"Installer {installer_id} is already booked on job {clash} "
                        f"for an overlapping slot"
                    )

                now = utcnow()
                chosen = next((r for r in pending if r.channel == preferred), pending[0])
                chosen = self._sm.transition(chosen, RequestTrigger.ACCEPT, now)
                uow.save_request(chosen)
                for sibling in pending:
                    if sibling.id != chosen.id:
                        uow.save_request(
                            self._sm.transition(sibling, RequestTrigger.SIBLING_ACCEPTED, now)
                        )

                assignment = Assignment(
                    job_id=job_id,
                    installer_id=installer_id,
                    status=AssignmentStatus.ACCEPTED,
                    is_lead=not any(a.is_lead for a in accepted),
                    declared_hours=job.hours_per_person,
                    accepted_at=now,
                )
                uow.save_assignment(assignment)

                seats_left = job.crew_size - len(accepted) - 1
                plan: Optional[DispatchPlan] = None
                if seats_left == 0:
                    complete_tasks(uow, job_id, TaskKind.INSUFFICIENT_CANDIDATES, now)
                else:
                    plan = self._dispatcher.plan(uow, job)

            logger.info(
                "Installer %s accepted job %s via %s (%d seat(s) left)",
                installer_id, job_id, chosen.channel.value, seats_left,
            )
            dispatch = self._dispatcher.deliver(plan) if plan is not None else None
            return ResponseResult(
                job_id=job_id, installer_id=installer_id, action=RespondAction.ACCEPT,
                changed=True, message="Booking accepted", request=chosen,
                assignment=assignment, fully_staffed=seats_left == 0, dispatch=dispatch,
            )

    # ------------------------------------------------------------------ #
    # Decline / timeout
    # ------------------------------------------------------------------ #

    def decline(
        self,
        job_id: str,
        installer_id: str,
        channel: Union[Channel, str, None] = None,
        trigger: RequestTrigger = RequestTrigger.DECLINE,
    ) -> ResponseResult:
        with job_context(job_id):
            with self._store.transaction() as uow:
                job = self._require_job(uow, job_id)
                self._require_installer(uow, installer_id)

                existing = uow.get_assignment(job_id, installer_id)
                if existing is not None and existing.status == AssignmentStatus.ACCEPTED:
                    raise ConflictError(
                        f"Installer {installer_id} has already accepted job {job_id}"
                    )

                pending = self._pending_for(uow, job_id, installer_id)
                self._require_scheduled(job)

                now = utcnow()
                declined = [self._sm.transition(r, trigger, now) for r in pending]
                for request in declined:
                    uow.save_request(request)
                if existing is not None:
                    # Released by a reschedule; the old row records the decline.
                    uow.save_assignment(existing.model_copy(update={
                        "status": AssignmentStatus.DECLINED, "is_lead": False,
                    }))

                # Seat re-check and replacement are staged in the same transaction.
                plan: DispatchPlan = self._dispatcher.plan(uow, job)

            logger.info(
                "Installer %s declined job %s (%s); %d replacement request(s)",
                installer_id, job_id, trigger.value, len(plan.requests),
            )
            dispatch = self._dispatcher.deliver(plan)
            preferred = Channel(channel) if channel is not None else None
            request = next((r for r in declined if r.channel == preferred), declined[0])
            return ResponseResult(
                job_id=job_id, installer_id=installer_id, action=RespondAction.DECLINE,
                changed=True, message="Booking declined", request=request,
                dispatch=dispatch,
            )

    def expire_pending(self, now: Optional[datetime] = None) -> list[ResponseResult]:
        """Treat requests unanswered past the timeout as declines."""
        now = as_utc(now) if now is not None else utcnow()
        cutoff = now - timedelta(hours=settings.dispatch.confirmation_timeout_hours)
        with self._store.transaction() as uow:
            stale = [
                r for r in uow.list_requests(status=RequestStatus.PENDING)
                if r.created_at <= cutoff
            ]

        pairs: list[tuple[str, str]] = []
        for request in stale:
            pair = (request.job_id, request.installer_id)
            if pair not in pairs:
                pairs.append(pair)

        results = []
        for job_id, installer_id in pairs:
            try:
                results.append(
                    self.decline(job_id, installer_id, trigger=RequestTrigger.TIMEOUT)
                )
            except (ConflictError, NotFoundError) as exc:
                # Answered or cancelled between the scan and the decline.
                logger.info("Skipping timeout for %s/%s: %s", job_id, installer_id, exc)
        return results

    # ------------------------------------------------------------------ #
    # Administrative cancel / reschedule
    # ------------------------------------------------------------------ #

    def cancel_job(self, job_id: str) -> CancellationResult:
        """Cancel the job, its pending asks and its accepted assignments."""
        with job_context(job_id):
            with self._store.transaction() as uow:
                job = self._require_job(uow, job_id)
                if job.status == JobStatus.CANCELLED:
                    return CancellationResult(job_id=job_id, changed=False)
                if job.status == JobStatus.COMPLETED:
                    raise ConflictError(f"Job {job_id} is completed and cannot be cancelled")

                result = self._release(uow, job)
                uow.save_job(job.model_copy(update={"status": JobStatus.CANCELLED}))

            logger.info(
                "Job %s cancelled: %d request(s) cancelled, %d assignment(s) removed",
                job_id, len(result.cancelled_requests), len(result.removed_installers),
            )
            return result

    def reschedule_job(
        self,
        job_id: str,
        new_date: Union[date, str],
        slot_type: Optional[SlotType] = None,
        day_count: Optional[int] = None,
    ) -> CancellationResult:
        """Move the job, release everyone tied to the old date and re-dispatch."""
        new_date = parse_date(new_date)
        with job_context(job_id):
            with self._store.transaction() as uow:
                job = self._require_job(uow, job_id)
                self._require_scheduled(job)
                result = self._release(uow, job)
                update: dict = {"scheduled_date": new_date}
                if slot_type is not None:
                    update["slot_type"] = SlotType(slot_type)
                if day_count is not None:
                    update["day_count"] = max(day_count, 1)
                moved = job.model_copy(update=update)
                uow.save_job(moved)
                plan = self._dispatcher.plan(uow, moved)

            logger.info("Job %s rescheduled to %s", job_id, new_date.isoformat())
            result.dispatch = self._dispatcher.deliver(plan)
            return result

    def _release(self, uow: UnitOfWork, job: Job) -> CancellationResult:
        now = utcnow()
        result = CancellationResult(job_id=job.id, changed=True)
        for request in uow.list_requests(job_id=job.id, status=RequestStatus.PENDING):
            uow.save_request(self._sm.transition(request, RequestTrigger.ADMIN_CANCEL, now))
            result.cancelled_requests.append(request.id)
        for assignment in uow.list_assignments(job_id=job.id, status=AssignmentStatus.ACCEPTED):
            uow.save_assignment(assignment.model_copy(update={
                "status": AssignmentStatus.REMOVED, "is_lead": False, "removed_at": now,
            }))
            result.removed_installers.append(assignment.installer_id)
        complete_tasks(uow, job.id, TaskKind.INSUFFICIENT_CANDIDATES, now)
        return result

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #

    def _require_job(self, uow: UnitOfWork, job_id: str) -> Job:
        job = uow.get_job(job_id)
        if job is None:
            raise NotFoundError(f"Job {job_id} not found")
        return job

    def _require_installer(self, uow: UnitOfWork, installer_id: str) -> None:
        if uow.get_installer(installer_id) is None:
            raise NotFoundError(f"Installer {installer_id} not found")

    @staticmethod
    def _require_scheduled(job: Job) -> None:
        if job.status != JobStatus.SCHEDULED:
            raise ConflictError(f"Job {job.id} is {job.status.value}")

    @staticmethod
    def _accepted_count(uow: UnitOfWork, job_id: str) -> int:
        return len(uow.list_assignments(job_id=job_id, status=AssignmentStatus.ACCEPTED))

    @staticmethod
    def _pending_for(uow: UnitOfWork, job_id: str, installer_id: str) -> list[ConfirmationRequest]:
        """Pending requests for the pair, or the right rejection when there are none."""
        pending = uow.list_requests(
            job_id=job_id, installer_id=installer_id, status=RequestStatus.PENDING
        )
        if pending:
            return pending
        if uow.list_requests(job_id=job_id, installer_id=installer_id):
            raise ConflictError(
                f"No pending confirmation for installer {installer_id} on job {job_id}"
            )
        raise NotFoundError(
            f"Installer {installer_id} has no confirmation request for job {job_id}"
        )
