"""
Overbooking guard: post-completion reconciliation of worked hours.

After a job is done, actual hours per installer are compared with the
share each was declared (quoted hours / crew size). A divergence beyond
``settings.reconciliation.overbooking_tolerance_hours``, or more accepted
installers than the crew size, leaves the job ``overbooking_resolved=False``
with one open manual task until an administrator records debitable hours.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Optional

from assignment_engine.config import settings
from assignment_engine.errors import ConflictError, NotFoundError
from assignment_engine.engine.tasks import complete_tasks, open_task
from assignment_engine.logging_context import get_job_logger, job_context
from assignment_engine.messages import build_overbooking_task
from assignment_engine.scheduling.state_machine import ConfirmationStateMachine, RequestTrigger
from assignment_engine.schemas.confirmation_schema import (
    AssignmentStatus,
    ManualTask,
    RequestStatus,
    TaskKind,
)
from assignment_engine.schemas.job_schema import Job, JobStatus
from assignment_engine.store.base import Store, UnitOfWork
from assignment_engine.utils import utcnow

logger = get_job_logger(__name__)


@dataclass
class ReconciliationResult:
    job_id: str
    changed: bool
    overbooked: bool = False
    divergent: dict[str, tuple[float, float]] = field(default_factory=dict)
    task: Optional[ManualTask] = None
    closed_requests: list[str] = field(default_factory=list)


class OverbookingGuard:
    """Compares declared and actual hours once a job is completed."""

    def __init__(self, store: Store, tolerance_hours: Optional[float] = None) -> None:
        self._store = store
        self._sm = ConfirmationStateMachine()
        self._tolerance = (
            settings.reconciliation.overbooking_tolerance_hours
            if tolerance_hours is None else tolerance_hours
        )

    def reconcile(self, job_id: str, actual_hours: Mapping[str, float]) -> ReconciliationResult:
        """Record actual hours per installer and flag the job if they diverge."""
        with job_context(job_id):
            with self._store.transaction() as uow:
                job = self._require_job(uow, job_id)
                if job.overbooking_resolved:
                    logger.debug("Job %s already reconciled", job_id)
                    return ReconciliationResult(job_id=job_id, changed=False)
                if job.status == JobStatus.CANCELLED:
                    raise ConflictError(f"Job {job_id} is cancelled")

                accepted = {
                    a.installer_id: a
                    for a in uow.list_assignments(job_id=job_id, status=AssignmentStatus.ACCEPTED)
                }
                unknown = sorted(set(actual_hours) - set(accepted))
                if unknown:
                    raise NotFoundError(
                        f"No accepted assignment on job {job_id} for {unknown}"
                    )

                divergent: dict[str, tuple[float, float]] = {}
                for installer_id, assignment in accepted.items():
                    actual = actual_hours.get(installer_id, assignment.actual_hours)
                    uow.save_assignment(assignment.model_copy(update={"actual_hours": actual}))
                    if actual is not None and abs(actual - assignment.declared_hours) > self._tolerance:
                        divergent[installer_id] = (assignment.declared_hours, actual)

                overbooked = bool(divergent) or len(accepted) > job.crew_size
                result = ReconciliationResult(
                    job_id=job_id, changed=True, overbooked=overbooked, divergent=divergent,
                )
                result.closed_requests = self._close_staffing(uow, job_id)
                if overbooked:
                    title, description = build_overbooking_task(job, len(accepted), divergent)
                    result.task = open_task(
                        uow, job_id, TaskKind.OVERBOOKED_HOURS, title, description
                    )
                else:
                    complete_tasks(uow, job_id, TaskKind.OVERBOOKED_HOURS)

                uow.save_job(job.model_copy(update={
                    "status": JobStatus.COMPLETED,
                    "overbooking_resolved": not overbooked,
                }))

            logger.info(
                "Job %s reconciled: %s", job_id, "overbooked" if overbooked else "within tolerance"
            )
            return result

    def resolve(self, job_id: str, debitable_hours: Mapping[str, float]) -> ReconciliationResult:
        """Record an administrator's debitable hours and close the overbooking."""
        with job_context(job_id):
            with self._store.transaction() as uow:
                job = self._require_job(uow, job_id)
                if job.overbooking_resolved:
                    return ReconciliationResult(job_id=job_id, changed=False)

                for installer_id, hours in debitable_hours.items():
                    assignment = uow.get_assignment(job_id, installer_id)
                    if assignment is None or assignment.status != AssignmentStatus.ACCEPTED:
                        raise NotFoundError(
                            f"No accepted assignment on job {job_id} for {installer_id}"
                        )
                    uow.save_assignment(assignment.model_copy(update={"debitable_hours": hours}))

                complete_tasks(uow, job_id, TaskKind.OVERBOOKED_HOURS, utcnow())
                uow.save_job(job.model_copy(update={"overbooking_resolved": True}))

            logger.info("Overbooking on job %s resolved", job_id)
            return ReconciliationResult(job_id=job_id, changed=True)

    @staticmethod
    def _require_job(uow: UnitOfWork, job_id: str) -> Job:
        job = uow.get_job(job_id)
        if job is None:
            raise NotFoundError(f"Job {job_id} not found")
        return job

    def _close_staffing(self, uow: UnitOfWork, job_id: str) -> list[str]:
        """Cancel asks still open on a finished job and close its staffing task."""
        now = utcnow()
        closed = []
        for request in uow.list_requests(job_id=job_id, status=RequestStatus.PENDING):
            uow.save_request(self._sm.transition(request, RequestTrigger.ADMIN_CANCEL, now))
            closed.append(request.id)
        complete_tasks(uow, job_id, TaskKind.INSUFFICIENT_CANDIDATES, now)
        if closed:
            logger.info("Cancelled %d pending request(s) on completed job %s", len(closed), job_id)
        return closed
