"""
Installer availability resolution.

An installer is available for a date and slot when all of these hold:
1. They are active
2. Every capability the job requires is certified and unexpired on the date
3. They have not blocked the date (or the requested half of it)
4. They hold no accepted assignment on a live job overlapping the slot

Reads go through the caller's unit of work, so results reflect a single
consistent snapshot. Final correctness is enforced again at accept time.
"""

import logging
from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date
from typing import Optional

from assignment_engine.errors import NotFoundError
from assignment_engine.schemas.confirmation_schema import AssignmentStatus
from assignment_engine.schemas.installer_schema import Installer
from assignment_engine.schemas.job_schema import Job, JobStatus, SlotType
from assignment_engine.store.base import Store, UnitOfWork
from assignment_engine.utils import iter_dates

logger = logging.getLogger(__name__)

REASON_INACTIVE = "inactive"
REASON_CERTIFICATION = "certification_expired"
REASON_BLOCKED = "blocked"
REASON_BOOKED = "already_booked"


@dataclass
class InstallerAvailability:
    """Availability of one installer for one date and slot."""
    installer_id: str
    installer_name: str
    priority_rank: int
    available: bool
    reason: Optional[str] = None


@dataclass(frozen=True)
class Commitment:
    job_id: str
    on_date: date
    slot_type: SlotType


def slots_overlap(a: SlotType, b: SlotType) -> bool:
    """Full days clash with anything; half days only with the same half."""
    return a == SlotType.FULL or b == SlotType.FULL or a == b


def _commitments(
    uow: UnitOfWork, exclude_job_id: Optional[str] = None
) -> dict[str, list[Commitment]]:
    """Index accepted assignments on live jobs by installer."""
    by_installer: dict[str, list[Commitment]] = defaultdict(list)
    jobs: dict[str, Optional[Job]] = {}
    for assignment in uow.list_assignments(status=AssignmentStatus.ACCEPTED):
        if assignment.job_id == exclude_job_id:
            continue
        if assignment.job_id not in jobs:
            jobs[assignment.job_id] = uow.get_job(assignment.job_id)
        job = jobs[assignment.job_id]
        if job is None or job.status == JobStatus.CANCELLED:
            continue
        for on_date in job.dates:
            by_installer[assignment.installer_id].append(
                Commitment(job_id=job.id, on_date=on_date, slot_type=job.slot_type)
            )
    return by_installer


class AvailabilityResolver:
    """Computes which installers are free on given dates."""

    def __init__(self, store: Store) -> None:
        self._store = store

    def check_installer(
        self,
        uow: UnitOfWork,
        installer: Installer,
        on_date: date,
        slot_type: SlotType = SlotType.FULL,
        required_capabilities: Iterable[str] = (),
        commitments: Optional[dict[str, list[Commitment]]] = None,
    ) -> InstallerAvailability:
        """Check a single installer on a single date."""
        base = {
            "installer_id": installer.id,
            "installer_name": installer.name,
            "priority_rank": installer.priority_rank,
        }

        if not installer.is_active:
            return InstallerAvailability(**base, available=False, reason=REASON_INACTIVE)

        for capability in required_capabilities:
            if not installer.has_valid_capability(capability, on_date):
                return InstallerAvailability(
                    **base, available=False, reason=REASON_CERTIFICATION
                )

        for block in uow.list_blocks(installer_id=installer.id, on_date=on_date):
            if slots_overlap(block.slot, slot_type):
                return InstallerAvailability(**base, available=False, reason=REASON_BLOCKED)

        if commitments is None:
            commitments = _commitments(uow)
        for commitment in commitments.get(installer.id, []):
            if commitment.on_date == on_date and slots_overlap(commitment.slot_type, slot_type):
                return InstallerAvailability(**base, available=False, reason=REASON_BOOKED)

        return InstallerAvailability(**base, available=True)

    def for_date(
        self,
        uow: UnitOfWork,
        on_date: date,
        slot_type: SlotType = SlotType.FULL,
        required_capabilities: Iterable[str] = (),
        exclude_job_id: Optional[str] = None,
    ) -> list[InstallerAvailability]:
        """Availability of every installer on ``on_date``, best priority first."""
        capabilities = tuple(required_capabilities)
        commitments = _commitments(uow, exclude_job_id=exclude_job_id)
        results = [
            self.check_installer(uow, installer, on_date, slot_type, capabilities, commitments)
            for installer in uow.list_installers()
        ]
        return sorted(results, key=lambda r: (r.priority_rank, r.installer_name, r.installer_id))

    def for_range(
        self,
        from_date: date,
        to_date: date,
        slot_type: SlotType = SlotType.FULL,
        required_capabilities: Iterable[str] = (),
    ) -> dict[date, list[InstallerAvailability]]:
        """Per-date availability grid for an inclusive date range."""
        capabilities = tuple(required_capabilities)
        with self._store.transaction() as uow:
            return {
                on_date: self.for_date(uow, on_date, slot_type, capabilities)
                for on_date in iter_dates(from_date, to_date)
            }

    def available_for_job(self, uow: UnitOfWork, job: Job) -> list[Installer]:
        """Installers free on every date the job covers."""
        commitments = _commitments(uow, exclude_job_id=job.id)
        available: list[Installer] = []
        for installer in uow.list_installers():
            if all(
                self.check_installer(
                    uow, installer, on_date, job.slot_type,
                    job.required_capabilities, commitments,
                ).available
                for on_date in job.dates
            ):
                available.append(installer)
        logger.debug(
            "%d installer(s) available for job %s on %s",
            len(available), job.id, job.scheduled_date.isoformat(),
        )
        return available

    def for_job(self, job_id: str) -> list[Installer]:
        """Look up a job and return the installers free for all of its dates."""
        with self._store.transaction() as uow:
            job = uow.get_job(job_id)
            if job is None:
                raise NotFoundError(f"Job {job_id} not found")
            return self.available_for_job(uow, job)

    def conflicting_job(self, uow: UnitOfWork, installer_id: str, job: Job) -> Optional[str]:
        """Return the id of another accepted job that overlaps ``job``, if any."""
        commitments = _commitments(uow, exclude_job_id=job.id).get(installer_id, [])
        job_dates = set(job.dates)
        for commitment in commitments:
            if commitment.on_date in job_dates and slots_overlap(
                commitment.slot_type, job.slot_type
            ):
                return commitment.job_id
        return None
