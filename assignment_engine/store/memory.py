"""
In-memory store used by tests, the console demo and local development.

In production the same unit-of-work contract is backed by the booking
database (``booking_installers`` / ``booking_confirmation_requests`` /
``tasks`` tables) with ``SELECT ... FOR UPDATE`` on the job row. Here a
single re-entrant lock serializes transactions, which gives every engine
operation the linearizable read-check-write it depends on.
"""

import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import date
from typing import Any, Hashable, Optional, TypeVar

from pydantic import BaseModel

from assignment_engine.errors import ConflictError
from assignment_engine.schemas.confirmation_schema import (
    Assignment,
    AssignmentStatus,
    Channel,
    ConfirmationRequest,
    ManualTask,
    RequestStatus,
    TaskKind,
    TaskStatus,
)
from assignment_engine.schemas.installer_schema import Installer, InstallerBlock
from assignment_engine.schemas.job_schema import Job, JobStatus

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

TABLES = ("jobs", "installers", "blocks", "assignments", "requests", "tasks")


class MemoryUnitOfWork:
    """Stages writes on top of the store's committed tables."""

    def __init__(self, tables: dict[str, dict[Hashable, Any]]) -> None:
        self._tables = tables
        self._staged: dict[str, dict[Hashable, Any]] = {name: {} for name in TABLES}

    # ------------------------------------------------------------------ #
    # Internal helpers
    # ------------------------------------------------------------------ #

    def _get(self, table: str, key: Hashable) -> Optional[Any]:
        row = self._staged[table].get(key, self._tables[table].get(key))
        return row.model_copy(deep=True) if row is not None else None

    def _rows(self, table: str) -> list[Any]:
        merged = {**self._tables[table], **self._staged[table]}
        return [row.model_copy(deep=True) for row in merged.values()]

    def _put(self, table: str, key: Hashable, row: M) -> None:
        self._staged[table][key] = row.model_copy(deep=True)

    @property
    def staged(self) -> dict[str, dict[Hashable, Any]]:
        return self._staged

    # ------------------------------------------------------------------ #
    # Jobs
    # ------------------------------------------------------------------ #

    def get_job(self, job_id: str) -> Optional[Job]:
        return self._get("jobs", job_id)

    def list_jobs(self, status: Optional[JobStatus] = None) -> list[Job]:
        jobs = self._rows("jobs")
        if status is not None:
            jobs = [j for j in jobs if j.status == status]
        return sorted(jobs, key=lambda j: (j.scheduled_date, j.id))

    def save_job(self, job: Job) -> None:
        self._put("jobs", job.id, job)

    # ------------------------------------------------------------------ #
    # Installers (read-only for the engine)
    # ------------------------------------------------------------------ #

    def get_installer(self, installer_id: str) -> Optional[Installer]:
        return self._get("installers", installer_id)

    def find_installer_by_email(self, email: str) -> Optional[Installer]:
        wanted = email.strip().lower()
        for installer in self._rows("installers"):
            if installer.email.lower() == wanted:
                return installer
        return None

    def list_installers(self, active_only: bool = False) -> list[Installer]:
        installers = self._rows("installers")
        if active_only:
            installers = [i for i in installers if i.is_active]
        return installers

    def list_blocks(
        self, installer_id: Optional[str] = None, on_date: Optional[date] = None
    ) -> list[InstallerBlock]:
        return [
            b for b in self._rows("blocks")
            if (installer_id is None or b.installer_id == installer_id)
            and (on_date is None or b.blocked_date == on_date)
        ]

    # ------------------------------------------------------------------ #
    # Assignments
    # ------------------------------------------------------------------ #

    def get_assignment(self, job_id: str, installer_id: str) -> Optional[Assignment]:
        return self._get("assignments", (job_id, installer_id))

    def list_assignments(
        self,
        job_id: Optional[str] = None,
        installer_id: Optional[str] = None,
        status: Optional[AssignmentStatus] = None,
    ) -> list[Assignment]:
        return [
            a for a in self._rows("assignments")
            if (job_id is None or a.job_id == job_id)
            and (installer_id is None or a.installer_id == installer_id)
            and (status is None or a.status == status)
        ]

    def save_assignment(self, assignment: Assignment) -> None:
        # Keyed by (job, installer): one row per pair, so at most one can be accepted.
        self._put("assignments", assignment.key, assignment)

    # ------------------------------------------------------------------ #
    # Confirmation requests
    # ------------------------------------------------------------------ #

    def get_request(self, request_id: str) -> Optional[ConfirmationRequest]:
        return self._get("requests", request_id)

    def get_request_by_token(self, token: str) -> Optional[ConfirmationRequest]:
        for request in self._rows("requests"):
            if request.token == token:
                return request
        return None

    def list_requests(
        self,
        job_id: Optional[str] = None,
        installer_id: Optional[str] = None,
        channel: Optional[Channel] = None,
        status: Optional[RequestStatus] = None,
    ) -> list[ConfirmationRequest]:
        requests = [
            r for r in self._rows("requests")
            if (job_id is None or r.job_id == job_id)
            and (installer_id is None or r.installer_id == installer_id)
            and (channel is None or r.channel == channel)
            and (status is None or r.status == status)
        ]
        return sorted(requests, key=lambda r: (r.created_at, r.id))

    def save_request(self, request: ConfirmationRequest) -> None:
        if request.is_pending:
            clash = [
                r for r in self.list_requests(
                    job_id=request.job_id,
                    installer_id=request.installer_id,
                    channel=request.channel,
                    status=RequestStatus.PENDING,
                )
                if r.id != request.id
            ]
            if clash:
                raise ConflictError(
                    f"A pending {request.channel.value} request already exists for "
                    f"job {request.job_id} / installer {request.installer_id}"
                )
        self._put("requests", request.id, request)

    # ------------------------------------------------------------------ #
    # Manual tasks
    # ------------------------------------------------------------------ #

    def list_tasks(
        self,
        job_id: Optional[str] = None,
        kind: Optional[TaskKind] = None,
        status: Optional[TaskStatus] = None,
    ) -> list[ManualTask]:
        tasks = [
            t for t in self._rows("tasks")
            if (job_id is None or t.job_id == job_id)
            and (kind is None or t.kind == kind)
            and (status is None or t.status == status)
        ]
        return sorted(tasks, key=lambda t: (t.created_at, t.id))

    def save_task(self, task: ManualTask) -> None:
        self._put("tasks", task.id, task)


class InMemoryStore:
    """Thread-safe in-memory implementation of the engine's store contract."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._tables: dict[str, dict[Hashable, Any]] = {name: {} for name in TABLES}
        self.commit_count = 0

    @contextmanager
    def transaction(self) -> Iterator[MemoryUnitOfWork]:
        """Yield a unit of work; apply its writes only if the block succeeds."""
        with self._lock:
            uow = MemoryUnitOfWork(self._tables)
            yield uow
            written = 0
            for table, rows in uow.staged.items():
                self._tables[table].update(rows)
                written += len(rows)
            if written:
                self.commit_count += 1
                logger.debug("Committed %d row(s)", written)

    # ------------------------------------------------------------------ #
    # Administrator-owned writes (outside the engine's transitions)
    # ------------------------------------------------------------------ #

    def add_installer(self, installer: Installer) -> None:
        with self._lock:
            self._tables["installers"][installer.id] = installer.model_copy(deep=True)

    def add_block(self, block: InstallerBlock) -> None:
        with self._lock:
            key = (block.installer_id, block.blocked_date, block.slot)
            self._tables["blocks"][key] = block.model_copy(deep=True)

    def add_job(self, job: Job) -> None:
        with self._lock:
            self._tables["jobs"][job.id] = job.model_copy(deep=True)

    def reset(self) -> None:
        """Clear all tables. Used by test fixtures for isolation."""
        with self._lock:
            for rows in self._tables.values():
                rows.clear()
            self.commit_count = 0
