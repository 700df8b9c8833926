"""
Store interface consumed by the engine.

Durable storage of jobs, installers and tasks belongs to the surrounding
application (PostgreSQL in production). The engine only depends on a
``Store`` that hands out units of work: reads by id or filter, plus staged
writes that are applied all-or-nothing when the ``with`` block exits cleanly.

Usage:
    with store.transaction() as uow:
        job = uow.get_job("JOB-1")
        uow.save_job(job.model_copy(update={"status": JobStatus.CANCELLED}))
"""

from contextlib import AbstractContextManager
from datetime import date
from typing import Optional, Protocol

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


class UnitOfWork(Protocol):
    """Reads see committed state plus this unit's own staged writes."""

    def get_job(self, job_id: str) -> Optional[Job]: ...

    def list_jobs(self, status: Optional[JobStatus] = None) -> list[Job]: ...

    def save_job(self, job: Job) -> None: ...

    def get_installer(self, installer_id: str) -> Optional[Installer]: ...

    def find_installer_by_email(self, email: str) -> Optional[Installer]: ...

    def list_installers(self, active_only: bool = False) -> list[Installer]: ...

    def list_blocks(
        self, installer_id: Optional[str] = None, on_date: Optional[date] = None
    ) -> list[InstallerBlock]: ...

    def get_assignment(self, job_id: str, installer_id: str) -> Optional[Assignment]: ...

    def list_assignments(
        self,
        job_id: Optional[str] = None,
        installer_id: Optional[str] = None,
        status: Optional[AssignmentStatus] = None,
    ) -> list[Assignment]: ...

    def save_assignment(self, assignment: Assignment) -> None: ...

    def get_request(self, request_id: str) -> Optional[ConfirmationRequest]: ...

    def get_request_by_token(self, token: str) -> Optional[ConfirmationRequest]: ...

    def list_requests(
        self,
        job_id: Optional[str] = None,
        installer_id: Optional[str] = None,
        channel: Optional[Channel] = None,
        status: Optional[RequestStatus] = None,
    ) -> list[ConfirmationRequest]: ...

    def save_request(self, request: ConfirmationRequest) -> None: ...

    def list_tasks(
        self,
        job_id: Optional[str] = None,
        kind: Optional[TaskKind] = None,
        status: Optional[TaskStatus] = None,
    ) -> list[ManualTask]: ...

    def save_task(self, task: ManualTask) -> None: ...


class Store(Protocol):
    def transaction(self) -> AbstractContextManager[UnitOfWork]: ...
