"""Manual follow-up task helpers shared by the dispatcher and overbooking guard."""

import uuid
from datetime import datetime
from typing import Optional

from assignment_engine.logging_context import get_job_logger
from assignment_engine.schemas.confirmation_schema import ManualTask, TaskKind, TaskStatus
from assignment_engine.store.base import UnitOfWork
from assignment_engine.utils import utcnow

logger = get_job_logger(__name__)


def new_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:8].upper()}"


def open_task(
    uow: UnitOfWork, job_id: str, kind: TaskKind, title: str, description: str
) -> ManualTask:
    """Return the open task of ``kind`` for the job, creating it if needed.

    An existing open task gets its description refreshed rather than
    being duplicated.
    """
    existing = uow.list_tasks(job_id=job_id, kind=kind, status=TaskStatus.PENDING)
    if existing:
        task = existing[0].model_copy(update={"title": title, "description": description})
        uow.save_task(task)
        return task

    task = ManualTask(
        id=new_id("TASK"), job_id=job_id, kind=kind, title=title, description=description,
    )
    uow.save_task(task)
    logger.warning("Manual task %s opened for job %s: %s", task.id, job_id, title)
    return task


def complete_tasks(
    uow: UnitOfWork, job_id: str, kind: TaskKind, now: Optional[datetime] = None
) -> list[ManualTask]:
    """Complete every open task of ``kind`` for the job."""
    completed = []
    for task in uow.list_tasks(job_id=job_id, kind=kind, status=TaskStatus.PENDING):
        done = task.model_copy(
            update={"status": TaskStatus.COMPLETED, "completed_at": now or utcnow()}
        )
        uow.save_task(done)
        completed.append(done)
    if completed:
        logger.info("Completed %d %s task(s) for job %s", len(completed), kind.value, job_id)
    return completed
