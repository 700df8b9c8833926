"""Shared test fixtures and helpers."""

from datetime import date
from typing import Optional

import pytest

from assignment_engine.engine import AssignmentEngine
from assignment_engine.notifications.registry import default_router
from assignment_engine.schemas.confirmation_schema import Channel, RequestStatus
from assignment_engine.schemas.installer_schema import Certification, Installer, InstallerType
from assignment_engine.schemas.job_schema import Job, SlotType
from assignment_engine.scheduling.availability import AvailabilityResolver
from assignment_engine.scheduling.state_machine import ConfirmationStateMachine
from assignment_engine.store.memory import InMemoryStore

JOB_DATE = date(2026, 3, 2)
WEBHOOK_KEY = "test-webhook-key"


def make_installer(
    installer_id: str,
    rank: int = 99,
    first_name: Optional[str] = None,
    email: Optional[str] = None,
    **kwargs,
) -> Installer:
    """Helper to create an Installer with sensible defaults."""
    return Installer(
        id=installer_id,
        first_name=first_name or f"Installer {installer_id}",
        email=email if email is not None else f"{installer_id.lower()}@example.com",
        priority_rank=rank,
        **kwargs,
    )


def make_job(
    job_id: str = "JOB-1",
    crew_size: int = 2,
    total_hours: float = 12.0,
    scheduled_date: date = JOB_DATE,
    slot_type: SlotType = SlotType.FULL,
    day_count: int = 1,
    channels: Optional[list[str]] = None,
    **kwargs,
) -> Job:
    """Helper to create a Job. Defaults to the in-app channel only."""
    return Job(
        id=job_id,
        scheduled_date=scheduled_date,
        slot_type=slot_type,
        day_count=day_count,
        crew_size=crew_size,
        total_hours=total_hours,
        channels=channels if channels is not None else ["in_app"],
        customer_name="Test Customer",
        customer_address="Testgatan 1",
        **kwargs,
    )


@pytest.fixture
def store():
    """Store seeded with installers A, B and C ranked 1, 2 and 3."""
    store = InMemoryStore()
    store.add_installer(make_installer("A", rank=1, first_name="Anna", hourly_rate=400.0))
    store.add_installer(make_installer("B", rank=2, first_name="Bo", hourly_rate=380.0))
    store.add_installer(make_installer(
        "C", rank=3, first_name="Cecilia", hourly_rate=500.0,
        installer_type=InstallerType.SUBCONTRACTOR,
        certifications=[Certification(name="hardplast", expires_on=date(2027, 1, 1))],
    ))
    return store


@pytest.fixture
def router():
    return default_router()


@pytest.fixture
def engine(store, router):
    return AssignmentEngine(store, router=router, webhook_api_key=WEBHOOK_KEY)


@pytest.fixture
def availability(store):
    return AvailabilityResolver(store)


@pytest.fixture
def request_machine():
    return ConfirmationStateMachine()


def requests_for(
    store: InMemoryStore,
    job_id: str,
    installer_id: Optional[str] = None,
    status: Optional[RequestStatus] = None,
    channel: Optional[Channel] = None,
):
    """Read confirmation requests straight from the store."""
    with store.transaction() as uow:
        return uow.list_requests(
            job_id=job_id, installer_id=installer_id, status=status, channel=channel
        )


def assignment_for(store: InMemoryStore, job_id: str, installer_id: str):
    with store.transaction() as uow:
        return uow.get_assignment(job_id, installer_id)


def job_in_store(store: InMemoryStore, job_id: str) -> Job:
    with store.transaction() as uow:
        return uow.get_job(job_id)
