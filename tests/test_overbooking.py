"""Tests for post-completion hour reconciliation."""

import pytest

from assignment_engine.engine.overbooking import OverbookingGuard
from assignment_engine.errors import ConflictError, NotFoundError
from assignment_engine.schemas.confirmation_schema import (
    Assignment,
    AssignmentStatus,
    RequestStatus,
    TaskKind,
    TaskStatus,
)
from assignment_engine.schemas.job_schema import JobStatus
from tests.conftest import assignment_for, job_in_store, make_job, requests_for


@pytest.fixture
def staffed(engine):
    """JOB-1: 12 hours, crew of two, A and B accepted (6h declared each)."""
    engine.submit_job(make_job(crew_size=2, total_hours=12.0))
    for installer_id in ("A", "B"):
        engine.respond(installer_id, "JOB-1", installer_id, "in_app", "accept")
    return engine


class TestReconcile:
    def test_within_tolerance_resolves_immediately(self, staffed, store):
        result = staffed.reconcile("JOB-1", {"A": 6.0, "B": 6.4})
        assert result.changed and not result.overbooked
        job = job_in_store(store, "JOB-1")
        assert job.status == JobStatus.COMPLETED
        assert job.overbooking_resolved is True
        assert staffed.open_tasks("JOB-1") == []

    def test_divergent_hours_open_task(self, staffed, store):
        result = staffed.reconcile("JOB-1", {"A": 9.0, "B": 6.0})
        assert result.overbooked
        assert result.divergent == {"A": (6.0, 9.0)}
        assert job_in_store(store, "JOB-1").overbooking_resolved is False

        tasks = staffed.open_tasks("JOB-1")
        assert len(tasks) == 1
        assert tasks[0].kind == TaskKind.OVERBOOKED_HOURS
        assert "A: declared 6.0h, actual 9.0h" in tasks[0].description

    def test_actual_hours_recorded(self, staffed, store):
        staffed.reconcile("JOB-1", {"A": 6.2, "B": 5.9})
        assert assignment_for(store, "JOB-1", "A").actual_hours == pytest.approx(6.2)

    def test_more_installers_than_planned(self, staffed, store):
        with store.transaction() as uow:
            uow.save_assignment(Assignment(
                job_id="JOB-1", installer_id="C", status=AssignmentStatus.ACCEPTED,
                declared_hours=6.0,
            ))
        result = staffed.reconcile("JOB-1", {"A": 6.0, "B": 6.0, "C": 6.0})
        assert result.overbooked
        assert result.divergent == {}
        assert "3 installers worked but 2 were planned" in result.task.description

    def test_unknown_installer(self, staffed):
        with pytest.raises(NotFoundError, match="C"):
            staffed.reconcile("JOB-1", {"C": 4.0})

    def test_cancelled_job(self, staffed):
        staffed.cancel_job("JOB-1")
        with pytest.raises(ConflictError, match="cancelled"):
            staffed.reconcile("JOB-1", {"A": 6.0})

    def test_missing_job(self, engine):
        with pytest.raises(NotFoundError):
            engine.reconcile("JOB-404", {})

    def test_second_reconcile_after_resolution_is_noop(self, staffed):
        staffed.reconcile("JOB-1", {"A": 6.0, "B": 6.0})
        assert not staffed.reconcile("JOB-1", {"A": 10.0}).changed

    def test_re_reconcile_within_tolerance_closes_task(self, staffed, store):
        staffed.reconcile("JOB-1", {"A": 9.0, "B": 6.0})
        staffed.reconcile("JOB-1", {"A": 6.0})
        assert staffed.open_tasks("JOB-1") == []
        assert job_in_store(store, "JOB-1").overbooking_resolved is True

    def test_custom_tolerance(self, staffed, store):
        guard = OverbookingGuard(store, tolerance_hours=5.0)
        assert not guard.reconcile("JOB-1", {"A": 10.0, "B": 6.0}).overbooked

    def test_completion_closes_outstanding_staffing(self, engine, store):
        engine.submit_job(make_job(crew_size=4, total_hours=12.0))
        engine.respond("A", "JOB-1", "A", "in_app", "accept")
        assert [t.kind for t in engine.open_tasks("JOB-1")] == [TaskKind.INSUFFICIENT_CANDIDATES]

        result = engine.reconcile("JOB-1", {"A": 3.0})

        assert not result.overbooked
        assert len(result.closed_requests) == 2
        assert requests_for(store, "JOB-1", status=RequestStatus.PENDING) == []
        assert {
            r.installer_id
            for r in requests_for(store, "JOB-1", status=RequestStatus.CANCELLED)
        } == {"B", "C"}
        assert engine.open_tasks("JOB-1") == []
        assert engine.expire_pending() == []


class TestResolve:
    def test_resolve_records_debitable_hours(self, staffed, store):
        staffed.reconcile("JOB-1", {"A": 9.0, "B": 6.0})
        result = staffed.resolve_overbooking("JOB-1", {"A": 7.5, "B": 6.0})

        assert result.changed
        assert assignment_for(store, "JOB-1", "A").debitable_hours == pytest.approx(7.5)
        assert job_in_store(store, "JOB-1").overbooking_resolved is True
        with store.transaction() as uow:
            tasks = uow.list_tasks(job_id="JOB-1", kind=TaskKind.OVERBOOKED_HOURS)
        assert [t.status for t in tasks] == [TaskStatus.COMPLETED]

    def test_resolve_unknown_installer(self, staffed):
        staffed.reconcile("JOB-1", {"A": 9.0, "B": 6.0})
        with pytest.raises(NotFoundError):
            staffed.resolve_overbooking("JOB-1", {"C": 3.0})

    def test_resolve_twice_is_noop(self, staffed):
        staffed.reconcile("JOB-1", {"A": 9.0, "B": 6.0})
        staffed.resolve_overbooking("JOB-1", {"A": 7.0})
        assert not staffed.resolve_overbooking("JOB-1", {"A": 8.0}).changed
