"""Tests for the installer hours report."""

from datetime import date

import pytest

from assignment_engine.errors import NotFoundError
from assignment_engine.reporting.hours_report import (
    HoursReportBuilder,
    format_csv,
    format_report,
)
from tests.conftest import make_job


def _staff_and_complete(engine, job_id, installers, actual, scheduled_date=date(2026, 3, 2)):
    engine.submit_job(make_job(job_id, crew_size=len(installers), scheduled_date=scheduled_date))
    for installer_id in installers:
        engine.respond(installer_id, job_id, installer_id, "in_app", "accept")
    engine.reconcile(job_id, actual)


class TestBuild:
    def test_billable_hours_prefer_debitable(self, engine):
        _staff_and_complete(engine, "JOB-1", ["A", "B"], {"A": 9.0, "B": 6.0})
        engine.resolve_overbooking("JOB-1", {"A": 7.5})

        report = engine.hours_report("A", "2026-03-01", "2026-03-31")
        assert len(report.rows) == 1
        row = report.rows[0]
        assert row.hours == pytest.approx(7.5)
        assert row.amount == pytest.approx(7.5 * 400.0)
        assert row.is_lead

    def test_actual_hours_used_without_debitable(self, engine):
        _staff_and_complete(engine, "JOB-1", ["A", "B"], {"A": 6.3, "B": 6.0})
        report = engine.hours_report("A", "2026-03-01", "2026-03-31")
        assert report.rows[0].hours == pytest.approx(6.3)

    def test_only_completed_jobs_in_range(self, engine):
        _staff_and_complete(engine, "JOB-1", ["A"], {"A": 12.0})
        _staff_and_complete(engine, "JOB-2", ["A"], {"A": 12.0}, scheduled_date=date(2026, 4, 6))
        engine.submit_job(make_job("JOB-3", crew_size=1, scheduled_date=date(2026, 3, 3)))
        engine.respond("A", "JOB-3", "A", "in_app", "accept")

        report = engine.hours_report("A", date(2026, 3, 1), date(2026, 3, 31))
        assert [r.job_id for r in report.rows] == ["JOB-1"]
        assert report.total_hours == pytest.approx(12.0)

    def test_rows_sorted_by_date(self, engine):
        _staff_and_complete(engine, "JOB-9", ["A"], {"A": 4.0}, scheduled_date=date(2026, 3, 20))
        _staff_and_complete(engine, "JOB-1", ["A"], {"A": 4.0}, scheduled_date=date(2026, 3, 5))
        report = engine.hours_report("A", "2026-03-01", "2026-03-31")
        assert [r.job_id for r in report.rows] == ["JOB-1", "JOB-9"]

    def test_unknown_installer(self, store):
        with pytest.raises(NotFoundError):
            HoursReportBuilder(store).build("Z", "2026-03-01", "2026-03-31")


class TestFormatting:
    def test_employee_csv_has_hours_only(self, engine):
        _staff_and_complete(engine, "JOB-1", ["A"], {"A": 12.0})
        csv_text = format_csv(engine.hours_report("A", "2026-03-01", "2026-03-31"))
        lines = csv_text.splitlines()
        assert lines[0] == "Date,Customer,Address,Hours"
        assert lines[1] == "2026-03-02,Test Customer,Testgatan 1,12.0"
        assert lines[-1] == "Total,,,12.0"
        assert "VAT" not in csv_text

    def test_subcontractor_csv_has_vat(self, store):
        report = HoursReportBuilder(store, vat_rate=0.25).build("C", "2026-03-01", "2026-03-31")
        report.rows = []
        csv_text = format_csv(report)
        assert csv_text.splitlines()[0].endswith("Amount excl VAT")
        assert "VAT (25%)" in csv_text

    def test_subcontractor_totals(self, engine, store):
        _staff_and_complete(engine, "JOB-1", ["A", "B", "C"], {"A": 4.0, "B": 4.0, "C": 4.0})
        report = HoursReportBuilder(store, vat_rate=0.25).build("C", "2026-03-01", "2026-03-31")
        assert report.total_amount == pytest.approx(2000.0)
        assert report.vat_amount == pytest.approx(500.0)
        assert report.total_incl_vat == pytest.approx(2500.0)

    def test_console_report(self, engine):
        _staff_and_complete(engine, "JOB-1", ["A"], {"A": 12.0})
        text = format_report(engine.hours_report("A", "2026-03-01", "2026-03-31"))
        assert "HOURS REPORT" in text
        assert "(lead)" in text
