"""
Installer hours report for payroll and subcontractor invoicing.

Covers completed jobs in an inclusive date range where the installer held an
accepted assignment. Hours per row are the assignment's billable hours:
debitable hours when an overbooking was resolved, else actual hours, else the
declared share. Subcontractor reports carry VAT lines at
``settings.reconciliation.vat_rate``.
"""

import csv
import io
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Optional, Union

from assignment_engine.config import settings
from assignment_engine.errors import NotFoundError
from assignment_engine.schemas.confirmation_schema import AssignmentStatus
from assignment_engine.schemas.installer_schema import Installer, InstallerType
from assignment_engine.schemas.job_schema import JobStatus
from assignment_engine.store.base import Store
from assignment_engine.utils import parse_date

logger = logging.getLogger(__name__)


@dataclass
class ReportRow:
    """One completed job on an installer's report."""
    on_date: date
    job_id: str
    customer_name: str
    customer_address: str
    declared_hours: float
    actual_hours: Optional[float]
    debitable_hours: Optional[float]
    hours: float
    rate: float
    amount: float
    is_lead: bool = False


@dataclass
class InstallerReport:
    installer_id: str
    installer_name: str
    installer_type: InstallerType
    hourly_rate: float
    from_date: date
    to_date: date
    rows: list[ReportRow] = field(default_factory=list)
    vat_rate: float = 0.0

    @property
    def total_hours(self) -> float:
        return round(sum(r.hours for r in self.rows), 1)

    @property
    def total_amount(self) -> float:
        return round(sum(r.amount for r in self.rows), 2)

    @property
    def vat_amount(self) -> float:
        return round(self.total_amount * self.vat_rate, 2)

    @property
    def total_incl_vat(self) -> float:
        return round(self.total_amount + self.vat_amount, 2)

    @property
    def is_subcontractor(self) -> bool:
        return self.installer_type == InstallerType.SUBCONTRACTOR


class HoursReportBuilder:
    """Builds installer hour reports from stored assignments."""

    def __init__(self, store: Store, vat_rate: Optional[float] = None) -> None:
        self._store = store
        self._vat_rate = settings.reconciliation.vat_rate if vat_rate is None else vat_rate

    def build(
        self,
        installer_id: str,
        from_date: Union[date, str],
        to_date: Union[date, str],
    ) -> InstallerReport:
        """Collect the installer's completed jobs between two dates inclusive."""
        from_date, to_date = parse_date(from_date), parse_date(to_date)
        with self._store.transaction() as uow:
            installer: Optional[Installer] = uow.get_installer(installer_id)
            if installer is None:
                raise NotFoundError(f"Installer {installer_id} not found")

            report = InstallerReport(
                installer_id=installer.id,
                installer_name=installer.name,
                installer_type=installer.installer_type,
                hourly_rate=installer.hourly_rate,
                from_date=from_date,
                to_date=to_date,
                vat_rate=self._vat_rate,
            )
            for assignment in uow.list_assignments(
                installer_id=installer_id, status=AssignmentStatus.ACCEPTED
            ):
                job = uow.get_job(assignment.job_id)
                if job is None or job.status != JobStatus.COMPLETED:
                    continue
                if not from_date <= job.scheduled_date <= to_date:
                    continue
                hours = round(assignment.billable_hours, 1)
                report.rows.append(ReportRow(
                    on_date=job.scheduled_date,
                    job_id=job.id,
                    customer_name=job.customer_name or "-",
                    customer_address=job.customer_address or "-",
                    declared_hours=round(assignment.declared_hours, 1),
                    actual_hours=assignment.actual_hours,
                    debitable_hours=assignment.debitable_hours,
                    hours=hours,
                    rate=installer.hourly_rate,
                    amount=round(hours * installer.hourly_rate, 2),
                    is_lead=assignment.is_lead,
                ))

        report.rows.sort(key=lambda r: (r.on_date, r.job_id))
        logger.info(
            "Report for %s %s..%s: %d job(s), %.1fh",
            installer_id, from_date.isoformat(), to_date.isoformat(),
            len(report.rows), report.total_hours,
        )
        return report


def format_csv(report: InstallerReport) -> str:
    """Render a report as CSV. Subcontractors get rate, amount and VAT columns."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    if report.is_subcontractor:
        writer.writerow(["Date", "Customer", "Address", "Hours", "Rate", "Amount excl VAT"])
        for row in report.rows:
            writer.writerow([
                row.on_date.isoformat(), row.customer_name, row.customer_address,
                row.hours, row.rate, row.amount,
            ])
        writer.writerow([])
        writer.writerow(["Total", "", "", report.total_hours, "", report.total_amount])
        writer.writerow([f"VAT ({report.vat_rate:.0%})", "", "", "", "", report.vat_amount])
        writer.writerow(["Total incl VAT", "", "", "", "", report.total_incl_vat])
    else:
        writer.writerow(["Date", "Customer", "Address", "Hours"])
        for row in report.rows:
            writer.writerow([
                row.on_date.isoformat(), row.customer_name, row.customer_address, row.hours,
            ])
        writer.writerow([])
        writer.writerow(["Total", "", "", report.total_hours])
    return buffer.getvalue()


def format_report(report: InstallerReport) -> str:
    """Format a report for the console."""
    lines = [
        "=" * 60,
        f"HOURS REPORT  {report.installer_name} ({report.installer_type.value})",
        f"{report.from_date.isoformat()} .. {report.to_date.isoformat()}",
        "=" * 60,
    ]
    for row in report.rows:
        lead = " (lead)" if row.is_lead else ""
        lines.append(
            f"  {row.on_date.isoformat()}  {row.job_id:<12} {row.hours:>5.1f}h"
            f"  {row.amount:>10.2f}{lead}"
        )
    lines += [
        "-" * 60,
        f"  Total hours:            {report.total_hours:.1f}",
        f"  Total amount:           {report.total_amount:.2f}",
    ]
    if report.is_subcontractor:
        lines += [
            f"  VAT ({report.vat_rate:.0%}):              {report.vat_amount:.2f}",
            f"  Total incl VAT:         {report.total_incl_vat:.2f}",
        ]
    lines.append("=" * 60)
    return "\n".join(lines)
