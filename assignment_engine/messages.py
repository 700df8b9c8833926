"""Human-readable text for confirmation asks and manual follow-up tasks."""

from typing import Optional

from assignment_engine.schemas.job_schema import Job, SlotType

SLOT_LABELS = {
    SlotType.MORNING: "Morning",
    SlotType.AFTERNOON: "Afternoon",
    SlotType.FULL: "Full day",
}


def slot_label(job: Job) -> str:
    if job.day_count > 1:
        return f"{job.day_count} full days"
    return SLOT_LABELS[job.slot_type]


def build_confirmation_message(job: Job, installer_name: str, token: Optional[str] = None) -> str:
    """Build the body of a confirmation ask sent to one installer."""
    lines = [
        f"Hi {installer_name}, a new installation needs your confirmation.",
        f"  Customer: {job.customer_name or '-'}",
        f"  Address: {job.customer_address or '-'}",
        f"  Date: {job.scheduled_date.isoformat()} ({slot_label(job)})",
    ]
    if token:
        lines.append(f"\nReply with accept or decline quoting token {token}.")
    else:
        lines.append("\nAccept or decline from your dashboard.")
    return "\n".join(lines)


def build_insufficient_candidates_task(job: Job, offered: int, needed: int) -> tuple[str, str]:
    """Title and description for a job that cannot be fully staffed."""
    if offered == 0:
        title = "No installers available"
    else:
        title = f"Only {offered} of {needed} installer(s) could be asked"
    description = (
        f"Job {job.id} on {job.scheduled_date.isoformat()} ({slot_label(job)}) "
        f"needs {needed} more installer(s). Assign manually."
    )
    return title, description


def build_overbooking_task(
    job: Job, accepted_count: int, divergent: dict[str, tuple[float, float]]
) -> tuple[str, str]:
    """Title and description for hours that need manual distribution."""
    lines = [f"Job {job.id} needs its debitable hours distributed."]
    if accepted_count > job.crew_size:
        lines.append(
            f"{accepted_count} installers worked but {job.crew_size} were planned."
        )
    for installer_id, (declared, actual) in sorted(divergent.items()):
        lines.append(f"  {installer_id}: declared {declared:.1f}h, actual {actual:.1f}h")
    return "Distribute debitable hours", "\n".join(lines)
