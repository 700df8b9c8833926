"""
Installer assignment engine entry point.

Usage:
    Slot calculation:  python main.py slot 12 --crew 2
    Availability grid: python main.py availability 2026-03-02 2026-03-06 --demo
    Console demo:      python main.py console [--scenario cascade]
"""

import argparse
import logging
import sys

from assignment_engine.config import settings
from assignment_engine.schemas.job_schema import SlotType

logger = logging.getLogger(__name__)


def _run_slot(args: argparse.Namespace) -> None:
    from assignment_engine.scheduling.slot_calculator import calculate_slot

    calc = calculate_slot(args.hours, args.crew, SlotType(args.half))
    print(calc.label)
    print(f"  kind:             {calc.kind.value}")
    print(f"  slot:             {calc.slot_type.value}")
    print(f"  days:             {calc.day_count}")
    print(f"  hours/installer:  {calc.hours_per_person:.2f}")


def _run_availability(args: argparse.Namespace) -> None:
    """Print the availability grid for the seeded demo crew."""
    from console_demo import seed_installers

    from assignment_engine.engine import AssignmentEngine
    from assignment_engine.store.memory import InMemoryStore

    store = InMemoryStore()
    seed_installers(store)
    grid = AssignmentEngine(store).availability_grid(args.start, args.end, SlotType(args.slot))
    for on_date, rows in grid.items():
        cells = [
            f"{r.installer_name}: {'free' if r.available else r.reason}" for r in rows
        ]
        print(f"{on_date.isoformat()}  " + " | ".join(cells))


def _run_console_mode(args: argparse.Namespace) -> None:
    """Start the offline console demo."""
    from console_demo import ConsoleSession

    session = ConsoleSession()
    if args.scenario:
        session.run_scenario(args.scenario)
    else:
        session.run()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog=settings.engine_name)
    sub = parser.add_subparsers(dest="command", required=True)

    slot = sub.add_parser("slot", help="Classify total hours into a slot")
    slot.add_argument("hours", type=float)
    slot.add_argument("--crew", type=int, default=None)
    slot.add_argument("--half", choices=["morning", "afternoon"], default="morning")
    slot.set_defaults(func=_run_slot)

    availability = sub.add_parser("availability", help="Availability grid for the demo crew")
    availability.add_argument("start")
    availability.add_argument("end")
    availability.add_argument("--slot", choices=[s.value for s in SlotType], default="full")
    availability.set_defaults(func=_run_availability)

    console = sub.add_parser("console", help="Offline console demo")
    console.add_argument("--scenario", default=None)
    console.set_defaults(func=_run_console_mode)
    return parser


if __name__ == "__main__":
    parsed = build_parser().parse_args(sys.argv[1:])
    logger.debug("Running command %s", parsed.command)
    parsed.func(parsed)
