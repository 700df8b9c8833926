"""
Offline console demo: plays a job's confirmation lifecycle in the terminal.

Runs the real dispatcher, resolver and overbooking guard against an
in-memory store seeded with three installers. No database, no email,
no chat transport. Designed for live demo walkthroughs.

Usage:
    python console_demo.py
    python console_demo.py --scenario cascade
    python console_demo.py --scenario exhausted
"""

import argparse
from datetime import date, timedelta
from typing import Optional

from assignment_engine.config import settings
from assignment_engine.engine import AssignmentEngine, DispatchResult
from assignment_engine.errors import EngineError
from assignment_engine.reporting.hours_report import format_report
from assignment_engine.schemas.installer_schema import Installer, InstallerType
from assignment_engine.schemas.job_schema import Job
from assignment_engine.store.memory import InMemoryStore
from assignment_engine.utils import parse_date

BLUE = "\033[94m"
GREEN = "\033[92m"
YELLOW = "\033[93m"
RED = "\033[91m"
DIM = "\033[2m"
RESET = "\033[0m"
BOLD = "\033[1m"

DEMO_JOB_ID = "JOB-1001"


def seed_installers(store: InMemoryStore) -> None:
    store.add_installer(Installer(
        id="A", first_name="Anna", last_name="Berg", email="anna@example.com",
        priority_rank=1, hourly_rate=420.0,
    ))
    store.add_installer(Installer(
        id="B", first_name="Bo", last_name="Ek", email="bo@example.com",
        priority_rank=2, hourly_rate=400.0,
    ))
    store.add_installer(Installer(
        id="C", first_name="Cecilia", last_name="Lind", email="cecilia@example.com",
        priority_rank=3, hourly_rate=450.0, installer_type=InstallerType.SUBCONTRACTOR,
    ))


class ConsoleSession:
    """Drives one job through dispatch, answers and reconciliation."""

    def __init__(self, total_hours: float = 12.0, crew_size: int = 2) -> None:
        self.store = InMemoryStore()
        seed_installers(self.store)
        self.engine = AssignmentEngine(self.store)
        self.total_hours = total_hours
        self.crew_size = crew_size

    def engine_say(self, text: str) -> None:
        print(f"{GREEN}{BOLD}[engine]{RESET} {GREEN}{text}{RESET}")

    def system_log(self, text: str) -> None:
        print(f"{DIM}  >> {text}{RESET}")

    # Pre-scripted scenarios for --scenario flag
    SCENARIOS: dict[str, list[str]] = {
        "cascade": [
            "accept A",
            "decline B",
            "accept C",
            "status",
        ],
        "exhausted": [
            "decline A",
            "decline B",
            "decline C",
            "tasks",
        ],
        "cancel": [
            "accept A",
            "cancel",
            "accept B",
            "status",
        ],
        "overbooking": [
            "accept A",
            "accept B",
            "reconcile A=9 B=6",
            "tasks",
            "resolve A=6 B=6",
            "report A",
        ],
    }

    def start(self) -> None:
        calc = self.engine.calculate_slot(self.total_hours, self.crew_size)
        job = Job(
            id=DEMO_JOB_ID,
            scheduled_date=date.today() + timedelta(days=7),
            slot_type=calc.slot_type,
            day_count=calc.day_count,
            crew_size=self.crew_size,
            total_hours=self.total_hours,
            customer_name="Demo Customer",
            customer_address="Storgatan 1",
        )
        self.system_log(f"Slot: {calc.label} ({calc.hours_per_person:.1f}h per installer)")
        result = self.engine.submit_job(job)
        self._show_dispatch(result)

    def run_scenario(self, scenario: str) -> None:
        """Auto-play a pre-scripted scenario for demo purposes."""
        steps = self.SCENARIOS.get(scenario)
        if not steps:
            print(f"{RED}Unknown scenario: {scenario}{RESET}")
            return

        self._banner(f"INSTALLER ASSIGNMENT - Scenario: {scenario}")
        self.start()
        for step in steps:
            print(f"\n{BLUE}[admin] {RESET}{step}")
            self.handle(step)

        self._banner(f"Scenario '{scenario}' complete.")

    def run(self) -> None:
        self._banner("INSTALLER ASSIGNMENT - Console Demo", "Type 'help' for commands, 'quit' to exit")
        self.start()
        while True:
            command = input(f"\n{BLUE}[admin] {RESET}").strip()
            if not command:
                continue
            if command.lower() in ("quit", "exit", "q"):
                print(f"\n{DIM}Session ended.{RESET}")
                return
            self.handle(command)

    def handle(self, command: str) -> None:
        verb, *args = command.split()
        try:
            self._dispatch_command(verb.lower(), args)
        except (EngineError, ValueError) as exc:
            print(f"{RED}  {type(exc).__name__}: {exc}{RESET}")

    # ------------------------------------------------------------------ #
    # Commands
    # ------------------------------------------------------------------ #

    def _dispatch_command(self, verb: str, args: list[str]) -> None:
        if verb in ("accept", "decline") and args:
            result = self.engine.respond(args[0], DEMO_JOB_ID, args[0], "in_app", verb)
            self.engine_say(f"{args[0]}: {result.message}")
            if result.fully_staffed:
                self.system_log("Crew complete")
            if result.dispatch is not None:
                self._show_dispatch(result.dispatch)
        elif verb == "timeout":
            results = self.engine.expire_pending()
            self.engine_say(f"{len(results)} request(s) timed out")
        elif verb == "cancel":
            result = self.engine.cancel_job(DEMO_JOB_ID)
            self.engine_say(
                f"Cancelled; removed {result.removed_installers or 'nobody'}, "
                f"{len(result.cancelled_requests)} request(s) withdrawn"
            )
        elif verb == "reschedule" and args:
            result = self.engine.reschedule_job(DEMO_JOB_ID, parse_date(args[0]))
            self.engine_say(f"Moved to {args[0]}; released {result.removed_installers}")
            if result.dispatch is not None:
                self._show_dispatch(result.dispatch)
        elif verb == "reconcile":
            outcome = self.engine.reconcile(DEMO_JOB_ID, _parse_hours(args))
            state = "overbooked" if outcome.overbooked else "within tolerance"
            self.engine_say(f"Reconciled: {state}")
        elif verb == "resolve":
            self.engine.resolve_overbooking(DEMO_JOB_ID, _parse_hours(args))
            self.engine_say("Debitable hours recorded")
        elif verb == "status":
            self._show_status()
        elif verb == "tasks":
            tasks = self.engine.open_tasks(DEMO_JOB_ID)
            if not tasks:
                self.engine_say("No open tasks")
            for task in tasks:
                self.engine_say(f"{YELLOW}{task.title}{RESET}")
                self.system_log(task.description)
        elif verb == "report" and args:
            today = date.today()
            report = self.engine.hours_report(args[0], today, today + timedelta(days=30))
            print(format_report(report))
        else:
            self.engine_say(
                "Commands: accept|decline <id>, timeout, cancel, reschedule <date>, "
                "reconcile|resolve <id>=<hours>..., status, tasks, report <id>"
            )

    def _show_dispatch(self, result: DispatchResult) -> None:
        if result.invited:
            self.engine_say(f"Asked {', '.join(result.invited)} ({result.seats_open} open seat(s))")
        for warning in result.warnings:
            self.system_log(f"{YELLOW}{warning}{RESET}")
        if result.manual_task is not None:
            self.system_log(f"{YELLOW}Manual task: {result.manual_task.title}{RESET}")

    def _show_status(self) -> None:
        staffing = self.engine.staffing(DEMO_JOB_ID)
        self.engine_say(
            f"Accepted {staffing.accepted} (lead: {staffing.lead or '-'}), "
            f"pending {staffing.pending}, declined {staffing.declined}, "
            f"{staffing.seats_open} seat(s) open"
        )

    @staticmethod
    def _banner(title: str, subtitle: Optional[str] = None) -> None:
        print()
        print(f"{BOLD}{'=' * 60}{RESET}")
        print(f"{BOLD}  {title}{RESET}")
        print(f"{BOLD}  Engine: {settings.engine_name}{RESET}")
        if subtitle:
            print(f"{BOLD}  {subtitle}{RESET}")
        print(f"{BOLD}{'=' * 60}{RESET}")


def _parse_hours(args: list[str]) -> dict[str, float]:
    hours = {}
    for pair in args:
        installer_id, _, value = pair.partition("=")
        hours[installer_id] = float(value)
    return hours


def main() -> None:
    parser = argparse.ArgumentParser(description="Offline console demo")
    parser.add_argument(
        "--scenario",
        choices=sorted(ConsoleSession.SCENARIOS),
        default=None,
        help="Auto-play a pre-scripted scenario instead of interactive mode",
    )
    parser.add_argument("--hours", type=float, default=12.0, help="Total job hours")
    parser.add_argument("--crew", type=int, default=2, help="Installers needed")
    args = parser.parse_args()

    session = ConsoleSession(total_hours=args.hours, crew_size=args.crew)
    if args.scenario:
        session.run_scenario(args.scenario)
    else:
        session.run()


if __name__ == "__main__":
    main()
