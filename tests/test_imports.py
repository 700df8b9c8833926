"""Tests for import chains and module integrity.

Ensures all public modules can be imported without errors and
that re-exports from __init__.py files work correctly.
"""


class TestSchemaImports:
    def test_import_job_schema(self):
        from assignment_engine.schemas.job_schema import Job, JobStatus, SlotType
        assert SlotType.MORNING == "morning"
        assert JobStatus.SCHEDULED == "scheduled"
        assert Job is not None

    def test_import_confirmation_schema(self):
        from assignment_engine.schemas.confirmation_schema import (
            Assignment, Channel, ConfirmationRequest, ManualTask, RequestStatus,
        )
        assert Channel.CHAT.uses_token
        assert not Channel.IN_APP.uses_token
        assert RequestStatus.PENDING == "pending"
        assert Assignment(job_id="J", installer_id="I").billable_hours == 0.0

    def test_import_installer_schema(self):
        from assignment_engine.schemas.installer_schema import Installer, InstallerType
        installer = Installer(id="X")
        assert installer.name == "X"
        assert installer.installer_type == InstallerType.EMPLOYEE


class TestPackageReexports:
    def test_scheduling_package(self):
        from assignment_engine.scheduling import (
            AvailabilityResolver, ConfirmationStateMachine, RequestTrigger,
            calculate_slot, select_candidates,
        )
        assert calculate_slot(4.0, 2).day_count == 1

    def test_notifications_package(self):
        from assignment_engine.notifications import default_router
        from assignment_engine.schemas.confirmation_schema import Channel
        assert set(default_router().registered_channels()) == set(Channel)

    def test_engine_package(self):
        from assignment_engine.engine import (
            AssignmentEngine, CancellationResult, ConfirmationDispatcher,
            ConfirmationResolver, DispatchResult, OverbookingGuard, ResponseGateway,
            ResponseResult,
        )
        assert AssignmentEngine is not None


class TestEntryPoints:
    def test_main_parser(self):
        from main import build_parser
        args = build_parser().parse_args(["slot", "12", "--crew", "2"])
        assert args.hours == 12.0
        assert args.crew == 2

    def test_console_demo_scenarios(self):
        from console_demo import ConsoleSession
        assert {"cascade", "exhausted", "cancel", "overbooking"} <= set(ConsoleSession.SCENARIOS)
