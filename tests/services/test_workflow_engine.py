"""
WorkflowEngine end-to-end.

Verifies:
- Role gating happens before any write (customer set_status is forbidden)
- Customer approval of their own project writes exactly two entries
- The PENDING -> ESTIMATE_READY -> APPROVED -> CHANGE_ORDER_PENDING scenario
- Re-requesting the current status is a no-op
- ESTIMATE_READY cannot be forced without the original estimate
- Project edits: customer-own scoping, staff-only internal fields
- ConflictError is retried a bounded number of times
- A failed operation leaves status and timeline untouched
- All log lines of one operation share a correlation id
"""

from uuid import uuid4

import pytest

from restoration_kernel.domain.dtos import (
    AssigneeView,
    Priority,
    ProjectUpdate,
    TimelineEventType,
)
from restoration_kernel.domain.values import Money
from restoration_kernel.domain.workflow import ProjectStatus
from restoration_kernel.exceptions import (
    ChangeOrderConflictError,
    ForbiddenError,
    InvalidStateError,
    InvalidTransitionError,
    ProjectNotFoundError,
)
from restoration_kernel.logging_config import LogContext
from restoration_kernel.services.estimate_series import EstimateSeries
from restoration_kernel.services.timeline_ledger import TimelineLedger
from restoration_services.workflow_engine import APPROVAL_EVENT_TEXT

ITEMS = [{"description": "Replace subfloor", "amount": 420000}]


def usd(minor_units: int) -> Money:
    return Money.of(minor_units, "USD")


@pytest.fixture
def estimate_ready(workflow_engine, engine_project, estimator):
    workflow_engine.create_original_estimate(engine_project.id, None, ITEMS, estimator)
    return workflow_engine.get_project(engine_project.id)


@pytest.fixture
def approved(workflow_engine, estimate_ready, customer):
    return workflow_engine.approve_estimate(estimate_ready.id, customer)


class TestRoleGating:
    def test_customer_cannot_set_status(self, workflow_engine, engine_project, customer):
        with pytest.raises(ForbiddenError) as exc_info:
            workflow_engine.set_status(engine_project.id, ProjectStatus.IN_PROGRESS, customer)

        assert exc_info.value.actor_role == "CUSTOMER"
        assert exc_info.value.operation == "project.set_status"
        assert workflow_engine.get_project(engine_project.id).status == ProjectStatus.PENDING
        assert len(workflow_engine.get_timeline(engine_project.id)) == 1

    def test_other_customer_cannot_approve(
        self, workflow_engine, estimate_ready, other_customer
    ):
        with pytest.raises(ForbiddenError) as exc_info:
            workflow_engine.approve_estimate(estimate_ready.id, other_customer)
        assert exc_info.value.reason == "customer does not own this project"
        project = workflow_engine.get_project(estimate_ready.id)
        assert project.status == ProjectStatus.ESTIMATE_READY

    def test_customer_cannot_submit_change_order(self, workflow_engine, approved, customer):
        with pytest.raises(ForbiddenError):
            workflow_engine.submit_change_order(approved.id, usd(100), [], customer)
        assert workflow_engine.list_estimates(approved.id)[-1].change_order_number == 0

    def test_customer_cannot_open_project_for_someone_else(
        self, workflow_engine, intake_for, customer, other_customer
    ):
        with pytest.raises(ForbiddenError):
            workflow_engine.create_project(intake_for(other_customer), customer)

    def test_customer_opens_own_project(self, workflow_engine, intake_for, customer):
        project = workflow_engine.create_project(intake_for(customer), customer)
        assert project.status == ProjectStatus.PENDING
        assert project.customer_id == customer.id

    def test_admin_may_approve(self, workflow_engine, estimate_ready, admin):
        project = workflow_engine.approve_estimate(estimate_ready.id, admin)
        assert project.status == ProjectStatus.APPROVED


class TestApproval:
    def test_customer_approval_writes_two_entries(
        self, workflow_engine, estimate_ready, customer
    ):
        before = workflow_engine.get_timeline(estimate_ready.id)
        project = workflow_engine.approve_estimate(estimate_ready.id, customer)

        assert project.status == ProjectStatus.APPROVED
        new = workflow_engine.get_timeline(estimate_ready.id)[len(before):]
        assert [e.type for e in new] == [
            TimelineEventType.STATUS_CHANGE,
            TimelineEventType.APPROVED,
        ]
        assert new[0].to_status == ProjectStatus.APPROVED
        assert new[1].event == APPROVAL_EVENT_TEXT
        assert {e.user for e in new} == {"Casey Customer"}

    def test_repeat_approval_is_noop(self, workflow_engine, approved, customer):
        before = workflow_engine.get_timeline(approved.id)
        project = workflow_engine.approve_estimate(approved.id, customer)
        assert project.version == approved.version
        assert workflow_engine.get_timeline(approved.id) == before

    def test_approval_requires_estimate_ready(self, workflow_engine, engine_project, customer):
        with pytest.raises(InvalidTransitionError):
            workflow_engine.approve_estimate(engine_project.id, customer)


class TestScenario:
    def test_intake_to_change_order(self, workflow_engine, engine_project, estimator, customer):
        estimate = workflow_engine.create_original_estimate(
            engine_project.id, usd(420000), ITEMS, estimator
        )
        assert estimate.change_order_number == 0
        assert workflow_engine.get_project(engine_project.id).status == ProjectStatus.ESTIMATE_READY

        workflow_engine.approve_estimate(engine_project.id, customer)

        receipt = workflow_engine.submit_change_order(
            engine_project.id, usd(80000), [{"description": "Extra drywall", "amount": 80000}], estimator
        )
        assert receipt.project.status == ProjectStatus.CHANGE_ORDER_PENDING
        assert receipt.estimate.change_order_number == 1
        assert receipt.estimate.total == usd(80000)

        types = [e.type for e in workflow_engine.get_timeline(engine_project.id)]
        assert types == [
            TimelineEventType.CREATED,
            TimelineEventType.ESTIMATE,
            TimelineEventType.STATUS_CHANGE,
            TimelineEventType.APPROVED,
            TimelineEventType.STATUS_CHANGE,
            TimelineEventType.CHANGE_ORDER,
        ]
        seqs = [e.seq for e in workflow_engine.get_timeline(engine_project.id)]
        assert seqs == list(range(1, 7))

    def test_resolve_then_complete(self, workflow_engine, approved, estimator):
        workflow_engine.submit_change_order(approved.id, usd(100), [], estimator)
        project = workflow_engine.resolve_change_order(approved.id, estimator)
        assert project.status == ProjectStatus.IN_CONSTRUCTION

        project = workflow_engine.set_status(approved.id, ProjectStatus.COMPLETED, estimator)
        assert project.status == ProjectStatus.COMPLETED

    def test_resolve_requires_pending_change_order(self, workflow_engine, approved, estimator):
        with pytest.raises(InvalidStateError):
            workflow_engine.resolve_change_order(approved.id, estimator)

    def test_completed_is_noop_then_terminal(self, workflow_engine, approved, estimator):
        workflow_engine.set_status(approved.id, ProjectStatus.IN_CONSTRUCTION, estimator)
        completed = workflow_engine.set_status(approved.id, ProjectStatus.COMPLETED, estimator)
        before = workflow_engine.get_timeline(approved.id)

        again = workflow_engine.set_status(approved.id, ProjectStatus.COMPLETED, estimator)
        assert again.version == completed.version
        assert workflow_engine.get_timeline(approved.id) == before

        with pytest.raises(InvalidTransitionError):
            workflow_engine.set_status(approved.id, ProjectStatus.IN_CONSTRUCTION, estimator)

    def test_estimate_ready_cannot_be_forced_without_estimate(
        self, workflow_engine, engine_project, admin, customer, estimator
    ):
        with pytest.raises(InvalidStateError):
            workflow_engine.set_status(engine_project.id, ProjectStatus.ESTIMATE_READY, admin)
        assert workflow_engine.get_project(engine_project.id).status == ProjectStatus.PENDING
        assert len(workflow_engine.get_timeline(engine_project.id)) == 1

        with pytest.raises(InvalidTransitionError):
            workflow_engine.approve_estimate(engine_project.id, customer)

        estimate = workflow_engine.create_original_estimate(
            engine_project.id, usd(1000), ITEMS, estimator
        )
        assert estimate.change_order_number == 0
        project = workflow_engine.approve_estimate(engine_project.id, customer)
        assert project.status == ProjectStatus.APPROVED
        assert [e.change_order_number for e in workflow_engine.list_estimates(project.id)] == [0]

    def test_newest_first_timeline(self, workflow_engine, approved):
        events = workflow_engine.get_timeline(approved.id, newest_first=True)
        assert events[0].type == TimelineEventType.APPROVED
        assert events[-1].type == TimelineEventType.CREATED

    def test_assign_team_members(self, workflow_engine, engine_project, admin):
        project = workflow_engine.assign_team_members(
            engine_project.id, [AssigneeView(user_id=uuid4(), name="Dana")], admin
        )
        assert [a.name for a in project.assignees] == ["Dana"]

    def test_unknown_project(self, workflow_engine, estimator):
        with pytest.raises(ProjectNotFoundError):
            workflow_engine.set_status(uuid4(), ProjectStatus.CANCELLED, estimator)


class TestProjectEdits:
    def test_customer_edits_own_project(self, workflow_engine, engine_project, customer):
        project = workflow_engine.update_project(
            engine_project.id,
            ProjectUpdate(description="Pipe burst behind the dishwasher", priority=Priority.HIGH),
            customer,
        )
        assert project.priority == Priority.HIGH
        assert workflow_engine.get_timeline(engine_project.id)[-1].type == TimelineEventType.UPDATED

    def test_other_customer_cannot_edit(self, workflow_engine, engine_project, other_customer):
        with pytest.raises(ForbiddenError) as exc_info:
            workflow_engine.update_project(
                engine_project.id, ProjectUpdate(title="Mine now"), other_customer
            )
        assert exc_info.value.reason == "customer does not own this project"
        assert workflow_engine.get_project(engine_project.id).title == engine_project.title

    @pytest.mark.parametrize(
        "update",
        [ProjectUpdate(actual_cost=usd(5000)), ProjectUpdate(adjuster_id=uuid4())],
    )
    def test_customer_cannot_set_internal_fields(
        self, workflow_engine, engine_project, customer, update
    ):
        with pytest.raises(ForbiddenError) as exc_info:
            workflow_engine.update_project(engine_project.id, update, customer)
        assert exc_info.value.operation == "project.update_internal"
        assert len(workflow_engine.get_timeline(engine_project.id)) == 1

    def test_staff_records_actual_cost(self, workflow_engine, approved, estimator):
        adjuster = uuid4()
        project = workflow_engine.update_project(
            approved.id, ProjectUpdate(actual_cost=usd(395000), adjuster_id=adjuster), estimator
        )
        assert project.actual_cost == usd(395000)
        assert project.adjuster_id == adjuster

    def test_refused_while_estimate_ready(self, workflow_engine, estimate_ready, customer):
        with pytest.raises(InvalidStateError):
            workflow_engine.update_project(
                estimate_ready.id, ProjectUpdate(title="Renamed"), customer
            )
        assert workflow_engine.get_project(estimate_ready.id).version == estimate_ready.version


class TestConflictRetry:
    def test_retries_then_succeeds(
        self, workflow_engine, approved, estimator, monkeypatch, captured_logs
    ):
        original = EstimateSeries.create_change_order
        calls = []

        def flaky(self, project_id, *args, **kwargs):
            calls.append(project_id)
            if len(calls) == 1:
                raise ChangeOrderConflictError(str(project_id), 1)
            return original(self, project_id, *args, **kwargs)

        monkeypatch.setattr(EstimateSeries, "create_change_order", flaky)
        receipt = workflow_engine.submit_change_order(approved.id, usd(100), [], estimator)

        assert len(calls) == 2
        assert receipt.estimate.change_order_number == 1
        assert any(r["message"] == "workflow_conflict_retry" for r in captured_logs())

    def test_gives_up_after_configured_attempts(
        self, workflow_engine, approved, estimator, config, monkeypatch, captured_logs
    ):
        calls = []

        def always_conflicts(self, project_id, *args, **kwargs):
            calls.append(project_id)
            raise ChangeOrderConflictError(str(project_id), 1)

        monkeypatch.setattr(EstimateSeries, "create_change_order", always_conflicts)
        with pytest.raises(ChangeOrderConflictError):
            workflow_engine.submit_change_order(approved.id, usd(100), [], estimator)

        assert len(calls) == config.workflow.conflict_retry_attempts
        exhausted = [r for r in captured_logs() if r["message"] == "workflow_conflict_exhausted"]
        assert exhausted[0]["attempts"] == config.workflow.conflict_retry_attempts

    def test_other_errors_are_not_retried(self, workflow_engine, engine_project, estimator, monkeypatch):
        calls = []

        def broken(self, project_id, *args, **kwargs):
            calls.append(project_id)
            raise RuntimeError("storage unavailable")

        monkeypatch.setattr(EstimateSeries, "create_original", broken)
        with pytest.raises(RuntimeError):
            workflow_engine.create_original_estimate(engine_project.id, usd(1), [], estimator)
        assert len(calls) == 1


class TestAtomicity:
    def test_failed_second_entry_rolls_back_status(
        self, workflow_engine, estimate_ready, customer, monkeypatch
    ):
        original = TimelineLedger.append

        def fail_on_approved(self, project_id, text, event_type, actor, **kwargs):
            if event_type == TimelineEventType.APPROVED:
                raise RuntimeError("disk full")
            return original(self, project_id, text, event_type, actor, **kwargs)

        before = workflow_engine.get_timeline(estimate_ready.id)
        monkeypatch.setattr(TimelineLedger, "append", fail_on_approved)

        with pytest.raises(RuntimeError):
            workflow_engine.approve_estimate(estimate_ready.id, customer)

        project = workflow_engine.get_project(estimate_ready.id)
        assert project.status == ProjectStatus.ESTIMATE_READY
        assert project.version == estimate_ready.version
        assert workflow_engine.get_timeline(estimate_ready.id) == before


class TestLogContext:
    def test_operation_logs_share_correlation_id(
        self, workflow_engine, estimate_ready, customer, captured_logs
    ):
        workflow_engine.approve_estimate(estimate_ready.id, customer)

        records = [r for r in captured_logs() if r.get("operation") == "estimate.approve"]
        assert records
        assert len({r["correlation_id"] for r in records}) == 1
        assert {r["actor_id"] for r in records} == {str(customer.id)}
        assert {r["project_id"] for r in records} == {str(estimate_ready.id)}
        assert "status_transitioned" in {r["message"] for r in records}

    def test_context_is_cleared_after_call(self, workflow_engine, engine_project, estimator):
        workflow_engine.set_status(engine_project.id, ProjectStatus.IN_PROGRESS, estimator)
        assert LogContext.get_all() == {}
