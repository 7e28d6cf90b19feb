"""
TimelineLedger append/query.

Verifies:
- seq is per-project, starts at 1 and increments by one
- actor display name is snapshotted onto the event
- ordering is (date, seq) ascending, or both descending
"""

from datetime import datetime, timezone

from restoration_kernel.domain.dtos import TimelineEventType
from restoration_kernel.domain.workflow import ProjectStatus


class TestAppend:
    def test_created_event_is_first(self, ledger, pending_project):
        events = ledger.query(pending_project.id)
        assert len(events) == 1
        assert events[0].seq == 1
        assert events[0].type == TimelineEventType.CREATED
        assert events[0].event == "Project created"

    def test_seq_increments(self, ledger, pending_project, estimator):
        first = ledger.append(pending_project.id, "Site visit booked", TimelineEventType.DOCUMENT, estimator)
        second = ledger.append(pending_project.id, "Photos uploaded", TimelineEventType.DOCUMENT, estimator)
        assert (first.seq, second.seq) == (2, 3)

    def test_seq_is_per_project(
        self, ledger, project_service, intake_for, other_customer, estimator, pending_project
    ):
        other = project_service.create_project(intake_for(other_customer), estimator)
        event = ledger.append(other.id, "Note", TimelineEventType.DOCUMENT, estimator)
        assert event.seq == 2

    def test_actor_name_snapshot_and_clock_date(self, ledger, pending_project, estimator, clock):
        clock.advance(30)
        event = ledger.append(
            pending_project.id,
            "Status changed to in-progress",
            TimelineEventType.STATUS_CHANGE,
            estimator,
            from_status=ProjectStatus.PENDING,
            to_status=ProjectStatus.IN_PROGRESS,
        )
        assert event.user == "Erin Estimator"
        assert event.date == clock.now()
        assert event.from_status == ProjectStatus.PENDING
        assert event.to_status == ProjectStatus.IN_PROGRESS


class TestQueryOrdering:
    def test_same_instant_orders_by_seq(self, ledger, pending_project, estimator):
        for i in range(3):
            ledger.append(pending_project.id, f"note {i}", TimelineEventType.DOCUMENT, estimator)
        seqs = [e.seq for e in ledger.query(pending_project.id)]
        assert seqs == [1, 2, 3, 4]

    def test_newest_first_reverses(self, ledger, pending_project, estimator, clock):
        clock.advance(1)
        ledger.append(pending_project.id, "later", TimelineEventType.DOCUMENT, estimator)
        events = ledger.query(pending_project.id, newest_first=True)
        assert [e.event for e in events] == ["later", "Project created"]

    def test_date_takes_precedence_over_seq(self, ledger, pending_project, estimator, clock):
        clock.set_time(datetime(2023, 12, 31, 9, 0, tzinfo=timezone.utc))
        backdated = ledger.append(
            pending_project.id, "backdated", TimelineEventType.DOCUMENT, estimator
        )
        events = ledger.query(pending_project.id)
        assert events[0].id == backdated.id
        assert events[0].seq == 2
