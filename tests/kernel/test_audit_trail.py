"""Tests for BestEffort and the AuditTrailWriter."""

from uuid import uuid4

from sqlalchemy import func, select

from tanda_kernel.domain.results import BestEffort, failed_side_effects
from tanda_kernel.models import Notification, SwapEvent
from tanda_kernel.services.audit_trail import AuditTrailWriter


class TestBestEffort:
    def test_ok_and_failed(self):
        assert BestEffort.ok("x").succeeded
        failed = BestEffort.failed("x", "boom")
        assert not failed.succeeded
        assert failed.as_dict() == {"label": "x", "error": "boom"}

    def test_failed_side_effects_filters(self):
        outcomes = (BestEffort.ok("a"), BestEffort.failed("b", "e"))
        assert failed_side_effects(*outcomes) == [{"label": "b", "error": "e"}]


class TestAuditTrailWriter:
    def test_writes_rows(self, session):
        outcome = AuditTrailWriter(session).write(
            "notification",
            Notification(user_id=uuid4(), type="t", title="T", body="B"),
        )
        assert outcome.succeeded
        assert session.execute(select(func.count(Notification.id))).scalar_one() == 1

    def test_failed_write_is_reported_not_raised(self, session, captured_logs):
        # swap_request_id is NOT NULL; the insert fails inside its savepoint.
        outcome = AuditTrailWriter(session).write(
            "swap_event",
            SwapEvent(
                swap_request_id=None,
                circle_id=uuid4(),
                event_type="swap_expired",
                previous_status="pending_target",
                new_status="expired",
            ),
        )
        assert not outcome.succeeded
        assert outcome.label == "swap_event"
        assert any(r["message"] == "audit_write_failed" for r in captured_logs())

    def test_failed_write_leaves_session_usable(self, session):
        AuditTrailWriter(session).write(
            "swap_event",
            SwapEvent(
                swap_request_id=None,
                circle_id=uuid4(),
                event_type="swap_expired",
                previous_status="pending_target",
                new_status="expired",
            ),
        )
        session.add(Notification(user_id=uuid4(), type="t", title="T", body="B"))
        session.flush()
        assert session.execute(select(func.count(Notification.id))).scalar_one() == 1
