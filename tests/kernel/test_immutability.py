"""Tests for append-only enforcement on audit tables."""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from tanda_kernel.exceptions import ImmutabilityViolationError
from tanda_kernel.models import InterestAccrualRecord, JobLogEntry, ScoreHistoryEntry


class TestAppendOnly:
    def test_job_log_update_rejected(self, session):
        entry = JobLogEntry(job_name="x", status="completed")
        session.add(entry)
        session.flush()

        entry.status = "failed"
        with pytest.raises(ImmutabilityViolationError):
            session.flush()

    def test_score_history_delete_rejected(self, session):
        entry = ScoreHistoryEntry(
            user_id=uuid4(),
            previous_score=Decimal("50"),
            new_score=Decimal("48"),
            score_change=Decimal("-2"),
            trigger_event="inactivity_decay",
        )
        session.add(entry)
        session.flush()

        session.delete(entry)
        with pytest.raises(ImmutabilityViolationError):
            session.flush()

    def test_accrual_record_update_rejected(self, session, seed):
        loan = seed.loan()
        record = InterestAccrualRecord(
            loan_id=loan.id,
            accrual_date=date(2026, 3, 18),
            principal_before=100000,
            interest_cents=66,
            apr=Decimal("24"),
        )
        session.add(record)
        session.flush()

        record.interest_cents = 67
        with pytest.raises(ImmutabilityViolationError):
            session.flush()
