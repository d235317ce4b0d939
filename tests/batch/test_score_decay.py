"""Tests for the score decay job."""

from datetime import timedelta
from decimal import Decimal

import pytest

from tanda_kernel.models import DecayHistoryEntry, ScoreHistoryEntry

from tanda_batch.tasks import ScoreDecayTask


class TestScoreDecay:
    def test_decays_by_tier(self, session, seed, run_job):
        score = seed.score(total="50", inactive_days=75)

        result = run_job(ScoreDecayTask())

        session.refresh(score)
        assert result.stats["decayed"] == 1
        assert result.stats["total_decay"] == "2.00"
        assert score.total_score == Decimal("48")
        assert score.previous_score == Decimal("50")
        assert score.financial_inactive_days == 75
        assert score.total_inactivity_penalty == Decimal("2")

    @pytest.mark.parametrize(
        "inactive_days,expected",
        [(35, Decimal("49")), (60, Decimal("48")), (120, Decimal("47"))],
    )
    def test_tier_rates(self, session, seed, run_job, inactive_days, expected):
        score = seed.score(total="50", inactive_days=inactive_days)

        run_job(ScoreDecayTask())

        session.refresh(score)
        assert score.total_score == expected

    def test_clamped_at_floor(self, session, seed, run_job):
        score = seed.score(total="11", inactive_days=100)

        result = run_job(ScoreDecayTask())

        session.refresh(score)
        assert score.total_score == Decimal("10")
        assert score.decay_floor_reached is True
        assert result.stats["floor_reached"] == 1
        history = session.query(DecayHistoryEntry).one()
        assert history.decay_amount == Decimal("1")
        assert history.floor_reached is True

    def test_history_rows_written(self, session, seed, run_job):
        score = seed.score(total="50", inactive_days=45)

        run_job(ScoreDecayTask())

        decay = session.query(DecayHistoryEntry).one()
        assert decay.user_id == score.user_id
        assert decay.decay_reason == "inactivity_30d"
        assert decay.days_inactive == 45
        change = session.query(ScoreHistoryEntry).one()
        assert change.trigger_event == "inactivity_decay"
        assert change.score_change == Decimal("-1")

    def test_excluded_scores(self, seed, run_job):
        seed.score(total="10", inactive_days=90)
        seed.score(frozen=True)
        seed.score(inactive_days=10)
        seed.score(inactive_days=None)

        assert run_job(ScoreDecayTask()).processed == 0

    def test_active_recovery_excluded(self, session, seed, run_job):
        score = seed.score(total="50", inactive_days=75)
        seed.recovery(score.user_id)

        result = run_job(ScoreDecayTask())

        session.refresh(score)
        assert result.processed == 0
        assert score.total_score == Decimal("50")

    def test_ended_recovery_does_not_protect(self, seed, run_job):
        score = seed.score(total="50", inactive_days=75)
        seed.recovery(score.user_id, ends_in=timedelta(days=-1))
        other = seed.score(total="50", inactive_days=75)
        seed.recovery(other.user_id, active=False)

        assert run_job(ScoreDecayTask()).stats["decayed"] == 2

    def test_never_below_floor_over_many_runs(self, session, seed, run_job, clock):
        score = seed.score(total="20", inactive_days=95)

        for _ in range(10):
            run_job(ScoreDecayTask())
            clock.advance_days(7)

        session.refresh(score)
        assert score.total_score == Decimal("10")
        assert session.query(DecayHistoryEntry).count() == 4
