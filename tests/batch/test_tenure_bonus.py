"""Tests for the tenure bonus job."""

from decimal import Decimal

import pytest

from tanda_kernel.models import ScoreHistoryEntry, TenureHistoryEntry

from tanda_batch.tasks import TenureBonusTask
from tanda_batch.tasks.tenure_bonus import award_month


class TestTenureBonus:
    def test_awards_tier_bonus(self, session, seed, run_job):
        score = seed.score(total="50", active_months=3)

        result = run_job(TenureBonusTask())

        session.refresh(score)
        assert result.stats["awarded"] == 1
        assert score.total_score == Decimal("50.5")
        assert score.active_months == 4
        tenure = session.query(TenureHistoryEntry).one()
        assert tenure.award_month == "2026-03"
        assert tenure.tenure_month == 3
        assert tenure.bonus_amount == Decimal("0.5")
        assert session.query(ScoreHistoryEntry).one().trigger_event == "tenure_bonus"

    @pytest.mark.parametrize(
        "active_months,expected",
        [(1, "50.5"), (7, "51"), (13, "51.5"), (24, "51.5"), (25, "52")],
    )
    def test_tiers(self, session, seed, run_job, active_months, expected):
        score = seed.score(total="50", active_months=active_months)

        run_job(TenureBonusTask())

        session.refresh(score)
        assert score.total_score == Decimal(expected)

    def test_once_per_month(self, session, seed, run_job):
        score = seed.score(total="50", active_months=3)

        run_job(TenureBonusTask())
        second = run_job(TenureBonusTask())

        session.refresh(score)
        assert second.processed == 0
        assert score.total_score == Decimal("50.5")

    def test_next_month_awards_again(self, session, seed, run_job, clock):
        score = seed.score(total="50", active_months=3)

        run_job(TenureBonusTask())
        clock.advance_days(31)
        run_job(TenureBonusTask())

        session.refresh(score)
        assert score.total_score == Decimal("51")
        assert score.active_months == 5
        months = sorted(t.award_month for t in session.query(TenureHistoryEntry))
        assert months == ["2026-03", "2026-04"]

    def test_capped_at_ceiling(self, session, seed, run_job):
        score = seed.score(total="99.5", active_months=30)

        result = run_job(TenureBonusTask())

        session.refresh(score)
        assert score.total_score == Decimal("100")
        assert result.stats["capped"] == 1
        assert result.stats["total_bonus"] == "0.50"

    def test_at_ceiling_still_recorded(self, session, seed, run_job):
        score = seed.score(total="100", active_months=12)

        run_job(TenureBonusTask())

        session.refresh(score)
        assert score.total_score == Decimal("100")
        assert score.active_months == 13
        assert session.query(TenureHistoryEntry).one().bonus_amount == Decimal("0")

    def test_excluded_scores(self, seed, run_job):
        seed.score(active_months=0)
        seed.score(active_months=5, frozen=True)

        assert run_job(TenureBonusTask()).processed == 0


def test_award_month_format(clock):
    assert award_month(clock.now()) == "2026-03"
