"""
Pytest fixtures for the reconciliation job test suite.

Provides:
- In-memory SQLite sessions with SAVEPOINT support (no PostgreSQL required)
- A deterministic clock
- ``seed``: factory helpers that insert wallets, loans, swaps, reminders
  and scores
- ``captured_logs``: structured log records as parsed JSON dicts
"""

import json
import logging
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from io import StringIO
from uuid import UUID, uuid4

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

import tanda_kernel.models  # noqa: F401  (registers every table)
from tanda_kernel.db.base import Base
from tanda_kernel.db.engine import enable_sqlite_savepoints
from tanda_kernel.db.immutability import (
    register_immutability_listeners,
    unregister_immutability_listeners,
)
from tanda_kernel.domain.clock import DeterministicClock
from tanda_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from tanda_kernel.models import (
    Loan,
    Notification,
    RecipientProfile,
    RecoveryPeriod,
    Reminder,
    Reservation,
    SwapRequest,
    Wallet,
    XnScore,
)

# Wednesday mid-month, so month boundaries are never crossed by accident.
NOW = datetime(2026, 3, 18, 12, 0, 0, tzinfo=timezone.utc)


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture tanda logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, executor):
            executor.run("reservation_release")
            logs = captured_logs()
            assert any(r["message"] == "job_completed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("tanda")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Database fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _immutability_listeners():
    register_immutability_listeners()
    yield
    unregister_immutability_listeners()


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    enable_sqlite_savepoints(engine)
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine) -> Session:
    session = sessionmaker(bind=engine, expire_on_commit=False)()
    yield session
    session.rollback()
    session.close()


@pytest.fixture
def clock() -> DeterministicClock:
    return DeterministicClock(NOW)


# =============================================================================
# Seed helpers
# =============================================================================


class Seeder:
    """Inserts rows for job tests; every helper flushes and returns the row."""

    def __init__(self, session: Session, now: datetime):
        self.session = session
        self.now = now

    def _add(self, row):
        self.session.add(row)
        self.session.flush()
        return row

    def wallet(self, main: int = 0, reserved: int = 0, user_id: UUID | None = None) -> Wallet:
        return self._add(Wallet(
            user_id=user_id or uuid4(), main_balance=main, reserved_balance=reserved,
        ))

    def reservation(
        self,
        wallet: Wallet,
        amount: int,
        days_past_due: int = 10,
        status: str = "reserved",
        wallet_id: UUID | None = None,
    ) -> Reservation:
        return self._add(Reservation(
            wallet_id=wallet_id or wallet.id,
            user_id=wallet.user_id,
            circle_id=uuid4(),
            amount=amount,
            due_date=self.now - timedelta(days=days_past_due),
            status=status,
        ))

    def loan(
        self,
        principal: int = 100000,
        apr: str = "24",
        status: str = "active",
    ) -> Loan:
        return self._add(Loan(
            user_id=uuid4(), outstanding_principal=principal, apr=Decimal(apr), status=status,
        ))

    def swap(
        self,
        status: str = "pending_target",
        expires_in: timedelta = timedelta(hours=-1),
    ) -> SwapRequest:
        return self._add(SwapRequest(
            circle_id=uuid4(),
            requester_id=uuid4(),
            target_id=uuid4(),
            status=status,
            expires_at=self.now + expires_in,
        ))

    def profile(
        self,
        user_id: UUID | None = None,
        full_name: str = "Ama Mensah",
        email: str | None = "ama@example.com",
        phone: str | None = "+233200000000",
    ) -> RecipientProfile:
        return self._add(RecipientProfile(
            user_id=user_id or uuid4(), full_name=full_name, email=email, phone=phone,
        ))

    def reminder(
        self,
        user_id: UUID,
        channel: str = "email",
        template: str = "Hi {name}, {amount} is due on {due_date}.",
        amount: int | None = 5000,
        scheduled_for: datetime | None = None,
        status: str = "scheduled",
        notification_type: str = "contribution_reminder",
        created_at: datetime | None = None,
    ) -> Reminder:
        return self._add(Reminder(
            user_id=user_id,
            channel=channel,
            notification_type=notification_type,
            template=template,
            amount=amount,
            due_date=date(2026, 3, 20),
            scheduled_for=scheduled_for or self.now - timedelta(minutes=5),
            status=status,
            created_at=created_at or self.now,
        ))

    def notification(
        self,
        status: str = "read",
        created_at: datetime | None = None,
    ) -> Notification:
        return self._add(Notification(
            user_id=uuid4(),
            type="swap_expired",
            title="Swap Request Expired",
            body="Your position swap request expired before it was approved.",
            status=status,
            created_at=created_at or self.now,
        ))

    def score(
        self,
        total: str = "50",
        inactive_days: int | None = 75,
        active_months: int = 0,
        frozen: bool = False,
        user_id: UUID | None = None,
    ) -> XnScore:
        last_activity = (
            self.now - timedelta(days=inactive_days) if inactive_days is not None else None
        )
        return self._add(XnScore(
            user_id=user_id or uuid4(),
            total_score=Decimal(total),
            last_activity_at=last_activity,
            active_months=active_months,
            score_frozen=frozen,
        ))

    def recovery(self, user_id: UUID, ends_in: timedelta = timedelta(days=7), active: bool = True):
        return self._add(RecoveryPeriod(
            user_id=user_id,
            trigger_type="renewed_activity",
            started_at=self.now - timedelta(days=1),
            ends_at=self.now + ends_in,
            is_active=active,
        ))


@pytest.fixture
def seed(session) -> Seeder:
    return Seeder(session, NOW)
