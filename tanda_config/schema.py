"""
TandaSettings schema.

Frozen dataclasses for every runtime setting.  The loader parses the YAML
settings file (plus environment overrides) into these types; nothing else
in the codebase reads configuration files or environment variables.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

# ---------------------------------------------------------------------------
# Infrastructure
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DatabaseSettings:
    url: str
    echo: bool = False
    pool_size: int = 5


@dataclass(frozen=True)
class ApiSettings:
    """HTTP surface settings.

    When ``internal_key`` is set, every job endpoint requires a matching
    ``X-Internal-Key`` header.
    """

    internal_key: str | None = None


@dataclass(frozen=True)
class HealthSettings:
    """Per-job staleness thresholds for ``GET /health``.

    A job whose last logged run is older than its threshold is reported
    stale.  Jobs without a threshold are never stale.
    """

    stale_after_minutes: dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class LoggingSettings:
    level: str = "INFO"


# ---------------------------------------------------------------------------
# Jobs
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ReservationReleaseSettings:
    grace_days: int = 7


@dataclass(frozen=True)
class ReminderDispatchSettings:
    batch_size: int = 100


@dataclass(frozen=True)
class ScoreDecaySettings:
    inactivity_days: int = 30


@dataclass(frozen=True)
class ScoreBounds:
    floor: Decimal = Decimal("10")
    ceiling: Decimal = Decimal("100")


@dataclass(frozen=True)
class ReminderCleanupSettings:
    retention_days: int = 30
    notification_retention_days: int = 60


@dataclass(frozen=True)
class JobSettings:
    reservation_release: ReservationReleaseSettings = field(
        default_factory=ReservationReleaseSettings,
    )
    reminder_dispatch: ReminderDispatchSettings = field(
        default_factory=ReminderDispatchSettings,
    )
    score_decay: ScoreDecaySettings = field(default_factory=ScoreDecaySettings)
    score: ScoreBounds = field(default_factory=ScoreBounds)
    reminder_cleanup: ReminderCleanupSettings = field(
        default_factory=ReminderCleanupSettings,
    )


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TandaSettings:
    """The complete runtime configuration."""

    database: DatabaseSettings
    api: ApiSettings = field(default_factory=ApiSettings)
    jobs: JobSettings = field(default_factory=JobSettings)
    health: HealthSettings = field(default_factory=HealthSettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)
