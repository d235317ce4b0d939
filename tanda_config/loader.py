"""
Configuration Loader (``tanda_config.loader``).

Loads the YAML settings file, applies environment overrides and parses
the result into ``tanda_config.schema`` dataclasses.  Callers use
``tanda_config.get_active_config()``; this module is its implementation.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Unknown top-level or section keys  -> ``ValueError``.
* No database URL from file or environment  -> ``ConfigurationError``.
"""

from __future__ import annotations

from collections.abc import Mapping
from decimal import Decimal
from pathlib import Path
from typing import Any

import yaml

from tanda_kernel.exceptions import ConfigurationError

from tanda_config.schema import (
    ApiSettings,
    DatabaseSettings,
    HealthSettings,
    JobSettings,
    LoggingSettings,
    ReminderCleanupSettings,
    ReminderDispatchSettings,
    ReservationReleaseSettings,
    ScoreBounds,
    ScoreDecaySettings,
    TandaSettings,
)

ENV_CONFIG_FILE = "TANDA_CONFIG_FILE"
ENV_DATABASE_URL = "TANDA_DATABASE_URL"
ENV_INTERNAL_KEY = "TANDA_INTERNAL_API_KEY"

_TOP_LEVEL_KEYS = frozenset({"database", "api", "jobs", "health", "logging"})
_JOB_KEYS = frozenset({
    "reservation_release",
    "reminder_dispatch",
    "score_decay",
    "score",
    "reminder_cleanup",
})


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    value = data.get(name) or {}
    if not isinstance(value, dict):
        raise ValueError(f"Configuration section '{name}' must be a mapping")
    return value


def _check_keys(data: dict[str, Any], allowed: frozenset[str], where: str) -> None:
    unknown = sorted(set(data) - allowed)
    if unknown:
        raise ValueError(f"Unknown keys in {where}: {unknown}")


def _positive_int(value: Any, setting: str) -> int:
    number = int(value)
    if number <= 0:
        raise ConfigurationError(setting, f"must be a positive integer, got {value!r}")
    return number


def parse_jobs(data: dict[str, Any]) -> JobSettings:
    _check_keys(data, _JOB_KEYS, "jobs")
    release = _section(data, "reservation_release")
    dispatch = _section(data, "reminder_dispatch")
    decay = _section(data, "score_decay")
    score = _section(data, "score")
    cleanup = _section(data, "reminder_cleanup")

    bounds = ScoreBounds(
        floor=Decimal(str(score.get("floor", "10"))),
        ceiling=Decimal(str(score.get("ceiling", "100"))),
    )
    if bounds.floor >= bounds.ceiling:
        raise ConfigurationError(
            "jobs.score", f"floor {bounds.floor} must be below ceiling {bounds.ceiling}",
        )

    return JobSettings(
        reservation_release=ReservationReleaseSettings(
            grace_days=int(release.get("grace_days", 7)),
        ),
        reminder_dispatch=ReminderDispatchSettings(
            batch_size=_positive_int(
                dispatch.get("batch_size", 100), "jobs.reminder_dispatch.batch_size",
            ),
        ),
        score_decay=ScoreDecaySettings(
            inactivity_days=int(decay.get("inactivity_days", 30)),
        ),
        score=bounds,
        reminder_cleanup=ReminderCleanupSettings(
            retention_days=_positive_int(
                cleanup.get("retention_days", 30), "jobs.reminder_cleanup.retention_days",
            ),
            notification_retention_days=_positive_int(
                cleanup.get("notification_retention_days", 60),
                "jobs.reminder_cleanup.notification_retention_days",
            ),
        ),
    )


def parse_health(data: dict[str, Any]) -> HealthSettings:
    _check_keys(data, frozenset({"stale_after_minutes"}), "health")
    thresholds = _section(data, "stale_after_minutes")
    return HealthSettings(
        stale_after_minutes={
            str(job): _positive_int(minutes, f"health.stale_after_minutes.{job}")
            for job, minutes in thresholds.items()
        },
    )


def parse_settings(
    data: dict[str, Any],
    environ: Mapping[str, str],
) -> TandaSettings:
    """
    Build ``TandaSettings`` from parsed YAML plus environment overrides.

    Raises:
        ValueError: unknown keys.
        ConfigurationError: no database URL, or an invalid job setting.
    """
    _check_keys(data, _TOP_LEVEL_KEYS, "settings")
    database = _section(data, "database")
    api = _section(data, "api")
    logging_data = _section(data, "logging")

    url = environ.get(ENV_DATABASE_URL) or database.get("url")
    if not url:
        raise ConfigurationError(
            "database.url", f"not set in settings file or {ENV_DATABASE_URL}",
        )

    return TandaSettings(
        database=DatabaseSettings(
            url=url,
            echo=bool(database.get("echo", False)),
            pool_size=int(database.get("pool_size", 5)),
        ),
        api=ApiSettings(
            internal_key=environ.get(ENV_INTERNAL_KEY) or api.get("internal_key"),
        ),
        jobs=parse_jobs(_section(data, "jobs")),
        health=parse_health(_section(data, "health")),
        logging=LoggingSettings(level=str(logging_data.get("level", "INFO")).upper()),
    )
