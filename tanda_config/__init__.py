"""
tanda_config -- single public entrypoint for runtime settings.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  No other component reads settings files or
    environment variables directly.

Resolution order:
    1. ``config_file`` argument, else ``$TANDA_CONFIG_FILE``, else
       ``sets/default.yaml`` shipped with this package.
    2. ``$TANDA_DATABASE_URL`` and ``$TANDA_INTERNAL_API_KEY`` override
       the file's values.

Failure modes:
    - ``FileNotFoundError`` -- the named settings file does not exist.
    - ``yaml.YAMLError`` -- malformed YAML.
    - ``ValueError`` -- unknown keys.
    - ``ConfigurationError`` -- missing database URL or invalid job setting.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path

from tanda_kernel.logging_config import get_logger

from tanda_config.loader import ENV_CONFIG_FILE, load_yaml_file, parse_settings
from tanda_config.schema import TandaSettings

_logger = get_logger("config")

_DEFAULT_CONFIG_FILE = Path(__file__).parent / "sets" / "default.yaml"


def get_active_config(
    config_file: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> TandaSettings:
    """The ONLY public configuration entrypoint."""
    env = os.environ if environ is None else environ
    path = config_file or Path(env.get(ENV_CONFIG_FILE) or _DEFAULT_CONFIG_FILE)

    settings = parse_settings(load_yaml_file(path), env)

    _logger.info(
        "tanda_config_loaded",
        extra={
            "config_file": str(path),
            "internal_key_required": settings.api.internal_key is not None,
            "reminder_batch_size": settings.jobs.reminder_dispatch.batch_size,
        },
    )
    return settings


__all__ = ["TandaSettings", "get_active_config"]
