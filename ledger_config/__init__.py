"""
ledger_config -- single public entrypoint for engine configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  No other component reads configuration
    files or environment variables directly.  Returns a frozen
    ``RecurringConfig``.

Architecture position:
    Configuration -- sits above ``ledger_kernel`` and below
    ``ledger_recurring``.  The kernel MUST NEVER import from
    ``ledger_config``.

Invariants enforced:
    - Single entrypoint: all runtime config flows through ``get_active_config()``.
    - Environment overrides are applied here and nowhere else
      (``LEDGER_CONFIG_PATH``, ``LEDGER_DATABASE_URL``).

Failure modes:
    - ``FileNotFoundError`` -- the configuration file does not exist.
    - ``yaml.YAMLError`` -- the file is not valid YAML.
    - ``ConfigurationError`` -- a value has the wrong type or range.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``LEDGER_CONFIG_TRACE`` log entry naming the source file and the
    effective processing settings.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from sqlalchemy.engine import make_url

from ledger_config.loader import load_yaml_file, merge_overrides, parse_config
from ledger_config.schema import (
    LimitSettings,
    ProcessingSettings,
    RecurringConfig,
    SchedulerSettings,
)
from ledger_kernel.logging_config import get_logger

__all__ = [
    "get_active_config",
    "RecurringConfig",
    "SchedulerSettings",
    "ProcessingSettings",
    "LimitSettings",
]

_logger = get_logger("config")

# Default configuration sets directory
_DEFAULT_CONFIG_DIR = Path(__file__).parent / "sets"
DEFAULT_CONFIG_PATH = _DEFAULT_CONFIG_DIR / "default.yaml"

CONFIG_PATH_ENV = "LEDGER_CONFIG_PATH"
DATABASE_URL_ENV = "LEDGER_DATABASE_URL"


def get_active_config(
    config_path: Path | str | None = None,
    overrides: dict[str, Any] | None = None,
) -> RecurringConfig:
    """The ONLY public configuration entrypoint.

    Resolution order (later wins):
        1. The YAML file: ``config_path``, else ``$LEDGER_CONFIG_PATH``,
           else the packaged ``sets/default.yaml``.
        2. ``$LEDGER_DATABASE_URL`` for ``database_url``.
        3. ``overrides`` (nested dict, deep-merged).

    Args:
        config_path: Explicit YAML file to load.
        overrides: Values merged over the file, e.g.
            ``{"processing": {"max_workers": 4}}``.

    Returns:
        A validated, frozen ``RecurringConfig``.

    Raises:
        FileNotFoundError: If the configuration file does not exist.
        ConfigurationError: If a value fails validation.
    """
    path = Path(config_path or os.environ.get(CONFIG_PATH_ENV) or DEFAULT_CONFIG_PATH)
    data = load_yaml_file(path)

    env_url = os.environ.get(DATABASE_URL_ENV)
    if env_url:
        data = merge_overrides(data, {"database_url": env_url})
    if overrides:
        data = merge_overrides(data, overrides)

    config = parse_config(data, source=str(path))

    _logger.info(
        "LEDGER_CONFIG_TRACE",
        extra={
            "trace_type": "LEDGER_CONFIG_TRACE",
            "source": config.source,
            "database_backend": make_url(config.database_url).get_backend_name(),
            "tick_interval_seconds": config.scheduler.tick_interval_seconds,
            "max_workers": config.processing.max_workers,
            "timeout_seconds": config.processing.timeout_seconds,
            "category_count": len(config.categories),
        },
    )
    return config
