"""
Configuration Loader (``ledger_config.loader``).

Loads YAML documents and parses them into the frozen dataclasses of
``ledger_config.schema``.  The single public entry point for runtime
config is ``ledger_config.get_active_config()``.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Wrong type or out-of-range value  -> ``ConfigurationError``.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml
from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError

from ledger_config.schema import (
    LimitSettings,
    ProcessingSettings,
    RecurringConfig,
    SchedulerSettings,
)
from ledger_kernel.domain.values import Category
from ledger_kernel.exceptions import ConfigurationError


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def merge_overrides(base: dict[str, Any], overrides: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge ``overrides`` into a copy of ``base``."""
    merged = dict(base)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_overrides(merged[key], value)
        else:
            merged[key] = value
    return merged


def _positive_int(data: dict[str, Any], key: str, default: int, path: str) -> int:
    value = data.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ConfigurationError(f"{path}.{key}", f"must be a positive integer, got {value!r}")
    return value


def _decimal(data: dict[str, Any], key: str, default: Decimal, path: str) -> Decimal:
    value = data.get(key, default)
    if isinstance(value, float):
        # YAML reads 0.01 as a float; go through str to keep the literal
        value = str(value)
    try:
        return Decimal(str(value))
    except InvalidOperation:
        raise ConfigurationError(f"{path}.{key}", f"not a decimal: {value!r}") from None


def parse_scheduler(data: dict[str, Any]) -> SchedulerSettings:
    """Parse the ``scheduler`` section."""
    return SchedulerSettings(
        tick_interval_seconds=_positive_int(
            data, "tick_interval_seconds", SchedulerSettings.tick_interval_seconds, "scheduler",
        ),
        run_on_start=bool(data.get("run_on_start", SchedulerSettings.run_on_start)),
    )


def parse_processing(data: dict[str, Any]) -> ProcessingSettings:
    """Parse the ``processing`` section."""
    timeout = data.get("timeout_seconds")
    if timeout is not None:
        if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
            raise ConfigurationError(
                "processing.timeout_seconds", f"must be a positive number, got {timeout!r}",
            )
        timeout = float(timeout)
    return ProcessingSettings(
        max_workers=_positive_int(data, "max_workers", ProcessingSettings.max_workers, "processing"),
        timeout_seconds=timeout,
        materialize_on_create=bool(
            data.get("materialize_on_create", ProcessingSettings.materialize_on_create)
        ),
    )


def parse_limits(data: dict[str, Any]) -> LimitSettings:
    """Parse the ``limits`` section."""
    min_amount = _decimal(data, "min_amount", LimitSettings.min_amount, "limits")
    max_amount = _decimal(data, "max_amount", LimitSettings.max_amount, "limits")
    if min_amount <= 0:
        raise ConfigurationError("limits.min_amount", "must be greater than 0")
    if max_amount < min_amount:
        raise ConfigurationError("limits.max_amount", "must be >= limits.min_amount")
    return LimitSettings(
        min_amount=min_amount,
        max_amount=max_amount,
        description_max_length=_positive_int(
            data, "description_max_length", LimitSettings.description_max_length, "limits",
        ),
    )


def parse_categories(values: list[Any] | None) -> tuple[Category, ...]:
    """Parse the enabled category list; defaults to every category."""
    if values is None:
        return tuple(Category)
    try:
        return tuple(Category.parse(v) for v in values)
    except ValueError as exc:
        raise ConfigurationError("categories", str(exc)) from None


def parse_config(data: dict[str, Any], source: str | None = None) -> RecurringConfig:
    """
    Parse a complete ``RecurringConfig`` from a dict.

    Unknown top-level keys are rejected so typos do not pass silently.
    """
    known = {
        "database_url", "timezone", "echo_sql",
        "scheduler", "processing", "limits", "categories",
    }
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigurationError(",".join(unknown), "unknown configuration key")

    database_url = data.get("database_url", RecurringConfig.database_url)
    if not isinstance(database_url, str) or not database_url:
        raise ConfigurationError("database_url", "must be a non-empty string")
    try:
        url = make_url(database_url)
    except ArgumentError as exc:
        raise ConfigurationError("database_url", str(exc)) from None

    tz = data.get("timezone", "UTC")
    if tz != "UTC":
        raise ConfigurationError("timezone", f"only UTC is supported, got {tz!r}")

    processing = parse_processing(data.get("processing") or {})
    in_memory = url.get_backend_name() == "sqlite" and url.database in (None, "", ":memory:")
    if in_memory and processing.max_workers > 1:
        # every worker session would share the single StaticPool connection
        raise ConfigurationError(
            "processing.max_workers", "must be 1 with an in-memory SQLite database",
        )

    return RecurringConfig(
        database_url=database_url,
        timezone=tz,
        echo_sql=bool(data.get("echo_sql", False)),
        scheduler=parse_scheduler(data.get("scheduler") or {}),
        processing=processing,
        limits=parse_limits(data.get("limits") or {}),
        categories=parse_categories(data.get("categories")),
        source=source,
    )
