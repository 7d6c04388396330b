"""
RecurringConfig schema.

The runtime configuration of the recurring-transaction engine.  YAML
documents are parsed into these frozen types by the loader; nothing else
in the system reads configuration files or environment variables.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from ledger_kernel.domain.values import Category

# ---------------------------------------------------------------------------
# Sections
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SchedulerSettings:
    """Periodic trigger settings."""

    tick_interval_seconds: int = 3600
    run_on_start: bool = True


@dataclass(frozen=True)
class ProcessingSettings:
    """Batch processor settings."""

    max_workers: int = 1  # 1 = sequential
    timeout_seconds: float | None = None  # stop picking up templates after this
    materialize_on_create: bool = True


@dataclass(frozen=True)
class LimitSettings:
    """Validation limits applied by the lifecycle operations."""

    min_amount: Decimal = Decimal("0.01")
    max_amount: Decimal = Decimal("10000000")
    description_max_length: int = 200


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RecurringConfig:
    """Complete engine configuration."""

    database_url: str = "sqlite:///ledger.db"
    timezone: str = "UTC"  # storage and calculation are UTC-only
    echo_sql: bool = False
    scheduler: SchedulerSettings = field(default_factory=SchedulerSettings)
    processing: ProcessingSettings = field(default_factory=ProcessingSettings)
    limits: LimitSettings = field(default_factory=LimitSettings)
    categories: tuple[Category, ...] = tuple(Category)
    source: str | None = None  # path the config was loaded from
