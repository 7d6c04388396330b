"""
ledger_recurring.domain.types -- Pure frozen dataclasses for the recurring engine.

ZERO I/O.  Frozen dataclasses with enum status fields and tuples for
immutable collections.

Invariants enforced:
    - All DTOs are frozen dataclasses (immutable).
    - RT-7: ``CycleResult`` aggregates per-template failures as
      ``CycleError`` values instead of raising them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from ledger_kernel.domain.values import Category, TransactionKind

# =============================================================================
# Enums
# =============================================================================


class Frequency(str, Enum):
    """Template cadence."""

    DAILY = "daily"
    WEEKLY = "weekly"  # uses day_of_week (0 = Sunday)
    MONTHLY = "monthly"  # uses day_of_month (1-31, clamped to month length)
    YEARLY = "yearly"  # uses month (0 = January)


class CycleTrigger(str, Enum):
    """What started a processing cycle."""

    SCHEDULED = "scheduled"  # periodic scheduler tick
    MANUAL = "manual"  # administrative trigger


class CycleStatus(str, Enum):
    """Cycle-level outcome."""

    COMPLETED = "completed"  # No template failed
    PARTIALLY_COMPLETED = "partially_completed"  # Some templates failed
    FAILED = "failed"  # Every attempted template failed
    CANCELLED = "cancelled"  # Stopped early by stop event or timeout


class TemplateOutcomeStatus(str, Enum):
    """Per-template outcome within one cycle."""

    MATERIALIZED = "materialized"  # Entry written, template advanced
    SKIPPED = "skipped"  # No longer eligible on re-read
    FAILED = "failed"  # Transaction rolled back


# =============================================================================
# Template DTOs
# =============================================================================


@dataclass(frozen=True)
class TemplateDraft:
    """Caller-supplied fields for a new template.

    ``day_of_month`` / ``day_of_week`` / ``month`` are only meaningful for
    the matching frequency; the lifecycle service clears the others.
    """

    kind: TransactionKind
    amount: Decimal
    category: Category
    frequency: Frequency
    start_date: datetime
    description: str = ""
    end_date: datetime | None = None
    day_of_month: int | None = None
    day_of_week: int | None = None
    month: int | None = None
    is_active: bool = True
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class RecurrenceTemplate:
    """Immutable snapshot of a persisted template.

    RT-6: only ``is_active`` templates with ``next_occurrence <= now`` are
    selected for processing.
    """

    template_id: UUID
    owner_id: UUID
    kind: TransactionKind
    amount: Decimal
    category: Category
    frequency: Frequency
    start_date: datetime
    next_occurrence: datetime
    description: str = ""
    end_date: datetime | None = None
    day_of_month: int | None = None
    day_of_week: int | None = None
    month: int | None = None
    is_active: bool = True
    last_processed: datetime | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def entry_description(self) -> str:
        """Description written on materialized entries."""
        return self.description or f"Recurring: {self.category.value}"


@dataclass(frozen=True)
class CycleUpdate:
    """Post-materialization state written by ``commit_cycle``.

    ``next_occurrence`` is unchanged when the template is being deactivated
    (the column is NOT NULL).
    """

    last_processed: datetime
    next_occurrence: datetime
    is_active: bool


# =============================================================================
# Cycle DTOs
# =============================================================================


@dataclass(frozen=True)
class CycleError:
    """One template's failure within a cycle."""

    template_id: UUID
    code: str  # exception ``code`` or UNHANDLED_EXCEPTION
    message: str

    def to_dict(self) -> dict[str, str]:
        return {
            "template_id": str(self.template_id),
            "code": self.code,
            "message": self.message,
        }


@dataclass(frozen=True)
class TemplateOutcome:
    """Result of one per-template step."""

    template_id: UUID
    status: TemplateOutcomeStatus
    entry_id: UUID | None = None
    entry_date: datetime | None = None
    next_occurrence: datetime | None = None  # None when deactivated or not advanced
    deactivated: bool = False
    error: CycleError | None = None
    duration_ms: int = 0


@dataclass(frozen=True)
class CycleResult:
    """Immutable result of one ``process_due`` invocation.

    ``processed_count`` counts MATERIALIZED templates only; skipped
    templates lost a race to another cycle and are not errors.
    """

    cycle_id: UUID
    trigger: CycleTrigger
    status: CycleStatus
    processed_count: int
    skipped_count: int
    errors: tuple[CycleError, ...] = ()
    outcomes: tuple[TemplateOutcome, ...] = ()
    cancelled: bool = False
    started_at: datetime | None = None
    completed_at: datetime | None = None
    duration_ms: int = 0
    correlation_id: str | None = None

    @property
    def failed_count(self) -> int:
        return len(self.errors)

    def to_summary(self) -> dict[str, Any]:
        """JSON-safe summary returned by the administrative trigger."""
        return {
            "cycle_id": str(self.cycle_id),
            "trigger": self.trigger.value,
            "status": self.status.value,
            "processed_count": self.processed_count,
            "skipped_count": self.skipped_count,
            "errors": [e.to_dict() for e in self.errors],
            "cancelled": self.cancelled,
            "duration_ms": self.duration_ms,
        }
