"""Pure recurrence domain: types, occurrence calculator, validation."""

from ledger_recurring.domain.occurrence import (
    default_reference,
    first_occurrence_after,
    initial_occurrence,
    is_due,
    last_day_of_month,
    last_occurrence_at_or_before,
    next_occurrence,
)
from ledger_recurring.domain.types import (
    CycleError,
    CycleResult,
    CycleStatus,
    CycleTrigger,
    CycleUpdate,
    Frequency,
    RecurrenceTemplate,
    TemplateDraft,
    TemplateOutcome,
    TemplateOutcomeStatus,
)

__all__ = [
    "CycleError",
    "CycleResult",
    "CycleStatus",
    "CycleTrigger",
    "CycleUpdate",
    "Frequency",
    "RecurrenceTemplate",
    "TemplateDraft",
    "TemplateOutcome",
    "TemplateOutcomeStatus",
    "default_reference",
    "first_occurrence_after",
    "initial_occurrence",
    "is_due",
    "last_day_of_month",
    "last_occurrence_at_or_before",
    "next_occurrence",
]
