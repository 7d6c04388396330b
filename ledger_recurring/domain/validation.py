"""
Template field validation.

Contract:
    ``validate_draft()`` returns a normalized copy of the draft or raises
    ``TemplateValidationError`` naming the first offending field.  Pure;
    the lifecycle service calls it on create and on every update (against
    the merged template), so invalid templates never reach the processor.

Normalization:
    - string enums are parsed (``"monthly"`` -> ``Frequency.MONTHLY``)
    - amounts are parsed and rounded to cents; floats are rejected
    - description is trimmed
    - start and end dates are converted to UTC
    - cadence fields not used by the frequency are cleared to None
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from decimal import Decimal
from typing import Any, Iterable

from ledger_config.schema import LimitSettings
from ledger_kernel.db.types import ensure_utc, money_from_str
from ledger_kernel.domain.values import Category, TransactionKind
from ledger_kernel.exceptions import TemplateValidationError
from ledger_recurring.domain.types import Frequency, TemplateDraft

# Fields a lifecycle update may change.
UPDATABLE_FIELDS = frozenset({
    "kind",
    "amount",
    "category",
    "description",
    "frequency",
    "start_date",
    "end_date",
    "day_of_month",
    "day_of_week",
    "month",
    "metadata",
})

# Fields whose change forces next_occurrence to be recomputed.
CADENCE_FIELDS = frozenset({
    "frequency",
    "start_date",
    "end_date",
    "day_of_month",
    "day_of_week",
    "month",
})

# frequency -> (required field, inclusive range)
_CADENCE_RULES: dict[Frequency, tuple[str, int, int]] = {
    Frequency.WEEKLY: ("day_of_week", 0, 6),
    Frequency.MONTHLY: ("day_of_month", 1, 31),
    Frequency.YEARLY: ("month", 0, 11),
}


def _enum(enum_type, field: str, value: Any):
    try:
        if enum_type is Category:
            return Category.parse(value)
        return enum_type(value)
    except ValueError:
        allowed = ", ".join(m.value for m in enum_type)
        raise TemplateValidationError(field, f"must be one of: {allowed}") from None


def _aware(field: str, value: Any) -> datetime:
    if not isinstance(value, datetime):
        raise TemplateValidationError(field, "must be a datetime")
    if value.tzinfo is None:
        raise TemplateValidationError(field, "must be timezone-aware")
    return ensure_utc(value)


def _amount(value: Any, limits: LimitSettings) -> Decimal:
    try:
        amount = money_from_str(value)
    except ValueError as exc:
        raise TemplateValidationError("amount", str(exc)) from None
    if amount < limits.min_amount:
        raise TemplateValidationError("amount", f"must be at least {limits.min_amount}")
    if amount > limits.max_amount:
        raise TemplateValidationError("amount", f"cannot exceed {limits.max_amount}")
    return amount


def _cadence_value(field: str, value: Any, low: int, high: int) -> int:
    if value is None:
        raise TemplateValidationError(field, "is required for this frequency")
    if isinstance(value, bool) or not isinstance(value, int):
        raise TemplateValidationError(field, "must be an integer")
    if not low <= value <= high:
        raise TemplateValidationError(field, f"must be between {low} and {high}")
    return value


def validate_draft(
    draft: TemplateDraft,
    limits: LimitSettings,
    categories: Iterable[Category] | None = None,
) -> TemplateDraft:
    """Validate and normalize a template draft.

    Args:
        draft: Caller-supplied fields (may hold raw strings for enums).
        limits: Amount and description bounds.
        categories: Enabled categories.  Defaults to all.

    Raises:
        TemplateValidationError: On the first invalid field.
    """
    kind = _enum(TransactionKind, "kind", draft.kind)
    category = _enum(Category, "category", draft.category)
    if categories is not None and category not in tuple(categories):
        raise TemplateValidationError("category", f"{category.value} is not enabled")
    frequency = _enum(Frequency, "frequency", draft.frequency)
    amount = _amount(draft.amount, limits)

    description = draft.description or ""
    if not isinstance(description, str):
        raise TemplateValidationError("description", "must be a string")
    description = description.strip()
    if len(description) > limits.description_max_length:
        raise TemplateValidationError(
            "description",
            f"cannot exceed {limits.description_max_length} characters",
        )

    start_date = _aware("start_date", draft.start_date)
    end_date = None
    if draft.end_date is not None:
        end_date = _aware("end_date", draft.end_date)
        if end_date <= start_date:
            raise TemplateValidationError("end_date", "must be after start_date")

    cadence: dict[str, int | None] = {"day_of_month": None, "day_of_week": None, "month": None}
    rule = _CADENCE_RULES.get(frequency)
    if rule is not None:
        field, low, high = rule
        cadence[field] = _cadence_value(field, getattr(draft, field), low, high)

    metadata = draft.metadata if draft.metadata is not None else {}
    if not isinstance(metadata, dict):
        raise TemplateValidationError("metadata", "must be a mapping")

    return replace(
        draft,
        kind=kind,
        amount=amount,
        category=category,
        frequency=frequency,
        description=description,
        start_date=start_date,
        end_date=end_date,
        is_active=bool(draft.is_active),
        metadata=dict(metadata),
        **cadence,
    )


def check_update_fields(changes: dict[str, Any]) -> None:
    """Reject fields a lifecycle update may not touch.

    Raises:
        TemplateValidationError: Naming the first disallowed field.
    """
    for key in sorted(changes):
        if key not in UPDATABLE_FIELDS:
            raise TemplateValidationError(key, "cannot be updated")
