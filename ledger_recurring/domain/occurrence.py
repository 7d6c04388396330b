"""
Pure next-occurrence calculation.

Contract:
    ``next_occurrence(template, reference)`` returns the next due instant
    strictly after ``reference`` for the template's cadence, or ``None``
    when that instant falls at or after ``end_date`` (the deactivation
    signal).  Every function here is PURE -- no I/O, no clock reads.

Architecture: ledger_recurring/domain.  ZERO I/O.

Invariants enforced:
    RT-5 -- Occurrence calculation is pure.
    RT-4 -- All timestamps from caller (no datetime.now() calls).

Conventions:
    - ``day_of_week``: 0 = Sunday ... 6 = Saturday.
      Python ``datetime.weekday()`` is 0 = Monday, so it is shifted.
    - ``month``: 0 = January ... 11 = December.
    - The reference's time of day is preserved.
"""

from __future__ import annotations

import calendar
from datetime import datetime, timedelta
from typing import Protocol

from ledger_recurring.domain.types import Frequency, RecurrenceTemplate


class Cadence(Protocol):
    """The fields occurrence calculation reads.

    Satisfied by ``RecurrenceTemplate`` and ``TemplateDraft``.
    """

    frequency: Frequency
    start_date: datetime
    end_date: datetime | None
    day_of_month: int | None
    day_of_week: int | None
    month: int | None


def last_day_of_month(year: int, month: int) -> int:
    """Number of days in ``month`` (1-12) of ``year``."""
    return calendar.monthrange(year, month)[1]


def sunday_weekday(dt: datetime) -> int:
    """Weekday of ``dt`` with 0 = Sunday."""
    return (dt.weekday() + 1) % 7


def _clamped(dt: datetime, year: int, month: int, day: int) -> datetime:
    """``dt`` moved to year/month/day, day clamped to the month's length."""
    return dt.replace(year=year, month=month, day=min(day, last_day_of_month(year, month)))


def _before_end(cadence: Cadence, candidate: datetime) -> datetime | None:
    if cadence.end_date is not None and candidate >= cadence.end_date:
        return None
    return candidate


# =============================================================================
# Next occurrence (cycle advance)
# =============================================================================


def next_occurrence(template: Cadence, reference: datetime) -> datetime | None:
    """Compute the occurrence following ``reference`` (RT-5 pure).

    Rules by frequency:
        - DAILY: reference + 1 day.
        - WEEKLY: next date whose weekday is ``day_of_week``; a reference
          already on that weekday advances a full 7 days.
        - MONTHLY: first day of the next calendar month, then day
          ``min(day_of_month, last day of that month)``.
        - YEARLY: year + 1, month kept, day from ``start_date`` clamped
          to the month's length (Feb 29 is Feb 28 outside leap years).

    A missing frequency-specific field falls back to the reference's own
    weekday / day of month.

    Returns:
        The next instant, or None if it would be at or after ``end_date``.
    """
    frequency = Frequency(template.frequency)

    if frequency == Frequency.DAILY:
        candidate = reference + timedelta(days=1)

    elif frequency == Frequency.WEEKLY:
        target = template.day_of_week
        if target is None:
            target = sunday_weekday(reference)
        days = (target - sunday_weekday(reference)) % 7 or 7
        candidate = reference + timedelta(days=days)

    elif frequency == Frequency.MONTHLY:
        day = template.day_of_month or reference.day
        if reference.month == 12:
            year, month = reference.year + 1, 1
        else:
            year, month = reference.year, reference.month + 1
        candidate = _clamped(reference, year, month, day)

    else:
        # day comes from start_date so a Feb 28 clamp returns to Feb 29
        candidate = _clamped(reference, reference.year + 1, reference.month, template.start_date.day)

    return _before_end(template, candidate)


# =============================================================================
# Aligned occurrence (creation, cadence change, reactivation)
# =============================================================================


def first_occurrence_after(
    template: Cadence,
    reference: datetime,
    inclusive: bool = False,
) -> datetime | None:
    """Earliest instant after ``reference`` that satisfies the cadence fields.

    Unlike ``next_occurrence`` this aligns a free-running reference (such
    as "now") onto the template's rule: the time of day comes from
    ``start_date``, the day from ``day_of_week`` / ``day_of_month`` /
    ``month``.  With ``inclusive`` an instant equal to ``reference``
    qualifies.

    Returns:
        The aligned instant, or None if it would be at or after ``end_date``.
    """
    frequency = Frequency(template.frequency)
    start = template.start_date
    base = reference.replace(
        hour=start.hour,
        minute=start.minute,
        second=start.second,
        microsecond=start.microsecond,
    )

    def too_early(candidate: datetime) -> bool:
        return candidate < reference or (candidate == reference and not inclusive)

    if frequency == Frequency.DAILY:
        candidate = base
        if too_early(candidate):
            candidate += timedelta(days=1)

    elif frequency == Frequency.WEEKLY:
        target = template.day_of_week
        if target is None:
            target = sunday_weekday(start)
        candidate = base + timedelta(days=(target - sunday_weekday(base)) % 7)
        if too_early(candidate):
            candidate += timedelta(days=7)

    elif frequency == Frequency.MONTHLY:
        day = template.day_of_month or start.day
        candidate = _clamped(base, base.year, base.month, day)
        if too_early(candidate):
            if base.month == 12:
                candidate = _clamped(base, base.year + 1, 1, day)
            else:
                candidate = _clamped(base, base.year, base.month + 1, day)

    else:
        month = start.month if template.month is None else template.month + 1
        candidate = _clamped(base, base.year, month, start.day)
        if too_early(candidate):
            candidate = _clamped(base, base.year + 1, month, start.day)

    return _before_end(template, candidate)


def last_occurrence_at_or_before(template: Cadence, reference: datetime) -> datetime | None:
    """Latest aligned instant at or before ``reference``.

    Mirror of ``first_occurrence_after``.  Used to date the immediate
    entry written when a template is created with a past start.

    Returns:
        The aligned instant, or None if it falls before ``start_date``
        or at or after ``end_date``.
    """
    frequency = Frequency(template.frequency)
    start = template.start_date
    base = reference.replace(
        hour=start.hour,
        minute=start.minute,
        second=start.second,
        microsecond=start.microsecond,
    )

    if frequency == Frequency.DAILY:
        candidate = base
        if candidate > reference:
            candidate -= timedelta(days=1)

    elif frequency == Frequency.WEEKLY:
        target = template.day_of_week
        if target is None:
            target = sunday_weekday(start)
        candidate = base - timedelta(days=(sunday_weekday(base) - target) % 7)
        if candidate > reference:
            candidate -= timedelta(days=7)

    elif frequency == Frequency.MONTHLY:
        day = template.day_of_month or start.day
        candidate = _clamped(base, base.year, base.month, day)
        if candidate > reference:
            if base.month == 1:
                candidate = _clamped(base, base.year - 1, 12, day)
            else:
                candidate = _clamped(base, base.year, base.month - 1, day)

    else:
        month = start.month if template.month is None else template.month + 1
        candidate = _clamped(base, base.year, month, start.day)
        if candidate > reference:
            candidate = _clamped(base, base.year - 1, month, start.day)

    if candidate < start:
        return None
    return _before_end(template, candidate)


def initial_occurrence(template: Cadence, now: datetime) -> datetime | None:
    """First ``next_occurrence`` for a new or re-scheduled template.

    A future ``start_date`` is the reference (inclusive).  A past one
    triggers catch-up: the first aligned instant strictly after ``now``.
    """
    if template.start_date >= now:
        return first_occurrence_after(template, template.start_date, inclusive=True)
    return first_occurrence_after(template, now)


def default_reference(template: RecurrenceTemplate, now: datetime) -> datetime:
    """Reference instant for recomputation: ``max(now, next_occurrence)``.

    Never earlier than ``now``, so a backward clock jump cannot produce a
    due date that was already passed.
    """
    if template.next_occurrence is None or template.next_occurrence < now:
        return now
    return template.next_occurrence


def is_due(template: RecurrenceTemplate, now: datetime) -> bool:
    """True if the processor should materialize ``template`` at ``now`` (RT-6)."""
    return template.is_active and template.next_occurrence <= now
