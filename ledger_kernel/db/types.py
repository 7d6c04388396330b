"""
Module: ledger_kernel.db.types
Responsibility: Type decorators and money helpers for ledger columns.
    Centralizes monetary precision and timestamp normalization so that every
    model uses identical column definitions.
Architecture position: Kernel > DB.  May be imported by models/, domain/,
    services/, and selectors/.  MUST NOT import from any of those layers.

Invariants enforced:
    - No floats for money.  All monetary amounts use Decimal with explicit
      precision (MONEY_DECIMAL_PLACES).
    - Timestamps are timezone-aware UTC on the way in AND on the way out,
      including on SQLite, which stores DateTime without an offset.

Failure modes:
    - ValueError from UTCDateTime when a naive datetime is bound.  Naive
      values are ambiguous and rejected rather than guessed.
"""

from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from sqlalchemy import DateTime
from sqlalchemy.types import TypeDecorator

# Canonical precision for stored amounts
MONEY_DECIMAL_PLACES = 2


class UTCDateTime(TypeDecorator):
    """
    DateTime column that always round-trips timezone-aware UTC values.

    Contract:
        Bound values must be timezone-aware; they are converted to UTC
        before storage.  Loaded values are returned as aware UTC datetimes
        whether or not the backend preserved the offset.

    Guarantees:
        - process_bind_param: aware datetime -> UTC datetime.
        - process_result_value: naive (SQLite) or aware (PostgreSQL)
          value -> aware UTC datetime.
        - cache_ok=True enables SQLAlchemy statement caching.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            raise ValueError(f"Naive datetime not allowed: {value!r}")
        value = value.astimezone(timezone.utc)
        if dialect.name == "sqlite":
            # SQLite compares the stored text; keep one canonical form.
            return value.replace(tzinfo=None)
        return value

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Return ``value`` as an aware UTC datetime.

    Raises:
        ValueError: If ``value`` is naive.
    """
    if value.tzinfo is None:
        raise ValueError(f"Naive datetime not allowed: {value!r}")
    return value.astimezone(timezone.utc)


def round_money(amount: Decimal) -> Decimal:
    """Quantize an amount to MONEY_DECIMAL_PLACES using ROUND_HALF_UP."""
    quantum = Decimal(1).scaleb(-MONEY_DECIMAL_PLACES)
    return amount.quantize(quantum, rounding=ROUND_HALF_UP)


def money_from_str(value: str | int | Decimal) -> Decimal:
    """Parse an amount into a rounded Decimal.

    Floats are rejected; they cannot represent currency exactly.

    Raises:
        ValueError: If ``value`` is a float or not numeric.
    """
    if isinstance(value, float):
        raise ValueError("Float amounts are not allowed; pass a str or Decimal")
    try:
        amount = Decimal(str(value).strip())
    except InvalidOperation as exc:
        raise ValueError(f"Invalid amount: {value!r}") from exc
    if not amount.is_finite():
        raise ValueError(f"Invalid amount: {value!r}")
    return round_money(amount)
