"""
DTOs -- immutable data crossing the ledger write boundary.

Responsibility:
    ``EntryRequest`` is what a caller (the recurring engine, or a manual
    CRUD path) hands to the ledger writer; ``LedgerEntry`` is the persisted
    result returned to it.

Architecture position:
    Kernel > Domain -- pure, zero I/O.  ``from_model()`` converters are only
    invoked from the service and selector layers.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from ledger_kernel.domain.values import Category, TransactionKind

if TYPE_CHECKING:
    from ledger_kernel.models.ledger_entry import LedgerEntryModel


@dataclass(frozen=True)
class EntryRequest:
    """Fields of a ledger entry to create.

    Recurring materializations set ``is_from_recurring`` and
    ``recurring_template_id`` so downstream "manual only" views can
    exclude them.
    """

    owner_id: UUID
    kind: TransactionKind
    amount: Decimal
    category: Category
    description: str
    entry_date: datetime
    is_from_recurring: bool = False
    recurring_template_id: UUID | None = None


@dataclass(frozen=True)
class LedgerEntry:
    """Persisted ledger entry."""

    entry_id: UUID
    owner_id: UUID
    kind: TransactionKind
    amount: Decimal
    category: Category
    description: str
    entry_date: datetime
    is_from_recurring: bool
    recurring_template_id: UUID | None
    created_at: datetime | None = None

    @classmethod
    def from_model(cls, model: LedgerEntryModel) -> LedgerEntry:
        return cls(
            entry_id=model.id,
            owner_id=model.owner_id,
            kind=TransactionKind(model.kind),
            amount=model.amount,
            category=Category(model.category),
            description=model.description,
            entry_date=model.entry_date,
            is_from_recurring=model.is_from_recurring,
            recurring_template_id=model.recurring_template_id,
            created_at=model.created_at,
        )
