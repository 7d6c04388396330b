"""
EntrySelector -- read access to ledger entries.

Supports the "manual only" views: recurrence-derived entries are flagged
``is_from_recurring`` and can be excluded from listings and totals.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select

from ledger_kernel.domain.dtos import LedgerEntry
from ledger_kernel.domain.values import TransactionKind
from ledger_kernel.models.ledger_entry import LedgerEntryModel
from ledger_kernel.selectors.base import BaseSelector


class EntrySelector(BaseSelector[LedgerEntryModel]):
    """Read-only queries over ``ledger_entries``."""

    def list_entries(
        self,
        owner_id: UUID,
        include_recurring: bool = True,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> tuple[LedgerEntry, ...]:
        """Entries for one owner, newest first.

        Args:
            owner_id: Owner scope.
            include_recurring: If False, recurrence-derived entries are omitted.
            start: Inclusive lower bound on ``entry_date``.
            end: Exclusive upper bound on ``entry_date``.
        """
        query = select(LedgerEntryModel).where(LedgerEntryModel.owner_id == owner_id)
        if not include_recurring:
            query = query.where(LedgerEntryModel.is_from_recurring == False)  # noqa: E712
        if start is not None:
            query = query.where(LedgerEntryModel.entry_date >= start)
        if end is not None:
            query = query.where(LedgerEntryModel.entry_date < end)
        query = query.order_by(LedgerEntryModel.entry_date.desc())

        rows = self.session.execute(query).scalars().all()
        return tuple(LedgerEntry.from_model(row) for row in rows)

    def entries_for_template(self, template_id: UUID) -> tuple[LedgerEntry, ...]:
        """All entries materialized from one template, oldest first."""
        rows = self.session.execute(
            select(LedgerEntryModel)
            .where(LedgerEntryModel.recurring_template_id == template_id)
            .order_by(LedgerEntryModel.entry_date)
        ).scalars().all()
        return tuple(LedgerEntry.from_model(row) for row in rows)

    def total(
        self,
        owner_id: UUID,
        kind: TransactionKind,
        include_recurring: bool = True,
    ) -> Decimal:
        """Sum of amounts of one kind for an owner."""
        query = select(func.coalesce(func.sum(LedgerEntryModel.amount), 0)).where(
            LedgerEntryModel.owner_id == owner_id,
            LedgerEntryModel.kind == kind.value,
        )
        if not include_recurring:
            query = query.where(LedgerEntryModel.is_from_recurring == False)  # noqa: E712
        return Decimal(str(self.session.execute(query).scalar_one()))
