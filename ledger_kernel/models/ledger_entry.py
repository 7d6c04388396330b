"""
LedgerEntryModel -- persisted income / expense entries.

Contract:
    One row per ledger entry, manual or recurrence-derived.  Recurrence-derived
    rows carry ``is_from_recurring=True`` and the originating template id.

Architecture: ledger_kernel/models.  Imports from ledger_kernel.db only.

Invariants enforced:
    - UNIQUE(recurring_template_id, entry_date): a template can be
      materialized at most once per occurrence date.  NULL template ids
      (manual entries) never collide.
    - No foreign key to the template table: deleting a template leaves its
      materialized entries untouched.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import TrackedBase, UUIDString
from ledger_kernel.db.types import UTCDateTime


class LedgerEntryModel(TrackedBase):
    """Income or expense entry owned by one user."""

    __tablename__ = "ledger_entries"

    __table_args__ = (
        UniqueConstraint(
            "recurring_template_id",
            "entry_date",
            name="uq_ledger_entries_template_date",
        ),
        Index("ix_ledger_entries_owner_date", "owner_id", "entry_date"),
        Index("ix_ledger_entries_owner_kind_date", "owner_id", "kind", "entry_date"),
        Index("ix_ledger_entries_from_recurring", "is_from_recurring"),
    )

    owner_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False, index=True)
    kind: Mapped[str] = mapped_column(String(20), nullable=False)
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    category: Mapped[str] = mapped_column(String(50), nullable=False)
    description: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    entry_date: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    is_from_recurring: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False,
    )
    recurring_template_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), nullable=True, index=True,
    )
