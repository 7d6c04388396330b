"""
ORM model for recurrence templates.

Contract:
    RecurringTemplateModel persists one recurrence rule per row, with
    ``to_dto()`` / ``from_dto()`` round-trip methods.

Architecture: ledger_recurring/models.  Imports from ledger_kernel.db only.

Invariants enforced:
    RT-6 -- the due-scan reads (is_active, next_occurrence) through
            ``ix_recurring_templates_due``.
    RT-2 -- ``next_occurrence`` is NOT NULL; it is the optimistic
            concurrency token matched by ``commit_cycle``.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import JSON, Boolean, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import TrackedBase, UUIDString
from ledger_kernel.db.types import UTCDateTime

if TYPE_CHECKING:
    from ledger_recurring.domain.types import RecurrenceTemplate


class RecurringTemplateModel(TrackedBase):
    """Persistent recurrence template (RT-2 guard token, RT-6 due index)."""

    __tablename__ = "recurring_templates"

    __table_args__ = (
        Index("ix_recurring_templates_due", "is_active", "next_occurrence"),
        Index("ix_recurring_templates_owner", "owner_id", "next_occurrence"),
    )

    owner_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    kind: Mapped[str] = mapped_column(String(20), nullable=False)
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    category: Mapped[str] = mapped_column(String(50), nullable=False)
    description: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    frequency: Mapped[str] = mapped_column(String(20), nullable=False)
    start_date: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    end_date: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    day_of_month: Mapped[int | None] = mapped_column(Integer, nullable=True)
    day_of_week: Mapped[int | None] = mapped_column(Integer, nullable=True)
    month: Mapped[int | None] = mapped_column(Integer, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    last_processed: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    next_occurrence: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    # "metadata" is reserved on declarative classes
    extra_data: Mapped[dict | None] = mapped_column("metadata", JSON, nullable=True)

    def to_dto(self) -> RecurrenceTemplate:
        from ledger_kernel.domain.values import Category, TransactionKind
        from ledger_recurring.domain.types import Frequency, RecurrenceTemplate

        return RecurrenceTemplate(
            template_id=self.id,
            owner_id=self.owner_id,
            kind=TransactionKind(self.kind),
            amount=self.amount,
            category=Category(self.category),
            frequency=Frequency(self.frequency),
            start_date=self.start_date,
            next_occurrence=self.next_occurrence,
            description=self.description,
            end_date=self.end_date,
            day_of_month=self.day_of_month,
            day_of_week=self.day_of_week,
            month=self.month,
            is_active=self.is_active,
            last_processed=self.last_processed,
            metadata=dict(self.extra_data or {}),
            created_at=self.created_at,
            updated_at=self.updated_at,
        )

    @classmethod
    def from_dto(cls, dto: RecurrenceTemplate, created_by_id: UUID) -> RecurringTemplateModel:
        return cls(
            id=dto.template_id,
            owner_id=dto.owner_id,
            kind=dto.kind.value,
            amount=dto.amount,
            category=dto.category.value,
            description=dto.description,
            frequency=dto.frequency.value,
            start_date=dto.start_date,
            end_date=dto.end_date,
            day_of_month=dto.day_of_month,
            day_of_week=dto.day_of_week,
            month=dto.month,
            is_active=dto.is_active,
            last_processed=dto.last_processed,
            next_occurrence=dto.next_occurrence,
            extra_data=dto.metadata or None,
            created_by_id=created_by_id,
            updated_by_id=None,
        )
