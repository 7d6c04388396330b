"""
ORM model for the cycle audit trail.

Contract:
    One RecurringCycleModel row per ``process_due`` invocation, written in
    its own transaction after the cycle finishes (RT-9).  Per-template
    errors are stored as a JSON list of ``CycleError.to_dict()`` values.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import JSON, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import TrackedBase
from ledger_kernel.db.types import UTCDateTime

if TYPE_CHECKING:
    from ledger_recurring.domain.types import CycleResult


class RecurringCycleModel(TrackedBase):
    """Persistent record of one processing cycle."""

    __tablename__ = "recurring_cycles"

    __table_args__ = (
        Index("ix_recurring_cycles_started_at", "started_at"),
        Index("ix_recurring_cycles_status", "status"),
    )

    trigger: Mapped[str] = mapped_column(String(20), nullable=False)
    status: Mapped[str] = mapped_column(String(50), nullable=False)
    started_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    completed_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    processed_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    skipped_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    failed_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    cancelled: Mapped[bool] = mapped_column(default=False, nullable=False)
    duration_ms: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    errors: Mapped[list | None] = mapped_column(JSON, nullable=True)
    error_summary: Mapped[str | None] = mapped_column(Text, nullable=True)
    correlation_id: Mapped[str | None] = mapped_column(String(200), nullable=True)

    def to_dto(self) -> CycleResult:
        from ledger_recurring.domain.types import (
            CycleError,
            CycleResult,
            CycleStatus,
            CycleTrigger,
        )

        return CycleResult(
            cycle_id=self.id,
            trigger=CycleTrigger(self.trigger),
            status=CycleStatus(self.status),
            processed_count=self.processed_count,
            skipped_count=self.skipped_count,
            errors=tuple(
                CycleError(
                    template_id=UUID(e["template_id"]),
                    code=e["code"],
                    message=e["message"],
                )
                for e in (self.errors or [])
            ),
            cancelled=self.cancelled,
            started_at=self.started_at,
            completed_at=self.completed_at,
            duration_ms=self.duration_ms,
            correlation_id=self.correlation_id,
        )

    @classmethod
    def from_dto(cls, dto: CycleResult, created_by_id: UUID) -> RecurringCycleModel:
        failed = dto.failed_count
        return cls(
            id=dto.cycle_id,
            trigger=dto.trigger.value,
            status=dto.status.value,
            started_at=dto.started_at,
            completed_at=dto.completed_at,
            processed_count=dto.processed_count,
            skipped_count=dto.skipped_count,
            failed_count=failed,
            cancelled=dto.cancelled,
            duration_ms=dto.duration_ms,
            errors=[e.to_dict() for e in dto.errors] or None,
            error_summary=f"{failed} template(s) failed" if failed else None,
            correlation_id=dto.correlation_id,
            created_by_id=created_by_id,
            updated_by_id=None,
        )
