"""
Ledger service -- the write path for ledger entries.

The recurring engine consumes the ledger through the ``LedgerWriter``
protocol.  A writer receives the caller's session and must persist through
it, so the entry becomes durable in the same transaction as whatever the
caller commits alongside it (for the engine: the template advance).

The ledger service does NOT:
- Decide when an entry is due (that is the recurring processor)
- Commit or roll back (the caller owns the transaction)
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ledger_kernel.db.types import ensure_utc, round_money
from ledger_kernel.domain.dtos import EntryRequest, LedgerEntry
from ledger_kernel.exceptions import (
    DuplicateMaterializationError,
    LedgerWriteError,
)
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.ledger_entry import LedgerEntryModel

logger = get_logger("ledger.writer")

SYSTEM_ACTOR_ID = UUID("00000000-0000-0000-0000-000000000000")


@runtime_checkable
class LedgerWriter(Protocol):
    """Interface consumed by the recurring engine to create entries.

    Contract:
        - Persist through ``session`` (flush, never commit).
        - Raise a ``LedgerError`` subclass (or any exception) on failure;
          the caller treats it as a per-template failure.
    """

    def create_entry(self, session: Session, request: EntryRequest) -> LedgerEntry:
        ...


class SqlLedgerWriter:
    """``LedgerWriter`` backed by the ``ledger_entries`` table.

    Args:
        actor_id: Recorded as ``created_by_id``.  Defaults to the system actor.
        max_description_length: Descriptions are truncated to this length.
    """

    def __init__(
        self,
        actor_id: UUID | None = None,
        max_description_length: int = 200,
    ) -> None:
        self._actor_id = actor_id or SYSTEM_ACTOR_ID
        self._max_description_length = max_description_length

    def create_entry(self, session: Session, request: EntryRequest) -> LedgerEntry:
        """Insert one entry and flush it.

        Raises:
            LedgerWriteError: If the amount is not positive.
            DuplicateMaterializationError: If the template already has an
                entry on ``request.entry_date``.
        """
        template_id = (
            str(request.recurring_template_id)
            if request.recurring_template_id else None
        )
        amount = round_money(request.amount)
        if amount <= 0:
            raise LedgerWriteError(
                f"amount must be positive, got {request.amount}", template_id,
            )

        model = LedgerEntryModel(
            owner_id=request.owner_id,
            kind=request.kind.value,
            amount=amount,
            category=request.category.value,
            description=request.description[: self._max_description_length],
            entry_date=ensure_utc(request.entry_date),
            is_from_recurring=request.is_from_recurring,
            recurring_template_id=request.recurring_template_id,
            created_by_id=self._actor_id,
        )
        session.add(model)
        try:
            session.flush()
        except IntegrityError as exc:
            if template_id is not None:
                raise DuplicateMaterializationError(
                    template_id, request.entry_date.isoformat(),
                ) from exc
            raise LedgerWriteError(str(exc.orig)) from exc

        logger.debug(
            "ledger_entry_created",
            extra={
                "entry_id": str(model.id),
                "owner_id": str(request.owner_id),
                "kind": request.kind.value,
                "amount": str(amount),
                "is_from_recurring": request.is_from_recurring,
                "recurring_template_id": template_id,
            },
        )
        return LedgerEntry.from_model(model)
