"""
TemplateStore -- persistence operations on recurrence templates.

Contract:
    ``find_due(now)`` selects the templates a cycle should materialize.
    ``get_for_update(template_id)`` re-reads one row under a row lock.
    ``commit_cycle(...)`` advances a template with a guarded UPDATE that
    matches only if ``next_occurrence`` is still the value the cycle
    selected (RT-2).

    The store never commits; the caller owns the transaction.

Architecture: ledger_recurring/services.  Imports models and domain only.

Invariants enforced:
    RT-2 -- commit_cycle raises CycleConflictError when zero rows match.
    RT-6 -- find_due only returns active templates.

Failure modes:
    - StoreUnavailableError from find_due if the query itself fails.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError

from ledger_kernel.db.types import ensure_utc
from ledger_kernel.exceptions import CycleConflictError, StoreUnavailableError
from ledger_kernel.logging_config import get_logger
from ledger_kernel.services.base import BaseService
from ledger_recurring.domain.types import CycleUpdate, RecurrenceTemplate
from ledger_recurring.models.template import RecurringTemplateModel

logger = get_logger("recurring.store")


class TemplateStore(BaseService[RecurringTemplateModel]):
    """Session-bound access to ``recurring_templates``."""

    # -------------------------------------------------------------------------
    # Processor operations
    # -------------------------------------------------------------------------

    def find_due(self, now: datetime) -> tuple[RecurrenceTemplate, ...]:
        """Active templates with ``next_occurrence <= now``, oldest first.

        Templates past their ``end_date`` are not filtered here; a prior
        cycle deactivates them.

        Raises:
            StoreUnavailableError: If the query fails.
        """
        now = ensure_utc(now)
        try:
            rows = self.session.execute(
                select(RecurringTemplateModel)
                .where(
                    RecurringTemplateModel.is_active == True,  # noqa: E712
                    RecurringTemplateModel.next_occurrence <= now,
                )
                .order_by(
                    RecurringTemplateModel.next_occurrence,
                    RecurringTemplateModel.id,
                )
            ).scalars().all()
        except SQLAlchemyError as exc:
            raise StoreUnavailableError("find_due", str(exc)) from exc
        return tuple(row.to_dto() for row in rows)

    def get_for_update(self, template_id: UUID) -> RecurringTemplateModel | None:
        """Re-read one template with ``SELECT ... FOR UPDATE``.

        Row locking is a no-op on SQLite; the guarded UPDATE in
        ``commit_cycle`` still provides mutual exclusion there.
        """
        return self.session.execute(
            select(RecurringTemplateModel)
            .where(RecurringTemplateModel.id == template_id)
            .with_for_update()
        ).scalar_one_or_none()

    def commit_cycle(
        self,
        template_id: UUID,
        expected_next_occurrence: datetime,
        cycle_update: CycleUpdate,
        actor_id: UUID | None = None,
    ) -> None:
        """Advance a template, guarded on its selected ``next_occurrence``.

        Executes::

            UPDATE recurring_templates
               SET last_processed = :last_processed,
                   next_occurrence = :next_occurrence,
                   is_active = :is_active
             WHERE id = :template_id
               AND next_occurrence = :expected
               AND is_active

        Raises:
            CycleConflictError: If no row matched (another cycle advanced,
                deactivated, or deleted the template first).
        """
        result = self.session.execute(
            update(RecurringTemplateModel)
            .where(
                RecurringTemplateModel.id == template_id,
                RecurringTemplateModel.next_occurrence == ensure_utc(expected_next_occurrence),
                RecurringTemplateModel.is_active == True,  # noqa: E712
            )
            .values(
                last_processed=ensure_utc(cycle_update.last_processed),
                next_occurrence=ensure_utc(cycle_update.next_occurrence),
                is_active=cycle_update.is_active,
                updated_by_id=actor_id,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise CycleConflictError(
                str(template_id), expected_next_occurrence.isoformat(),
            )

        logger.debug(
            "recurring_cycle_committed",
            extra={
                "template_id": str(template_id),
                "next_occurrence": cycle_update.next_occurrence.isoformat(),
                "is_active": cycle_update.is_active,
            },
        )

    # -------------------------------------------------------------------------
    # Lifecycle operations
    # -------------------------------------------------------------------------

    def get_owned(self, owner_id: UUID, template_id: UUID) -> RecurringTemplateModel | None:
        """One template, only if it belongs to ``owner_id``."""
        return self.session.execute(
            select(RecurringTemplateModel).where(
                RecurringTemplateModel.id == template_id,
                RecurringTemplateModel.owner_id == owner_id,
            )
        ).scalar_one_or_none()

    def list_owned(
        self,
        owner_id: UUID,
        is_active: bool | None = None,
    ) -> tuple[RecurrenceTemplate, ...]:
        """All templates of one owner ordered by ``next_occurrence``."""
        query = select(RecurringTemplateModel).where(
            RecurringTemplateModel.owner_id == owner_id,
        )
        if is_active is not None:
            query = query.where(RecurringTemplateModel.is_active == is_active)
        query = query.order_by(
            RecurringTemplateModel.next_occurrence,
            RecurringTemplateModel.id,
        )
        rows = self.session.execute(query).scalars().all()
        return tuple(row.to_dto() for row in rows)

    def add(self, model: RecurringTemplateModel) -> RecurringTemplateModel:
        self.session.add(model)
        self.session.flush()
        return model

    def delete_owned(self, owner_id: UUID, template_id: UUID) -> bool:
        """Delete one template; True if a row was removed."""
        result = self.session.execute(
            delete(RecurringTemplateModel)
            .where(
                RecurringTemplateModel.id == template_id,
                RecurringTemplateModel.owner_id == owner_id,
            )
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount == 1
