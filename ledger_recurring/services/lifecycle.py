"""
TemplateLifecycleService -- create, read, update, toggle and delete templates.

Contract:
    Every mutation keeps ``next_occurrence`` consistent with the template's
    cadence.  All operations are scoped to an owner: an unknown id and
    another owner's id both raise ``TemplateNotFoundError``.

    Session-bound: flushes, never commits.  ``create`` with an immediate
    materialization writes the ledger entry in the same transaction as the
    template row.

Architecture: ledger_recurring/services.

Invariants enforced:
    RT-4 -- "now" comes from the injected Clock.
    - Validation runs on the merged template for every create/update.
    - A cadence change recomputes next_occurrence; no future occurrence
      deactivates the template.
    - Reactivation with no future occurrence is rejected and changes
      nothing.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Iterable
from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from ledger_config.schema import LimitSettings
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.dtos import EntryRequest
from ledger_kernel.domain.values import Category
from ledger_kernel.exceptions import (
    TemplateActivationError,
    TemplateNotFoundError,
    TemplateValidationError,
)
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_kernel.services.base import BaseService
from ledger_kernel.services.ledger_service import (
    SYSTEM_ACTOR_ID,
    LedgerWriter,
    SqlLedgerWriter,
)
from ledger_recurring.domain.occurrence import (
    default_reference,
    first_occurrence_after,
    initial_occurrence,
    last_occurrence_at_or_before,
)
from ledger_recurring.domain.types import RecurrenceTemplate, TemplateDraft
from ledger_recurring.domain.validation import (
    CADENCE_FIELDS,
    check_update_fields,
    validate_draft,
)
from ledger_recurring.models.template import RecurringTemplateModel
from ledger_recurring.services.template_store import TemplateStore

logger = get_logger("recurring.lifecycle")

_STATUS_FILTERS = {"active": True, "inactive": False}


class TemplateLifecycleService(BaseService[RecurringTemplateModel]):
    """Owner-scoped template management."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        limits: LimitSettings | None = None,
        categories: Iterable[Category] | None = None,
        ledger_writer: LedgerWriter | None = None,
        actor_id: UUID | None = None,
        materialize_on_create: bool = True,
    ):
        super().__init__(session)
        self._clock = clock or SystemClock()
        self._limits = limits or LimitSettings()
        self._categories = tuple(categories) if categories is not None else None
        self._actor_id = actor_id or SYSTEM_ACTOR_ID
        self._writer = ledger_writer or SqlLedgerWriter(
            actor_id=self._actor_id,
            max_description_length=self._limits.description_max_length,
        )
        self._materialize_on_create = materialize_on_create
        self._store = TemplateStore(session)

    # -------------------------------------------------------------------------
    # Create
    # -------------------------------------------------------------------------

    def create(
        self,
        owner_id: UUID,
        draft: TemplateDraft,
        materialize_initial: bool | None = None,
    ) -> RecurrenceTemplate:
        """Create a template and compute its first ``next_occurrence``.

        A future ``start_date`` is the first occurrence.  A past one is
        caught up to the first occurrence after now; with
        ``materialize_initial`` one entry is written immediately, dated at
        the latest occurrence on or before now.  Nothing is written when
        no occurrence falls between ``start_date`` and now.

        Raises:
            TemplateValidationError: On an invalid field, or when no
                occurrence remains before ``end_date``.
        """
        if materialize_initial is None:
            materialize_initial = self._materialize_on_create

        with LogContext.bind(owner_id=str(owner_id)):
            now = self._clock.now()
            draft = validate_draft(draft, self._limits, self._categories)
            initial_date = None
            if materialize_initial and draft.is_active and draft.start_date <= now:
                initial_date = last_occurrence_at_or_before(draft, now)
            materialize = initial_date is not None

            if materialize:
                first = first_occurrence_after(draft, now)
            else:
                first = initial_occurrence(draft, now)
            if first is None:
                raise TemplateValidationError(
                    "end_date", "no occurrence remains before end_date",
                )

            template = RecurrenceTemplate(
                template_id=uuid4(),
                owner_id=owner_id,
                kind=draft.kind,
                amount=draft.amount,
                category=draft.category,
                frequency=draft.frequency,
                start_date=draft.start_date,
                next_occurrence=first,
                description=draft.description,
                end_date=draft.end_date,
                day_of_month=draft.day_of_month,
                day_of_week=draft.day_of_week,
                month=draft.month,
                is_active=draft.is_active,
                last_processed=now if materialize else None,
                metadata=draft.metadata,
            )
            model = self._store.add(
                RecurringTemplateModel.from_dto(template, created_by_id=self._actor_id)
            )

            if materialize:
                entry = self._writer.create_entry(
                    self.session,
                    EntryRequest(
                        owner_id=owner_id,
                        kind=template.kind,
                        amount=template.amount,
                        category=template.category,
                        description=template.entry_description,
                        entry_date=initial_date,
                        is_from_recurring=True,
                        recurring_template_id=model.id,
                    ),
                )
                logger.info(
                    "recurring_template_initial_entry",
                    extra={"template_id": str(model.id), "entry_id": str(entry.entry_id)},
                )

            logger.info(
                "recurring_template_created",
                extra={
                    "template_id": str(model.id),
                    "frequency": template.frequency.value,
                    "next_occurrence": first.isoformat(),
                    "materialized_initial": materialize,
                },
            )
            return model.to_dto()

    # -------------------------------------------------------------------------
    # Read
    # -------------------------------------------------------------------------

    def get(self, owner_id: UUID, template_id: UUID) -> RecurrenceTemplate:
        return self._get_model(owner_id, template_id).to_dto()

    def list_templates(
        self,
        owner_id: UUID,
        status: str | None = None,
    ) -> tuple[RecurrenceTemplate, ...]:
        """Templates of one owner sorted by ``next_occurrence``.

        Args:
            status: ``"active"``, ``"inactive"`` or None for all.
        """
        if status is not None and status not in _STATUS_FILTERS:
            raise TemplateValidationError("status", "must be 'active' or 'inactive'")
        return self._store.list_owned(owner_id, _STATUS_FILTERS.get(status))

    # -------------------------------------------------------------------------
    # Update
    # -------------------------------------------------------------------------

    def update(
        self,
        owner_id: UUID,
        template_id: UUID,
        changes: dict[str, Any],
    ) -> RecurrenceTemplate:
        """Apply ``changes`` and recompute ``next_occurrence`` on a cadence change.

        Raises:
            TemplateNotFoundError: Unknown id or another owner's template.
            TemplateValidationError: Disallowed field or invalid merged value.
        """
        check_update_fields(changes)
        with LogContext.bind(owner_id=str(owner_id), template_id=str(template_id)):
            model = self._get_model(owner_id, template_id)
            current = model.to_dto()

            def pick(name: str) -> Any:
                return changes[name] if name in changes else getattr(current, name)

            merged = validate_draft(
                TemplateDraft(
                    kind=pick("kind"),
                    amount=pick("amount"),
                    category=pick("category"),
                    frequency=pick("frequency"),
                    start_date=pick("start_date"),
                    description=pick("description"),
                    end_date=pick("end_date"),
                    day_of_month=pick("day_of_month"),
                    day_of_week=pick("day_of_week"),
                    month=pick("month"),
                    is_active=current.is_active,
                    metadata=pick("metadata"),
                ),
                self._limits,
                self._categories,
            )

            model.kind = merged.kind.value
            model.amount = merged.amount
            model.category = merged.category.value
            model.description = merged.description
            model.extra_data = merged.metadata or None
            model.updated_by_id = self._actor_id

            cadence_changed = any(
                getattr(merged, name) != getattr(current, name) for name in CADENCE_FIELDS
            )
            if cadence_changed:
                model.frequency = merged.frequency.value
                model.start_date = merged.start_date
                model.end_date = merged.end_date
                model.day_of_month = merged.day_of_month
                model.day_of_week = merged.day_of_week
                model.month = merged.month

                following = self._rescheduled(current, merged, self._clock.now())
                if following is None:
                    # next_occurrence is NOT NULL; the stale value stays
                    model.is_active = False
                    logger.info("recurring_template_deactivated", extra={"reason": "no_future_occurrence"})
                else:
                    model.next_occurrence = following

            self.session.flush()
            logger.info(
                "recurring_template_updated",
                extra={
                    "fields": sorted(changes),
                    "cadence_changed": cadence_changed,
                    "next_occurrence": model.next_occurrence.isoformat(),
                    "is_active": model.is_active,
                },
            )
            return model.to_dto()

    # -------------------------------------------------------------------------
    # Toggle / delete
    # -------------------------------------------------------------------------

    def toggle_active(self, owner_id: UUID, template_id: UUID) -> RecurrenceTemplate:
        """Flip ``is_active``.

        Reactivating a template whose ``next_occurrence`` is in the past
        (or not before ``end_date``) recomputes it from
        ``max(now, next_occurrence)``.

        Raises:
            TemplateActivationError: Reactivation with no future
                occurrence; the template is left unchanged.
        """
        with LogContext.bind(owner_id=str(owner_id), template_id=str(template_id)):
            model = self._get_model(owner_id, template_id)

            if model.is_active:
                model.is_active = False
            else:
                now = self._clock.now()
                current = model.to_dto()
                stale = current.next_occurrence < now or (
                    current.end_date is not None and current.next_occurrence >= current.end_date
                )
                if stale:
                    following = first_occurrence_after(current, default_reference(current, now))
                    if following is None:
                        raise TemplateActivationError(str(template_id))
                    model.next_occurrence = following
                model.is_active = True

            model.updated_by_id = self._actor_id
            self.session.flush()
            logger.info(
                "recurring_template_toggled",
                extra={
                    "is_active": model.is_active,
                    "next_occurrence": model.next_occurrence.isoformat(),
                },
            )
            return model.to_dto()

    def delete(self, owner_id: UUID, template_id: UUID) -> None:
        """Remove a template.  Entries it materialized are kept."""
        if not self._store.delete_owned(owner_id, template_id):
            raise TemplateNotFoundError(str(template_id))
        logger.info(
            "recurring_template_deleted",
            extra={"owner_id": str(owner_id), "template_id": str(template_id)},
        )

    # -------------------------------------------------------------------------
    # Internal
    # -------------------------------------------------------------------------

    @staticmethod
    def _rescheduled(
        current: RecurrenceTemplate,
        merged: TemplateDraft,
        now: datetime,
    ) -> datetime | None:
        """``next_occurrence`` after a cadence change.

        An occurrence that is due but not yet processed survives the edit
        when it still fits the new cadence; otherwise recompute as on
        create.
        """
        pending = current.next_occurrence
        if current.is_active and pending <= now and pending >= merged.start_date:
            if first_occurrence_after(merged, pending, inclusive=True) == pending:
                return pending
        return initial_occurrence(merged, now)

    def _get_model(self, owner_id: UUID, template_id: UUID) -> RecurringTemplateModel:
        model = self._store.get_owned(owner_id, template_id)
        if model is None:
            raise TemplateNotFoundError(str(template_id))
        return model
