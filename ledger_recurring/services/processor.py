"""
RecurringProcessor -- materializes due recurrence templates.

Contract:
    ``process_due(now)`` selects every active template whose
    ``next_occurrence <= now`` and, for each one, writes exactly one
    ledger entry and advances (or deactivates) the template.  Returns a
    ``CycleResult``; per-template failures are aggregated, never raised.

Architecture: ledger_recurring/services.  Uses ledger_recurring.domain for
    pure calculation, TemplateStore for persistence, and a LedgerWriter
    for the entry.  Both trigger adapters (scheduler and administrative
    call) reach this class through RecurringOrchestrator.

Invariants enforced:
    RT-1 -- one session and one transaction per template; the ledger
            INSERT and the template UPDATE commit together or not at all.
    RT-2 -- eligibility is re-read inside the template transaction and
            the advance is a guarded UPDATE.
    RT-4 -- all timestamps from the injected Clock.
    RT-7 -- per-template exceptions become CycleError values.
    RT-8 -- stop event and timeout are checked between templates only.
    RT-9 -- each cycle is recorded in recurring_cycles.

Failure modes:
    - StoreUnavailableError propagates if the due-scan fails; nothing has
      been written at that point.
"""

from __future__ import annotations

import contextvars
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from typing import Callable
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.orm import Session

from ledger_kernel.db.types import ensure_utc
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.dtos import EntryRequest
from ledger_kernel.exceptions import LedgerKernelError, StoreUnavailableError
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_kernel.services.ledger_service import (
    SYSTEM_ACTOR_ID,
    LedgerWriter,
    SqlLedgerWriter,
)
from ledger_recurring.domain.occurrence import is_due, next_occurrence
from ledger_recurring.domain.types import (
    CycleError,
    CycleResult,
    CycleStatus,
    CycleTrigger,
    CycleUpdate,
    RecurrenceTemplate,
    TemplateOutcome,
    TemplateOutcomeStatus,
)
from ledger_recurring.models.cycle import RecurringCycleModel
from ledger_recurring.services.template_store import TemplateStore

logger = get_logger("recurring.processor")


class RecurringProcessor:
    """Batch processor for due recurrence templates.

    Contract:
        - ``process_due()`` never raises for a single template's failure.
        - A template that fails keeps its state and is retried next cycle.
        - Safe to call concurrently (scheduled + manual); the guarded
          commit lets exactly one caller advance each occurrence.

    Non-goals:
        - Does NOT catch up more than one occurrence per template per
          cycle; a template still behind ``now`` is picked up again by the
          next cycle.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        clock: Clock | None = None,
        ledger_writer: LedgerWriter | None = None,
        actor_id: UUID | None = None,
        max_workers: int = 1,
        timeout_seconds: float | None = None,
    ):
        if max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {max_workers}")
        self._session_factory = session_factory
        self._clock = clock or SystemClock()
        self._actor_id = actor_id or SYSTEM_ACTOR_ID
        self._writer = ledger_writer or SqlLedgerWriter(actor_id=self._actor_id)
        self._max_workers = max_workers
        self._timeout_seconds = timeout_seconds

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def process_due(
        self,
        now: datetime | None = None,
        trigger: CycleTrigger = CycleTrigger.SCHEDULED,
        timeout_seconds: float | None = None,
        stop_event: threading.Event | None = None,
    ) -> CycleResult:
        """Run one cycle over all due templates.

        Args:
            now: Processing reference time.  Defaults to the clock.
            trigger: Recorded on the cycle row and in logs.
            timeout_seconds: Stop picking up templates after this long.
                Defaults to the processor's configured timeout.
            stop_event: When set, stop before the next template.

        Returns:
            CycleResult with counts, per-template errors and outcomes.

        Raises:
            StoreUnavailableError: If due templates cannot be selected.
        """
        now = ensure_utc(now or self._clock.now())
        trigger = CycleTrigger(trigger)
        timeout = timeout_seconds if timeout_seconds is not None else self._timeout_seconds
        cycle_id = uuid4()
        correlation_id = LogContext.get_all().get("correlation_id") or str(cycle_id)

        with LogContext.bind(
            cycle_id=str(cycle_id),
            trigger=trigger.value,
            correlation_id=correlation_id,
        ):
            started_at = self._clock.now()
            start_time = time.monotonic()
            logger.info("recurring_cycle_started", extra={"now": now.isoformat()})

            try:
                due = self._select_due(now)
            except StoreUnavailableError:
                logger.exception("recurring_cycle_aborted")
                raise

            deadline = time.monotonic() + timeout if timeout is not None else None
            outcomes, cancelled = self._run(due, now, deadline, stop_event)

            processed = sum(1 for o in outcomes if o.status == TemplateOutcomeStatus.MATERIALIZED)
            skipped = sum(1 for o in outcomes if o.status == TemplateOutcomeStatus.SKIPPED)
            errors = tuple(o.error for o in outcomes if o.error is not None)

            if cancelled:
                status = CycleStatus.CANCELLED
            elif not errors:
                status = CycleStatus.COMPLETED
            elif processed == 0 and skipped == 0:
                status = CycleStatus.FAILED
            else:
                status = CycleStatus.PARTIALLY_COMPLETED

            result = CycleResult(
                cycle_id=cycle_id,
                trigger=trigger,
                status=status,
                processed_count=processed,
                skipped_count=skipped,
                errors=errors,
                outcomes=tuple(outcomes),
                cancelled=cancelled,
                started_at=started_at,
                completed_at=self._clock.now(),
                duration_ms=int((time.monotonic() - start_time) * 1000),
                correlation_id=correlation_id,
            )

            self._record_cycle(result)

            logger.info(
                "recurring_cycle_completed",
                extra={
                    "status": status.value,
                    "due_count": len(due),
                    "processed_count": processed,
                    "skipped_count": skipped,
                    "failed_count": len(errors),
                    "cancelled": cancelled,
                    "duration_ms": result.duration_ms,
                },
            )
            return result

    def recent_cycles(self, limit: int = 20) -> tuple[CycleResult, ...]:
        """Most recent cycle records, newest first."""
        session = self._session_factory()
        try:
            rows = session.execute(
                select(RecurringCycleModel)
                .order_by(RecurringCycleModel.started_at.desc())
                .limit(limit)
            ).scalars().all()
            return tuple(row.to_dto() for row in rows)
        finally:
            session.close()

    # -------------------------------------------------------------------------
    # Internal
    # -------------------------------------------------------------------------

    def _select_due(self, now: datetime) -> tuple[RecurrenceTemplate, ...]:
        session = self._session_factory()
        try:
            return TemplateStore(session).find_due(now)
        finally:
            session.close()

    def _run(
        self,
        due: tuple[RecurrenceTemplate, ...],
        now: datetime,
        deadline: float | None,
        stop_event: threading.Event | None,
    ) -> tuple[list[TemplateOutcome], bool]:
        """Process templates; returns outcomes and whether the cycle stopped early."""

        def should_stop() -> bool:
            if stop_event is not None and stop_event.is_set():
                return True
            return deadline is not None and time.monotonic() >= deadline

        def run_one(template: RecurrenceTemplate) -> TemplateOutcome | None:
            # RT-8: checked before a template starts, never inside one
            if should_stop():
                return None
            return self._process_template(template, now)

        if self._max_workers == 1 or len(due) <= 1:
            results = [run_one(t) for t in due]
        else:
            with ThreadPoolExecutor(
                max_workers=self._max_workers,
                thread_name_prefix="recurring-worker",
            ) as pool:
                # each worker task runs in a copy of the cycle's log context
                futures = [
                    pool.submit(contextvars.copy_context().run, run_one, t)
                    for t in due
                ]
                results = [f.result() for f in futures]

        outcomes = [r for r in results if r is not None]
        cancelled = len(outcomes) < len(due)
        if cancelled:
            logger.warning(
                "recurring_cycle_cancelled",
                extra={"remaining": len(due) - len(outcomes)},
            )
        return outcomes, cancelled

    def _process_template(self, selected: RecurrenceTemplate, now: datetime) -> TemplateOutcome:
        """Materialize and advance one template in its own transaction (RT-1)."""
        template_id = selected.template_id
        with LogContext.bind(template_id=str(template_id), owner_id=str(selected.owner_id)):
            item_start = time.monotonic()
            session = self._session_factory()
            try:
                store = TemplateStore(session)

                # RT-2: re-check eligibility together with the update
                model = store.get_for_update(template_id)
                template = model.to_dto() if model is not None else None
                if (
                    template is None
                    or not is_due(template, now)
                    or template.next_occurrence != selected.next_occurrence
                ):
                    session.rollback()
                    logger.info(
                        "recurring_template_skipped",
                        extra={"selected_next_occurrence": selected.next_occurrence.isoformat()},
                    )
                    return TemplateOutcome(
                        template_id=template_id,
                        status=TemplateOutcomeStatus.SKIPPED,
                        duration_ms=int((time.monotonic() - item_start) * 1000),
                    )

                entry = self._writer.create_entry(
                    session,
                    EntryRequest(
                        owner_id=template.owner_id,
                        kind=template.kind,
                        amount=template.amount,
                        category=template.category,
                        description=template.entry_description,
                        entry_date=template.next_occurrence,
                        is_from_recurring=True,
                        recurring_template_id=template_id,
                    ),
                )

                following = next_occurrence(template, template.next_occurrence)
                store.commit_cycle(
                    template_id,
                    expected_next_occurrence=template.next_occurrence,
                    cycle_update=CycleUpdate(
                        last_processed=now,
                        next_occurrence=following or template.next_occurrence,
                        is_active=following is not None,
                    ),
                    actor_id=self._actor_id,
                )
                session.commit()

            except Exception as exc:
                session.rollback()
                code = exc.code if isinstance(exc, LedgerKernelError) else "UNHANDLED_EXCEPTION"
                error = CycleError(template_id=template_id, code=code, message=str(exc))
                logger.warning(
                    "recurring_template_failed",
                    exc_info=True,
                    extra={"error_code": code},
                )
                return TemplateOutcome(
                    template_id=template_id,
                    status=TemplateOutcomeStatus.FAILED,
                    error=error,
                    duration_ms=int((time.monotonic() - item_start) * 1000),
                )
            finally:
                session.close()

            if following is None:
                logger.info(
                    "recurring_template_deactivated",
                    extra={"final_occurrence": template.next_occurrence.isoformat()},
                )
            logger.info(
                "recurring_template_materialized",
                extra={
                    "entry_id": str(entry.entry_id),
                    "entry_date": entry.entry_date.isoformat(),
                    "next_occurrence": following.isoformat() if following else None,
                },
            )
            return TemplateOutcome(
                template_id=template_id,
                status=TemplateOutcomeStatus.MATERIALIZED,
                entry_id=entry.entry_id,
                entry_date=entry.entry_date,
                next_occurrence=following,
                deactivated=following is None,
                duration_ms=int((time.monotonic() - item_start) * 1000),
            )

    def _record_cycle(self, result: CycleResult) -> None:
        """Write the cycle audit row in its own transaction (RT-9).

        A failure here is logged; the cycle's ledger work is already
        committed and must not be reported as failed.
        """
        session = self._session_factory()
        try:
            session.add(RecurringCycleModel.from_dto(result, created_by_id=self._actor_id))
            session.commit()
        except Exception:
            session.rollback()
            logger.exception("recurring_cycle_record_failed")
        finally:
            session.close()
