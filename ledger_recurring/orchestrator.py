"""
RecurringOrchestrator -- DI container for the recurring engine.

Contract:
    Wires the RecurringProcessor, RecurringScheduler and
    TemplateLifecycleService from one ``RecurringConfig``, one Clock, one
    LedgerWriter and one session factory.  ``process_due_now()`` is the
    administrative trigger.

Architecture: ledger_recurring (top-level).  The canonical entry point for
    scripts and for any outer API layer.

Invariants enforced:
    RT-4 -- Clock injection (all services receive the same Clock).
    - Scheduled and manual cycles run the same processor function.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Callable
from uuid import UUID

from sqlalchemy.orm import Session

from ledger_config import get_active_config
from ledger_config.schema import RecurringConfig
from ledger_kernel.db.engine import get_session_factory, init_engine_from_url
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.logging_config import get_logger
from ledger_kernel.services.ledger_service import (
    SYSTEM_ACTOR_ID,
    LedgerWriter,
    SqlLedgerWriter,
)
from ledger_recurring.domain.types import CycleResult, CycleTrigger
from ledger_recurring.services.lifecycle import TemplateLifecycleService
from ledger_recurring.services.processor import RecurringProcessor
from ledger_recurring.services.scheduler import RecurringScheduler

logger = get_logger("recurring.orchestrator")


class RecurringOrchestrator:
    """DI container for the recurring engine.

    Contract:
        - ``from_config()`` initializes the engine from configuration.
        - ``process_due_now()`` runs a MANUAL cycle and returns its summary.
        - ``create_scheduler()`` returns a RecurringScheduler.
        - ``lifecycle(session)`` returns a TemplateLifecycleService.

    Non-goals:
        - Does NOT start the scheduler automatically -- caller decides.
        - Does NOT commit lifecycle sessions -- caller controls commits.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        config: RecurringConfig | None = None,
        clock: Clock | None = None,
        ledger_writer: LedgerWriter | None = None,
        actor_id: UUID | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._config = config or RecurringConfig()
        self._clock = clock or SystemClock()
        self._actor_id = actor_id or SYSTEM_ACTOR_ID
        self._writer = ledger_writer or SqlLedgerWriter(
            actor_id=self._actor_id,
            max_description_length=self._config.limits.description_max_length,
        )
        self._processor = RecurringProcessor(
            session_factory=session_factory,
            clock=self._clock,
            ledger_writer=self._writer,
            actor_id=self._actor_id,
            max_workers=self._config.processing.max_workers,
            timeout_seconds=self._config.processing.timeout_seconds,
        )

    # -------------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------------

    @classmethod
    def from_config(
        cls,
        config: RecurringConfig | None = None,
        clock: Clock | None = None,
        ledger_writer: LedgerWriter | None = None,
        actor_id: UUID | None = None,
    ) -> RecurringOrchestrator:
        """Initialize the database engine from config and wire everything.

        Args:
            config: Defaults to ``get_active_config()``.
            clock: Optional clock for deterministic testing (RT-4).
            ledger_writer: Defaults to the SQL ledger writer.
            actor_id: Recorded on every row the engine writes.
        """
        config = config or get_active_config()
        init_engine_from_url(config.database_url, echo=config.echo_sql)
        return cls(
            session_factory=get_session_factory(),
            config=config,
            clock=clock,
            ledger_writer=ledger_writer,
            actor_id=actor_id,
        )

    # -------------------------------------------------------------------------
    # Triggers
    # -------------------------------------------------------------------------

    def process_due_now(self, now: datetime | None = None) -> dict[str, Any]:
        """Administrative trigger: process every due template now.

        Idempotent and safe to call while the scheduler is running.

        Returns:
            ``CycleResult.to_summary()`` -- processed_count, errors and
            cycle bookkeeping.

        Raises:
            StoreUnavailableError: If due templates cannot be selected.
        """
        result = self.run_cycle(now=now, trigger=CycleTrigger.MANUAL)
        return result.to_summary()

    def run_cycle(
        self,
        now: datetime | None = None,
        trigger: CycleTrigger = CycleTrigger.MANUAL,
    ) -> CycleResult:
        logger.info("recurring_trigger_invoked", extra={"trigger": CycleTrigger(trigger).value})
        return self._processor.process_due(now=now, trigger=trigger)

    def create_scheduler(self) -> RecurringScheduler:
        """Create a RecurringScheduler from the scheduler settings."""
        return RecurringScheduler(
            processor=self._processor,
            tick_interval_seconds=self._config.scheduler.tick_interval_seconds,
            run_on_start=self._config.scheduler.run_on_start,
        )

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def lifecycle(self, session: Session) -> TemplateLifecycleService:
        """Create a lifecycle service bound to ``session``."""
        return TemplateLifecycleService(
            session=session,
            clock=self._clock,
            limits=self._config.limits,
            categories=self._config.categories,
            ledger_writer=self._writer,
            actor_id=self._actor_id,
            materialize_on_create=self._config.processing.materialize_on_create,
        )

    def recent_cycles(self, limit: int = 20) -> tuple[CycleResult, ...]:
        return self._processor.recent_cycles(limit)

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def processor(self) -> RecurringProcessor:
        return self._processor

    @property
    def config(self) -> RecurringConfig:
        return self._config

    @property
    def clock(self) -> Clock:
        return self._clock

    @property
    def actor_id(self) -> UUID:
        return self._actor_id
