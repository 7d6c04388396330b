"""
RecurringScheduler -- In-process periodic trigger for the processor.

Contract:
    Calls ``RecurringProcessor.process_due()`` every
    ``tick_interval_seconds`` on a background thread.  ``tick()`` runs one
    cycle synchronously and is public for testing and for the CLI's
    ``--serve`` mode.

Architecture: ledger_recurring/services.  The administrative trigger
    (``RecurringOrchestrator.process_due_now``) calls the same processor
    directly; the two may overlap safely.

Invariants enforced:
    RT-4 -- timestamps come from the processor's injected Clock.
    RT-8 -- stop() sets the event the processor checks between
            templates, so an in-flight template always finishes.
"""

from __future__ import annotations

import threading

from ledger_kernel.logging_config import get_logger
from ledger_recurring.domain.types import CycleResult, CycleTrigger
from ledger_recurring.services.processor import RecurringProcessor

logger = get_logger("recurring.scheduler")


class RecurringScheduler:
    """Periodic driver for recurring-template processing.

    Non-goals:
        - NOT a distributed scheduler (no leader election); concurrent
          drivers are tolerated through the processor's guarded commit.
        - NOT a cron engine: one fixed interval.
    """

    def __init__(
        self,
        processor: RecurringProcessor,
        tick_interval_seconds: float = 3600,
        run_on_start: bool = True,
    ):
        self._processor = processor
        self._tick_interval = tick_interval_seconds
        self._run_on_start = run_on_start
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._last_result: CycleResult | None = None

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def tick(self) -> CycleResult | None:
        """Run one scheduled cycle.

        Returns the cycle result, or None if the cycle aborted (the error
        is logged; the scheduler keeps running).
        """
        try:
            result = self._processor.process_due(
                trigger=CycleTrigger.SCHEDULED,
                stop_event=self._stop_event,
            )
        except Exception:
            logger.exception("scheduler_tick_failed")
            return None
        self._last_result = result
        return result

    def start(self) -> None:
        """Start the scheduler in a background thread."""
        if self._thread is not None and self._thread.is_alive():
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run_loop,
            name="recurring-scheduler",
            daemon=True,
        )
        self._thread.start()
        logger.info(
            "scheduler_started",
            extra={
                "tick_interval": self._tick_interval,
                "run_on_start": self._run_on_start,
            },
        )

    def stop(self, timeout: float = 30.0) -> None:
        """Signal stop and wait for the current template to finish.

        Args:
            timeout: Max seconds to wait for the thread to finish.
        """
        self._stop_event.set()
        if self._thread is not None and self._thread.is_alive():
            self._thread.join(timeout=timeout)
        logger.info("scheduler_stopped")

    def wait(self, timeout: float | None = None) -> bool:
        """Block until stop() is called.  Returns True if stopped."""
        return self._stop_event.wait(timeout=timeout)

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def last_result(self) -> CycleResult | None:
        return self._last_result

    # -------------------------------------------------------------------------
    # Internal
    # -------------------------------------------------------------------------

    def _run_loop(self) -> None:
        """Background loop.  Exits when the stop event is set."""
        if not self._run_on_start:
            self._stop_event.wait(timeout=self._tick_interval)
        while not self._stop_event.is_set():
            self.tick()
            # Wait for interval or until stopped
            self._stop_event.wait(timeout=self._tick_interval)
