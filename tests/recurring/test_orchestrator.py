"""
Tests for RecurringOrchestrator -- wiring and the administrative trigger.
"""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from ledger_config.schema import (
    LimitSettings,
    ProcessingSettings,
    RecurringConfig,
    SchedulerSettings,
)
from ledger_kernel.db.engine import create_tables, get_session, reset_engine
from ledger_kernel.domain.values import Category, TransactionKind
from ledger_kernel.exceptions import TemplateValidationError
from ledger_recurring.domain.types import CycleTrigger, Frequency, TemplateDraft
from ledger_recurring.orchestrator import RecurringOrchestrator

from tests.conftest import DEFAULT_NOW

UTC = timezone.utc


def salary(**fields) -> TemplateDraft:
    values = dict(
        kind=TransactionKind.INCOME,
        amount=Decimal("3000.00"),
        category=Category.SALARY,
        frequency=Frequency.MONTHLY,
        start_date=datetime(2024, 1, 5, tzinfo=UTC),
        day_of_month=5,
    )
    values.update(fields)
    return TemplateDraft(**values)


@pytest.fixture
def orchestrator(session_factory, clock):
    return RecurringOrchestrator(session_factory, clock=clock)


class TestAdministrativeTrigger:
    def test_process_due_now_returns_summary(self, orchestrator, make_template):
        make_template()

        summary = orchestrator.process_due_now()

        assert summary["processed_count"] == 1
        assert summary["errors"] == []
        assert summary["trigger"] == "manual"
        assert summary["status"] == "completed"

        cycles = orchestrator.recent_cycles()
        assert str(cycles[0].cycle_id) == summary["cycle_id"]
        assert cycles[0].trigger == CycleTrigger.MANUAL

    def test_repeat_trigger_is_idempotent(self, orchestrator, make_template, load_entries):
        make_template()
        orchestrator.process_due_now(now=DEFAULT_NOW)
        second = orchestrator.process_due_now(now=DEFAULT_NOW)

        assert second["processed_count"] == 0
        assert len(load_entries()) == 1

    def test_scheduled_and_manual_share_processor(self, orchestrator):
        scheduler = orchestrator.create_scheduler()
        result = scheduler.tick()
        assert result.trigger == CycleTrigger.SCHEDULED
        assert len(orchestrator.recent_cycles()) == 1


class TestWiring:
    def test_scheduler_settings_from_config(self, session_factory):
        config = RecurringConfig(
            scheduler=SchedulerSettings(tick_interval_seconds=5, run_on_start=False),
        )
        scheduler = RecurringOrchestrator(session_factory, config=config).create_scheduler()
        assert scheduler._tick_interval == 5
        assert scheduler._run_on_start is False

    def test_processing_settings_from_config(self, session_factory):
        config = RecurringConfig(processing=ProcessingSettings(max_workers=3, timeout_seconds=2.5))
        processor = RecurringOrchestrator(session_factory, config=config).processor
        assert processor._max_workers == 3
        assert processor._timeout_seconds == 2.5

    def test_lifecycle_uses_config_and_clock(self, session_factory, clock, owner_id):
        config = RecurringConfig(
            limits=LimitSettings(max_amount=Decimal("100")),
            categories=(Category.SALARY,),
        )
        orchestrator = RecurringOrchestrator(session_factory, config=config, clock=clock)
        session = session_factory()
        try:
            lifecycle = orchestrator.lifecycle(session)
            with pytest.raises(TemplateValidationError) as exc_info:
                lifecycle.create(owner_id, salary())
            assert exc_info.value.field == "amount"
            with pytest.raises(TemplateValidationError) as exc_info:
                lifecycle.create(owner_id, salary(amount="10", category=Category.TRAVEL))
            assert exc_info.value.field == "category"

            template = lifecycle.create(owner_id, salary(amount="10"))
            # start 2024-01-05 00:00 is before the clock's now: materialized and advanced
            assert template.next_occurrence == datetime(2024, 2, 5, tzinfo=UTC)
            assert template.last_processed == clock.now()
        finally:
            session.rollback()
            session.close()


class TestFromConfig:
    @pytest.fixture(autouse=True)
    def _reset_engine(self):
        yield
        reset_engine()

    def test_initializes_engine_and_processes(self, tmp_path, clock, owner_id):
        config = RecurringConfig(database_url=f"sqlite:///{tmp_path / 'ledger.db'}")
        orchestrator = RecurringOrchestrator.from_config(config, clock=clock)
        create_tables()

        session = get_session()
        try:
            orchestrator.lifecycle(session).create(
                owner_id,
                salary(start_date=datetime(2024, 1, 10, tzinfo=UTC), day_of_month=10),
            )
            session.commit()
        finally:
            session.close()

        clock.advance(days=5)
        summary = orchestrator.process_due_now()

        assert summary["processed_count"] == 1
        assert orchestrator.config is config
        assert orchestrator.clock is clock
