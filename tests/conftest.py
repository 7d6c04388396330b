"""
Pytest fixtures for the recurring ledger test suite.

Provides:
- In-memory SQLite engine shared by every session of a test (StaticPool)
- Deterministic clock
- Template / entry helpers that commit through their own sessions
- Structured-log capture

The processor opens one session per template, so tests never hold a
session open across a ``process_due`` call; reads afterwards use a fresh
session.
"""

import json
import logging
from datetime import datetime, timezone
from decimal import Decimal
from io import StringIO
from uuid import UUID, uuid4

import pytest
from sqlalchemy import select
from sqlalchemy.orm import sessionmaker

from ledger_kernel.db.base import Base
from ledger_kernel.db.engine import build_engine
from ledger_kernel.domain.clock import DeterministicClock
from ledger_kernel.domain.values import Category, TransactionKind
from ledger_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from ledger_kernel.models.ledger_entry import LedgerEntryModel
from ledger_recurring.domain.types import Frequency, RecurrenceTemplate
from ledger_recurring.models import import_all_orm_models
from ledger_recurring.models.template import RecurringTemplateModel

# Test actor ID for all test operations
TEST_ACTOR_ID = UUID("00000000-0000-0000-0000-00000000a11c")

# 2024-01-05 03:00 UTC -- a Friday
DEFAULT_NOW = datetime(2024, 1, 5, 3, 0, tzinfo=timezone.utc)


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG, stream=StringIO())
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture ledger logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, processor):
            processor.process_due()
            logs = captured_logs()
            assert any(r["message"] == "recurring_cycle_completed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("ledger")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Database fixtures
# =============================================================================


@pytest.fixture
def engine():
    """Fresh in-memory SQLite database with all tables."""
    eng = build_engine("sqlite:///:memory:")
    import_all_orm_models()
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, expire_on_commit=False)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.rollback()
    session.close()


@pytest.fixture
def clock():
    return DeterministicClock(DEFAULT_NOW)


@pytest.fixture
def owner_id():
    return uuid4()


# =============================================================================
# Data helpers
# =============================================================================


@pytest.fixture
def make_template(session_factory, owner_id):
    """Insert a template row directly (bypassing lifecycle) and commit.

    Defaults to a monthly template on the 5th, due 2024-01-05 00:00 UTC.
    """

    def _make(**fields) -> RecurrenceTemplate:
        values = dict(
            owner_id=owner_id,
            kind=TransactionKind.EXPENSE.value,
            amount=Decimal("1200.00"),
            category=Category.RENT_MORTGAGE.value,
            description="",
            frequency=Frequency.MONTHLY.value,
            start_date=datetime(2024, 1, 5, tzinfo=timezone.utc),
            end_date=None,
            day_of_month=5,
            day_of_week=None,
            month=None,
            is_active=True,
            next_occurrence=datetime(2024, 1, 5, tzinfo=timezone.utc),
            created_by_id=TEST_ACTOR_ID,
        )
        for key, value in fields.items():
            if hasattr(value, "value") and key in ("kind", "category", "frequency"):
                value = value.value
            values[key] = value
        session = session_factory()
        try:
            model = RecurringTemplateModel(**values)
            session.add(model)
            session.commit()
            return model.to_dto()
        finally:
            session.close()

    return _make


@pytest.fixture
def load_template(session_factory):
    """Read a template back through a fresh session."""

    def _load(template_id) -> RecurrenceTemplate | None:
        session = session_factory()
        try:
            model = session.get(RecurringTemplateModel, template_id)
            return model.to_dto() if model is not None else None
        finally:
            session.close()

    return _load


@pytest.fixture
def load_entries(session_factory):
    """All ledger entries, optionally for one template, oldest first."""

    def _load(template_id=None) -> list[LedgerEntryModel]:
        session = session_factory()
        try:
            query = select(LedgerEntryModel).order_by(LedgerEntryModel.entry_date)
            if template_id is not None:
                query = query.where(LedgerEntryModel.recurring_template_id == template_id)
            return list(session.execute(query).scalars().all())
        finally:
            session.close()

    return _load
