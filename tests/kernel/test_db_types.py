"""
Tests for column types and money helpers (ledger_kernel/db/types.py).
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from sqlalchemy.dialects import postgresql, sqlite

from ledger_kernel.db.base import UUIDString
from ledger_kernel.db.types import UTCDateTime, ensure_utc, money_from_str, round_money

PLUS_TWO = timezone(timedelta(hours=2))


class TestUTCDateTime:
    def test_sqlite_binds_naive_utc(self):
        value = datetime(2024, 1, 5, 2, tzinfo=PLUS_TWO)
        bound = UTCDateTime().process_bind_param(value, sqlite.dialect())
        assert bound == datetime(2024, 1, 5, 0, 0)
        assert bound.tzinfo is None

    def test_postgres_binds_aware_utc(self):
        value = datetime(2024, 1, 5, 2, tzinfo=PLUS_TWO)
        bound = UTCDateTime().process_bind_param(value, postgresql.dialect())
        assert bound == datetime(2024, 1, 5, tzinfo=timezone.utc)
        assert bound.tzinfo == timezone.utc

    def test_naive_rejected(self):
        with pytest.raises(ValueError):
            UTCDateTime().process_bind_param(datetime(2024, 1, 5), sqlite.dialect())

    def test_loaded_naive_is_utc(self):
        loaded = UTCDateTime().process_result_value(datetime(2024, 1, 5), sqlite.dialect())
        assert loaded == datetime(2024, 1, 5, tzinfo=timezone.utc)

    def test_none_passes_through(self):
        assert UTCDateTime().process_bind_param(None, sqlite.dialect()) is None
        assert UTCDateTime().process_result_value(None, sqlite.dialect()) is None


class TestMoney:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("12.5", Decimal("12.50")),
            ("0.005", Decimal("0.01")),
            (" 7 ", Decimal("7.00")),
            (3, Decimal("3.00")),
            (Decimal("1.234"), Decimal("1.23")),
        ],
    )
    def test_parse(self, raw, expected):
        assert money_from_str(raw) == expected

    @pytest.mark.parametrize("raw", [1.5, "abc", "Infinity", ""])
    def test_rejects(self, raw):
        with pytest.raises(ValueError):
            money_from_str(raw)

    def test_round_half_up(self):
        assert round_money(Decimal("2.675")) == Decimal("2.68")


class TestHelpers:
    def test_ensure_utc_converts(self):
        assert ensure_utc(datetime(2024, 1, 5, 2, tzinfo=PLUS_TWO)).hour == 0

    def test_ensure_utc_rejects_naive(self):
        with pytest.raises(ValueError):
            ensure_utc(datetime(2024, 1, 5))

    def test_uuid_string_round_trip_types(self):
        from uuid import uuid4

        uid = uuid4()
        column = UUIDString()
        assert column.process_bind_param(uid, sqlite.dialect()) == str(uid)
        assert column.process_result_value(str(uid), sqlite.dialect()) == uid
