"""Tests for the injectable clocks (ledger_kernel/domain/clock.py)."""

from datetime import datetime, timedelta, timezone

import pytest

from ledger_kernel.domain.clock import DeterministicClock, SystemClock


class TestDeterministicClock:
    def test_fixed_until_advanced(self):
        start = datetime(2024, 1, 5, 3, tzinfo=timezone.utc)
        clock = DeterministicClock(start)
        assert clock.now() == start
        assert clock.now() == start

    def test_advance_with_keywords(self):
        clock = DeterministicClock(datetime(2024, 1, 31, tzinfo=timezone.utc))
        clock.advance(days=1, hours=2)
        assert clock.now() == datetime(2024, 2, 1, 2, tzinfo=timezone.utc)

    def test_tick(self):
        clock = DeterministicClock()
        before = clock.now()
        assert clock.tick() == before + timedelta(seconds=1)

    def test_set_time_resets_offset(self):
        clock = DeterministicClock()
        clock.advance(3600)
        target = datetime(2030, 6, 1, tzinfo=timezone.utc)
        clock.set_time(target)
        assert clock.now() == target

    def test_naive_rejected(self):
        with pytest.raises(ValueError):
            DeterministicClock(datetime(2024, 1, 1))
        with pytest.raises(ValueError):
            DeterministicClock().set_time(datetime(2024, 1, 1))

    def test_returns_utc(self):
        clock = DeterministicClock(datetime(2024, 1, 5, 5, tzinfo=timezone(timedelta(hours=5))))
        assert clock.now().tzinfo == timezone.utc
        assert clock.now().hour == 0


def test_system_clock_is_aware_utc():
    assert SystemClock().now().tzinfo == timezone.utc
