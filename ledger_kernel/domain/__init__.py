"""Pure domain helpers shared across the ledger (zero I/O)."""

from ledger_kernel.domain.clock import Clock, DeterministicClock, SystemClock

__all__ = ["Clock", "DeterministicClock", "SystemClock"]
