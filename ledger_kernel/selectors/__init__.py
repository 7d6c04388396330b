"""Read-only query selectors."""

from ledger_kernel.selectors.entry_selector import EntrySelector

__all__ = ["EntrySelector"]
