"""ORM models owned by the ledger kernel."""

from ledger_kernel.models.ledger_entry import LedgerEntryModel

__all__ = ["LedgerEntryModel"]
