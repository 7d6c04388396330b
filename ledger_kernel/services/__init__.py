"""Session-bound write services."""

from ledger_kernel.services.ledger_service import (
    SYSTEM_ACTOR_ID,
    LedgerWriter,
    SqlLedgerWriter,
)

__all__ = ["SYSTEM_ACTOR_ID", "LedgerWriter", "SqlLedgerWriter"]
