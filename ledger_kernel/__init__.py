"""
Ledger Kernel

Shared infrastructure for the personal-finance ledger:
- Declarative ORM base with UUID keys and audit timestamps
- UTC-normalized timestamp columns
- Injectable clocks for deterministic processing
- Structured JSON logging
- Typed exception hierarchy
- The ledger entry write path consumed by the recurring engine
"""

__version__ = "0.1.0"
