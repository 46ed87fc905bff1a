"""
Distribution Kernel

Ledgered, idempotent token distribution with:
- Decimal-only money arithmetic
- Append-only transaction ledger with pre-append backups
- Typed, coded exceptions
- Structured JSON logging
"""

__version__ = "0.1.0"
