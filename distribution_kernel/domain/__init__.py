"""Pure domain types for the distribution kernel (zero I/O)."""

from distribution_kernel.domain.values import (
    Allocation,
    Bid,
    SignerPair,
    TransactionRecord,
    parse_conversion_rate,
)

__all__ = [
    "Allocation",
    "Bid",
    "SignerPair",
    "TransactionRecord",
    "parse_conversion_rate",
]
