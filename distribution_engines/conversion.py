"""
Module: distribution_engines.conversion
Responsibility:
    Convert reference-currency bids into native-unit allocations using a
    single conversion rate for the whole run.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - Decimal-only arithmetic.
    - Amounts are truncated (ROUND_DOWN) to the native precision, so a
      derived allocation never exceeds the exact bid value.
    - Output order equals bid order; duplicate recipients are kept apart.

Failure modes:
    - InvalidConversionRateError on a zero, negative, or non-numeric rate.
    - ValueError on a negative ``decimal_places``.
"""

from __future__ import annotations

from collections.abc import Sequence
from decimal import ROUND_DOWN, Decimal, localcontext

from distribution_engines.tracer import traced_engine
from distribution_kernel.domain.values import Allocation, Bid, parse_conversion_rate
from distribution_kernel.logging_config import get_logger

logger = get_logger("engines.conversion")

DEFAULT_NATIVE_DECIMAL_PLACES = 9


def _quantum(decimal_places: int) -> Decimal:
    if decimal_places < 0:
        raise ValueError(f"decimal_places cannot be negative: {decimal_places}")
    return Decimal(1).scaleb(-decimal_places)


def create_allocation(
    bid: Bid,
    dollars_per_unit: Decimal,
    decimal_places: int = DEFAULT_NATIVE_DECIMAL_PLACES,
) -> Allocation:
    """Convert a single bid: ``requested_amount / dollars_per_unit``."""
    rate = parse_conversion_rate(dollars_per_unit)
    quantum = _quantum(decimal_places)
    requested = bid.requested_amount
    with localcontext() as ctx:
        # Keep every whole digit plus the native fraction, truncating beyond it
        whole_digits = max(requested.adjusted() - rate.adjusted() + 2, 1)
        ctx.prec = max(ctx.prec, whole_digits + decimal_places + 2)
        ctx.rounding = ROUND_DOWN
        amount = (requested / rate).quantize(quantum, rounding=ROUND_DOWN)
    return Allocation(recipient=bid.recipient_address, amount=amount)


@traced_engine(
    "conversion", "1.0", fingerprint_fields=("dollars_per_unit", "decimal_places")
)
def derive_allocations(
    *,
    bids: Sequence[Bid],
    dollars_per_unit: Decimal,
    decimal_places: int = DEFAULT_NATIVE_DECIMAL_PLACES,
) -> list[Allocation]:
    """Derive one allocation per bid, in bid order."""
    rate = parse_conversion_rate(dollars_per_unit)
    allocations = [create_allocation(bid, rate, decimal_places) for bid in bids]
    logger.info(
        "allocations_derived",
        extra={
            "allocation_count": len(allocations),
            "dollars_per_unit": str(rate),
            "total_amount": str(sum((a.amount for a in allocations), Decimal("0"))),
        },
    )
    return allocations
