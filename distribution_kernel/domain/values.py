"""
Values -- Domain value objects for ledgered distributions.

Responsibility:
    Provides the record types that flow through a distribution run: Bid,
    Allocation, TransactionRecord, SignerPair, and the conversion-rate
    parser. These replace raw dicts and floats wherever distribution data
    appears in engine or service logic.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Imported by engines, ingestion, and services.

Invariants enforced:
    - All amounts are Decimal, never float.
    - Bid and TransactionRecord are immutable once constructed.
    - Allocation is the only mutable type; its amount only ever decreases
      during reconciliation.
    - A conversion rate is always a finite, strictly positive Decimal.

Failure modes:
    - TypeError when a float is passed where a Decimal amount is required.
    - InvalidConversionRateError from ``parse_conversion_rate``.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_DOWN, Decimal, InvalidOperation, localcontext

from distribution_kernel.exceptions import InvalidConversionRateError


def _require_decimal(value: object, field_name: str) -> Decimal:
    if isinstance(value, float):
        raise TypeError(f"{field_name} must be Decimal, not float")
    if isinstance(value, Decimal):
        return value
    if isinstance(value, (int, str)):
        return Decimal(str(value))
    raise TypeError(f"{field_name} must be Decimal, got {type(value).__name__}")


@dataclass(frozen=True, slots=True)
class Bid:
    """
    A request for a reference-currency amount, tied to a recipient address.

    Contract:
        Immutable. Source of truth for intended disbursement.
    Non-goals:
        - Does not validate address format; addresses are opaque strings.
    """

    requested_amount: Decimal
    recipient_address: str
    source_row: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(
            self,
            "requested_amount",
            _require_decimal(self.requested_amount, "requested_amount"),
        )


@dataclass(slots=True)
class Allocation:
    """
    A recipient and the native-unit amount still owed to them.

    Mutable: reconciliation decreases ``amount`` in place as prior
    disbursements are replayed against it.
    """

    recipient: str
    amount: Decimal

    def __post_init__(self) -> None:
        self.amount = _require_decimal(self.amount, "amount")

    def to_base_units(self, decimal_places: int) -> int:
        """Amount in indivisible base units (e.g. lamports), truncated."""
        with localcontext() as ctx:
            ctx.prec = max(ctx.prec, self.amount.adjusted() + decimal_places + 2)
            scaled = self.amount.scaleb(decimal_places)
        return int(scaled.to_integral_value(rounding=ROUND_DOWN))


@dataclass(frozen=True, slots=True)
class TransactionRecord:
    """One durable ledger row: a confirmed transfer and its receipt."""

    recipient: str
    amount: Decimal
    receipt: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "amount", _require_decimal(self.amount, "amount"))

    @classmethod
    def from_allocation(cls, allocation: Allocation, receipt: str) -> TransactionRecord:
        return cls(recipient=allocation.recipient, amount=allocation.amount, receipt=receipt)


@dataclass(frozen=True, slots=True)
class SignerPair:
    """Ordered signing identities: payer of fees, then source of funds."""

    fee_payer: str
    sender: str


def parse_conversion_rate(value: object) -> Decimal:
    """
    Parse a reference-currency per native-unit conversion rate.

    Postconditions:
        - Returns a finite Decimal strictly greater than zero.
    Raises:
        InvalidConversionRateError: for zero, negative, non-finite, boolean,
            or non-numeric input. Floats are read via their shortest repr.
    """
    if isinstance(value, bool):
        raise InvalidConversionRateError(value)
    try:
        rate = Decimal(str(value).strip())
    except (InvalidOperation, ValueError) as exc:
        raise InvalidConversionRateError(value) from exc
    if not rate.is_finite() or rate <= 0:
        raise InvalidConversionRateError(value)
    return rate
