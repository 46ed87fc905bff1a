"""
Module: distribution_engines.reconciliation
Responsibility:
    Replay the transaction ledger against freshly derived allocations so a
    re-run only sends what is still owed.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Algorithm:
    Each ledger record, in append order, becomes a running debit that is
    consumed left-to-right against the allocation list:

    1. The first allocation with ``amount >= debit`` absorbs the whole
       debit and the scan for this record stops.
    2. An allocation with ``amount < debit`` is consumed entirely (set to
       zero) and the remaining debit moves on to the next allocation.
    3. Debit left over after the last allocation is dropped and reported
       as an ``UnmatchedDebit``.

    After all records are applied, allocations with ``amount <= 0`` are
    removed from the list.

    Two replay modes decide which allocations a record may debit:

    - ``BY_RECIPIENT`` (default): only allocations whose recipient equals
      the record's recipient. Safe when the bid schedule is re-sorted or
      recipients are added or removed between runs.
    - ``POSITIONAL``: every allocation, regardless of recipient. Matches
      ledgers written by earlier tooling, but is only correct while the
      schedule's row order and recipient set stay the same across runs.

Invariants enforced:
    - Non-negativity: surviving allocations have ``amount > 0``.
    - Conservation: for every allocation,
      ``remaining + debited == original`` exactly (Decimal arithmetic).
    - Order stability: survivors keep their relative input order.
    - The allocation list is mutated in place; no new list object.

Failure modes:
    - None. Over-payment is not an error; it is reported as unmatched.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from decimal import Decimal, localcontext
from enum import Enum

from distribution_engines.tracer import traced_engine
from distribution_kernel.domain.values import Allocation, TransactionRecord
from distribution_kernel.logging_config import get_logger

logger = get_logger("engines.reconciliation")

_ZERO = Decimal("0")


class ReplayMode(str, Enum):
    """How ledger records are attributed to allocations."""

    BY_RECIPIENT = "by_recipient"
    POSITIONAL = "positional"


@dataclass(frozen=True)
class UnmatchedDebit:
    """The part of a ledger record no current allocation could absorb."""

    recipient: str
    receipt: str
    amount: Decimal


@dataclass(frozen=True)
class ReconciliationResult:
    """
    Summary of one reconciliation pass.

    Guarantees:
        - ``total_debited + total_unmatched`` equals the sum of all positive
          replayed record amounts; non-positive records debit nothing.
    """

    mode: ReplayMode
    remaining: tuple[Allocation, ...]
    total_debited: Decimal
    unmatched: tuple[UnmatchedDebit, ...]
    records_applied: int

    @property
    def total_unmatched(self) -> Decimal:
        return _exact_sum(self.unmatched)

    @property
    def total_remaining(self) -> Decimal:
        return _exact_sum(self.remaining)

    @property
    def is_settled(self) -> bool:
        """True when nothing is left to send."""
        return not self.remaining


def exact_precision(items: Iterable[Allocation | TransactionRecord | UnmatchedDebit], terms: int = 1) -> int:
    """Context precision at which adding or subtracting ``terms`` of these amounts is exact."""
    amounts = [item.amount for item in items if item.amount.is_finite() and item.amount]
    if not amounts:
        return 1
    span = max(a.adjusted() for a in amounts) - min(a.as_tuple().exponent for a in amounts)
    return span + len(str(terms)) + 2


def _exact_sum(items: Sequence[Allocation | UnmatchedDebit]) -> Decimal:
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, exact_precision(items, len(items)))
        return sum((item.amount for item in items), _ZERO)


def _apply_debit(allocations: Sequence[Allocation], debit: Decimal) -> Decimal:
    """Consume ``debit`` left-to-right; return what could not be absorbed."""
    for allocation in allocations:
        if debit <= _ZERO:
            break
        if allocation.amount >= debit:
            allocation.amount -= debit
            return _ZERO
        debit -= allocation.amount
        allocation.amount = _ZERO
    return debit


class ReconciliationEngine:
    """
    Subtract ledger history from allocations.

    Contract:
        Pure function of its two input sequences; the only side effect is
        the in-place update of the ``allocations`` list and its items.
    Non-goals:
        - Does not read or write the ledger.
        - Does not merge duplicate recipients in the bid schedule.
    """

    @traced_engine("reconciliation", "1.0", fingerprint_fields=("history", "mode"))
    def reconcile(
        self,
        *,
        allocations: list[Allocation],
        history: Sequence[TransactionRecord],
        mode: ReplayMode = ReplayMode.BY_RECIPIENT,
    ) -> ReconciliationResult:
        """
        Apply every ledger record to ``allocations`` and prune settled entries.

        Args:
            allocations: Bid-ordered allocations; updated in place.
            history: Ledger records in append order.
            mode: Attribution rule for ledger records.

        Returns:
            ReconciliationResult describing the remaining work.
        """
        mode = ReplayMode(mode)
        unmatched: list[UnmatchedDebit] = []
        total_debited = _ZERO

        by_recipient: dict[str, list[Allocation]] = {}
        if mode is ReplayMode.BY_RECIPIENT:
            for allocation in allocations:
                by_recipient.setdefault(allocation.recipient, []).append(allocation)

        with localcontext() as ctx:
            ctx.prec = max(ctx.prec, exact_precision([*allocations, *history], len(history)))
            for record in history:
                if mode is ReplayMode.POSITIONAL:
                    candidates: Sequence[Allocation] = allocations
                else:
                    candidates = by_recipient.get(record.recipient, [])
                leftover = _apply_debit(candidates, record.amount)
                total_debited += record.amount - leftover
                if leftover <= _ZERO:
                    continue
                unmatched.append(
                    UnmatchedDebit(
                        recipient=record.recipient,
                        receipt=record.receipt,
                        amount=leftover,
                    )
                )
                logger.warning(
                    "ledger_debit_unmatched",
                    extra={
                        "recipient": record.recipient,
                        "receipt": record.receipt,
                        "unmatched_amount": str(leftover),
                        "replay_mode": mode.value,
                    },
                )

        allocations[:] = [a for a in allocations if a.amount > _ZERO]

        logger.info(
            "reconciliation_completed",
            extra={
                "replay_mode": mode.value,
                "records_applied": len(history),
                "remaining_count": len(allocations),
                "total_debited": str(total_debited),
                "unmatched_count": len(unmatched),
            },
        )
        return ReconciliationResult(
            mode=mode,
            remaining=tuple(allocations),
            total_debited=total_debited,
            unmatched=tuple(unmatched),
            records_applied=len(history),
        )


def apply_previous_transactions(
    allocations: list[Allocation],
    history: Sequence[TransactionRecord],
    mode: ReplayMode = ReplayMode.BY_RECIPIENT,
) -> ReconciliationResult:
    """Module-level shortcut for ``ReconciliationEngine().reconcile``."""
    return ReconciliationEngine().reconcile(
        allocations=allocations, history=history, mode=mode
    )
