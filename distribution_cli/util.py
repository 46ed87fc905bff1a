"""CLI utilities: error and summary formatting."""

import sys
from decimal import Decimal
from typing import TextIO

from distribution_kernel.exceptions import DistributionError
from distribution_services.distribution_orchestrator import DistributionReport


def fmt_amount(v) -> str:
    """Format a native-unit amount for display (plain notation, no exponent)."""
    d = Decimal(str(v))
    return format(d.normalize(), "f") if d else "0"


def print_error(exc: DistributionError, file: TextIO | None = None) -> None:
    """Print ``ERROR [<code>]: <message>`` for an operator."""
    print(f"ERROR [{exc.code}]: {exc}", file=file or sys.stderr)


def print_summary(report: DistributionReport, file: TextIO | None = None) -> None:
    """One-line outcome plus a warning per unmatched ledger debit."""
    out = file or sys.stderr
    for debit in report.unmatched:
        print(
            f"WARNING: ledger row {debit.receipt} for {debit.recipient} "
            f"has {fmt_amount(debit.amount)} not matched to any allocation",
            file=out,
        )
    if report.nothing_to_do:
        return
    if report.dry_run:
        print(
            f"Dry run: {len(report.planned)} allocation(s), "
            f"{fmt_amount(report.total_planned)} total, nothing sent",
            file=out,
        )
    else:
        print(
            f"Sent {len(report.receipts)} transfer(s), "
            f"{fmt_amount(report.total_sent)} total",
            file=out,
        )
