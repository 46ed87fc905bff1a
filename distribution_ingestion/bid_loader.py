"""
Bid Loader -- parse a bid schedule into typed ``Bid`` records.

Contract:
    ``load_bids(path)`` returns one Bid per data row, in row order.
    Duplicate recipients are kept as separate bids.

Schedule format:
    Header row required. Columns ``bid_amount_dollars`` (decimal, reference
    currency) and ``primary_address`` (string). Extra columns are ignored.
    Header names and field values are trimmed before parsing.

Failure modes:
    - BidScheduleNotFoundError if the file does not exist.
    - BidScheduleIOError if the path exists but cannot be read (a directory,
      no permission).
    - BidParseError for a missing header or column, an empty address, or an
      amount that is not a finite, non-negative decimal. One bad row fails
      the whole load; callers never see a partial schedule.
    - BidParseError also for bytes invalid in the configured encoding and
      for fields over the csv module's size limit. Decoding is buffered, so
      the reported row is where reading stopped, not always the bad line.
"""

from __future__ import annotations

import csv
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

from distribution_ingestion.adapters import CsvSourceAdapter
from distribution_kernel.domain.values import Bid
from distribution_kernel.exceptions import (
    BidParseError,
    BidScheduleIOError,
    BidScheduleNotFoundError,
)
from distribution_kernel.logging_config import get_logger

logger = get_logger("ingestion.bid_loader")

AMOUNT_COLUMN = "bid_amount_dollars"
ADDRESS_COLUMN = "primary_address"
REQUIRED_COLUMNS = (AMOUNT_COLUMN, ADDRESS_COLUMN)


def parse_bid(row: dict[str, Any], source_row: int, source: str = "<bids>") -> Bid:
    """Parse one trimmed row dict into a Bid."""
    raw_amount = row.get(AMOUNT_COLUMN)
    raw_address = row.get(ADDRESS_COLUMN)
    if raw_amount is None:
        raise BidParseError(source, source_row, f"missing '{AMOUNT_COLUMN}'")
    if raw_address is None or not str(raw_address).strip():
        raise BidParseError(source, source_row, f"missing '{ADDRESS_COLUMN}'")

    try:
        amount = Decimal(str(raw_amount).strip())
    except InvalidOperation as exc:
        raise BidParseError(source, source_row, f"invalid amount {raw_amount!r}") from exc
    if not amount.is_finite():
        raise BidParseError(source, source_row, f"invalid amount {raw_amount!r}")
    if amount < 0:
        raise BidParseError(source, source_row, f"negative amount {raw_amount!r}")

    return Bid(
        requested_amount=amount,
        recipient_address=str(raw_address).strip(),
        source_row=source_row,
    )


def load_bids(
    path: Path | str,
    options: dict[str, Any] | None = None,
    adapter: CsvSourceAdapter | None = None,
) -> list[Bid]:
    """
    Read every bid from a CSV schedule.

    Args:
        path: Bid schedule file.
        options: CSV adapter options (delimiter, encoding, trim).
        adapter: Adapter override, mainly for tests.
    """
    source_path = Path(path)
    if not source_path.exists():
        raise BidScheduleNotFoundError(str(source_path))

    opts = {"trim": True, **(options or {})}
    csv_adapter = adapter or CsvSourceAdapter()
    source = str(source_path)

    # Row being read when decoding fails: 0 is the header
    row_number = 0
    bids: list[Bid] = []
    try:
        columns = csv_adapter.columns(source_path, opts)
        if not columns:
            raise BidParseError(source, 0, "missing header row")
        for column in REQUIRED_COLUMNS:
            if column not in columns:
                raise BidParseError(source, 0, f"missing column '{column}' in header")

        row_number = 1
        for row in csv_adapter.read(source_path, opts):
            bids.append(parse_bid(row.values, row.row_number, source))
            row_number = row.row_number + 1
    except (UnicodeDecodeError, csv.Error) as exc:
        raise BidParseError(source, row_number, f"unreadable row: {exc}") from exc
    except OSError as exc:
        raise BidScheduleIOError(source, exc.strerror or str(exc)) from exc

    logger.info(
        "bids_loaded",
        extra={
            "source": source,
            "bid_count": len(bids),
            "total_requested": str(sum((b.requested_amount for b in bids), Decimal("0"))),
        },
    )
    return bids
