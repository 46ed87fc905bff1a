"""
LedgerStore -- Append-only CSV ledger of confirmed transfers.

Responsibility:
    Reads the full history of confirmed transfers for one ledger path and
    appends new records after each confirmed transfer. Owns the durability
    and backup discipline for the ledger file.

Architecture position:
    Kernel > Services -- the only component that touches the ledger file.
    Imports only kernel domain types, exceptions, and logging.

Invariants enforced:
    - Append-only: existing rows are never rewritten, reordered, or
      compacted. The header is written once, when the file is created.
    - Backup before mutation: when the ledger already exists, a full copy
      is written to ``<path><backup_suffix>`` before the first byte is
      appended. The backup is overwritten on every append session.
    - Durability: every row is flushed and fsync'd before ``write`` returns,
      so a confirmed ``write`` survives a crash of this process.

Failure modes:
    - LedgerParseError on a malformed ledger row (bad amount, missing column,
      undecodable bytes).
    - LedgerIOError when the ledger or backup cannot be read or written.

Audit relevance:
    Ledger replay is what makes re-runs idempotent. No automatic rollback is
    attempted; the backup exists for manual recovery only.

Usage:
    store = LedgerStore(Path("transactions.csv"))
    history = store.load()
    with store.session() as appender:
        appender.write(allocation, receipt)
"""

from __future__ import annotations

import csv
import os
import shutil
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import IO

from distribution_kernel.domain.values import Allocation, TransactionRecord
from distribution_kernel.exceptions import LedgerIOError, LedgerParseError
from distribution_kernel.logging_config import get_logger

logger = get_logger("services.ledger_store")

LEDGER_COLUMNS = ("recipient", "amount", "signature")
DEFAULT_BACKUP_SUFFIX = ".bak"


def format_amount(amount: Decimal) -> str:
    """Render an amount in plain (non-exponent) notation."""
    return format(amount, "f")


class LedgerAppender:
    """
    Open append handle on the ledger for one run.

    Created by ``LedgerStore.session()``; not meant to be built directly.
    """

    def __init__(self, path: Path, handle: IO[str]) -> None:
        self._path = path
        self._handle = handle
        self._writer = csv.writer(handle)
        self._written: list[TransactionRecord] = []

    @property
    def written(self) -> tuple[TransactionRecord, ...]:
        """Records written through this appender, in write order."""
        return tuple(self._written)

    def write(self, allocation: Allocation, receipt: str) -> TransactionRecord:
        """Append one confirmed transfer and force it to disk."""
        record = TransactionRecord.from_allocation(allocation, receipt)
        try:
            self._writer.writerow(
                [record.recipient, format_amount(record.amount), record.receipt]
            )
            self._handle.flush()
            os.fsync(self._handle.fileno())
        except OSError as exc:
            raise LedgerIOError(str(self._path), "append", str(exc), receipt=receipt) from exc
        self._written.append(record)
        logger.info(
            "ledger_record_appended",
            extra={
                "recipient": record.recipient,
                "amount": str(record.amount),
                "receipt": record.receipt,
            },
        )
        return record


class LedgerStore:
    """
    Append-only CSV ledger keyed by its storage path.

    Contract:
        ``load()`` never fails for a missing ledger; it returns ``[]``.
        ``session()`` backs up, then yields a ``LedgerAppender``.
        ``append()`` is a one-shot session for a batch of pairs.
    Non-goals:
        - No file locking. One process per ledger path is an operator
          responsibility.
        - No rollback. The backup is for manual recovery.
    """

    def __init__(self, path: Path | str, backup_suffix: str = DEFAULT_BACKUP_SUFFIX) -> None:
        self._path = Path(path)
        self._backup_suffix = backup_suffix

    @property
    def path(self) -> Path:
        return self._path

    @property
    def backup_path(self) -> Path:
        return self._path.with_name(self._path.name + self._backup_suffix)

    # -------------------------------------------------------------------------
    # Read
    # -------------------------------------------------------------------------

    def load(self) -> list[TransactionRecord]:
        """
        Read every record in append order.

        Postconditions:
            - Returns ``[]`` when the ledger file does not exist.
            - Field values are whitespace-trimmed before parsing.
        Raises:
            LedgerParseError: on a row with a missing column or bad amount,
                or text that is not UTF-8 or not valid CSV.
            LedgerIOError: if the file exists but cannot be read.
        """
        if not self._path.exists():
            logger.info("ledger_not_found", extra={"ledger_path": str(self._path)})
            return []

        records: list[TransactionRecord] = []
        row_number = 0
        try:
            with self._path.open("r", encoding="utf-8-sig", newline="") as f:
                reader = csv.DictReader(f)
                if reader.fieldnames is not None:
                    reader.fieldnames = [name.strip() for name in reader.fieldnames]
                row_number = 1
                for row in reader:
                    records.append(self._parse_row(row, row_number))
                    row_number += 1
        except (UnicodeDecodeError, csv.Error) as exc:
            raise LedgerParseError(str(self._path), row_number, f"unreadable row: {exc}") from exc
        except OSError as exc:
            raise LedgerIOError(str(self._path), "read", str(exc)) from exc

        logger.info(
            "ledger_loaded",
            extra={"ledger_path": str(self._path), "record_count": len(records)},
        )
        return records

    def _parse_row(self, row: dict[str, str | None], row_number: int) -> TransactionRecord:
        values: dict[str, str] = {}
        for column in LEDGER_COLUMNS:
            raw = row.get(column)
            if raw is None:
                raise LedgerParseError(str(self._path), row_number, f"missing column '{column}'")
            values[column] = raw.strip()

        if not values["recipient"]:
            raise LedgerParseError(str(self._path), row_number, "empty recipient")
        try:
            amount = Decimal(values["amount"])
        except InvalidOperation as exc:
            raise LedgerParseError(
                str(self._path), row_number, f"invalid amount {values['amount']!r}"
            ) from exc
        if not amount.is_finite() or amount < 0:
            raise LedgerParseError(
                str(self._path), row_number, f"invalid amount {values['amount']!r}"
            )
        return TransactionRecord(
            recipient=values["recipient"],
            amount=amount,
            receipt=values["signature"],
        )

    # -------------------------------------------------------------------------
    # Write
    # -------------------------------------------------------------------------

    @contextmanager
    def session(self) -> Iterator[LedgerAppender]:
        """
        Back up the ledger, then open it for appending.

        A new ledger is created with a header row and no backup is taken.
        An existing but empty ledger also receives the header.
        """
        existed = self._path.exists()
        if existed:
            self._backup()

        try:
            write_header = not existed or self._path.stat().st_size == 0
            needs_newline = not write_header and self._ends_without_newline()
            handle = self._path.open("a" if existed else "x", encoding="utf-8", newline="")
        except OSError as exc:
            raise LedgerIOError(str(self._path), "open", str(exc)) from exc

        with handle:
            try:
                if needs_newline:
                    handle.write("\r\n")
                if write_header:
                    csv.writer(handle).writerow(LEDGER_COLUMNS)
                handle.flush()
                os.fsync(handle.fileno())
            except OSError as exc:
                raise LedgerIOError(str(self._path), "open", str(exc)) from exc
            if not existed:
                logger.info("ledger_created", extra={"ledger_path": str(self._path)})
            appender = LedgerAppender(self._path, handle)
            yield appender

        logger.info(
            "ledger_session_closed",
            extra={"ledger_path": str(self._path), "record_count": len(appender.written)},
        )

    def append(self, records: Sequence[tuple[Allocation, str]]) -> list[TransactionRecord]:
        """Append one record per (allocation, receipt) pair, in input order."""
        with self.session() as appender:
            for allocation, receipt in records:
                appender.write(allocation, receipt)
        return list(appender.written)

    def _backup(self) -> None:
        try:
            shutil.copyfile(self._path, self.backup_path)
        except OSError as exc:
            raise LedgerIOError(str(self._path), "backup", str(exc)) from exc
        logger.info(
            "ledger_backup_created",
            extra={"ledger_path": str(self._path), "backup_path": str(self.backup_path)},
        )

    def _ends_without_newline(self) -> bool:
        with self._path.open("rb") as f:
            f.seek(0, os.SEEK_END)
            if f.tell() == 0:
                return False
            f.seek(-1, os.SEEK_END)
            return f.read(1) not in (b"\n", b"\r")
