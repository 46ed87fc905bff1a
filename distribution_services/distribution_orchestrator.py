"""
DistributionOrchestrator -- wires bid loading, ledger replay, and transfers.

Contract:
    ``run()`` executes one distribution pass:

        load bids -> derive allocations -> load ledger -> reconcile
        -> nothing left: report "No work to do" and return
        -> print the planned allocations
        -> dry run: return
        -> live: for each allocation, transfer, then append its ledger row

Invariants enforced:
    - A ledger row is written only after its transfer returned a receipt,
      and immediately after, before the next transfer starts.
    - A failed transfer stops the run. Every earlier transfer is already in
      the ledger, so re-running resumes where this run stopped.
    - Dry runs never construct a ledger session or call the executor.
    - Live runs validate executor and signers before reading any input.

Failure modes:
    - ParseError, BidScheduleNotFoundError or BidScheduleIOError before any
      transfer.
    - ConfigurationError for a live run without executor or signers.
    - TransferFailedError when a transfer fails.
    - LedgerIOError if a confirmed transfer cannot be recorded. The ledger
      is then behind reality; the receipt is on the exception and logged
      at CRITICAL so the row can be added by hand.
"""

from __future__ import annotations

import sys
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from decimal import Decimal
from pathlib import Path
from typing import TYPE_CHECKING, TextIO
from uuid import uuid4

from distribution_engines.conversion import derive_allocations
from distribution_engines.reconciliation import (
    ReconciliationEngine,
    ReplayMode,
    UnmatchedDebit,
)
from distribution_ingestion.bid_loader import load_bids
from distribution_kernel.domain.values import (
    Allocation,
    Bid,
    SignerPair,
    TransactionRecord,
)
from distribution_kernel.exceptions import (
    ConfigurationError,
    LedgerIOError,
    TransferFailedError,
)
from distribution_kernel.logging_config import LogContext, get_logger
from distribution_kernel.services.ledger_store import LedgerStore
from distribution_services.transfer_executor import TransferExecutor, load_executor

if TYPE_CHECKING:
    from distribution_config.schema import DistributionConfig

logger = get_logger("services.distribution_orchestrator")

RECIPIENT_COLUMN_WIDTH = 44


@dataclass(frozen=True)
class DistributionReport:
    """Outcome of one orchestrator run."""

    planned: tuple[Allocation, ...]
    receipts: tuple[TransactionRecord, ...]
    unmatched: tuple[UnmatchedDebit, ...]
    dry_run: bool

    @property
    def nothing_to_do(self) -> bool:
        return not self.planned

    @property
    def total_planned(self) -> Decimal:
        return sum((a.amount for a in self.planned), Decimal("0"))

    @property
    def total_sent(self) -> Decimal:
        return sum((r.amount for r in self.receipts), Decimal("0"))


def format_plan(allocations: Sequence[Allocation]) -> list[str]:
    """Render the planned allocations as fixed-width table lines."""
    lines = [f"{'Recipient':<{RECIPIENT_COLUMN_WIDTH}}  Amount"]
    for allocation in allocations:
        lines.append(
            f"{allocation.recipient:<{RECIPIENT_COLUMN_WIDTH}}  {format(allocation.amount, 'f')}"
        )
    return lines


class DistributionOrchestrator:
    """Runs one distribution pass against a bid schedule and a ledger.

    Contract:
        - ``from_config()`` builds a fully wired orchestrator.
        - ``run()`` performs the pass and returns a DistributionReport.

    Non-goals:
        - Does NOT retry failed transfers; re-running is the recovery path.
        - Does NOT lock the ledger; one process per ledger path.
    """

    def __init__(
        self,
        *,
        bids_csv: Path,
        ledger: LedgerStore,
        dollars_per_unit: Decimal,
        dry_run: bool,
        executor: TransferExecutor | None = None,
        signers: SignerPair | None = None,
        replay_mode: ReplayMode = ReplayMode.BY_RECIPIENT,
        native_decimal_places: int = 9,
        engine: ReconciliationEngine | None = None,
        bid_loader: Callable[[Path], list[Bid]] = load_bids,
        out: TextIO | None = None,
        err: TextIO | None = None,
    ) -> None:
        self._bids_csv = Path(bids_csv)
        self._ledger = ledger
        self._dollars_per_unit = dollars_per_unit
        self._dry_run = dry_run
        self._executor = executor
        self._signers = signers
        self._replay_mode = ReplayMode(replay_mode)
        self._native_decimal_places = native_decimal_places
        self._engine = engine or ReconciliationEngine()
        self._bid_loader = bid_loader
        self._out = out
        self._err = err

    # -------------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------------

    @classmethod
    def from_config(
        cls,
        config: DistributionConfig,
        executor: TransferExecutor | None = None,
        out: TextIO | None = None,
        err: TextIO | None = None,
    ) -> DistributionOrchestrator:
        """Create an orchestrator from configuration.

        Args:
            config: Validated run configuration.
            executor: Optional executor override. If None and the run is
                live, the executor named by ``config.executor`` is loaded.
        """
        if executor is None and not config.dry_run and config.executor:
            executor = load_executor(config.executor, config)
        return cls(
            bids_csv=config.bids_csv,
            ledger=LedgerStore(config.transactions_csv, backup_suffix=config.backup_suffix),
            dollars_per_unit=config.dollars_per_unit,
            dry_run=config.dry_run,
            executor=executor,
            signers=config.signers,
            replay_mode=config.replay_mode,
            native_decimal_places=config.native_decimal_places,
            out=out,
            err=err,
        )

    # -------------------------------------------------------------------------
    # Run
    # -------------------------------------------------------------------------

    def run(self) -> DistributionReport:
        """Execute one distribution pass."""
        if not self._dry_run:
            self._require_live_collaborators()

        with LogContext.bind(run_id=str(uuid4()), ledger_path=str(self._ledger.path)):
            logger.info(
                "distribution_started",
                extra={
                    "bids_csv": str(self._bids_csv),
                    "dry_run": self._dry_run,
                    "replay_mode": self._replay_mode.value,
                },
            )
            bids = self._bid_loader(self._bids_csv)
            allocations = derive_allocations(
                bids=bids,
                dollars_per_unit=self._dollars_per_unit,
                decimal_places=self._native_decimal_places,
            )
            history = self._ledger.load()
            result = self._engine.reconcile(
                allocations=allocations, history=history, mode=self._replay_mode
            )

            if not allocations:
                self._print("No work to do", stream=self._err_stream())
                logger.info("distribution_no_work")
                return DistributionReport(
                    planned=(), receipts=(), unmatched=result.unmatched, dry_run=self._dry_run
                )

            for line in format_plan(allocations):
                self._print(line)

            if self._dry_run:
                logger.info(
                    "distribution_dry_run_completed",
                    extra={"planned_count": len(allocations)},
                )
                return DistributionReport(
                    planned=tuple(allocations),
                    receipts=(),
                    unmatched=result.unmatched,
                    dry_run=True,
                )

            receipts = self._distribute(allocations)
            logger.info(
                "distribution_completed",
                extra={
                    "sent_count": len(receipts),
                    "total_sent": str(sum((r.amount for r in receipts), Decimal("0"))),
                },
            )
            return DistributionReport(
                planned=tuple(allocations),
                receipts=receipts,
                unmatched=result.unmatched,
                dry_run=False,
            )

    def _distribute(self, allocations: Sequence[Allocation]) -> tuple[TransactionRecord, ...]:
        executor, signers = self._require_live_collaborators()

        with self._ledger.session() as appender:
            for index, allocation in enumerate(allocations):
                with LogContext.bind(recipient=allocation.recipient):
                    try:
                        receipt = str(executor.transfer(allocation, signers))
                    except Exception as exc:
                        logger.error(
                            "transfer_failed",
                            exc_info=True,
                            extra={"amount": str(allocation.amount), "completed": index},
                        )
                        raise TransferFailedError(
                            recipient=allocation.recipient,
                            amount=allocation.amount,
                            completed=index,
                            remaining=len(allocations) - index - 1,
                            reason=str(exc),
                        ) from exc

                    with LogContext.bind(receipt=receipt):
                        logger.info(
                            "transfer_confirmed",
                            extra={
                                "amount": str(allocation.amount),
                                "base_units": allocation.to_base_units(self._native_decimal_places),
                            },
                        )
                        try:
                            appender.write(allocation, receipt)
                        except LedgerIOError:
                            logger.critical(
                                "ledger_out_of_sync",
                                exc_info=True,
                                extra={"amount": str(allocation.amount)},
                            )
                            raise
        return appender.written

    def _require_live_collaborators(self) -> tuple[TransferExecutor, SignerPair]:
        if self._executor is None:
            raise ConfigurationError("executor", "required unless dry_run is set")
        if self._signers is None:
            raise ConfigurationError("sender_keypair", "required unless dry_run is set")
        return self._executor, self._signers

    # -------------------------------------------------------------------------
    # Output
    # -------------------------------------------------------------------------

    def _print(self, line: str, stream: TextIO | None = None) -> None:
        print(line, file=stream or self._out or sys.stdout)

    def _err_stream(self) -> TextIO:
        return self._err or sys.stderr
