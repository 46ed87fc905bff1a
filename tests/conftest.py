"""
Pytest fixtures for the distribution test suite.

Provides:
- Structured logging setup and capture
- CSV writers for bid schedules and ledgers
- In-memory transfer executors (recording and failing)
"""

import json
import logging
from decimal import Decimal
from io import StringIO
from pathlib import Path

import pytest

from distribution_kernel.domain.values import Allocation, SignerPair
from distribution_kernel.exceptions import TransferError
from distribution_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture distribution logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs):
            ...
            logs = captured_logs()
            assert any(r["message"] == "reconciliation_completed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("distribution")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# File fixtures
# =============================================================================


@pytest.fixture
def write_bids(tmp_path):
    """Write a bid schedule CSV from (amount, address) pairs; returns its path."""

    def _write(rows, name: str = "bids.csv", header: str = "bid_amount_dollars,primary_address") -> Path:
        path = tmp_path / name
        lines = [header] + [f"{amount},{address}" for amount, address in rows]
        path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        return path

    return _write


@pytest.fixture
def ledger_path(tmp_path) -> Path:
    return tmp_path / "transactions.csv"


@pytest.fixture
def write_ledger(ledger_path):
    """Write a ledger CSV from (recipient, amount, signature) triples."""

    def _write(rows) -> Path:
        lines = ["recipient,amount,signature"] + [
            f"{recipient},{amount},{signature}" for recipient, amount, signature in rows
        ]
        ledger_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        return ledger_path

    return _write


# =============================================================================
# Transfer executors
# =============================================================================


class RecordingExecutor:
    """Confirms every transfer and remembers what it was asked to send."""

    def __init__(self, fail_on: set[str] | None = None) -> None:
        self.calls: list[tuple[str, Decimal, SignerPair]] = []
        self._fail_on = fail_on or set()

    def transfer(self, allocation: Allocation, signers: SignerPair) -> str:
        if allocation.recipient in self._fail_on:
            raise TransferError(allocation.recipient, "insufficient funds")
        self.calls.append((allocation.recipient, allocation.amount, signers))
        return f"sig-{len(self.calls)}-{allocation.recipient}"


@pytest.fixture
def executor() -> RecordingExecutor:
    return RecordingExecutor()


@pytest.fixture
def failing_executor():
    """Factory for an executor that fails transfers to the given recipients."""

    def _make(*recipients: str) -> RecordingExecutor:
        return RecordingExecutor(fail_on=set(recipients))

    return _make


@pytest.fixture
def signers() -> SignerPair:
    return SignerPair(fee_payer="fee-payer.json", sender="sender.json")
