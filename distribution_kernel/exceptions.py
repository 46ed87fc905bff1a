"""
Typed Exception Hierarchy for the Distribution Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

A distribution run moves real value. When it stops, the operator needs to
know exactly where: before any transfer (safe to fix input and re-run),
between a transfer and its ledger row (ledger must be repaired by hand), or
in the middle of the send loop (safe to re-run, the ledger is current).

Every error therefore has:
  1. A TYPED exception class (catch by type, not message)
  2. A CODE attribute (machine-readable, printed by the CLI)
  3. Structured DATA attributes (row numbers, paths, recipients)

Example:
    try:
        orchestrator.run()
    except TransferFailedError as e:
        log.error(f"{e.completed} sent, {e.remaining} left, failed on {e.recipient}")
    except ParseError as e:
        log.error(f"Fix {e.source} row {e.row} and re-run")

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    DistributionError (base)
    |
    +-- ParseError
    |   +-- BidParseError
    |   +-- LedgerParseError
    |
    +-- BidScheduleNotFoundError
    +-- BidScheduleIOError
    |
    +-- LedgerIOError
    |
    +-- TransferError
    |   +-- TransferFailedError
    |
    +-- ConfigurationError
        +-- InvalidConversionRateError
        +-- ExecutorNotFoundError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Parse           | BID_PARSE_ERROR             | Malformed bid schedule row
                | LEDGER_PARSE_ERROR          | Malformed ledger row
----------------|-----------------------------|-----------------------------------------
Input           | BID_SCHEDULE_NOT_FOUND      | Bid schedule file does not exist
                | BID_SCHEDULE_IO_ERROR       | Bid schedule exists but cannot be read
----------------|-----------------------------|-----------------------------------------
Ledger          | LEDGER_IO_ERROR             | Ledger/backup unreadable or unwritable
----------------|-----------------------------|-----------------------------------------
Transfer        | TRANSFER_ERROR              | Executor reported a failed transfer
                | TRANSFER_FAILED             | Run stopped on a failed transfer
----------------|-----------------------------|-----------------------------------------
Configuration   | CONFIGURATION_ERROR         | Missing/invalid configuration value
                | INVALID_CONVERSION_RATE     | Rate is zero, negative or not a number
                | EXECUTOR_NOT_FOUND          | Executor factory path cannot be resolved
"""

from decimal import Decimal


class DistributionError(Exception):
    """
    Base exception for all distribution errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "DISTRIBUTION_ERROR"


# Parse exceptions


class ParseError(DistributionError):
    """Base exception for malformed tabular input."""

    code: str = "PARSE_ERROR"

    def __init__(self, source: str, row: int, reason: str):
        self.source = source
        self.row = row
        self.reason = reason
        super().__init__(f"{source}: row {row}: {reason}")


class BidParseError(ParseError):
    """A bid schedule row could not be parsed. The whole load is aborted."""

    code: str = "BID_PARSE_ERROR"


class LedgerParseError(ParseError):
    """A ledger row could not be parsed. Reconciliation cannot proceed."""

    code: str = "LEDGER_PARSE_ERROR"


class BidScheduleNotFoundError(DistributionError):
    """The bid schedule file does not exist."""

    code: str = "BID_SCHEDULE_NOT_FOUND"

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Bid schedule not found: {path}")


class BidScheduleIOError(DistributionError):
    """The bid schedule exists but the operating system refused to read it."""

    code: str = "BID_SCHEDULE_IO_ERROR"

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot read bid schedule {path}: {reason}")


# Ledger exceptions


class LedgerIOError(DistributionError):
    """
    The ledger or its backup could not be read or written.

    When raised after a transfer was dispatched, the ledger no longer
    reflects reality; ``receipt`` then holds the unrecorded receipt.
    """

    code: str = "LEDGER_IO_ERROR"

    def __init__(self, path: str, operation: str, reason: str, receipt: str | None = None):
        self.path = path
        self.operation = operation
        self.reason = reason
        self.receipt = receipt
        super().__init__(f"Ledger {operation} failed for {path}: {reason}")


# Transfer exceptions


class TransferError(DistributionError):
    """A single transfer failed. Raised by Transfer Executors."""

    code: str = "TRANSFER_ERROR"

    def __init__(self, recipient: str, reason: str):
        self.recipient = recipient
        self.reason = reason
        super().__init__(f"Transfer to {recipient} failed: {reason}")


class TransferFailedError(TransferError):
    """
    A distribution run stopped on a failed transfer.

    Every transfer confirmed before the failure is already in the ledger,
    so re-running resumes from ``recipient``.
    """

    code: str = "TRANSFER_FAILED"

    def __init__(
        self,
        recipient: str,
        amount: Decimal,
        completed: int,
        remaining: int,
        reason: str,
    ):
        self.amount = amount
        self.completed = completed
        self.remaining = remaining
        super().__init__(recipient, reason)
        self.args = (
            f"Transfer of {amount} to {recipient} failed after {completed} "
            f"confirmed transfer(s), {remaining} not attempted: {reason}",
        )


# Configuration exceptions


class ConfigurationError(DistributionError):
    """A configuration value is missing or invalid."""

    code: str = "CONFIGURATION_ERROR"

    def __init__(self, key: str, reason: str):
        self.key = key
        self.reason = reason
        super().__init__(f"Invalid configuration '{key}': {reason}")


class InvalidConversionRateError(ConfigurationError):
    """The reference-currency per native-unit rate is not a positive number."""

    code: str = "INVALID_CONVERSION_RATE"

    def __init__(self, rate: object):
        self.rate = rate
        super().__init__("dollars_per_unit", f"must be a positive decimal, got {rate!r}")


class ExecutorNotFoundError(ConfigurationError):
    """The configured transfer executor factory cannot be imported."""

    code: str = "EXECUTOR_NOT_FOUND"

    def __init__(self, spec: str, reason: str):
        self.spec = spec
        super().__init__("executor", f"cannot resolve {spec!r}: {reason}")
