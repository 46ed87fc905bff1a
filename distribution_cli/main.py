"""
distribute-tokens: pay out a bid schedule, resumably.

Usage:
    distribute-tokens [--config FILE] [--url URL] [--log-level LEVEL] \\
        distribute --bids-csv bids.csv --transactions-csv transactions.csv \\
        --dollars-per-unit 20 [--dry-run] [--from KEYPAIR] [--fee-payer KEYPAIR] \\
        [--replay-mode by_recipient|positional] [--executor module:factory]

Every option of the ``distribute`` subcommand may also be set in the YAML
config file (underscored key names); command-line values win.

Re-running after a failure is safe: transfers already recorded in the
transactions ledger are subtracted before anything is sent.

Exit codes:
    0  success (including "No work to do" and dry runs)
    1  distribution error (bad input, ledger I/O, failed transfer, config)
"""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Sequence
from pathlib import Path

from distribution_cli.util import print_error, print_summary
from distribution_config import load_config
from distribution_config.loader import LOG_LEVELS
from distribution_engines.reconciliation import ReplayMode
from distribution_kernel.exceptions import DistributionError
from distribution_kernel.logging_config import configure_logging, get_logger
from distribution_services.distribution_orchestrator import DistributionOrchestrator

logger = get_logger("cli")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="distribute-tokens",
        description="Distribute a fixed pool to recipients from a bid schedule.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="YAML configuration file",
    )
    parser.add_argument(
        "--url",
        dest="json_rpc_url",
        default=None,
        help="JSON RPC URL handed to the transfer executor (overrides config)",
    )
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=LOG_LEVELS,
        default=None,
        help="Log level for the JSON log stream on stderr (default: INFO)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)
    distribute = subparsers.add_parser(
        "distribute",
        help="Send every allocation still owed according to the ledger",
    )
    distribute.add_argument(
        "--bids-csv",
        type=Path,
        default=None,
        help="Bid schedule CSV (bid_amount_dollars, primary_address)",
    )
    distribute.add_argument(
        "--transactions-csv",
        type=Path,
        default=None,
        help="Append-only ledger of completed transfers",
    )
    distribute.add_argument(
        "--dollars-per-unit",
        default=None,
        help="Reference-currency price of one native unit",
    )
    distribute.add_argument(
        "--dry-run",
        action="store_true",
        default=None,
        help="Print the plan; send nothing and leave the ledger untouched",
    )
    distribute.add_argument(
        "--from",
        dest="sender_keypair",
        default=None,
        help="Signing identity that funds the transfers",
    )
    distribute.add_argument(
        "--fee-payer",
        default=None,
        help="Signing identity that pays fees (default: same as --from)",
    )
    distribute.add_argument(
        "--replay-mode",
        choices=[m.value for m in ReplayMode],
        default=None,
        help="How ledger rows are matched to allocations (default: by_recipient)",
    )
    distribute.add_argument(
        "--native-decimal-places",
        type=int,
        default=None,
        help="Precision of the native unit (default: 9)",
    )
    distribute.add_argument(
        "--executor",
        default=None,
        help="Transfer executor factory as 'module:callable'",
    )
    return parser


def _overrides(args: argparse.Namespace) -> dict[str, object]:
    keys = (
        "json_rpc_url",
        "log_level",
        "bids_csv",
        "transactions_csv",
        "dollars_per_unit",
        "dry_run",
        "sender_keypair",
        "fee_payer",
        "replay_mode",
        "native_decimal_places",
        "executor",
    )
    return {key: getattr(args, key, None) for key in keys}


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(level=args.log_level or "INFO")

    try:
        config = load_config(args.config, **_overrides(args))
    except DistributionError as exc:
        print_error(exc)
        return 1

    # The file may set a different level than the bootstrap default
    logging.getLogger("distribution").setLevel(config.log_level)

    try:
        orchestrator = DistributionOrchestrator.from_config(config)
        report = orchestrator.run()
    except DistributionError as exc:
        logger.error("distribution_aborted", exc_info=True)
        print_error(exc)
        return 1

    print_summary(report, file=sys.stderr)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
