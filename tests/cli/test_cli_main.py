"""Tests for the distribute-tokens command line."""

from io import StringIO
from textwrap import dedent

import pytest

from distribution_cli.main import build_parser, main
from distribution_kernel.logging_config import configure_logging, reset_logging

EXECUTOR_MODULE = dedent(
    '''
    class CountingExecutor:
        def __init__(self):
            self.sent = 0

        def transfer(self, allocation, signers):
            self.sent += 1
            return f"cli-sig-{allocation.recipient}"


    def create(config):
        return CountingExecutor()
    '''
)


@pytest.fixture(autouse=True)
def _quiet_logging():
    """Route the JSON log stream away from captured stderr."""
    reset_logging()
    configure_logging(stream=StringIO())
    yield
    reset_logging()


@pytest.fixture
def executor_spec(tmp_path, monkeypatch):
    (tmp_path / "cli_fake_executor.py").write_text(EXECUTOR_MODULE)
    monkeypatch.syspath_prepend(str(tmp_path))
    return "cli_fake_executor:create"


def _args(bids, ledger, *extra):
    return [
        "distribute",
        "--bids-csv",
        str(bids),
        "--transactions-csv",
        str(ledger),
        "--dollars-per-unit",
        "10",
        *extra,
    ]


class TestDistributeCommand:
    def test_dry_run(self, write_bids, ledger_path, capsys):
        code = main(_args(write_bids([("100", "A"), ("50", "B")]), ledger_path, "--dry-run"))

        captured = capsys.readouterr()
        assert code == 0
        assert "A".ljust(44) + "  10.000000000" in captured.out
        assert "Dry run: 2 allocation(s), 15 total, nothing sent" in captured.err
        assert not ledger_path.exists()

    def test_live_run_then_no_work(self, write_bids, ledger_path, executor_spec, capsys):
        args = _args(
            write_bids([("20", "A")]),
            ledger_path,
            "--from",
            "sender.json",
            "--executor",
            executor_spec,
        )

        assert main(args) == 0
        assert "Sent 1 transfer(s), 2 total" in capsys.readouterr().err
        assert "A,2.000000000,cli-sig-A" in ledger_path.read_text()

        assert main(args) == 0
        assert "No work to do" in capsys.readouterr().err

    def test_live_run_without_executor_fails(self, write_bids, ledger_path, capsys):
        code = main(_args(write_bids([("20", "A")]), ledger_path, "--from", "sender.json"))
        assert code == 1
        assert "ERROR [CONFIGURATION_ERROR]" in capsys.readouterr().err

    def test_missing_required_option(self, write_bids, ledger_path, capsys):
        code = main(["distribute", "--bids-csv", str(write_bids([])), "--transactions-csv", str(ledger_path)])
        assert code == 1
        assert "dollars_per_unit" in capsys.readouterr().err

    def test_bad_bid_row(self, write_bids, ledger_path, capsys):
        code = main(_args(write_bids([("lots", "A")]), ledger_path, "--dry-run"))
        assert code == 1
        assert "ERROR [BID_PARSE_ERROR]" in capsys.readouterr().err

    def test_undecodable_bids_file(self, tmp_path, ledger_path, capsys):
        bids = tmp_path / "bids.csv"
        bids.write_bytes(b"bid_amount_dollars,primary_address\n10,\xff\xfe\n")
        code = main(_args(bids, ledger_path, "--dry-run"))
        assert code == 1
        assert "ERROR [BID_PARSE_ERROR]" in capsys.readouterr().err

    def test_bids_path_is_directory(self, tmp_path, ledger_path, capsys):
        code = main(_args(tmp_path, ledger_path, "--dry-run"))
        assert code == 1
        assert "ERROR [BID_SCHEDULE_IO_ERROR]" in capsys.readouterr().err

    def test_undecodable_ledger(self, write_bids, ledger_path, capsys):
        ledger_path.write_bytes(b"recipient,amount,signature\n\xff,1,s\n")
        code = main(_args(write_bids([("20", "A")]), ledger_path, "--dry-run"))
        assert code == 1
        assert "ERROR [LEDGER_PARSE_ERROR]" in capsys.readouterr().err

    def test_unmatched_ledger_rows_warned(self, write_bids, write_ledger, ledger_path, capsys):
        write_ledger([("Z", "3", "old-sig")])
        code = main(_args(write_bids([("20", "A")]), ledger_path, "--dry-run"))
        assert code == 0
        assert "WARNING: ledger row old-sig for Z has 3 not matched" in capsys.readouterr().err

    def test_config_file_with_overrides(self, tmp_path, write_bids, ledger_path, capsys):
        bids = write_bids([("100", "A")])
        config = tmp_path / "distribution.yaml"
        config.write_text(
            f"bids_csv: {bids}\n"
            f"transactions_csv: {ledger_path}\n"
            "dollars_per_unit: '50'\n"
            "dry_run: true\n"
        )

        code = main(["--config", str(config), "distribute", "--dollars-per-unit", "25"])

        assert code == 0
        assert "A".ljust(44) + "  4.000000000" in capsys.readouterr().out


class TestParser:
    def test_subcommand_required(self):
        with pytest.raises(SystemExit) as exc_info:
            build_parser().parse_args([])
        assert exc_info.value.code == 2

    def test_invalid_replay_mode(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["distribute", "--replay-mode", "sorted"])

    def test_log_level_is_case_insensitive(self):
        args = build_parser().parse_args(["--log-level", "debug", "distribute"])
        assert args.log_level == "DEBUG"

    def test_from_maps_to_sender_keypair(self):
        args = build_parser().parse_args(["distribute", "--from", "me.json", "--dry-run"])
        assert args.sender_keypair == "me.json"
        assert args.dry_run is True
