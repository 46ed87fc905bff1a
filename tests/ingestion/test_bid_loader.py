"""Tests for bid schedule loading."""

from decimal import Decimal

import pytest

from distribution_ingestion.adapters import CsvSourceAdapter
from distribution_ingestion.bid_loader import load_bids, parse_bid
from distribution_kernel.domain.values import Bid
from distribution_kernel.exceptions import (
    BidParseError,
    BidScheduleIOError,
    BidScheduleNotFoundError,
)


class TestParseBid:
    def test_valid_row(self):
        bid = parse_bid({"bid_amount_dollars": "100.25", "primary_address": "addr"}, 3)
        assert bid == Bid(Decimal("100.25"), "addr", source_row=3)

    @pytest.mark.parametrize(
        "row, reason",
        [
            ({"primary_address": "addr"}, "missing 'bid_amount_dollars'"),
            ({"bid_amount_dollars": "1"}, "missing 'primary_address'"),
            ({"bid_amount_dollars": "1", "primary_address": "  "}, "missing 'primary_address'"),
            ({"bid_amount_dollars": "ten", "primary_address": "addr"}, "invalid amount"),
            ({"bid_amount_dollars": "", "primary_address": "addr"}, "invalid amount"),
            ({"bid_amount_dollars": "Infinity", "primary_address": "addr"}, "invalid amount"),
            ({"bid_amount_dollars": "-5", "primary_address": "addr"}, "negative amount"),
        ],
    )
    def test_invalid_rows(self, row, reason):
        with pytest.raises(BidParseError, match=reason) as exc_info:
            parse_bid(row, 7, source="bids.csv")
        assert exc_info.value.row == 7
        assert exc_info.value.source == "bids.csv"


class TestLoadBids:
    def test_loads_in_row_order(self, write_bids):
        path = write_bids([("100", "A"), ("50", "B")])
        bids = load_bids(path)
        assert [(b.recipient_address, b.requested_amount) for b in bids] == [
            ("A", Decimal("100")),
            ("B", Decimal("50")),
        ]
        assert [b.source_row for b in bids] == [1, 2]

    def test_duplicate_recipients_kept(self, write_bids):
        bids = load_bids(write_bids([("1", "A"), ("2", "A")]))
        assert len(bids) == 2

    def test_whitespace_and_extra_columns(self, write_bids):
        path = write_bids(
            [(" 12.5 , A ", "x")],
            header=" bid_amount_dollars , primary_address ,note",
        )
        bids = load_bids(path)
        assert bids == [Bid(Decimal("12.5"), "A", source_row=1)]

    def test_header_only_schedule_is_empty(self, write_bids):
        assert load_bids(write_bids([])) == []

    def test_missing_file(self, tmp_path):
        with pytest.raises(BidScheduleNotFoundError) as exc_info:
            load_bids(tmp_path / "nope.csv")
        assert exc_info.value.code == "BID_SCHEDULE_NOT_FOUND"

    def test_empty_file(self, tmp_path):
        path = tmp_path / "bids.csv"
        path.write_text("")
        with pytest.raises(BidParseError, match="missing header row"):
            load_bids(path)

    def test_invalid_utf8_rejected(self, tmp_path):
        path = tmp_path / "bids.csv"
        path.write_bytes(b"bid_amount_dollars,primary_address\n10,\xff\xfe\n")
        with pytest.raises(BidParseError, match="unreadable row") as exc_info:
            load_bids(path)
        assert exc_info.value.source == str(path)

    def test_oversized_field_rejected(self, write_bids):
        path = write_bids([("1", "A"), ("2", "B" * 200_000)])
        with pytest.raises(BidParseError, match="unreadable row") as exc_info:
            load_bids(path)
        assert exc_info.value.row == 2

    def test_directory_path(self, tmp_path):
        with pytest.raises(BidScheduleIOError) as exc_info:
            load_bids(tmp_path)
        assert exc_info.value.code == "BID_SCHEDULE_IO_ERROR"
        assert exc_info.value.path == str(tmp_path)

    def test_unreadable_file(self, write_bids):
        class DeniedAdapter(CsvSourceAdapter):
            def columns(self, source_path, options):
                raise PermissionError(13, "Permission denied", str(source_path))

        with pytest.raises(BidScheduleIOError, match="Permission denied"):
            load_bids(write_bids([("1", "A")]), adapter=DeniedAdapter())

    def test_missing_column(self, write_bids):
        path = write_bids([("1", "A")], header="amount,primary_address")
        with pytest.raises(BidParseError, match="missing column 'bid_amount_dollars'") as exc_info:
            load_bids(path)
        assert exc_info.value.row == 0

    def test_one_bad_row_fails_whole_load(self, write_bids):
        path = write_bids([("1", "A"), ("oops", "B"), ("3", "C")])
        with pytest.raises(BidParseError) as exc_info:
            load_bids(path)
        assert exc_info.value.row == 2

    def test_semicolon_delimited(self, tmp_path):
        path = tmp_path / "bids.csv"
        path.write_text("bid_amount_dollars;primary_address\n5;A\n")
        assert load_bids(path, options={"delimiter": ";"})[0].requested_amount == Decimal("5")

    def test_logs_load(self, write_bids, captured_logs):
        load_bids(write_bids([("100", "A"), ("50", "B")]))
        loaded = [r for r in captured_logs() if r["message"] == "bids_loaded"]
        assert loaded[0]["bid_count"] == 2
        assert loaded[0]["total_requested"] == "150"
