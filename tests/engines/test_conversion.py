"""Tests for bid-to-allocation conversion."""

from decimal import Decimal

import pytest

from distribution_engines.conversion import create_allocation, derive_allocations
from distribution_kernel.domain.values import Allocation, Bid
from distribution_kernel.exceptions import InvalidConversionRateError


def _bids(*pairs):
    return [
        Bid(requested_amount=Decimal(amount), recipient_address=address, source_row=i)
        for i, (address, amount) in enumerate(pairs, start=1)
    ]


class TestCreateAllocation:
    def test_divides_by_rate(self):
        allocation = create_allocation(_bids(("A", "100"))[0], Decimal("10"))
        assert allocation == Allocation("A", Decimal("10"))

    def test_truncates_to_native_precision(self):
        allocation = create_allocation(_bids(("A", "1"))[0], Decimal("3"))
        assert allocation.amount == Decimal("0.333333333")

    def test_custom_precision(self):
        allocation = create_allocation(_bids(("A", "2"))[0], Decimal("3"), decimal_places=2)
        assert allocation.amount == Decimal("0.66")

    def test_zero_bid_gives_zero_allocation(self):
        assert create_allocation(_bids(("A", "0"))[0], Decimal("5")).amount == 0

    def test_large_bid_keeps_every_digit(self):
        allocation = create_allocation(_bids(("A", "1e20"))[0], Decimal("1"))
        assert allocation.amount == Decimal("100000000000000000000")
        assert allocation.amount.as_tuple().exponent == -9

    def test_tiny_rate_keeps_every_digit(self):
        allocation = create_allocation(_bids(("A", "100"))[0], Decimal("1e-18"))
        assert allocation.amount == Decimal("1e20")
        assert allocation.amount.as_tuple().exponent == -9

    def test_large_bid_truncates_fraction(self):
        allocation = create_allocation(_bids(("A", "100000000000000000000"))[0], Decimal("3"))
        assert allocation.amount == Decimal("33333333333333333333.333333333")

    def test_negative_precision_rejected(self):
        with pytest.raises(ValueError):
            create_allocation(_bids(("A", "1"))[0], Decimal("1"), decimal_places=-1)


class TestDeriveAllocations:
    def test_one_allocation_per_bid_in_order(self):
        allocations = derive_allocations(
            bids=_bids(("A", "100"), ("B", "50")), dollars_per_unit=Decimal("10")
        )
        assert allocations == [Allocation("A", Decimal("10")), Allocation("B", Decimal("5"))]

    def test_duplicate_recipients_kept_apart(self):
        allocations = derive_allocations(
            bids=_bids(("A", "20"), ("A", "40")), dollars_per_unit=Decimal("20")
        )
        assert [a.amount for a in allocations] == [Decimal("1"), Decimal("2")]

    def test_empty_schedule(self):
        assert derive_allocations(bids=[], dollars_per_unit=Decimal("1")) == []

    @pytest.mark.parametrize("rate", [Decimal("0"), Decimal("-2"), "abc"])
    def test_invalid_rate_rejected(self, rate):
        with pytest.raises(InvalidConversionRateError):
            derive_allocations(bids=_bids(("A", "1")), dollars_per_unit=rate)

    def test_logs_derivation(self, captured_logs):
        derive_allocations(bids=_bids(("A", "100"), ("B", "50")), dollars_per_unit=Decimal("10"))
        logs = captured_logs()
        derived = [r for r in logs if r["message"] == "allocations_derived"]
        assert derived[0]["allocation_count"] == 2
        assert derived[0]["total_amount"] == "15.000000000"
        traces = [r for r in logs if r["message"] == "DISTRIBUTION_ENGINE_TRACE"]
        assert traces[0]["engine_name"] == "conversion"
