"""Tests for contribution allocation.

Covers:
- Exact and scarce-cash branches
- Surplus branch when targets sum below 100
- Cent-exact conservation and residual placement
- Buy-only invariant
"""
from __future__ import annotations

from decimal import ROUND_DOWN, Decimal

import numpy as np
import pytest

from common.errors import InvalidAllocationError, InvalidAmountError, NoHoldingsError
from common.money import round2
from engine.deficit_allocator import (
    EXACT,
    SCARCE,
    SURPLUS,
    allocate,
    allocation_case,
    apply_allocation,
    compute_deficits,
)
from portfolio.holding import Holding


def by_id(lines) -> dict:
    return {ln.holding_id: ln for ln in lines}


def scenario_holdings() -> list:
    return [Holding("A", 6000, 70), Holding("B", 4000, 30)]


def random_portfolio(rng: np.random.Generator) -> list:
    """Random holdings whose targets sum to exactly 100."""
    n = int(rng.integers(2, 9))
    weights = rng.dirichlet(np.ones(n)) * 100
    targets = [Decimal(str(w)).quantize(Decimal("0.01"), rounding=ROUND_DOWN) for w in weights[:-1]]
    targets.append(Decimal("100") - sum(targets))
    values = [round2(float(v)) for v in rng.uniform(0, 50_000, size=n)]
    return [Holding(f"H{i}", v, t) for i, (v, t) in enumerate(zip(values, targets))]


class TestWorkedScenarios:
    """Tests for the documented examples."""

    def test_exact_case(self):
        """No overweight holding: each gets exactly its deficit."""
        lines = by_id(allocate(scenario_holdings(), 5000))

        assert lines["A"].amount_to_invest == Decimal("4500")
        assert lines["A"].new_value == Decimal("10500")
        assert lines["B"].amount_to_invest == Decimal("500")
        assert lines["B"].new_value == Decimal("4500")

    def test_scarce_cash_case(self):
        """Overweight B gets nothing; A takes the whole contribution."""
        lines = by_id(allocate(scenario_holdings(), 1000))

        assert lines["A"].amount_to_invest == Decimal("1000.00")
        assert lines["A"].new_value == Decimal("7000")
        assert lines["B"].amount_to_invest == Decimal("0.00")
        assert lines["B"].new_value == Decimal("4000")

    def test_branch_selection(self):
        """Branch follows the deficit total against the amount."""
        holdings = scenario_holdings()

        exact = compute_deficits(holdings, Decimal("15000"))
        scarce = compute_deficits(holdings, Decimal("11000"))

        assert allocation_case(sum(exact), Decimal("5000")) == EXACT
        assert allocation_case(sum(scarce), Decimal("1000")) == SCARCE
        assert allocation_case(Decimal("90"), Decimal("100")) == SURPLUS

    def test_allocation_percentages(self):
        """Lines report shares before and after the contribution."""
        lines = by_id(allocate(scenario_holdings(), 5000))

        assert lines["A"].current_allocation == Decimal("60.00")
        assert lines["A"].new_allocation == Decimal("70.00")
        assert lines["B"].new_allocation == Decimal("30.00")

    def test_results_in_input_order(self):
        """Lines should follow input order."""
        lines = allocate(list(reversed(scenario_holdings())), 5000)

        assert [ln.holding_id for ln in lines] == ["B", "A"]

    def test_empty_portfolio_follows_targets(self):
        """With nothing invested yet, cash splits by target weight."""
        holdings = [Holding("A", 0, 70), Holding("B", 0, 30)]

        lines = by_id(allocate(holdings, 1000))

        assert lines["A"].amount_to_invest == Decimal("700")
        assert lines["B"].amount_to_invest == Decimal("300")
        assert lines["A"].current_allocation == Decimal("0.00")


class TestRounding:
    """Tests for cent rounding and residual placement."""

    def test_residual_goes_to_largest_deficit(self):
        """A missing cent lands on the holding with the largest deficit."""
        holdings = [Holding("A", 0, "33.33"), Holding("B", 0, "33.33"), Holding("C", 0, "33.34")]

        lines = by_id(allocate(holdings, "0.10"))

        assert lines["A"].amount_to_invest == Decimal("0.03")
        assert lines["B"].amount_to_invest == Decimal("0.03")
        assert lines["C"].amount_to_invest == Decimal("0.04")

    def test_residual_tie_broken_by_input_order(self):
        """Equal deficits: the first holding absorbs the residual."""
        holdings = [Holding(h, 0, 25) for h in "ABCD"]

        lines = by_id(allocate(holdings, "0.10"))

        # Each 0.025 rounds up to 0.03, two cents too many
        assert lines["A"].amount_to_invest == Decimal("0.01")
        assert all(lines[h].amount_to_invest == Decimal("0.03") for h in "BCD")

    def test_amount_rounded_to_cents(self):
        """Sub-cent contributions are rounded before splitting."""
        lines = allocate(scenario_holdings(), "5000.004")

        assert sum(ln.amount_to_invest for ln in lines) == Decimal("5000.00")

    def test_exact_case_matches_deficits(self):
        """With no overweight holding amounts equal deficits within a cent."""
        holdings = [Holding("A", 1000, 50), Holding("B", 1000, 50)]

        lines = allocate(holdings, "333.33")
        deficits = compute_deficits(holdings, Decimal("2333.33"))

        assert sum(ln.amount_to_invest for ln in lines) == Decimal("333.33")
        for ln, deficit in zip(lines, deficits):
            assert abs(ln.amount_to_invest - deficit) <= Decimal("0.01")


class TestSurplus:
    """Tests for targets summing slightly below 100."""

    def test_remainder_spread_by_target(self):
        """Cash beyond the deficits follows target weights."""
        holdings = [Holding("A", 0, 60), Holding("B", 0, "39.6")]

        lines = by_id(allocate(holdings, 1000))

        assert lines["A"].amount_to_invest == Decimal("602.41")
        assert lines["B"].amount_to_invest == Decimal("397.59")

    def test_overweight_excluded_from_remainder(self):
        """Holdings above target still receive nothing."""
        holdings = [Holding("A", 50000, 50), Holding("B", 49000, "49.5")]

        lines = by_id(allocate(holdings, 100))

        assert lines["A"].amount_to_invest == Decimal("0")
        assert lines["B"].amount_to_invest == Decimal("100.00")

    def test_all_overweight_falls_back_to_targets(self):
        """When every holding is above target, cash follows target weights."""
        holdings = [Holding("A", 50000, 50), Holding("B", 49500, "49.5")]

        lines = by_id(allocate(holdings, 100))

        assert lines["A"].amount_to_invest == Decimal("50.25")
        assert lines["B"].amount_to_invest == Decimal("49.75")


class TestInvariants:
    """Randomised checks of conservation and buy-only behaviour."""

    @pytest.mark.parametrize("seed", range(25))
    def test_conservation_and_non_negativity(self, seed):
        """Amounts are non-negative and sum to the contribution exactly."""
        rng = np.random.default_rng(seed)
        holdings = random_portfolio(rng)
        amount = round2(float(rng.uniform(0.01, 20_000)))

        lines = allocate(holdings, amount)

        assert sum(ln.amount_to_invest for ln in lines) == amount
        assert all(ln.amount_to_invest >= 0 for ln in lines)
        for h, ln in zip(holdings, lines):
            assert ln.new_value == h.current_value + ln.amount_to_invest

    @pytest.mark.parametrize("seed", range(25))
    def test_overweight_holdings_receive_nothing(self, seed):
        """Holdings above their target value after the contribution get 0."""
        rng = np.random.default_rng(seed)
        holdings = random_portfolio(rng)
        amount = round2(float(rng.uniform(0.01, 20_000)))
        new_total = sum(h.current_value for h in holdings) + amount

        lines = allocate(holdings, amount)

        for h, ln in zip(holdings, lines):
            if h.target_allocation / 100 * new_total < h.current_value:
                assert ln.amount_to_invest == 0

    def test_idempotent(self):
        """Same input, same output."""
        holdings = random_portfolio(np.random.default_rng(7))

        assert allocate(holdings, 1234.56) == allocate(holdings, 1234.56)


class TestErrors:
    """Tests for rejected input."""

    @pytest.mark.parametrize("amount", [0, -5, "0.004", "NaN"])
    def test_non_positive_amount(self, amount):
        """Amounts that are not positive after rounding are rejected."""
        with pytest.raises(InvalidAmountError):
            allocate(scenario_holdings(), amount)

    def test_amount_checked_first(self):
        """Amount errors win over holdings errors."""
        with pytest.raises(InvalidAmountError):
            allocate([], 0)

    def test_no_holdings(self):
        """Empty input is rejected instead of returning nothing."""
        with pytest.raises(NoHoldingsError):
            allocate([], 100)

    def test_invalid_targets(self):
        """Targets not summing to ~100 are rejected."""
        holdings = [Holding("A", 100, 60), Holding("B", 100, 34)]

        with pytest.raises(InvalidAllocationError):
            allocate(holdings, 100)

    def test_duplicate_ids(self):
        """Repeated ids are rejected rather than merged."""
        holdings = [Holding("A", 6000, 70), Holding("A", 4000, 30)]

        with pytest.raises(InvalidAllocationError):
            allocate(holdings, 1000)


class TestApplyAllocation:
    """Tests for folding an allocation back into holdings."""

    def test_new_values_applied(self):
        """Returned holdings carry the new values and keep targets."""
        holdings = scenario_holdings()

        updated = apply_allocation(holdings, allocate(holdings, 5000))

        assert [h.current_value for h in updated] == [Decimal("10500"), Decimal("4500")]
        assert [h.target_allocation for h in updated] == [Decimal("70"), Decimal("30")]
        assert holdings[0].current_value == Decimal("6000")
