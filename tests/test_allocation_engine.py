"""Tests for the allocation engine.

Covers:
- Worked examples (core excess, core deficit)
- Conservation, no buy+sell on one row, percent consistency
- Normalization of target weights
- Row ordering and omission rules
- Rounding residual correction
- Input validation errors
"""
from __future__ import annotations

import pytest

from common.errors import ConfigError, DataError
from engine.allocation_engine import PlanRow, compute_plan, core_shortfall, plan_totals
from portfolio.allocation import TargetConfig
from portfolio.holding import Holding


TARGETS = {"FXNAX": 25, "FSKAX": 45, "FTIHX": 30}


def make_config(
    allocations: dict | None = None,
    core_minimum: float = 2000,
    core_symbol: str = "FZFXX",
) -> TargetConfig:
    """Helper to create a target configuration."""
    return TargetConfig(
        account_number="Z12345678",
        core_symbol=core_symbol,
        core_minimum=core_minimum,
        allocations=dict(TARGETS if allocations is None else allocations),
    )


def make_holdings(values: dict) -> list[Holding]:
    return [Holding(s, v) for s, v in values.items()]


def by_symbol(rows: list[PlanRow]) -> dict[str, PlanRow]:
    return {r.symbol: r for r in rows}


EXCESS = {"FZFXX": 2805.50, "FXNAX": 1593.00, "FSKAX": 2182.20, "FTIHX": 844.00}
DEFICIT = {"FZFXX": 1805.50, "FXNAX": 1593.00, "FSKAX": 2182.20, "FTIHX": 844.00}


class TestWorkedExamples:
    """The two README examples."""

    def test_excess_core_cash(self):
        """Core above minimum releases its excess to fund buys."""
        rows = by_symbol(compute_plan(make_holdings(EXCESS), make_config()))

        assert rows["FZFXX"].retain == 2000.00
        assert rows["FZFXX"].sell == 805.50
        assert rows["FZFXX"].buy is None
        assert rows["FXNAX"].sell == 236.82
        assert rows["FXNAX"].buy is None
        assert rows["FSKAX"].buy == 258.92
        assert rows["FTIHX"].buy == 783.41

    def test_core_deficit(self):
        """Core below minimum is topped up from over-allocated positions."""
        rows = by_symbol(compute_plan(make_holdings(DEFICIT), make_config()))

        assert rows["FZFXX"].retain == 1805.50
        assert rows["FZFXX"].buy == 194.50
        assert rows["FZFXX"].sell is None
        assert rows["FXNAX"].sell == 486.82
        assert rows["FSKAX"].sell == 191.08
        assert rows["FTIHX"].buy == 483.41

    def test_core_at_minimum(self):
        """Core exactly at minimum is retained with no action."""
        holdings = make_holdings({"FZFXX": 2000, "FXNAX": 250, "FSKAX": 450, "FTIHX": 300})

        rows = by_symbol(compute_plan(holdings, make_config()))

        assert rows["FZFXX"].retain == 2000.00
        assert rows["FZFXX"].sell is None
        assert rows["FZFXX"].buy is None
        for symbol in TARGETS:
            assert rows[symbol].sell is None
            assert rows[symbol].buy is None

    def test_target_percent_only_on_non_core_rows(self):
        rows = by_symbol(compute_plan(make_holdings(EXCESS), make_config()))

        assert rows["FZFXX"].target_percent is None
        assert rows["FXNAX"].target_percent == pytest.approx(25.0)
        assert rows["FXNAX"].retain is None


CASES = [
    (EXCESS, make_config()),
    (DEFICIT, make_config()),
    ({"FZFXX": 10.01, "A": 333.33, "B": 0.07, "C": 1234.56}, make_config({"A": 1, "B": 1, "C": 1}, 5)),
    ({"CASH": 50, "X": 99.99, "Y": 0.01}, make_config({"Y": 7, "Z": 3}, 75.25, "CASH")),
    ({"FZFXX": 300, "A": 100, "B": 100}, make_config({"A": 60, "B": 40}, 1000)),
    ({"A": 1000}, make_config({"A": 50, "B": 50}, 100)),
]


class TestPlanProperties:
    """Invariants that hold for every successful plan."""

    @pytest.mark.parametrize("values,config", CASES)
    def test_sells_fund_buys(self, values, config):
        """Total sells equal total buys to within one cent."""
        sell, buy = plan_totals(compute_plan(make_holdings(values), config))

        assert abs(sell - buy) <= 0.01 + 1e-9

    @pytest.mark.parametrize("values,config", CASES)
    def test_no_row_buys_and_sells(self, values, config):
        for row in compute_plan(make_holdings(values), config):
            assert not (row.sell and row.buy)
            assert row.sell is None or row.sell > 0
            assert row.buy is None or row.buy > 0

    @pytest.mark.parametrize("values,config", CASES)
    def test_percent_of_total_sums_to_100(self, values, config):
        rows = compute_plan(make_holdings(values), config)

        assert sum(r.percent_of_total for r in rows) == pytest.approx(100.0)

    def test_scaling_weights_gives_identical_plan(self):
        """Weights are relative, so any positive scale factor gives the same plan."""
        base = compute_plan(make_holdings(EXCESS), make_config())
        scaled = compute_plan(make_holdings(EXCESS), make_config({"FXNAX": 5, "FSKAX": 9, "FTIHX": 6}))
        doubled = compute_plan(make_holdings(EXCESS), make_config({"FXNAX": 50, "FSKAX": 90, "FTIHX": 60}))

        assert scaled == base
        assert doubled == base

    def test_weights_not_summing_to_100_are_normalized(self):
        holdings = make_holdings({"FZFXX": 0, "A": 600, "B": 0})

        rows = by_symbol(compute_plan(holdings, make_config({"A": 1, "B": 2}, 0)))

        assert rows["A"].target_percent == pytest.approx(100 / 3)
        assert rows["B"].target_percent == pytest.approx(200 / 3)
        assert rows["A"].sell == 400.00
        assert rows["B"].buy == 400.00

    def test_core_excess_sold_exactly(self):
        holdings = make_holdings({"FZFXX": 2500.37, "FXNAX": 10, "FSKAX": 10, "FTIHX": 10})

        rows = by_symbol(compute_plan(holdings, make_config()))

        assert rows["FZFXX"].sell == 500.37
        assert rows["FZFXX"].buy is None

    def test_core_deficit_buy_bounded_by_need(self):
        rows = by_symbol(compute_plan(make_holdings(DEFICIT), make_config()))

        assert rows["FZFXX"].sell is None
        assert 0 < rows["FZFXX"].buy <= 2000 - 1805.50


class TestRowSelection:
    """Which rows appear and in what order."""

    def test_order_is_core_then_holdings_then_targets(self):
        holdings = make_holdings({"ZZZ": 100, "FZFXX": 2500, "FXNAX": 500})

        rows = compute_plan(holdings, make_config())

        assert [r.symbol for r in rows] == ["FZFXX", "ZZZ", "FXNAX", "FSKAX", "FTIHX"]

    def test_untargeted_holding_is_liquidated(self):
        holdings = make_holdings({**EXCESS, "OLD": 412.34})

        row = by_symbol(compute_plan(holdings, make_config()))["OLD"]

        assert row.sell == 412.34
        assert row.buy is None
        assert row.target_percent is None

    def test_zero_weight_holding_is_liquidated(self):
        holdings = make_holdings({**EXCESS, "OLD": 100})

        row = by_symbol(compute_plan(holdings, make_config({**TARGETS, "OLD": 0})))["OLD"]

        assert row.sell == 100.00
        assert row.target_percent == 0.0

    def test_empty_untargeted_holding_is_omitted(self):
        holdings = make_holdings({**EXCESS, "GONE": 0})

        rows = by_symbol(compute_plan(holdings, make_config({**TARGETS, "NEVER": 0})))

        assert "GONE" not in rows
        assert "NEVER" not in rows

    def test_target_only_symbol_is_bought(self):
        holdings = make_holdings({"FZFXX": 3000, "FXNAX": 1000})

        rows = by_symbol(compute_plan(holdings, make_config({"FXNAX": 50, "NEW": 50})))

        assert rows["NEW"].value == 0
        assert rows["NEW"].percent_of_total == 0
        assert rows["NEW"].buy == 1000.00
        assert rows["FXNAX"].sell is None and rows["FXNAX"].buy is None

    def test_core_not_held_is_reported_first(self):
        holdings = make_holdings({"A": 1000})

        rows = compute_plan(holdings, make_config({"A": 50, "B": 50}, 100))
        core = rows[0]

        assert core.symbol == "FZFXX"
        assert core.value == 0
        assert core.retain == 0
        assert core.buy == 100.00
        assert by_symbol(rows)["A"].sell == 550.00
        assert by_symbol(rows)["B"].buy == 450.00

    def test_all_zero_values(self):
        """A zero-valued account yields zero percents without dividing by zero."""
        holdings = make_holdings({"FZFXX": 0, "FXNAX": 0})

        rows = compute_plan(holdings, make_config(core_minimum=0))

        assert all(r.percent_of_total == 0 for r in rows)
        assert all(r.sell is None and r.buy is None for r in rows)


class TestCoreShortfall:
    """Core minimum larger than the whole account."""

    def test_everything_sold_into_core(self):
        holdings = make_holdings({"FZFXX": 500, "A": 300, "B": 200})
        config = make_config({"A": 50, "B": 50}, 2000)

        rows = by_symbol(compute_plan(holdings, config))

        assert rows["A"].sell == 300.00
        assert rows["B"].sell == 200.00
        assert rows["FZFXX"].retain == 500.00
        assert rows["FZFXX"].buy == 500.00
        assert core_shortfall(list(rows.values()), config) == 1000.00

    def test_core_buy_matches_rounded_sells(self):
        """Sub-cent liquidations fund the core with exactly what they raise."""
        holdings = make_holdings({"A": 1.005, "B": 1.005, "C": 1.005})
        config = make_config({"T": 1}, 10000)

        rows = by_symbol(compute_plan(holdings, config))

        for s in "ABC":
            assert rows[s].sell == 1.00
            assert rows[s].target_percent is None
        assert rows["FZFXX"].buy == 3.00
        sell, buy = plan_totals(list(rows.values()))
        assert sell == buy == 3.00
        assert core_shortfall(list(rows.values()), config) == 9997.00

    def test_no_shortfall_when_funded(self):
        config = make_config()

        assert core_shortfall(compute_plan(make_holdings(DEFICIT), config), config) == 0.0
        assert core_shortfall(compute_plan(make_holdings(EXCESS), config), config) == 0.0


class TestRoundingResidual:
    """Cent rounding never creates or destroys money."""

    def test_largest_buy_absorbs_residual(self):
        """Six buys of 16.666... round up to 100.02 against a 100.00 sell."""
        holdings = make_holdings({"FZFXX": 1000, "OLD": 100})
        config = make_config({s: 1 for s in "ABCDEF"}, 1000)

        rows = by_symbol(compute_plan(holdings, config))

        # All buys tie, so the earliest row takes the adjustment.
        assert rows["A"].buy == 16.65
        for s in "BCDEF":
            assert rows[s].buy == 16.67
        sell, buy = plan_totals(list(rows.values()))
        assert sell == buy == 100.00

    def test_largest_partial_sell_absorbs_residual(self):
        """With no non-core buys, a trimmed position takes the residual, never a liquidation."""
        holdings = make_holdings({"OLD": 500, **{s: 150 for s in "ABCDEF"}})
        config = make_config({s: 1 for s in "ABCDEF"}, 600)

        rows = by_symbol(compute_plan(holdings, config))

        assert rows["OLD"].sell == 500.00
        assert rows["A"].sell == 16.65
        for s in "BCDEF":
            assert rows[s].sell == 16.67
        assert rows["FZFXX"].buy == 600.00
        sell, buy = plan_totals(list(rows.values()))
        assert sell == buy == 600.00

    def test_one_cent_difference_is_left_alone(self):
        rows = by_symbol(compute_plan(make_holdings(EXCESS), make_config()))

        assert rows["FTIHX"].buy == 783.41
        sell, buy = plan_totals(list(rows.values()))
        assert abs(sell - buy) == pytest.approx(0.01)


class TestValidation:
    """Errors raised before any plan is produced."""

    def test_empty_holdings(self):
        with pytest.raises(DataError):
            compute_plan([], make_config())

    def test_negative_holding_value(self):
        with pytest.raises(DataError, match="negative"):
            compute_plan(make_holdings({"FZFXX": 100, "FXNAX": -1}), make_config())

    def test_conflicting_duplicate_holdings(self):
        holdings = [Holding("FXNAX", 10), Holding("FXNAX", 20)]

        with pytest.raises(DataError, match="Duplicate"):
            compute_plan(holdings, make_config())

    def test_identical_duplicate_holdings_collapse(self):
        holdings = [Holding("FZFXX", 2000), Holding("FXNAX", 10), Holding("FXNAX", 10)]

        rows = compute_plan(holdings, make_config())

        assert [r.symbol for r in rows].count("FXNAX") == 1

    def test_negative_core_minimum(self):
        with pytest.raises(ConfigError):
            compute_plan(make_holdings(EXCESS), make_config(core_minimum=-1))

    def test_no_allocations(self):
        with pytest.raises(ConfigError):
            compute_plan(make_holdings(EXCESS), make_config({}))

    def test_zero_total_weight(self):
        with pytest.raises(ConfigError):
            compute_plan(make_holdings(EXCESS), make_config({"FXNAX": 0, "FSKAX": 0}))

    def test_negative_weight(self):
        with pytest.raises(ConfigError):
            compute_plan(make_holdings(EXCESS), make_config({"FXNAX": -5, "FSKAX": 10}))

    def test_core_in_allocations(self):
        with pytest.raises(ConfigError, match="cannot be in target list"):
            compute_plan(make_holdings(EXCESS), make_config({"FZFXX": 10, "FXNAX": 90}))

    def test_missing_core_symbol(self):
        with pytest.raises(ConfigError):
            compute_plan(make_holdings(EXCESS), make_config(core_symbol=""))

    @pytest.mark.parametrize("bad", [float("nan"), float("inf"), float("-inf")])
    def test_non_finite_holding_value(self, bad):
        holdings = [Holding("FZFXX", 2500), Holding("FXNAX", bad)]

        with pytest.raises(DataError, match="non-finite"):
            compute_plan(holdings, make_config())

    @pytest.mark.parametrize("bad", [float("nan"), float("inf")])
    def test_non_finite_core_minimum(self, bad):
        with pytest.raises(ConfigError, match="finite"):
            compute_plan(make_holdings(EXCESS), make_config(core_minimum=bad))

    @pytest.mark.parametrize("bad", [float("nan"), float("inf")])
    def test_non_finite_weight(self, bad):
        with pytest.raises(ConfigError, match="finite"):
            compute_plan(make_holdings(EXCESS), make_config({"FXNAX": bad, "FSKAX": 10}))
