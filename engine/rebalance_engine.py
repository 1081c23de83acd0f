"""Rebalance engine.

Runs the allocation engine for one account and packages the resulting plan
with the derived trades, non-fatal warnings and a summary.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Sequence

from engine.allocation_engine import PlanRow, compute_plan, core_shortfall, plan_totals
from engine.trade_planner import Trade, plan_trades
from portfolio.allocation import TargetConfig
from portfolio.holding import Holding

logger = logging.getLogger(__name__)


@dataclass
class Recommendation:
    """Rebalancing plan with trades and diagnostics."""

    rows: List[PlanRow]
    trades: List[Trade]
    warnings: List[str]
    summary: Dict[str, Any]


def recommend(
    holdings: Sequence[Holding],
    config: TargetConfig,
    ignored: Sequence[str] = (),
    not_held: Sequence[str] = (),
) -> Recommendation:
    """Generate a rebalancing recommendation.

    Args:
        holdings: Current positions for the account, ignored symbols removed.
        config: Target configuration.
        ignored: Held symbols left out of the calculation, reported as warnings.
        not_held: Symbols asked to be ignored that the account does not hold.

    Returns:
        Recommendation with plan rows, trades, warnings, and summary.

    Raises:
        ConfigError: From the allocation engine.
        DataError: From the allocation engine.
    """
    rows = compute_plan(holdings, config)
    trades = plan_trades(rows, config.account_number, config.core_symbol)

    warnings: List[str] = []
    shortfall = core_shortfall(rows, config)
    if shortfall > 0:
        msg = (
            f"Not enough money to maintain core position minimum: "
            f"{config.core_symbol} remains ${shortfall:,.2f} short of ${config.core_minimum:,.2f}"
        )
        logger.warning(msg)
        warnings.append(msg)
    for symbol in ignored:
        warnings.append(f"Ignored holding {symbol} was left out of the calculation")
    for symbol in not_held:
        warnings.append(f"Ignored symbol {symbol} is not held in account {config.account_number}")

    total_value = sum(r.value for r in rows)
    total_sell, total_buy = plan_totals(rows)
    summary = {
        "total_value": total_value,
        "investable_total": max(total_value - config.core_minimum, 0.0),
        "total_sell": total_sell,
        "total_buy": total_buy,
        "core_shortfall": shortfall,
        "num_trades": len(trades),
    }

    return Recommendation(rows=rows, trades=trades, warnings=warnings, summary=summary)
