"""Allocation engine.

Computes the per-symbol retain/sell/buy amounts needed to move a set of
holdings toward target weights while keeping a dollar minimum in the core
(cash-equivalent) position.

The pool the target weights apply to is the account total less the core
minimum. Because every non-core target is a share of that pool, the net of all
non-core buys and sells equals the core excess (or deficit) by construction, so
sells fund buys without any matching step.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import ROUND_HALF_EVEN, Decimal
from typing import Dict, List, Optional, Sequence, Tuple

from portfolio.allocation import TargetConfig, to_decimal
from portfolio.holding import Holding
from portfolio.portfolio import Portfolio

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
ZERO = Decimal(0)
HUNDRED = Decimal(100)


@dataclass(frozen=True)
class PlanRow:
    """One line of a rebalancing plan.

    Cells that do not apply to a row are None rather than zero: the core row
    has no target percent, non-core rows have no retain amount, and a row
    never carries both a sell and a buy.
    """

    symbol: str
    value: float
    percent_of_total: float  # percentage points, 0-100
    target_percent: Optional[float] = None
    retain: Optional[float] = None
    sell: Optional[float] = None
    buy: Optional[float] = None


@dataclass
class _Draft:
    symbol: str
    value: Decimal
    target: Optional[Decimal] = None
    retain: Optional[Decimal] = None
    sell: Decimal = ZERO
    buy: Decimal = ZERO
    is_core: bool = False
    liquidate: bool = False


def to_cents(amount: Decimal) -> Decimal:
    return amount.quantize(CENT, rounding=ROUND_HALF_EVEN)


def _ordered_symbols(values: Dict[str, Decimal], targets: Dict[str, Decimal], core: str) -> List[str]:
    """Core first, then held symbols in holdings order, then target-only symbols."""
    ordered = [core]
    for symbol in list(values) + list(targets):
        if symbol not in ordered:
            ordered.append(symbol)
    return ordered


def _absorb_residual(drafts: List[_Draft]) -> None:
    """Push a rounding residual larger than one cent into a single row.

    The largest non-core buy takes it (earliest row on ties); when there is no
    non-core buy, the largest non-core sell that is not a full liquidation does.
    The core row is never touched.
    """
    residual = sum((d.sell for d in drafts), ZERO) - sum((d.buy for d in drafts), ZERO)
    if abs(residual) <= CENT:
        return

    buys = [d for d in drafts if not d.is_core and d.buy > 0]
    if buys:
        row = max(buys, key=lambda d: d.buy)
        if row.buy + residual >= 0:
            logger.debug("Adjusting buy for %s by %s to balance rounding", row.symbol, residual)
            row.buy += residual
            return

    sells = [d for d in drafts if not d.is_core and not d.liquidate and d.sell > 0]
    if sells:
        row = max(sells, key=lambda d: d.sell)
        if row.sell - residual >= 0:
            logger.debug("Adjusting sell for %s by %s to balance rounding", row.symbol, -residual)
            row.sell -= residual
            return

    logger.warning("Unable to balance rounding residual of %s", residual)


def compute_plan(holdings: Sequence[Holding], config: TargetConfig) -> List[PlanRow]:
    """Compute the rebalancing plan for ``holdings`` against ``config``.

    Args:
        holdings: Current positions, core position included.
        config: Core symbol, core minimum and relative target weights.

    Returns:
        One row per symbol: the core row first, then held symbols in holdings
        order, then target-only symbols in allocation order. Symbols with no
        value and no target weight are omitted.

    Raises:
        ConfigError: The configuration is incomplete or inconsistent.
        DataError: The holdings are empty, negative or conflicting.
    """
    config.validate()
    portfolio = Portfolio(list(holdings))
    portfolio.validate()

    values = {s: to_decimal(v) for s, v in portfolio.current_values().items()}
    targets = config.normalized_targets()
    core = config.core_symbol

    total = sum(values.values(), ZERO)
    minimum = to_decimal(config.core_minimum)
    investable = max(total - minimum, ZERO)
    core_value = values.get(core, ZERO)
    core_delta = core_value - minimum

    drafts: List[_Draft] = []
    core_draft = _Draft(symbol=core, value=core_value, is_core=True)
    for symbol in _ordered_symbols(values, targets, core):
        if symbol == core:
            drafts.append(core_draft)
            continue
        value = values.get(symbol, ZERO)
        target = targets.get(symbol)
        if value == 0 and not target:
            continue
        draft = _Draft(symbol=symbol, value=value, target=target)
        draft.liquidate = value > 0 and (not target or investable == 0)
        diff = (target or ZERO) * investable - value
        if diff > 0:
            draft.buy = diff
        elif diff < 0:
            draft.sell = -diff
        drafts.append(draft)

    raised = sum((d.sell - d.buy for d in drafts), ZERO)
    for d in drafts:
        d.sell = to_cents(d.sell)
        d.buy = to_cents(d.buy)

    if core_delta > 0:
        core_draft.retain = minimum
        core_draft.sell = to_cents(core_delta)
    elif core_delta < 0:
        core_draft.retain = core_value
        if to_cents(raised) < to_cents(-core_delta):
            # Only what the non-core rows actually raise, in cents, can go to the core.
            core_draft.buy = max(sum((d.sell - d.buy for d in drafts), ZERO), ZERO)
        else:
            core_draft.buy = to_cents(-core_delta)
    else:
        core_draft.retain = minimum
    _absorb_residual(drafts)

    rows = [_to_row(d, total) for d in drafts]
    logger.debug("Computed plan for account %s: %s", config.account_number, rows)
    return rows


def _to_row(draft: _Draft, total: Decimal) -> PlanRow:
    percent = draft.value / total * HUNDRED if total > 0 else ZERO
    return PlanRow(
        symbol=draft.symbol,
        value=float(draft.value),
        percent_of_total=float(percent),
        target_percent=None if draft.target is None else float(draft.target * HUNDRED),
        retain=None if draft.retain is None else float(to_cents(draft.retain)),
        sell=float(draft.sell) if draft.sell > 0 else None,
        buy=float(draft.buy) if draft.buy > 0 else None,
    )


def plan_totals(rows: Sequence[PlanRow]) -> Tuple[float, float]:
    """Total (sell, buy) across the plan, in cents-exact floats."""
    sell = sum((to_decimal(r.sell) for r in rows if r.sell), ZERO)
    buy = sum((to_decimal(r.buy) for r in rows if r.buy), ZERO)
    return float(sell), float(buy)


def core_shortfall(rows: Sequence[PlanRow], config: TargetConfig) -> float:
    """Dollars of the core minimum the plan could not fund (0 when fully met)."""
    core = next((r for r in rows if r.symbol == config.core_symbol), None)
    if core is None:
        return 0.0
    needed = to_decimal(config.core_minimum) - to_decimal(core.value)
    if needed <= 0:
        return 0.0
    funded = to_decimal(core.buy) if core.buy else ZERO
    return float(max(to_cents(needed) - funded, ZERO))
