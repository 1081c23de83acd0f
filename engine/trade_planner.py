"""Trade planning.

Flattens a rebalancing plan into the individual sell and buy actions an
investor would place, sells first so that they fund the buys.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence

from engine.allocation_engine import PlanRow


@dataclass(frozen=True)
class Trade:
    """A recommended trade action."""

    account_id: str
    symbol: str
    action: str  # BUY/SELL
    value: float
    reason: str

    def __str__(self) -> str:
        """Format trade for display."""
        return f"{self.account_id}: {self.action} ${self.value:,.2f} {self.symbol}"


def _sell_reason(row: PlanRow, core_symbol: str) -> str:
    if row.symbol == core_symbol:
        return "Release core cash above minimum"
    if row.target_percent is None:
        return "Liquidate position with no target allocation"
    if row.target_percent == 0:
        return "Liquidate position with zero target weight"
    return f"Reduce toward {row.target_percent:.1f}% target"


def _buy_reason(row: PlanRow, core_symbol: str) -> str:
    if row.symbol == core_symbol:
        return "Restore core position minimum"
    if row.value == 0:
        return f"Open position at {row.target_percent:.1f}% target"
    return f"Increase toward {row.target_percent:.1f}% target"


def plan_trades(rows: Sequence[PlanRow], account_id: str, core_symbol: str) -> List[Trade]:
    sells: List[Trade] = []
    buys: List[Trade] = []

    for row in rows:
        if row.sell:
            sells.append(Trade(account_id, row.symbol, "SELL", row.sell, _sell_reason(row, core_symbol)))
        elif row.buy:
            buys.append(Trade(account_id, row.symbol, "BUY", row.buy, _buy_reason(row, core_symbol)))

    return sells + buys
