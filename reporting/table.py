"""Plan table rendering."""
from __future__ import annotations

from typing import List, Optional, Sequence

import pandas as pd

from engine.allocation_engine import PlanRow

COLUMNS = ["Symbol", "Value", "% of Total", "Target %", "Retain", "Sell", "Buy"]


def fmt_dollar(value: Optional[float]) -> str:
    return "" if value is None else f"${value:,.2f}"


def fmt_percent(value: Optional[float]) -> str:
    return "" if value is None else f"{value:.1f}%"


def plan_frame(rows: Sequence[PlanRow]) -> pd.DataFrame:
    """Plan rows as a DataFrame; inapplicable cells stay NaN."""
    records = [
        {
            "Symbol": r.symbol,
            "Value": r.value,
            "% of Total": r.percent_of_total,
            "Target %": r.target_percent,
            "Retain": r.retain,
            "Sell": r.sell,
            "Buy": r.buy,
        }
        for r in rows
    ]
    return pd.DataFrame.from_records(records, columns=COLUMNS)


def render_plan(rows: Sequence[PlanRow], account_number: str) -> str:
    display = pd.DataFrame(
        {
            "Symbol": [r.symbol for r in rows],
            "Value": [fmt_dollar(r.value) for r in rows],
            "% of Total": [fmt_percent(r.percent_of_total) for r in rows],
            "Target %": [fmt_percent(r.target_percent) for r in rows],
            "Retain": [fmt_dollar(r.retain) for r in rows],
            "Sell": [fmt_dollar(r.sell) for r in rows],
            "Buy": [fmt_dollar(r.buy) for r in rows],
        },
        columns=COLUMNS,
    )
    lines: List[str] = [f"Account {account_number}", display.to_string(index=False)]
    return "\n".join(lines)
