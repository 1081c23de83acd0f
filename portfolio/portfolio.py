from __future__ import annotations
import math
from dataclasses import dataclass
from typing import Dict, List
from common.errors import DataError
from portfolio.holding import Holding

@dataclass
class Portfolio:
    holdings: List[Holding]

    def validate(self) -> None:
        if not self.holdings:
            raise DataError("No holdings found")
        for h in self.holdings:
            if not h.symbol:
                raise DataError("Holding is missing a symbol")
            if not math.isfinite(h.value):
                raise DataError(f"Holding {h.symbol} has a non-finite value: {h.value}")
            if h.value < 0:
                raise DataError(f"Holding {h.symbol} has a negative value: {h.value}")
        self.current_values()

    def current_values(self) -> Dict[str, float]:
        """Symbol -> value in first-seen order; identical duplicates collapse."""
        vals: Dict[str, float] = {}
        for h in self.holdings:
            if h.symbol in vals:
                if vals[h.symbol] != h.value:
                    raise DataError(
                        f"Duplicate holding {h.symbol} with conflicting values: "
                        f"{vals[h.symbol]} != {h.value}"
                    )
                continue
            vals[h.symbol] = float(h.value)
        return vals
