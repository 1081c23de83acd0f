from __future__ import annotations
from dataclasses import dataclass

@dataclass(frozen=True)
class Holding:
    symbol: str
    value: float  # current dollar value
