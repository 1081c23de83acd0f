from __future__ import annotations
import math
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict

from common.errors import ConfigError


def to_decimal(value: float) -> Decimal:
    """Convert a float to Decimal through its repr so 0.1 stays 0.1."""
    return Decimal(str(value))


@dataclass(frozen=True)
class TargetConfig:
    account_number: str
    core_symbol: str
    core_minimum: float
    allocations: Dict[str, float] = field(default_factory=dict)  # symbol -> relative weight

    def validate(self) -> None:
        if not self.core_symbol:
            raise ConfigError("Core position symbol is missing")
        if self.core_minimum is None:
            raise ConfigError("Core position minimum is missing")
        if not math.isfinite(self.core_minimum):
            raise ConfigError(f"Core position minimum must be a finite number: {self.core_minimum}")
        if self.core_minimum < 0:
            raise ConfigError(f"Core position minimum cannot be negative: {self.core_minimum}")
        if not self.allocations:
            raise ConfigError("At least one target position is required")
        if self.core_symbol in self.allocations:
            raise ConfigError(f"Core position {self.core_symbol} cannot be in target list")
        for symbol, weight in self.allocations.items():
            if not math.isfinite(weight):
                raise ConfigError(f"Target weight for {symbol} must be a finite number: {weight}")
            if weight < 0:
                raise ConfigError(f"Target weight for {symbol} cannot be negative: {weight}")
        if sum(self.allocations.values()) <= 0:
            raise ConfigError("Target weights must not all be zero")

    def normalized_targets(self) -> Dict[str, Decimal]:
        """Target weights scaled to sum to 1, in allocation order."""
        weights = {s: to_decimal(w) for s, w in self.allocations.items()}
        total = sum(weights.values(), Decimal(0))
        if total <= 0:
            raise ConfigError("Target weights must not all be zero")
        return {s: w / total for s, w in weights.items()}
