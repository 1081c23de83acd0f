from __future__ import annotations
from typing import Dict, Any, List
from engine.allocation_engine import PlanRow
from portfolio.allocation import TargetConfig

def target_summary(config: TargetConfig) -> Dict[str, Any]:
    return {
        "account_number": config.account_number,
        "core": {"symbol": config.core_symbol, "minimum": config.core_minimum},
        "targets": {s: float(w * 100) for s, w in config.normalized_targets().items()},
    }

def target_lines(config: TargetConfig) -> List[str]:
    s = target_summary(config)
    lines = [f"Allocation targets for account {s['account_number']}"]
    lines += [f" - {sym}: {pct:.1f}%" for sym, pct in s["targets"].items()]
    lines.append(f" - Core position({config.core_symbol}): ${config.core_minimum:,.2f} Minimum")
    return lines

def plan_records(rows: List[PlanRow]) -> List[Dict[str, Any]]:
    return [dict(r.__dict__) for r in rows]
