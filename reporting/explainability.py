from __future__ import annotations
from typing import Dict, Any, List
from engine.rebalance_engine import Recommendation
from portfolio.allocation import TargetConfig
from reporting.summary import plan_records, target_summary

def explainability_report(rec: Recommendation, config: TargetConfig) -> Dict[str, Any]:
    return {
        "targets": target_summary(config),
        "summary": rec.summary,
        "warnings": rec.warnings,
        "plan": plan_records(rec.rows),
        "trades": [t.__dict__ for t in rec.trades],
    }
