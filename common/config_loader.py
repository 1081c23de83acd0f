from __future__ import annotations
import logging
import math
import os
from pathlib import Path
from typing import Any, Dict
import yaml

from common.errors import ConfigError
from portfolio.allocation import TargetConfig

logger = logging.getLogger(__name__)

APP_NAME = "investment-adjuster"
TARGET_FILE = "target.yml"

def load_yaml(path: str | Path) -> Dict[str, Any]:
    p = Path(path)
    with p.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}

def default_target_path() -> Path:
    base = os.environ.get("XDG_CONFIG_HOME")
    config_dir = Path(base) if base else Path.home() / ".config"
    return config_dir / APP_NAME / TARGET_FILE

def _number(value: Any, name: str) -> float:
    if isinstance(value, bool) or value is None:
        raise ConfigError(f"{name} must be a number, got {value!r}")
    try:
        number = float(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{name} must be a number, got {value!r}") from e
    if not math.isfinite(number):
        raise ConfigError(f"{name} must be a finite number, got {value!r}")
    return number

def parse_target_config(raw: Dict[str, Any]) -> TargetConfig:
    """Build a TargetConfig from the target file's mapping.

    Expected layout::

        AccountNumber: Z12345678
        CorePosition:
          Symbol: FZFXX
          Minimum: 2000
        Positions:
          - Symbol: FXNAX
            Percent: 25
    """
    if not isinstance(raw, dict):
        raise ConfigError("Target file must contain a mapping at the top level")

    account = raw.get("AccountNumber")
    if account is None or str(account).strip() == "":
        raise ConfigError("Target file is missing AccountNumber")

    core = raw.get("CorePosition")
    if not isinstance(core, dict):
        raise ConfigError("Target file is missing CorePosition")
    core_symbol = str(core.get("Symbol") or "").strip()
    if not core_symbol:
        raise ConfigError("CorePosition is missing Symbol")
    if "Minimum" not in core:
        raise ConfigError("CorePosition is missing Minimum")
    core_minimum = _number(core["Minimum"], "CorePosition.Minimum")

    positions = raw.get("Positions")
    if not isinstance(positions, list) or not positions:
        raise ConfigError("Target file must list at least one entry under Positions")

    allocations: Dict[str, float] = {}
    for i, pos in enumerate(positions):
        if not isinstance(pos, dict):
            raise ConfigError(f"Positions[{i}] must be a mapping with Symbol and Percent")
        symbol = str(pos.get("Symbol") or "").strip()
        if not symbol:
            raise ConfigError(f"Positions[{i}] is missing Symbol")
        if symbol in allocations:
            raise ConfigError(f"Position {symbol} is listed more than once")
        allocations[symbol] = _number(pos.get("Percent"), f"Positions[{i}].Percent")

    config = TargetConfig(
        account_number=str(account).strip(),
        core_symbol=core_symbol,
        core_minimum=core_minimum,
        allocations=allocations,
    )
    config.validate()
    return config

def load_target_config(path: str | Path | None = None) -> TargetConfig:
    p = Path(path) if path is not None else default_target_path()
    logger.info("Loading target allocation from %s", p)
    try:
        raw = load_yaml(p)
    except FileNotFoundError as e:
        raise ConfigError(
            f"Target file {p} not found. Create it or pass --target with the path to one."
        ) from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Target file {p} is not valid YAML: {e}") from e
    return parse_target_config(raw)
