"""Brokerage positions export reader.

Reads the "Portfolio Positions" CSV downloaded from Fidelity and turns it into
holdings for the allocation engine. Only the symbol and current value matter
for the calculation; the remaining columns are kept for display.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, List, Optional, Tuple

import pandas as pd

from common.errors import DataError
from portfolio.holding import Holding

logger = logging.getLogger(__name__)

CORE_MARKER = "**"
REQUIRED_COLUMNS = ("Symbol", "Current Value")
NON_POSITION_SYMBOLS = frozenset(["PENDING ACTIVITY"])


@dataclass(frozen=True)
class Position:
    """A single row of the positions export."""

    account_number: str
    account_name: str
    symbol: str
    description: str
    current_value: float
    percent_of_account: Optional[float] = None
    is_core: bool = False


def _clean(raw: Any) -> str:
    if raw is None or pd.isna(raw):
        return ""
    return str(raw).strip()


def parse_dollar(raw: Any) -> Optional[float]:
    """Parse ``$1,234.56`` style amounts; blanks and ``--`` give None.

    Raises:
        DataError: The amount is NaN or infinite.
    """
    s = _clean(raw).replace("$", "").replace(",", "")
    if s in ("", "--"):
        return None
    try:
        value = float(s)
    except ValueError:
        return None
    if not math.isfinite(value):
        raise DataError(f"Dollar amount is not finite: {raw!r}")
    return value


def parse_percent(raw: Any) -> Optional[float]:
    s = _clean(raw).replace("%", "")
    if s in ("", "--"):
        return None
    try:
        return float(s)
    except ValueError:
        return None


def read_export(path: str | Path) -> pd.DataFrame:
    p = Path(path)
    if not p.is_file():
        raise DataError(f"Positions file {p} not found")
    try:
        df = pd.read_csv(
            p,
            dtype=str,
            index_col=False,
            skip_blank_lines=True,
            on_bad_lines="skip",
            encoding="utf-8-sig",
        )
    except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as e:
        raise DataError(f"Unable to read positions file {p}: {e}") from e

    df.columns = [str(c).strip() for c in df.columns]
    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        raise DataError(f"Positions file {p} is missing columns: {', '.join(missing)}")
    return df


def load_positions(path: str | Path, account_number: Optional[str] = None) -> List[Position]:
    """Load positions from an export, optionally keeping a single account.

    Rows without a symbol or a usable current value (disclaimer footers,
    pending activity) are skipped.
    """
    df = read_export(path)
    if account_number is not None and "Account Number" not in df.columns:
        raise DataError(f"Positions file {path} has no Account Number column")

    positions: List[Position] = []
    for record in df.to_dict("records"):
        raw_symbol = _clean(record.get("Symbol"))
        if not raw_symbol or raw_symbol.upper() in NON_POSITION_SYMBOLS:
            logger.debug("Skipping non-position row: %s", record)
            continue
        account = _clean(record.get("Account Number"))
        if account_number is not None and account != account_number:
            continue

        value = parse_dollar(record.get("Current Value"))
        if value is None:
            logger.debug("Skipping %s without a current value", raw_symbol)
            continue

        positions.append(
            Position(
                account_number=account,
                account_name=_clean(record.get("Account Name")),
                symbol=raw_symbol[: -len(CORE_MARKER)] if raw_symbol.endswith(CORE_MARKER) else raw_symbol,
                description=_clean(record.get("Description")),
                current_value=value,
                percent_of_account=parse_percent(record.get("Percent Of Account")),
                is_core=raw_symbol.endswith(CORE_MARKER),
            )
        )

    logger.info("Loaded %d positions from %s", len(positions), path)
    return positions


def to_holdings(positions: Iterable[Position], ignore: Iterable[str] = ()) -> List[Holding]:
    skip = {s.upper() for s in ignore}
    return [Holding(p.symbol, p.current_value) for p in positions if p.symbol.upper() not in skip]


def split_ignored(positions: Iterable[Position], ignore: Iterable[str]) -> Tuple[List[str], List[str]]:
    """Split ignore symbols into (held, not held) for this export."""
    held = {p.symbol.upper() for p in positions}
    dropped = [s for s in ignore if s.upper() in held]
    missing = [s for s in ignore if s.upper() not in held]
    return dropped, missing


def unmarked_core(positions: Iterable[Position], core_symbol: str) -> bool:
    """True when the core symbol is held but the export does not flag it as core."""
    held = [p for p in positions if p.symbol == core_symbol]
    return bool(held) and not any(p.is_core for p in held)
