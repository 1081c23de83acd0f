"""Investment adjuster CLI.

Reads a brokerage positions export and a target allocation file, then prints
the buys and sells that move the account toward its targets while keeping the
core position minimum.
"""
from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import List, Optional

from common.config_loader import load_target_config
from common.errors import ConfigError, DataError
from engine.explanation_engine import explain_trades
from engine.rebalance_engine import recommend
from portfolio.positions import load_positions, split_ignored, to_holdings, unmarked_core
from reporting.explainability import explainability_report
from reporting.summary import target_lines
from reporting.table import plan_frame, render_plan

EXIT_OK = 0
EXIT_CONFIG_ERROR = 2
EXIT_DATA_ERROR = 3


def configure_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG
    logging.basicConfig(
        level=level,
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def split_symbols(values: Optional[List[str]]) -> List[str]:
    """Flatten repeated and comma-separated --ignore values."""
    out: List[str] = []
    for v in values or []:
        out += [s.strip() for s in v.split(",") if s.strip()]
    return out


def run(args) -> int:
    """Handle a single adjust run."""
    config = load_target_config(args.target)
    ignored = split_symbols(args.ignore)
    targeted = {s.upper() for s in [config.core_symbol, *config.allocations]}
    for symbol in ignored:
        if symbol.upper() in targeted:
            raise ConfigError(f"Cannot ignore {symbol}: it has a target allocation")

    positions = load_positions(args.current_allocations, account_number=config.account_number)
    holdings = to_holdings(positions, ignore=ignored)
    dropped, not_held = split_ignored(positions, ignored)

    rec = recommend(holdings, config, ignored=dropped, not_held=not_held)
    if unmarked_core(positions, config.core_symbol):
        rec.warnings.append(
            f"Found position {config.core_symbol} but it is not marked as the core position"
        )

    if args.format == "json":
        print(json.dumps(explainability_report(rec, config), indent=2))
        return EXIT_OK
    if args.format == "csv":
        print(plan_frame(rec.rows).to_csv(index=False), end="")
        return EXIT_OK

    for line in target_lines(config):
        print(line)
    print()
    print(render_plan(rec.rows, config.account_number))

    if rec.warnings:
        print("\nWarnings:")
        for w in rec.warnings:
            print(f"  - {w}")

    if not rec.trades:
        print("\nNo trades needed: the account already matches its targets.")
        return EXIT_OK

    print("\nIn order to maintain your target allocations, the following actions are necessary.")
    if args.explain:
        for line in explain_trades(rec.trades):
            print("  " + line)
        return EXIT_OK
    print("Sell:")
    for t in rec.trades:
        if t.action == "SELL":
            print(f" - {t.symbol}: {t.value:,.2f}")
    print("Buy:")
    for t in rec.trades:
        if t.action == "BUY":
            print(f" - {t.symbol}: {t.value:,.2f}")

    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="investment-adjuster",
        description="Compute the buys and sells that bring an account back to its target allocation",
    )
    p.add_argument(
        "current_allocations",
        help="Current allocation CSV downloaded from Fidelity",
    )
    p.add_argument(
        "-t",
        "--target",
        default=None,
        help="Target allocation file (default: ~/.config/investment-adjuster/target.yml)",
    )
    p.add_argument(
        "-i",
        "--ignore",
        action="append",
        help="Ignore the specified holdings when calculating target allocations (comma separated)",
    )
    p.add_argument("--explain", action="store_true", help="Include the reason for each trade")
    p.add_argument(
        "--format",
        choices=["table", "json", "csv"],
        default="table",
        help="Output format",
    )
    p.add_argument("-v", "--verbose", action="count", default=0, help="Increase log verbosity")
    return p


def main(argv: Optional[List[str]] = None):
    """Main entry point."""
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose)

    try:
        code = run(args)
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        print("Edit the target allocation file and try again.", file=sys.stderr)
        code = EXIT_CONFIG_ERROR
    except DataError as e:
        print(f"Input error: {e}", file=sys.stderr)
        code = EXIT_DATA_ERROR
    raise SystemExit(code)


if __name__ == "__main__":
    main()
