"""Contribution rebalancer CLI.

Provides commands for:
- validate: Check target allocations
- allocate: Split one contribution across holdings
- forecast: Months of contributions until targets are reached
- summary: Portfolio overview

Holdings are read from a YAML file and never written back.
"""
from __future__ import annotations

import argparse
import json
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

import yaml

from common.config_loader import EngineSettings, load_all
from common.logging import configure_logging
from common.money import to_decimal
from engine.convergence_forecaster import forecast
from engine.deficit_allocator import allocate, check_amount
from engine.explanation_engine import explain_allocation, explain_forecast
from policy.allocation_policy import validate_allocations
from reporting.explainability import allocation_report, forecast_report
from reporting.summary import portfolio_summary


def _money_arg(value: str) -> Decimal:
    try:
        return Decimal(value)
    except InvalidOperation:
        raise argparse.ArgumentTypeError(f"not a number: {value!r}")


def _print_json(payload: Dict[str, Any]) -> None:
    print(json.dumps(payload, indent=2, default=str))


def cmd_validate(args, cfg) -> int:
    """Handle validate command: check target allocations."""
    result = validate_allocations(cfg.holdings, cfg.settings.validation_tolerance)

    if args.json:
        _print_json({"is_valid": result.is_valid, "total": result.total, "message": result.message})
    else:
        print(f"Target total: {result.total:.2f}%")
        print("Valid" if result.is_valid else f"Invalid: {result.message}")

    return 0 if result.is_valid else 1


def cmd_allocate(args, cfg) -> int:
    """Handle allocate command: split one contribution."""
    lines = allocate(cfg.holdings, args.amount, tolerance=cfg.settings.validation_tolerance)
    amount = check_amount(args.amount)

    if args.json:
        _print_json(allocation_report(cfg.holdings, lines, amount))
        return 0

    print(f"Contribution Allocation: {amount:,.2f}")
    print("=" * 50)
    if args.explain:
        rows = explain_allocation(lines)
    else:
        rows = [f"{ln.holding_id}: {ln.amount_to_invest:,.2f} -> {ln.new_value:,.2f}" for ln in lines]
    for row in rows:
        print("  " + row)
    return 0


def cmd_forecast(args, cfg) -> int:
    """Handle forecast command: simulate monthly contributions."""
    settings: EngineSettings = cfg.settings
    tolerance = args.tolerance if args.tolerance is not None else settings.tolerance_percent
    max_months = args.max_months if args.max_months is not None else settings.max_months

    result = forecast(
        cfg.holdings,
        args.monthly,
        tolerance_percent=tolerance,
        max_months=max_months,
        tolerance=settings.validation_tolerance,
    )

    if args.json:
        _print_json(forecast_report(cfg.holdings, result, check_amount(args.monthly), to_decimal(tolerance)))
        return 0

    print(f"Forecast: {check_amount(args.monthly):,.2f} per month, tolerance {tolerance}%")
    print("=" * 50)
    for line in explain_forecast(result):
        print("  " + line)
    print(f"\n  Projected value: {result.projected_value:,.2f}")

    if args.show_trajectory:
        print("\nTrajectory (% of portfolio):")
        print(result.trajectory.round(2).to_string())
    return 0


def cmd_summary(args, cfg) -> int:
    """Handle summary command: portfolio overview."""
    summary = portfolio_summary(cfg.holdings, cfg.settings.validation_tolerance)

    if args.json:
        _print_json(summary)
        return 0

    print("Portfolio Summary")
    print("=" * 50)
    print(f"  total_value: {summary['total_value']:,.2f}")
    print(f"  holdings_count: {summary['holdings_count']}")
    print(f"  allocation_valid: {summary['allocation_valid']}")
    print(f"  allocation_total: {summary['allocation_total']:.2f}%")
    print("\nWeights:")
    for holding_id, weight in summary["weights"].items():
        print(f"  {holding_id:12} {weight:6.2f}%")
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="cli.main",
        description="Contribution rebalancer: buy-only allocation toward target weights",
    )
    sub = p.add_subparsers(dest="cmd", required=True)

    # Common arguments for all commands
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--config", default="config/engine.yaml", help="Engine config file")
    common.add_argument("--holdings", default="config/holdings.yaml", help="Holdings file")
    common.add_argument("--json", action="store_true", help="Print the report as JSON")

    val = sub.add_parser("validate", parents=[common], help="Check target allocations")
    val.set_defaults(func=cmd_validate)

    alloc = sub.add_parser("allocate", parents=[common], help="Split one contribution")
    alloc.add_argument("--amount", type=_money_arg, required=True, help="Contribution amount")
    alloc.add_argument("--explain", action="store_true", help="Explain each line")
    alloc.set_defaults(func=cmd_allocate)

    fc = sub.add_parser("forecast", parents=[common], help="Months until targets are reached")
    fc.add_argument("--monthly", type=_money_arg, required=True, help="Monthly contribution")
    fc.add_argument("--tolerance", type=_money_arg, default=None, help="Tolerance in percentage points")
    fc.add_argument("--max-months", type=int, default=None, help="Simulation cap")
    fc.add_argument("--show-trajectory", action="store_true", help="Print month-by-month shares")
    fc.set_defaults(func=cmd_forecast)

    summ = sub.add_parser("summary", parents=[common], help="Portfolio overview")
    summ.set_defaults(func=cmd_summary)

    return p


def run(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        cfg = load_all(args.config, args.holdings)
    except (FileNotFoundError, ValueError, yaml.YAMLError) as e:
        print(f"Error: {e}")
        return 1

    configure_logging(cfg.settings.log_level, cfg.settings.log_json)

    try:
        return args.func(args, cfg)
    except ValueError as e:
        print(f"Error: {e}")
        return 1


def main():
    """Main entry point."""
    raise SystemExit(run())


if __name__ == "__main__":
    main()
