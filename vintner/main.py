"""CLI entry point for the economy engine.

Usage:
    python -m vintner.main init --db game.db --company-id c1 --name "Domaine" --money 500000
    python -m vintner.main sale --db game.db --company-id c1 --customer shop --value 25000
    python -m vintner.main tick --db game.db --weeks 12 --phase Expansion
    python -m vintner.main report --db game.db --output history.csv
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

import pandas as pd

from vintner.config import EconomyPhase, EngineConfig
from vintner.data.models import Company, GameClock
from vintner.data.store import EngineStore
from vintner.runner import EconomyEngine, EngineConfigs

logger = logging.getLogger(__name__)

PHASE_MAP = {phase.value: phase for phase in EconomyPhase}


def _add_common(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--db",
        type=Path,
        default=EngineConfig().db_path,
        help="Engine database path (default: vintner.db)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse CLI arguments.

    Args:
        argv: Argument list (defaults to sys.argv[1:]).

    Returns:
        Parsed arguments namespace.
    """
    parser = argparse.ArgumentParser(
        description="Winery economy engine: prestige, credit rating, share price"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    # init command
    init_parser = subparsers.add_parser("init", help="Create a company")
    init_parser.add_argument("--company-id", required=True, help="Company key")
    init_parser.add_argument("--name", required=True, help="Company name")
    init_parser.add_argument(
        "--money", type=float, default=0.0, help="Starting cash (default: 0)"
    )
    init_parser.add_argument(
        "--shares",
        type=float,
        default=1_000_000.0,
        help="Shares outstanding (default: 1,000,000)",
    )
    init_parser.add_argument(
        "--fixed-assets", type=float, default=0.0, help="Fixed asset value"
    )
    init_parser.add_argument(
        "--current-assets", type=float, default=0.0, help="Non-cash liquid assets"
    )
    init_parser.add_argument(
        "--dividend-rate",
        type=float,
        default=0.0,
        help="Dividend per share per season (default: 0)",
    )
    init_parser.add_argument(
        "--founded-week",
        type=int,
        default=0,
        help="Absolute game week of founding (default: 0)",
    )
    _add_common(init_parser)

    # sale command
    sale_parser = subparsers.add_parser("sale", help="Record a sale")
    sale_parser.add_argument("--company-id", required=True, help="Company key")
    sale_parser.add_argument("--customer", required=True, help="Customer key")
    sale_parser.add_argument("--value", type=float, required=True, help="Sale value")
    sale_parser.add_argument(
        "--week",
        type=int,
        default=None,
        help="Absolute game week (default: next unprocessed week)",
    )
    _add_common(sale_parser)

    # tick command
    tick_parser = subparsers.add_parser(
        "tick", help="Advance the game clock and recompute every company"
    )
    tick_parser.add_argument(
        "--weeks", type=int, default=1, help="Weeks to simulate (default: 1)"
    )
    tick_parser.add_argument(
        "--phase",
        choices=sorted(PHASE_MAP),
        default=EconomyPhase.STABLE.value,
        help="Economy phase (default: Stable)",
    )
    tick_parser.add_argument(
        "--start-week",
        type=int,
        default=None,
        help="First absolute week to process (default: after last snapshot)",
    )
    _add_common(tick_parser)

    # report command
    report_parser = subparsers.add_parser(
        "report", help="Export weekly snapshot history to CSV"
    )
    report_parser.add_argument(
        "--output",
        type=Path,
        default=Path("snapshots.csv"),
        help="Output CSV path (default: snapshots.csv)",
    )
    report_parser.add_argument(
        "--company-id", default=None, help="Restrict to one company"
    )
    _add_common(report_parser)

    return parser.parse_args(argv)


def _next_week(store: EngineStore) -> int:
    """First absolute week without a snapshot."""
    history = store.snapshot_frame()
    if history.empty:
        companies = store.list_companies()
        return min((c.founded_week for c in companies), default=0)
    return int(history["week"].max()) + 1


def run_init(args: argparse.Namespace) -> None:
    store = EngineStore(args.db)
    company = Company(
        company_id=args.company_id,
        name=args.name,
        founded_week=args.founded_week,
        money=args.money,
        total_shares=args.shares,
        dividend_rate=args.dividend_rate,
        fixed_assets=args.fixed_assets,
        current_assets=args.current_assets,
    )
    store.add_company(company)
    logger.info("%s: created '%s' in %s", company.company_id, company.name, args.db)


def run_sale(args: argparse.Namespace) -> None:
    store = EngineStore(args.db)
    week = args.week if args.week is not None else _next_week(store)
    engine = EconomyEngine(store)
    recorded = engine.record_sale(
        args.company_id, args.customer, args.value, GameClock.from_absolute(week)
    )
    if not recorded:
        logger.error("%s: unknown company, sale not recorded", args.company_id)
        sys.exit(1)
    logger.info(
        "%s: sale of %.2f to %s recorded in week %d",
        args.company_id, args.value, args.customer, week,
    )


def run_tick(args: argparse.Namespace) -> None:
    """Execute the tick command.

    Args:
        args: Parsed CLI arguments (weeks, phase, start_week, db).
    """
    store = EngineStore(args.db)
    engine = EconomyEngine(store, EngineConfigs(engine=EngineConfig(db_path=args.db)))
    phase = PHASE_MAP[args.phase]

    start = args.start_week if args.start_week is not None else _next_week(store)
    for offset in range(args.weeks):
        clock = GameClock.from_absolute(start + offset)
        summary = engine.run_week(clock, phase)
        for row in summary.itertuples(index=False):
            logger.info(
                "%s: price %s, rating %s, prestige %s",
                row.company_id,
                "n/a" if pd.isna(row.share_price) else f"{row.share_price:.4f}",
                "n/a" if pd.isna(row.credit_rating) else f"{row.credit_rating:.3f}",
                "n/a" if pd.isna(row.prestige) else f"{row.prestige:.2f}",
            )


def run_report(args: argparse.Namespace) -> None:
    store = EngineStore(args.db)
    history = store.snapshot_frame(args.company_id)
    args.output.parent.mkdir(parents=True, exist_ok=True)
    history.to_csv(args.output, index=False)
    logger.info("Exported %d snapshots to %s", len(history), args.output)


def main(argv: list[str] | None = None) -> None:
    """Main entry point.

    Args:
        argv: Argument list (defaults to sys.argv[1:]).
    """
    args = _parse_args(argv)

    # Configure logging
    level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    if args.command == "init":
        run_init(args)
    elif args.command == "sale":
        run_sale(args)
    elif args.command == "tick":
        run_tick(args)
    elif args.command == "report":
        run_report(args)
    else:
        logger.error("Unknown command: %s", args.command)
        sys.exit(1)


if __name__ == "__main__":
    main()
