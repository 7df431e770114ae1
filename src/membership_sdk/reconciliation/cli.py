#!/usr/bin/env python3
"""Command-line interface for family-season reconciliation.

Usage:
    python -m membership_sdk.reconciliation.cli reconcile --family-id 1 --season-id 3
    python -m membership_sdk.reconciliation.cli reconcile -f 1 -s 3 --format text --output run.txt
    python -m membership_sdk.reconciliation.cli balance --family-id 1 --season-id 3
"""

import argparse
import asyncio
import json
import logging
import os
import sys
from typing import Optional

from ..database import DatabaseManager
from ..exceptions import MembershipError
from .report import ReportGenerator
from .service import ReconciliationService, reconcile_family_season

logging.basicConfig(
    level=os.getenv("MEMBERSHIP_LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_USAGE = 1
EXIT_FAILURE = 2


async def run_reconciliation_async(
    family_id: int,
    season_id: int,
    output_file: Optional[str] = None,
    output_format: str = "json",
) -> int:
    """Reconcile one family for one season and print the outcome.

    Args:
        family_id: Family to reconcile.
        season_id: Season to reconcile.
        output_file: Optional output file path.
        output_format: Output format ('json' or 'text').

    Returns:
        Exit code (0 for success, 2 for a domain failure).
    """
    db_manager = DatabaseManager()
    await db_manager.initialize()

    try:
        try:
            outcome = await reconcile_family_season(family_id, season_id, db_manager.session_factory)
        except MembershipError as e:
            logger.error(f"Reconciliation failed ({e.code}): {e}")
            print("Reconciliation failed.", file=sys.stderr)
            return EXIT_FAILURE

        generator = ReportGenerator(outcome)
        if output_format == "text":
            output = generator.to_summary_text()
        else:
            output = generator.to_json()

        if output_file:
            with open(output_file, "w") as f:
                f.write(output)
            logger.info(f"Report written to {output_file}")
        else:
            print(output)
        return EXIT_OK

    finally:
        await db_manager.shutdown()


async def run_balance_async(family_id: int, season_id: int) -> int:
    """Print the balance of a family for a season as JSON."""
    db_manager = DatabaseManager()
    await db_manager.initialize()

    try:
        try:
            async with db_manager.session() as session:
                balance = await ReconciliationService(session).family_balance(family_id, season_id)
        except MembershipError as e:
            logger.error(f"Balance failed ({e.code}): {e}")
            print("Balance computation failed.", file=sys.stderr)
            return EXIT_FAILURE

        print(json.dumps(balance.model_dump(mode="json"), indent=2))
        return EXIT_OK

    finally:
        await db_manager.shutdown()


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the CLI.

    Returns:
        Configured ArgumentParser.
    """
    parser = argparse.ArgumentParser(
        prog="reconciliation",
        description="Family-season membership reconciliation tools.",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    reconcile_parser = subparsers.add_parser(
        "reconcile",
        help="Recompute and store the memberships of a family for a season",
    )
    reconcile_parser.add_argument("--family-id", "-f", type=int, required=True, help="Family ID")
    reconcile_parser.add_argument("--season-id", "-s", type=int, required=True, help="Season ID")
    reconcile_parser.add_argument(
        "--output", "-o",
        help="Output file path (default: stdout)",
    )
    reconcile_parser.add_argument(
        "--format",
        choices=["json", "text"],
        default="json",
        help="Output format (default: json)",
    )

    balance_parser = subparsers.add_parser(
        "balance",
        help="Show what a family owes and has paid for a season",
    )
    balance_parser.add_argument("--family-id", "-f", type=int, required=True, help="Family ID")
    balance_parser.add_argument("--season-id", "-s", type=int, required=True, help="Season ID")

    return parser


def main(args: Optional[list] = None) -> int:
    """Main entry point for the CLI.

    Args:
        args: Optional list of command-line arguments (for testing).

    Returns:
        Exit code.
    """
    parser = create_parser()
    parsed_args = parser.parse_args(args)

    if not parsed_args.command:
        parser.print_help()
        return EXIT_USAGE

    if parsed_args.family_id <= 0 or parsed_args.season_id <= 0:
        logger.error("Family and season IDs must be positive integers")
        return EXIT_USAGE

    if parsed_args.command == "reconcile":
        return asyncio.run(run_reconciliation_async(
            family_id=parsed_args.family_id,
            season_id=parsed_args.season_id,
            output_file=parsed_args.output,
            output_format=parsed_args.format,
        ))

    if parsed_args.command == "balance":
        return asyncio.run(run_balance_async(
            family_id=parsed_args.family_id,
            season_id=parsed_args.season_id,
        ))

    return EXIT_USAGE


if __name__ == "__main__":
    sys.exit(main())
