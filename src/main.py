"""
Main entry point for Recipe Costing.

Command-line interface over the service layer:

    python -m src.main init-db
    python -m src.main convert 500 ML L
    python -m src.main batches --dish 3
    python -m src.main summary
    python -m src.main low-stock
"""

import argparse
import logging
import sys
from decimal import Decimal
from typing import List, Optional

from src.services.catalog_service import get_low_stock_ingredients
from src.services.database import initialize_app_database
from src.services.exceptions import ServiceError
from src.services.production_service import get_batch_summary, list_batches
from src.services.unit_converter import convert_to_base_unit
from src.utils.config import get_config

_CENTS = Decimal("0.01")


def configure_logging(verbose: bool = False) -> None:
    """Configure root logging for command-line use."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# =============================================================================
# Commands
# =============================================================================


def init_db_cmd(args) -> int:
    config = get_config()
    print(f"{config.app_name} {config.app_version}")
    print(f"Initializing database v{config.database_version} ({config.environment})...")
    initialize_app_database()
    print(f"Database ready: {config.database_url}")
    return 0


def convert_cmd(args) -> int:
    result = convert_to_base_unit(
        args.quantity, args.unit, args.base_unit, strict=get_config().strict_units
    )
    decision = result.decision
    print(f"{result.quantity} {decision.normalized_base}")
    print(f"  status: {decision.status.value}")
    print(f"  {decision.message}")
    return 0


def batches_cmd(args) -> int:
    batches = list_batches(dish_id=args.dish, status=args.status)
    if not batches:
        print("No production batches found")
        return 0

    print(f"{'Batch':<32} {'Dish':<20} {'Produced':>10} {'Remaining':>10} {'Cost/Unit':>10}")
    print("-" * 86)
    for batch in batches:
        print(
            f"{batch['batch_number']:<32} {batch['dish_name']:<20} "
            f"{batch['qty_produced']:>10} {batch['qty_remaining']:>10} "
            f"{batch['cost_per_unit'].quantize(_CENTS):>10}"
        )
    return 0


def summary_cmd(args) -> int:
    summary = get_batch_summary()
    print(f"Batches:          {summary['batch_count']}")
    print(f"Total produced:   {summary['total_produced']}")
    print(f"Total remaining:  {summary['total_remaining']}")
    print(f"Remaining value:  {summary['remaining_value'].quantize(_CENTS)}")
    print(f"Remaining cost:   {summary['remaining_cost'].quantize(_CENTS)}")
    print(f"Projected profit: {summary['projected_profit'].quantize(_CENTS)}")
    return 0


def low_stock_cmd(args) -> int:
    ingredients = get_low_stock_ingredients()
    if not ingredients:
        print("All ingredients above reorder point")
        return 0

    for item in ingredients:
        print(
            f"{item['code']:<12} {item['name']:<30} "
            f"{item['current_stock']} {item['base_unit']} "
            f"(reorder at {item['reorder_point']}, short {item['shortfall']})"
        )
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="recipe-costing",
        description="Recipe costing and production batch tracking",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  Create the database:
    python -m src.main init-db

  Convert 500 ML into an ingredient stocked in litres:
    python -m src.main convert 500 ML L

  List batches for dish 3:
    python -m src.main batches --dish 3
""",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    config = get_config()
    parser.add_argument(
        "--version", action="version", version=f"{config.app_name} {config.app_version}"
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    init_parser = subparsers.add_parser("init-db", help="Create database tables")
    init_parser.set_defaults(func=init_db_cmd)

    convert_parser = subparsers.add_parser("convert", help="Convert a quantity into a base unit")
    convert_parser.add_argument("quantity", help="Quantity issued")
    convert_parser.add_argument("unit", help="Unit issued in (e.g. ML, gram, tray)")
    convert_parser.add_argument("base_unit", help="Ingredient base unit (e.g. L, KG, EGGS)")
    convert_parser.set_defaults(func=convert_cmd)

    batches_parser = subparsers.add_parser("batches", help="List production batches")
    batches_parser.add_argument("--dish", type=int, help="Only batches for this dish ID")
    batches_parser.add_argument("--status", help="Only batches with this status")
    batches_parser.set_defaults(func=batches_cmd)

    summary_parser = subparsers.add_parser("summary", help="Summarize production batch stock")
    summary_parser.set_defaults(func=summary_cmd)

    low_stock_parser = subparsers.add_parser("low-stock", help="List ingredients at or below reorder point")
    low_stock_parser.set_defaults(func=low_stock_cmd)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main CLI entry point.

    Returns:
        0 on success, 1 on error
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    if not getattr(args, "func", None):
        parser.print_help()
        return 1

    configure_logging(args.verbose)
    try:
        return args.func(args)
    except (ServiceError, ValueError) as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
