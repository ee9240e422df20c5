"""
Command-line entry point for PCB Tracker.

Usage Examples:
    # Create the database tables
    pcb-tracker init-db

    # Check whether 10 boards of PCB 1 can be built
    pcb-tracker preview 1 10

    # Record the run (deducts stock)
    pcb-tracker produce 1 10 --user-id 3 --notes "Batch A"

    # Undo production entry 42 (restores stock)
    pcb-tracker revert 42

    # Pending reorders, most urgent first
    pcb-tracker triggers --priority CRITICAL

    # Mark trigger 7 as ordered
    pcb-tracker trigger-status 7 ORDERED
"""

import argparse
import json
import logging
import sys
from datetime import date
from typing import Any, List, Optional

from pcb_tracker.services import (
    analytics_service,
    component_service,
    procurement_service,
    production_service,
)
from pcb_tracker.services.database import initialize_app_database
from pcb_tracker.services.exceptions import ServiceError
from pcb_tracker.utils.config import get_config
from pcb_tracker.utils.constants import APP_NAME, APP_VERSION
from pcb_tracker.utils.error_handler import handle_error

logger = logging.getLogger(__name__)


def _print_json(data: Any) -> None:
    print(json.dumps(data, indent=2, default=str))


def init_db(args) -> int:
    """Create the database tables."""
    initialize_app_database()
    print(f"Database ready: {get_config().database_url}")
    return 0


def preview(args) -> int:
    """Dry-run a production entry."""
    result = production_service.preview_production(args.pcb_id, args.quantity)
    _print_json(result)
    return 0 if result["can_produce"] else 1


def produce(args) -> int:
    """Record a production entry."""
    result = production_service.create_production_entry(
        args.pcb_id,
        args.quantity,
        user_id=args.user_id,
        production_date=args.date,
        notes=args.notes,
    )
    entry = result["production_entry"]
    print(
        f"Recorded production entry {entry['id']}: {entry['quantity_produced']} x "
        f"{entry['pcb_name']} ({result['total_components_updated']} components updated)"
    )
    for trigger in result["triggers_created"]:
        print(
            f"  Reorder {trigger['part_number']}: {trigger['priority']}, "
            f"recommended {trigger['recommended_order_quantity']}"
        )
    return 0


def revert(args) -> int:
    """Delete a production entry and restore its stock."""
    result = production_service.delete_production_entry(args.entry_id)
    print(f"Reverted production entry {args.entry_id}")
    for item in result["restored_components"]:
        print(
            f"  {item['component_name']}: +{item['quantity_restored']} "
            f"({item['stock_before']} -> {item['stock_after']})"
        )
    return 0


def triggers(args) -> int:
    """List procurement triggers."""
    status = None if args.status == "ALL" else args.status
    _print_json(procurement_service.list_triggers(status=status, priority=args.priority))
    return 0


def trigger_status(args) -> int:
    """Move a procurement trigger forward."""
    _print_json(procurement_service.update_status(args.trigger_id, args.status))
    return 0


def anomaly(args) -> int:
    """Check today's consumption against the trailing average."""
    _print_json(analytics_service.detect_consumption_anomaly(today=args.date))
    return 0


def low_stock(args) -> int:
    """List components below 20% of monthly requirement."""
    _print_json(component_service.get_low_stock_components())
    return 0


def _date_arg(value: str):
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"'{value}' is not a YYYY-MM-DD date")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pcb-tracker",
        description=f"{APP_NAME} {APP_VERSION} - PCB component inventory and production tracking",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    init_parser = subparsers.add_parser("init-db", help="Create database tables")
    init_parser.set_defaults(func=init_db)

    preview_parser = subparsers.add_parser("preview", help="Check stock for a production run")
    preview_parser.add_argument("pcb_id", type=int)
    preview_parser.add_argument("quantity", type=int)
    preview_parser.set_defaults(func=preview)

    produce_parser = subparsers.add_parser("produce", help="Record a production run")
    produce_parser.add_argument("pcb_id", type=int)
    produce_parser.add_argument("quantity", type=int)
    produce_parser.add_argument("--user-id", type=int, required=True)
    produce_parser.add_argument("--date", type=_date_arg, default=None, help="YYYY-MM-DD")
    produce_parser.add_argument("--notes", default=None)
    produce_parser.set_defaults(func=produce)

    revert_parser = subparsers.add_parser("revert", help="Revert a production entry")
    revert_parser.add_argument("entry_id", type=int)
    revert_parser.set_defaults(func=revert)

    triggers_parser = subparsers.add_parser("triggers", help="List procurement triggers")
    triggers_parser.add_argument(
        "--status", choices=["PENDING", "ORDERED", "FULFILLED", "ALL"], default="PENDING"
    )
    triggers_parser.add_argument("--priority", choices=["CRITICAL", "HIGH", "MEDIUM", "LOW"])
    triggers_parser.set_defaults(func=triggers)

    status_parser = subparsers.add_parser("trigger-status", help="Update a trigger's status")
    status_parser.add_argument("trigger_id", type=int)
    status_parser.add_argument("status")
    status_parser.set_defaults(func=trigger_status)

    anomaly_parser = subparsers.add_parser("anomaly", help="Consumption anomaly check")
    anomaly_parser.add_argument("--date", type=_date_arg, default=None, help="YYYY-MM-DD")
    anomaly_parser.set_defaults(func=anomaly)

    low_stock_parser = subparsers.add_parser("low-stock", help="List low-stock components")
    low_stock_parser.set_defaults(func=low_stock)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=get_config().log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if not args.command:
        parser.print_help()
        return 1

    try:
        return args.func(args)
    except ServiceError as e:
        title, message = handle_error(e, operation=args.command)
        print(f"ERROR: {title}: {message}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
