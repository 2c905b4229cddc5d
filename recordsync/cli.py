"""
Record Reconciliation CLI

Reconciles spreadsheet extracts against a PostgreSQL or ScyllaDB store and
writes duplicate and comparison reports.

Usage:
    recordsync run --config config.yaml
    recordsync run --config config.yaml --collection hulu.scope --workers 4
    recordsync run --config config.yaml --no-reports --pushgateway localhost:9091
    recordsync validate --config config.yaml
    recordsync list --config config.yaml
"""

import argparse
import json
import logging
import sys
from typing import List, Optional

from recordsync.config import config_to_dict, load_config
from recordsync.monitoring.metrics import ReconciliationMetrics
from recordsync.reconciliation.errors import ReconciliationError
from recordsync.runner import ReconciliationRunner
from recordsync.utils.logging_config import setup_logging

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="recordsync",
        description="Record reconciliation between spreadsheets and a database",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    # Run command
    run_parser = subparsers.add_parser("run", help="Reconcile collections")
    run_parser.add_argument("--config", required=True, help="Path to YAML configuration")
    run_parser.add_argument("--collection", action="append", dest="collections",
                            help="Collection to run (repeatable, default: all)")
    run_parser.add_argument("--workers", type=int, help="Collections processed in parallel")
    run_parser.add_argument("--no-reports", action="store_true", help="Skip writing report files")
    run_parser.add_argument("--pushgateway", help="Prometheus Pushgateway address")

    # Validate command
    validate_parser = subparsers.add_parser("validate", help="Validate configuration")
    validate_parser.add_argument("--config", required=True, help="Path to YAML configuration")

    # List command
    list_parser = subparsers.add_parser("list", help="List configured collections")
    list_parser.add_argument("--config", required=True, help="Path to YAML configuration")

    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose logging")
    parser.add_argument("--json-logs", action="store_true", default=None, help="Emit JSON log lines")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(verbose=args.verbose, json_logging=args.json_logs)

    if not args.command:
        parser.print_help()
        return 1

    try:
        config = load_config(args.config)

        if args.command == "validate":
            print(json.dumps(config_to_dict(config), indent=2))
            return 0

        if args.command == "list":
            collections = [
                {
                    "name": c.name,
                    "dedup_keys": list(c.dedup_keys),
                    "compare_keys": list(c.compare_keys),
                }
                for c in config.collections
            ]
            print(json.dumps(collections, indent=2))
            return 0

        metrics = ReconciliationMetrics()
        runner = ReconciliationRunner(config, metrics=metrics, write_reports=not args.no_reports)
        summary = runner.run(collection_names=args.collections, workers=args.workers)
        print(json.dumps(summary, indent=2, default=str))

        if args.pushgateway:
            try:
                metrics.push(args.pushgateway)
            except OSError as e:
                logger.warning(f"Failed to push metrics to {args.pushgateway}: {e}")

        return 0 if summary["failed"] == 0 else 1

    except ReconciliationError as e:
        logger.error(f"Error: {e}")
        return 1

    except Exception as e:
        logger.error(f"Error: {e}", exc_info=args.verbose)
        return 1


if __name__ == "__main__":
    sys.exit(main())
