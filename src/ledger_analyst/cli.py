"""Command-line entry point.

Usage:
    # Ask a question (no thread history)
    ledger-analyst ask "What is our cash balance?"

    # Rebuild the balance cache from a full ledger scan
    ledger-analyst refresh-cache

    # Show how fresh the cached balances are
    ledger-analyst cache-status

    # Trial balance as of a date (always scans the ledger)
    ledger-analyst trial-balance --as-of 2025-06-30

    # Create the snapshot table in DATABASE_URL
    ledger-analyst init-db
"""

import argparse
import asyncio
import json
import sys
from decimal import Decimal
from typing import Any

import structlog

from ledger_analyst.config import configure_logging
from ledger_analyst.ledger.workflows import format_currency
from ledger_analyst.service import AnalystService

logger = structlog.get_logger(__name__)

TOP_BALANCES = 10


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ledger-analyst",
        description="Finance Q&A over the general ledger and budget sheets",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Override LOG_LEVEL",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    ask = subparsers.add_parser("ask", help="Ask the analyst a question")
    ask.add_argument("question", nargs="+", help="The question to ask")
    ask.add_argument("--thread", default=None, help="Conversation thread id")

    subparsers.add_parser("refresh-cache", help="Recompute balances from the full ledger")
    subparsers.add_parser("cache-status", help="Show balance cache freshness")
    subparsers.add_parser("categories", help="List account types and subtypes")
    trial = subparsers.add_parser("trial-balance", help="Show the trial balance")
    trial.add_argument("--type", dest="account_type", default=None, help="Account type filter")
    trial.add_argument("--as-of", dest="as_of_date", default=None, help="Cutoff date, YYYY-MM-DD")
    subparsers.add_parser("init-db", help="Create the balance snapshot table")
    return parser


def _print_json(data: Any) -> None:
    print(json.dumps(data, indent=2, default=str))


async def _refresh_cache(service: AnalystService) -> int:
    balances = await service.workflows.refresh_balance_cache(force=True)
    status = await service.workflows.get_cache_status()

    with_activity = [b for b in balances.values() if b.transaction_count]
    print(f"Cached balances for {len(balances)} accounts ({len(with_activity)} with activity)")
    print("Largest balances:")
    for balance in sorted(with_activity, key=lambda b: abs(b.balance), reverse=True)[:TOP_BALANCES]:
        print(f"  {balance.code:<10} {balance.name[:40]:<40} {format_currency(balance.balance):>18}")

    total = sum((b.balance for b in with_activity), Decimal("0"))
    logger.info("cache_refreshed", accounts=len(balances), net=str(total))
    print(status["message"])
    return 0


async def run_command(args: argparse.Namespace, service: AnalystService) -> int:
    if args.command == "ask":
        result = await service.ask(" ".join(args.question), thread_id=args.thread)
        print(result.text)
        return 0 if result.success else 1

    if args.command == "refresh-cache":
        return await _refresh_cache(service)

    if args.command == "cache-status":
        _print_json(await service.workflows.get_cache_status())
        return 0

    if args.command == "categories":
        result = await service.workflows.list_account_categories()
        _print_json(result)
        return 1 if result.get("is_error") else 0

    if args.command == "trial-balance":
        result = await service.workflows.trial_balance(
            account_type=args.account_type, as_of_date=args.as_of_date
        )
        _print_json(result)
        return 1 if result.get("is_error") else 0

    if args.command == "init-db":
        if service.store is None:
            print("DATABASE_URL is not set", file=sys.stderr)
            return 1
        await asyncio.to_thread(service.store.init_schema)
        print("Balance cache table ready")
        return 0

    raise ValueError(f"Unknown command: {args.command}")


async def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(level=args.log_level)

    try:
        async with AnalystService() as service:
            return await run_command(args, service)
    except KeyboardInterrupt:
        logger.info("interrupted")
        return 130
    except Exception as e:
        logger.exception("command_failed", command=args.command, error=str(e))
        return 1


def run() -> None:
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
