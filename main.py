"""
Command line entry point for the channel ledger.

Usage:
    python main.py import-products input/listing.xlsx
    python main.py import-orders flipkart input/flipkart_orders.xlsx
    python main.py sync
    python main.py history <product-id>
"""

import argparse
import logging
import sys

from channel_ledger import data_handler, settings
from channel_ledger.errors import LedgerError
from channel_ledger.history import HistoryProjector
from channel_ledger.logger import setup_logger
from channel_ledger.pipelines.catalog import ProductImportPipeline
from channel_ledger.pipelines.orders import OrderImportPipeline
from channel_ledger.reconciler import SyncReconciler
from channel_ledger.repository import JsonFileRepository
from channel_ledger.schemas import SyncProgress

logger = logging.getLogger("channel_ledger")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="channel_ledger",
        description="Marketplace reconciliation and inventory ledger",
    )
    parser.add_argument(
        "--store",
        default=str(settings.STORE_PATH),
        metavar="FILE",
        help="JSON store file (default: STORE_PATH from .env)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    sub = parser.add_subparsers(dest="command", required=True)

    products = sub.add_parser("import-products", help="Import a product listing spreadsheet")
    products.add_argument("file", help="XLSX or CSV export")
    products.add_argument("--dry-run", action="store_true", help="Classify only, write nothing")

    orders = sub.add_parser("import-orders", help="Upload a marketplace order export")
    orders.add_argument("channel", choices=[c.lower() for c in settings.CHANNEL_ORDER])
    orders.add_argument("file", help="XLSX or CSV export")
    orders.add_argument("--dry-run", action="store_true", help="Classify only, write nothing")

    sync = sub.add_parser("sync", help="Create invoices for unsynced orders and update stock")
    sync.add_argument("--dry-run", action="store_true", help="Compute the tally without writing")
    sync.add_argument("--no-webhook", action="store_true", help="Do not post the report")

    history = sub.add_parser("history", help="Show a product's purchase/sale ledger")
    history.add_argument("product_id")

    return parser


def print_progress(progress: SyncProgress) -> None:
    logger.debug(f"  [{progress.current}/{progress.total}] added={progress.added}")


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logger("channel_ledger", logging.DEBUG if args.verbose else logging.INFO)

    try:
        repository = JsonFileRepository(args.store)

        if args.command == "import-products":
            stats = ProductImportPipeline(args.file, repository, dry_run=args.dry_run).run()
            logger.info(f"Imported: {stats.new_count} new, {stats.duplicate_count} duplicates.")

        elif args.command == "import-orders":
            stats = OrderImportPipeline(args.channel, args.file, repository, dry_run=args.dry_run).run()
            logger.info(f"Orders: {stats.new_count} new, {stats.duplicate_count} already stored.")

        elif args.command == "sync":
            report = SyncReconciler(repository, dry_run=args.dry_run).run(progress=print_progress)
            data_handler.save_outputs(report)
            if not args.no_webhook and not args.dry_run:
                data_handler.post_to_webhook(report, "sync")
            logger.info(report.summary)

        elif args.command == "history":
            history = HistoryProjector(repository).project(args.product_id)
            for tx in history.transactions:
                logger.info(
                    f"{tx.date[:10]}  {tx.type:<8} {tx.entity_name:<20} "
                    f"{tx.quantity:>5} x {tx.unit_price:>10.2f} = {tx.total_amount:>10.2f}  ({tx.reference})"
                )
            logger.info(
                f"Purchased: {history.total_purchased} ({history.total_spent:.2f}) | "
                f"Sold: {history.total_sold} ({history.total_revenue:.2f})"
            )

    except LedgerError as e:
        logger.error(f"❌ {e}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
