"""
CLI for the PC Express order downloader.
Download order history and product details, or inspect the local database.
"""

import sys
import re
import argparse
import logging
from pathlib import Path

# Add project to path
project_root = Path(__file__).resolve().parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from order_downloader.core.exceptions import OrderDownloaderError

logger = logging.getLogger("cli")


def _product_date(value: str) -> str:
    """argparse type for ddMMyyyy dates."""
    if not re.fullmatch(r"\d{8}", value):
        raise argparse.ArgumentTypeError(f"expected ddMMyyyy, got {value!r}")
    return value


def _load(args):
    from order_downloader.core.config import get_config
    from order_downloader.core.logging import setup_logging

    config = get_config(args.config)
    setup_logging(config.log_path, config.log_level)
    return config


def cmd_download(args):
    """Download orders and the products they reference."""
    from order_downloader.core.config import load_credentials
    from order_downloader.orders.service import run_download

    config = _load(args)
    credentials = load_credentials()

    print("[DOWNLOAD] Starting order download...")

    result = run_download(
        config,
        credentials,
        db_path=Path(args.db) if args.db else None,
        store_id=args.store_id,
        product_date=args.date
    )

    print(f"\n[OK] Download complete!")
    print(f"   Orders listed: {result.orders_listed}")
    print(f"   Orders saved: {result.orders_saved}")
    print(f"   Products found: {result.product_ids_found}")
    print(f"   Products saved: {result.products_saved}")
    print(f"   Products unavailable: {len(result.products_missed)}")


def cmd_stats(args):
    """Show what the local database holds."""
    from order_downloader.core.database import Database

    config = _load(args)
    db_path = Path(args.db) if args.db else config.db_path

    with Database(db_path) as db:
        orders = db.count_orders()
        products = db.count_products()
        referenced = len(db.list_referenced_product_ids())

    print(f"[STATS] {db_path}")
    print(f"   Orders stored: {orders}")
    print(f"   Products stored: {products}")
    print(f"   Products referenced by orders: {referenced}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="PC Express order downloader",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python cli.py download
  python cli.py download --store-id 1560 --date 01022024
  python cli.py stats --db orders.sqlite
        """
    )
    parser.add_argument("--config", type=str, default=None, help="Path to config.yaml")

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    download_parser = subparsers.add_parser("download", help="Download orders and products")
    download_parser.add_argument("--db", type=str, default=None, help="Database file (overrides config)")
    download_parser.add_argument("--store-id", type=int, default=None, help="Store used for product details")
    download_parser.add_argument("--date", type=_product_date, default=None, help="Product date as ddMMyyyy (default today)")

    stats_parser = subparsers.add_parser("stats", help="Show database contents")
    stats_parser.add_argument("--db", type=str, default=None, help="Database file (overrides config)")

    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    commands = {
        "download": cmd_download,
        "stats": cmd_stats,
    }
    command = commands.get(args.command)
    if command is None:
        parser.print_help()
        return 2

    try:
        command(args)
    except OrderDownloaderError as e:
        logger.error(f"{type(e).__name__}: {e}")
        print(f"[ERROR] {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
