"""
Download Service.
Orchestrates the order history fetch, order detail upserts and the product detail wave.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from pathlib import Path
from typing import List, Optional, Tuple

from .client import PcExpressClient, create_client_from_config, format_product_date
from ..core.config import Config, Credentials
from ..core.database import Database

logger = logging.getLogger(__name__)

DEFAULT_STORE_ID = 1560


class PipelineStage(str, Enum):
    START = "start"
    LISTING_ORDERS = "listing_orders"
    IDLE = "idle"
    FETCHING_ORDERS = "fetching_orders"
    DERIVING_PRODUCT_IDS = "deriving_product_ids"
    FETCHING_PRODUCTS = "fetching_products"
    DONE = "done"


@dataclass
class DownloadResult:
    """Progress and outcome of one download run."""
    stage: PipelineStage = PipelineStage.START
    orders_listed: int = 0
    orders_saved: int = 0
    product_ids_found: int = 0
    products_saved: int = 0
    products_missed: List[Tuple[str, int]] = field(default_factory=list)


class OrderDownloader:
    """
    Sequential fetch-and-upsert pipeline.

    1. List order summaries; nothing to do if there are none
    2. Fetch and store every order body (any failure aborts the run)
    3. Derive product ids from all stored orders
    4. Fetch and store every product body, skipping misses
    """

    def __init__(
        self,
        client: PcExpressClient,
        db_path: Path,
        store_id: int = DEFAULT_STORE_ID,
        product_date: Optional[str] = None
    ):
        self.client = client
        self.db_path = Path(db_path)
        self.store_id = store_id
        self.product_date = product_date
        self.result = DownloadResult()

    def run(self) -> DownloadResult:
        """
        Run the full pipeline. Fatal errors propagate unchanged;
        self.result keeps the stage reached.
        """
        self.result = DownloadResult()

        self.result.stage = PipelineStage.LISTING_ORDERS
        history = self.client.list_order_history()
        if history is None or not history.items:
            logger.info("No orders returned, nothing to do")
            self.result.stage = PipelineStage.IDLE
            return self.result

        self.result.orders_listed = len(history.items)
        logger.info(
            f"Received {len(history.items)} orders "
            f"({history.offline_count} offline, {history.online_count} online)"
        )

        with Database(self.db_path) as db:
            self.result.stage = PipelineStage.FETCHING_ORDERS
            self._fetch_orders(db, history.items)

            self.result.stage = PipelineStage.DERIVING_PRODUCT_IDS
            logger.info("Retrieving product information for every product across all orders")
            product_ids = db.list_referenced_product_ids()
            self.result.product_ids_found = len(product_ids)
            logger.info(f"Found {len(product_ids)} products")

            self.result.stage = PipelineStage.FETCHING_PRODUCTS
            self._fetch_products(db, product_ids)

        self.result.stage = PipelineStage.DONE
        logger.info(
            f"Done: {self.result.orders_saved} orders, {self.result.products_saved} products saved, "
            f"{len(self.result.products_missed)} products unavailable"
        )
        return self.result

    def _fetch_orders(self, db: Database, summaries) -> None:
        for summary in summaries:
            logger.info(f"Retrieving order ID {summary.id}...")
            body = self.client.fetch_order_detail(summary.id)
            db.upsert_order(summary.id, body)
            self.result.orders_saved += 1

    def _fetch_products(self, db: Database, product_ids: List[str]) -> None:
        # One date for the whole wave so a run crossing midnight stays consistent
        product_date = self.product_date or format_product_date(date.today())

        for product_id in product_ids:
            fetch = self.client.fetch_product_detail(product_id, self.store_id, product_date)
            if not fetch.success:
                logger.warning(f"Product ID {product_id} unavailable (status {fetch.status_code})")
                self.result.products_missed.append((product_id, fetch.status_code))
                continue

            db.upsert_product(product_id, fetch.body)
            self.result.products_saved += 1
            logger.info(f"Retrieved product ID {product_id}")


def run_download(
    config: Config,
    credentials: Credentials,
    db_path: Optional[Path] = None,
    store_id: Optional[int] = None,
    product_date: Optional[str] = None
) -> DownloadResult:
    """Wire config and credentials into a client and run the pipeline once."""
    if store_id is None:
        store_id = config.get_int('products', 'store_id', default=DEFAULT_STORE_ID)

    with create_client_from_config(credentials, config) as client:
        downloader = OrderDownloader(
            client=client,
            db_path=db_path or config.db_path,
            store_id=store_id,
            product_date=product_date
        )
        return downloader.run()
