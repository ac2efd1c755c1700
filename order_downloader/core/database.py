"""
Database operations for the order downloader.
Uses SQLite for storage: raw order and product payloads keyed by their external ids.
"""

import json
import sqlite3
import logging
from pathlib import Path
from typing import Optional, List, Iterable, Tuple, Any
from contextlib import contextmanager

from .exceptions import StorageError, ExtractionError

logger = logging.getLogger(__name__)

# Table names
ORDERS_TABLE = "orders"
PRODUCTS_TABLE = "products"


def _product_id_of(entry: Any) -> Optional[str]:
    """Return entry.product.id as a string, or None when it carries no usable id."""
    if not isinstance(entry, dict):
        return None
    product = entry.get('product')
    if not isinstance(product, dict):
        return None

    product_id = product.get('id')
    if isinstance(product_id, bool):
        return None
    if isinstance(product_id, int):
        return str(product_id)
    if isinstance(product_id, str) and product_id.strip():
        return product_id
    return None


def extract_product_ids(bodies: Iterable[Tuple[str, str]]) -> List[str]:
    """
    Collect the product ids referenced by a sequence of order bodies.

    Walks orderDetails.entries[*].product.id in every body and de-duplicates
    case-insensitively, keeping the first spelling seen. Entries without an id
    are skipped; a body that is not JSON or lacks orderDetails.entries is an error.

    Args:
        bodies: (order_id, body) pairs, order_id is only used for error reporting

    Returns:
        Unique product ids in first-seen order
    """
    seen = set()
    product_ids = []

    for order_id, body in bodies:
        try:
            document = json.loads(body)
        except (TypeError, ValueError) as e:
            raise ExtractionError(f"Order {order_id} body is not valid JSON: {e}", order_id=order_id) from e

        details = document.get('orderDetails') if isinstance(document, dict) else None
        entries = details.get('entries') if isinstance(details, dict) else None
        if not isinstance(entries, list):
            raise ExtractionError(f"Order {order_id} body has no orderDetails.entries array", order_id=order_id)

        for entry in entries:
            product_id = _product_id_of(entry)
            if product_id is None:
                continue
            key = product_id.casefold()
            if key not in seen:
                seen.add(key)
                product_ids.append(product_id)

    return product_ids


class Database:
    """
    SQLite store holding one connection open until close().
    Usable as a context manager.
    """

    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)
        self._conn: Optional[sqlite3.Connection] = None
        self._open()
        try:
            self._ensure_tables()
        except StorageError:
            self.close()
            raise

    def _open(self) -> None:
        try:
            if str(self.db_path) != ':memory:':
                self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(self.db_path)
            self._conn.row_factory = sqlite3.Row
        except (OSError, sqlite3.Error) as e:
            raise StorageError(f"Could not open database {self.db_path}: {e}") from e

    def __enter__(self) -> 'Database':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        """Close the connection. Safe to call more than once."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    @contextmanager
    def _transaction(self):
        """Run statements in a transaction, translating sqlite errors."""
        if self._conn is None:
            raise StorageError(f"Database {self.db_path} is closed")
        try:
            with self._conn:
                yield self._conn.cursor()
        except sqlite3.Error as e:
            raise StorageError(f"Database operation failed on {self.db_path}: {e}") from e

    def _ensure_tables(self) -> None:
        """Create tables if they don't exist."""
        with self._transaction() as cursor:
            cursor.execute(f"""
                CREATE TABLE IF NOT EXISTS {ORDERS_TABLE} (
                    rowId INTEGER PRIMARY KEY AUTOINCREMENT,
                    orderId TEXT NOT NULL UNIQUE,
                    orderBody TEXT NOT NULL
                )
            """)

            cursor.execute(f"""
                CREATE TABLE IF NOT EXISTS {PRODUCTS_TABLE} (
                    rowId INTEGER PRIMARY KEY AUTOINCREMENT,
                    productCode TEXT NOT NULL UNIQUE,
                    productBody TEXT NOT NULL
                )
            """)

        logger.info(f"Database initialized at {self.db_path}")

    # ==================== Order Operations ====================

    def upsert_order(self, order_id: str, body: str) -> None:
        """Insert an order body, replacing the stored body if the id exists."""
        with self._transaction() as cursor:
            cursor.execute(f"""
                INSERT INTO {ORDERS_TABLE} (orderId, orderBody)
                VALUES (?, ?)
                ON CONFLICT(orderId) DO UPDATE SET orderBody=excluded.orderBody
            """, (order_id, body))
        logger.debug(f"Upserted order {order_id}")

    def get_order_body(self, order_id: str) -> Optional[str]:
        with self._transaction() as cursor:
            cursor.execute(f"SELECT orderBody FROM {ORDERS_TABLE} WHERE orderId = ?", (order_id,))
            row = cursor.fetchone()
            return row['orderBody'] if row else None

    def count_orders(self) -> int:
        """Get total number of stored orders."""
        with self._transaction() as cursor:
            cursor.execute(f"SELECT COUNT(*) AS count FROM {ORDERS_TABLE}")
            return cursor.fetchone()['count']

    def list_referenced_product_ids(self) -> List[str]:
        """
        Derive the unique product ids referenced by every stored order.
        Recomputed from all rows on each call, in rowId order.
        """
        with self._transaction() as cursor:
            cursor.execute(f"SELECT orderId, orderBody FROM {ORDERS_TABLE} ORDER BY rowId")
            rows = [(row['orderId'], row['orderBody']) for row in cursor.fetchall()]
        return extract_product_ids(rows)

    # ==================== Product Operations ====================

    def upsert_product(self, product_code: str, body: str) -> None:
        """Insert a product body, replacing the stored body if the code exists."""
        with self._transaction() as cursor:
            cursor.execute(f"""
                INSERT INTO {PRODUCTS_TABLE} (productCode, productBody)
                VALUES (?, ?)
                ON CONFLICT(productCode) DO UPDATE SET productBody=excluded.productBody
            """, (product_code, body))
        logger.debug(f"Upserted product {product_code}")

    def get_product_body(self, product_code: str) -> Optional[str]:
        with self._transaction() as cursor:
            cursor.execute(f"SELECT productBody FROM {PRODUCTS_TABLE} WHERE productCode = ?", (product_code,))
            row = cursor.fetchone()
            return row['productBody'] if row else None

    def count_products(self) -> int:
        """Get total number of stored products."""
        with self._transaction() as cursor:
            cursor.execute(f"SELECT COUNT(*) AS count FROM {PRODUCTS_TABLE}")
            return cursor.fetchone()['count']
