"""Pytest configuration and fixtures."""

import json
from typing import Dict, List, Optional, Union

import pytest

from order_downloader.core.config import reset_config
from order_downloader.core.database import Database
from order_downloader.core.exceptions import HttpError
from order_downloader.orders.models import OrderHistoryResult, ProductFetch


def make_order_body(*product_ids, order_id: str = "order") -> str:
    """Order detail JSON whose entries reference the given product ids (None = entry without id)."""
    entries = []
    for product_id in product_ids:
        if product_id is None:
            entries.append({"quantity": 1, "product": {"name": "no id"}})
        else:
            entries.append({"quantity": 1, "product": {"id": product_id, "name": f"Product {product_id}"}})
    return json.dumps({"orderId": order_id, "orderDetails": {"entries": entries}})


def make_history(*order_ids: str) -> OrderHistoryResult:
    return OrderHistoryResult.model_validate({
        "offlineOrdersCount": len(order_ids),
        "onlineOrdersCount": 0,
        "orderHistory": [
            {"id": order_id, "total": "12.34", "placed": "2024-01-05T10:00:00-05:00", "store": "1560"}
            for order_id in order_ids
        ],
    })


class FakeClient:
    """In-memory stand-in for PcExpressClient."""

    def __init__(
        self,
        history: Optional[OrderHistoryResult],
        orders: Dict[str, Union[str, int]],
        products: Optional[Dict[str, int]] = None
    ):
        # orders: id -> body, or an int status for a failing fetch
        # products: id -> status, anything but 200 is a miss
        self.history = history
        self.orders = orders
        self.products = products or {}
        self.order_calls: List[str] = []
        self.product_calls: List[tuple] = []
        self.closed = False

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.closed = True

    def list_order_history(self):
        return self.history

    def fetch_order_detail(self, order_id: str) -> str:
        self.order_calls.append(order_id)
        body = self.orders[order_id]
        if isinstance(body, int):
            raise HttpError(f"Order {order_id} request failed with status {body}", status_code=body)
        return body

    def fetch_product_detail(self, product_id: str, store_id: int, date: str) -> ProductFetch:
        self.product_calls.append((product_id, store_id, date))
        status = self.products.get(product_id, 200)
        if status != 200:
            return ProductFetch(product_id=product_id, body=None, success=False, status_code=status)
        body = json.dumps({"code": product_id, "name": f"Product {product_id}"})
        return ProductFetch(product_id=product_id, body=body, success=True, status_code=200)


@pytest.fixture(autouse=True)
def _fresh_config():
    reset_config()
    yield
    reset_config()


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "orders.sqlite"


@pytest.fixture
def db(db_path):
    database = Database(db_path)
    yield database
    database.close()
