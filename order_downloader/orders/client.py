"""
PC Express API Client.
Handles fetching order history, order details and product details.
"""

import requests
import logging
from datetime import date as date_type
from typing import Dict, Optional, Any, Union
from urllib.parse import quote

from pydantic import ValidationError

from .models import OrderHistoryResult, ProductFetch
from ..core.config import Config, Credentials
from ..core.exceptions import HttpError, DecodeError

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.pcexpress.ca"
DEFAULT_REFERRER = "https://www.realcanadiansuperstore.ca/"
HISTORICAL_ORDERS_PATH = "/pcx-bff/api/v1/ecommerce/v2/superstore/customers/historical-orders"
PRODUCTS_PATH = "/pcx-bff/api/v1/products"
PRODUCT_DATE_FORMAT = "%d%m%Y"


def format_product_date(day: date_type) -> str:
    """Format a date the way the products endpoint expects (ddMMyyyy)."""
    return day.strftime(PRODUCT_DATE_FORMAT)


class PcExpressClient:
    """Read-only client for the PC Express storefront API."""

    def __init__(
        self,
        bearer_token: str,
        api_key: str,
        base_url: str = DEFAULT_BASE_URL,
        referrer: str = DEFAULT_REFERRER,
        banner: str = "superstore",
        pickup_type: str = "STORE",
        lang: str = "en",
        timeout: Optional[float] = None
    ):
        self.base_url = base_url.rstrip('/')
        self.banner = banner
        self.pickup_type = pickup_type
        self.lang = lang
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers.update({
            'Authorization': f'Bearer {bearer_token}',
            'Referer': referrer,
            'Accept': 'application/json',
            'x-apikey': api_key,
        })

    def __enter__(self) -> 'PcExpressClient':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        self.session.close()

    def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> requests.Response:
        """Make GET request. Transport failures are fatal, status handling is left to the caller."""
        url = f"{self.base_url}{path}"
        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            logger.error(f"PC Express API error: {e}")
            raise HttpError(f"Request to {url} failed: {e}", url=url) from e
        logger.debug(f"GET {url} -> {response.status_code}")
        return response

    @staticmethod
    def _ensure_success(response: requests.Response, what: str) -> None:
        if not response.ok:
            raise HttpError(
                f"{what} failed with status {response.status_code} {response.reason or ''}".rstrip(),
                url=response.url,
                status_code=response.status_code
            )

    def list_order_history(self) -> Optional[OrderHistoryResult]:
        """
        Fetch the customer's order history listing.

        Returns:
            Parsed listing, or None when the API returns an empty/null body

        Raises:
            HttpError: non-success status or transport failure
            DecodeError: body does not match the expected shape
        """
        logger.info("Fetching order history from PC Express...")
        response = self._get(HISTORICAL_ORDERS_PATH)
        self._ensure_success(response, "Order history request")

        text = response.text.strip()
        if not text or text == 'null':
            return None

        try:
            return OrderHistoryResult.model_validate_json(text)
        except ValidationError as e:
            raise DecodeError(f"Unexpected order history payload: {e}") from e

    def fetch_order_detail(self, order_id: str) -> str:
        """
        Fetch one order's full document.

        Returns:
            Raw response body, unparsed

        Raises:
            HttpError: non-success status or transport failure
        """
        response = self._get(f"{HISTORICAL_ORDERS_PATH}/{quote(str(order_id), safe='')}")
        self._ensure_success(response, f"Order {order_id} request")
        return response.text

    def fetch_product_detail(self, product_id: str, store_id: int, date: Union[str, date_type]) -> ProductFetch:
        """
        Fetch one product's full document.
        A non-success status is reported in the result instead of raised,
        discontinued products are expected.

        Args:
            product_id: Product code as referenced by orders
            store_id: Store the product is priced for
            date: ddMMyyyy string or a date

        Raises:
            HttpError: transport failure only
        """
        if isinstance(date, date_type):
            date = format_product_date(date)

        params = {
            'lang': self.lang,
            'date': date,
            'pickupType': self.pickup_type,
            'storeId': store_id,
            'banner': self.banner,
        }
        response = self._get(f"{PRODUCTS_PATH}/{quote(str(product_id), safe='')}", params=params)

        if not response.ok:
            return ProductFetch(product_id=product_id, body=None, success=False, status_code=response.status_code)
        return ProductFetch(product_id=product_id, body=response.text, success=True, status_code=response.status_code)


def create_client_from_config(credentials: Credentials, config: Config) -> PcExpressClient:
    """Build a client from resolved credentials and the loaded config."""
    return PcExpressClient(
        bearer_token=credentials.bearer_token,
        api_key=credentials.api_key,
        base_url=config.get_str('api', 'base_url', default=DEFAULT_BASE_URL),
        referrer=config.get_str('api', 'referrer', default=DEFAULT_REFERRER),
        banner=config.get_str('products', 'banner', default='superstore'),
        pickup_type=config.get_str('products', 'pickup_type', default='STORE'),
        lang=config.get_str('products', 'lang', default='en'),
        timeout=config.get_float('api', 'timeout')
    )
