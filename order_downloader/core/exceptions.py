"""
Error taxonomy for the order downloader.
Every fatal condition raised by the package derives from OrderDownloaderError.
"""

from typing import Optional


class OrderDownloaderError(Exception):
    """Base class for all fatal downloader errors."""


class ConfigError(OrderDownloaderError):
    """Missing credential or unusable configuration file."""


class HttpError(OrderDownloaderError):
    """
    Non-success status or transport failure talking to the remote API.
    status_code is None when no response was received at all.
    """
    def __init__(self, message: str, *, url: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class DecodeError(OrderDownloaderError):
    """Order history body does not match the expected shape."""


class StorageError(OrderDownloaderError):
    """The local database could not be opened or written."""


class ExtractionError(OrderDownloaderError):
    """A stored order body is malformed, so product ids cannot be derived."""
    def __init__(self, message: str, *, order_id: Optional[str] = None):
        super().__init__(message)
        self.order_id = order_id
