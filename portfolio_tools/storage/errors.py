"""
Exceptions raised by the keyed object cache.
"""

from typing import Any, Dict, Optional

from shared.errors import PortfolioException


class StorageError(PortfolioException):
    """Root of all keyed-store failures."""

    status_code = 500

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(code, message, details)


class StorageUnavailable(StorageError):
    """The embedded store cannot be used in this environment.

    Callers treat this as "cache disabled", never as fatal.
    """

    def __init__(self, message: str = "Embedded storage is not available in this environment.",
                 details: Optional[Dict[str, Any]] = None):
        super().__init__("STORAGE_UNAVAILABLE", message, details)


class StorageWriteFailed(StorageError):
    """A write was rejected: quota exhausted, unserializable payload or read-only transaction."""

    def __init__(self, message: str = "Storage write failed.", details: Optional[Dict[str, Any]] = None):
        super().__init__("STORAGE_WRITE_FAILED", message, details)


class StorageVersionError(StorageError):
    """The on-disk store was created by a newer schema version."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__("STORAGE_VERSION_ERROR", message, details)
