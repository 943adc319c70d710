"""
Storefront Errors
Raised inside components and converted to notices at component boundaries
"""
from typing import Any, Optional

class StorefrontError(Exception):
    """Base class for storefront failures"""

class UpstreamError(StorefrontError):
    """A remote service answered with a non-2xx status or could not be reached"""

    def __init__(self, source: str, status: Optional[int] = None, detail: Any = None):
        self.source = source
        self.status = status
        self.detail = detail
        if status is None:
            message = f"{source} is unreachable"
        else:
            message = f"{source} answered HTTP {status}"
        if detail:
            message = f"{message}: {str(detail)[:200]}"
        super().__init__(message)

class CartSyncError(StorefrontError):
    """The remote cart could not be brought in line with the local cart"""

    def __init__(self, source: str, message: str):
        self.source = source
        super().__init__(message)

class InvalidProductIdError(StorefrontError):
    """A product row has no numeric id, so no cart protocol can address it"""

    def __init__(self, source: str, table: str, product_id: Any):
        self.source = source
        self.table = table
        self.product_id = product_id
        super().__init__(
            f"Product id {product_id!r} from {source}.{table} is not numeric; "
            f"check the id column mapping for this table"
        )

class MissingConfigurationError(StorefrontError):
    """A required setting is empty"""

    def __init__(self, source: str, setting: str):
        self.source = source
        self.setting = setting
        super().__init__(f"{setting} is not configured for {source}")

class UnknownSourceError(StorefrontError):
    """No catalog database is configured under this name"""

    def __init__(self, source: str):
        self.source = source
        super().__init__(f"Database not found: {source}")
