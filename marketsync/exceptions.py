"""
Marketplace sync error taxonomy.

Adapter-level errors (NotConnectedError, MissingLinkageError, UpstreamError)
never escape an adapter: they are carried on a failed AdapterResult.
ConfigurationError and RecordNotFoundError propagate to the caller.
"""

from typing import Any, List, Optional


class MarketSyncError(Exception):
    """Base class for all marketplace sync errors"""


class ConfigurationError(MarketSyncError):
    """Unknown platform key or an otherwise unusable adapter setup"""


class NotConnectedError(MarketSyncError):
    """The marketplace connection has no usable credential"""


class TokenRefreshError(NotConnectedError):
    """The access token expired and could not be refreshed"""


class MissingLinkageError(MarketSyncError):
    """The operation needs an external id that the listing does not have yet"""


class UpstreamError(MarketSyncError):
    """The marketplace API rejected the call or the HTTP call itself failed"""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        body: Optional[str] = None,
        response: Any = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.body = body
        self.response = response


class ListingValidationError(MarketSyncError):
    """Listing payload has hard validation errors"""

    def __init__(self, errors: List[str], warnings: Optional[List[str]] = None):
        super().__init__("; ".join(errors))
        self.errors = list(errors)
        self.warnings = list(warnings or [])


class RecordNotFoundError(MarketSyncError):
    """A persisted record could not be found by id"""

    def __init__(self, kind: str, record_id: Any):
        super().__init__(f"{kind} {record_id} not found")
        self.kind = kind
        self.record_id = record_id


class DuplicateRecordError(MarketSyncError):
    """A save would break a uniqueness rule (e.g. two listings for one product/channel)"""
