"""
Base Platform Adapter
=====================
Abstract base class for all marketplace adapters.

Every adapter exposes the same listing operations:

    publish / unpublish / end / update_price / update_inventory / sync / refresh

and every one of them returns exactly one AdapterResult. Nothing raised inside
a marketplace call escapes the adapter: connection checks, linkage checks,
token refresh, HTTP errors and unexpected exceptions all become a failed
result carrying a redacted, human-readable message and the original error.

Subclasses implement the underscore hooks (_publish, _unpublish, ...) and
only ever see a connected adapter and a linked listing.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, FrozenSet, Optional, Set

import requests

from ..config import Config
from ..exceptions import (
    MissingLinkageError,
    NotConnectedError,
    RecordNotFoundError,
    TokenRefreshError,
    UpstreamError,
)
from ..schema.credentials import PlatformCredentials, secrets_for
from ..schema.models import (
    MarketplaceConnection,
    Platform,
    PlatformListing,
    Product,
    SalesChannel,
)
from ..utils.logger import MARKETPLACE_LOGGER, get_logger, log_with_context, redact

TokenRefresher = Callable[[MarketplaceConnection], Optional[MarketplaceConnection]]


@dataclass(frozen=True)
class AdapterResult:
    """
    Outcome of one adapter operation.

    data is the side channel back to the Listing Manager: status hints,
    price/quantity echoes, and "platform_data" to merge onto the listing.
    """
    success: bool
    message: Optional[str] = None
    external_id: Optional[str] = None
    external_url: Optional[str] = None
    data: Optional[Dict[str, Any]] = None
    error: Optional[BaseException] = None

    @classmethod
    def succeeded(
        cls,
        message: Optional[str] = None,
        data: Optional[Dict[str, Any]] = None,
        external_id: Optional[str] = None,
        external_url: Optional[str] = None,
    ) -> "AdapterResult":
        return cls(True, message, external_id, external_url, data)

    @classmethod
    def created(
        cls,
        external_id: Any,
        external_url: Optional[str] = None,
        message: Optional[str] = None,
        data: Optional[Dict[str, Any]] = None,
    ) -> "AdapterResult":
        external_id = str(external_id) if external_id not in (None, "") else None
        return cls(True, message or "Listing published", external_id, external_url, data)

    @classmethod
    def failed(
        cls,
        message: str,
        error: Optional[BaseException] = None,
        data: Optional[Dict[str, Any]] = None,
    ) -> "AdapterResult":
        return cls(False, message, None, None, data, error)

    @property
    def is_precondition_failure(self) -> bool:
        """Not connected / nothing to operate on; the listing is untouched"""
        return isinstance(self.error, (NotConnectedError, MissingLinkageError))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "message": self.message or "",
            "data": self.data,
        }


# ============================================================================
# CAPABILITIES
# ============================================================================

class Capability(Enum):
    """Optional platform behaviors beyond the listing contract"""
    CREDENTIAL_CONNECT = "credential_connect"
    BUSINESS_POLICY_SYNC = "business_policy_sync"
    ITEM_SPECIFICS = "item_specifics"


class CredentialConnectable(ABC):
    """Connection can be validated and activated from API keys alone"""

    @abstractmethod
    def connect_with_credentials(self, credentials: Dict[str, Any]) -> AdapterResult:
        """
        Validate credentials against the platform and activate the connection.

        Args:
            credentials: Platform-specific key material

        Returns:
            AdapterResult; on success the connection is active and persisted
        """


class BusinessPolicySyncable(ABC):
    """Platform keeps seller business policies that listings must reference"""

    @abstractmethod
    def sync_business_policies(self) -> AdapterResult:
        """Fetch policy ids into the connection credentials"""


class ItemSpecificsProvider(ABC):
    """Platform publishes per-category aspect definitions"""

    @abstractmethod
    def fetch_item_specifics(self, category_id: str) -> AdapterResult:
        """
        Fetch aspect definitions for one platform category.

        Returns:
            AdapterResult with data {"item_specifics": [...]} on success
        """


CAPABILITY_INTERFACES = {
    Capability.CREDENTIAL_CONNECT: CredentialConnectable,
    Capability.BUSINESS_POLICY_SYNC: BusinessPolicySyncable,
    Capability.ITEM_SPECIFICS: ItemSpecificsProvider,
}


# ============================================================================
# ADAPTER CONTRACT
# ============================================================================

class PlatformAdapter(ABC):
    """
    Abstract base class for all marketplace adapters.

    Class attributes a subclass sets:
        PLATFORM: Platform enum value
        STATUS_MAP: native status -> canonical status; unknown values keep
            the listing's current status
        EXTERNAL_ID_LABEL: how the linkage id is named in messages
    """

    PLATFORM: Platform
    STATUS_MAP: Dict[str, str] = {}
    EXTERNAL_ID_LABEL = "listing ID"

    def __init__(
        self,
        channel: Optional[SalesChannel] = None,
        connection: Optional[MarketplaceConnection] = None,
        store=None,
        builder=None,
        session: Optional[requests.Session] = None,
        token_refresher: Optional[TokenRefresher] = None,
    ):
        """
        Initialize adapter.

        Args:
            channel: Sales channel this adapter serves
            connection: Backing marketplace connection (None for local)
            store: ListingStore used to load products and persist connections
            builder: ListingBuilderService that assembles outbound payloads
            session: HTTP session (injected in tests)
            token_refresher: Called with the connection when its token expired
        """
        self.channel = channel
        self.connection = connection
        self.store = store
        self.builder = builder
        self.session = session or requests.Session()
        self.token_refresher = token_refresher
        self.logger = get_logger(MARKETPLACE_LOGGER)
        self.credentials = self._load_credentials()

    # ------------------------------------------------------------------
    # Identity & capabilities
    # ------------------------------------------------------------------

    @property
    def display_name(self) -> str:
        return self.PLATFORM.display_name

    def get_platform_name(self) -> str:
        return self.PLATFORM.value

    def capabilities(self) -> Set[Capability]:
        return {cap for cap, iface in CAPABILITY_INTERFACES.items() if isinstance(self, iface)}

    def supports(self, capability: Capability) -> bool:
        return isinstance(self, CAPABILITY_INTERFACES[capability])

    def credentials_class(self):
        """Typed accessor class for this platform, or None"""
        return None

    def _load_credentials(self) -> Optional[PlatformCredentials]:
        cls = self.credentials_class()
        if cls is None or self.connection is None:
            return None
        return cls.from_connection(self.connection)

    def is_connected(self) -> bool:
        """True when the connection holds every credential this platform needs"""
        return (
            self.connection is not None
            and self.credentials is not None
            and self.credentials.is_complete
        )

    # ------------------------------------------------------------------
    # Public listing contract
    # ------------------------------------------------------------------

    def publish(self, listing: PlatformListing) -> AdapterResult:
        """Create the listing, or update it when it is already known externally"""
        return self._execute("publish", listing, self._publish)

    def unpublish(self, listing: PlatformListing) -> AdapterResult:
        """Deactivate without deleting"""
        return self._execute("unpublish", listing, self._unpublish, linked=True)

    def end(self, listing: PlatformListing) -> AdapterResult:
        """Permanently remove the external listing"""
        return self._execute("end", listing, self._end, linked=True)

    def update_price(self, listing: PlatformListing, price: float) -> AdapterResult:
        return self._execute(
            "update_price", listing,
            lambda l: self._update_price(l, float(price)),
            linked=True, price=price,
        )

    def update_inventory(self, listing: PlatformListing, quantity: int) -> AdapterResult:
        return self._execute(
            "update_inventory", listing,
            lambda l: self._update_inventory(l, int(quantity)),
            linked=True, quantity=quantity,
        )

    def sync(self, listing: PlatformListing) -> AdapterResult:
        """Push the full current payload through the upsert path"""
        return self._execute("sync", listing, self._sync)

    def refresh(self, listing: PlatformListing) -> AdapterResult:
        """Pull external state; data["status"] is canonical"""
        return self._execute("refresh", listing, self._refresh, linked=True)

    # ------------------------------------------------------------------
    # Hooks
    # ------------------------------------------------------------------

    @abstractmethod
    def _publish(self, listing: PlatformListing) -> AdapterResult:
        pass

    @abstractmethod
    def _unpublish(self, listing: PlatformListing) -> AdapterResult:
        pass

    @abstractmethod
    def _end(self, listing: PlatformListing) -> AdapterResult:
        pass

    @abstractmethod
    def _update_price(self, listing: PlatformListing, price: float) -> AdapterResult:
        pass

    @abstractmethod
    def _update_inventory(self, listing: PlatformListing, quantity: int) -> AdapterResult:
        pass

    @abstractmethod
    def _refresh(self, listing: PlatformListing) -> AdapterResult:
        pass

    def _sync(self, listing: PlatformListing) -> AdapterResult:
        return self._publish(listing)

    def linkage_id(self, listing: PlatformListing) -> Optional[str]:
        """The external id later operations address the listing by"""
        return listing.external_listing_id

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def _execute(
        self,
        action: str,
        listing: PlatformListing,
        operation: Callable[[PlatformListing], AdapterResult],
        linked: bool = False,
        **context,
    ) -> AdapterResult:
        if not self.is_connected():
            error = NotConnectedError(f"{self.display_name} is not connected")
            result = AdapterResult.failed(str(error), error)
        elif linked and not self.linkage_id(listing):
            error = MissingLinkageError(f"No {self.EXTERNAL_ID_LABEL} found for this listing")
            result = AdapterResult.failed(str(error), error)
        else:
            try:
                self.ensure_valid_token()
                result = operation(listing)
            except Exception as e:
                result = AdapterResult.failed(self._failure_message(action, e), e)

        self._log_operation(action, listing, result, **context)
        return result

    def _execute_account(
        self,
        action: str,
        operation: Callable[[], AdapterResult],
        **context,
    ) -> AdapterResult:
        """Same guarantees as _execute for calls not tied to one listing"""
        if not self.is_connected():
            error = NotConnectedError(f"{self.display_name} is not connected")
            result = AdapterResult.failed(str(error), error)
        else:
            try:
                self.ensure_valid_token()
                result = operation()
            except Exception as e:
                result = AdapterResult.failed(self._failure_message(action, e), e)

        self._log_operation(action, None, result, **context)
        return result

    def ensure_valid_token(self) -> None:
        """
        Refresh an expired access token before an authenticated call.

        Raises:
            TokenRefreshError: If the token expired and cannot be refreshed
        """
        if self.connection is None or not self.connection.token_expired():
            return

        expired = f"{self.display_name} access token has expired"
        if self.token_refresher is None:
            raise TokenRefreshError(expired)

        try:
            refreshed = self.token_refresher(self.connection)
        except Exception as e:
            raise TokenRefreshError(f"{expired} and could not be refreshed") from e

        if refreshed is not None:
            self.connection = refreshed
        self.credentials = self._load_credentials()

        if self.connection.token_expired():
            raise TokenRefreshError(f"{expired} and could not be refreshed")

    def _failure_message(self, action: str, error: BaseException) -> str:
        if isinstance(error, (NotConnectedError, MissingLinkageError, UpstreamError)):
            message = str(error)
        else:
            message = f"Failed to {action.replace('_', ' ')} on {self.display_name}: {error}"
        return self._redact(message)

    def _redact(self, text: str) -> str:
        secrets = list(secrets_for(self.connection))
        if self.credentials is not None:
            secrets.extend(self.credentials.secrets())
        return redact(text, secrets)

    def _log_operation(
        self,
        action: str,
        listing: Optional[PlatformListing],
        result: AdapterResult,
        **context,
    ) -> None:
        fields = {
            "platform": self.PLATFORM.value,
            "channel_id": self.channel.id if self.channel else None,
            "marketplace_id": self.connection.id if self.connection else None,
            "action": action,
            "success": result.success,
        }
        if listing is not None:
            fields["listing_id"] = listing.id
            fields["external_id"] = result.external_id or listing.external_listing_id
        if not result.success:
            fields["error"] = result.message
        fields.update(context)

        log_with_context(
            self.logger,
            "INFO" if result.success else "WARNING",
            f"{self.display_name} {action} {'succeeded' if result.success else 'failed'}",
            **fields,
        )

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    def _get_headers(self) -> Dict[str, str]:
        return {"Content-Type": "application/json", "Accept": "application/json"}

    def _get_api_endpoint(self, endpoint: str) -> str:
        raise NotImplementedError

    def _request(
        self,
        method: str,
        endpoint: str,
        allow_status: FrozenSet[int] = frozenset(),
        **kwargs,
    ) -> requests.Response:
        """
        Perform one API call.

        Args:
            method: HTTP verb
            endpoint: Path (or absolute URL) of the call
            allow_status: Non-2xx statuses the caller handles itself
            **kwargs: Passed to requests (json, params, data, auth, headers)

        Raises:
            UpstreamError: On a non-2xx response outside allow_status
        """
        url = endpoint if endpoint.startswith("http") else self._get_api_endpoint(endpoint)
        headers = self._get_headers()
        headers.update(kwargs.pop("headers", None) or {})
        kwargs.setdefault("timeout", Config.API_TIMEOUT)

        response = self.session.request(method, url, headers=headers, **kwargs)

        if response.status_code >= 400 and response.status_code not in allow_status:
            body = self._redact(response.text or "")
            raise UpstreamError(
                f"{self.display_name} API error ({response.status_code}): {body[:500]}",
                status_code=response.status_code,
                body=body,
                response=response,
            )
        return response

    @staticmethod
    def _json(response: requests.Response) -> Dict[str, Any]:
        if response.status_code == 204 or not response.content:
            return {}
        try:
            return response.json() or {}
        except ValueError:
            return {}

    # ------------------------------------------------------------------
    # Payload helpers
    # ------------------------------------------------------------------

    def _get_product(self, listing: PlatformListing) -> Product:
        product = self.store.get_product(listing.product_id) if self.store else None
        if product is None:
            raise RecordNotFoundError("Product", listing.product_id)
        return product

    def _build_payload(self, listing: PlatformListing) -> Dict[str, Any]:
        """
        Assembled listing payload for this platform, with the listing's own
        price/quantity overrides applied on top.
        """
        product = self._get_product(listing)
        payload = self.builder.build_listing(product, self.connection)
        if listing.platform_price is not None:
            payload["price"] = listing.platform_price
        if listing.platform_quantity is not None:
            payload["quantity"] = listing.platform_quantity
        return payload

    def map_status(self, native_status: Any, current: Optional[str]) -> Optional[str]:
        """Canonical status for a native value; unknown keeps the current one"""
        if native_status is None:
            return current
        return self.STATUS_MAP.get(str(native_status), self.STATUS_MAP.get(str(native_status).lower(), current))

    def _persist_connection(self) -> None:
        if self.store is not None and self.connection is not None:
            self.store.save_connection(self.connection)

    @staticmethod
    def _format_price(price: Any) -> str:
        return f"{float(price or 0):.2f}"

    @staticmethod
    def _now() -> datetime:
        return datetime.now()

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"platform={self.PLATFORM.value}, "
            f"channel={self.channel.id if self.channel else None}, "
            f"connection={self.connection.id if self.connection else None})"
        )
