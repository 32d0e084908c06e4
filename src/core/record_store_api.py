"""
Living Apps Record-Storage API Client

An asynchronous client for the Living Apps REST surface that stores the
dashboard's two record collections (categories and marketplace offers).

Endpoints (one application id per collection):

    GET    /apps/{appId}/records          -> {recordId: record, ...}
    GET    /apps/{appId}/records/{id}     -> record
    POST   /apps/{appId}/records          {"fields": {...}} -> created record
    PATCH  /apps/{appId}/records/{id}     {"fields": {...}} -> updated record
    DELETE /apps/{appId}/records/{id}     -> empty / ack body

Authentication is an ambient session cookie handed in by the caller; this
client never logs in. There are no retries: a failed write leaves backend and
local state out of sync until the next full reload.
"""

import json
import logging
import time
from typing import Any, Dict, List, Optional, Type, Union

import aiohttp

from src.core import config
from src.core.models import Category, Offer
from src.core.record_urls import create_record_url, extract_record_id
from src.utils.logger import log_api_request, log_api_response

__all__ = [
    "RecordStoreAPIError",
    "RecordStoreNetworkError",
    "RecordStoreAPI",
    "RecordsAPI",
    "create_record_url",
    "extract_record_id",
]

logger = logging.getLogger(__name__)


# ============================================================================
# EXCEPTIONS
# ============================================================================

class RecordStoreAPIError(Exception):
    """
    Raised for any failed backend call.

    ``str(error)`` is the backend's raw response body (or a short description
    when the body is empty); ``status`` is the HTTP status when one was received.
    """

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class RecordStoreNetworkError(RecordStoreAPIError):
    """Raised when the request never produced an HTTP response."""
    pass


Record = Union[Category, Offer]


# ============================================================================
# MAIN API CLIENT
# ============================================================================

class RecordStoreAPI:
    """
    Living Apps record-storage client.

    Usage:
        ```python
        async with RecordStoreAPI(cookies={"sid": "..."}) as api:
            offers = await api.offers.get_all()
            await api.categories.create({"kategoriename": "Schuhe"})
        ```

    Attributes:
        categories: RecordsAPI - the category collection
        offers: RecordsAPI - the marketplace offer collection
    """

    def __init__(
        self,
        base_url: str = config.LIVING_APPS_BASE_URL,
        cookies: Optional[Dict[str, str]] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        """
        Args:
            base_url: REST base URL (without trailing slash)
            cookies: Session cookies identifying the logged-in user
            session: Optional externally owned aiohttp session. When given, it
                     is used as-is and not closed by this client.
        """
        self.base_url = base_url.rstrip('/')
        self.cookies = dict(cookies or {})
        self._session = session
        self._owns_session = session is None
        self._request_count = 0

        self.categories = RecordsAPI(self, config.APP_IDS["KATEGORIEN"], Category)
        self.offers = RecordsAPI(self, config.APP_IDS["MARKTPLATZ_ANGEBOTE"], Offer)

        logger.info(f"Initialized RecordStoreAPI for {self.base_url}")

    # ------------------------------------------------------------------------
    # CONTEXT MANAGER / SESSION
    # ------------------------------------------------------------------------

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
        return False

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            # No timeout: a stalled call stalls only the action that issued it
            self._session = aiohttp.ClientSession(
                cookies=self.cookies,
                cookie_jar=aiohttp.CookieJar(unsafe=True),
                timeout=aiohttp.ClientTimeout(total=None),
                headers={"Accept": "application/json"},
            )
            self._owns_session = True
        return self._session

    async def close(self):
        """Close the underlying HTTP session if this client created it."""
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
            logger.debug("RecordStoreAPI session closed")

    def get_request_count(self) -> int:
        """Number of HTTP requests issued by this client."""
        return self._request_count

    async def download(self, url: str) -> bytes:
        """
        Fetch a binary resource (e.g. an offer's product photo) with the
        session cookies.

        Raises:
            RecordStoreAPIError: non-2xx status
            RecordStoreNetworkError: connection-level failure or invalid URL
        """
        session = await self._get_session()
        self._request_count += 1
        logger.debug(f"Downloading {url}")

        try:
            async with session.get(url, headers={"Accept": "*/*"}) as response:
                if not 200 <= response.status < 300:
                    raise RecordStoreAPIError(f"HTTP {response.status}", status=response.status)
                return await response.read()
        except aiohttp.ClientError as e:
            logger.error(f"Network error downloading {url}: {e}")
            raise RecordStoreNetworkError(f"Network error: {e}") from e

    # ------------------------------------------------------------------------
    # REQUEST HANDLING
    # ------------------------------------------------------------------------

    async def _make_request(
        self,
        endpoint: str,
        method: str = "GET",
        data: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """
        Issue one request and decode the response.

        Args:
            endpoint: Path below the base URL (e.g. "/apps/<id>/records")
            method: HTTP verb
            data: Optional JSON body

        Returns:
            ``True`` for DELETE, otherwise the decoded JSON body (None when empty)

        Raises:
            RecordStoreAPIError: non-2xx status or undecodable body
            RecordStoreNetworkError: connection-level failure
        """
        url = f"{self.base_url}{endpoint}"
        session = await self._get_session()

        log_api_request(logger, method, url, data=data)
        self._request_count += 1
        start = time.time()

        try:
            async with session.request(method, url, json=data) as response:
                raw = await response.read()
                status = response.status
                charset = response.charset or "utf-8"
        except aiohttp.ClientError as e:
            logger.error(f"Network error on {method} {endpoint}: {e}")
            raise RecordStoreNetworkError(f"Network error: {e}") from e

        log_api_response(logger, status, elapsed_time=time.time() - start)

        if not 200 <= status < 300:
            body = _decode_body(raw, charset, errors="replace")
            logger.error(f"{method} {endpoint} failed with HTTP {status}: {body[:500]}")
            raise RecordStoreAPIError(body or f"HTTP {status}", status=status)

        # DELETE often returns an empty body or a bare status
        if method == "DELETE":
            return True

        try:
            body = _decode_body(raw, charset)
        except UnicodeDecodeError as e:
            raise RecordStoreAPIError(f"Undecodable response body: {e}", status=status) from e

        if not body.strip():
            return None

        try:
            return json.loads(body)
        except json.JSONDecodeError as e:
            raise RecordStoreAPIError(f"Invalid JSON response: {e}", status=status) from e


# ============================================================================
# SUB-API CLASSES
# ============================================================================

class BaseAPI:
    """Base class for sub-API implementations."""

    def __init__(self, client: RecordStoreAPI):
        self.client = client

    async def _request(self, *args, **kwargs):
        """Shortcut to client._make_request()"""
        return await self.client._make_request(*args, **kwargs)


class RecordsAPI(BaseAPI):
    """
    CRUD operations on one record collection (one Living Apps application).

    Field contents are not validated here; that is the caller's job.
    """

    def __init__(self, client: RecordStoreAPI, app_id: str, record_type: Type[Record]):
        super().__init__(client)
        self.app_id = app_id
        self.record_type = record_type

    @property
    def endpoint(self) -> str:
        return f"/apps/{self.app_id}/records"

    def record_url(self, record_id: str) -> str:
        """Canonical URL of a record in this collection, as stored in applookup fields."""
        return create_record_url(self.app_id, record_id)

    async def get_all(self) -> List[Record]:
        """
        Fetch every record of the collection.

        The backend keys records by id; each returned record carries its own
        ``record_id`` instead.
        """
        data = await self._request(self.endpoint)
        if data is None:
            return []
        if not isinstance(data, dict):
            raise RecordStoreAPIError(
                f"Unexpected response for {self.endpoint}: expected an object, got {type(data).__name__}"
            )

        records = [self._build_record(record_id, raw) for record_id, raw in data.items()]
        logger.debug(f"Fetched {len(records)} {self.record_type.__name__} records")
        return records

    async def get(self, record_id: str) -> Record:
        """Fetch a single record by id."""
        data = await self._request(f"{self.endpoint}/{record_id}")
        if not isinstance(data, dict):
            raise RecordStoreAPIError(f"Record {record_id} not returned as an object")
        return self._build_record(data.get("id") or record_id, data)

    def _build_record(self, record_id: str, raw: Any) -> Record:
        """Typed record from its wire shape; anything but an object with object ``fields`` is rejected."""
        if not isinstance(raw, dict) or not isinstance(raw.get("fields") or {}, dict):
            raise RecordStoreAPIError(f"Malformed {self.record_type.__name__} record {record_id}")
        return self.record_type.from_record(record_id, raw)

    async def create(self, fields: Dict[str, Any]) -> Any:
        """Create a record. Omitted fields stay unset."""
        return await self._request(self.endpoint, method="POST", data=_fields_body(fields))

    async def update(self, record_id: str, fields: Dict[str, Any]) -> Any:
        """Partially update a record. Omitted fields are left untouched."""
        return await self._request(
            f"{self.endpoint}/{record_id}", method="PATCH", data=_fields_body(fields)
        )

    async def delete(self, record_id: str) -> bool:
        """Delete a record. Any 2xx response counts as success."""
        return await self._request(f"{self.endpoint}/{record_id}", method="DELETE")


def _fields_body(fields: Dict[str, Any]) -> Dict[str, Any]:
    return {"fields": {k: v for k, v in fields.items() if v is not None}}


def _decode_body(raw: bytes, charset: str, errors: str = "strict") -> str:
    try:
        return raw.decode(charset, errors)
    except LookupError:
        # Unknown charset label in Content-Type
        return raw.decode("utf-8", errors)
