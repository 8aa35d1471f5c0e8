"""
Catalog Client for the external category endpoint.

Fetches ``{"categories": [{category_id, name, slug}, ...]}`` from the CMS
backend and builds an immutable Catalog. CatalogCache keeps one loaded
catalog per process for a configurable time.
"""

import asyncio
import logging
import time
from typing import Optional

import httpx
from pydantic import ValidationError

from newsdesk.config import settings
from newsdesk.taxonomy import Catalog


logger = logging.getLogger(__name__)


class CatalogClientError(Exception):
    """Raised when the category catalog cannot be loaded."""
    pass


class CatalogClient:
    """Loads the category catalog over HTTP."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        path: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or settings.CATALOG_BASE_URL).rstrip("/")
        self.path = path or settings.CATALOG_PATH
        self.timeout = timeout if timeout is not None else settings.CATALOG_TIMEOUT
        self.transport = transport

    @property
    def url(self) -> str:
        return f"{self.base_url}/{self.path.lstrip('/')}"

    async def fetch(self) -> Catalog:
        """
        Fetch and parse the category catalog.

        Returns:
            Catalog (empty if the endpoint returns no categories)

        Raises:
            CatalogClientError: On transport failure, non-2xx status, or a
                malformed response body
        """
        try:
            async with httpx.AsyncClient(transport=self.transport, timeout=self.timeout) as client:
                response = await client.get(self.url, headers={"Accept": "application/json"})
        except httpx.HTTPError as e:
            raise CatalogClientError(f"Catalog request to {self.url} failed: {e}") from e

        if not response.is_success:
            raise CatalogClientError(
                f"Catalog endpoint {self.url} returned {response.status_code}"
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise CatalogClientError(f"Catalog endpoint returned invalid JSON: {e}") from e

        if not isinstance(payload, dict):
            raise CatalogClientError("Catalog response must be a JSON object")

        records = payload.get("categories")
        if records is not None and not isinstance(records, list):
            raise CatalogClientError("Catalog 'categories' must be a list")

        try:
            catalog = Catalog.from_payload(payload)
        except ValidationError as e:
            raise CatalogClientError(f"Malformed category record: {e}") from e

        logger.info(f"Loaded {len(catalog)} categories from {self.url}")
        return catalog


class CatalogCache:
    """
    Keeps one loaded catalog for ``ttl_seconds``.

    Concurrent first loads share a single fetch.
    """

    def __init__(self, client: CatalogClient, ttl_seconds: Optional[int] = None):
        self.client = client
        self.ttl_seconds = settings.CATALOG_CACHE_SECONDS if ttl_seconds is None else ttl_seconds
        self._catalog: Optional[Catalog] = None
        self._loaded_at = 0.0
        self._lock = asyncio.Lock()

    def _is_fresh(self) -> bool:
        if self._catalog is None or self.ttl_seconds <= 0:
            return False
        return time.monotonic() - self._loaded_at < self.ttl_seconds

    async def get(self) -> Catalog:
        if self._is_fresh():
            return self._catalog

        async with self._lock:
            if self._is_fresh():
                return self._catalog
            self._catalog = await self.client.fetch()
            self._loaded_at = time.monotonic()
            return self._catalog

    def invalidate(self):
        self._catalog = None
        self._loaded_at = 0.0
