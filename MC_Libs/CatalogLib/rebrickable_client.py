"""
Rebrickable catalog API client.

Thin async wrapper: call the endpoint, map the response into catalog
models. The API key is read from the REBRICKABLE_API_KEY environment
variable unless passed explicitly.
"""

import logging
import os
import random
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx

from MC_Libs.CatalogLib.catalog_models import Minifig, MinifigPart
from MC_Libs.constants import (
    CATALOG_TIMEOUT,
    DEFAULT_PAGE_SIZE,
    RANDOM_PAGE_COUNT,
    REBRICKABLE_API_BASE,
    REBRICKABLE_API_KEY_ENV,
)

logger = logging.getLogger(__name__)


class CatalogAPIError(Exception):
    """Raised when the catalog API returns an error or cannot be reached."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


@dataclass
class Page:
    """One page of a paginated catalog listing."""
    count: int = 0
    next: Optional[str] = None
    previous: Optional[str] = None
    results: List[Any] = field(default_factory=list)


class RebrickableClient:
    """Async client for the minifig endpoints of the Rebrickable API."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: str = REBRICKABLE_API_BASE,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = api_key if api_key is not None else os.getenv(REBRICKABLE_API_KEY_ENV, "")
        self.base_url = base_url.rstrip("/")
        self._client = client
        self._owns_client = client is None

    async def __aenter__(self) -> "RebrickableClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=CATALOG_TIMEOUT)
        return self._client

    async def _request(self, endpoint: str, params: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        query = {"key": self.api_key}
        if params:
            query.update(params)

        try:
            response = await self._get_client().get(f"{self.base_url}{endpoint}", params=query)
        except httpx.HTTPError as e:
            raise CatalogAPIError(f"Rebrickable API unreachable: {e}") from e

        if response.is_error:
            raise CatalogAPIError(
                f"Rebrickable API error: {response.status_code} {response.reason_phrase}",
                status_code=response.status_code,
            )

        return response.json()

    @staticmethod
    def _page(payload: Dict[str, Any], results: List[Any]) -> Page:
        return Page(
            count=int(payload.get("count", len(results))),
            next=payload.get("next"),
            previous=payload.get("previous"),
            results=results,
        )

    async def get_minifigs(
        self,
        search: Optional[str] = None,
        page: Optional[int] = None,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> Page:
        """
        Search or list minifigs.

        Args:
            search: Free-text search term
            page: 1-based page number
            page_size: Results per page

        Returns:
            Page whose results are Minifig records
        """
        params = {"page_size": str(page_size)}
        if search:
            params["search"] = search
        if page:
            params["page"] = str(page)

        payload = await self._request("/lego/minifigs/", params)
        minifigs = [Minifig.from_dict(item) for item in payload.get("results", [])]
        return self._page(payload, minifigs)

    async def get_random_minifigs(self, count: int = DEFAULT_PAGE_SIZE) -> Page:
        """List one randomly chosen page among the first few."""
        return await self.get_minifigs(page=random.randint(1, RANDOM_PAGE_COUNT), page_size=count)

    async def get_minifig_parts(self, minifig_id: str) -> Page:
        payload = await self._request(f"/lego/minifigs/{minifig_id}/parts/")
        parts = [MinifigPart.from_dict(item) for item in payload.get("results", [])]
        logger.debug(f"Fetched {len(parts)} parts for minifig {minifig_id}")
        return self._page(payload, parts)

    async def get_minifig_details(self, minifig_id: str) -> Minifig:
        payload = await self._request(f"/lego/minifigs/{minifig_id}/")
        return Minifig.from_dict(payload)
