"""
Image loading for background removal and export.

Loads images referenced by URL into PIL Images. Three kinds of reference
are understood:

- ``data:`` URLs (e.g. processed results) are decoded locally
- catalog CDN URLs are fetched through the image proxy when one is configured
- anything else is fetched directly

Classes:
    ImageLoadError: Raised when an image cannot be fetched or decoded
    ImageLoader: Async loader backed by an httpx.AsyncClient

Functions:
    encode_png_data_url: Encode a PIL Image as a PNG data URL
    decode_data_url: Decode the payload of a data URL
    is_catalog_cdn_url: Check whether a URL points at the catalog CDN
    build_proxy_url: Build the proxy request URL for a source URL
"""

import base64
import binascii
import io
import logging
from typing import Any, Optional
from urllib.parse import unquote_to_bytes, urlencode, urlparse

import httpx
from PIL import Image

from MC_Libs.constants import (
    CATALOG_CDN_HOST,
    DEFAULT_OUTPUT_FORMAT,
    IMAGE_LOAD_TIMEOUT,
    PNG_DATA_URL_PREFIX,
    PROXY_URL_PARAM,
)

logger = logging.getLogger(__name__)


class ImageLoadError(Exception):
    """Raised when an image cannot be fetched or decoded."""


def encode_png_data_url(image: Any) -> str:
    """
    Encode a PIL Image as a base64 PNG data URL.

    Args:
        image: PIL Image to encode

    Returns:
        String of the form ``data:image/png;base64,...``
    """
    buffer = io.BytesIO()
    image.save(buffer, format=DEFAULT_OUTPUT_FORMAT)
    return PNG_DATA_URL_PREFIX + base64.b64encode(buffer.getvalue()).decode("ascii")


def decode_data_url(url: str) -> bytes:
    """
    Decode the payload of a data URL.

    Args:
        url: A ``data:`` URL, base64 or percent-encoded

    Returns:
        Raw payload bytes

    Raises:
        ValueError: If url is not a well-formed data URL
    """
    header, separator, payload = url.partition(",")
    if not separator or not header.startswith("data:"):
        raise ValueError(f"Not a data URL: {url[:40]}")

    if header.endswith(";base64"):
        try:
            return base64.b64decode(payload, validate=True)
        except binascii.Error as e:
            raise ValueError(f"Invalid base64 payload in data URL: {e}")

    return unquote_to_bytes(payload)


def is_catalog_cdn_url(url: str) -> bool:
    """Check whether a URL is served by the catalog image CDN."""
    return urlparse(url).hostname == CATALOG_CDN_HOST


def build_proxy_url(proxy_endpoint: str, url: str) -> str:
    """Build the proxy request URL that fetches ``url`` server-side."""
    return f"{proxy_endpoint}?{urlencode({PROXY_URL_PARAM: url})}"


class ImageLoader:
    """
    Async image loader.

    Example:
        >>> async with ImageLoader(proxy_endpoint="http://localhost:8000/api/proxy-image") as loader:
        ...     image = await loader.load("https://cdn.rebrickable.com/media/parts/3626.png")
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        proxy_endpoint: Optional[str] = None,
        timeout: float = IMAGE_LOAD_TIMEOUT,
    ):
        """
        Initialize the loader.

        Args:
            client: Shared httpx client (created lazily and owned if None)
            proxy_endpoint: Absolute URL of the image proxy route, or None
                            to load catalog CDN images directly
            timeout: Request timeout in seconds for an owned client
        """
        self._client = client
        self._owns_client = client is None
        self.proxy_endpoint = proxy_endpoint
        self.timeout = timeout

    async def __aenter__(self) -> "ImageLoader":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        """The underlying httpx client, created on first use."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout, follow_redirects=True)
        return self._client

    def resolve_url(self, url: str) -> str:
        """Return the URL that is actually requested for ``url``."""
        if self.proxy_endpoint and is_catalog_cdn_url(url):
            return build_proxy_url(self.proxy_endpoint, url)
        return url

    async def fetch_bytes(self, url: str) -> bytes:
        """
        Fetch the raw bytes behind an image reference.

        Raises:
            ImageLoadError: On empty URL, bad data URL, or HTTP/network failure
        """
        if not url:
            raise ImageLoadError("No image URL provided")

        if url.startswith("data:"):
            try:
                return decode_data_url(url)
            except ValueError as e:
                raise ImageLoadError(str(e)) from e

        request_url = self.resolve_url(url)
        try:
            response = await self.client.get(request_url)
            response.raise_for_status()
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise ImageLoadError(f"Failed to fetch image {url}: {e}") from e

        return response.content

    async def load(self, url: str) -> Any:
        """
        Load and decode an image.

        Args:
            url: Image reference (data URL or http(s) URL)

        Returns:
            Decoded PIL Image

        Raises:
            ImageLoadError: If the image cannot be fetched or decoded
        """
        data = await self.fetch_bytes(url)
        try:
            image = Image.open(io.BytesIO(data))
            image.load()
        except (OSError, ValueError, Image.DecompressionBombError) as e:
            raise ImageLoadError(f"Failed to decode image {url[:80]}: {e}") from e

        logger.debug(f"Loaded image {url[:80]} ({image.width}x{image.height})")
        return image
