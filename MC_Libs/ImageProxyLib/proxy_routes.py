"""
Image proxy endpoint.

Fetches a remote image server-side and returns its bytes with a permissive
cross-origin header, so browser canvases can read the pixels back without
being tainted.

    GET /api/proxy-image?url=<image url>

Responses:
    200: Image bytes with the upstream content type
    400: {"error": "No URL provided"}
    500: {"error": "Failed to proxy image"}
"""

import logging
from typing import AsyncIterator, Optional
from urllib.parse import urlparse

import httpx
from fastapi import APIRouter, Depends, FastAPI, Query
from fastapi.responses import JSONResponse, Response

from MC_Libs.constants import (
    DEFAULT_PROXY_CONTENT_TYPE,
    IMAGE_LOAD_TIMEOUT,
    PROXY_CACHE_CONTROL,
    PROXY_IMAGE_ROUTE,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["images"])


async def get_http_client() -> AsyncIterator[httpx.AsyncClient]:
    """Upstream client dependency (overridable in tests)."""
    async with httpx.AsyncClient(timeout=IMAGE_LOAD_TIMEOUT, follow_redirects=True) as client:
        yield client


@router.get(PROXY_IMAGE_ROUTE)
async def proxy_image(
    url: Optional[str] = Query(default=None),
    client: httpx.AsyncClient = Depends(get_http_client),
) -> Response:
    if not url:
        return JSONResponse({"error": "No URL provided"}, status_code=400)

    if urlparse(url).scheme not in ("http", "https"):
        logger.warning(f"Refusing to proxy non-http URL: {url}")
        return JSONResponse({"error": "Failed to proxy image"}, status_code=500)

    try:
        upstream = await client.get(url)
        upstream.raise_for_status()
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        logger.error(f"Error proxying image {url}: {e}")
        return JSONResponse({"error": "Failed to proxy image"}, status_code=500)

    return Response(
        content=upstream.content,
        media_type=upstream.headers.get("content-type", DEFAULT_PROXY_CONTENT_TYPE),
        headers={
            "Cache-Control": PROXY_CACHE_CONTROL,
            "Access-Control-Allow-Origin": "*",
        },
    )


def create_app() -> FastAPI:
    """Standalone app serving only the image proxy."""
    app = FastAPI(title="Minifig Composer Image Proxy")
    app.include_router(router)
    return app
