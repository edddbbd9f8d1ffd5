"""
Background Removal Engine.

Turns an image URL into a best-effort background-stripped version and
caches the result by URL for the life of the engine. Every call resolves
to a ProcessedImage: load and pipeline failures fall back to the original
image and are cached like successes, so each URL is attempted once.

Concurrent requests for the same uncached URL share one in-flight task,
so pixel processing runs at most once per distinct URL.

Example:
    >>> loader = ImageLoader(proxy_endpoint="http://localhost:8000/api/proxy-image")
    >>> engine = BackgroundRemovalEngine(loader)
    >>> result = await engine.remove_background_canvas(part_img_url)
    >>> result.is_processed
    True
"""

import asyncio
import base64
import logging
import os
from typing import Awaitable, Callable, Dict, Optional

import httpx

from MC_Libs.BgRemovalLib.image_loader import ImageLoader, ImageLoadError, encode_png_data_url
from MC_Libs.BgRemovalLib.image_models import ProcessedImage
from MC_Libs.BgRemovalLib.mask_ops import remove_background_pixels
from MC_Libs.constants import (
    PNG_DATA_URL_PREFIX,
    REMOVE_BG_API_KEY_ENV,
    REMOVE_BG_API_URL,
    REMOVE_BG_TIMEOUT,
)

logger = logging.getLogger(__name__)

Processor = Callable[[str], Awaitable[ProcessedImage]]


class BackgroundRemovalEngine:
    """
    Cached background removal.

    One instance is constructed per process and handed to every consumer.

    remove_background_canvas and remove_background share both the result
    cache and the in-flight table, keyed by URL only: a call arriving while
    the other method is still working on the same URL receives that
    method's result.

    Attributes:
        loader: ImageLoader used to fetch source images
        remove_bg_api_key: remove.bg API key for remote removal (optional)
        processing_count: Number of times the local pixel pipeline ran
    """

    def __init__(self, loader: ImageLoader, remove_bg_api_key: Optional[str] = None):
        self.loader = loader
        if remove_bg_api_key is None:
            remove_bg_api_key = os.getenv(REMOVE_BG_API_KEY_ENV, "")
        self.remove_bg_api_key = remove_bg_api_key
        self.processing_count = 0
        self._cache: Dict[str, ProcessedImage] = {}
        self._in_flight: Dict[str, "asyncio.Task[ProcessedImage]"] = {}

    def get_cached(self, image_url: str) -> Optional[ProcessedImage]:
        return self._cache.get(image_url)

    def is_cached(self, image_url: str) -> bool:
        return image_url in self._cache

    @property
    def cache_size(self) -> int:
        return len(self._cache)

    def clear_cache(self) -> None:
        """Forget every cached result. In-flight tasks still complete."""
        self._cache.clear()
        logger.debug("Background removal cache cleared")

    async def remove_background_canvas(self, image_url: str) -> ProcessedImage:
        """
        Remove the background locally with the pixel pipeline.

        Args:
            image_url: Source image reference

        Returns:
            ProcessedImage; is_processed is False when loading or
            processing failed, in which case processed_url == original_url
        """
        return await self._resolve(image_url, self._process_locally)

    async def remove_background(self, image_url: str) -> ProcessedImage:
        """
        Remove the background through the remove.bg API.

        Without an API key the original image is returned unprocessed.
        Shares the cache with remove_background_canvas.
        """
        return await self._resolve(image_url, self._process_remotely)

    async def _resolve(self, image_url: str, processor: Processor) -> ProcessedImage:
        cached = self._cache.get(image_url)
        if cached is not None:
            return cached

        task = self._in_flight.get(image_url)
        if task is None:
            task = asyncio.get_running_loop().create_task(self._run(image_url, processor))
            self._in_flight[image_url] = task

        # Shielded so a cancelled caller does not cancel the shared task
        return await asyncio.shield(task)

    async def _run(self, image_url: str, processor: Processor) -> ProcessedImage:
        try:
            result = await processor(image_url)
        except Exception as e:
            logger.warning(f"Background removal failed for {image_url}, using original: {e}")
            result = ProcessedImage.unprocessed(image_url)
        finally:
            self._in_flight.pop(image_url, None)

        self._cache[image_url] = result
        return result

    async def _process_locally(self, image_url: str) -> ProcessedImage:
        try:
            image = await self.loader.load(image_url)
        except ImageLoadError as e:
            logger.warning(f"Could not load {image_url}, using original: {e}")
            return ProcessedImage.unprocessed(image_url)

        self.processing_count += 1
        cutout = remove_background_pixels(image)
        logger.debug(f"Removed background from {image_url} ({cutout.width}x{cutout.height})")

        return ProcessedImage(
            original_url=image_url,
            processed_url=encode_png_data_url(cutout),
            is_processed=True,
        )

    async def _process_remotely(self, image_url: str) -> ProcessedImage:
        if not self.remove_bg_api_key:
            return ProcessedImage.unprocessed(image_url)

        try:
            response = await self.loader.client.post(
                REMOVE_BG_API_URL,
                json={"image_url": image_url, "size": "auto", "format": "png"},
                headers={"X-Api-Key": self.remove_bg_api_key},
                timeout=REMOVE_BG_TIMEOUT,
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning(f"remove.bg request failed for {image_url}, using original: {e}")
            return ProcessedImage.unprocessed(image_url)

        return ProcessedImage(
            original_url=image_url,
            processed_url=PNG_DATA_URL_PREFIX + base64.b64encode(response.content).decode("ascii"),
            is_processed=True,
        )
