"""
Unit tests for BackgroundRemovalEngine.

Tests caching, de-duplication of concurrent requests, fallback to the
original image on failure, and the remove.bg path.
"""

import asyncio
import io
import unittest
from unittest.mock import patch

import httpx
import numpy as np
from PIL import Image

from MC_Libs.BgRemovalLib.background_removal import BackgroundRemovalEngine
from MC_Libs.BgRemovalLib.image_loader import ImageLoader, decode_data_url, encode_png_data_url
from MC_Libs.BgRemovalLib.image_models import ProcessedImage
from MC_Libs.constants import REMOVE_BG_API_URL


def _part_image():
    pixels = np.full((20, 20, 4), 255, dtype=np.uint8)
    pixels[5:15, 5:15, :3] = 0
    return Image.fromarray(pixels)


def _png_bytes(image):
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


class TestBackgroundRemovalEngine(unittest.IsolatedAsyncioTestCase):
    """Tests for local (pixel pipeline) background removal."""

    def setUp(self):
        self.requests = []
        self.responses = {}

    def _handler(self, request):
        self.requests.append(request)
        key = str(request.url)
        if key not in self.responses:
            key = request.url.host
        status, body = self.responses.get(key, (404, b""))
        return httpx.Response(status, content=body)

    def _engine(self, **kwargs):
        client = httpx.AsyncClient(transport=httpx.MockTransport(self._handler))
        self.addAsyncCleanup(client.aclose)
        return BackgroundRemovalEngine(ImageLoader(client=client, **kwargs), remove_bg_api_key="")

    async def test_processes_data_url(self):
        engine = self._engine()
        url = encode_png_data_url(_part_image())

        result = await engine.remove_background_canvas(url)

        self.assertTrue(result.is_processed)
        self.assertEqual(result.original_url, url)
        self.assertTrue(result.processed_url.startswith("data:image/png;base64,"))
        self.assertEqual(engine.processing_count, 1)

    async def test_processed_image_has_transparent_background(self):
        engine = self._engine()

        result = await engine.remove_background_canvas(encode_png_data_url(_part_image()))

        cutout = Image.open(io.BytesIO(decode_data_url(result.processed_url)))
        alpha = np.array(cutout.convert("RGBA"))[..., 3]
        self.assertEqual(alpha[0, 0], 0)
        self.assertEqual(alpha[10, 10], 255)

    async def test_second_call_is_served_from_cache(self):
        engine = self._engine()
        url = encode_png_data_url(_part_image())

        first = await engine.remove_background_canvas(url)
        second = await engine.remove_background_canvas(url)

        self.assertIs(first, second)
        self.assertEqual(engine.processing_count, 1)
        self.assertTrue(engine.is_cached(url))
        self.assertIs(engine.get_cached(url), first)

    async def test_concurrent_requests_share_one_run(self):
        url = "https://example.com/part.png"
        self.responses[url] = (200, _png_bytes(_part_image()))
        engine = self._engine()

        results = await asyncio.gather(*[engine.remove_background_canvas(url) for _ in range(5)])

        self.assertEqual(engine.processing_count, 1)
        self.assertEqual(len(self.requests), 1)
        self.assertTrue(all(result is results[0] for result in results))

    async def test_distinct_urls_are_processed_separately(self):
        engine = self._engine()
        first = encode_png_data_url(_part_image())
        second = encode_png_data_url(_part_image().resize((30, 30)))

        await engine.remove_background_canvas(first)
        await engine.remove_background_canvas(second)

        self.assertEqual(engine.processing_count, 2)
        self.assertEqual(engine.cache_size, 2)

    async def test_load_failure_falls_back_to_original(self):
        url = "https://example.com/missing.png"
        engine = self._engine()

        result = await engine.remove_background_canvas(url)

        self.assertEqual(result, ProcessedImage(url, url, False))
        self.assertEqual(engine.processing_count, 0)

    async def test_failure_is_cached(self):
        """A failed URL is not attempted again."""
        url = "https://example.com/missing.png"
        engine = self._engine()

        await engine.remove_background_canvas(url)
        await engine.remove_background_canvas(url)

        self.assertEqual(len(self.requests), 1)
        self.assertTrue(engine.is_cached(url))

    async def test_undecodable_image_falls_back(self):
        url = "https://example.com/broken.png"
        self.responses[url] = (200, b"<html>not an image</html>")
        engine = self._engine()

        result = await engine.remove_background_canvas(url)

        self.assertFalse(result.is_processed)
        self.assertEqual(result.processed_url, url)

    async def test_empty_url_falls_back(self):
        engine = self._engine()

        result = await engine.remove_background_canvas("")

        self.assertFalse(result.is_processed)
        self.assertEqual(result.processed_url, "")

    async def test_pipeline_error_falls_back(self):
        engine = self._engine()
        url = encode_png_data_url(_part_image())

        with patch(
            "MC_Libs.BgRemovalLib.background_removal.remove_background_pixels",
            side_effect=RuntimeError("boom"),
        ):
            result = await engine.remove_background_canvas(url)

        self.assertFalse(result.is_processed)
        self.assertEqual(result.processed_url, url)
        self.assertTrue(engine.is_cached(url))

    async def test_cdn_image_is_loaded_through_proxy(self):
        source = "https://cdn.rebrickable.com/media/parts/elements/3626.jpg"
        proxy = "http://proxy.local/api/proxy-image"
        engine = self._engine(proxy_endpoint=proxy)
        self.responses["proxy.local"] = (200, _png_bytes(_part_image()))

        result = await engine.remove_background_canvas(source)

        self.assertTrue(result.is_processed)
        self.assertEqual(result.original_url, source)
        self.assertEqual(self.requests[0].url.host, "proxy.local")

    async def test_clear_cache_forces_reprocessing(self):
        engine = self._engine()
        url = encode_png_data_url(_part_image())

        await engine.remove_background_canvas(url)
        engine.clear_cache()
        await engine.remove_background_canvas(url)

        self.assertEqual(engine.cache_size, 1)
        self.assertEqual(engine.processing_count, 2)

    async def test_cancelled_caller_does_not_cancel_shared_run(self):
        url = encode_png_data_url(_part_image())
        engine = self._engine()

        first = asyncio.ensure_future(engine.remove_background_canvas(url))
        second = asyncio.ensure_future(engine.remove_background_canvas(url))
        await asyncio.sleep(0)
        first.cancel()

        result = await second

        self.assertTrue(result.is_processed)
        self.assertEqual(engine.processing_count, 1)


class TestRemoveBgApi(unittest.IsolatedAsyncioTestCase):
    """Tests for remove.bg background removal."""

    def setUp(self):
        self.requests = []

    def _handler(self, request):
        self.requests.append(request)
        return httpx.Response(200, content=_png_bytes(_part_image()))

    def _engine(self, api_key):
        client = httpx.AsyncClient(transport=httpx.MockTransport(self._handler))
        self.addAsyncCleanup(client.aclose)
        return BackgroundRemovalEngine(ImageLoader(client=client), remove_bg_api_key=api_key)

    async def test_without_key_returns_original(self):
        engine = self._engine("")
        url = "https://example.com/part.png"

        result = await engine.remove_background(url)

        self.assertEqual(result, ProcessedImage.unprocessed(url))
        self.assertEqual(self.requests, [])

    async def test_with_key_posts_to_api(self):
        engine = self._engine("secret-key")
        url = "https://example.com/part.png"

        result = await engine.remove_background(url)

        self.assertTrue(result.is_processed)
        self.assertTrue(result.processed_url.startswith("data:image/png;base64,"))
        request = self.requests[0]
        self.assertEqual(request.method, "POST")
        self.assertEqual(str(request.url), REMOVE_BG_API_URL)
        self.assertEqual(request.headers["X-Api-Key"], "secret-key")

    async def test_api_error_returns_original(self):
        def failing(request):
            return httpx.Response(402, json={"errors": [{"title": "Insufficient credits"}]})

        client = httpx.AsyncClient(transport=httpx.MockTransport(failing))
        self.addAsyncCleanup(client.aclose)
        engine = BackgroundRemovalEngine(ImageLoader(client=client), remove_bg_api_key="secret-key")

        result = await engine.remove_background("https://example.com/part.png")

        self.assertFalse(result.is_processed)

    async def test_shares_cache_with_local_removal(self):
        engine = self._engine("")
        url = encode_png_data_url(_part_image())

        local = await engine.remove_background_canvas(url)
        remote = await engine.remove_background(url)

        self.assertIs(local, remote)

    async def test_local_call_joins_remote_call_in_flight(self):
        """A canvas call for a URL already being sent to remove.bg gets that result."""
        gate = asyncio.Event()

        async def slow(request):
            self.requests.append(request)
            await gate.wait()
            return httpx.Response(200, content=_png_bytes(_part_image()))

        client = httpx.AsyncClient(transport=httpx.MockTransport(slow))
        self.addAsyncCleanup(client.aclose)
        engine = BackgroundRemovalEngine(ImageLoader(client=client), remove_bg_api_key="secret-key")
        url = "https://example.com/part.png"

        remote = asyncio.ensure_future(engine.remove_background(url))
        await asyncio.sleep(0)
        local = asyncio.ensure_future(engine.remove_background_canvas(url))
        await asyncio.sleep(0)
        gate.set()
        remote_result, local_result = await asyncio.gather(remote, local)

        self.assertIs(remote_result, local_result)
        self.assertTrue(local_result.is_processed)
        self.assertEqual(engine.processing_count, 0)
        self.assertEqual(len(self.requests), 1)


if __name__ == "__main__":
    unittest.main()
