"""
ImageProxyLib - Cross-origin image proxy

Provides the FastAPI route that fetches catalog images server-side.
"""

from MC_Libs.ImageProxyLib.proxy_routes import router, get_http_client, create_app

__all__ = ["router", "get_http_client", "create_app"]
