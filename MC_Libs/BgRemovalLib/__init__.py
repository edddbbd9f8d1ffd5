"""
BgRemovalLib - Background removal for catalog part images

This module provides the pixel pipeline that strips the flat background
from part images, the async image loader, and the cached removal engine.
"""

from MC_Libs.BgRemovalLib.image_models import ProcessedImage, RgbColor
from MC_Libs.BgRemovalLib.image_loader import (
    ImageLoader,
    ImageLoadError,
    encode_png_data_url,
    decode_data_url,
    is_catalog_cdn_url,
    build_proxy_url,
)
from MC_Libs.BgRemovalLib.mask_ops import (
    sample_corner_colors,
    estimate_background_color,
    build_distance_alpha,
    detect_edges,
    combine_masks,
    morphological_cleanup,
    remove_background_pixels,
)
from MC_Libs.BgRemovalLib.background_removal import BackgroundRemovalEngine

__all__ = [
    "ProcessedImage",
    "RgbColor",
    "ImageLoader",
    "ImageLoadError",
    "encode_png_data_url",
    "decode_data_url",
    "is_catalog_cdn_url",
    "build_proxy_url",
    "sample_corner_colors",
    "estimate_background_color",
    "build_distance_alpha",
    "detect_edges",
    "combine_masks",
    "morphological_cleanup",
    "remove_background_pixels",
    "BackgroundRemovalEngine",
]
