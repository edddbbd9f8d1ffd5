"""
Pixel-level background removal operations.

Each step works on a numpy view of an RGBA pixel buffer (H, W, 4) and
returns a new array, so steps can be tested and combined independently.

Pipeline:
    1. sample_corner_colors + estimate_background_color
    2. build_distance_alpha: color-distance alpha mask
    3. detect_edges: Sobel gradient magnitude mask
    4. combine_masks: edges forced opaque, near-white forced transparent
    5. morphological_cleanup: 3x3 erosion then 3x3 dilation of the alpha

Example:
    >>> from PIL import Image
    >>> image = Image.open("part.png")
    >>> cutout = remove_background_pixels(image)
    >>> cutout.mode
    'RGBA'
"""

from typing import Any

import numpy as np
from PIL import Image
from scipy import ndimage

from MC_Libs.BgRemovalLib.image_models import RgbColor
from MC_Libs.constants import (
    ALPHA_OPAQUE,
    ALPHA_TRANSPARENT,
    CORNER_SAMPLE_SIZE,
    DISTANCE_ALPHA_RAMP,
    DISTANCE_OPAQUE_THRESHOLD,
    DISTANCE_TRANSPARENT_THRESHOLD,
    EDGE_MAGNITUDE_THRESHOLD,
    NEAR_WHITE_THRESHOLD,
)


def sample_corner_colors(pixels: np.ndarray, sample_size: int = CORNER_SAMPLE_SIZE) -> np.ndarray:
    """
    Collect the RGB values of a square block from each image corner.

    Blocks are clipped to the image size. On images smaller than two blocks
    the corner blocks overlap and shared pixels are sampled more than once.

    Args:
        pixels: Pixel buffer of shape (H, W, 3) or (H, W, 4)
        sample_size: Edge length of each corner block

    Returns:
        Array of shape (N, 3) with every sampled RGB triple
    """
    height, width = pixels.shape[:2]
    rgb = pixels[..., :3]

    rows = min(sample_size, height)
    cols = min(sample_size, width)
    bottom = max(0, height - sample_size)
    right = max(0, width - sample_size)

    blocks = [
        rgb[:rows, :cols],
        rgb[:rows, right:],
        rgb[bottom:, :cols],
        rgb[bottom:, right:],
    ]
    return np.concatenate([block.reshape(-1, 3) for block in blocks])


def estimate_background_color(samples: np.ndarray) -> RgbColor:
    """
    Average sampled colors into one estimated background color.

    Plain averaging is a known approximation: a part reaching into a corner
    skews the estimate.

    Args:
        samples: Array of shape (N, 3) from sample_corner_colors

    Returns:
        RGB tuple, each channel mean rounded half-up

    Raises:
        ValueError: If there are no samples
    """
    if len(samples) == 0:
        raise ValueError("Cannot estimate background color without samples")

    mean = samples.astype(np.float64).mean(axis=0)
    rounded = np.floor(mean + 0.5).astype(int)
    return (int(rounded[0]), int(rounded[1]), int(rounded[2]))


def color_distance(pixels: np.ndarray, color: RgbColor) -> np.ndarray:
    """Euclidean RGB distance from every pixel to one color, shape (H, W)."""
    diff = pixels[..., :3].astype(np.float64) - np.asarray(color, dtype=np.float64)
    return np.sqrt((diff * diff).sum(axis=-1))


def build_distance_alpha(pixels: np.ndarray, background: RgbColor) -> np.ndarray:
    """
    Build an alpha mask from each pixel's distance to the background color.

    Distance below 30 is fully transparent, 50 and above fully opaque, and
    the band in between ramps linearly as floor((distance - 30) * 12.75).

    Args:
        pixels: Pixel buffer of shape (H, W, 3) or (H, W, 4)
        background: Estimated background color

    Returns:
        uint8 alpha mask of shape (H, W)
    """
    distance = color_distance(pixels, background)
    alpha = np.full(distance.shape, ALPHA_OPAQUE, dtype=np.uint8)

    alpha[distance < DISTANCE_TRANSPARENT_THRESHOLD] = ALPHA_TRANSPARENT

    ramp = (distance >= DISTANCE_TRANSPARENT_THRESHOLD) & (distance < DISTANCE_OPAQUE_THRESHOLD)
    ramp_values = np.floor((distance[ramp] - DISTANCE_TRANSPARENT_THRESHOLD) * DISTANCE_ALPHA_RAMP)
    alpha[ramp] = np.clip(ramp_values, ALPHA_TRANSPARENT, ALPHA_OPAQUE).astype(np.uint8)

    return alpha


def detect_edges(pixels: np.ndarray, threshold: float = EDGE_MAGNITUDE_THRESHOLD) -> np.ndarray:
    """
    Mark pixels whose Sobel gradient magnitude exceeds a threshold.

    The gradient is taken over the red channel. Only interior pixels are
    evaluated; the one-pixel border is never an edge.

    Args:
        pixels: Pixel buffer of shape (H, W, 3) or (H, W, 4)
        threshold: Magnitude above which a pixel counts as an edge

    Returns:
        Boolean mask of shape (H, W)
    """
    height, width = pixels.shape[:2]
    edges = np.zeros((height, width), dtype=bool)
    if height < 3 or width < 3:
        return edges

    red = pixels[..., 0].astype(np.int32)

    top_left, top, top_right = red[:-2, :-2], red[:-2, 1:-1], red[:-2, 2:]
    left, right = red[1:-1, :-2], red[1:-1, 2:]
    bottom_left, bottom, bottom_right = red[2:, :-2], red[2:, 1:-1], red[2:, 2:]

    gx = (top_right + 2 * right + bottom_right) - (top_left + 2 * left + bottom_left)
    gy = (bottom_left + 2 * bottom + bottom_right) - (top_left + 2 * top + top_right)

    magnitude = np.sqrt((gx * gx + gy * gy).astype(np.float64))
    edges[1:-1, 1:-1] = magnitude > threshold
    return edges


def combine_masks(alpha: np.ndarray, edges: np.ndarray, pixels: np.ndarray) -> np.ndarray:
    """
    Merge the distance alpha with the edge mask and strip near-white pixels.

    Edge pixels are forced opaque so silhouettes close to the background
    color survive. Pixels with every channel above 245 are then forced
    transparent regardless of the previous steps.

    Args:
        alpha: uint8 mask from build_distance_alpha
        edges: Boolean mask from detect_edges
        pixels: The source pixel buffer

    Returns:
        Combined uint8 alpha mask of shape (H, W)
    """
    combined = np.where(edges, ALPHA_OPAQUE, alpha).astype(np.uint8)
    near_white = (pixels[..., :3] > NEAR_WHITE_THRESHOLD).all(axis=-1)
    combined[near_white] = ALPHA_TRANSPARENT
    return combined


def morphological_cleanup(alpha: np.ndarray) -> np.ndarray:
    """
    Remove isolated alpha speckles with a 3x3 opening.

    A 3x3 minimum filter (erosion) is followed by a 3x3 maximum filter
    (dilation) over the eroded mask. Both passes write interior pixels only:
    the eroded mask has a zero border and the output keeps the input alpha
    on its border.

    Args:
        alpha: uint8 alpha mask of shape (H, W)

    Returns:
        Cleaned uint8 alpha mask of shape (H, W)
    """
    result = alpha.copy()
    height, width = alpha.shape
    if height < 3 or width < 3:
        return result

    eroded = np.zeros_like(alpha)
    eroded[1:-1, 1:-1] = ndimage.minimum_filter(alpha, size=3)[1:-1, 1:-1]

    dilated = ndimage.maximum_filter(eroded, size=3)
    result[1:-1, 1:-1] = dilated[1:-1, 1:-1]
    return result


def remove_background_pixels(image: Any) -> Any:
    """
    Run the full background removal pipeline over an image.

    Args:
        image: PIL Image in any mode (converted to RGBA)

    Returns:
        New RGBA PIL Image with the computed alpha channel

    Raises:
        TypeError: If image is not a PIL Image
        ValueError: If the image has no pixels
    """
    if not hasattr(image, "convert"):
        raise TypeError(f"Expected PIL Image, got {type(image)}")

    pixels = np.array(image.convert("RGBA"), dtype=np.uint8)
    if pixels.size == 0:
        raise ValueError("Cannot remove background from an empty image")

    background = estimate_background_color(sample_corner_colors(pixels))
    alpha = build_distance_alpha(pixels, background)
    edges = detect_edges(pixels)
    alpha = combine_masks(alpha, edges, pixels)

    output = pixels.copy()
    output[..., 3] = morphological_cleanup(alpha)
    return Image.fromarray(output)
