"""
Flatten a composition into a single PNG raster.

Parts are drawn in ascending layer order onto a transparent canvas. Each
part image is fitted into a 100x100 box centered on the part's position,
then scaled and rotated about that point. Image loads run concurrently;
parts whose image is not ready after the settle delay, or fails to load,
are left out of the frame.

Example:
    >>> image = await export_composition(composer.parts, loader)
    >>> save_composition(image, Path("exports"))
    PosixPath('exports/minifig-composition.png')
"""

import asyncio
import logging
from pathlib import Path
from typing import Any, Dict, Sequence

from PIL import Image

from MC_Libs.BgRemovalLib.image_loader import ImageLoader
from MC_Libs.ComposerLib.composer_models import PlacedPart
from MC_Libs.constants import (
    DEFAULT_OUTPUT_FORMAT,
    EXPORT_CANVAS_HEIGHT,
    EXPORT_CANVAS_WIDTH,
    EXPORT_FILENAME,
    EXPORT_SETTLE_DELAY,
    PART_BOX_SIZE,
)

logger = logging.getLogger(__name__)


def draw_part(canvas: Any, image: Any, part: PlacedPart, box_size: int = PART_BOX_SIZE) -> Any:
    """
    Composite one part image onto the canvas using the part's transform.

    Args:
        canvas: RGBA PIL Image to draw on
        image: Decoded part image (any mode)
        part: PlacedPart supplying position, scale and rotation
        box_size: Edge length of the logical box the image is fitted into

    Returns:
        New RGBA PIL Image with the part drawn on top
    """
    size = max(1, int(round(box_size * part.scale)))
    tile = image.convert("RGBA").resize((size, size), Image.Resampling.LANCZOS)

    if part.rotation % 360:
        # PIL rotates counter-clockwise, the canvas convention is clockwise
        tile = tile.rotate(-part.rotation, resample=Image.Resampling.BICUBIC, expand=True)

    left = int(round(part.position.x - tile.width / 2))
    top = int(round(part.position.y - tile.height / 2))

    layer = Image.new("RGBA", canvas.size, (0, 0, 0, 0))
    layer.paste(tile, (left, top))
    return Image.alpha_composite(canvas, layer)


async def export_composition(
    parts: Sequence[PlacedPart],
    loader: ImageLoader,
    show_processed: bool = True,
    width: int = EXPORT_CANVAS_WIDTH,
    height: int = EXPORT_CANVAS_HEIGHT,
    box_size: int = PART_BOX_SIZE,
    settle_delay: float = EXPORT_SETTLE_DELAY,
) -> Any:
    """
    Render the composition to one flattened image.

    Args:
        parts: Placed parts (any order, drawn by layer)
        loader: ImageLoader used to decode part images
        show_processed: Draw background-removed images when available
        width: Output width in pixels
        height: Output height in pixels
        box_size: Logical part box edge length
        settle_delay: Seconds to wait for image loads before finalizing

    Returns:
        RGBA PIL Image
    """
    canvas = Image.new("RGBA", (width, height), (0, 0, 0, 0))
    ordered = sorted(parts, key=lambda part: part.layer)
    if not ordered:
        return canvas

    loads: Dict[str, "asyncio.Task[Any]"] = {
        part.id: asyncio.ensure_future(loader.load(part.display_url(show_processed)))
        for part in ordered
    }
    done, pending = await asyncio.wait(loads.values(), timeout=settle_delay)

    for task in pending:
        task.cancel()
    if pending:
        await asyncio.gather(*pending, return_exceptions=True)
        logger.info(f"Export skipped {len(pending)} part(s) still loading")

    for part in ordered:
        task = loads[part.id]
        if task not in done:
            continue
        error = task.exception()
        if error is not None:
            logger.warning(f"Export skipped part {part.id}: {error}")
            continue
        canvas = draw_part(canvas, task.result(), part, box_size)

    return canvas


def save_composition(image: Any, output_dir: Path, filename: str = EXPORT_FILENAME) -> Path:
    """
    Save an exported composition as PNG.

    Args:
        image: PIL Image from export_composition
        output_dir: Existing directory to write into
        filename: Output file name

    Returns:
        Path of the written file

    Raises:
        OSError: If output_dir does not exist or is not a directory
    """
    if not output_dir.exists():
        raise OSError(f"Output directory does not exist: {output_dir}")

    if not output_dir.is_dir():
        raise OSError(f"Output path is not a directory: {output_dir}")

    save_path = output_dir / filename
    image.save(save_path, format=DEFAULT_OUTPUT_FORMAT)
    return save_path
