"""
Background removal data models for Minifig Composer.

Classes:
    ProcessedImage: Cached result of running background removal on one URL

Type Aliases:
    RgbColor: A tuple of 3 integers representing RGB color values (0-255)
"""

from dataclasses import dataclass
from typing import Tuple

RgbColor = Tuple[int, int, int]


@dataclass(frozen=True)
class ProcessedImage:
    """Result of running one source image through background removal.

    Attributes:
        original_url: The unmodified input reference
        processed_url: Renderable image reference with the background made
                       transparent, or original_url when processing was
                       skipped or failed
        is_processed: True only when pixel-level removal ran and succeeded
    """
    original_url: str
    processed_url: str
    is_processed: bool = False

    @classmethod
    def unprocessed(cls, url: str) -> "ProcessedImage":
        """Fallback result that points back at the original image."""
        return cls(original_url=url, processed_url=url, is_processed=False)
