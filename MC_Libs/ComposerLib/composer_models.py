"""
Composition data models for Minifig Composer.

Classes:
    Position: Canvas coordinates of a part's center
    SelectedPart: A catalog part picked by the user, owned by the session
    PlacedPart: One selected part positioned on the composition canvas
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from MC_Libs.BgRemovalLib.image_models import ProcessedImage
from MC_Libs.CatalogLib.catalog_models import Minifig, MinifigPart
from MC_Libs.constants import DEFAULT_PART_ROTATION, DEFAULT_PART_SCALE


@dataclass
class Position:
    x: float = 0.0
    y: float = 0.0

    def to_dict(self) -> Dict[str, float]:
        return {"x": self.x, "y": self.y}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Position":
        return cls(x=float(data.get("x", 0.0)), y=float(data.get("y", 0.0)))


@dataclass
class SelectedPart:
    """A part picked from a minifig inventory.

    Attributes:
        id: Unique per selection (the same catalog part can be picked twice)
        part: Inventory entry the part was picked from
        source_minifig: Minifig the part was drawn from
        position: Saved canvas position, set when reloaded from a collection
                  or after the part has been dragged
    """
    id: str
    part: MinifigPart
    source_minifig: Minifig
    position: Optional[Position] = None

    @property
    def image_url(self) -> str:
        return self.part.image_url


@dataclass
class PlacedPart:
    """A part instance on the composition canvas.

    Attributes:
        id: Same id as the SelectedPart it was created from
        source: The SelectedPart it was created from
        position: Canvas coordinates of the part's center
        layer: Dense 0-based stacking index (higher draws on top)
        scale: Uniform scale, kept within [0.1, 3.0]
        rotation: Rotation in degrees
        processed_image: Background removal result, None while pending
    """
    id: str
    source: SelectedPart
    position: Position = field(default_factory=Position)
    layer: int = 0
    scale: float = DEFAULT_PART_SCALE
    rotation: float = DEFAULT_PART_ROTATION
    processed_image: Optional[ProcessedImage] = None

    @property
    def image_url(self) -> str:
        return self.source.image_url

    @property
    def is_pending(self) -> bool:
        return self.processed_image is None

    def display_url(self, show_processed: bool = True) -> str:
        """Image reference to draw for the current view mode."""
        if self.processed_image is None:
            return self.image_url
        if show_processed and self.processed_image.is_processed:
            return self.processed_image.processed_url
        return self.processed_image.original_url
