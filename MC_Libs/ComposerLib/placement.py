"""
Geometry helpers for the composition canvas.

Functions:
    clamp_scale: Keep a requested scale within the allowed range
    clamp_drag_position: Keep a dragged part center inside the canvas
    find_open_position: Probe for a default position clear of other parts
    renumber_layers: Reassign dense layers from list order
"""

import random
from typing import Iterable, List, Optional

from MC_Libs.ComposerLib.composer_models import PlacedPart, Position
from MC_Libs.constants import (
    DRAG_MAX_X,
    DRAG_MAX_Y,
    DRAG_MIN_X,
    DRAG_MIN_Y,
    MAX_PART_SCALE,
    MIN_PART_SCALE,
    PLACEMENT_FALLBACK_HEIGHT,
    PLACEMENT_FALLBACK_WIDTH,
    PLACEMENT_FALLBACK_X,
    PLACEMENT_FALLBACK_Y,
    PLACEMENT_MAX_X,
    PLACEMENT_MAX_Y,
    PLACEMENT_MIN_DISTANCE,
    PLACEMENT_START,
    PLACEMENT_STEP,
)


def clamp_scale(scale: float) -> float:
    return max(MIN_PART_SCALE, min(MAX_PART_SCALE, float(scale)))


def clamp_drag_position(x: float, y: float) -> Position:
    return Position(
        x=max(DRAG_MIN_X, min(DRAG_MAX_X, float(x))),
        y=max(DRAG_MIN_Y, min(DRAG_MAX_Y, float(y))),
    )


def _is_occupied(x: float, y: float, occupied: List[Position]) -> bool:
    return any(
        abs(pos.x - x) < PLACEMENT_MIN_DISTANCE and abs(pos.y - y) < PLACEMENT_MIN_DISTANCE
        for pos in occupied
    )


def find_open_position(
    occupied: Iterable[Position],
    rng: Optional[random.Random] = None,
) -> Position:
    """
    Find a default position for a new part.

    Candidates are probed along the diagonal starting at (200, 200) in steps
    of 30 until no occupied position lies within 30px on both axes. Once the
    probe leaves the working area (x > 400 or y > 300) a random point in the
    fallback region is returned instead.

    Args:
        occupied: Positions of the parts already on the canvas
        rng: Random source for the fallback (unseeded if None)

    Returns:
        The chosen Position
    """
    occupied = list(occupied)
    rng = rng or random.Random()

    x = y = PLACEMENT_START
    offset = 0.0
    while _is_occupied(x, y, occupied):
        offset += PLACEMENT_STEP
        x = PLACEMENT_START + offset
        y = PLACEMENT_START + offset
        if x > PLACEMENT_MAX_X or y > PLACEMENT_MAX_Y:
            x = PLACEMENT_FALLBACK_X + rng.random() * PLACEMENT_FALLBACK_WIDTH
            y = PLACEMENT_FALLBACK_Y + rng.random() * PLACEMENT_FALLBACK_HEIGHT
            break

    return Position(x=x, y=y)


def renumber_layers(parts: List[PlacedPart]) -> None:
    """Set each part's layer to its index in the list."""
    for index, part in enumerate(parts):
        part.layer = index
