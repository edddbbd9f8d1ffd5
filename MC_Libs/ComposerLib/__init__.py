"""
ComposerLib - Layered part composition

This module provides the placed-part models, the FigureComposer that owns
their transforms and stacking order, pointer drag handling, and export of
the composition to a flattened PNG.
"""

from MC_Libs.ComposerLib.composer_models import PlacedPart, Position, SelectedPart
from MC_Libs.ComposerLib.placement import (
    clamp_scale,
    clamp_drag_position,
    find_open_position,
    renumber_layers,
)
from MC_Libs.ComposerLib.composition_export import (
    draw_part,
    export_composition,
    save_composition,
)
from MC_Libs.ComposerLib.figure_composer import FigureComposer
from MC_Libs.ComposerLib.drag_controller import DragController, DragState

__all__ = [
    "PlacedPart",
    "Position",
    "SelectedPart",
    "clamp_scale",
    "clamp_drag_position",
    "find_open_position",
    "renumber_layers",
    "draw_part",
    "export_composition",
    "save_composition",
    "FigureComposer",
    "DragController",
    "DragState",
]
