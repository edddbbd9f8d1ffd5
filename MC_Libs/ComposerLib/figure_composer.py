"""
Composition Engine.

FigureComposer owns the ordered list of PlacedParts backing the canvas and
is the only writer of their layer, position, scale and rotation. The list
order is the stacking order: after every add, remove and reorder the
layers are renumbered densely to match it.

Selection changes come from the session store through sync_selection.
Each newly selected part is placed right away with no processed image and
a background removal task is started for it. The task captures only the
part id; when it finishes the result is merged into whichever part holds
that id at that moment, and dropped if the part is gone.

Lookups of unknown part ids are silent no-ops.
"""

import asyncio
import logging
import random
from typing import Any, Callable, Dict, List, Optional, Sequence

from MC_Libs.BgRemovalLib.background_removal import BackgroundRemovalEngine
from MC_Libs.BgRemovalLib.image_loader import ImageLoader
from MC_Libs.BgRemovalLib.image_models import ProcessedImage
from MC_Libs.ComposerLib.composer_models import PlacedPart, Position, SelectedPart
from MC_Libs.ComposerLib.composition_export import export_composition
from MC_Libs.ComposerLib.placement import clamp_scale, find_open_position, renumber_layers
from MC_Libs.constants import LAYER_DOWN, LAYER_UP

logger = logging.getLogger(__name__)

PositionCallback = Callable[[str, Position], None]


class FigureComposer:
    """
    Layered composition of selected parts.

    Example:
        >>> composer = FigureComposer(engine, on_position_change=session.update_part_position)
        >>> composer.sync_selection(session.selected_parts)
        >>> await composer.wait_until_processed()
        >>> composer.move_part(part_id, Position(250, 180))
        >>> composer.change_layer(part_id, "up")
    """

    def __init__(
        self,
        engine: BackgroundRemovalEngine,
        on_position_change: Optional[PositionCallback] = None,
        rng: Optional[random.Random] = None,
    ):
        """
        Initialize an empty composition.

        Args:
            engine: Shared background removal engine
            on_position_change: Called with (part_id, position) after a move,
                                so the session can persist the position
            rng: Random source for fallback placement
        """
        self.engine = engine
        self.on_position_change = on_position_change
        self.selected_part_id: Optional[str] = None
        self.show_processed = True
        self._rng = rng or random.Random()
        self._parts: List[PlacedPart] = []
        self._pending: Dict[str, "asyncio.Task[ProcessedImage]"] = {}

    def __len__(self) -> int:
        return len(self._parts)

    @property
    def parts(self) -> List[PlacedPart]:
        """Placed parts in stacking order (bottom first)."""
        return list(self._parts)

    @property
    def is_processing(self) -> bool:
        return any(self.get_part(part_id) is not None for part_id in self._pending)

    def get_part(self, part_id: str) -> Optional[PlacedPart]:
        for part in self._parts:
            if part.id == part_id:
                return part
        return None

    def _index_of(self, part_id: str) -> int:
        for index, part in enumerate(self._parts):
            if part.id == part_id:
                return index
        return -1

    # ------------------------------------------------------------------
    # Selection sync
    # ------------------------------------------------------------------

    def sync_selection(self, selected: Sequence[SelectedPart]) -> List["asyncio.Task[ProcessedImage]"]:
        """
        Bring the placed parts in line with the current selection.

        Parts no longer selected are dropped, newly selected parts are
        appended after the retained ones, and layers are renumbered.
        Must be called from a running event loop.

        Args:
            selected: The session's current selected parts

        Returns:
            The background removal tasks started for new parts
        """
        existing_ids = {part.id for part in self._parts}
        selected_ids = {part.id for part in selected}

        newly_added: List[SelectedPart] = []
        seen = set(existing_ids)
        for selected_part in selected:
            if selected_part.id not in seen:
                newly_added.append(selected_part)
                seen.add(selected_part.id)

        still_selected = [part for part in self._parts if part.id in selected_ids]

        if not newly_added and len(still_selected) == len(self._parts):
            return []

        placed = list(still_selected)
        new_parts: List[PlacedPart] = []
        for selected_part in newly_added:
            if selected_part.position is not None:
                position = Position(selected_part.position.x, selected_part.position.y)
            else:
                position = find_open_position([part.position for part in placed], self._rng)

            part = PlacedPart(id=selected_part.id, source=selected_part, position=position)
            placed.append(part)
            new_parts.append(part)

        renumber_layers(placed)
        self._parts = placed

        if self.selected_part_id not in selected_ids:
            self.selected_part_id = None

        removed = len(existing_ids) - len(still_selected)
        logger.debug(f"Selection synced: {len(new_parts)} added, {removed} removed")

        return [self._start_processing(part) for part in new_parts]

    def _start_processing(self, part: PlacedPart) -> "asyncio.Task[ProcessedImage]":
        task = asyncio.get_running_loop().create_task(self._process_part(part.id, part.image_url))
        self._pending[part.id] = task

        def _finished(done: "asyncio.Task[ProcessedImage]", part_id: str = part.id) -> None:
            if self._pending.get(part_id) is done:
                del self._pending[part_id]

        task.add_done_callback(_finished)
        return task

    async def _process_part(self, part_id: str, image_url: str) -> ProcessedImage:
        result = await self.engine.remove_background_canvas(image_url)
        self._merge_processed(part_id, result)
        return result

    def _merge_processed(self, part_id: str, result: ProcessedImage) -> None:
        part = self.get_part(part_id)
        if part is None:
            logger.debug(f"Discarding background removal result for removed part {part_id}")
            return
        part.processed_image = result

    async def wait_until_processed(self) -> None:
        """Wait for every background removal task started so far."""
        while self._pending:
            await asyncio.gather(*list(self._pending.values()))

    # ------------------------------------------------------------------
    # Transforms
    # ------------------------------------------------------------------

    def move_part(self, part_id: str, position: Position) -> bool:
        """Set a part's center position. Returns False for unknown ids."""
        part = self.get_part(part_id)
        if part is None:
            return False

        part.position = Position(position.x, position.y)
        if self.on_position_change is not None:
            self.on_position_change(part_id, part.position)
        return True

    def scale_part(self, part_id: str, scale: float) -> bool:
        """Set a part's scale, clamped to [0.1, 3.0]. Returns False for unknown ids."""
        part = self.get_part(part_id)
        if part is None:
            return False
        part.scale = clamp_scale(scale)
        return True

    def rotate_part(self, part_id: str, rotation: float) -> bool:
        """Set a part's rotation in degrees. Returns False for unknown ids."""
        part = self.get_part(part_id)
        if part is None:
            return False
        part.rotation = float(rotation)
        return True

    def change_layer(self, part_id: str, direction: str) -> bool:
        """
        Swap a part with its neighbor in the stacking order.

        Args:
            part_id: Part to move
            direction: "up" (toward the top) or "down" (toward the bottom)

        Returns:
            True if the part moved, False for unknown ids or at the boundary

        Raises:
            ValueError: If direction is not "up" or "down"
        """
        if direction not in (LAYER_UP, LAYER_DOWN):
            raise ValueError(f"direction must be '{LAYER_UP}' or '{LAYER_DOWN}', got {direction!r}")

        index = self._index_of(part_id)
        if index == -1:
            return False

        target = index + 1 if direction == LAYER_UP else index - 1
        if target < 0 or target >= len(self._parts):
            return False

        self._parts[index], self._parts[target] = self._parts[target], self._parts[index]
        renumber_layers(self._parts)
        return True

    def remove_part(self, part_id: str) -> bool:
        """Drop a part and renumber the remaining layers."""
        index = self._index_of(part_id)
        if index == -1:
            return False

        del self._parts[index]
        renumber_layers(self._parts)
        if self.selected_part_id == part_id:
            self.selected_part_id = None
        return True

    def clear(self) -> None:
        self._parts = []
        self.selected_part_id = None

    # ------------------------------------------------------------------
    # View state
    # ------------------------------------------------------------------

    def toggle_selected(self, part_id: str) -> Optional[str]:
        """Select a part, or deselect it if it is already selected."""
        if self.selected_part_id == part_id or self.get_part(part_id) is None:
            self.selected_part_id = None
        else:
            self.selected_part_id = part_id
        return self.selected_part_id

    def toggle_view(self) -> bool:
        """Switch between processed and original images."""
        self.show_processed = not self.show_processed
        return self.show_processed

    async def export(self, loader: ImageLoader, **kwargs: Any) -> Any:
        """Flatten the composition with the current view mode."""
        return await export_composition(self.parts, loader, show_processed=self.show_processed, **kwargs)
