"""
Pointer drag handling for placed parts.

DragController is a two-state machine (IDLE -> DRAGGING -> IDLE) that turns
pointer events into FigureComposer.move_part calls. The pointer offset from
the part center is captured on pointer-down so the part does not jump to
the pointer. Positions are clamped to the canvas drag bounds.
"""

from contextlib import contextmanager
from enum import Enum
from typing import Iterator, Optional

from MC_Libs.ComposerLib.composer_models import Position
from MC_Libs.ComposerLib.figure_composer import FigureComposer
from MC_Libs.ComposerLib.placement import clamp_drag_position


class DragState(Enum):
    IDLE = "idle"
    DRAGGING = "dragging"


class DragController:
    """
    Drag state machine bound to one composer.

    Example:
        >>> drag = DragController(composer)
        >>> with drag.dragging(part_id, 210, 205):
        ...     drag.pointer_move(260, 240)
    """

    def __init__(self, composer: FigureComposer):
        self.composer = composer
        self.state = DragState.IDLE
        self.part_id: Optional[str] = None
        self._offset = Position()
        self._start = Position()

    @property
    def is_dragging(self) -> bool:
        return self.state is DragState.DRAGGING

    def pointer_down(self, part_id: str, pointer_x: float, pointer_y: float) -> bool:
        """
        Start dragging a part.

        A drag already in progress is released first.

        Returns:
            True if the drag started, False if the part does not exist
        """
        if self.is_dragging:
            self.pointer_up()

        part = self.composer.get_part(part_id)
        if part is None:
            return False

        self.state = DragState.DRAGGING
        self.part_id = part_id
        self._offset = Position(pointer_x - part.position.x, pointer_y - part.position.y)
        self._start = Position(part.position.x, part.position.y)
        return True

    def pointer_move(self, pointer_x: float, pointer_y: float) -> Optional[Position]:
        """
        Move the dragged part to follow the pointer.

        Returns:
            The new clamped position, or None when idle. If the part was
            removed mid-drag the drag is released and None is returned.
        """
        if not self.is_dragging:
            return None

        position = clamp_drag_position(pointer_x - self._offset.x, pointer_y - self._offset.y)
        if not self.composer.move_part(self.part_id, position):
            self._release()
            return None
        return position

    def pointer_up(self) -> None:
        self._release()

    def cancel(self) -> None:
        """Abort the drag and put the part back where it started."""
        if self.is_dragging:
            self.composer.move_part(self.part_id, self._start)
        self._release()

    def _release(self) -> None:
        self.state = DragState.IDLE
        self.part_id = None
        self._offset = Position()

    @contextmanager
    def dragging(self, part_id: str, pointer_x: float, pointer_y: float) -> Iterator["DragController"]:
        """Drag for the duration of the block; always released on exit."""
        self.pointer_down(part_id, pointer_x, pointer_y)
        try:
            yield self
        finally:
            if self.is_dragging:
                self.pointer_up()
