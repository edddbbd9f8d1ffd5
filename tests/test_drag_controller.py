"""
Unit tests for DragController.

Tests pointer offset capture, clamping to the drag bounds, and release of
the drag state in every exit path.
"""

import unittest

from MC_Libs.BgRemovalLib.image_models import ProcessedImage
from MC_Libs.CatalogLib.catalog_models import CatalogPart, Minifig, MinifigPart
from MC_Libs.ComposerLib.composer_models import Position, SelectedPart
from MC_Libs.ComposerLib.drag_controller import DragController, DragState
from MC_Libs.ComposerLib.figure_composer import FigureComposer


class InstantEngine:
    async def remove_background_canvas(self, url):
        return ProcessedImage.unprocessed(url)


def make_part(part_id, position):
    part = MinifigPart(part=CatalogPart(part_num="973", part_img_url=f"https://example.com/{part_id}.png"))
    return SelectedPart(id=part_id, part=part, source_minifig=Minifig(set_num="fig-1"), position=position)


class TestDragController(unittest.IsolatedAsyncioTestCase):
    """Tests for the IDLE -> DRAGGING -> IDLE state machine."""

    async def asyncSetUp(self):
        self.moves = []
        self.composer = FigureComposer(
            InstantEngine(),
            on_position_change=lambda part_id, pos: self.moves.append((part_id, pos)),
        )
        self.composer.sync_selection([make_part("torso", Position(200, 200))])
        await self.composer.wait_until_processed()
        self.drag = DragController(self.composer)

    def position(self):
        return self.composer.get_part("torso").position

    def test_starts_idle(self):
        self.assertIs(self.drag.state, DragState.IDLE)
        self.assertIsNone(self.drag.pointer_move(10, 10))

    def test_pointer_down_on_unknown_part(self):
        self.assertFalse(self.drag.pointer_down("legs", 0, 0))
        self.assertFalse(self.drag.is_dragging)

    def test_keeps_pointer_offset(self):
        """The part follows the pointer without jumping to it."""
        self.assertTrue(self.drag.pointer_down("torso", 210, 205))

        moved = self.drag.pointer_move(260, 245)

        self.assertEqual(moved, Position(250, 240))
        self.assertEqual(self.position(), Position(250, 240))
        self.assertEqual(self.moves[-1], ("torso", Position(250, 240)))

    def test_clamps_to_drag_bounds(self):
        self.drag.pointer_down("torso", 200, 200)

        self.assertEqual(self.drag.pointer_move(1000, 1000), Position(550, 350))
        self.assertEqual(self.drag.pointer_move(-50, 0), Position(50, 50))

    def test_pointer_up_ends_drag(self):
        self.drag.pointer_down("torso", 200, 200)
        self.drag.pointer_move(220, 220)

        self.drag.pointer_up()

        self.assertIs(self.drag.state, DragState.IDLE)
        self.assertIsNone(self.drag.pointer_move(300, 300))
        self.assertEqual(self.position(), Position(220, 220))

    def test_cancel_restores_start_position(self):
        self.drag.pointer_down("torso", 200, 200)
        self.drag.pointer_move(300, 300)

        self.drag.cancel()

        self.assertEqual(self.position(), Position(200, 200))
        self.assertFalse(self.drag.is_dragging)

    def test_part_removed_mid_drag_releases(self):
        self.drag.pointer_down("torso", 200, 200)
        self.composer.remove_part("torso")

        self.assertIsNone(self.drag.pointer_move(250, 250))
        self.assertFalse(self.drag.is_dragging)

    def test_context_manager_releases_on_error(self):
        with self.assertRaises(RuntimeError):
            with self.drag.dragging("torso", 200, 200):
                self.drag.pointer_move(240, 240)
                raise RuntimeError("pointer lost")

        self.assertFalse(self.drag.is_dragging)
        self.assertEqual(self.position(), Position(240, 240))

    def test_new_drag_releases_previous(self):
        self.drag.pointer_down("torso", 200, 200)

        self.assertTrue(self.drag.pointer_down("torso", 220, 220))
        self.assertEqual(self.drag.pointer_move(230, 230), Position(210, 210))


if __name__ == "__main__":
    unittest.main()
