"""
Builder session state.

BuilderSession holds what the user is currently building: the selected
parts, the minifigs they came from, and the collections loaded for the
signed-in user. It owns the selection list that FigureComposer.sync_selection
consumes; the composer reports drag results back through
update_part_position.

The selection can be written to and restored from a JSON state file so a
session survives restarts. Collections and UI flags are not part of it.
"""

import json
import logging
import time
from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, List, Optional

from MC_Libs.CatalogLib.catalog_models import Minifig, MinifigPart
from MC_Libs.CollectionStoreLib import collection_store
from MC_Libs.CollectionStoreLib.collection_store import Collection
from MC_Libs.ComposerLib.composer_models import Position, SelectedPart

logger = logging.getLogger(__name__)


class BuilderSession:
    """
    Current builder selection plus collection management.

    Attributes:
        base_dir: Base directory of the collection store
        selected_parts: Parts picked for the composition, in pick order
        source_minifigs: Minifigs used as part sources (no duplicates)
        current_minifig: Minifig whose parts are being browsed
        collections: Collections loaded for the user
        is_loading: True while a store operation runs
        error: Last failure or informational message, None when clear
    """

    def __init__(self, base_dir: Path):
        self.base_dir = Path(base_dir)
        self.selected_parts: List[SelectedPart] = []
        self.source_minifigs: List[Minifig] = []
        self.current_minifig: Optional[Minifig] = None
        self.collections: List[Collection] = []
        self.is_loading = False
        self.error: Optional[str] = None

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def _new_part_id(self, part: MinifigPart) -> str:
        base_id = f"{part.part.part_num}-{part.color.id}-{int(time.time() * 1000)}"
        taken = {selected.id for selected in self.selected_parts}
        part_id = base_id
        counter = 1
        while part_id in taken:
            part_id = f"{base_id}-{counter}"
            counter += 1
        return part_id

    def add_part(self, part: MinifigPart, source_minifig: Minifig) -> SelectedPart:
        selected = SelectedPart(id=self._new_part_id(part), part=part, source_minifig=source_minifig)
        self.selected_parts = [*self.selected_parts, selected]
        return selected

    def remove_part(self, part_id: str) -> None:
        self.selected_parts = [p for p in self.selected_parts if p.id != part_id]

    def update_part_position(self, part_id: str, position: Position) -> None:
        self.selected_parts = [
            replace(p, position=Position(position.x, position.y)) if p.id == part_id else p
            for p in self.selected_parts
        ]

    def clear_selected_parts(self) -> None:
        self.selected_parts = []

    # ------------------------------------------------------------------
    # Source minifigs
    # ------------------------------------------------------------------

    def set_current_minifig(self, minifig: Optional[Minifig]) -> None:
        self.current_minifig = minifig

    def add_source_minifig(self, minifig: Minifig) -> None:
        if any(m.set_num == minifig.set_num for m in self.source_minifigs):
            return
        self.source_minifigs = [*self.source_minifigs, minifig]

    def remove_source_minifig(self, set_num: str) -> None:
        """Drop a source minifig together with the parts picked from it."""
        self.source_minifigs = [m for m in self.source_minifigs if m.set_num != set_num]
        self.selected_parts = [
            p for p in self.selected_parts if p.source_minifig.set_num != set_num
        ]

    def clear_source_minifigs(self) -> None:
        self.source_minifigs = []
        self.selected_parts = []
        self.current_minifig = None

    # ------------------------------------------------------------------
    # Collections
    # ------------------------------------------------------------------

    def save_collection(self, title: str, user_id: str) -> bool:
        """Save the current selection as a new collection."""
        self.is_loading = True
        self.error = None

        result = collection_store.save_collection(
            self.base_dir, user_id, title, self.source_minifigs, self.selected_parts
        )
        self.is_loading = False

        if not result.success:
            self.error = result.message or "Failed to save collection. Please try again."
            return False

        collection = collection_store.get_collection(self.base_dir, result.id)
        if collection is not None:
            self.collections = [collection, *self.collections]
        return True

    def load_collections(self, user_id: str) -> None:
        self.is_loading = True
        self.error = None
        self.collections = collection_store.get_user_collections(self.base_dir, user_id)
        self.is_loading = False

    def delete_collection(self, collection_id: str) -> bool:
        self.is_loading = True
        self.error = None

        result = collection_store.delete_collection(self.base_dir, collection_id)
        self.is_loading = False

        if not result.success:
            self.error = result.message or "Failed to delete collection. Please try again."
            return False

        self.collections = [c for c in self.collections if c.id != collection_id]
        return True

    def load_collection(self, collection: Collection) -> None:
        """Replace the current selection with copies of a saved collection's parts."""
        self.selected_parts = [replace(p) for p in collection.parts]
        self.source_minifigs = list(collection.source_minifigs)
        self.current_minifig = collection.source_minifigs[0] if collection.source_minifigs else None

    # ------------------------------------------------------------------
    # Persisted session state
    # ------------------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        return {
            "selected_parts": [
                collection_store.transform_part_for_storage(p) for p in self.selected_parts
            ],
            "source_minifigs": [m.to_dict() for m in self.source_minifigs],
            "current_minifig": self.current_minifig.to_dict() if self.current_minifig else None,
        }

    def save_state(self, state_path: Path) -> None:
        state_path.write_text(json.dumps(self.to_dict(), indent=2), encoding="utf-8")

    def load_state(self, state_path: Path) -> bool:
        """
        Restore the selection from a state file.

        Returns:
            False if the file is missing or unreadable (state is unchanged)
        """
        try:
            payload = json.loads(state_path.read_text(encoding="utf-8"))
        except (FileNotFoundError, json.JSONDecodeError, OSError) as e:
            logger.warning(f"Could not restore session state from {state_path}: {e}")
            return False

        if not isinstance(payload, dict):
            return False

        self.selected_parts = [
            collection_store.transform_stored_part(item)
            for item in payload.get("selected_parts", [])
            if isinstance(item, dict)
        ]
        self.source_minifigs = [
            Minifig.from_dict(item)
            for item in payload.get("source_minifigs", [])
            if isinstance(item, dict)
        ]
        current = payload.get("current_minifig")
        self.current_minifig = Minifig.from_dict(current) if isinstance(current, dict) else None
        return True
