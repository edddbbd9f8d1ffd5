"""
Collection file storage for Minifig Composer.

Saved compositions ("collections") are stored one per JSON file in a
Collections folder under a base directory. Each file records its owner,
title, the source minifigs and the selected parts with their saved
positions. Parts are flattened for storage and expanded back with
defaults on load.

Store operations never raise: failures come back as a SaveResult with
success=False and a human-readable message.

Functions:
    get_collections_dir: Return (and create) the Collections folder
    list_collection_files: List all collection files
    transform_part_for_storage: Flatten a SelectedPart into a stored dict
    transform_stored_part: Expand a stored dict back into a SelectedPart
    save_collection: Write a new collection
    update_collection: Rewrite fields of an existing collection
    delete_collection: Remove a collection file
    get_collection: Load one collection by id
    get_user_collections: Load a user's collections, newest first
"""

import json
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from MC_Libs.CatalogLib.catalog_models import CatalogPart, Minifig, MinifigPart, PartColor
from MC_Libs.ComposerLib.composer_models import Position, SelectedPart
from MC_Libs.constants import (
    COLLECTIONS_DIR_NAME,
    COLLECTION_EXTENSION,
    DEFAULT_COLLECTION_TITLE,
    EXAMPLE_COLLECTION_ID,
    FIELD_COLOR_ID,
    FIELD_COLOR_NAME,
    FIELD_COLOR_RGB,
    FIELD_CREATED_AT,
    FIELD_ID,
    FIELD_PART_IMG_URL,
    FIELD_PART_NAME,
    FIELD_PART_NUM,
    FIELD_PARTS,
    FIELD_POSITION,
    FIELD_SCHEMA_VERSION,
    FIELD_SOURCE_MINIFIG,
    FIELD_SOURCE_MINIFIGS,
    FIELD_TITLE,
    FIELD_UPDATED_AT,
    FIELD_USER_ID,
    SAFE_ID_CHARS,
    SCHEMA_VERSION,
)

logger = logging.getLogger(__name__)


@dataclass
class Collection:
    id: str
    title: str
    user_id: str = ""
    source_minifigs: List[Minifig] = field(default_factory=list)
    parts: List[SelectedPart] = field(default_factory=list)
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)


@dataclass
class SaveResult:
    """Outcome of a store operation.

    Attributes:
        success: Whether the operation took effect
        id: Collection id (set by save_collection)
        message: Failure reason, or an informational note on success
    """
    success: bool
    id: Optional[str] = None
    message: Optional[str] = None


def _now() -> str:
    return datetime.now().isoformat(timespec="seconds")


def _parse_timestamp(value: Any) -> datetime:
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value)
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value)
        except ValueError:
            pass
    return datetime.now()


def _is_safe_id(collection_id: str) -> bool:
    return bool(collection_id) and all(c.isalnum() or c in SAFE_ID_CHARS for c in collection_id)


def get_collections_dir(base_dir: Path) -> Path:
    collections_dir = base_dir / COLLECTIONS_DIR_NAME
    collections_dir.mkdir(parents=True, exist_ok=True)
    return collections_dir


def list_collection_files(base_dir: Path) -> List[Path]:
    collections_dir = get_collections_dir(base_dir)
    return sorted(collections_dir.glob(f"*{COLLECTION_EXTENSION}"))


def _collection_path(base_dir: Path, collection_id: str) -> Path:
    return get_collections_dir(base_dir) / f"{collection_id}{COLLECTION_EXTENSION}"


def _minifig_for_storage(minifig: Minifig) -> Dict[str, str]:
    """Keep only the minifig fields needed to show a collection."""
    return {
        "set_num": minifig.set_num or "",
        "name": minifig.name or "",
        "set_img_url": minifig.set_img_url or "",
    }


def transform_part_for_storage(part: SelectedPart) -> Dict[str, Any]:
    """
    Flatten a selected part into a storage dict.

    The position key is only present when the part has a saved position.
    """
    stored: Dict[str, Any] = {
        FIELD_ID: part.id,
        FIELD_PART_NUM: part.part.part.part_num or "",
        FIELD_PART_NAME: part.part.part.name or "",
        FIELD_PART_IMG_URL: part.part.part.part_img_url or "",
        FIELD_COLOR_ID: part.part.color.id or 0,
        FIELD_COLOR_NAME: part.part.color.name or "",
        FIELD_COLOR_RGB: part.part.color.rgb or "",
        FIELD_SOURCE_MINIFIG: _minifig_for_storage(part.source_minifig),
    }

    if part.position is not None:
        stored[FIELD_POSITION] = part.position.to_dict()

    return stored


def transform_stored_part(stored: Dict[str, Any]) -> SelectedPart:
    """Expand a storage dict back into a SelectedPart, filling defaults."""
    source = stored.get(FIELD_SOURCE_MINIFIG) or {}
    source_minifig = Minifig(
        set_num=str(source.get("set_num", "")),
        name=str(source.get("name", "")),
        set_img_url=str(source.get("set_img_url", "")),
        last_modified_dt=_now(),
    )

    part = MinifigPart(
        part=CatalogPart(
            part_num=str(stored.get(FIELD_PART_NUM, "")),
            name=str(stored.get(FIELD_PART_NAME, "")),
            part_img_url=str(stored.get(FIELD_PART_IMG_URL, "")),
        ),
        color=PartColor(
            id=int(stored.get(FIELD_COLOR_ID, 0) or 0),
            name=str(stored.get(FIELD_COLOR_NAME, "")),
            rgb=str(stored.get(FIELD_COLOR_RGB, "")),
        ),
        set_num=source_minifig.set_num,
    )

    position_data = stored.get(FIELD_POSITION)
    position = Position.from_dict(position_data) if isinstance(position_data, dict) else None

    return SelectedPart(
        id=str(stored.get(FIELD_ID) or uuid.uuid4()),
        part=part,
        source_minifig=source_minifig,
        position=position,
    )


def _collection_from_payload(payload: Dict[str, Any], fallback_id: str) -> Collection:
    parts = [
        transform_stored_part(item)
        for item in payload.get(FIELD_PARTS, [])
        if isinstance(item, dict)
    ]
    minifigs = [
        Minifig.from_dict(item)
        for item in payload.get(FIELD_SOURCE_MINIFIGS, [])
        if isinstance(item, dict)
    ]
    return Collection(
        id=str(payload.get(FIELD_ID) or fallback_id),
        title=str(payload.get(FIELD_TITLE) or DEFAULT_COLLECTION_TITLE),
        user_id=str(payload.get(FIELD_USER_ID) or ""),
        source_minifigs=minifigs,
        parts=parts,
        created_at=_parse_timestamp(payload.get(FIELD_CREATED_AT)),
        updated_at=_parse_timestamp(payload.get(FIELD_UPDATED_AT)),
    )


def _read_payload(path: Path) -> Optional[Dict[str, Any]]:
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except (FileNotFoundError, json.JSONDecodeError, OSError) as e:
        logger.warning(f"Skipping unreadable collection file {path.name}: {e}")
        return None

    if not isinstance(payload, dict):
        logger.warning(f"Skipping malformed collection file {path.name}")
        return None
    return payload


def _write_payload(path: Path, payload: Dict[str, Any]) -> None:
    payload[FIELD_SCHEMA_VERSION] = SCHEMA_VERSION
    path.write_text(json.dumps(payload, indent=2), encoding="utf-8")


def save_collection(
    base_dir: Path,
    user_id: str,
    title: str,
    source_minifigs: Sequence[Minifig],
    parts: Sequence[SelectedPart],
) -> SaveResult:
    """
    Save a new collection.

    Args:
        base_dir: Base directory containing the Collections folder
        user_id: Owner of the collection
        title: Human-readable title
        source_minifigs: Minifigs the parts were drawn from
        parts: Selected parts with their saved positions

    Returns:
        SaveResult carrying the new collection id on success
    """
    if not user_id:
        return SaveResult(success=False, message="You must be signed in to save collections")

    collection_id = uuid.uuid4().hex
    timestamp = _now()
    payload: Dict[str, Any] = {
        FIELD_ID: collection_id,
        FIELD_USER_ID: user_id,
        FIELD_TITLE: title,
        FIELD_SOURCE_MINIFIGS: [minifig.to_dict() for minifig in source_minifigs],
        FIELD_PARTS: [transform_part_for_storage(part) for part in parts],
        FIELD_CREATED_AT: timestamp,
        FIELD_UPDATED_AT: timestamp,
    }

    try:
        _write_payload(_collection_path(base_dir, collection_id), payload)
    except OSError as e:
        logger.error(f"Error saving collection: {e}")
        return SaveResult(success=False, message=f"Failed to save collection: {e}")

    logger.info(f"Saved collection {collection_id} with {len(parts)} parts")
    return SaveResult(success=True, id=collection_id)


def update_collection(
    base_dir: Path,
    collection_id: str,
    title: Optional[str] = None,
    source_minifigs: Optional[Sequence[Minifig]] = None,
    parts: Optional[Sequence[SelectedPart]] = None,
) -> SaveResult:
    """Rewrite the given fields of an existing collection."""
    if not _is_safe_id(collection_id):
        return SaveResult(success=False, message="Collection not found")

    try:
        path = _collection_path(base_dir, collection_id)
    except OSError as e:
        logger.error(f"Error opening collections folder: {e}")
        return SaveResult(success=False, message=f"Failed to update collection: {e}")

    if not path.exists():
        return SaveResult(success=False, message="Collection not found")

    payload = _read_payload(path)
    if payload is None:
        return SaveResult(success=False, message="Failed to update collection: file is unreadable")

    if title is not None:
        payload[FIELD_TITLE] = title
    if source_minifigs is not None:
        payload[FIELD_SOURCE_MINIFIGS] = [minifig.to_dict() for minifig in source_minifigs]
    if parts is not None:
        payload[FIELD_PARTS] = [transform_part_for_storage(part) for part in parts]
    payload[FIELD_UPDATED_AT] = _now()

    try:
        _write_payload(path, payload)
    except OSError as e:
        logger.error(f"Error updating collection {collection_id}: {e}")
        return SaveResult(success=False, message=f"Failed to update collection: {e}")

    return SaveResult(success=True, id=collection_id)


def delete_collection(base_dir: Path, collection_id: str) -> SaveResult:
    if not _is_safe_id(collection_id):
        return SaveResult(success=False, message="Collection not found")

    try:
        path = _collection_path(base_dir, collection_id)
        path.unlink()
    except FileNotFoundError:
        return SaveResult(success=False, message="Collection not found")
    except OSError as e:
        logger.error(f"Error deleting collection {collection_id}: {e}")
        return SaveResult(success=False, message=f"Failed to delete collection: {e}")

    logger.info(f"Deleted collection {collection_id}")
    return SaveResult(success=True, id=collection_id)


def get_collection(base_dir: Path, collection_id: str) -> Optional[Collection]:
    if not _is_safe_id(collection_id) or collection_id == EXAMPLE_COLLECTION_ID:
        return None

    try:
        path = _collection_path(base_dir, collection_id)
    except OSError as e:
        logger.warning(f"Cannot open collections folder: {e}")
        return None

    if not path.exists():
        return None

    payload = _read_payload(path)
    if payload is None:
        return None
    return _collection_from_payload(payload, path.stem)


def get_user_collections(base_dir: Path, user_id: str) -> List[Collection]:
    """
    Load every collection owned by a user.

    Unreadable files and the example collection are skipped. An unusable
    base directory yields an empty list.

    Returns:
        Collections sorted by last update, newest first
    """
    try:
        paths = list_collection_files(base_dir)
    except OSError as e:
        logger.warning(f"Cannot open collections folder: {e}")
        return []

    collections: List[Collection] = []
    for path in paths:
        payload = _read_payload(path)
        if payload is None or payload.get(FIELD_USER_ID) != user_id:
            continue

        collection = _collection_from_payload(payload, path.stem)
        if collection.id == EXAMPLE_COLLECTION_ID:
            continue
        collections.append(collection)

    collections.sort(key=lambda c: c.updated_at, reverse=True)
    logger.debug(f"Loaded {len(collections)} collections for user {user_id}")
    return collections
