"""
CollectionStoreLib - Builder session and collection persistence

This module handles the user's current part selection and the saving,
loading and deleting of collections on disk.
"""

from MC_Libs.CollectionStoreLib.collection_store import (
    Collection,
    SaveResult,
    get_collections_dir,
    list_collection_files,
    transform_part_for_storage,
    transform_stored_part,
    save_collection,
    update_collection,
    delete_collection,
    get_collection,
    get_user_collections,
)
from MC_Libs.CollectionStoreLib.session_store import BuilderSession

__all__ = [
    "Collection",
    "SaveResult",
    "get_collections_dir",
    "list_collection_files",
    "transform_part_for_storage",
    "transform_stored_part",
    "save_collection",
    "update_collection",
    "delete_collection",
    "get_collection",
    "get_user_collections",
    "BuilderSession",
]
