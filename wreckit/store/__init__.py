"""Item store: records, story documents, registry."""

from wreckit.store.items import (
    append_progress,
    create_item,
    load_item,
    load_story_document,
    read_item,
    read_story_document,
    save_item,
    scan_items,
    write_item,
    write_story_document,
)
from wreckit.store.models import IndexEntry, Item, Story, StoryDocument
from wreckit.store.registry import read_index, rebuild_registry

__all__ = [
    "append_progress",
    "create_item",
    "load_item",
    "load_story_document",
    "read_item",
    "read_story_document",
    "save_item",
    "scan_items",
    "write_item",
    "write_story_document",
    "IndexEntry",
    "Item",
    "Story",
    "StoryDocument",
    "read_index",
    "rebuild_registry",
]
