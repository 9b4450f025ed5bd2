"""
Registry (index.json): a denormalized cache of every item's id, state and
title, rebuildable at any time from a live scan.
"""

import json
from pathlib import Path

from wreckit.lib.constants import SCHEMA_VERSION
from wreckit.lib.validate import is_valid
from wreckit.store import paths
from wreckit.store.items import now_iso, scan_items, write_json_atomic
from wreckit.store.models import IndexEntry
from wreckit.workflow.states import WorkflowState


def read_index(root: Path) -> list[IndexEntry] | None:
    """Read the registry. Returns None when missing or invalid."""
    path = paths.index_path(root)
    if not path.exists():
        return None
    try:
        data = json.loads(path.read_text())
    except (OSError, json.JSONDecodeError):
        return None
    if not is_valid(data, "index"):
        return None
    return [
        IndexEntry(id=e["id"], state=WorkflowState(e["state"]), title=e["title"])
        for e in data["items"]
    ]


def rebuild_registry(root: Path) -> list[IndexEntry]:
    """Rewrite index.json from a live directory scan."""
    entries = scan_items(root)
    data = {
        "schema_version": SCHEMA_VERSION,
        "items": [e.to_dict() for e in entries],
        "generated_at": now_iso(),
    }
    write_json_atomic(paths.index_path(root), data, "index")
    return entries
