"""
Item store: load and persist item records, story documents and artifacts.

Items live in:
  .wreckit/<section>/<NNN>-<slug>/item.json
  .wreckit/<section>/<NNN>-<slug>/prd.json

Every operation re-reads from disk; nothing is cached between calls.
Writes go through a temp file and os.replace so a record is never
half-written.
"""

import asyncio
import json
import os
import re
import tempfile
from datetime import datetime, timezone
from pathlib import Path

from wreckit.lib.constants import ITEM_DIR_PATTERN, ITEM_FILE, MAX_SLUG_LEN, PROMPTS_DIR, SECTION_PATTERN
from wreckit.lib.errors import WreckitError, not_found, validation_error
from wreckit.lib.validate import is_valid, validate_before_write, validate_file
from wreckit.store import paths
from wreckit.store.models import IndexEntry, Item, StoryDocument
from wreckit.workflow.states import WorkflowState


def now_iso() -> str:
    """Current UTC time as ISO-8601 with millisecond precision."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def write_json_atomic(path: Path, data: dict, schema_name: str) -> None:
    """Validate then write JSON via a temp file in the same directory."""
    validate_before_write(data, schema_name, path)
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w") as f:
            f.write(json.dumps(data, indent=2) + "\n")
        os.replace(tmp_name, path)
    except OSError:
        Path(tmp_name).unlink(missing_ok=True)
        raise


# --- Item records ---

def read_item(root: Path, item_id: str) -> Item:
    """Load and validate an item record.

    Raises:
        WreckitError(not_found, ITEM_NOT_FOUND): If the item does not exist
        WreckitError(validation, ...): If item.json is not valid
    """
    path = paths.item_json_path(root, item_id)
    if not path.exists():
        raise not_found(f"Item not found: {item_id}", "ITEM_NOT_FOUND")
    return Item.from_dict(validate_file(path, "item"))


def write_item(root: Path, item: Item, touch: bool = True) -> Item:
    """Persist an item record, refreshing updated_at unless `touch` is False."""
    if touch:
        item.updated_at = now_iso()
    write_json_atomic(paths.item_json_path(root, item.id), item.to_dict(), "item")
    return item


async def load_item(root: Path, item_id: str) -> Item:
    return await asyncio.to_thread(read_item, root, item_id)


async def save_item(root: Path, item: Item) -> Item:
    return await asyncio.to_thread(write_item, root, item)


# --- Story document ---

def read_story_document(root: Path, item_id: str) -> StoryDocument | None:
    """Load prd.json. Unreadable or schema-invalid documents count as absent."""
    path = paths.prd_path(root, item_id)
    if not path.exists():
        return None
    try:
        data = json.loads(path.read_text())
    except (OSError, json.JSONDecodeError):
        return None
    if not is_valid(data, "prd"):
        return None
    return StoryDocument.from_dict(data)


def write_story_document(root: Path, item_id: str, doc: StoryDocument) -> None:
    write_json_atomic(paths.prd_path(root, item_id), doc.to_dict(), "prd")


async def load_story_document(root: Path, item_id: str) -> StoryDocument | None:
    return await asyncio.to_thread(read_story_document, root, item_id)


# --- Markdown artifacts and progress log ---

def read_artifact(path: Path) -> str:
    """Return file contents, or an empty string when absent."""
    try:
        return path.read_text()
    except FileNotFoundError:
        return ""


async def load_artifact(path: Path) -> str:
    return await asyncio.to_thread(read_artifact, path)


def _append_line(path: Path, line: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("a") as f:
        f.write(line.rstrip("\n") + "\n")


async def append_progress(root: Path, item_id: str, message: str) -> None:
    """Append a timestamped record to the item's progress.log."""
    line = f"[{now_iso()}] {message}"
    await asyncio.to_thread(_append_line, paths.progress_path(root, item_id), line)


# --- Creation and scanning ---

def generate_slug(title: str) -> str:
    """Lower-case, alphanumerics and hyphens, at most MAX_SLUG_LEN chars."""
    slug = title.lower()
    slug = re.sub(r"[^a-z0-9\s-]", "", slug)
    slug = re.sub(r"\s+", "-", slug)
    slug = re.sub(r"-+", "-", slug)
    slug = slug.strip("-")
    return slug[:MAX_SLUG_LEN].rstrip("-")


def _section_dirs(root: Path) -> list[Path]:
    base = paths.wreckit_dir(root)
    if not base.is_dir():
        return []
    return sorted(
        d for d in base.iterdir()
        if d.is_dir() and not d.name.startswith(".") and d.name != PROMPTS_DIR
    )


def _item_dirs(section_dir: Path) -> list[Path]:
    return sorted(
        d for d in section_dir.iterdir()
        if d.is_dir() and ITEM_DIR_PATTERN.match(d.name)
    )


def list_item_dirs(root: Path) -> list[tuple[str, Path]]:
    """All (item_id, directory) pairs on disk, sorted by identifier."""
    found = []
    for section_dir in _section_dirs(root):
        for d in _item_dirs(section_dir):
            found.append((f"{section_dir.name}/{d.name}", d))
    return sorted(found, key=lambda pair: pair[0])


def allocate_item_number(root: Path, section: str) -> str:
    """Next zero-padded 3-digit number within a section."""
    section_dir = paths.wreckit_dir(root) / section
    nums = []
    if section_dir.is_dir():
        for d in _item_dirs(section_dir):
            nums.append(int(d.name[:3]))
    return f"{max(nums, default=0) + 1:03d}"


def create_item(root: Path, section: str, title: str, overview: str = "") -> tuple[Item, bool]:
    """Create a raw item. Returns (item, created).

    An item with the same slug in the same section is returned as-is
    instead of creating a duplicate.
    """
    if not SECTION_PATTERN.match(section):
        raise validation_error(
            f"Invalid section '{section}': use lower-case letters, digits, '-' or '_'",
            "INVALID_ITEM",
        )
    slug = generate_slug(title)
    if not slug:
        raise validation_error(f"Cannot derive an identifier from title: {title!r}", "INVALID_ITEM")

    section_dir = paths.wreckit_dir(root) / section
    if section_dir.is_dir():
        for d in _item_dirs(section_dir):
            if d.name[4:] == slug and (d / ITEM_FILE).exists():
                return read_item(root, f"{section}/{d.name}"), False

    item_id = f"{section}/{allocate_item_number(root, section)}-{slug}"
    timestamp = now_iso()
    item = Item(
        id=item_id,
        title=title,
        section=section,
        state=WorkflowState.RAW,
        overview=overview,
        created_at=timestamp,
        updated_at=timestamp,
    )
    write_item(root, item, touch=False)
    return item, True


def scan_items(root: Path) -> list[IndexEntry]:
    """Live scan of every readable item, sorted by identifier."""
    entries = []
    for item_id, _ in list_item_dirs(root):
        try:
            item = read_item(root, item_id)
        except WreckitError:
            continue
        entries.append(IndexEntry(id=item.id, state=item.state, title=item.title))
    return entries
