"""Filesystem layout of a wreckit workspace."""

from pathlib import Path

from wreckit.lib.constants import (
    CONFIG_FILE,
    INDEX_FILE,
    ITEM_FILE,
    PLAN_FILE,
    PRD_FILE,
    PROGRESS_FILE,
    PROMPTS_DIR,
    RESEARCH_FILE,
    WRECKIT_DIR,
)
from wreckit.lib.errors import not_found


def find_repo_root(start: Path | None = None) -> Path:
    """Walk up from `start` to the first directory holding .git and .wreckit."""
    current = (start or Path.cwd()).resolve()
    for candidate in (current, *current.parents):
        if (candidate / WRECKIT_DIR).is_dir():
            if not (candidate / ".git").exists():
                raise not_found(
                    f"Found {WRECKIT_DIR} at {candidate} but it is not a git repository",
                    "REPO_NOT_FOUND",
                )
            return candidate
    raise not_found(
        f"Could not find a wreckit workspace from {current} (run 'wreckit init')",
        "REPO_NOT_FOUND",
    )


def wreckit_dir(root: Path) -> Path:
    return root / WRECKIT_DIR


def config_path(root: Path) -> Path:
    return wreckit_dir(root) / CONFIG_FILE


def index_path(root: Path) -> Path:
    return wreckit_dir(root) / INDEX_FILE


def prompts_dir(root: Path) -> Path:
    return wreckit_dir(root) / PROMPTS_DIR


def item_dir(root: Path, item_id: str) -> Path:
    return wreckit_dir(root) / item_id


def item_json_path(root: Path, item_id: str) -> Path:
    return item_dir(root, item_id) / ITEM_FILE


def research_path(root: Path, item_id: str) -> Path:
    return item_dir(root, item_id) / RESEARCH_FILE


def plan_path(root: Path, item_id: str) -> Path:
    return item_dir(root, item_id) / PLAN_FILE


def prd_path(root: Path, item_id: str) -> Path:
    return item_dir(root, item_id) / PRD_FILE


def progress_path(root: Path, item_id: str) -> Path:
    return item_dir(root, item_id) / PROGRESS_FILE
