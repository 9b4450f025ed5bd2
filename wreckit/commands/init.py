"""
wreckit init - Create the .wreckit workspace in the current git repository.
"""

from pathlib import Path

from wreckit.lib.config import create_default_config
from wreckit.lib.constants import WRECKIT_DIR
from wreckit.lib.errors import not_found, validation_error
from wreckit.lib.prompts import init_prompt_templates
from wreckit.store.registry import rebuild_registry


def init_workspace(cwd: Path, force: bool = False) -> Path:
    """Create .wreckit/ with default config, prompts and an empty index."""
    if not (cwd / ".git").exists():
        raise not_found(f"{cwd} is not a git repository", "NOT_GIT_REPO")

    target = cwd / WRECKIT_DIR
    if target.exists() and not force:
        raise validation_error(f"{target} already exists (use --force)", "WRECKIT_EXISTS")

    target.mkdir(exist_ok=True)
    create_default_config(cwd, overwrite=force)
    init_prompt_templates(cwd)
    rebuild_registry(cwd)
    return target


def cmd_init(args, cwd: Path, logger) -> int:
    target = init_workspace(cwd, force=args.force)
    logger.info(f"Initialized {target}")
    return 0
