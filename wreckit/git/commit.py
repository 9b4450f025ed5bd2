"""Git commit operations."""

import logging
from pathlib import Path

from wreckit.git import runner
from wreckit.git.runner import CommandResult


async def stage_all(repo: Path, logger: logging.Logger, dry_run: bool = False) -> CommandResult:
    """Stage all changes (new, modified, deleted)."""
    return await runner.run_git(["add", "-A"], repo, logger, dry_run=dry_run)


async def commit_staged(repo: Path, message: str, logger: logging.Logger, dry_run: bool = False) -> CommandResult:
    return await runner.run_git(["commit", "-m", message], repo, logger, dry_run=dry_run)


async def commit_all(repo: Path, message: str, logger: logging.Logger, dry_run: bool = False) -> CommandResult:
    """Stage everything and commit. Returns the first failing step's result."""
    staged = await stage_all(repo, logger, dry_run=dry_run)
    if not staged.success:
        return staged
    return await commit_staged(repo, message, logger, dry_run=dry_run)
