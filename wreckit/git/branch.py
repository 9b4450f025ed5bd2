"""Git branch operations."""

import logging
from dataclasses import dataclass
from pathlib import Path

from wreckit.git import runner


@dataclass
class BranchResult:
    success: bool
    branch: str
    created: bool = False
    error: str | None = None


async def get_current_branch(repo: Path, logger: logging.Logger) -> str | None:
    """Get the current branch name, or None if detached HEAD."""
    result = await runner.run_git(["branch", "--show-current"], repo, logger)
    if result.success:
        return result.stdout.strip() or None
    return None


async def branch_exists(repo: Path, branch: str, logger: logging.Logger) -> bool:
    """Check if a local branch exists."""
    result = await runner.run_git(
        ["show-ref", "--verify", "--quiet", f"refs/heads/{branch}"], repo, logger
    )
    return result.success


async def remote_branch_exists(repo: Path, remote: str, branch: str, logger: logging.Logger) -> bool:
    """Check if a remote-tracking branch is known locally."""
    result = await runner.run_git(
        ["show-ref", "--verify", "--quiet", f"refs/remotes/{remote}/{branch}"], repo, logger
    )
    return result.success


async def ensure_branch(
    repo: Path,
    base_branch: str,
    branch: str,
    logger: logging.Logger,
    remote: str = "origin",
    dry_run: bool = False,
) -> BranchResult:
    """
    Switch to `branch`, creating it if needed.

    Reuses an existing local branch, then a remote-tracked one, and
    otherwise branches from `base_branch`. Uncommitted changes are
    carried over by checkout.
    """
    if dry_run:
        logger.info(f"[dry-run] Would switch to branch {branch} (base: {base_branch})")
        return BranchResult(success=True, branch=branch)

    if await get_current_branch(repo, logger) == branch:
        return BranchResult(success=True, branch=branch)

    if await branch_exists(repo, branch, logger):
        result = await runner.run_git(["checkout", branch], repo, logger)
        created = False
    elif await remote_branch_exists(repo, remote, branch, logger):
        result = await runner.run_git(
            ["checkout", "-b", branch, "--track", f"{remote}/{branch}"], repo, logger
        )
        created = False
    else:
        result = await runner.run_git(["checkout", "-b", branch, base_branch], repo, logger)
        created = True

    if not result.success:
        return BranchResult(
            success=False,
            branch=branch,
            error=f"Failed to switch to branch {branch}: {result.output}",
        )
    if created:
        logger.info(f"Created branch {branch} from {base_branch}")
    return BranchResult(success=True, branch=branch, created=created)
