"""
GitHub integration helpers for the delivery and complete phases.

Provides PR lookup, create-or-update and merge-state queries via the gh
CLI. Nothing here raises on a failed command; results carry an error
string and callers decide severity.
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import NamedTuple

from wreckit.git import runner


@dataclass
class PullRequest:
    url: str
    number: int
    state: str                                 # OPEN, CLOSED, MERGED


@dataclass
class PRResult:
    success: bool
    url: str | None = None
    number: int | None = None
    created: bool = False
    error: str | None = None


class PRStatus(NamedTuple):
    """GitHub PR state."""
    state: str  # "open", "closed", "merged"
    error: str | None = None

    @property
    def merged(self) -> bool:
        return self.error is None and self.state == "merged"


def _pr_number_from_url(url: str) -> int | None:
    try:
        return int(url.rstrip("/").split("/")[-1])
    except (ValueError, IndexError):
        return None


async def get_pr_by_branch(repo: Path, branch: str, logger: logging.Logger) -> PullRequest | None:
    """
    Find the open PR whose head is `branch`.

    gh falls back to the most recent PR for the branch, so closed and merged
    PRs show up here too. Neither can take new commits, so both count as
    no PR and the caller opens a fresh one.
    """
    result = await runner.run_gh(
        ["pr", "view", branch, "--json", "url,number,state"], repo, logger
    )
    if not result.success:
        return None
    try:
        data = json.loads(result.stdout)
    except json.JSONDecodeError:
        logger.warning(f"Invalid JSON from gh pr view {branch}")
        return None

    state = data.get("state", "")
    if state in ("CLOSED", "MERGED"):
        logger.debug(f"PR #{data.get('number')} for {branch} is {state.lower()}, ignoring")
        return None
    return PullRequest(url=data["url"], number=int(data["number"]), state=state)


async def create_or_update_pr(
    repo: Path,
    base_branch: str,
    branch: str,
    title: str,
    body: str,
    logger: logging.Logger,
    dry_run: bool = False,
) -> PRResult:
    """
    Create a PR for `branch`, or update the existing one in place.

    Running this twice for the same branch yields the same PR number.
    """
    if dry_run:
        logger.info(f"[dry-run] Would create or update PR for {branch} -> {base_branch}")
        return PRResult(success=True)

    existing = await get_pr_by_branch(repo, branch, logger)
    if existing:
        result = await runner.run_gh(
            ["pr", "edit", str(existing.number), "--title", title, "--body", body], repo, logger
        )
        if not result.success:
            return PRResult(success=False, error=f"Failed to update PR #{existing.number}: {result.output}")
        logger.info(f"Updated PR #{existing.number}: {existing.url}")
        return PRResult(success=True, url=existing.url, number=existing.number, created=False)

    result = await runner.run_gh(
        ["pr", "create", "--base", base_branch, "--head", branch, "--title", title, "--body", body],
        repo,
        logger,
    )
    if not result.success:
        return PRResult(success=False, error=f"Failed to create PR: {result.output}")

    url = result.stdout.strip().splitlines()[-1] if result.stdout.strip() else ""
    number = _pr_number_from_url(url)
    if number is None:
        return PRResult(success=False, error=f"Could not parse PR number from gh output: {result.stdout!r}")

    logger.info(f"Created PR #{number}: {url}")
    return PRResult(success=True, url=url, number=number, created=True)


async def get_pr_status(repo: Path, pr_number: int, logger: logging.Logger) -> PRStatus:
    """Query the PR's state. Returns PRStatus with error set on failure."""
    result = await runner.run_gh(["pr", "view", str(pr_number), "--json", "state"], repo, logger)
    if not result.success:
        return PRStatus(state="", error=result.output or "gh pr view failed")

    try:
        data = json.loads(result.stdout)
    except json.JSONDecodeError:
        return PRStatus(state="", error="Invalid JSON from gh")

    return PRStatus(state=(data.get("state") or "").lower())


async def is_pr_merged(repo: Path, pr_number: int, logger: logging.Logger) -> tuple[bool, str | None]:
    """Returns (merged, error)."""
    status = await get_pr_status(repo, pr_number, logger)
    return status.merged, status.error
