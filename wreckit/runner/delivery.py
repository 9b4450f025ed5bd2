"""
Delivery sequence for the pr phase.

Order is fixed: ensure branch, commit if dirty, check the remote, push,
create-or-update PR. Committing comes before anything that would require
a clean tree; a dirty tree at delivery time is the normal case, not an
error. A remote outside pr_checks.allowed_remote_patterns is never pushed to.
"""

import logging
from dataclasses import dataclass
from pathlib import Path

from wreckit import git
from wreckit.lib import github
from wreckit.lib.errors import WreckitError, vcs_failure


def branch_name_for(item, config) -> str:
    """Deterministic working branch for an item."""
    if item.branch:
        return item.branch
    return f"{config.branch_prefix}{item.id.replace('/', '-')}"


def commit_message_for(item) -> str:
    return f"feat({item.id}): implement {item.title}"


def pr_title_for(item) -> str:
    return f"[{item.section}] {item.title}"


def pr_body_for(item) -> str:
    overview = item.overview.strip() or item.title
    return (
        f"## Overview\n\n{overview}\n\n"
        f"Item: `{item.id}`\n\n"
        "---\n\n*Automated PR created by wreckit*"
    )


@dataclass
class DeliveryResult:
    success: bool
    branch: str
    pr_url: str | None = None
    pr_number: int | None = None
    committed: bool = False
    error: WreckitError | None = None


async def deliver(
    root: Path,
    item,
    config,
    logger: logging.Logger,
    dry_run: bool = False,
) -> DeliveryResult:
    """Run the delivery steps in order. Stops at the first failure."""
    branch = branch_name_for(item, config)

    # 1. Working branch
    branch_result = await git.ensure_branch(
        root, config.base_branch, branch, logger, remote=config.remote, dry_run=dry_run
    )
    if not branch_result.success:
        return DeliveryResult(False, branch, error=vcs_failure(branch_result.error))

    # 2. Commit before any cleanliness check
    committed = False
    if not dry_run:
        status = await git.get_status_porcelain(root, logger)
        if not status.success:
            return DeliveryResult(
                False, branch, error=vcs_failure(f"Failed to read working tree status: {status.output}")
            )
        if status.stdout.strip():
            commit = await git.commit_all(root, commit_message_for(item), logger)
            if not commit.success:
                return DeliveryResult(
                    False, branch, error=vcs_failure(f"Failed to commit changes: {commit.output}")
                )
            committed = True
            logger.info(f"[{item.id}] Committed changes on {branch}")
    else:
        logger.info(f"[dry-run] Would commit any changes as: {commit_message_for(item)}")

    # 3. Push, only to an allowed remote
    patterns = config.pr_checks.allowed_remote_patterns
    if patterns and not dry_run:
        check = await git.validate_remote_url(root, config.remote, patterns, logger)
        if not check.valid:
            return DeliveryResult(
                False, branch, committed=committed,
                error=vcs_failure("; ".join(check.errors), "REMOTE_NOT_ALLOWED"),
            )

    push = await git.push_branch(root, branch, logger, remote=config.remote, dry_run=dry_run)
    if not push.success:
        return DeliveryResult(
            False, branch, committed=committed,
            error=vcs_failure(f"Failed to push branch {branch}: {push.output}"),
        )

    # 4. PR
    pr = await github.create_or_update_pr(
        root, config.base_branch, branch, pr_title_for(item), pr_body_for(item), logger, dry_run=dry_run
    )
    if not pr.success:
        return DeliveryResult(False, branch, committed=committed, error=vcs_failure(pr.error))

    return DeliveryResult(
        True, branch, pr_url=pr.url, pr_number=pr.number, committed=committed
    )
