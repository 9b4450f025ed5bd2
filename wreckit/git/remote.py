"""Git remote operations."""

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path

from wreckit.git import runner
from wreckit.git.runner import CommandResult, NETWORK_TIMEOUT

_SCHEME = re.compile(r"^[a-z][a-z0-9+.-]*://", re.IGNORECASE)
_SCP_LIKE = re.compile(r"^(?:[^@/]+@)?([^:/]+):(?!//)(.*)$")


@dataclass
class RemoteCheck:
    valid: bool
    actual_url: str | None
    errors: list[str] = field(default_factory=list)


async def get_remote_url(repo: Path, remote: str, logger: logging.Logger) -> str | None:
    """URL that a push to `remote` would go to, or None if the remote is unknown."""
    result = await runner.run_git(["remote", "get-url", "--push", remote], repo, logger)
    if not result.success:
        return None
    url = result.stdout.strip()
    return url or None


def normalize_remote_url(url: str) -> str:
    """Reduce https, ssh and scp-style URLs to host/path without a .git suffix."""
    text = url.strip()
    if _SCHEME.match(text):
        text = _SCHEME.sub("", text)
        text = text.split("@", 1)[-1] if "@" in text.split("/", 1)[0] else text
    else:
        m = _SCP_LIKE.match(text)
        if m:
            text = f"{m.group(1)}/{m.group(2)}"
    text = text.rstrip("/")
    if text.endswith(".git"):
        text = text[: -len(".git")]
    return text.lower()


def remote_url_allowed(url: str, patterns: list[str]) -> bool:
    """True if the normalized URL contains any normalized pattern. No patterns allows everything."""
    if not patterns:
        return True
    normalized = normalize_remote_url(url)
    for pattern in patterns:
        wanted = pattern.strip().lower()
        if wanted.endswith(".git"):
            wanted = wanted[: -len(".git")]
        if wanted and wanted in normalized:
            return True
    return False


async def validate_remote_url(
    repo: Path,
    remote: str,
    allowed_patterns: list[str],
    logger: logging.Logger,
) -> RemoteCheck:
    """
    Check the push URL of `remote` against the allowed patterns.

    A missing remote is not an error here; the push itself will fail with
    git's own message.
    """
    url = await get_remote_url(repo, remote, logger)
    if url is None:
        logger.debug(f"Remote '{remote}' has no URL configured, skipping remote check")
        return RemoteCheck(valid=True, actual_url=None)

    if remote_url_allowed(url, allowed_patterns):
        return RemoteCheck(valid=True, actual_url=url)

    return RemoteCheck(
        valid=False,
        actual_url=url,
        errors=[
            f"Remote '{remote}' URL {url} does not match any allowed pattern: "
            + ", ".join(allowed_patterns)
        ],
    )


async def push_branch(
    repo: Path,
    branch: str,
    logger: logging.Logger,
    remote: str = "origin",
    dry_run: bool = False,
) -> CommandResult:
    """Push and set upstream tracking. A push with nothing new succeeds."""
    return await runner.run_git(
        ["push", "-u", remote, branch], repo, logger, dry_run=dry_run, timeout=NETWORK_TIMEOUT
    )
