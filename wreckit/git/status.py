"""Git status operations."""

import logging
from pathlib import Path

from wreckit.git import runner


async def get_status_porcelain(repo: Path, logger: logging.Logger) -> runner.CommandResult:
    """Get git status in porcelain format."""
    return await runner.run_git(["status", "--porcelain"], repo, logger)
