"""Async command runner for git and gh, with timeout handling."""

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path

DEFAULT_TIMEOUT = 30
NETWORK_TIMEOUT = 120


@dataclass
class CommandResult:
    """Result of an external VCS command. Never raised, always returned."""
    returncode: int
    stdout: str
    stderr: str
    timed_out: bool = False

    @property
    def success(self) -> bool:
        return self.returncode == 0 and not self.timed_out

    @property
    def output(self) -> str:
        return (self.stderr or self.stdout).strip()


async def run_command(
    cmd: str,
    args: list[str],
    cwd: Path,
    logger: logging.Logger,
    dry_run: bool = False,
    timeout: int = DEFAULT_TIMEOUT,
) -> CommandResult:
    """
    Run an external command and capture its output.

    Args:
        cmd: Executable name ("git" or "gh")
        args: Command arguments
        cwd: Working directory
        logger: Logger for command tracing
        dry_run: Log the command instead of running it
        timeout: Timeout in seconds

    Returns:
        CommandResult with returncode, stdout, stderr, and timed_out flag
    """
    display = " ".join([cmd, *args])
    if dry_run:
        logger.info(f"[dry-run] Would run: {display}")
        return CommandResult(returncode=0, stdout="", stderr="")

    logger.debug(f"$ {display}")
    try:
        proc = await asyncio.create_subprocess_exec(
            cmd,
            *args,
            cwd=str(cwd),
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        return CommandResult(returncode=1, stdout="", stderr=f"Failed to run {cmd}: {e}")

    try:
        stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout)
    except asyncio.TimeoutError:
        proc.kill()
        await proc.wait()
        return CommandResult(
            returncode=-1,
            stdout="",
            stderr=f"Command timed out after {timeout}s",
            timed_out=True,
        )

    return CommandResult(
        returncode=proc.returncode,
        stdout=stdout.decode("utf-8", errors="replace"),
        stderr=stderr.decode("utf-8", errors="replace"),
    )


async def run_git(
    args: list[str],
    cwd: Path,
    logger: logging.Logger,
    dry_run: bool = False,
    timeout: int = DEFAULT_TIMEOUT,
) -> CommandResult:
    return await run_command("git", args, cwd, logger, dry_run=dry_run, timeout=timeout)


async def run_gh(
    args: list[str],
    cwd: Path,
    logger: logging.Logger,
    dry_run: bool = False,
    timeout: int = NETWORK_TIMEOUT,
) -> CommandResult:
    return await run_command("gh", args, cwd, logger, dry_run=dry_run, timeout=timeout)
