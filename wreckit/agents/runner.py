"""
External coding agent adapter.

Runs the configured agent command in an item's directory with the prompt
on stdin. stdout and stderr are streamed and concatenated; the run counts
as successful only when the process exits 0 AND the completion signal
appeared somewhere in the output. Exit code alone is not enough: agents
regularly exit 0 without finishing.

On timeout the agent's whole process group gets SIGTERM, then SIGKILL
after a grace period. Once the agent has exited, output still held open by
left-over children is read for a short while and then abandoned.
"""

import asyncio
import codecs
import logging
import os
import signal
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional

KILL_GRACE_SECONDS = 5
DRAIN_SECONDS = 1
EXIT_POLL_SECONDS = 0.1
READ_CHUNK = 4096


@dataclass
class AgentConfig:
    command: str
    args: list[str] = field(default_factory=list)
    completion_signal: str = "<promise>COMPLETE</promise>"
    timeout_seconds: int = 3600                # <= 0 disables the timeout

    @classmethod
    def from_config(cls, config) -> "AgentConfig":
        return cls(
            command=config.agent.command,
            args=list(config.agent.args),
            completion_signal=config.agent.completion_signal,
            timeout_seconds=config.timeout_seconds,
        )


@dataclass
class AgentResult:
    success: bool
    output: str
    timed_out: bool
    exit_code: Optional[int]                   # None if the process never started
    completion_detected: bool


class _OutputCollector:
    """Accumulates streamed text and watches for the completion signal."""

    def __init__(self, signal: str, on_output: Callable[[str], None] | None):
        self.signal = signal
        self.on_output = on_output
        self.parts: list[str] = []
        self.completion_detected = False
        self._tail = ""

    def feed(self, text: str) -> None:
        if not text:
            return
        self.parts.append(text)
        if not self.completion_detected:
            window = self._tail + text
            if self.signal in window:
                self.completion_detected = True
            keep = max(len(self.signal) - 1, 0)
            self._tail = window[-keep:] if keep else ""
        if self.on_output:
            self.on_output(text)

    @property
    def output(self) -> str:
        return "".join(self.parts)


async def _pump(stream: asyncio.StreamReader, collector: _OutputCollector) -> None:
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    while True:
        data = await stream.read(READ_CHUNK)
        if not data:
            collector.feed(decoder.decode(b"", final=True))
            return
        collector.feed(decoder.decode(data))


async def _feed_stdin(proc: asyncio.subprocess.Process, prompt: str, logger: logging.Logger) -> None:
    try:
        proc.stdin.write(prompt.encode("utf-8"))
        await proc.stdin.drain()
    except (BrokenPipeError, ConnectionResetError):
        logger.debug("Agent closed stdin before the prompt was fully written")
    finally:
        proc.stdin.close()


def _signal_group(proc: asyncio.subprocess.Process, sig: int) -> None:
    # The agent leads its own session, so its pid is the process group id
    # and the group outlives the agent while any child is still running.
    try:
        os.killpg(proc.pid, sig)
    except ProcessLookupError:
        pass  # whole group already gone


async def _wait_exit(proc: asyncio.subprocess.Process) -> int:
    # returncode is set when the child is reaped. Process.wait() also waits
    # for every pipe to close, which a surviving grandchild can delay forever.
    while proc.returncode is None:
        await asyncio.sleep(EXIT_POLL_SECONDS)
    return proc.returncode


async def _drain(proc: asyncio.subprocess.Process, tasks: list[asyncio.Future], logger: logging.Logger) -> None:
    """Give the pipe readers a bounded wait after exit, then cancel them."""
    done, pending = await asyncio.wait(tasks, timeout=DRAIN_SECONDS)
    if pending:
        logger.debug("Agent output pipes still open after exit, terminating left-over child processes")
        _signal_group(proc, signal.SIGTERM)
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
    for task in done:
        task.result()


async def run_agent(
    config: AgentConfig,
    cwd: Path,
    prompt: str,
    logger: logging.Logger,
    dry_run: bool = False,
    on_output: Callable[[str], None] | None = None,
) -> AgentResult:
    """Run the agent once and wait for it to exit (or be killed)."""
    cmd = [config.command, *config.args]

    if dry_run:
        logger.info(f"[dry-run] Would run agent: {' '.join(cmd)} (cwd: {cwd})")
        return AgentResult(
            success=True,
            output="[dry-run] agent not invoked",
            timed_out=False,
            exit_code=0,
            completion_detected=True,
        )

    logger.debug(f"Running agent: {' '.join(cmd)} (cwd: {cwd})")
    try:
        proc = await asyncio.create_subprocess_exec(
            *cmd,
            cwd=str(cwd),
            stdin=asyncio.subprocess.PIPE,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            start_new_session=True,
        )
    except OSError as e:
        logger.error(f"Failed to start agent '{config.command}': {e}")
        return AgentResult(
            success=False,
            output=f"Failed to start agent '{config.command}': {e}",
            timed_out=False,
            exit_code=None,
            completion_detected=False,
        )

    collector = _OutputCollector(config.completion_signal, on_output)
    io_tasks = [
        asyncio.ensure_future(_feed_stdin(proc, prompt, logger)),
        asyncio.ensure_future(_pump(proc.stdout, collector)),
        asyncio.ensure_future(_pump(proc.stderr, collector)),
    ]
    exited = asyncio.ensure_future(_wait_exit(proc))

    timeout = config.timeout_seconds if config.timeout_seconds > 0 else None
    timed_out = False
    try:
        try:
            await asyncio.wait_for(asyncio.shield(exited), timeout)
        except asyncio.TimeoutError:
            timed_out = True
            logger.warning(f"Agent timed out after {config.timeout_seconds}s, sending SIGTERM")
            _signal_group(proc, signal.SIGTERM)
            try:
                await asyncio.wait_for(asyncio.shield(exited), KILL_GRACE_SECONDS)
            except asyncio.TimeoutError:
                logger.warning(f"Agent still running after {KILL_GRACE_SECONDS}s, sending SIGKILL")
                _signal_group(proc, signal.SIGKILL)
                await exited
    except asyncio.CancelledError:
        _signal_group(proc, signal.SIGKILL)
        for task in [exited, *io_tasks]:
            task.cancel()
        raise

    await _drain(proc, io_tasks, logger)

    exit_code = proc.returncode
    success = not timed_out and exit_code == 0 and collector.completion_detected
    if exit_code == 0 and not timed_out and not collector.completion_detected:
        logger.debug("Agent exited 0 without emitting the completion signal")

    return AgentResult(
        success=success,
        output=collector.output,
        timed_out=timed_out,
        exit_code=exit_code,
        completion_detected=collector.completion_detected,
    )
