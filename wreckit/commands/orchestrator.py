"""
wreckit (no command) / wreckit next - Advance the whole backlog.

run-all walks every non-terminal item in identifier order; run-next takes
only the first one. Items are advanced one at a time.
"""

from dataclasses import dataclass, field

from wreckit.commands.run import run_item
from wreckit.lib.errors import WreckitError
from wreckit.runner.context import RunContext
from wreckit.store.items import scan_items
from wreckit.store.registry import rebuild_registry
from wreckit.tui.progress import LineProgress, run_with_dashboard, should_use_tui
from wreckit.workflow.states import WorkflowState, is_terminal


@dataclass
class OrchestratorResult:
    completed: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    remaining: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.failed


def _refresh_registry(ctx: RunContext) -> None:
    if ctx.dry_run:
        return
    try:
        rebuild_registry(ctx.root)
    except (OSError, WreckitError) as e:
        ctx.logger.warning(f"Could not refresh index.json: {e}")


async def orchestrate_all(ctx: RunContext, reporter=None) -> OrchestratorResult:
    """Advance every non-terminal item, continuing past failures."""
    reporter = reporter or LineProgress(ctx.logger)
    entries = scan_items(ctx.root)
    result = OrchestratorResult()
    reporter.start(entries)

    pending = []
    for entry in entries:
        if is_terminal(entry.state):
            result.skipped.append(entry.id)
        else:
            pending.append(entry)

    if ctx.dry_run:
        for entry in pending:
            ctx.logger.info(f"[dry-run] Would run: {entry.id} (state: {entry.state.value})")
        result.remaining = [e.id for e in pending]
        return result

    for entry in pending:
        try:
            outcome = await run_item(entry.id, ctx, reporter)
        except WreckitError as e:
            result.failed.append(entry.id)
            reporter.item_failed(entry.id, e.message)
            continue

        if not outcome.success:
            result.failed.append(entry.id)
            reporter.item_failed(entry.id, outcome.error.message)
        elif outcome.item.state is WorkflowState.DONE:
            result.completed.append(entry.id)
            reporter.item_complete(entry.id)
        else:
            result.remaining.append(entry.id)

    _refresh_registry(ctx)
    return result


async def orchestrate_next(ctx: RunContext) -> tuple[str | None, bool]:
    """Advance the first non-terminal item. Returns (item_id, success)."""
    next_id = next((e.id for e in scan_items(ctx.root) if not is_terminal(e.state)), None)
    if next_id is None:
        return None, True

    if ctx.dry_run:
        ctx.logger.info(f"[dry-run] Would run: {next_id}")
        return next_id, True

    ctx.logger.info(f"Running: {next_id}")
    outcome = await run_item(next_id, ctx)
    _refresh_registry(ctx)
    if not outcome.success:
        ctx.logger.error(f"Failed {next_id}: {outcome.error.message}")
        return next_id, False
    return next_id, True


def _summarize(ctx: RunContext, result: OrchestratorResult) -> None:
    ctx.logger.info(
        f"Completed: {len(result.completed)}  Failed: {len(result.failed)}  "
        f"Skipped: {len(result.skipped)}  Remaining: {len(result.remaining)}"
    )
    for item_id in result.failed:
        ctx.logger.info(f"  failed: {item_id}")


async def cmd_run_all(args, ctx: RunContext) -> int:
    if should_use_tui(getattr(args, "no_tui", False)) and not ctx.dry_run:
        entries = scan_items(ctx.root)

        async def job(reporter):
            ctx.on_agent_output = reporter.agent_output
            return await orchestrate_all(ctx, reporter)

        result = await run_with_dashboard(entries, job, ctx.logger)
    else:
        result = await orchestrate_all(ctx)

    _summarize(ctx, result)
    return 0 if result.success else 1


async def cmd_next(args, ctx: RunContext) -> int:
    item_id, success = await orchestrate_next(ctx)
    if item_id is None:
        ctx.logger.info("All items are done")
    return 0 if success else 1
