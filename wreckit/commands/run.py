"""
wreckit run - Advance one item through every remaining phase.
"""

from pathlib import Path

from wreckit.lib.errors import validation_error
from wreckit.runner.context import RunContext
from wreckit.runner.phases import PHASE_TABLE, PHASES, PhaseResult
from wreckit.store import paths
from wreckit.store.items import load_item, load_story_document
from wreckit.store.models import Item, StoryDocument
from wreckit.workflow.fsm import PHASE_FOR_STATE
from wreckit.workflow.states import WorkflowState, is_terminal
from wreckit.workflow.validation import has_pending_stories


def resolve_next_phase(item: Item, doc: StoryDocument | None) -> str | None:
    """The single phase that moves `item` forward, or None when terminal.

    An implementing item with pending stories resumes implement rather
    than moving to delivery.
    """
    if item.state is WorkflowState.IMPLEMENTING and has_pending_stories(doc):
        return "implement"
    return PHASE_FOR_STATE[item.state]


def phase_artifacts_exist(root: Path, item_id: str, phase: str) -> bool:
    artifacts = PHASES[phase].artifacts
    if not artifacts:
        return False
    base = paths.item_dir(root, item_id)
    return all((base / name).exists() for name in artifacts)


def _progress_marker(item: Item, doc: StoryDocument | None) -> tuple[WorkflowState, int]:
    pending = len(doc.pending_stories()) if doc else 0
    return item.state, pending


async def run_item(item_id: str, ctx: RunContext, reporter=None) -> PhaseResult:
    """Run phases for one item until done, blocked, or failed.

    Returns the last PhaseResult; a failed result carries the error that
    stopped the item.
    """
    result = None
    while True:
        item = await load_item(ctx.root, item_id)
        if is_terminal(item.state):
            return result or PhaseResult(success=True, item=item, skipped=True)

        doc = await load_story_document(ctx.root, item_id)
        phase = resolve_next_phase(item, doc)
        if phase is None:
            return result or PhaseResult(success=True, item=item, skipped=True)

        if phase_artifacts_exist(ctx.root, item_id, phase) and not ctx.force:
            ctx.logger.debug(f"[{item_id}] {phase} outputs already present")

        if reporter:
            reporter.phase_started(item_id, phase)
        before = _progress_marker(item, doc)

        result = await PHASE_TABLE[(item.state, phase)].runner(item_id, ctx)
        if not result.success or ctx.dry_run:
            return result

        after = _progress_marker(result.item, await load_story_document(ctx.root, item_id))
        if after == before:
            error = validation_error(
                f"{phase} finished without advancing {item_id} from {item.state.value}",
                "NO_PROGRESS",
            )
            ctx.logger.error(f"[{item_id}] {error.message}")
            return PhaseResult(success=False, item=result.item, error=error)


async def cmd_run(args, ctx: RunContext) -> int:
    """Run every remaining phase for a single item."""
    result = await run_item(args.id, ctx)
    if not result.success:
        raise result.error
    ctx.logger.info(f"[{args.id}] {result.item.state.value}")
    return 0
