"""
wreckit research|plan|implement|pr|complete <id> - Run a single phase.
"""

from wreckit.lib.errors import validation_error
from wreckit.runner.context import RunContext
from wreckit.runner.phases import PHASE_TABLE, PHASES, PhaseResult
from wreckit.store.items import load_item
from wreckit.workflow.states import WorkflowState, state_index


def is_invalid_transition(current: WorkflowState, phase: str) -> bool:
    """A phase whose target lies behind the item, or anything but complete on done."""
    spec = PHASES[phase]
    if current is WorkflowState.DONE:
        return phase != "complete"
    return state_index(spec.target_state) < state_index(current)


async def run_phase_command(phase: str, item_id: str, ctx: RunContext) -> PhaseResult | None:
    """Check the request against the phase table, then run the phase.

    Returns None when the phase was skipped or only described (dry-run).

    Raises:
        WreckitError(not_found, ITEM_NOT_FOUND): Unknown item
        WreckitError(validation, INVALID_TRANSITION | INVALID_STATE): Rejected request
        WreckitError: The runner's error when the phase fails
    """
    requested = PHASES[phase]
    item = await load_item(ctx.root, item_id)

    if is_invalid_transition(item.state, phase):
        raise validation_error(
            f"Cannot run {phase} on {item_id}: item is already {item.state.value}",
            "INVALID_TRANSITION",
        )

    if requested.skip_if_in_target and item.state is requested.target_state and not ctx.force:
        ctx.logger.info(f"[{item_id}] already {item.state.value}, skipping {phase} (use --force to re-run)")
        return None

    spec = PHASE_TABLE.get((item.state, phase))
    if spec is None:
        if not ctx.force:
            expected = " or ".join(s.value for s in requested.required_states)
            raise validation_error(
                f"Cannot run {phase} on {item_id}: state is {item.state.value}, expected {expected}",
                "INVALID_STATE",
            )
        spec = requested

    if ctx.dry_run:
        ctx.logger.info(
            f"[dry-run] Would run {phase} on {item_id} ({item.state.value} -> {spec.target_state.value})"
        )
        return None

    result = await spec.runner(item_id, ctx)
    if not result.success:
        raise result.error
    return result


async def cmd_phase(args, ctx: RunContext) -> int:
    result = await run_phase_command(args.phase, args.id, ctx)
    if result is not None:
        ctx.logger.info(f"[{args.id}] {result.item.state.value}")
    return 0
