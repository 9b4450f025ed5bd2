"""
Phase runners.

One runner per state edge. Every runner follows the same shape:
reload the item, check state eligibility (skip or reject), do the phase's
work, re-check the target guard, persist, return a PhaseResult.

Expected failures are returned, never raised: the error is written to
the item's last_error and handed back to the caller. A missing item or an
unreadable item record still raises WreckitError.
"""

from dataclasses import dataclass
from typing import Awaitable, Callable

from wreckit.agents.runner import AgentConfig, run_agent
from wreckit.lib import github
from wreckit.lib.constants import PLAN_FILE, PRD_FILE, RESEARCH_FILE
from wreckit.lib.errors import WreckitError, agent_failure, validation_error, vcs_failure
from wreckit.lib.prompts import build_prompt_variables, load_prompt, render_prompt
from wreckit.runner.context import RunContext
from wreckit.runner.delivery import deliver
from wreckit.store import paths
from wreckit.store.items import append_progress, load_artifact, load_item, load_story_document, save_item
from wreckit.store.models import Item
from wreckit.workflow.fsm import ItemFSM
from wreckit.workflow.quality import check_plan_quality, check_research_quality
from wreckit.workflow.states import WorkflowState, state_index
from wreckit.workflow.validation import ValidationContext, all_stories_done


@dataclass
class PhaseResult:
    success: bool
    item: Item
    error: WreckitError | None = None
    skipped: bool = False


async def build_validation_context(ctx: RunContext, item: Item, pr_merged: bool = False) -> ValidationContext:
    """Collect artifact facts for the guards from disk."""
    return ValidationContext(
        has_research_artifact=paths.research_path(ctx.root, item.id).exists(),
        has_plan_artifact=paths.plan_path(ctx.root, item.id).exists(),
        story_document=await load_story_document(ctx.root, item.id),
        has_pr=bool(item.pr_url),
        pr_merged=pr_merged,
    )


async def _persist(ctx: RunContext, item: Item) -> None:
    if not ctx.dry_run:
        await save_item(ctx.root, item)


async def _fail(ctx: RunContext, item: Item, error: WreckitError) -> PhaseResult:
    ctx.logger.error(f"[{item.id}] {error.message}")
    item.last_error = error.message
    await _persist(ctx, item)
    return PhaseResult(success=False, item=item, error=error)


async def _succeed(ctx: RunContext, item: Item, skipped: bool = False) -> PhaseResult:
    item.last_error = None
    await _persist(ctx, item)
    return PhaseResult(success=True, item=item, skipped=skipped)


def _check_eligible(fsm: ItemFSM, phase: str, ctx: RunContext) -> WreckitError | None:
    """Reject items outside the phase's required states.

    With force, an item already past the phase is reset to the phase's
    last required state so the phase can run again.
    """
    spec = PHASES[phase]
    current = fsm.current
    if current in spec.required_states:
        return None
    reset_to = spec.required_states[-1]
    if ctx.force and state_index(current) > state_index(reset_to):
        fsm.force_state(reset_to)
        return None
    expected = " or ".join(s.value for s in spec.required_states)
    return validation_error(
        f"Item {fsm.item.id} is in state {current.value}; {phase} requires {expected}",
        "INVALID_STATE",
    )


async def _invoke_agent(ctx: RunContext, item: Item, prompt_name: str, **extra) -> WreckitError | None:
    """Render the phase prompt and run the agent once. Returns an error or None."""
    try:
        template = load_prompt(ctx.root, prompt_name)
        variables = build_prompt_variables(ctx.root, item, ctx.config)
        variables.update(extra)
        prompt = render_prompt(template, variables)
    except WreckitError as e:
        return e

    result = await run_agent(
        AgentConfig.from_config(ctx.config),
        paths.item_dir(ctx.root, item.id),
        prompt,
        ctx.logger,
        dry_run=ctx.dry_run,
        on_output=ctx.on_agent_output,
    )
    if result.success:
        return None
    if result.timed_out:
        return agent_failure("Agent timed out", "AGENT_TIMEOUT")
    if result.exit_code is None:
        return agent_failure(result.output, "AGENT_FAILED")
    if result.exit_code != 0:
        return agent_failure(f"Agent failed with exit code {result.exit_code}", "AGENT_FAILED")
    return agent_failure("Agent exited without emitting the completion signal", "AGENT_FAILED")


def _quality_error(artifact: str, errors: list[str], code: str) -> WreckitError:
    return validation_error(f"{artifact} failed quality checks: {'; '.join(errors)}", code)


async def run_phase_research(item_id: str, ctx: RunContext) -> PhaseResult:
    item = await load_item(ctx.root, item_id)
    fsm = ItemFSM(item, ctx.logger)

    if paths.research_path(ctx.root, item.id).exists() and not ctx.force:
        ctx.logger.info(f"[{item.id}] {RESEARCH_FILE} already exists, skipping")
        if item.state is WorkflowState.RAW:
            fsm.advance(WorkflowState.RESEARCHED, await build_validation_context(ctx, item))
            return await _succeed(ctx, item, skipped=True)
        return PhaseResult(success=True, item=item, skipped=True)

    error = _check_eligible(fsm, "research", ctx)
    if error:
        return await _fail(ctx, item, error)

    error = await _invoke_agent(ctx, item, "research")
    if error:
        return await _fail(ctx, item, error)
    if ctx.dry_run:
        return PhaseResult(success=True, item=item)

    if not paths.research_path(ctx.root, item.id).exists():
        return await _fail(ctx, item, agent_failure(
            f"Agent did not create {RESEARCH_FILE}", "ARTIFACT_NOT_PRODUCED"
        ))

    if ctx.config.research_quality.enabled:
        content = await load_artifact(paths.research_path(ctx.root, item.id))
        quality = check_research_quality(content, ctx.config.research_quality)
        if not quality.valid:
            return await _fail(ctx, item, _quality_error(RESEARCH_FILE, quality.errors, "RESEARCH_QUALITY"))

    check = fsm.advance(WorkflowState.RESEARCHED, await build_validation_context(ctx, item))
    if not check.valid:
        return await _fail(ctx, item, validation_error(check.reason, "GUARD_FAILED"))
    return await _succeed(ctx, item)


async def run_phase_plan(item_id: str, ctx: RunContext) -> PhaseResult:
    item = await load_item(ctx.root, item_id)
    fsm = ItemFSM(item, ctx.logger)

    vctx = await build_validation_context(ctx, item)
    if vctx.has_plan_artifact and vctx.story_document is not None and not ctx.force:
        ctx.logger.info(f"[{item.id}] {PLAN_FILE} and {PRD_FILE} already exist, skipping")
        if item.state is WorkflowState.RESEARCHED:
            fsm.advance(WorkflowState.PLANNED, vctx)
            return await _succeed(ctx, item, skipped=True)
        return PhaseResult(success=True, item=item, skipped=True)

    error = _check_eligible(fsm, "plan", ctx)
    if error:
        return await _fail(ctx, item, error)

    error = await _invoke_agent(ctx, item, "plan")
    if error:
        return await _fail(ctx, item, error)
    if ctx.dry_run:
        return PhaseResult(success=True, item=item)

    if not paths.plan_path(ctx.root, item.id).exists():
        return await _fail(ctx, item, agent_failure(
            f"Agent did not create {PLAN_FILE}", "ARTIFACT_NOT_PRODUCED"
        ))
    if not paths.prd_path(ctx.root, item.id).exists():
        return await _fail(ctx, item, agent_failure(
            f"Agent did not create {PRD_FILE}", "ARTIFACT_NOT_PRODUCED"
        ))

    vctx = await build_validation_context(ctx, item)
    if vctx.story_document is None:
        return await _fail(ctx, item, validation_error(
            f"{PRD_FILE} is not valid JSON or fails schema validation", "INVALID_PRD"
        ))

    if ctx.config.plan_quality.enabled:
        content = await load_artifact(paths.plan_path(ctx.root, item.id))
        quality = check_plan_quality(content, ctx.config.plan_quality)
        if not quality.valid:
            return await _fail(ctx, item, _quality_error(PLAN_FILE, quality.errors, "PLAN_QUALITY"))

    check = fsm.advance(WorkflowState.PLANNED, vctx)
    if not check.valid:
        return await _fail(ctx, item, validation_error(check.reason, "GUARD_FAILED"))
    return await _succeed(ctx, item)


async def run_phase_implement(item_id: str, ctx: RunContext) -> PhaseResult:
    item = await load_item(ctx.root, item_id)
    fsm = ItemFSM(item, ctx.logger)

    error = _check_eligible(fsm, "implement", ctx)
    if error:
        return await _fail(ctx, item, error)

    doc = await load_story_document(ctx.root, item.id)
    if doc is None:
        return await _fail(ctx, item, validation_error(
            f"{PRD_FILE} is not valid JSON or fails schema validation", "INVALID_PRD"
        ))

    if item.state is WorkflowState.PLANNED:
        check = fsm.advance(WorkflowState.IMPLEMENTING, await build_validation_context(ctx, item))
        if not check.valid:
            return await _fail(ctx, item, validation_error(check.reason, "GUARD_FAILED"))
        item.last_error = None
        await _persist(ctx, item)

    pending = doc.pending_stories()
    if not pending:
        ctx.logger.info(f"[{item.id}] All stories done")
        return await _succeed(ctx, item)

    max_iterations = ctx.config.max_iterations
    iteration = 0
    while pending and iteration < max_iterations:
        iteration += 1
        story = pending[0]
        ctx.logger.info(f"[{item.id}] Iteration {iteration}/{max_iterations}: {story.id} {story.title}")

        error = await _invoke_agent(
            ctx, item, "implement", story_id=story.id, story_title=story.title
        )
        if error:
            return await _fail(ctx, item, error)
        if ctx.dry_run:
            return PhaseResult(success=True, item=item)

        doc = await load_story_document(ctx.root, item.id)
        if doc is None:
            return await _fail(ctx, item, validation_error(
                f"{PRD_FILE} became invalid during implementation", "INVALID_PRD"
            ))
        await append_progress(ctx.root, item.id, f"Completed iteration {iteration} for story {story.id}")
        pending = doc.pending_stories()

    if pending:
        return await _fail(ctx, item, agent_failure(
            f"Reached max iterations ({max_iterations}) with stories still pending", "MAX_ITERATIONS"
        ))
    return await _succeed(ctx, item)


async def run_phase_pr(item_id: str, ctx: RunContext) -> PhaseResult:
    item = await load_item(ctx.root, item_id)
    fsm = ItemFSM(item, ctx.logger)

    error = _check_eligible(fsm, "pr", ctx)
    if error:
        return await _fail(ctx, item, error)

    doc = await load_story_document(ctx.root, item.id)
    if not all_stories_done(doc):
        return await _fail(ctx, item, validation_error("not all stories are done", "GUARD_FAILED"))

    delivery = await deliver(ctx.root, item, ctx.config, ctx.logger, dry_run=ctx.dry_run)
    if ctx.dry_run and delivery.success:
        return PhaseResult(success=True, item=item)

    item.branch = delivery.branch
    if not delivery.success:
        return await _fail(ctx, item, delivery.error)

    item.pr_url = delivery.pr_url
    item.pr_number = delivery.pr_number
    check = fsm.advance(WorkflowState.IN_PR, await build_validation_context(ctx, item))
    if not check.valid:
        return await _fail(ctx, item, validation_error(check.reason, "GUARD_FAILED"))
    return await _succeed(ctx, item)


async def run_phase_complete(item_id: str, ctx: RunContext) -> PhaseResult:
    item = await load_item(ctx.root, item_id)
    fsm = ItemFSM(item, ctx.logger)

    error = _check_eligible(fsm, "complete", ctx)
    if error:
        return await _fail(ctx, item, error)

    if item.pr_number is None:
        return await _fail(ctx, item, validation_error("Item has no PR number", "GUARD_FAILED"))

    if ctx.dry_run:
        ctx.logger.info(f"[dry-run] Would check merge status of PR #{item.pr_number}")
        return PhaseResult(success=True, item=item)

    merged, query_error = await github.is_pr_merged(ctx.root, item.pr_number, ctx.logger)
    if query_error:
        return await _fail(ctx, item, vcs_failure(
            f"Failed to query PR #{item.pr_number}: {query_error}"
        ))
    if not merged:
        return await _fail(ctx, item, validation_error("PR not merged yet", "PR_NOT_MERGED"))

    check = fsm.advance(
        WorkflowState.DONE, await build_validation_context(ctx, item, pr_merged=True)
    )
    if not check.valid:
        return await _fail(ctx, item, validation_error(check.reason, "GUARD_FAILED"))
    return await _succeed(ctx, item)


PhaseRunner = Callable[[str, RunContext], Awaitable[PhaseResult]]


@dataclass(frozen=True)
class PhaseSpec:
    """One row of the phase table."""
    name: str
    required_states: tuple[WorkflowState, ...]
    target_state: WorkflowState
    skip_if_in_target: bool
    runner: PhaseRunner
    artifacts: tuple[str, ...] = ()            # files the phase is expected to produce


PHASES: dict[str, PhaseSpec] = {
    "research": PhaseSpec(
        "research", (WorkflowState.RAW,), WorkflowState.RESEARCHED, True,
        run_phase_research, (RESEARCH_FILE,),
    ),
    "plan": PhaseSpec(
        "plan", (WorkflowState.RESEARCHED,), WorkflowState.PLANNED, True,
        run_phase_plan, (PLAN_FILE, PRD_FILE),
    ),
    "implement": PhaseSpec(
        "implement", (WorkflowState.PLANNED, WorkflowState.IMPLEMENTING), WorkflowState.IMPLEMENTING, False,
        run_phase_implement,
    ),
    "pr": PhaseSpec(
        "pr", (WorkflowState.IMPLEMENTING,), WorkflowState.IN_PR, True,
        run_phase_pr,
    ),
    "complete": PhaseSpec(
        "complete", (WorkflowState.IN_PR,), WorkflowState.DONE, True,
        run_phase_complete,
    ),
}

PHASE_NAMES = list(PHASES)

# (state, event) -> phase row. Mirrors the FSM transitions, plus implement
# re-entry from implementing.
PHASE_TABLE: dict[tuple[WorkflowState, str], PhaseSpec] = {
    (state, spec.name): spec
    for spec in PHASES.values()
    for state in spec.required_states
}
