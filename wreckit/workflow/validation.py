"""Transition guards.

Each target state has a guard predicate evaluated against a
ValidationContext built from on-disk artifacts. Guards never raise;
they return a ValidationResult with a human-readable reason.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable

from wreckit.workflow.states import WorkflowState, allowed_next_states

if TYPE_CHECKING:
    from wreckit.store.models import StoryDocument


@dataclass
class ValidationContext:
    """Artifact facts a guard may look at."""
    has_research_artifact: bool = False
    has_plan_artifact: bool = False
    story_document: "StoryDocument | None" = None  # None when absent or invalid
    has_pr: bool = False
    pr_merged: bool = False


@dataclass
class ValidationResult:
    valid: bool
    reason: str | None = None


OK = ValidationResult(valid=True)


def all_stories_done(doc) -> bool:
    """True when the document has at least one story and every story is done."""
    if doc is None or not doc.stories:
        return False
    return all(story.status == "done" for story in doc.stories)


def has_pending_stories(doc) -> bool:
    if doc is None:
        return False
    return any(story.status == "pending" for story in doc.stories)


def can_enter_researched(ctx: ValidationContext) -> ValidationResult:
    if not ctx.has_research_artifact:
        return ValidationResult(False, "research.md does not exist")
    return OK


def can_enter_planned(ctx: ValidationContext) -> ValidationResult:
    if not ctx.has_plan_artifact:
        return ValidationResult(False, "plan.md does not exist")
    if ctx.story_document is None:
        return ValidationResult(False, "prd.json is not valid")
    return OK


def can_enter_implementing(ctx: ValidationContext) -> ValidationResult:
    if not has_pending_stories(ctx.story_document):
        return ValidationResult(False, "prd.json has no stories with status pending")
    return OK


def can_enter_in_pr(ctx: ValidationContext) -> ValidationResult:
    if not all_stories_done(ctx.story_document):
        return ValidationResult(False, "not all stories are done")
    if not ctx.has_pr:
        return ValidationResult(False, "PR not created")
    return OK


def can_enter_done(ctx: ValidationContext) -> ValidationResult:
    if not ctx.pr_merged:
        return ValidationResult(False, "PR not merged")
    return OK


GUARDS: dict[WorkflowState, Callable[[ValidationContext], ValidationResult]] = {
    WorkflowState.RESEARCHED: can_enter_researched,
    WorkflowState.PLANNED: can_enter_planned,
    WorkflowState.IMPLEMENTING: can_enter_implementing,
    WorkflowState.IN_PR: can_enter_in_pr,
    WorkflowState.DONE: can_enter_done,
}


def validate_transition(
    current: WorkflowState,
    target: WorkflowState,
    ctx: ValidationContext,
) -> ValidationResult:
    """Check that `target` is the single next state and its guard passes."""
    if target not in allowed_next_states(current):
        return ValidationResult(
            False, f"cannot transition from {current.value} to {target.value}"
        )
    return GUARDS[target](ctx)
