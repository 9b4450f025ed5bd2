"""Item state machine using the transitions library.

The transition table below is the authoritative lifecycle: each phase is
a named trigger moving an item from one state to the next, guarded by
the predicates in validation.py.

Usage:
    from wreckit.workflow.fsm import ItemFSM

    fsm = ItemFSM(item, logger)
    result = fsm.advance(WorkflowState.RESEARCHED, ctx)
    if not result.valid:
        item.last_error = result.reason
"""

import logging

from transitions import Machine

from wreckit.workflow.states import WorkflowState
from wreckit.workflow.validation import ValidationContext, ValidationResult, validate_transition

STATES = [s.value for s in WorkflowState]

# (state, event) -> next state. Each trigger becomes a method on the FSM.
TRANSITIONS = [
    {"trigger": "research", "source": "raw", "dest": "researched", "conditions": "check_guard"},
    {"trigger": "plan", "source": "researched", "dest": "planned", "conditions": "check_guard"},
    {"trigger": "implement", "source": "planned", "dest": "implementing", "conditions": "check_guard"},
    {"trigger": "pr", "source": "implementing", "dest": "in_pr", "conditions": "check_guard"},
    {"trigger": "complete", "source": "in_pr", "dest": "done", "conditions": "check_guard"},
]


def _build_trigger_lookup() -> dict[tuple[str, str], str]:
    """Build lookup from (source, dest) -> trigger name."""
    return {(t["source"], t["dest"]): t["trigger"] for t in TRANSITIONS}


TRIGGER_FOR = _build_trigger_lookup()

# Phase that moves an item out of each state; terminal state has none
PHASE_FOR_STATE: dict[WorkflowState, str | None] = {
    WorkflowState.RAW: "research",
    WorkflowState.RESEARCHED: "plan",
    WorkflowState.PLANNED: "implement",
    WorkflowState.IMPLEMENTING: "pr",
    WorkflowState.IN_PR: "complete",
    WorkflowState.DONE: None,
}


class ItemFSM:
    """State machine bound to a single in-memory item record.

    The FSM mutates `item.state` on a successful transition. Persisting the
    record is left to the caller so that state is only written after the
    phase's postconditions have been checked.
    """

    def __init__(self, item, logger: logging.Logger):
        self.item = item
        self.logger = logger
        self.last_result = ValidationResult(valid=True)

        self.machine = Machine(
            model=self,
            states=STATES,
            transitions=TRANSITIONS,
            initial=item.state.value,
            auto_transitions=False,  # Only explicit transitions
            send_event=True,  # Pass EventData to callbacks
            after_state_change="on_state_change",
        )

    @property
    def current(self) -> WorkflowState:
        return WorkflowState(self.state)

    def check_guard(self, event) -> bool:
        """Condition callback shared by every transition."""
        ctx = event.kwargs.get("ctx") or ValidationContext()
        self.last_result = validate_transition(
            WorkflowState(event.transition.source),
            WorkflowState(event.transition.dest),
            ctx,
        )
        return self.last_result.valid

    def on_state_change(self, event) -> None:
        from_state = event.transition.source
        to_state = event.transition.dest
        self.item.state = WorkflowState(to_state)
        self.logger.debug(f"[FSM] {self.item.id}: {from_state} -> {to_state} ({event.event.name})")

    def advance(self, target: WorkflowState, ctx: ValidationContext) -> ValidationResult:
        """Move to `target` if it is the next state and its guard passes."""
        trigger = TRIGGER_FOR.get((self.state, target.value))
        if trigger is None:
            return validate_transition(self.current, target, ctx)

        getattr(self, trigger)(ctx=ctx)
        return self.last_result

    def force_state(self, state: WorkflowState) -> None:
        """Set state directly, bypassing guards. Used for forced re-runs and repairs."""
        if self.state != state.value:
            self.logger.info(f"[FSM] {self.item.id}: {self.state} -> {state.value} (forced)")
        self.machine.set_state(state.value)
        self.item.state = state
