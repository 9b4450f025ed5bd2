"""Item workflow states.

States are strictly ordered; an item only ever moves to the single next
state. `done` is terminal.
"""

from enum import Enum


class WorkflowState(Enum):
    """All valid item states, in lifecycle order."""

    RAW = "raw"
    RESEARCHED = "researched"
    PLANNED = "planned"
    IMPLEMENTING = "implementing"
    IN_PR = "in_pr"
    DONE = "done"


WORKFLOW_STATES: list[WorkflowState] = list(WorkflowState)


def state_index(state: WorkflowState) -> int:
    return WORKFLOW_STATES.index(state)


def next_state(current: WorkflowState) -> WorkflowState | None:
    """Return the single allowed successor of `current`, or None if terminal."""
    index = state_index(current)
    if index >= len(WORKFLOW_STATES) - 1:
        return None
    return WORKFLOW_STATES[index + 1]


def allowed_next_states(current: WorkflowState) -> list[WorkflowState]:
    nxt = next_state(current)
    return [nxt] if nxt else []


def is_terminal(state: WorkflowState) -> bool:
    return state is WorkflowState.DONE
