"""
Diagnostics and repair.

Scans the workspace independently of the orchestrator and reports drift
between item records, on-disk artifacts and the registry. Repairs are
keyed by diagnostic code and applied independently; a state repair only
ever moves an item back to the highest state its artifacts support.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from wreckit.lib.config import read_config_file
from wreckit.lib.constants import ITEM_FILE, PLAN_FILE, PRD_FILE, RESEARCH_FILE
from wreckit.lib.errors import WreckitError
from wreckit.lib.prompts import init_prompt_templates, missing_prompt_templates
from wreckit.store import paths
from wreckit.store.items import list_item_dirs, read_item, read_story_document, scan_items, write_item
from wreckit.store.registry import read_index, rebuild_registry
from wreckit.workflow.fsm import ItemFSM
from wreckit.workflow.states import WorkflowState, state_index
from wreckit.workflow.validation import all_stories_done, has_pending_stories

SEVERITY_ORDER = ("error", "warning", "info")
INDEX_CODES = ("INDEX_MISSING", "INDEX_STALE")


@dataclass
class Diagnostic:
    item_id: Optional[str]
    severity: str                              # info, warning, error
    code: str
    message: str
    fixable: bool = False


@dataclass
class FixResult:
    diagnostic: Diagnostic
    fixed: bool
    message: str


@dataclass
class DoctorResult:
    diagnostics: list[Diagnostic] = field(default_factory=list)
    fixes: list[FixResult] = field(default_factory=list)

    @property
    def unfixed_errors(self) -> list[Diagnostic]:
        fixed = {id(f.diagnostic) for f in self.fixes if f.fixed}
        return [d for d in self.diagnostics if d.severity == "error" and id(d) not in fixed]


def supported_state(root: Path, item) -> tuple[WorkflowState, str | None]:
    """Highest state the item's artifacts support, and what blocks the next one."""
    if not paths.research_path(root, item.id).exists():
        return WorkflowState.RAW, f"{RESEARCH_FILE} is missing"
    if not paths.plan_path(root, item.id).exists():
        return WorkflowState.RESEARCHED, f"{PLAN_FILE} is missing"
    doc = read_story_document(root, item.id)
    if doc is None:
        return WorkflowState.RESEARCHED, f"{PRD_FILE} is missing or invalid"
    if not all_stories_done(doc):
        return WorkflowState.IMPLEMENTING, "not all stories are done"
    if not item.pr_url:
        return WorkflowState.IMPLEMENTING, "no PR recorded"
    # Merge status can't be checked offline; a recorded PR supports done
    return WorkflowState.DONE, None


# --- Checks ---

def diagnose_config(root: Path) -> list[Diagnostic]:
    if not paths.config_path(root).exists():
        return [Diagnostic(None, "warning", "MISSING_CONFIG", "config.yaml not found, using defaults")]
    try:
        read_config_file(root)
    except WreckitError as e:
        return [Diagnostic(None, "error", "INVALID_CONFIG", e.message)]
    return []


def diagnose_prompts(root: Path) -> list[Diagnostic]:
    missing = missing_prompt_templates(root)
    if not missing:
        return []
    return [Diagnostic(
        None, "info", "MISSING_PROMPTS",
        f"Prompt templates not customized: {', '.join(missing)}", fixable=True,
    )]


def diagnose_item(root: Path, item_id: str) -> list[Diagnostic]:
    if not paths.item_json_path(root, item_id).exists():
        return [Diagnostic(item_id, "error", "MISSING_ITEM_JSON", f"{ITEM_FILE} is missing")]
    try:
        item = read_item(root, item_id)
    except WreckitError as e:
        return [Diagnostic(item_id, "error", "INVALID_ITEM_JSON", e.message)]

    found = []
    prd_exists = paths.prd_path(root, item_id).exists()
    doc = read_story_document(root, item_id)
    if prd_exists and doc is None:
        found.append(Diagnostic(
            item_id, "error", "INVALID_PRD", f"{PRD_FILE} is not valid JSON or fails schema validation"
        ))

    supported, reason = supported_state(root, item)
    if state_index(supported) < state_index(item.state):
        found.append(Diagnostic(
            item_id, "warning", "STATE_FILE_MISMATCH",
            f"State is {item.state.value} but {reason}; artifacts support {supported.value}",
            fixable=True,
        ))
    elif item.state is WorkflowState.IMPLEMENTING and not has_pending_stories(doc):
        found.append(Diagnostic(
            item_id, "warning", "STATE_FILE_MISMATCH",
            "State is implementing but no stories are pending; run the pr phase",
        ))
    return found


def diagnose_index(root: Path) -> list[Diagnostic]:
    index = read_index(root)
    if index is None:
        return [Diagnostic(None, "info", "INDEX_MISSING", "index.json is missing or invalid", fixable=True)]

    live = {e.id: e for e in scan_items(root)}
    cached = {e.id: e for e in index}
    found = []
    for item_id in sorted(live.keys() - cached.keys()):
        found.append(Diagnostic(item_id, "warning", "INDEX_STALE", "item missing from index.json", fixable=True))
    for item_id in sorted(cached.keys() - live.keys()):
        found.append(Diagnostic(item_id, "warning", "INDEX_STALE", "index.json lists an item that no longer exists", fixable=True))
    for item_id in sorted(live.keys() & cached.keys()):
        if live[item_id].state is not cached[item_id].state:
            found.append(Diagnostic(
                item_id, "warning", "INDEX_STALE",
                f"index.json says {cached[item_id].state.value}, item is {live[item_id].state.value}",
                fixable=True,
            ))
    return found


def diagnose(root: Path) -> list[Diagnostic]:
    diagnostics = diagnose_config(root) + diagnose_prompts(root)
    for item_id, _ in list_item_dirs(root):
        diagnostics.extend(diagnose_item(root, item_id))
    diagnostics.extend(diagnose_index(root))
    return diagnostics


# --- Repairs ---

def repair_item_state(root: Path, item_id: str, logger: logging.Logger) -> tuple[bool, str]:
    """Move an item back to the highest supported state. Never forward."""
    item = read_item(root, item_id)
    supported, reason = supported_state(root, item)
    if state_index(supported) >= state_index(item.state):
        return False, f"No lower supported state for {item.state.value}"

    previous = item.state
    ItemFSM(item, logger).force_state(supported)
    write_item(root, item)
    return True, f"Reset state from {previous.value} to {supported.value} ({reason})"


def _fix_prompts(root: Path, logger: logging.Logger) -> tuple[bool, str]:
    written = init_prompt_templates(root)
    return True, f"Wrote prompt templates: {', '.join(written) or 'none needed'}"


def _fix_index(root: Path, logger: logging.Logger) -> tuple[bool, str]:
    entries = rebuild_registry(root)
    return True, f"Rebuilt index.json with {len(entries)} item(s)"


def apply_fixes(root: Path, diagnostics: list[Diagnostic], logger: logging.Logger) -> list[FixResult]:
    """Apply every fixable diagnostic. One failure does not stop the rest."""
    results = []
    fixable = [d for d in diagnostics if d.fixable]

    for d in fixable:
        if d.code in INDEX_CODES:
            continue
        try:
            if d.code == "MISSING_PROMPTS":
                fixed, message = _fix_prompts(root, logger)
            elif d.code == "STATE_FILE_MISMATCH":
                fixed, message = repair_item_state(root, d.item_id, logger)
            else:
                fixed, message = False, f"No repair for {d.code}"
        except (OSError, WreckitError) as e:
            fixed, message = False, str(e)
        logger.debug(f"fix {d.code} {d.item_id or ''}: {message}")
        results.append(FixResult(d, fixed, message))

    # Registry last, so it reflects repaired states
    index_diagnostics = [d for d in fixable if d.code in INDEX_CODES]
    states_repaired = any(r.fixed and r.diagnostic.code == "STATE_FILE_MISMATCH" for r in results)
    if index_diagnostics or states_repaired:
        try:
            fixed, message = _fix_index(root, logger)
        except (OSError, WreckitError) as e:
            fixed, message = False, str(e)
        results.extend(FixResult(d, fixed, message) for d in index_diagnostics)

    return results


def run_doctor(root: Path, fix: bool, logger: logging.Logger) -> DoctorResult:
    result = DoctorResult(diagnostics=diagnose(root))
    if fix:
        result.fixes = apply_fixes(root, result.diagnostics, logger)
    return result


def format_diagnostic(d: Diagnostic) -> str:
    where = f"{d.item_id}: " if d.item_id else ""
    hint = " (fixable)" if d.fixable else ""
    return f"[{d.code}] {where}{d.message}{hint}"
