"""
Prompt templates for agent phases.

Templates are looked up in .wreckit/prompts/<name>.md first, then in the
defaults bundled with the package. Templates use Python str.format()
syntax: {variable_name}. Use {{ and }} for literal braces (e.g. JSON
examples).

HTML comments (<!-- ... -->) are stripped before rendering - use them for
documentation that shouldn't be sent to the agent.
"""

import re
from pathlib import Path

from wreckit.lib.constants import PROMPT_NAMES
from wreckit.lib.errors import not_found, validation_error
from wreckit.store import paths
from wreckit.store.items import read_artifact

__all__ = [
    "BUNDLED_PROMPTS_DIR",
    "build_prompt_variables",
    "init_prompt_templates",
    "load_prompt",
    "missing_prompt_templates",
    "render_prompt",
]

BUNDLED_PROMPTS_DIR = Path(__file__).parent.parent / "prompts"

# Pattern to strip HTML comments (including multiline)
_HTML_COMMENT_PATTERN = re.compile(r'<!--.*?-->\s*', re.DOTALL)


def _bundled_path(name: str) -> Path:
    return BUNDLED_PROMPTS_DIR / f"{name}.md"


def load_prompt(root: Path, name: str) -> str:
    """
    Load a prompt template by name.

    Args:
        root: Repository root
        name: Prompt name without extension ('research', 'plan', 'implement')

    Returns:
        Template content with HTML comments stripped

    Raises:
        WreckitError(not_found, FILE_NOT_FOUND): If no template exists
    """
    prompt_path = paths.prompts_dir(root) / f"{name}.md"
    if not prompt_path.exists():
        prompt_path = _bundled_path(name)
    if not prompt_path.exists():
        raise not_found(f"Prompt template '{name}' not found", "FILE_NOT_FOUND")

    content = prompt_path.read_text()
    content = _HTML_COMMENT_PATTERN.sub('', content)
    return content.lstrip()


def render_prompt(template: str, variables: dict) -> str:
    """
    Interpolate {variable} placeholders.

    Raises:
        WreckitError(validation, PROMPT_ERROR): If a variable is missing
            or the template is malformed
    """
    try:
        return template.format(**variables)
    except KeyError as e:
        raise validation_error(
            f"Missing required variable {e} in prompt. Provided: {sorted(variables)}",
            "PROMPT_ERROR",
        ) from None
    except (IndexError, ValueError) as e:
        raise validation_error(f"Malformed prompt template: {e}", "PROMPT_ERROR") from None


def build_prompt_variables(root: Path, item, config) -> dict:
    """Variables available to every template. Absent artifacts are empty strings."""
    from wreckit.runner.delivery import branch_name_for

    return {
        "id": item.id,
        "title": item.title,
        "section": item.section,
        "overview": item.overview,
        "item_path": str(paths.item_dir(root, item.id)),
        "branch_name": branch_name_for(item, config),
        "base_branch": config.base_branch,
        "completion_signal": config.agent.completion_signal,
        "research": read_artifact(paths.research_path(root, item.id)),
        "plan": read_artifact(paths.plan_path(root, item.id)),
        "prd": read_artifact(paths.prd_path(root, item.id)),
        "progress": read_artifact(paths.progress_path(root, item.id)),
    }


def missing_prompt_templates(root: Path) -> list[str]:
    return [
        name for name in PROMPT_NAMES
        if not (paths.prompts_dir(root) / f"{name}.md").exists()
    ]


def init_prompt_templates(root: Path) -> list[str]:
    """Copy bundled templates into .wreckit/prompts/ without overwriting.

    Returns the names of templates written.
    """
    target_dir = paths.prompts_dir(root)
    target_dir.mkdir(parents=True, exist_ok=True)
    written = []
    for name in missing_prompt_templates(root):
        (target_dir / f"{name}.md").write_text(_bundled_path(name).read_text())
        written.append(name)
    return written
