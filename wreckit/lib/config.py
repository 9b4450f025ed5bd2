"""
Project configuration.

Loads .wreckit/config.yaml. A missing file yields defaults; a partial file
is merged over the defaults (nested blocks key by key). Invalid YAML or
values that fail the config schema raise INVALID_CONFIG.

Example config.yaml:

    base_branch: main
    branch_prefix: wreckit/
    agent:
      command: claude
      args: [--dangerously-skip-permissions, --print]
      completion_signal: <promise>COMPLETE</promise>
    max_iterations: 100
    timeout_seconds: 3600
    research_quality:
      min_citations: 5
    plan_quality:
      enabled: false
    pr_checks:
      allowed_remote_patterns: [github.com/acme/]
"""

import copy
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml

from wreckit.lib.constants import SCHEMA_VERSION
from wreckit.lib.errors import WreckitError, validation_error
from wreckit.lib.validate import validate
from wreckit.store.paths import config_path
from wreckit.workflow.quality import (
    PLAN_SECTIONS,
    RESEARCH_SECTIONS,
    PlanQualityOptions,
    ResearchQualityOptions,
)

DEFAULT_CONFIG = {
    "schema_version": SCHEMA_VERSION,
    "base_branch": "main",
    "branch_prefix": "wreckit/",
    "remote": "origin",
    "agent": {
        "command": "claude",
        "args": ["--dangerously-skip-permissions", "--print"],
        "completion_signal": "<promise>COMPLETE</promise>",
    },
    "max_iterations": 100,
    "timeout_seconds": 3600,
    "research_quality": {
        "enabled": True,
        "min_citations": 5,
        "min_summary_length": 100,
        "min_analysis_length": 150,
        "required_sections": list(RESEARCH_SECTIONS),
    },
    "plan_quality": {
        "enabled": True,
        "min_phases": 1,
        "required_sections": list(PLAN_SECTIONS),
    },
    "pr_checks": {
        "allowed_remote_patterns": [],         # empty allows any remote
    },
}

NESTED_BLOCKS = ("agent", "research_quality", "plan_quality", "pr_checks")


@dataclass
class AgentSettings:
    command: str
    args: list[str] = field(default_factory=list)
    completion_signal: str = DEFAULT_CONFIG["agent"]["completion_signal"]


@dataclass
class PrChecks:
    allowed_remote_patterns: list[str] = field(default_factory=list)


@dataclass
class WreckitConfig:
    """Resolved configuration for a workspace."""
    base_branch: str
    branch_prefix: str
    remote: str
    agent: AgentSettings
    max_iterations: int
    timeout_seconds: int
    research_quality: ResearchQualityOptions = field(default_factory=ResearchQualityOptions)
    plan_quality: PlanQualityOptions = field(default_factory=PlanQualityOptions)
    pr_checks: PrChecks = field(default_factory=PrChecks)
    schema_version: int = SCHEMA_VERSION


@dataclass
class ConfigOverrides:
    """Command-line overrides applied on top of config.yaml."""
    base_branch: Optional[str] = None
    branch_prefix: Optional[str] = None
    agent_command: Optional[str] = None
    agent_args: Optional[list[str]] = None
    completion_signal: Optional[str] = None
    max_iterations: Optional[int] = None
    timeout_seconds: Optional[int] = None


def merge_config(data: dict) -> dict:
    """Merge a partial config dict over the defaults."""
    merged = copy.deepcopy(DEFAULT_CONFIG)
    for key, value in data.items():
        if key in NESTED_BLOCKS and isinstance(value, dict):
            merged[key].update(value)
        else:
            merged[key] = value
    return merged


def _apply_overrides(config: WreckitConfig, overrides: ConfigOverrides) -> WreckitConfig:
    if overrides.base_branch is not None:
        config.base_branch = overrides.base_branch
    if overrides.branch_prefix is not None:
        config.branch_prefix = overrides.branch_prefix
    if overrides.agent_command is not None:
        config.agent.command = overrides.agent_command
    if overrides.agent_args is not None:
        config.agent.args = list(overrides.agent_args)
    if overrides.completion_signal is not None:
        config.agent.completion_signal = overrides.completion_signal
    if overrides.max_iterations is not None:
        config.max_iterations = overrides.max_iterations
    if overrides.timeout_seconds is not None:
        config.timeout_seconds = overrides.timeout_seconds
    return config


def read_config_file(root: Path) -> dict | None:
    """Parse config.yaml. Returns None if the file does not exist.

    Raises:
        WreckitError(validation, INVALID_CONFIG): Unparseable or schema-invalid
    """
    path = config_path(root)
    if not path.exists():
        return None

    try:
        data = yaml.safe_load(path.read_text())
    except yaml.YAMLError as e:
        raise validation_error(f"Invalid YAML in {path}: {e}", "INVALID_CONFIG") from None

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise validation_error(f"{path} must contain a mapping", "INVALID_CONFIG")

    try:
        validate(data, "config")
    except WreckitError as e:
        raise validation_error(f"{path}: {e.message}", "INVALID_CONFIG") from None
    return data


def load_config(root: Path, overrides: ConfigOverrides | None = None) -> WreckitConfig:
    data = merge_config(read_config_file(root) or {})
    agent = data["agent"]
    research = data["research_quality"]
    plan = data["plan_quality"]
    config = WreckitConfig(
        base_branch=data["base_branch"],
        branch_prefix=data["branch_prefix"],
        remote=data["remote"],
        agent=AgentSettings(
            command=agent["command"],
            args=list(agent["args"]),
            completion_signal=agent["completion_signal"],
        ),
        max_iterations=data["max_iterations"],
        timeout_seconds=data["timeout_seconds"],
        research_quality=ResearchQualityOptions(
            enabled=research["enabled"],
            min_citations=research["min_citations"],
            min_summary_length=research["min_summary_length"],
            min_analysis_length=research["min_analysis_length"],
            required_sections=list(research["required_sections"]),
        ),
        plan_quality=PlanQualityOptions(
            enabled=plan["enabled"],
            min_phases=plan["min_phases"],
            required_sections=list(plan["required_sections"]),
        ),
        pr_checks=PrChecks(allowed_remote_patterns=list(data["pr_checks"]["allowed_remote_patterns"])),
        schema_version=data["schema_version"],
    )
    if overrides:
        config = _apply_overrides(config, overrides)
    return config


def create_default_config(root: Path, overwrite: bool = False) -> Path:
    """Write the default config.yaml. Existing files are kept unless `overwrite`."""
    path = config_path(root)
    if path.exists() and not overwrite:
        return path
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(yaml.safe_dump(DEFAULT_CONFIG, sort_keys=False))
    return path
