"""Tests for wreckit.lib.config module."""

import pytest
import yaml

from wreckit.lib.config import (
    DEFAULT_CONFIG,
    ConfigOverrides,
    create_default_config,
    load_config,
    merge_config,
)
from wreckit.lib.errors import WreckitError
from wreckit.store.paths import config_path


class TestDefaults:
    def test_missing_file_uses_defaults(self, repo):
        config = load_config(repo)
        assert config.base_branch == "main"
        assert config.branch_prefix == "wreckit/"
        assert config.remote == "origin"
        assert config.agent.command == "claude"
        assert config.agent.args == ["--dangerously-skip-permissions", "--print"]
        assert config.agent.completion_signal == "<promise>COMPLETE</promise>"
        assert config.max_iterations == 100
        assert config.timeout_seconds == 3600
        assert config.research_quality.enabled
        assert config.research_quality.min_citations == 5
        assert config.plan_quality.min_phases == 1
        assert config.pr_checks.allowed_remote_patterns == []

    def test_defaults_not_mutated_by_merge(self):
        merge_config({"agent": {"command": "other"}})
        assert DEFAULT_CONFIG["agent"]["command"] == "claude"


class TestLoadConfig:
    def test_partial_file_merges_agent_block(self, repo):
        config_path(repo).write_text(yaml.safe_dump({
            "base_branch": "develop",
            "agent": {"command": "my-agent"},
        }))
        config = load_config(repo)
        assert config.base_branch == "develop"
        assert config.agent.command == "my-agent"
        assert config.agent.completion_signal == "<promise>COMPLETE</promise>"
        assert config.max_iterations == 100

    def test_nested_blocks_merge_key_by_key(self, repo):
        config_path(repo).write_text(yaml.safe_dump({
            "research_quality": {"min_citations": 2},
            "plan_quality": {"enabled": False},
            "pr_checks": {"allowed_remote_patterns": ["github.com/acme/"]},
        }))
        config = load_config(repo)
        assert config.research_quality.min_citations == 2
        assert config.research_quality.min_summary_length == 100
        assert "Research Question" in config.research_quality.required_sections
        assert config.plan_quality.enabled is False
        assert config.plan_quality.min_phases == 1
        assert config.pr_checks.allowed_remote_patterns == ["github.com/acme/"]

    def test_empty_file_is_defaults(self, repo):
        config_path(repo).write_text("")
        assert load_config(repo).base_branch == "main"

    def test_invalid_yaml(self, repo):
        config_path(repo).write_text("base_branch: [unclosed")
        with pytest.raises(WreckitError) as exc:
            load_config(repo)
        assert exc.value.code == "INVALID_CONFIG"

    @pytest.mark.parametrize("content", [
        "max_iterations: 0",
        "timeout_seconds: -1",
        "unknown_key: 1",
        "agent:\n  command: ''",
        "research_quality:\n  min_citations: -1",
        "plan_quality:\n  bogus: true",
        "pr_checks:\n  allowed_remote_patterns: github.com",
        "- a list",
    ])
    def test_schema_violations(self, repo, content):
        config_path(repo).write_text(content)
        with pytest.raises(WreckitError) as exc:
            load_config(repo)
        assert exc.value.code == "INVALID_CONFIG"

    def test_overrides(self, repo):
        config = load_config(repo, ConfigOverrides(
            base_branch="trunk",
            agent_command="codex",
            agent_args=["exec"],
            max_iterations=3,
            timeout_seconds=0,
        ))
        assert config.base_branch == "trunk"
        assert config.agent.command == "codex"
        assert config.agent.args == ["exec"]
        assert config.max_iterations == 3
        assert config.timeout_seconds == 0


class TestCreateDefaultConfig:
    def test_writes_loadable_file(self, repo):
        path = create_default_config(repo)
        assert yaml.safe_load(path.read_text()) == DEFAULT_CONFIG
        assert load_config(repo).agent.command == "claude"

    def test_keeps_existing(self, repo):
        config_path(repo).write_text("base_branch: develop\n")
        create_default_config(repo)
        assert load_config(repo).base_branch == "develop"
        create_default_config(repo, overwrite=True)
        assert load_config(repo).base_branch == "main"
