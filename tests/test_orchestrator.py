"""Tests for wreckit.commands.orchestrator module."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import pytest

from wreckit.agents.runner import AgentResult
from wreckit.commands.orchestrator import OrchestratorResult, cmd_next, cmd_run_all, orchestrate_all, orchestrate_next
from wreckit.store.items import read_item
from wreckit.store.registry import read_index
from wreckit.workflow.states import WorkflowState

FAILING_AGENT = AgentResult(False, "", False, 1, False)


@pytest.fixture
def backlog(make_item):
    """One failing raw item, one mergeable in_pr item, one done item."""
    make_item("bugs/001-crash", title="Crash")
    make_item("features/001-add-login", state=WorkflowState.IN_PR,
              pr_url="https://github.com/o/r/pull/3", pr_number=3)
    make_item("features/002-old", state=WorkflowState.DONE, title="Old")


class TestOrchestratorResult:
    def test_success(self):
        assert OrchestratorResult(completed=["a"]).success
        assert not OrchestratorResult(failed=["a"]).success


class TestOrchestrateAll:
    @pytest.mark.asyncio
    async def test_continues_past_failures(self, ctx, backlog):
        with patch("wreckit.runner.phases.run_agent", AsyncMock(return_value=FAILING_AGENT)), \
             patch("wreckit.lib.github.is_pr_merged", AsyncMock(return_value=(True, None))):
            result = await orchestrate_all(ctx)

        assert result.failed == ["bugs/001-crash"]
        assert result.completed == ["features/001-add-login"]
        assert result.skipped == ["features/002-old"]
        assert read_item(ctx.root, "bugs/001-crash").last_error == "Agent failed with exit code 1"

    @pytest.mark.asyncio
    async def test_refreshes_registry(self, ctx, backlog):
        with patch("wreckit.runner.phases.run_agent", AsyncMock(return_value=FAILING_AGENT)), \
             patch("wreckit.lib.github.is_pr_merged", AsyncMock(return_value=(True, None))):
            await orchestrate_all(ctx)
        states = {e.id: e.state for e in read_index(ctx.root)}
        assert states["features/001-add-login"] is WorkflowState.DONE

    @pytest.mark.asyncio
    async def test_unmerged_pr_counts_as_failed(self, ctx, backlog):
        with patch("wreckit.runner.phases.run_agent", AsyncMock(return_value=FAILING_AGENT)), \
             patch("wreckit.lib.github.is_pr_merged", AsyncMock(return_value=(False, None))):
            result = await orchestrate_all(ctx)
        assert "features/001-add-login" in result.failed

    @pytest.mark.asyncio
    async def test_dry_run_lists_remaining(self, ctx, backlog):
        ctx.dry_run = True
        agent = AsyncMock()
        with patch("wreckit.runner.phases.run_agent", agent):
            result = await orchestrate_all(ctx)
        agent.assert_not_awaited()
        assert result.remaining == ["bugs/001-crash", "features/001-add-login"]
        assert read_index(ctx.root) is None

    @pytest.mark.asyncio
    async def test_empty_backlog(self, ctx):
        result = await orchestrate_all(ctx)
        assert result.success
        assert result.completed == [] and result.failed == []


class TestOrchestrateNext:
    @pytest.mark.asyncio
    async def test_takes_first_non_terminal(self, ctx, backlog):
        with patch("wreckit.runner.phases.run_agent", AsyncMock(return_value=FAILING_AGENT)):
            item_id, success = await orchestrate_next(ctx)
        assert item_id == "bugs/001-crash"
        assert not success

    @pytest.mark.asyncio
    async def test_all_done(self, ctx, make_item):
        make_item(state=WorkflowState.DONE)
        assert await orchestrate_next(ctx) == (None, True)
        assert await cmd_next(SimpleNamespace(), ctx) == 0


class TestCmdRunAll:
    @pytest.mark.asyncio
    async def test_exit_code_reflects_failures(self, ctx, backlog):
        with patch("wreckit.runner.phases.run_agent", AsyncMock(return_value=FAILING_AGENT)), \
             patch("wreckit.lib.github.is_pr_merged", AsyncMock(return_value=(True, None))):
            assert await cmd_run_all(SimpleNamespace(no_tui=True), ctx) == 1

    @pytest.mark.asyncio
    async def test_dashboard_used_when_interactive(self, ctx, backlog):
        dashboard = AsyncMock(return_value=OrchestratorResult(completed=["x"]))
        with patch("wreckit.commands.orchestrator.should_use_tui", return_value=True), \
             patch("wreckit.commands.orchestrator.run_with_dashboard", dashboard):
            assert await cmd_run_all(SimpleNamespace(no_tui=False), ctx) == 0
        dashboard.assert_awaited_once()
        assert dashboard.await_args.args[2] is ctx.logger
