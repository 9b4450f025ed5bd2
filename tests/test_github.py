"""Tests for wreckit.lib.github module."""

import json
from unittest.mock import AsyncMock, patch

import pytest

from wreckit.git.runner import CommandResult
from wreckit.lib.github import PRStatus, create_or_update_pr, get_pr_by_branch, get_pr_status, is_pr_merged


def ok(stdout=""):
    return CommandResult(returncode=0, stdout=stdout, stderr="")


def fail(stderr="no pull requests found"):
    return CommandResult(returncode=1, stdout="", stderr=stderr)


def pr_json(state="OPEN", number=42):
    return json.dumps({"url": f"https://github.com/o/r/pull/{number}", "number": number, "state": state})


class TestPRStatus:
    def test_merged(self):
        assert PRStatus("merged").merged
        assert not PRStatus("open").merged
        assert not PRStatus("merged", error="x").merged


class TestGetPRByBranch:
    @pytest.mark.asyncio
    async def test_none_when_missing(self, tmp_path, logger):
        with patch("wreckit.git.runner.run_gh", AsyncMock(return_value=fail())):
            assert await get_pr_by_branch(tmp_path, "b", logger) is None

    @pytest.mark.asyncio
    async def test_ignores_closed(self, tmp_path, logger):
        with patch("wreckit.git.runner.run_gh", AsyncMock(return_value=ok(pr_json("CLOSED")))):
            assert await get_pr_by_branch(tmp_path, "b", logger) is None

    @pytest.mark.asyncio
    async def test_ignores_merged(self, tmp_path, logger):
        with patch("wreckit.git.runner.run_gh", AsyncMock(return_value=ok(pr_json("MERGED")))):
            assert await get_pr_by_branch(tmp_path, "b", logger) is None

    @pytest.mark.asyncio
    async def test_open(self, tmp_path, logger):
        with patch("wreckit.git.runner.run_gh", AsyncMock(return_value=ok(pr_json()))):
            pr = await get_pr_by_branch(tmp_path, "b", logger)
        assert pr.number == 42


class TestCreateOrUpdatePR:
    @pytest.mark.asyncio
    async def test_creates_when_absent(self, tmp_path, logger):
        mock = AsyncMock(side_effect=[fail(), ok("https://github.com/o/r/pull/7\n")])
        with patch("wreckit.git.runner.run_gh", mock):
            result = await create_or_update_pr(tmp_path, "main", "b", "T", "B", logger)
        assert result.success and result.created
        assert result.number == 7
        assert mock.await_args.args[0][:2] == ["pr", "create"]

    @pytest.mark.asyncio
    async def test_repeated_delivery_keeps_number(self, tmp_path, logger):
        mock = AsyncMock(side_effect=[ok(pr_json(number=7)), ok()])
        with patch("wreckit.git.runner.run_gh", mock):
            result = await create_or_update_pr(tmp_path, "main", "b", "T2", "B2", logger)
        assert result.success and not result.created
        assert result.number == 7
        assert mock.await_args.args[0][:3] == ["pr", "edit", "7"]

    @pytest.mark.asyncio
    async def test_create_failure(self, tmp_path, logger):
        mock = AsyncMock(side_effect=[fail(), fail("auth required")])
        with patch("wreckit.git.runner.run_gh", mock):
            result = await create_or_update_pr(tmp_path, "main", "b", "T", "B", logger)
        assert not result.success
        assert "auth required" in result.error

    @pytest.mark.asyncio
    async def test_unparseable_url(self, tmp_path, logger):
        mock = AsyncMock(side_effect=[fail(), ok("something odd\n")])
        with patch("wreckit.git.runner.run_gh", mock):
            result = await create_or_update_pr(tmp_path, "main", "b", "T", "B", logger)
        assert not result.success

    @pytest.mark.asyncio
    async def test_dry_run(self, tmp_path, logger):
        mock = AsyncMock()
        with patch("wreckit.git.runner.run_gh", mock):
            result = await create_or_update_pr(tmp_path, "main", "b", "T", "B", logger, dry_run=True)
        assert result.success
        mock.assert_not_awaited()


class TestMergeStatus:
    @pytest.mark.asyncio
    async def test_merged(self, tmp_path, logger):
        data = json.dumps({"state": "MERGED"})
        mock = AsyncMock(return_value=ok(data))
        with patch("wreckit.git.runner.run_gh", mock):
            status = await get_pr_status(tmp_path, 7, logger)
            merged, error = await is_pr_merged(tmp_path, 7, logger)
        assert status.state == "merged"
        assert mock.await_args.args[0] == ["pr", "view", "7", "--json", "state"]
        assert merged and error is None

    @pytest.mark.asyncio
    async def test_open_not_merged(self, tmp_path, logger):
        data = json.dumps({"state": "OPEN"})
        with patch("wreckit.git.runner.run_gh", AsyncMock(return_value=ok(data))):
            merged, error = await is_pr_merged(tmp_path, 7, logger)
        assert not merged and error is None

    @pytest.mark.asyncio
    async def test_query_failure(self, tmp_path, logger):
        with patch("wreckit.git.runner.run_gh", AsyncMock(return_value=fail("network down"))):
            merged, error = await is_pr_merged(tmp_path, 7, logger)
        assert not merged
        assert error == "network down"


class TestMergedBranchPR:
    @pytest.mark.asyncio
    async def test_merged_pr_is_not_reused(self, tmp_path, logger):
        mock = AsyncMock(side_effect=[ok(pr_json("MERGED", number=7)), ok("https://github.com/o/r/pull/9\n")])
        with patch("wreckit.git.runner.run_gh", mock):
            result = await create_or_update_pr(tmp_path, "main", "b", "T", "B", logger)
        assert result.success and result.created
        assert result.number == 9
        assert mock.await_args.args[0][:2] == ["pr", "create"]
