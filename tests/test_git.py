"""Tests for wreckit.git module."""

import sys
import types
from unittest.mock import AsyncMock, patch

import pytest

from wreckit.git import branch, commit, remote, status
from wreckit.git.runner import CommandResult, run_command


def ok(stdout=""):
    return CommandResult(returncode=0, stdout=stdout, stderr="")


def fail(stderr="boom"):
    return CommandResult(returncode=1, stdout="", stderr=stderr)


class TestCommandResult:
    def test_success_when_returncode_zero(self):
        assert CommandResult(returncode=0, stdout="ok", stderr="").success

    def test_failure_when_timed_out(self):
        assert not CommandResult(returncode=0, stdout="", stderr="", timed_out=True).success

    def test_output_prefers_stderr(self):
        assert CommandResult(returncode=1, stdout="out", stderr=" err\n").output == "err"
        assert CommandResult(returncode=0, stdout="out\n", stderr="").output == "out"


class TestRunCommand:
    @pytest.mark.asyncio
    async def test_captures_output(self, tmp_path, logger):
        result = await run_command(sys.executable, ["-c", "print('hi')"], tmp_path, logger)
        assert result.success
        assert result.stdout.strip() == "hi"

    @pytest.mark.asyncio
    async def test_missing_binary(self, tmp_path, logger):
        result = await run_command(str(tmp_path / "nope"), [], tmp_path, logger)
        assert result.returncode == 1
        assert "Failed to run" in result.stderr

    @pytest.mark.asyncio
    async def test_timeout(self, tmp_path, logger):
        result = await run_command(
            sys.executable, ["-c", "import time; time.sleep(30)"], tmp_path, logger, timeout=1
        )
        assert result.timed_out
        assert result.returncode == -1
        assert "timed out" in result.stderr

    @pytest.mark.asyncio
    async def test_dry_run(self, tmp_path, logger):
        result = await run_command(str(tmp_path / "nope"), ["x"], tmp_path, logger, dry_run=True)
        assert result.success


class TestStatus:
    @pytest.mark.asyncio
    async def test_porcelain_status(self, tmp_path, logger):
        mock = AsyncMock(return_value=ok(" M a.py\n"))
        with patch("wreckit.git.runner.run_git", mock):
            result = await status.get_status_porcelain(tmp_path, logger)
        assert result.stdout == " M a.py\n"
        assert mock.await_args.args[0] == ["status", "--porcelain"]


class TestEnsureBranch:
    @pytest.mark.asyncio
    async def test_already_on_branch(self, tmp_path, logger):
        mock = AsyncMock(return_value=ok("wreckit/x\n"))
        with patch("wreckit.git.runner.run_git", mock):
            result = await branch.ensure_branch(tmp_path, "main", "wreckit/x", logger)
        assert result.success and not result.created
        assert mock.await_count == 1

    @pytest.mark.asyncio
    async def test_checks_out_existing_local(self, tmp_path, logger):
        mock = AsyncMock(side_effect=[ok("main\n"), ok(), ok()])
        with patch("wreckit.git.runner.run_git", mock):
            result = await branch.ensure_branch(tmp_path, "main", "wreckit/x", logger)
        assert result.success and not result.created
        assert mock.await_args_list[-1].args[0] == ["checkout", "wreckit/x"]

    @pytest.mark.asyncio
    async def test_tracks_remote_branch(self, tmp_path, logger):
        mock = AsyncMock(side_effect=[ok("main\n"), fail(), ok(), ok()])
        with patch("wreckit.git.runner.run_git", mock):
            result = await branch.ensure_branch(tmp_path, "main", "wreckit/x", logger, remote="up")
        assert result.success
        assert mock.await_args_list[-1].args[0] == ["checkout", "-b", "wreckit/x", "--track", "up/wreckit/x"]

    @pytest.mark.asyncio
    async def test_creates_from_base(self, tmp_path, logger):
        mock = AsyncMock(side_effect=[ok("main\n"), fail(), fail(), ok()])
        with patch("wreckit.git.runner.run_git", mock):
            result = await branch.ensure_branch(tmp_path, "develop", "wreckit/x", logger)
        assert result.success and result.created
        assert mock.await_args_list[-1].args[0] == ["checkout", "-b", "wreckit/x", "develop"]

    @pytest.mark.asyncio
    async def test_checkout_failure(self, tmp_path, logger):
        mock = AsyncMock(side_effect=[ok("main\n"), fail(), fail(), fail("invalid reference: develop")])
        with patch("wreckit.git.runner.run_git", mock):
            result = await branch.ensure_branch(tmp_path, "develop", "wreckit/x", logger)
        assert not result.success
        assert "invalid reference" in result.error

    @pytest.mark.asyncio
    async def test_dry_run(self, tmp_path, logger):
        mock = AsyncMock()
        with patch("wreckit.git.runner.run_git", mock):
            result = await branch.ensure_branch(tmp_path, "main", "wreckit/x", logger, dry_run=True)
        assert result.success
        mock.assert_not_awaited()


class TestCommitAndPush:
    @pytest.mark.asyncio
    async def test_commit_all_stages_then_commits(self, tmp_path, logger):
        mock = AsyncMock(return_value=ok())
        with patch("wreckit.git.runner.run_git", mock):
            result = await commit.commit_all(tmp_path, "msg", logger)
        assert result.success
        assert [c.args[0] for c in mock.await_args_list] == [["add", "-A"], ["commit", "-m", "msg"]]

    @pytest.mark.asyncio
    async def test_commit_all_stops_on_stage_failure(self, tmp_path, logger):
        mock = AsyncMock(return_value=fail())
        with patch("wreckit.git.runner.run_git", mock):
            result = await commit.commit_all(tmp_path, "msg", logger)
        assert not result.success
        assert mock.await_count == 1

    @pytest.mark.asyncio
    async def test_push_sets_upstream(self, tmp_path, logger):
        mock = AsyncMock(return_value=ok())
        with patch("wreckit.git.runner.run_git", mock):
            await remote.push_branch(tmp_path, "wreckit/x", logger, remote="origin")
        assert mock.await_args.args[0] == ["push", "-u", "origin", "wreckit/x"]


class TestCommitModule:
    def test_package_exposes_commit_submodule(self):
        assert isinstance(commit, types.ModuleType)
        assert callable(commit.commit_all)


class TestRemoteUrl:
    @pytest.mark.asyncio
    async def test_reads_push_url(self, tmp_path, logger):
        mock = AsyncMock(return_value=ok("git@github.com:acme/app.git\n"))
        with patch("wreckit.git.runner.run_git", mock):
            url = await remote.get_remote_url(tmp_path, "origin", logger)
        assert url == "git@github.com:acme/app.git"
        assert mock.await_args.args[0] == ["remote", "get-url", "--push", "origin"]

    @pytest.mark.asyncio
    async def test_unknown_remote(self, tmp_path, logger):
        with patch("wreckit.git.runner.run_git", AsyncMock(return_value=fail("No such remote"))):
            assert await remote.get_remote_url(tmp_path, "upstream", logger) is None

    @pytest.mark.parametrize("url, expected", [
        ("https://github.com/acme/app.git", "github.com/acme/app"),
        ("git@github.com:acme/app.git", "github.com/acme/app"),
        ("ssh://git@github.com/acme/app", "github.com/acme/app"),
        ("git://github.com/acme/app.git/", "github.com/acme/app"),
    ])
    def test_normalize(self, url, expected):
        assert remote.normalize_remote_url(url) == expected

    def test_no_patterns_allows_anything(self):
        assert remote.remote_url_allowed("https://example.com/x.git", [])

    def test_pattern_matching(self):
        patterns = ["github.com/acme/"]
        assert remote.remote_url_allowed("git@github.com:acme/app.git", patterns)
        assert not remote.remote_url_allowed("https://github.com/evil/app.git", patterns)
        assert not remote.remote_url_allowed("https://gitlab.com/acme/app.git", patterns)
        assert remote.remote_url_allowed("https://github.com/acme/app", ["github.com/acme/app.git"])

    @pytest.mark.asyncio
    async def test_validate_rejects_foreign_remote(self, tmp_path, logger):
        with patch("wreckit.git.runner.run_git", AsyncMock(return_value=ok("https://github.com/evil/app.git\n"))):
            check = await remote.validate_remote_url(tmp_path, "origin", ["github.com/acme/"], logger)
        assert not check.valid
        assert check.actual_url == "https://github.com/evil/app.git"
        assert "does not match any allowed pattern" in check.errors[0]

    @pytest.mark.asyncio
    async def test_validate_missing_remote_passes(self, tmp_path, logger):
        with patch("wreckit.git.runner.run_git", AsyncMock(return_value=fail())):
            check = await remote.validate_remote_url(tmp_path, "nowhere", ["github.com/acme/"], logger)
        assert check.valid
        assert check.actual_url is None
