"""Git operations for wreckit.

Return type conventions:
- Functions returning CommandResult: Caller must check .success before using output.
  Examples: commit_all(), push_branch()
- Functions returning bool: True on success/condition met, False otherwise.
  Examples: branch_exists(), remote_branch_exists()
- ensure_branch() returns a BranchResult carrying an error message on failure.
- validate_remote_url() returns a RemoteCheck listing why a remote was refused.
"""

from wreckit.git.branch import (
    BranchResult,
    branch_exists,
    ensure_branch,
    get_current_branch,
    remote_branch_exists,
)
from wreckit.git.commit import commit_all, stage_all
from wreckit.git.remote import RemoteCheck, get_remote_url, push_branch, validate_remote_url
from wreckit.git.runner import CommandResult, run_command, run_gh, run_git
from wreckit.git.status import get_status_porcelain

__all__ = [
    # runner
    "CommandResult",
    "run_command",
    "run_gh",
    "run_git",
    # branch
    "BranchResult",
    "branch_exists",
    "ensure_branch",
    "get_current_branch",
    "remote_branch_exists",
    # status
    "get_status_porcelain",
    # commit
    "commit_all",
    "stage_all",
    # remote
    "RemoteCheck",
    "get_remote_url",
    "push_branch",
    "validate_remote_url",
]
