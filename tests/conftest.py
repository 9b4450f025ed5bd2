"""Shared fixtures: a throwaway git+wreckit workspace and item builders."""

import json
import logging

import pytest

from wreckit.lib.config import load_config
from wreckit.runner.context import RunContext
from wreckit.store import paths
from wreckit.store.items import write_item
from wreckit.store.models import Item
from wreckit.workflow.states import WorkflowState


@pytest.fixture
def repo(tmp_path):
    """Repository root with .git/ and .wreckit/ directories."""
    (tmp_path / ".git").mkdir()
    (tmp_path / ".wreckit").mkdir()
    return tmp_path


@pytest.fixture
def logger():
    log = logging.getLogger("wreckit_tests")
    log.setLevel(logging.DEBUG)
    return log


@pytest.fixture
def ctx(repo, logger):
    return RunContext(root=repo, config=load_config(repo), logger=logger)


@pytest.fixture
def make_item(repo):
    """Write an item record in the given state and return it."""
    def _make(
        item_id="features/001-add-login",
        state=WorkflowState.RAW,
        title="Add login",
        **fields,
    ) -> Item:
        item = Item(
            id=item_id,
            title=title,
            section=item_id.split("/")[0],
            state=state,
            overview=fields.pop("overview", "Users can log in"),
            created_at="2026-01-01T00:00:00.000Z",
            updated_at="2026-01-01T00:00:00.000Z",
            **fields,
        )
        write_item(repo, item, touch=False)
        return item
    return _make


def prd_data(item_id, statuses, priorities=None):
    priorities = priorities or list(range(1, len(statuses) + 1))
    return {
        "schema_version": 1,
        "id": item_id,
        "branch_name": "wreckit/" + item_id.replace("/", "-"),
        "user_stories": [
            {
                "id": f"US-{i + 1:03d}",
                "title": f"Story {i + 1}",
                "acceptance_criteria": ["works"],
                "priority": priorities[i],
                "status": status,
                "notes": "",
            }
            for i, status in enumerate(statuses)
        ],
    }


@pytest.fixture
def write_prd(repo):
    """Write prd.json with one story per status."""
    def _write(item_id, statuses, priorities=None):
        path = paths.prd_path(repo, item_id)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(prd_data(item_id, statuses, priorities)))
        return path
    return _write


@pytest.fixture
def write_artifact(repo):
    def _write(item_id, name, content="# doc\n"):
        path = paths.item_dir(repo, item_id) / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
        return path
    return _write


RESEARCH_DOC = """# Research: Add login

## Research Question

How should users sign in to the web app?

## Summary

Sessions are handled by middleware in src/auth/session.py:12 and the login form lives in
src/web/login.html:3. Adding login means wiring the two together behind one route.

## Current State Analysis

The user model at src/models/user.py:40-58 already stores hashed passwords, and the route
table in src/web/routes.py:7 has no login entry. The session middleware defined at
src/auth/session.py:30 is never installed, so no request carries a session today.

## Key Files

- src/auth/session.py:12
- src/web/routes.py:7

## Technical Considerations

Cookies must be marked secure.

## Risks and Mitigations

Session fixation; rotate the session id on login.

## Recommended Approach

Install the middleware, then add the route.

## Open Questions

None.
"""

PLAN_DOC = """# Plan: Add login

## Overview

Add a login route backed by the existing session middleware.

## Current State

No login route exists.

## Desired End State

Users can sign in and stay signed in.

## What We're NOT Doing

Password reset.

## Implementation Approach

Install the middleware first, then add the route.

## Phases

### Phase 1: Middleware

Install the session middleware.

### Phase 2: Route

Add the login route and form handler.

## Testing Strategy

Route tests with a fake user store.
"""
