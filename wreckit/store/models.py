"""
Data models for the item store.
"""

from dataclasses import dataclass, field
from typing import Optional

from wreckit.lib.constants import SCHEMA_VERSION
from wreckit.workflow.states import WorkflowState


@dataclass
class Item:
    """A unit of backlog work tracked through the phase sequence."""
    id: str                                    # <section>/<NNN>-<slug>
    title: str
    section: str
    state: WorkflowState
    overview: str = ""
    branch: Optional[str] = None
    pr_url: Optional[str] = None
    pr_number: Optional[int] = None
    last_error: Optional[str] = None
    created_at: str = ""                       # ISO-8601
    updated_at: str = ""                       # ISO-8601
    schema_version: int = SCHEMA_VERSION

    def to_dict(self) -> dict:
        return {
            "schema_version": self.schema_version,
            "id": self.id,
            "title": self.title,
            "section": self.section,
            "state": self.state.value,
            "overview": self.overview,
            "branch": self.branch,
            "pr_url": self.pr_url,
            "pr_number": self.pr_number,
            "last_error": self.last_error,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Item":
        return cls(
            id=data["id"],
            title=data["title"],
            section=data["section"],
            state=WorkflowState(data["state"]),
            overview=data.get("overview", ""),
            branch=data.get("branch"),
            pr_url=data.get("pr_url"),
            pr_number=data.get("pr_number"),
            last_error=data.get("last_error"),
            created_at=data.get("created_at", ""),
            updated_at=data.get("updated_at", ""),
            schema_version=data.get("schema_version", SCHEMA_VERSION),
        )


@dataclass
class Story:
    id: str
    title: str
    acceptance_criteria: list[str] = field(default_factory=list)
    priority: int = 1                          # lower = more urgent
    status: str = "pending"                    # pending, done
    notes: str = ""


@dataclass
class StoryDocument:
    """The structured plan produced by the plan phase (prd.json)."""
    id: str
    branch_name: str
    stories: list[Story] = field(default_factory=list)
    schema_version: int = SCHEMA_VERSION

    def to_dict(self) -> dict:
        return {
            "schema_version": self.schema_version,
            "id": self.id,
            "branch_name": self.branch_name,
            "user_stories": [
                {
                    "id": s.id,
                    "title": s.title,
                    "acceptance_criteria": list(s.acceptance_criteria),
                    "priority": s.priority,
                    "status": s.status,
                    "notes": s.notes,
                }
                for s in self.stories
            ],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "StoryDocument":
        return cls(
            id=data["id"],
            branch_name=data["branch_name"],
            stories=[
                Story(
                    id=s["id"],
                    title=s["title"],
                    acceptance_criteria=list(s["acceptance_criteria"]),
                    priority=s["priority"],
                    status=s["status"],
                    notes=s["notes"],
                )
                for s in data["user_stories"]
            ],
            schema_version=data.get("schema_version", SCHEMA_VERSION),
        )

    def pending_stories(self) -> list[Story]:
        """Pending stories, most urgent first. Ties keep document order."""
        return sorted(
            (s for s in self.stories if s.status == "pending"),
            key=lambda s: s.priority,
        )


@dataclass
class IndexEntry:
    id: str
    state: WorkflowState
    title: str

    def to_dict(self) -> dict:
        return {"id": self.id, "state": self.state.value, "title": self.title}
