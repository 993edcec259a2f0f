"""Typed records passed between the stages of a reconciliation run."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any

from prexplain_core.errors import AnnotationFailure


class Action(str, Enum):
    OPENED = "opened"
    SYNCHRONIZE = "synchronize"
    OTHER = "other"

    @classmethod
    def parse(cls, value: Any) -> Action:
        try:
            return cls(value)
        except ValueError:
            return cls.OTHER


QUALIFYING_ACTIONS = frozenset({Action.OPENED, Action.SYNCHRONIZE})


@dataclass(frozen=True)
class ChangeEvent:
    """One qualifying pull_request webhook, reduced to what a run needs."""

    action: Action
    owner: str
    repo_name: str
    head_sha: str
    pr_number: int
    base_sha: str | None = None
    base_ref: str | None = None

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo_name}"

    def log_context(self) -> dict[str, Any]:
        return {"repo": self.full_name, "pr": self.pr_number, "sha": self.head_sha}

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["action"] = self.action.value
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ChangeEvent:
        return cls(
            action=Action.parse(data["action"]),
            owner=data["owner"],
            repo_name=data["repo_name"],
            head_sha=data["head_sha"],
            pr_number=int(data["pr_number"]),
            base_sha=data.get("base_sha"),
            base_ref=data.get("base_ref"),
        )

    @classmethod
    def from_webhook(cls, event_type: str | None, payload: dict[str, Any]) -> ChangeEvent | None:
        """Build an event from a GitHub webhook delivery.

        Returns None when the delivery is not a qualifying pull_request event.
        Raises ValueError when the action qualifies but the pull_request
        object is missing required fields.
        """
        if event_type != "pull_request" or not isinstance(payload, dict):
            return None
        action = Action.parse(payload.get("action"))
        pr = payload.get("pull_request")
        if action not in QUALIFYING_ACTIONS or not isinstance(pr, dict):
            return None

        try:
            base = pr["base"]
            repo = base["repo"]
            owner = repo["owner"]
            owner_login = owner["login"] if isinstance(owner, dict) else owner
            return cls(
                action=action,
                owner=str(owner_login),
                repo_name=str(repo["name"]),
                head_sha=str(pr["head"]["sha"]),
                pr_number=int(pr["number"]),
                base_sha=base.get("sha"),
                base_ref=base.get("ref"),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise ValueError(f"Malformed pull_request payload: {e}") from e


class FileStatus(str, Enum):
    ADDED = "added"
    MODIFIED = "modified"
    REMOVED = "removed"
    RENAMED = "renamed"

    @property
    def needs_content(self) -> bool:
        return self is not FileStatus.REMOVED


@dataclass(frozen=True)
class DiffFile:
    path: str
    status: FileStatus
    previous_path: str | None = None
    added_lines: tuple[str, ...] = ()


@dataclass(frozen=True)
class FileContent:
    path: str
    text: str | None = None

    @property
    def found(self) -> bool:
        return self.text is not None


@dataclass(frozen=True)
class DesiredAnnotation:
    path: str
    body: str
    commit_sha: str


@dataclass(frozen=True)
class ExistingAnnotation:
    id: int
    path: str
    body: str

    def has_marker(self, marker: str) -> bool:
        return (self.body or "").startswith(marker)


@dataclass
class ReconcileReport:
    """What a single run did. Returned to the CLI and asserted on by tests."""

    repo: str = ""
    pr_number: int = 0
    head_sha: str = ""
    base_sha: str = ""
    created: list[str] = field(default_factory=list)
    deleted: list[int] = field(default_factory=list)
    removal_targets: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    failures: list[AnnotationFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures
