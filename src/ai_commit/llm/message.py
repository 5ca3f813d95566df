"""
Data models for commit message generation.

The :class:`CommitMessage` is the structured result recovered from a
model reply. It renders either as a full Conventional Commits message or
as a one-line summary. The :class:`GenerationContext` carries the
repository facts that go into the prompt alongside the diff.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional


COMMIT_TYPES = ("feat", "fix", "docs", "style", "refactor", "test", "chore", "perf")

# Used when a reply omits ``type`` and the caller does not require it.
DEFAULT_COMMIT_TYPE = "chore"


@dataclass(frozen=True)
class GenerationContext:
    """Repository facts for a single generation request.

    Attributes
    ----------
    branch_name : Optional[str]
        Current branch, ``None`` when unknown (detached HEAD, unborn branch).
    file_count : int
        Number of changed files.
    added_lines : int
        Number of added lines in the diff.
    removed_lines : int
        Number of removed lines in the diff.
    """

    branch_name: Optional[str] = None
    file_count: int = 0
    added_lines: int = 0
    removed_lines: int = 0


def _optional_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        value = str(value)
    value = value.strip()
    return value or None


@dataclass(frozen=True)
class CommitMessage:
    """A Conventional Commits message.

    Attributes
    ----------
    type : str
        Commit type, normally one of :data:`COMMIT_TYPES`.
    description : str
        Short summary. Never empty.
    scope : Optional[str]
        Component or area affected.
    body : Optional[str]
        Free-form detailed explanation.
    breaking_change : Optional[str]
        Description of a breaking change, rendered as a trailer.
    """

    type: str
    description: str
    scope: Optional[str] = None
    body: Optional[str] = None
    breaking_change: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any], default_type: str = DEFAULT_COMMIT_TYPE) -> "CommitMessage":
        """Build a message from a decoded JSON object.

        Unknown keys are ignored. ``None``, missing keys and blank strings
        all map to an absent optional field. The caller is responsible for
        checking that ``description`` is present.
        """
        return cls(
            type=_optional_text(data.get("type")) or default_type,
            description=_optional_text(data.get("description")) or "",
            scope=_optional_text(data.get("scope")),
            body=_optional_text(data.get("body")),
            breaking_change=_optional_text(data.get("breaking_change")),
        )

    def header(self) -> str:
        if self.scope:
            return f"{self.type}({self.scope}): {self.description}"
        return f"{self.type}: {self.description}"

    def render_full(self) -> str:
        """Render as ``type(scope): description`` plus body and breaking-change trailer."""
        sections = [self.header()]
        if self.body:
            sections.append(self.body)
        if self.breaking_change:
            sections.append(f"BREAKING CHANGE: {self.breaking_change}")
        return "\n\n".join(sections)

    def render_summary(self) -> str:
        return self.description
