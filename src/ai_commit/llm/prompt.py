"""
Prompt construction for commit message generation.

The prompt is a single deterministic template: repository context, the
(truncated) diff, the Conventional Commits vocabulary and the JSON reply
contract. Nothing here performs I/O.
"""

from __future__ import annotations

from textwrap import dedent
from typing import Tuple

from ai_commit.llm.message import COMMIT_TYPES, GenerationContext


# Upper bound on the diff characters sent to the provider.
MAX_DIFF_CHARS = 3000

UNKNOWN_BRANCH = "unknown"

SYSTEM_PROMPT = "You are a helpful assistant that generates git commit messages in JSON format."

_PROMPT_TEMPLATE = dedent(
    """
    You are a Git commit message generator. Based on the following git diff, generate a structured commit message.

    Context:
    - Branch: {branch}
    - Files changed: {file_count}
    - Lines added: {added_lines}
    - Lines removed: {removed_lines}

    Git Diff:
    ```
    {diff}
    ```

    Generate a commit message following the Conventional Commits specification:
    - type: {types}
    - scope: optional, the component or area affected
    - description: brief description (50 chars or less)
    - body: optional, detailed explanation
    - breaking_change: optional, if there are breaking changes

    Respond with a JSON object containing exactly these fields: type, scope, description, body, breaking_change.
    Use null for optional fields that do not apply.
    """
).strip()


def truncate_diff(diff: str, max_chars: int = MAX_DIFF_CHARS) -> str:
    """Cut ``diff`` to at most ``max_chars`` characters, dropping the tail."""
    if len(diff) <= max_chars:
        return diff
    return diff[:max_chars]


def build_prompt(diff: str, context: GenerationContext) -> str:
    """Render the generation prompt for ``diff`` and ``context``.

    Parameters
    ----------
    diff : str
        Unified diff of the working tree. Truncated to
        :data:`MAX_DIFF_CHARS` characters.
    context : GenerationContext
        Branch and change counts. A missing branch is rendered as
        ``"unknown"``.

    Returns
    -------
    str
        The prompt text.
    """
    return _PROMPT_TEMPLATE.format(
        branch=context.branch_name or UNKNOWN_BRANCH,
        file_count=context.file_count,
        added_lines=context.added_lines,
        removed_lines=context.removed_lines,
        diff=truncate_diff(diff),
        types=", ".join(COMMIT_TYPES),
    )


def count_diff_lines(diff: str) -> Tuple[int, int]:
    """Return ``(added, removed)`` line counts, ignoring ``+++``/``---`` file headers."""
    added = 0
    removed = 0
    for line in diff.splitlines():
        if line.startswith("+") and not line.startswith("+++"):
            added += 1
        elif line.startswith("-") and not line.startswith("---"):
            removed += 1
    return added, removed
