"""
Recovery of a structured commit message from a free-form model reply.

Models are asked to answer with a bare JSON object but frequently wrap it
in a fenced code block, surround it with prose, or prefix it with a
reasoning trace. Extraction is a short ordered list of cheap checks:

1. strip thinking tags (``<think>...</think>`` and friends);
2. if the reply is a single fenced block, take its contents;
3. otherwise take everything from the first ``{`` to the last ``}``;
4. decode the candidate as a JSON object and map it onto
   :class:`~ai_commit.llm.message.CommitMessage`.

Any failure raises :class:`~ai_commit.llm.errors.ParseError`. The error
message is a short diagnostic; the raw reply is attached as ``detail``.
"""

from __future__ import annotations

import json
import logging
import re

from ai_commit.llm.errors import ParseError
from ai_commit.llm.message import CommitMessage


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


FENCE = "```"

_THINKING_PATTERNS = [
    r"<think>.*?</think>",
    r"<thinking>.*?</thinking>",
    r"<thought>.*?</thought>",
    r"<reasoning>.*?</reasoning>",
]


def strip_thinking_tags(text: str) -> str:
    """Remove reasoning blocks emitted by thinking models.

    Examples
    --------
    >>> strip_thinking_tags("<think>reasoning...</think>Answer")
    'Answer'
    >>> strip_thinking_tags("<THINKING>thoughts</THINKING>\\n\\nReal answer")
    'Real answer'
    """
    result = text
    for pattern in _THINKING_PATTERNS:
        result = re.sub(pattern, "", result, flags=re.DOTALL | re.IGNORECASE)
    return result.strip()


def _unwrap_fence(text: str) -> str:
    """Return the contents of a fenced block, dropping an optional language tag."""
    inner = text[len(FENCE):-len(FENCE)]
    newline = inner.find("\n")
    if newline != -1:
        opener = inner[:newline].strip()
        # A language tag is a bare word such as ``json``; anything else is content.
        if not opener or re.fullmatch(r"[\w+.-]+", opener):
            inner = inner[newline + 1:]
    else:
        # Tag and object on one line, e.g. ```json {...}```.
        inner = re.sub(r"^\s*[\w+.-]+\s+(?=\{)", "", inner)
    return inner.strip()


def find_json_candidate(text: str) -> str:
    """Locate the JSON object inside ``text``.

    Raises
    ------
    ParseError
        If the text contains no ``{ ... }`` span.
    """
    stripped = text.strip()
    if len(stripped) >= 2 * len(FENCE) and stripped.startswith(FENCE) and stripped.endswith(FENCE):
        return _unwrap_fence(stripped)
    start = stripped.find("{")
    end = stripped.rfind("}")
    if start == -1 or end < start:
        raise ParseError("No JSON object found in the AI response.", detail=text)
    return stripped[start:end + 1]


def extract_message(raw_reply: str, require_type: bool = False) -> CommitMessage:
    """Parse a model reply into a :class:`CommitMessage`.

    Parameters
    ----------
    raw_reply : str
        Untrusted reply text from the provider.
    require_type : bool, optional
        When True, a missing or empty ``type`` is a parse failure. When
        False (the default) the type falls back to
        :data:`~ai_commit.llm.message.DEFAULT_COMMIT_TYPE`.

    Returns
    -------
    CommitMessage
        The recovered message; ``description`` is guaranteed non-empty.

    Raises
    ------
    ParseError
        If no JSON object can be recovered or required fields are missing.
    """
    if not raw_reply or not raw_reply.strip():
        raise ParseError("The AI response was empty.", detail=raw_reply)

    text = strip_thinking_tags(raw_reply)
    candidate = find_json_candidate(text)
    try:
        data = json.loads(candidate)
    except json.JSONDecodeError as exc:
        logger.debug("JSON decode failed at line %s column %s", exc.lineno, exc.colno)
        raise ParseError(
            f"The AI response is not valid JSON ({exc.msg}).", detail=raw_reply
        ) from exc
    if not isinstance(data, dict):
        raise ParseError("The AI response is not a JSON object.", detail=raw_reply)

    description = data.get("description")
    if not isinstance(description, str) or not description.strip():
        raise ParseError(
            "The AI response is missing a commit description.", detail=raw_reply
        )
    commit_type = data.get("type")
    if require_type and (not isinstance(commit_type, str) or not commit_type.strip()):
        raise ParseError("The AI response is missing a commit type.", detail=raw_reply)

    return CommitMessage.from_dict(data)
