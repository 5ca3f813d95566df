"""
Error taxonomy for commit message generation.

Every failure raised by :mod:`ai_commit.llm` is a subclass of
:class:`GenerationError`. The string form of an error is always a short,
user-safe message. Anything that could leak vendor internals or echo a
secret (raw HTTP bodies, the full model reply) is kept on ``detail`` and
only shown when the caller explicitly asks for debug output.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional


class GenerationError(Exception):
    """Base class for all commit message generation failures."""

    def __init__(self, message: str, detail: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail

    def __str__(self) -> str:
        return self.message


class ConfigError(GenerationError):
    """Raised when the client cannot be configured (unknown provider, missing key, bad file)."""

    pass


class TransportErrorKind(str, Enum):
    TIMEOUT = "timeout"
    HTTP = "http"
    NETWORK = "network"
    INVALID_RESPONSE = "invalid_response"


class TransportError(GenerationError):
    """Raised when the request to the provider fails or returns nothing usable."""

    def __init__(
        self,
        message: str,
        kind: TransportErrorKind,
        status_code: Optional[int] = None,
        detail: Optional[str] = None,
    ) -> None:
        super().__init__(message, detail=detail)
        self.kind = kind
        self.status_code = status_code


class ParseError(GenerationError):
    """Raised when no commit message can be recovered from the model reply."""

    pass
