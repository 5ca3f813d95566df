"""
Client for Anthropic-compatible messages APIs.

Posts a single user turn to ``{base_url}/v1/messages``. The messages API
has no JSON-mode switch, so the prompt is suffixed with an explicit
request to answer with the JSON object only.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict

import requests
from pydantic import SecretStr

from ai_commit.llm import transport


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


DEFAULT_ANTHROPIC_BASE_URL = "https://api.anthropic.com"
ANTHROPIC_VERSION = "2023-06-01"
JSON_ONLY_SUFFIX = "\n\nPlease respond with only the JSON object, no other text."


@dataclass
class AnthropicClient:
    """Client for an Anthropic-compatible server.

    Parameters
    ----------
    api_key : SecretStr
        Value for the ``x-api-key`` header.
    model : str
        Model identifier.
    base_url : str, optional
        API root without the version segment. Defaults to
        ``https://api.anthropic.com``.
    max_tokens : int, optional
        Response token ceiling. Defaults to 500.
    """

    api_key: SecretStr
    model: str
    base_url: str = DEFAULT_ANTHROPIC_BASE_URL
    max_tokens: int = 500
    session: requests.Session = field(default_factory=transport.create_session, repr=False)

    name = "Anthropic"

    def __post_init__(self) -> None:
        self.base_url = self.base_url.rstrip("/")

    def _endpoint(self) -> str:
        return f"{self.base_url}/v1/messages"

    def _headers(self) -> Dict[str, str]:
        return {
            "x-api-key": self.api_key.get_secret_value(),
            "anthropic-version": ANTHROPIC_VERSION,
            "content-type": "application/json",
        }

    def build_payload(self, prompt: str) -> Dict[str, Any]:
        return {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "messages": [
                {"role": "user", "content": f"{prompt}{JSON_ONLY_SUFFIX}"},
            ],
        }

    def generate(self, prompt: str) -> str:
        """Send ``prompt`` and return the text of the first content block."""
        data = transport.post_json(
            self.session,
            self._endpoint(),
            self._headers(),
            self.build_payload(prompt),
            provider=self.name,
        )
        blocks = data.get("content")
        if not isinstance(blocks, list) or not blocks or not isinstance(blocks[0], dict):
            raise transport.no_usable_response(self.name, data)
        text = blocks[0].get("text")
        if not isinstance(text, str):
            raise transport.no_usable_response(self.name, data)
        logger.debug("Received %d characters from %s", len(text), self.name)
        return text

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> "AnthropicClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.close()
        return False
