"""
Client for OpenAI-compatible chat completion APIs.

Works with api.openai.com as well as any server exposing the same
``/chat/completions`` surface (Azure proxies, local gateways). The
request asks for a JSON object reply; servers that ignore the hint are
handled by the tolerant extraction step.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict

import requests
from pydantic import SecretStr

from ai_commit.llm import transport
from ai_commit.llm.prompt import SYSTEM_PROMPT


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


DEFAULT_OPENAI_BASE_URL = "https://api.openai.com/v1"


@dataclass
class OpenAIClient:
    """Client for an OpenAI-compatible server.

    Parameters
    ----------
    api_key : SecretStr
        Bearer token for the ``Authorization`` header.
    model : str
        Model identifier, e.g. ``"gpt-4"``.
    base_url : str, optional
        API root including the version segment. Defaults to
        ``https://api.openai.com/v1``.
    temperature : float, optional
        Sampling temperature. Defaults to 0.7.
    max_tokens : int, optional
        Response token ceiling. Defaults to 500.
    """

    api_key: SecretStr
    model: str
    base_url: str = DEFAULT_OPENAI_BASE_URL
    temperature: float = 0.7
    max_tokens: int = 500
    session: requests.Session = field(default_factory=transport.create_session, repr=False)

    name = "OpenAI"

    def __post_init__(self) -> None:
        self.base_url = self.base_url.rstrip("/")

    def _endpoint(self) -> str:
        return f"{self.base_url}/chat/completions"

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key.get_secret_value()}",
            "Content-Type": "application/json",
        }

    def build_payload(self, prompt: str) -> Dict[str, Any]:
        return {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
            "response_format": {"type": "json_object"},
        }

    def generate(self, prompt: str) -> str:
        """Send ``prompt`` and return the raw reply text.

        Raises
        ------
        TransportError
            If the request fails or the reply holds no message content.
        """
        data = transport.post_json(
            self.session,
            self._endpoint(),
            self._headers(),
            self.build_payload(prompt),
            provider=self.name,
        )
        choices = data.get("choices")
        if not isinstance(choices, list) or not choices:
            raise transport.no_usable_response(self.name, data)
        message = choices[0].get("message") if isinstance(choices[0], dict) else None
        content = message.get("content") if isinstance(message, dict) else None
        if not isinstance(content, str):
            raise transport.no_usable_response(self.name, data)
        logger.debug("Received %d characters from %s", len(content), self.name)
        return content

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> "OpenAIClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.close()
        return False
