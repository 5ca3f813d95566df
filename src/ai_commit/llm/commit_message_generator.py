"""
Commit message generation using a remote LLM.

This module is the entry point of :mod:`ai_commit.llm`.
:func:`create_client` turns a provider name into a configured client,
and :class:`CommitMessageGenerator` runs the pipeline for one request:

  build prompt -> provider.generate(prompt) -> extract_message(reply)

Exactly one network call is made per :meth:`generate_commit_message`.
Nothing is retried here; a caller that wants another attempt calls the
method again.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Optional, Protocol, Union

from pydantic import SecretStr

from ai_commit.llm.anthropic_client import DEFAULT_ANTHROPIC_BASE_URL, AnthropicClient
from ai_commit.llm.errors import ConfigError
from ai_commit.llm.extraction import extract_message
from ai_commit.llm.message import CommitMessage, GenerationContext
from ai_commit.llm.openai_client import DEFAULT_OPENAI_BASE_URL, OpenAIClient
from ai_commit.llm.prompt import build_prompt


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


class Provider(str, Enum):
    OPENAI = "openai"
    ANTHROPIC = "anthropic"

    @classmethod
    def parse(cls, name: str) -> "Provider":
        """Case-insensitive lookup; raises :class:`ConfigError` for unknown names."""
        normalized = (name or "").strip().lower()
        for provider in cls:
            if provider.value == normalized:
                return provider
        supported = ", ".join(p.value for p in cls)
        raise ConfigError(f"Unsupported AI provider: '{name}'. Supported providers: {supported}.")


class ProviderClient(Protocol):
    """Contract shared by every provider client."""

    name: str

    def generate(self, prompt: str) -> str:
        ...

    def close(self) -> None:
        ...


def create_client(
    provider_name: str,
    credential: Union[str, SecretStr, None],
    model: str,
    base_url: Optional[str] = None,
) -> ProviderClient:
    """Build the client for ``provider_name``.

    Parameters
    ----------
    provider_name : str
        ``"openai"`` or ``"anthropic"``, case-insensitive.
    credential : str or SecretStr
        API key for the provider.
    model : str
        Model identifier.
    base_url : str, optional
        Override for the provider's default endpoint root.

    Returns
    -------
    ProviderClient
        A ready-to-use client. No network traffic happens here.

    Raises
    ------
    ConfigError
        For an unknown provider, a missing credential or an empty model.
    """
    provider = Provider.parse(provider_name)
    secret = credential if isinstance(credential, SecretStr) else SecretStr(credential or "")
    if not secret.get_secret_value().strip():
        raise ConfigError(f"No API key provided for {provider.value}.")
    if not model or not model.strip():
        raise ConfigError(f"No model configured for {provider.value}.")

    if provider is Provider.OPENAI:
        client: ProviderClient = OpenAIClient(
            api_key=secret,
            model=model,
            base_url=base_url or DEFAULT_OPENAI_BASE_URL,
        )
    else:
        client = AnthropicClient(
            api_key=secret,
            model=model,
            base_url=base_url or DEFAULT_ANTHROPIC_BASE_URL,
        )
    logger.debug("Created %s client for model %s", provider.value, model)
    return client


class CommitMessageGenerator:
    """Generate a structured commit message for a diff using a provider client."""

    def __init__(self, client: ProviderClient, require_type: bool = False) -> None:
        self.client = client
        self.require_type = require_type

    def generate_commit_message(
        self,
        diff: str,
        context: GenerationContext,
        debug: bool = False,
    ) -> CommitMessage:
        """Run prompt building, the provider call and reply extraction once.

        Parameters
        ----------
        diff : str
            Unified diff of the working tree.
        context : GenerationContext
            Branch and change counts for the prompt.
        debug : bool, optional
            When True, the prompt and the raw reply are logged at DEBUG
            level. Control flow is unchanged.

        Returns
        -------
        CommitMessage
            The parsed message.

        Raises
        ------
        TransportError
            If the provider call fails.
        ParseError
            If the reply does not contain a usable message.
        """
        prompt = build_prompt(diff, context)
        if debug:
            logger.debug("=== Prompt sent to %s ===\n%s", self.client.name, prompt)
        raw_reply = self.client.generate(prompt)
        if debug:
            logger.debug("=== Raw response from %s ===\n%s", self.client.name, raw_reply)
        message = extract_message(raw_reply, require_type=self.require_type)
        logger.debug("Parsed commit message of type '%s'", message.type)
        return message
