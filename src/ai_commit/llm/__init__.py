"""
Language model integration for ai_commit.

This package contains the provider clients (:class:`OpenAIClient`,
:class:`AnthropicClient`), the prompt builder, the reply extractor and
the :class:`CommitMessageGenerator` that ties them together.
"""

from .anthropic_client import AnthropicClient  # noqa: F401
from .commit_message_generator import CommitMessageGenerator, Provider, create_client  # noqa: F401
from .errors import ConfigError, GenerationError, ParseError, TransportError, TransportErrorKind  # noqa: F401
from .extraction import extract_message  # noqa: F401
from .message import CommitMessage, GenerationContext  # noqa: F401
from .openai_client import OpenAIClient  # noqa: F401
from .prompt import build_prompt, truncate_diff  # noqa: F401
