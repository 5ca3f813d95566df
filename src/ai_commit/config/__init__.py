"""
Configuration loading for ai_commit.

See :mod:`ai_commit.config.loader` for the file locations and keys.
"""

from .loader import ConfigError, get_api_key, init_config, load_config  # noqa: F401
