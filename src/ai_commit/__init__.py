"""
Top-level package for ai_commit.

This package exposes the main CLI entry point via the
``ai_commit.cli`` module and the generation client via
``ai_commit.llm``.
"""

__all__ = ["__version__"]

__version__ = "0.1.0"
