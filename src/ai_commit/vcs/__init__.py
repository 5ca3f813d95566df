"""
Version control integration for ai_commit.

Only Git is supported; see :class:`GitClient`.
"""

from .git_client import BranchInfo, GitClient, GitError, RepoStatus, TrackingInfo  # noqa: F401
