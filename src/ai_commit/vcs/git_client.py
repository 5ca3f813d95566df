"""
Git client implementation for ai_commit.

This module wraps the handful of Git operations the commit assistant
needs: working-tree status, diffs, branch/tracking information, staging
and committing. All subprocess calls go through :meth:`GitClient._run`
so that unit tests can mock them easily.
"""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional


logger = logging.getLogger(__name__)
# Attach a null handler to avoid logging errors when the root logger is not
# configured. Logs will propagate to the root when configured by the CLI.
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


class GitError(Exception):
    """Raised when a Git command fails."""

    pass


@dataclass
class RepoStatus:
    """Working tree status grouped by change kind."""

    modified_files: List[str] = field(default_factory=list)
    new_files: List[str] = field(default_factory=list)
    deleted_files: List[str] = field(default_factory=list)
    renamed_files: List[str] = field(default_factory=list)

    @property
    def is_clean(self) -> bool:
        return self.total_changes() == 0

    def total_changes(self) -> int:
        return (
            len(self.modified_files)
            + len(self.new_files)
            + len(self.deleted_files)
            + len(self.renamed_files)
        )


@dataclass
class TrackingInfo:
    upstream: str
    ahead: int = 0
    behind: int = 0


@dataclass
class BranchInfo:
    """Current branch, or the reason there isn't one."""

    name: Optional[str] = None
    is_detached: bool = False
    is_unborn: bool = False
    tracking_info: Optional[TrackingInfo] = None


class GitClient:
    """Client for interacting with a Git repository."""

    def __init__(self, repo_root: Path) -> None:
        self.repo_root = repo_root

    # ------------------------------------------------------------------
    # Static helpers
    # ------------------------------------------------------------------
    @staticmethod
    def find_repo_root(start: Path) -> Optional[Path]:
        """Find the root of the Git repository starting from ``start``.

        Walk upwards until a ``.git`` entry is found or the filesystem
        root is reached.
        """
        current = start.resolve()
        while True:
            if (current / ".git").exists():
                return current
            if current.parent == current:
                return None
            current = current.parent

    # ------------------------------------------------------------------
    # Basic Git commands
    # ------------------------------------------------------------------
    def _run(self, args: List[str], check: bool = True) -> subprocess.CompletedProcess:
        """Run a Git command in the repository root.

        Raises
        ------
        GitError
            If Git is missing, or the command exits with a non-zero
            status when ``check`` is True.
        """
        full_cmd = ["git"] + args
        logger.debug("Executing Git command: %s", " ".join(full_cmd))
        try:
            result = subprocess.run(
                full_cmd,
                cwd=self.repo_root,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",
            )
        except OSError as exc:
            logger.error("Failed to execute git: %s", exc)
            raise GitError(f"Failed to execute git: {exc}") from exc

        if check and result.returncode != 0:
            logger.error(
                "Git command failed: %s\nSTDOUT: %s\nSTDERR: %s",
                " ".join(full_cmd),
                result.stdout,
                result.stderr,
            )
            raise GitError(result.stderr.strip() or result.stdout.strip())
        return result

    # ------------------------------------------------------------------
    # Status and diffs
    # ------------------------------------------------------------------
    def get_status(self) -> RepoStatus:
        """Return the working tree status.

        Untracked files are reported as new files. For renames the path
        is kept in git's ``old -> new`` form.

        Raises
        ------
        GitError
            If the git status command fails.
        """
        result = self._run(["status", "--porcelain"], check=True)
        status = RepoStatus()
        for line in result.stdout.splitlines():
            # Porcelain format: XY<space>path
            if len(line) < 4:
                continue
            code = line[:2]
            path = line[3:]
            if code == "??":
                status.new_files.append(path)
            elif "R" in code:
                status.renamed_files.append(path)
            elif "D" in code:
                status.deleted_files.append(path)
            elif "A" in code:
                status.new_files.append(path)
            elif code.strip():
                status.modified_files.append(path)
        return status

    def get_diff(self, staged: bool = False) -> str:
        """Return the unstaged diff, or the staged one when ``staged`` is True."""
        args = ["diff", "--cached"] if staged else ["diff"]
        return self._run(args, check=True).stdout

    def get_combined_diff(self) -> str:
        """Return staged and unstaged changes as one diff."""
        parts = [self.get_diff(staged=True), self.get_diff(staged=False)]
        return "\n".join(part.rstrip("\n") for part in parts if part.strip())

    # ------------------------------------------------------------------
    # Branch information
    # ------------------------------------------------------------------
    def get_branch_info(self) -> BranchInfo:
        """Return the current branch and its upstream tracking state.

        Parsed from the ``# branch.*`` headers of ``git status
        --porcelain=v2 --branch``.
        """
        result = self._run(["status", "--porcelain=v2", "--branch"], check=True)
        info = BranchInfo()
        upstream: Optional[str] = None
        ahead = behind = 0
        for line in result.stdout.splitlines():
            if not line.startswith("# branch."):
                continue
            key, _, value = line[2:].partition(" ")
            if key == "branch.oid" and value == "(initial)":
                info.is_unborn = True
            elif key == "branch.head":
                if value == "(detached)":
                    info.is_detached = True
                else:
                    info.name = value
            elif key == "branch.upstream":
                upstream = value
            elif key == "branch.ab":
                for part in value.split():
                    try:
                        if part.startswith("+"):
                            ahead = int(part[1:])
                        elif part.startswith("-"):
                            behind = int(part[1:])
                    except ValueError:
                        continue
        if upstream:
            info.tracking_info = TrackingInfo(upstream=upstream, ahead=ahead, behind=behind)
        return info

    # ------------------------------------------------------------------
    # Staging and committing
    # ------------------------------------------------------------------
    def stage_all(self) -> None:
        """Stage every change in the working tree, including deletions."""
        self._run(["add", "-A"], check=True)

    def commit(self, message: str) -> None:
        """Create a commit with the given (possibly multi-line) message."""
        self._run(["commit", "-m", message], check=True)
