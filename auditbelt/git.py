"""
AUDITBELT Git Helper

Every workflow step that changes the audit repo (metadata rebuilt,
finding created, code overhaul started/finished) ends with a commit.
Messages are standardized so the history reads like a checklist.
"""

from __future__ import annotations

import subprocess
from pathlib import Path

from loguru import logger


class GitError(Exception):
    """A git command failed. `stderr` holds what git printed, if anything."""

    def __init__(self, message: str, stderr: str = ""):
        super().__init__(message)
        self.stderr = stderr


class CommitMessage:
    """Standard workflow commit messages."""

    @staticmethod
    def metadata_updated() -> str:
        return "sonar: metadata updated"

    @staticmethod
    def finding_created(name: str) -> str:
        return f"finding: {name} created"

    @staticmethod
    def findings_prepared() -> str:
        return "finding: to-review findings prepared"

    @staticmethod
    def finding_accepted(name: str) -> str:
        return f"finding: {name} accepted"

    @staticmethod
    def finding_rejected(name: str) -> str:
        return f"finding: {name} rejected"

    @staticmethod
    def co_started(entrypoint: str) -> str:
        return f"co: {entrypoint} started"

    @staticmethod
    def co_finished(entrypoint: str) -> str:
        return f"co: {entrypoint} finished"

    @staticmethod
    def co_deployed(entrypoint: str) -> str:
        return f"co: {entrypoint} deployed to miro"

    @staticmethod
    def findings_result() -> str:
        return "result: findings result updated"


class GitRepo:
    """
    Thin wrapper over the git CLI for the audit repository.

    Usage:
        repo = GitRepo(root)
        repo.check_branch("auditor-notes")
        repo.commit(CommitMessage.finding_created("overflow"))
    """

    def __init__(self, root: Path):
        self.root = root.resolve()

    def commit(self, message: str, paths: list[Path] | None = None) -> str | None:
        """Stage and commit. Returns the new sha, or None when nothing changed."""
        if paths:
            self._git("add", "--", *[str(p) for p in paths])
        else:
            self._git("add", "-A")

        staged = self._git("diff", "--cached", "--name-only", capture=True)
        if not staged.strip():
            logger.info("[GIT] Nothing to commit.")
            return None

        self._git("commit", "-m", message)
        sha = self._git("rev-parse", "HEAD", capture=True).strip()
        logger.info(f"[GIT] Committed: {sha[:8]} {message}")
        return sha

    def current_branch(self) -> str:
        # symbolic-ref also answers before the first commit
        return self._git("symbolic-ref", "--short", "HEAD", capture=True).strip()

    def check_branch(self, expected: str) -> None:
        branch = self.current_branch()
        if branch != expected:
            raise GitError(f"Expected to be on branch {expected!r}, currently on {branch!r}")

    def _git(self, *args: str, capture: bool = False) -> str:
        cmd = ["git", *args]
        try:
            result = subprocess.run(
                cmd,
                cwd=self.root,
                capture_output=True,
                text=True,
                timeout=60,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            raise GitError(f"Command failed: {' '.join(cmd)}: {e}") from e
        if result.returncode != 0:
            raise GitError(
                f"Command failed: {' '.join(cmd)}\n"
                f"stderr: {result.stderr}\n"
                f"stdout: {result.stdout}",
                stderr=result.stderr,
            )
        return result.stdout if capture else ""
