"""
Git client implementation for pr_diff_context.

This module wraps the git operations needed to materialize the two
trees of a pull request: shallow clones of a branch, with fallbacks for
branches that cannot be cloned directly. All subprocess calls go through
:meth:`GitClient._run` so that unit tests can mock them easily.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
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


class GitTimeoutError(GitError):
    """Raised when a Git command exceeds the client timeout."""

    pass


class GitClient:
    """Client for cloning the refs of a pull request.

    Parameters
    ----------
    git_executable : str, optional
        Name or path of the git binary.
    timeout : float, optional
        Seconds each git command may run before it is killed. ``None``
        waits indefinitely.
    """

    def __init__(self, git_executable: str = "git", timeout: Optional[float] = None) -> None:
        self.git_executable = git_executable
        self.timeout = timeout

    # ------------------------------------------------------------------
    # Static helpers
    # ------------------------------------------------------------------
    @staticmethod
    def is_available(git_executable: str = "git") -> bool:
        """Return True if the git executable can be found on PATH."""
        return shutil.which(git_executable) is not None

    # ------------------------------------------------------------------
    # Basic Git commands
    # ------------------------------------------------------------------
    def _run(self, args: List[str], cwd: Optional[Path] = None, check: bool = True) -> subprocess.CompletedProcess:
        """Run a Git command.

        Raises
        ------
        GitError
            If git cannot be started, runs longer than ``timeout``, or
            exits with a non-zero status when ``check`` is True.
        """
        full_cmd = [self.git_executable] + args
        logger.debug("Executing Git command: %s", " ".join(full_cmd))
        try:
            result = subprocess.run(
                full_cmd,
                cwd=cwd,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",  # Replace invalid characters instead of failing
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired as e:
            logger.error("Git command timed out after %ss: %s", e.timeout, " ".join(full_cmd))
            raise GitTimeoutError(f"git {args[0]} timed out after {e.timeout} seconds") from e
        except OSError as e:
            logger.error("Failed to execute git: %s", e)
            raise GitError(f"Failed to execute git: {e}") from e

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
    # Cloning
    # ------------------------------------------------------------------
    def clone(self, url: str, dest: Path, branch: Optional[str] = None, depth: int = 1) -> None:
        """Shallow-clone ``url`` into ``dest``, optionally at ``branch``."""
        args = ["clone", "--quiet", f"--depth={depth}"]
        if branch:
            args += ["--branch", branch]
        args += [url, str(dest)]
        self._run(args)

    def fetch_and_checkout(self, repo_dir: Path, refspec: str, depth: int = 1) -> None:
        """Fetch ``refspec`` from origin into ``repo_dir`` and check it out."""
        self._run(["fetch", "--quiet", f"--depth={depth}", "origin", refspec], cwd=repo_dir)
        self._run(["checkout", "--quiet", "FETCH_HEAD"], cwd=repo_dir)

    @staticmethod
    def _reset_dir(dest: Path) -> None:
        if dest.exists():
            shutil.rmtree(dest, ignore_errors=True)
        dest.mkdir(parents=True, exist_ok=True)

    def clone_ref(self, url: str, dest: Path, branch: str, pr_number: Optional[int] = None) -> None:
        """Materialize ``branch`` of ``url`` in ``dest``.

        The branch is cloned directly when possible. Otherwise the default
        branch is cloned and ``branch`` fetched into it; when that also
        fails and ``pr_number`` is given, the GitHub pull request ref
        ``pull/<n>/head`` is fetched instead.

        Raises
        ------
        GitError
            If every strategy fails.
        GitTimeoutError
            As soon as any git command times out; no fallback is tried.
        """
        try:
            self.clone(url, dest, branch=branch)
            logger.debug("Cloned %s at %s into %s", url, branch, dest)
            return
        except GitTimeoutError:
            raise
        except GitError as exc:
            logger.warning("Failed to clone branch %s directly (%s); trying alternative approach", branch, exc)

        self._reset_dir(dest)
        self.clone(url, dest)
        try:
            self.fetch_and_checkout(dest, branch)
            return
        except GitError as exc:
            if pr_number is None or isinstance(exc, GitTimeoutError):
                raise
            logger.warning("Could not fetch branch %s directly (%s); trying PR reference", branch, exc)
        self.fetch_and_checkout(dest, f"pull/{pr_number}/head")
