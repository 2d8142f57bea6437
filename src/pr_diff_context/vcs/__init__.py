"""
Version control helpers.

Provides a thin wrapper around the git command line used to clone the
base and head refs of a pull request. See
:mod:`pr_diff_context.vcs.git_client`.
"""

from .git_client import GitClient, GitError, GitTimeoutError  # noqa: F401
