"""
Utilities for rendering diffs of modified files.

The :mod:`pr_diff_context.diff.diff_renderer` module turns pairs of file
versions into hunk-only unified diff blocks.
"""

from .diff_renderer import DiffBlock, render, render_changeset  # noqa: F401
