"""
Top-level package for pr_diff_context.

This package builds Markdown review context for pull requests by
comparing the base and head trees. The CLI entry point lives in
``pr_diff_context.cli``.
"""

__all__ = ["__version__"]

__version__ = "0.1.0"
