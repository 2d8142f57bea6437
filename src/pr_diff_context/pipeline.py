"""
End-to-end report generation for two checked-out trees.

This module wires the core together: compare the trees, render diffs
for the modified files, and assemble the report. It performs no network
or git operations; callers hand it two materialized directories.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Optional, Union

from pr_diff_context.diff.diff_renderer import DEFAULT_CONTEXT_LINES, render_changeset
from pr_diff_context.report.report_builder import build, serialize
from pr_diff_context.report.report_model import CommentaryResult, Report, ReportHeader
from pr_diff_context.tree.file_categorizer import DEFAULT_RULES, CategoryRules
from pr_diff_context.tree.tree_comparator import DEFAULT_EXCLUDE_DIRS, compare


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


PathLike = Union[str, Path]


def generate_report(
    base_root: PathLike,
    head_root: PathLike,
    header: ReportHeader,
    context_lines: int = DEFAULT_CONTEXT_LINES,
    include_new_content: bool = True,
    commentary: Optional[CommentaryResult] = None,
    rules: CategoryRules = DEFAULT_RULES,
    exclude_dirs: Iterable[str] = DEFAULT_EXCLUDE_DIRS,
) -> Report:
    """Compare ``base_root`` with ``head_root`` and build the report.

    Raises
    ------
    TreeError
        If either root cannot be compared.
    """
    changeset = compare(base_root, head_root, rules=rules, exclude_dirs=exclude_dirs)
    logger.info(
        "Found %d new, %d modified and %d deleted file(s)",
        len(changeset.added),
        len(changeset.modified),
        len(changeset.removed),
    )
    diffs = render_changeset(base_root, head_root, changeset, context_lines=context_lines)
    return build(
        header,
        changeset,
        diffs,
        head_root=head_root,
        include_new_content=include_new_content,
        commentary=commentary,
    )


def write_report(report: Report, output_path: PathLike) -> Path:
    """Serialize ``report`` to ``output_path`` as UTF-8 and return the path."""
    path = Path(output_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(serialize(report) + "\n", encoding="utf-8")
    logger.debug("Wrote report to %s", path)
    return path
