"""
Review context report assembly.

See :mod:`pr_diff_context.report.report_builder` for the document layout
and :mod:`pr_diff_context.report.report_model` for the value types.
"""

from .report_builder import build, parse_sections, serialize  # noqa: F401
from .report_model import (  # noqa: F401
    Comment,
    CommentaryResult,
    NewFileContent,
    Report,
    ReportHeader,
)
