"""
Data models for the review context report.

A :class:`Report` bundles the header metadata, the change set, the
rendered diffs and the optional extras (new file contents and PR
commentary) for one run. Optional collaborator data is carried as a
:class:`CommentaryResult`, a tagged success/failure value, so that the
report can render a placeholder instead of failing.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional, Sequence, Tuple

from pr_diff_context.diff.diff_renderer import DiffBlock
from pr_diff_context.tree.change_model import ChangeSet
from pr_diff_context.tree.file_categorizer import Category


def utc_timestamp() -> str:
    """Return the current UTC time as an ISO 8601 string."""
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat()


@dataclass(frozen=True)
class ReportHeader:
    """Metadata printed at the top of the report.

    All fields are opaque strings passed through verbatim.
    """

    pr_id: str = ""
    repository: str = ""
    base_ref: str = ""
    head_ref: str = ""
    source_url: str = ""
    generated_at: str = field(default_factory=utc_timestamp)


@dataclass(frozen=True)
class Comment:
    """A PR conversation or review comment."""

    author: str
    created_at: str
    body: str
    path: Optional[str] = None
    line: Optional[int] = None


@dataclass(frozen=True)
class CommentaryResult:
    """Outcome of fetching PR commentary.

    Attributes
    ----------
    comments : Tuple[Comment, ...]
        Comments fetched on success; empty on failure.
    error : Optional[str]
        Failure reason, ``None`` on success.
    """

    comments: Tuple[Comment, ...] = ()
    error: Optional[str] = None

    @classmethod
    def success(cls, comments: Sequence[Comment]) -> "CommentaryResult":
        return cls(comments=tuple(comments))

    @classmethod
    def failure(cls, message: str) -> "CommentaryResult":
        return cls(error=message)

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class NewFileContent:
    """Full text of an added file, or the reason it is not shown."""

    path: str
    text: Optional[str] = None
    placeholder: Optional[str] = None


@dataclass(frozen=True)
class ReportSummary:
    """Counts shown in the summary section."""

    added: int
    removed: int
    modified: int
    total_tokens: int
    categories: Tuple[Tuple[Category, int], ...]

    @property
    def total_changes(self) -> int:
        return self.added + self.removed + self.modified


@dataclass(frozen=True)
class Report:
    """Everything needed to serialize one review context document."""

    header: ReportHeader
    changeset: ChangeSet
    diffs: Tuple[DiffBlock, ...] = ()
    new_contents: Optional[Tuple[NewFileContent, ...]] = None
    commentary: Optional[CommentaryResult] = None

    @property
    def summary(self) -> ReportSummary:
        changeset = self.changeset
        return ReportSummary(
            added=len(changeset.added),
            removed=len(changeset.removed),
            modified=len(changeset.modified),
            total_tokens=changeset.total_tokens,
            categories=tuple(changeset.category_counts()),
        )

    def diff_paths(self) -> List[str]:
        return [block.path for block in self.diffs]
