"""
Data models for tree comparison results.

A :class:`FileEntry` describes one changed path; a :class:`ChangeSet`
groups the entries produced by comparing two trees into added, removed
and modified paths. Both are immutable and live for a single report run.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Tuple

from .file_categorizer import Category


UNREADABLE = "unreadable"


@dataclass(frozen=True)
class FileEntry:
    """A changed file.

    Attributes
    ----------
    relative_path : str
        Path relative to the tree root, always ``/``-separated.
    category : Category
        Category assigned by the categorizer.
    size_bytes : int
        Size of the file version shown in the report.
    token_estimate : int
        Approximate token count of that version.
    error : Optional[str]
        Per-file annotation such as ``"unreadable"``; ``None`` when the
        file was processed normally.
    """

    relative_path: str
    category: Category
    size_bytes: int = 0
    token_estimate: int = 0
    error: Optional[str] = None

    @property
    def size_kb(self) -> float:
        return round(self.size_bytes / 1024, 2)


@dataclass(frozen=True)
class ChangeSet:
    """Added, removed and modified entries between two trees.

    The three sequences are pairwise disjoint by path; constructing a
    change set that violates this raises :class:`ValueError`.
    """

    added: Tuple[FileEntry, ...] = ()
    removed: Tuple[FileEntry, ...] = ()
    modified: Tuple[FileEntry, ...] = ()

    def __post_init__(self) -> None:
        # Accept lists from callers but store tuples.
        object.__setattr__(self, "added", tuple(self.added))
        object.__setattr__(self, "removed", tuple(self.removed))
        object.__setattr__(self, "modified", tuple(self.modified))
        seen: Dict[str, str] = {}
        for kind in ("added", "removed", "modified"):
            for entry in getattr(self, kind):
                previous = seen.get(entry.relative_path)
                if previous is not None:
                    raise ValueError(
                        f"Path {entry.relative_path!r} appears in both {previous} and {kind}"
                    )
                seen[entry.relative_path] = kind

    def entries(self) -> Iterator[FileEntry]:
        """Iterate over added, removed and modified entries in that order."""
        yield from self.added
        yield from self.removed
        yield from self.modified

    def paths(self, kind: str) -> List[str]:
        """Return the paths of one of ``added``, ``removed`` or ``modified``."""
        if kind not in ("added", "removed", "modified"):
            raise ValueError(f"Unknown change kind: {kind}")
        return [entry.relative_path for entry in getattr(self, kind)]

    @property
    def total_changes(self) -> int:
        return len(self.added) + len(self.removed) + len(self.modified)

    @property
    def total_tokens(self) -> int:
        return sum(entry.token_estimate for entry in self.entries())

    @property
    def is_empty(self) -> bool:
        return self.total_changes == 0

    def category_counts(self) -> List[Tuple[Category, int]]:
        """Return ``(category, count)`` pairs in category order, skipping zeros."""
        counts = Counter(entry.category for entry in self.entries())
        return [(category, counts[category]) for category in Category if counts[category]]
