"""
Unified diff rendering for modified files.

The renderer produces the hunk content of a unified diff between two
versions of a file, without any tool-specific preamble: no ``diff --git``
line, no mode or index lines, no ``---``/``+++`` headers. Added and
removed lines use a normalized prefix (``+ `` and ``- ``) so that a
language model can tell the marker from the code. Binary content and
files that cannot be read or decoded render a placeholder instead and
never raise.
"""

from __future__ import annotations

import difflib
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple, Union

from pr_diff_context.tree.change_model import ChangeSet


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


DEFAULT_CONTEXT_LINES = 3
# Same sniffing window git uses to decide whether a blob is binary.
BINARY_SNIFF_BYTES = 8000

BINARY_PLACEHOLDER = "[binary file: diff not shown]"
UNDECODABLE_PLACEHOLDER = "[undecodable file: diff not shown]"
UNREADABLE_PLACEHOLDER = "[unreadable file: diff not available]"

NO_NEWLINE_MARKER = "\\ No newline at end of file"
CR_MARKER = "^M"

_LINE_RE = re.compile(r"[^\n]*\n|[^\n]+\Z")

PathLike = Union[str, Path]


@dataclass(frozen=True)
class DiffBlock:
    """Rendered diff of one modified file.

    Attributes
    ----------
    path : str
        Relative path of the file.
    added_lines : int
        Number of ``+`` lines across all hunks.
    removed_lines : int
        Number of ``-`` lines across all hunks.
    hunks : Tuple[str, ...]
        Hunk headers and body lines, without trailing newlines.
    placeholder : Optional[str]
        Text shown instead of hunks when the file could not be diffed.
    """

    path: str
    added_lines: int = 0
    removed_lines: int = 0
    hunks: Tuple[str, ...] = ()
    placeholder: Optional[str] = None

    @property
    def lines(self) -> Tuple[str, ...]:
        """Lines to emit for this block: the hunks or the placeholder."""
        if self.placeholder is not None:
            return (self.placeholder,)
        return self.hunks


def is_binary(data: bytes) -> bool:
    """Return True if ``data`` looks like binary content."""
    return b"\0" in data[:BINARY_SNIFF_BYTES]


def read_text(path: PathLike) -> Tuple[Optional[str], Optional[str]]:
    """Read ``path`` as UTF-8 text.

    Returns
    -------
    Tuple[Optional[str], Optional[str]]
        ``(text, None)`` on success or ``(None, placeholder)`` when the
        file is unreadable, binary or not valid UTF-8.
    """
    try:
        data = Path(path).read_bytes()
    except OSError as exc:
        logger.warning("Cannot read %s: %s", path, exc)
        return None, UNREADABLE_PLACEHOLDER
    if is_binary(data):
        return None, BINARY_PLACEHOLDER
    try:
        return data.decode("utf-8"), None
    except UnicodeDecodeError:
        logger.debug("File %s is not valid UTF-8", path)
        return None, UNDECODABLE_PLACEHOLDER


def split_lines(text: str) -> List[str]:
    """Split ``text`` after each ``\\n``, keeping the terminators.

    Unlike :meth:`str.splitlines` only ``\\n`` ends a line, so a ``\\r``
    before it stays part of the line and a missing final newline stays
    visible.
    """
    return _LINE_RE.findall(text)


def _normalize(line: str) -> List[str]:
    # difflib yields "+text", "-text", " text" with their own terminators.
    marker, body = line[0], line[1:]
    prefix = {"+": "+ ", "-": "- ", " ": "  "}[marker]
    if body.endswith("\n"):
        body = body[:-1]
        if body.endswith("\r"):
            body = body[:-1] + CR_MARKER
        return [prefix + body]
    return [prefix + body, NO_NEWLINE_MARKER]


def diff_lines(
    base_text: str,
    head_text: str,
    context_lines: int = DEFAULT_CONTEXT_LINES,
) -> Tuple[List[str], int, int]:
    """Return normalized hunk lines and the added/removed tallies.

    Line endings take part in the comparison: a CRLF line shows a
    trailing ``^M`` and a last line without a newline is followed by
    ``\\ No newline at end of file``, as git renders them.
    """
    raw = difflib.unified_diff(
        split_lines(base_text),
        split_lines(head_text),
        n=context_lines,
        lineterm="",
    )
    hunks: List[str] = []
    added = removed = 0
    for line in raw:
        if not hunks and line.startswith(("---", "+++")):
            # File headers come before the first hunk header.
            continue
        if line.startswith("@@"):
            hunks.append(line.rstrip("\n"))
            continue
        if line.startswith("+"):
            added += 1
        elif line.startswith("-"):
            removed += 1
        hunks.extend(_normalize(line))
    return hunks, added, removed


def render(
    base_path: PathLike,
    head_path: PathLike,
    context_lines: int = DEFAULT_CONTEXT_LINES,
    path: Optional[str] = None,
) -> DiffBlock:
    """Render the diff between two versions of a file.

    Parameters
    ----------
    base_path, head_path : str or Path
        Files holding the old and new versions.
    context_lines : int, optional
        Lines of context around each change. Defaults to 3.
    path : str, optional
        Label for the block. Defaults to ``head_path``.

    Returns
    -------
    DiffBlock
        The rendered block. Binary, undecodable or unreadable files give a
        block with a placeholder and zero line counts.
    """
    label = path if path is not None else str(head_path)
    base_text, base_placeholder = read_text(base_path)
    head_text, head_placeholder = read_text(head_path)
    if base_text is None or head_text is None:
        return DiffBlock(path=label, placeholder=base_placeholder or head_placeholder)
    hunks, added, removed = diff_lines(base_text, head_text, context_lines)
    return DiffBlock(path=label, added_lines=added, removed_lines=removed, hunks=tuple(hunks))


def render_changeset(
    base_root: PathLike,
    head_root: PathLike,
    changeset: ChangeSet,
    context_lines: int = DEFAULT_CONTEXT_LINES,
) -> Tuple[DiffBlock, ...]:
    """Render one block per modified entry, in change set order."""
    base = Path(base_root)
    head = Path(head_root)
    blocks = []
    for entry in changeset.modified:
        logger.debug("Rendering diff for %s", entry.relative_path)
        blocks.append(
            render(
                base / entry.relative_path,
                head / entry.relative_path,
                context_lines=context_lines,
                path=entry.relative_path,
            )
        )
    return tuple(blocks)
