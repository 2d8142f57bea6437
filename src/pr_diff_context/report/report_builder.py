"""
Assembly and serialization of the review context report.

The serialized document is consumed by people and by language model
prompts, so its section order, headings and delimiters are fixed:

* ``# PR REVIEW CONTEXT`` header block
* ``## PR SUMMARY`` with repository stats and the category breakdown
* ``### New Files:``, optionally followed by ``### NEW FILE CONTENTS``
  with one ``<NEW_CONTENT>`` block per added file
* ``### Deleted Files:``
* ``### Modified Files:``
* ``### DIFF SUMMARY`` with one ``<DIFF>`` block per modified file
* ``### PR COMMENTARY`` with one ``<COMMENT>`` block per comment

Every section is always present. Empty sections carry an explicit
placeholder rather than being omitted, and no list is ever re-sorted:
entries keep the order produced by the tree comparison. Payload lines of
new file and comment blocks that look like a block delimiter are escaped
with a leading backslash (see :func:`escape_block_line`).
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

from pr_diff_context.diff.diff_renderer import DiffBlock, read_text
from pr_diff_context.tree.change_model import ChangeSet, FileEntry

from .report_model import CommentaryResult, NewFileContent, Report, ReportHeader


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


TITLE = "# PR REVIEW CONTEXT"
SUMMARY_HEADING = "## PR SUMMARY"
NEW_FILES_HEADING = "### New Files:"
NEW_CONTENTS_HEADING = "### NEW FILE CONTENTS"
DELETED_FILES_HEADING = "### Deleted Files:"
MODIFIED_FILES_HEADING = "### Modified Files:"
DIFF_HEADING = "### DIFF SUMMARY"
COMMENTARY_HEADING = "### PR COMMENTARY"

NONE_FOUND = "- none found"
NO_CHANGES = "No changes found."

NEW_CONTENT_OPEN, NEW_CONTENT_CLOSE = "<NEW_CONTENT>", "</NEW_CONTENT>"
DIFF_OPEN, DIFF_CLOSE = "<DIFF>", "</DIFF>"
COMMENT_OPEN, COMMENT_CLOSE = "<COMMENT>", "</COMMENT>"

_LIST_MARKERS = {
    NEW_FILES_HEADING: ("new", ""),
    DELETED_FILES_HEADING: ("deleted", " **REMOVED**"),
    MODIFIED_FILES_HEADING: ("modified", " **MODIFIED**"),
}
_BLOCKS = {
    NEW_CONTENT_OPEN: NEW_CONTENT_CLOSE,
    DIFF_OPEN: DIFF_CLOSE,
    COMMENT_OPEN: COMMENT_CLOSE,
}
_ENTRY_RE = re.compile(
    r"^- \*\*\[(?P<category>[^\]]+)\]\*\* (?P<path>.+) "
    r"\((?P<kb>[0-9.]+) KB, ~(?P<tokens>\d+) tokens\)(?: \*\*[A-Z]+\*\*)*$"
)
_DIFF_FILE_RE = re.compile(r"^FILE: (?P<path>.+) \*\*\[[^\]]+\]\*\* \*\*MODIFIED\*\*")
_MARKER_LINE_RE = re.compile(r"^\\*</?(?:NEW_CONTENT|DIFF|COMMENT)>\s*$")


def build(
    header: ReportHeader,
    changeset: ChangeSet,
    diffs: Sequence[DiffBlock],
    head_root: Optional[Union[str, Path]] = None,
    include_new_content: bool = True,
    commentary: Optional[CommentaryResult] = None,
) -> Report:
    """Assemble a :class:`Report`.

    Parameters
    ----------
    header : ReportHeader
        Metadata for the header block.
    changeset : ChangeSet
        Result of the tree comparison.
    diffs : Sequence[DiffBlock]
        One block per modified entry, in the same order.
    head_root : str or Path, optional
        Root of the head tree; needed to embed new file contents.
    include_new_content : bool, optional
        Embed the full text of added files. Ignored without ``head_root``.
    commentary : CommentaryResult, optional
        PR comments, or ``None`` when they were not requested.

    Raises
    ------
    ValueError
        If ``diffs`` does not line up with ``changeset.modified``.
    """
    diff_paths = [block.path for block in diffs]
    modified_paths = changeset.paths("modified")
    if diff_paths != modified_paths:
        raise ValueError(
            f"Diff blocks {diff_paths} do not match modified files {modified_paths}"
        )

    new_contents = None
    if include_new_content and head_root is not None:
        root = Path(head_root)
        contents = []
        for entry in changeset.added:
            text, placeholder = read_text(root / entry.relative_path)
            contents.append(NewFileContent(path=entry.relative_path, text=text, placeholder=placeholder))
        new_contents = tuple(contents)

    return Report(
        header=header,
        changeset=changeset,
        diffs=tuple(diffs),
        new_contents=new_contents,
        commentary=commentary,
    )


def _value(text: str) -> str:
    return text if text else "n/a"


def _entry_line(entry: FileEntry, marker: str) -> str:
    line = (
        f"- **[{entry.category}]** {entry.relative_path} "
        f"({entry.size_kb:.2f} KB, ~{entry.token_estimate} tokens){marker}"
    )
    if entry.error:
        line += f" **{entry.error.upper()}**"
    return line


def _file_list(heading: str, entries: Sequence[FileEntry]) -> List[str]:
    _, marker = _LIST_MARKERS[heading]
    lines = [heading]
    if entries:
        lines.extend(_entry_line(entry, marker) for entry in entries)
    else:
        lines.append(NONE_FOUND)
    lines.append("")
    return lines


def _header_lines(header: ReportHeader) -> List[str]:
    pr_line = f"PR: {_value(header.repository)}"
    if header.pr_id:
        pr_line += f" #{header.pr_id}"
    return [
        TITLE,
        "",
        pr_line,
        f"URL: {_value(header.source_url)}",
        f"Base Branch: {_value(header.base_ref)}",
        f"Head Branch: {_value(header.head_ref)}",
        f"Generated: {_value(header.generated_at)}",
        "",
    ]


def _summary_lines(report: Report) -> List[str]:
    summary = report.summary
    lines = [
        SUMMARY_HEADING,
        "",
        "**Repository Stats**",
        f"- Total Changes: {summary.total_changes} files",
        f"- Files by Type: New: {summary.added} | Modified: {summary.modified} | Deleted: {summary.removed}",
        f"- Estimated Tokens: {summary.total_tokens}",
        "",
        "**Files by Category**",
    ]
    if summary.categories:
        lines.extend(f"- {category}: {count} files" for category, count in summary.categories)
    else:
        lines.append(NONE_FOUND)
    lines.append("")
    return lines


def escape_block_line(line: str) -> str:
    """Escape a payload line that would read as a block delimiter.

    Lines such as ``</NEW_CONTENT>`` (or an already escaped
    ``\\</NEW_CONTENT>``) get one more leading backslash, so block
    content can never close its block early. Stripping one backslash
    from such lines restores the original text.
    """
    return "\\" + line if _MARKER_LINE_RE.match(line) else line


def _block_text(text: str) -> str:
    if text.endswith("\n"):
        text = text[:-1]
    return "\n".join(escape_block_line(line) for line in text.split("\n"))


def _new_content_lines(report: Report) -> List[str]:
    lines = [NEW_CONTENTS_HEADING, ""]
    if not report.new_contents:
        return lines + [NONE_FOUND, ""]
    categories = {entry.relative_path: entry.category for entry in report.changeset.added}
    for content in report.new_contents:
        lines.append(f"FILE: {content.path} **[{categories.get(content.path, 'Other')}]** **NEWLY ADDED**")
        lines.append(NEW_CONTENT_OPEN)
        lines.append(content.placeholder if content.text is None else _block_text(content.text))
        lines.append(NEW_CONTENT_CLOSE)
        lines.append("")
    return lines


def _diff_lines(report: Report) -> List[str]:
    lines = [DIFF_HEADING, ""]
    if not report.diffs:
        return lines + [NO_CHANGES, ""]
    categories = {entry.relative_path: entry.category for entry in report.changeset.modified}
    for block in report.diffs:
        lines.append(
            f"FILE: {block.path} **[{categories.get(block.path, 'Other')}]** **MODIFIED** "
            f"(+{block.added_lines}/-{block.removed_lines} lines)"
        )
        lines.append(DIFF_OPEN)
        lines.extend(block.lines)
        lines.append(DIFF_CLOSE)
        lines.append("")
    return lines


def _commentary_lines(commentary: Optional[CommentaryResult]) -> List[str]:
    lines = [COMMENTARY_HEADING, ""]
    if commentary is None or not commentary.comments:
        placeholder = NONE_FOUND
        if commentary is not None and not commentary.ok:
            placeholder += f" (commentary unavailable: {commentary.error})"
        return lines + [placeholder, ""]
    for comment in commentary.comments:
        heading = f"COMMENT: @{_value(comment.author)} ({_value(comment.created_at)})"
        if comment.path:
            heading += f" on {comment.path}"
            if comment.line is not None:
                heading += f":{comment.line}"
        lines.append(heading)
        lines.append(COMMENT_OPEN)
        lines.append(_block_text(comment.body))
        lines.append(COMMENT_CLOSE)
        lines.append("")
    return lines


def serialize(report: Report) -> str:
    """Render ``report`` as Markdown text."""
    changeset = report.changeset
    lines: List[str] = []
    lines.extend(_header_lines(report.header))
    lines.extend(_summary_lines(report))
    lines.extend(_file_list(NEW_FILES_HEADING, changeset.added))
    if report.new_contents is not None:
        lines.extend(_new_content_lines(report))
    lines.extend(_file_list(DELETED_FILES_HEADING, changeset.removed))
    lines.extend(_file_list(MODIFIED_FILES_HEADING, changeset.modified))
    lines.extend(_diff_lines(report))
    lines.extend(_commentary_lines(report.commentary))
    return "\n".join(lines)


def parse_sections(text: str) -> Dict[str, List[str]]:
    """Recover the file lists from a serialized report.

    Returns
    -------
    Dict[str, List[str]]
        Paths under the ``new``, ``deleted`` and ``modified`` lists and
        the ``diff`` block paths, in document order. Content inside
        ``<NEW_CONTENT>``, ``<DIFF>`` and ``<COMMENT>`` blocks is skipped.
    """
    result: Dict[str, List[str]] = {"new": [], "deleted": [], "modified": [], "diff": []}
    section: Optional[str] = None
    closing: Optional[str] = None
    for line in text.split("\n"):
        line = line.rstrip("\r")
        if closing is not None:
            if line == closing:
                closing = None
            continue
        if line in _BLOCKS:
            closing = _BLOCKS[line]
            continue
        if line.startswith("#"):
            section = line
            continue
        if section in _LIST_MARKERS:
            match = _ENTRY_RE.match(line)
            if match:
                result[_LIST_MARKERS[section][0]].append(match.group("path"))
        elif section == DIFF_HEADING:
            match = _DIFF_FILE_RE.match(line)
            if match:
                result["diff"].append(match.group("path"))
    return result
