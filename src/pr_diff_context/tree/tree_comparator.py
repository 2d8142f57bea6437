"""
Comparison of two checked-out directory trees.

The comparator enumerates the regular files below a base and a head
root, and splits their union into added, removed and modified paths.
Content equality is decided by SHA-256 digests, never by size or mtime,
because both are unreliable across separate clones. Paths whose content
is identical on both sides are not reported at all.
"""

from __future__ import annotations

import hashlib
import logging
import os
from pathlib import Path
from typing import Iterable, List, Optional, Tuple, Union

from .change_model import UNREADABLE, ChangeSet, FileEntry
from .file_categorizer import DEFAULT_RULES, CategoryRules, categorize
from .size_estimator import estimate


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


DEFAULT_EXCLUDE_DIRS = (".git",)
_CHUNK_SIZE = 64 * 1024

PathLike = Union[str, Path]


class TreeError(Exception):
    """Raised when a tree root cannot be compared at all."""

    pass


def _check_root(root: PathLike, label: str) -> Path:
    path = Path(root)
    if not path.exists():
        raise TreeError(f"{label} tree does not exist: {path}")
    if not path.is_dir():
        raise TreeError(f"{label} tree is not a directory: {path}")
    if not os.access(path, os.R_OK | os.X_OK):
        raise TreeError(f"{label} tree is not readable: {path}")
    return path


def scan_tree(root: PathLike, exclude_dirs: Iterable[str] = DEFAULT_EXCLUDE_DIRS) -> Tuple[List[str], List[str]]:
    """Walk ``root`` and return ``(files, unreadable_dirs)``.

    ``files`` is what :func:`list_files` returns. ``unreadable_dirs``
    holds the sorted relative paths of directories that could not be
    listed; ``"."`` stands for the root itself. Nothing below such a
    directory is known.
    """
    excluded = set(exclude_dirs)
    root_path = Path(root)
    found: List[str] = []
    unreadable: List[str] = []

    def _walk_error(exc: OSError) -> None:
        logger.warning("Cannot list %s: %s", exc.filename, exc.strerror)
        unreadable.append(Path(exc.filename or root_path).relative_to(root_path).as_posix())

    for dirpath, dirnames, filenames in os.walk(root_path, onerror=_walk_error):
        dirnames[:] = [name for name in dirnames if name not in excluded]
        rel_dir = Path(dirpath).relative_to(root_path)
        for name in filenames:
            full = Path(dirpath) / name
            if full.is_symlink() or not full.is_file():
                continue
            found.append((rel_dir / name).as_posix())
    found.sort()
    unreadable.sort()
    return found, unreadable


def list_files(root: PathLike, exclude_dirs: Iterable[str] = DEFAULT_EXCLUDE_DIRS) -> List[str]:
    """Return the regular files below ``root`` as sorted relative paths.

    Paths use ``/`` as separator on every platform and are sorted
    lexicographically. Symbolic links are neither followed nor listed.
    Directories named in ``exclude_dirs`` are skipped at any depth.
    """
    return scan_tree(root, exclude_dirs)[0]


def _is_below(path: str, dirs: Iterable[str]) -> bool:
    return any(path.startswith(directory + "/") for directory in dirs)


def hash_file(path: PathLike) -> str:
    """Return the SHA-256 hex digest of the file at ``path``.

    Raises
    ------
    OSError
        If the file cannot be read.
    """
    digest = hashlib.sha256()
    with open(path, "rb") as handle:
        for chunk in iter(lambda: handle.read(_CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()


def _entry(root: Path, rel_path: str, rules: CategoryRules, error: Optional[str] = None) -> FileEntry:
    category = categorize(rel_path, rules)
    if error is not None:
        return FileEntry(relative_path=rel_path, category=category, error=error)
    size = estimate(root / rel_path)
    return FileEntry(
        relative_path=rel_path,
        category=category,
        size_bytes=size.size_bytes,
        token_estimate=size.token_estimate,
    )


def compare(
    base_root: PathLike,
    head_root: PathLike,
    rules: CategoryRules = DEFAULT_RULES,
    exclude_dirs: Iterable[str] = DEFAULT_EXCLUDE_DIRS,
) -> ChangeSet:
    """Compare two directory trees.

    Parameters
    ----------
    base_root, head_root : str or Path
        Roots of the pre-change and post-change trees.
    rules : CategoryRules, optional
        Categorization rules for the resulting entries.
    exclude_dirs : Iterable[str], optional
        Directory names ignored at any depth. Defaults to ``(".git",)``.

    Returns
    -------
    ChangeSet
        Added and modified entries are sized from the head tree, removed
        entries from the base tree. Each list is in lexicographic path
        order.

    Raises
    ------
    TreeError
        If either root is missing, not a directory or cannot be listed.
    """
    base = _check_root(base_root, "base")
    head = _check_root(head_root, "head")
    exclude_dirs = tuple(exclude_dirs)

    base_files, base_blind = scan_tree(base, exclude_dirs)
    head_files, head_blind = scan_tree(head, exclude_dirs)
    for label, root, blind in (("base", base, base_blind), ("head", head, head_blind)):
        if "." in blind:
            raise TreeError(f"{label} tree is not readable: {root}")
    base_set = set(base_files)
    head_set = set(head_files)
    logger.debug("Base tree %s: %d files; head tree %s: %d files", base, len(base_files), head, len(head_files))

    # A one-sided path below a directory the other side could not list
    # is not known to be added or removed.
    unknown = {path for path in head_files if path not in base_set and _is_below(path, base_blind)}
    unknown.update(path for path in base_files if path not in head_set and _is_below(path, head_blind))

    added = [
        _entry(head, path, rules)
        for path in head_files
        if path not in base_set and path not in unknown
    ]
    removed = [
        _entry(base, path, rules)
        for path in base_files
        if path not in head_set and path not in unknown
    ]

    modified: List[FileEntry] = []
    for path in sorted(unknown.union(base_set & head_set)):
        if path in unknown:
            logger.warning("Cannot compare %s: a parent directory is not readable", path)
            modified.append(_entry(head, path, rules, error=UNREADABLE))
            continue
        try:
            differs = hash_file(base / path) != hash_file(head / path)
        except OSError as exc:
            logger.warning("Cannot read %s for comparison: %s", path, exc)
            modified.append(_entry(head, path, rules, error=UNREADABLE))
            continue
        if differs:
            modified.append(_entry(head, path, rules))

    logger.debug("Compared trees: %d added, %d removed, %d modified", len(added), len(removed), len(modified))
    return ChangeSet(added=tuple(added), removed=tuple(removed), modified=tuple(modified))
