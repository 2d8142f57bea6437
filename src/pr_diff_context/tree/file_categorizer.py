"""
Heuristics for classifying changed files into review categories.

The categorizer maps a repository-relative path to one of the
:class:`Category` members using a small, ordered rule set: test-name
patterns first, then fixed extension tables checked in a fixed order.
The tables deliberately overlap (``.json`` is both configuration and
data), so the check order is part of the behaviour and must not change.

The rules are held in an immutable :class:`CategoryRules` value so that
callers (and tests) can substitute their own tables.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import FrozenSet, Iterable, Mapping, Optional, Tuple


class Category(str, Enum):
    """Semantic category of a changed file.

    Member order is also the order used when reporting category counts.
    """

    CODE = "Code"
    CONFIG = "Config"
    DOCS = "Docs"
    TESTS = "Tests"
    STYLES = "Styles"
    TEMPLATES = "Templates"
    DATA = "Data"
    IMAGES = "Images"
    OTHER = "Other"

    def __str__(self) -> str:
        return self.value


# Order in which the extension tables are consulted. Tests and Other are
# not extension based.
TABLE_ORDER: Tuple[Category, ...] = (
    Category.CODE,
    Category.CONFIG,
    Category.DOCS,
    Category.STYLES,
    Category.TEMPLATES,
    Category.DATA,
    Category.IMAGES,
)


def _exts(names: str) -> FrozenSet[str]:
    return frozenset(f".{name}" for name in names.split())


DEFAULT_EXTENSIONS: Mapping[Category, FrozenSet[str]] = {
    Category.CODE: _exts(
        "js jsx ts tsx py rb php java c cpp cs go rs swift kt scala clj fnl "
        "lua ex exs erl fs fsx pl pm t groovy dart pas"
    ),
    Category.CONFIG: _exts(
        "json xml yaml yml toml ini cfg conf config properties props env "
        "eslintrc babelrc editorconfig prettierrc dockerignore gitignore "
        "gitattributes npmrc htaccess gitmodules"
    ),
    Category.DOCS: _exts(
        "md mdx txt rtf pdf doc docx html htm rst wiki adoc tex asciidoc "
        "markdown mdown mkdn"
    ),
    Category.STYLES: _exts("css scss sass less styl stylus pcss"),
    Category.TEMPLATES: _exts(
        "html htm ejs hbs handlebars mustache twig liquid njk jade pug"
    ),
    Category.DATA: _exts("csv tsv json xml yaml yml sqlite sql"),
    Category.IMAGES: _exts("png jpg jpeg gif svg webp bmp ico"),
}


@dataclass(frozen=True)
class CategoryRules:
    """Immutable rule set used by :func:`categorize`.

    Attributes
    ----------
    test_infixes : Tuple[str, ...]
        Substrings of the (lowercased) file name marking a test file.
    test_segments : FrozenSet[str]
        Directory names marking everything below them as tests.
    tables : Tuple[Tuple[Category, FrozenSet[str]], ...]
        Extension tables in the order they are checked.
    """

    test_infixes: Tuple[str, ...] = (".test.", ".spec.")
    test_segments: FrozenSet[str] = frozenset({"test", "tests", "spec", "specs", "__tests__"})
    tables: Tuple[Tuple[Category, FrozenSet[str]], ...] = tuple(
        (category, DEFAULT_EXTENSIONS[category]) for category in TABLE_ORDER
    )


DEFAULT_RULES = CategoryRules()


def rules_from_mapping(mapping: Mapping[str, Iterable[str]]) -> CategoryRules:
    """Build rules from a mapping of category name to extensions.

    Categories not named in ``mapping`` keep their default table. The
    fixed check order is preserved regardless of the mapping's order.
    Extensions may be given with or without the leading dot.

    Raises
    ------
    ValueError
        If a key does not name an extension-based category.
    """
    by_name = {category.value.lower(): category for category in TABLE_ORDER}
    overrides = {}
    for name, extensions in mapping.items():
        category = by_name.get(str(name).lower())
        if category is None:
            raise ValueError(f"Unknown file category: {name}")
        overrides[category] = frozenset(
            ext.lower() if ext.startswith(".") else f".{ext.lower()}" for ext in extensions
        )
    tables = tuple(
        (category, overrides.get(category, DEFAULT_EXTENSIONS[category]))
        for category in TABLE_ORDER
    )
    return CategoryRules(tables=tables)


def file_extension(path: str) -> Optional[str]:
    """Return the lowercased extension of ``path`` including the dot.

    The extension is whatever follows the last dot of the file name, so
    dotfiles such as ``.gitignore`` have the extension ``.gitignore``.
    Names without a dot have no extension.
    """
    name = path.replace("\\", "/").rsplit("/", 1)[-1]
    if "." not in name:
        return None
    suffix = name.rsplit(".", 1)[1]
    if not suffix:
        return None
    return f".{suffix.lower()}"


def is_test_path(path: str, rules: CategoryRules = DEFAULT_RULES) -> bool:
    """Return True if ``path`` looks like a test file."""
    parts = [part.lower() for part in path.replace("\\", "/").split("/") if part]
    if not parts:
        return False
    name = parts[-1]
    if any(infix in name for infix in rules.test_infixes):
        return True
    return any(part in rules.test_segments for part in parts[:-1])


def categorize(path: str, rules: CategoryRules = DEFAULT_RULES) -> Category:
    """Classify a repository-relative path into a :class:`Category`.

    Parameters
    ----------
    path : str
        Path relative to the tree root. Either separator is accepted.
    rules : CategoryRules, optional
        Rule set to apply. Defaults to :data:`DEFAULT_RULES`.

    Returns
    -------
    Category
        ``TESTS`` if the path matches a test pattern, otherwise the
        category of the first extension table containing the file's
        extension, otherwise ``OTHER``.
    """
    if is_test_path(path, rules):
        return Category.TESTS
    ext = file_extension(path)
    if ext is None:
        return Category.OTHER
    for category, extensions in rules.tables:
        if ext in extensions:
            return category
    return Category.OTHER
