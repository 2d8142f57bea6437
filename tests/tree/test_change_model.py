import unittest

from pr_diff_context.tree.change_model import ChangeSet, FileEntry
from pr_diff_context.tree.file_categorizer import Category


def _entry(path, category=Category.CODE, tokens=0):
    return FileEntry(relative_path=path, category=category, size_bytes=tokens * 4, token_estimate=tokens)


class TestChangeSet(unittest.TestCase):
    def test_rejects_overlapping_paths(self) -> None:
        with self.assertRaises(ValueError):
            ChangeSet(added=(_entry("a.py"),), modified=(_entry("a.py"),))

    def test_lists_are_stored_as_tuples(self) -> None:
        changeset = ChangeSet(added=[_entry("a.py")])
        self.assertIsInstance(changeset.added, tuple)

    def test_totals_and_paths(self) -> None:
        changeset = ChangeSet(
            added=(_entry("b.py", tokens=2), _entry("a.md", Category.DOCS, tokens=1)),
            removed=(_entry("old.css", Category.STYLES, tokens=5),),
            modified=(_entry("c.py", tokens=3),),
        )
        self.assertEqual(changeset.total_changes, 4)
        self.assertEqual(changeset.total_tokens, 11)
        self.assertFalse(changeset.is_empty)
        self.assertEqual(changeset.paths("added"), ["b.py", "a.md"])
        self.assertEqual(
            [entry.relative_path for entry in changeset.entries()],
            ["b.py", "a.md", "old.css", "c.py"],
        )

    def test_category_counts_follow_category_order(self) -> None:
        changeset = ChangeSet(
            added=(_entry("x.png", Category.IMAGES), _entry("a.py"), _entry("b.py")),
            removed=(_entry("README.md", Category.DOCS),),
        )
        self.assertEqual(
            changeset.category_counts(),
            [(Category.CODE, 2), (Category.DOCS, 1), (Category.IMAGES, 1)],
        )

    def test_unknown_kind(self) -> None:
        with self.assertRaises(ValueError):
            ChangeSet().paths("renamed")

    def test_empty(self) -> None:
        self.assertTrue(ChangeSet().is_empty)
        self.assertEqual(ChangeSet().category_counts(), [])


if __name__ == "__main__":
    unittest.main()
