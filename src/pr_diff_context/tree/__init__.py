"""
Tree comparison and file annotation.

This package compares two checked-out trees and annotates each changed
path with a category and a size estimate. See
:mod:`pr_diff_context.tree.tree_comparator`,
:mod:`pr_diff_context.tree.file_categorizer` and
:mod:`pr_diff_context.tree.size_estimator` for details.
"""

from .change_model import ChangeSet, FileEntry  # noqa: F401
from .file_categorizer import Category, CategoryRules, categorize  # noqa: F401
from .size_estimator import SizeEstimate, estimate  # noqa: F401
from .tree_comparator import TreeError, compare  # noqa: F401
