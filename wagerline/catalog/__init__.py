"""
Catalog package: shape normalization, hierarchy building and the selection index.
"""

from .hierarchy import BuildReport, HierarchyBuilder, HierarchyOptions
from .normalizer import normalize_market
from .selection_index import IndexStats, SelectionIndex, SelectionRecord
from .tree import SelectionGroup, TreeNode

__all__ = [
    "BuildReport",
    "HierarchyBuilder",
    "HierarchyOptions",
    "normalize_market",
    "IndexStats",
    "SelectionIndex",
    "SelectionRecord",
    "SelectionGroup",
    "TreeNode",
]
