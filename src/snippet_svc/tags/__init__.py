"""
Tag and Category Layer

Labels and groupings for saved queries. The export engine reads tag names
from here, and the analysis layer uses it for tag suggestions.
"""

from .types import Tag, Category, TAG_COLORS, DEFAULT_CATEGORIES
from .registry import TagStore, TagRegistry, TagMergeResult, suggest_tags
from .loader import load_tags_from_yaml, save_tags_to_yaml

__all__ = [
    "Tag",
    "Category",
    "TAG_COLORS",
    "DEFAULT_CATEGORIES",
    "TagStore",
    "TagRegistry",
    "TagMergeResult",
    "suggest_tags",
    "load_tags_from_yaml",
    "save_tags_to_yaml",
]
