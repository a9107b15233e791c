"""
Tag and category store.

TagStore is the capability the rest of the service depends on; TagRegistry
is the thread-safe in-memory implementation backed by YAML persistence
(see loader.py).
"""

from __future__ import annotations

import logging
import random
import threading
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone

from .types import DEFAULT_CATEGORIES, TAG_COLORS, Category, Tag

logger = logging.getLogger(__name__)


@dataclass
class TagMergeResult:
    """Outcome of merging bundle tags and categories into a store.

    id_map maps a bundle tag id to the id of an existing tag with the same
    name, so queries referencing the bundle id can be rewritten.
    """

    tags: list[Tag] = field(default_factory=list)
    categories: list[Category] = field(default_factory=list)
    id_map: dict[str, str] = field(default_factory=dict)
    skipped: int = 0


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _generate_id() -> str:
    return uuid.uuid4().hex[:12]


class TagStore(ABC):
    """Read/write access to tags and categories."""

    @abstractmethod
    def list_tags(self) -> list[Tag]:
        """All tags, in creation order."""
        ...

    @abstractmethod
    def list_categories(self) -> list[Category]:
        """All categories, in creation order."""
        ...

    @abstractmethod
    def get_tag(self, tag_id: str) -> Tag | None:
        ...

    @abstractmethod
    def get_category(self, category_id: str) -> Category | None:
        ...

    @abstractmethod
    def create_tag(self, name: str, description: str | None = None) -> Tag:
        ...

    @abstractmethod
    def create_category(
        self,
        name: str,
        description: str | None = None,
        color: str | None = None,
        icon: str | None = None,
    ) -> Category:
        ...

    @abstractmethod
    def update_tag(self, tag_id: str, **updates) -> Tag:
        ...

    @abstractmethod
    def update_category(self, category_id: str, **updates) -> Category:
        ...

    @abstractmethod
    def delete_tag(self, tag_id: str) -> bool:
        ...

    @abstractmethod
    def delete_category(self, category_id: str) -> bool:
        ...

    @abstractmethod
    def increment_tag_usage(self, tag_id: str) -> None:
        ...

    @abstractmethod
    def decrement_tag_usage(self, tag_id: str) -> None:
        ...

    @abstractmethod
    def increment_category_usage(self, category_id: str) -> None:
        ...

    @abstractmethod
    def decrement_category_usage(self, category_id: str) -> None:
        ...

    @abstractmethod
    def merge_tags_and_categories(
        self,
        tags: list[dict],
        categories: list[dict],
    ) -> TagMergeResult:
        """Add tags/categories from an export bundle that are not already known."""
        ...

    def tag_name(self, tag_id: str) -> str:
        """Resolve a tag id to its name, falling back to the raw id."""
        tag = self.get_tag(tag_id)
        return tag.name if tag else tag_id

    def find_tag_by_name(self, name: str) -> Tag | None:
        """Case-insensitive lookup by tag name."""
        needle = name.strip().lower()
        for tag in self.list_tags():
            if tag.name.lower() == needle:
                return tag
        return None

    def popular_tags(self, limit: int = 10) -> list[Tag]:
        """Tags ordered by usage count, most used first."""
        return sorted(self.list_tags(), key=lambda t: t.usage_count, reverse=True)[:limit]

    def search_tags(self, term: str) -> list[Tag]:
        needle = term.lower()
        return [
            t for t in self.list_tags()
            if needle in t.name.lower() or (t.description and needle in t.description.lower())
        ]

    def search_categories(self, term: str) -> list[Category]:
        needle = term.lower()
        return [
            c for c in self.list_categories()
            if needle in c.name.lower() or (c.description and needle in c.description.lower())
        ]


class TagRegistry(TagStore):
    """
    Thread-safe in-memory tag and category store.

    Usage counters are maintained by the callers that attach/detach tags;
    they are never reconciled against the queries that reference them.
    """

    def __init__(self, seed_categories: bool = True):
        self._tags: dict[str, Tag] = {}
        self._categories: dict[str, Category] = {}
        self._seed_categories = seed_categories
        self._lock = threading.RLock()

    # =========================================================================
    # Bulk load
    # =========================================================================

    def replace_all(self, tags: list[Tag], categories: list[Category]) -> None:
        """Replace the whole store contents (used by the YAML loader)."""
        with self._lock:
            self._tags = {t.id: t for t in tags}
            self._categories = {c.id: c for c in categories}

    def clear(self) -> None:
        with self._lock:
            self._tags.clear()
            self._categories.clear()

    def _ensure_default_categories(self) -> None:
        if self._categories or not self._seed_categories:
            return
        created_at = _now_iso()
        for defaults in DEFAULT_CATEGORIES:
            category = Category(
                id=_generate_id(),
                name=defaults["name"],
                description=defaults["description"],
                color=defaults["color"],
                icon=defaults["icon"],
                created_at=created_at,
            )
            self._categories[category.id] = category
        logger.info(f"Seeded {len(DEFAULT_CATEGORIES)} default categories")

    # =========================================================================
    # Reads
    # =========================================================================

    def list_tags(self) -> list[Tag]:
        with self._lock:
            return list(self._tags.values())

    def list_categories(self) -> list[Category]:
        with self._lock:
            self._ensure_default_categories()
            return list(self._categories.values())

    def get_tag(self, tag_id: str) -> Tag | None:
        with self._lock:
            return self._tags.get(tag_id)

    def get_category(self, category_id: str) -> Category | None:
        with self._lock:
            self._ensure_default_categories()
            return self._categories.get(category_id)

    # =========================================================================
    # Writes
    # =========================================================================

    def create_tag(self, name: str, description: str | None = None) -> Tag:
        """
        Create a new tag.

        Raises:
            ValueError: If a tag with the same name (case-insensitive) exists
        """
        with self._lock:
            if self.find_tag_by_name(name) is not None:
                raise ValueError("Tag already exists")

            tag = Tag(
                id=_generate_id(),
                name=name.strip(),
                color=random.choice(TAG_COLORS),
                description=description.strip() if description else None,
                created_at=_now_iso(),
            )
            self._tags[tag.id] = tag
            logger.info(f"Created tag: {tag.name} ({tag.id})")
            return tag

    def create_category(
        self,
        name: str,
        description: str | None = None,
        color: str | None = None,
        icon: str | None = None,
    ) -> Category:
        """
        Create a new category.

        Raises:
            ValueError: If a category with the same name (case-insensitive) exists
        """
        with self._lock:
            needle = name.strip().lower()
            if any(c.name.lower() == needle for c in self.list_categories()):
                raise ValueError("Category already exists")

            category = Category(
                id=_generate_id(),
                name=name.strip(),
                description=description.strip() if description else None,
                color=color or random.choice(TAG_COLORS),
                icon=icon.strip() if icon else None,
                created_at=_now_iso(),
            )
            self._categories[category.id] = category
            logger.info(f"Created category: {category.name} ({category.id})")
            return category

    def update_tag(self, tag_id: str, **updates) -> Tag:
        """
        Update fields of an existing tag (id and created_at are fixed).

        Raises:
            KeyError: If the tag does not exist
        """
        with self._lock:
            tag = self._tags.get(tag_id)
            if tag is None:
                raise KeyError("Tag not found")
            for key in ("name", "color", "description", "usage_count"):
                if updates.get(key) is not None:
                    setattr(tag, key, updates[key])
            return tag

    def update_category(self, category_id: str, **updates) -> Category:
        """
        Update fields of an existing category (id and created_at are fixed).

        Raises:
            KeyError: If the category does not exist
        """
        with self._lock:
            category = self.get_category(category_id)
            if category is None:
                raise KeyError("Category not found")
            for key in ("name", "color", "description", "icon", "query_count"):
                if updates.get(key) is not None:
                    setattr(category, key, updates[key])
            return category

    def delete_tag(self, tag_id: str) -> bool:
        with self._lock:
            return self._tags.pop(tag_id, None) is not None

    def delete_category(self, category_id: str) -> bool:
        with self._lock:
            self._ensure_default_categories()
            return self._categories.pop(category_id, None) is not None

    # =========================================================================
    # Usage counters (clamped at zero)
    # =========================================================================

    def increment_tag_usage(self, tag_id: str) -> None:
        with self._lock:
            tag = self._tags.get(tag_id)
            if tag:
                tag.usage_count += 1

    def decrement_tag_usage(self, tag_id: str) -> None:
        with self._lock:
            tag = self._tags.get(tag_id)
            if tag and tag.usage_count > 0:
                tag.usage_count -= 1

    def increment_category_usage(self, category_id: str) -> None:
        with self._lock:
            category = self.get_category(category_id)
            if category:
                category.query_count += 1

    def decrement_category_usage(self, category_id: str) -> None:
        with self._lock:
            category = self.get_category(category_id)
            if category and category.query_count > 0:
                category.query_count -= 1

    # =========================================================================
    # Bundle import
    # =========================================================================

    def merge_tags_and_categories(
        self,
        tags: list[dict],
        categories: list[dict],
    ) -> TagMergeResult:
        """
        Add bundle tags and categories, keeping their ids.

        Entries whose id is already present are ignored. Entries whose name
        matches an existing one (case-insensitive) are not added; for tags the
        bundle id is mapped to the existing id instead. Malformed entries are
        counted in ``skipped``. Imported tags start with a zero usage count,
        since merging the queries that reference them counts them again.
        """
        result = TagMergeResult()
        with self._lock:
            for raw in tags or []:
                tag = _parse_entry(Tag, raw)
                if tag is None:
                    result.skipped += 1
                    continue
                if tag.id in self._tags:
                    continue
                existing = self.find_tag_by_name(tag.name)
                if existing is not None:
                    result.id_map[tag.id] = existing.id
                    continue
                tag.usage_count = 0
                self._tags[tag.id] = tag
                result.tags.append(tag)

            self._ensure_default_categories()
            for raw in categories or []:
                category = _parse_entry(Category, raw)
                if category is None:
                    result.skipped += 1
                    continue
                needle = category.name.lower()
                if category.id in self._categories or any(
                    c.name.lower() == needle for c in self._categories.values()
                ):
                    continue
                self._categories[category.id] = category
                result.categories.append(category)

        logger.info(
            f"Merged {len(result.tags)} tags and {len(result.categories)} categories "
            f"({result.skipped} malformed entries skipped)"
        )
        return result

    def __len__(self) -> int:
        with self._lock:
            return len(self._tags)

    def __contains__(self, tag_id: str) -> bool:
        with self._lock:
            return tag_id in self._tags


def _parse_entry(cls, raw):
    """Build a Tag/Category from a bundle entry, or None when it is unusable."""
    if not isinstance(raw, dict):
        return None
    try:
        entry = cls.from_dict(raw)
    except (KeyError, TypeError, ValueError):
        return None
    if not isinstance(entry.name, str) or not entry.name.strip():
        return None
    return entry


# Keyword -> suggested tag name, checked in order
_TAG_RULES: list[tuple[tuple[str, ...], tuple[str, ...], str]] = [
    # (all of, any of, tag)
    (("SELECT", "COUNT"), (), "analytics"),
    ((), ("INSERT", "UPDATE", "DELETE"), "crud"),
    ((), ("CREATE", "ALTER", "DROP"), "schema"),
    ((), ("INDEX", "EXPLAIN"), "performance"),
    ((), ("BACKUP", "RESTORE"), "backup"),
    ((), ("GRANT", "REVOKE"), "security"),
    ((), ("JOIN",), "complex"),
    ((), ("UNION", "INTERSECT"), "advanced"),
    ((), ("PROCEDURE", "FUNCTION"), "stored-procedure"),
    ((), ("TRIGGER",), "trigger"),
]


def suggest_tags(sql: str) -> list[str]:
    """Suggest tag names from keywords found in the SQL text (substring match)."""
    upper_sql = sql.upper()
    suggestions: list[str] = []
    for all_of, any_of, tag in _TAG_RULES:
        if all_of and not all(k in upper_sql for k in all_of):
            continue
        if any_of and not any(k in upper_sql for k in any_of):
            continue
        if tag not in suggestions:
            suggestions.append(tag)
    return suggestions
