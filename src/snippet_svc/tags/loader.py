"""Tag persistence - YAML round-trip for tags and categories."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml

from .registry import TagRegistry
from .types import Category, Tag

logger = logging.getLogger(__name__)


def load_tags_from_yaml(
    path: str | Path,
    registry: TagRegistry,
) -> tuple[list[Tag], list[Category]]:
    """
    Load tags and categories from a YAML file into the registry.

    Expected format:
        tags:
          - id: 3f9a2c1b7d4e
            name: reporting
            color: "#3b82f6"
            usageCount: 2
        categories:
          - id: 8c1d0e2f3a4b
            name: Analytics
            ...

    A missing file leaves the registry untouched.
    """
    path = Path(path)
    if not path.exists():
        logger.info(f"Tags file not found: {path}")
        return [], []

    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    tags = [Tag.from_dict(t) for t in data.get("tags") or []]
    categories = [Category.from_dict(c) for c in data.get("categories") or []]
    registry.replace_all(tags, categories)

    logger.info(f"Loaded {len(tags)} tags and {len(categories)} categories from {path}")
    return tags, categories


def save_tags_to_yaml(path: str | Path, registry: TagRegistry) -> int:
    """Save all tags and categories to a YAML file. Returns the tag count."""
    path = Path(path)
    tags = registry.list_tags()
    categories = registry.list_categories()

    data: dict[str, Any] = {
        "tags": [t.to_dict() for t in tags],
        "categories": [c.to_dict() for c in categories],
    }

    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        f.write("# SQL snippet tags and categories\n\n")
        yaml.dump(data, f, default_flow_style=False, allow_unicode=True, sort_keys=False)

    logger.info(f"Saved {len(tags)} tags and {len(categories)} categories to {path}")
    return len(tags)
