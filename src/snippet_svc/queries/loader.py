"""Query persistence - YAML round-trip for saved queries."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml

from .registry import QueryRegistry
from .types import QueryRecord

logger = logging.getLogger(__name__)


def load_queries_from_yaml(
    path: str | Path,
    registry: QueryRegistry,
) -> list[QueryRecord]:
    """
    Load queries from a YAML file into the registry.

    Raises:
        yaml.YAMLError: If the file is not valid YAML
        ValueError: If the layout is wrong or two queries share an id
    """
    path = Path(path)
    if not path.exists():
        logger.info(f"Queries file not found: {path}")
        return []

    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)

    if not data:
        return []
    if not isinstance(data, dict) or not isinstance(data.get("queries") or [], list):
        raise ValueError(f"{path}: expected a mapping with a 'queries' list")

    loaded = []
    for query_data in data.get("queries") or []:
        if not isinstance(query_data, dict):
            raise ValueError(f"{path}: query entries must be mappings")
        record = QueryRecord.from_dict(query_data)
        registry.add(record)
        loaded.append(record)

    logger.info(f"Loaded {len(loaded)} queries from {path}")
    return loaded


def save_queries_to_yaml(
    path: str | Path,
    registry: QueryRegistry,
) -> int:
    """Save all queries from the registry to a YAML file."""
    path = Path(path)
    queries = registry.all_queries()

    data: dict[str, Any] = {
        "queries": [q.to_dict() for q in queries],
    }

    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        yaml.dump(data, f, default_flow_style=False, allow_unicode=True, sort_keys=False)

    logger.info(f"Saved {len(queries)} queries to {path}")
    return len(queries)
