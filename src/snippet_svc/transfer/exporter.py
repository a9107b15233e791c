"""Query Exporter - Serialize query collections to a JSON bundle or a .sql dump."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Iterable

from ..queries.types import QueryRecord
from ..tags.registry import TagStore

# Bundle format version written by export_to_json
FORMAT_VERSION = "1.0.0"

# "-- " followed by 40 '=' characters
BANNER = "-- " + "=" * 40

DUMP_TITLE = "-- SQL Query Manager Export"
RESULT_BLOCK_OPEN = "/* Sample Result:"
RESULT_BLOCK_CLOSE = "*/"


def iso_now() -> str:
    """UTC timestamp with millisecond precision, e.g. 2024-01-15T09:30:00.000Z."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class QueryExporter:
    """Exports query records together with the tag/category snapshot."""

    def __init__(
        self,
        tag_store: TagStore | None = None,
        format_version: str = FORMAT_VERSION,
    ):
        """Initialize the exporter.

        Args:
            tag_store: Source of tags/categories for the bundle and of tag
                names for the dump. Without one, both are exported empty
                and tag ids are written as-is.
            format_version: Version string stamped on JSON bundles.
        """
        self.tag_store = tag_store
        self.format_version = format_version

    def build_bundle(self, queries: Iterable[QueryRecord]) -> dict[str, Any]:
        """Build the export bundle dictionary (keys in wire order)."""
        query_dicts = [q.to_dict() for q in queries]
        tags = [t.to_dict() for t in self.tag_store.list_tags()] if self.tag_store else []
        categories = (
            [c.to_dict() for c in self.tag_store.list_categories()] if self.tag_store else []
        )

        return {
            "queries": query_dicts,
            "tags": tags,
            "categories": categories,
            "exportedAt": iso_now(),
            "version": self.format_version,
            "metadata": {
                "totalQueries": len(query_dicts),
                "totalTags": len(tags),
                "totalCategories": len(categories),
                "exportFormat": "json",
            },
        }

    def export_to_json(self, queries: Iterable[QueryRecord]) -> str:
        """Serialize queries plus tags/categories as an indented JSON bundle."""
        return json.dumps(self.build_bundle(queries), indent=2, ensure_ascii=False)

    def export_to_sql(self, queries: Iterable[QueryRecord]) -> str:
        """Serialize queries as a commented, re-importable .sql dump.

        The layout is the exact shape parse_sql_dump() reads back; change
        both together.
        """
        queries = list(queries)
        parts = [
            f"{DUMP_TITLE}\n",
            f"-- Generated on: {iso_now()}\n",
            f"-- Total queries: {len(queries)}\n\n",
        ]

        for index, query in enumerate(queries, start=1):
            parts.append(f"{BANNER}\n")
            parts.append(f"-- Query #{index}: {query.name or f'Query {query.id}'}\n")
            parts.append(f"-- Created: {query.timestamp}\n")
            if query.description:
                parts.append(f"-- Description: {query.description}\n")
            if query.tags:
                parts.append(f"-- Tags: {', '.join(self._tag_name(t) for t in query.tags)}\n")
            parts.append(f"{BANNER}\n\n")
            parts.append(f"{query.sql}\n\n")

            if query.result:
                parts.append(f"{RESULT_BLOCK_OPEN}\n{query.result}\n{RESULT_BLOCK_CLOSE}\n\n")

        return "".join(parts)

    def _tag_name(self, tag_id: str) -> str:
        if self.tag_store is None:
            return tag_id
        return self.tag_store.tag_name(tag_id)
