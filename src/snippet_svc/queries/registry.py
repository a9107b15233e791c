"""Query registry - thread-safe in-memory store for saved SQL snippets."""

from __future__ import annotations

import logging
import threading
from typing import Iterable

from ..tags.registry import TagStore
from .types import QueryRecord, Visibility, human_timestamp, now_millis, today_iso

logger = logging.getLogger(__name__)

# Fields an edit may change; every edit appends a version snapshot
EDITABLE_FIELDS = (
    "name",
    "sql",
    "description",
    "result",
    "result_image",
    "tags",
    "is_favorite",
    "visibility",
)


class QueryRegistry:
    """
    Thread-safe in-memory registry of query records.

    When a tag store is attached, tag usage counters are incremented when a
    tag is attached to a query and decremented when it is detached or the
    query is deleted.
    """

    def __init__(self, tag_store: TagStore | None = None) -> None:
        self._queries: dict[int, QueryRecord] = {}
        self._tag_store = tag_store
        self._lock = threading.RLock()
        self._last_id = 0

    def _next_id(self) -> int:
        """Time-based id, bumped past the last one handed out."""
        candidate = now_millis()
        if candidate <= self._last_id:
            candidate = self._last_id + 1
        self._last_id = candidate
        return candidate

    def _attach_tags(self, tag_ids: Iterable[str]) -> None:
        if self._tag_store is None:
            return
        for tag_id in tag_ids:
            self._tag_store.increment_tag_usage(tag_id)

    def _detach_tags(self, tag_ids: Iterable[str]) -> None:
        if self._tag_store is None:
            return
        for tag_id in tag_ids:
            self._tag_store.decrement_tag_usage(tag_id)

    # =========================================================================
    # Writes
    # =========================================================================

    def create(
        self,
        sql: str,
        name: str | None = None,
        description: str = "",
        result: str = "",
        result_image: str | None = None,
        tags: list[str] | None = None,
        is_favorite: bool = False,
        visibility: Visibility = Visibility.PRIVATE,
        user_id: str | None = None,
    ) -> QueryRecord:
        """
        Save a new query with a version 1 snapshot.

        Raises:
            ValueError: If the SQL text is empty
        """
        if not sql or not sql.strip():
            raise ValueError("SQL query cannot be empty")

        with self._lock:
            query_id = self._next_id()
            record = QueryRecord(
                id=query_id,
                name=name or f"Query {query_id}",
                sql=sql,
                description=description,
                result=result,
                result_image=result_image,
                date=today_iso(),
                timestamp=human_timestamp(),
                tags=list(tags or []),
                is_favorite=is_favorite,
                visibility=visibility,
                user_id=user_id,
                current_version=1,
            )
            record.versions.append(record.snapshot(1, edited_by=user_id))
            self._queries[query_id] = record
            self._attach_tags(record.tags)
            logger.info(f"Query saved: {query_id} ({record.name})")
            return record

    def add(self, record: QueryRecord) -> QueryRecord:
        """
        Insert an already-built record as-is (used when loading from disk).

        Raises:
            ValueError: If a record with the same id exists
        """
        with self._lock:
            if record.id in self._queries:
                raise ValueError(f"Query {record.id} already exists")
            self._queries[record.id] = record
            self._last_id = max(self._last_id, record.id)
            return record

    def merge(self, records: Iterable[QueryRecord]) -> list[QueryRecord]:
        """
        Add imported records, giving colliding ids a fresh one.

        Transient ``tag_names`` are dropped; resolve them into ``tags``
        before merging.
        """
        merged = []
        with self._lock:
            for record in records:
                if record.id in self._queries:
                    record.id = self._next_id()
                record.tag_names = None
                self.add(record)
                self._attach_tags(record.tags)
                merged.append(record)
        logger.info(f"Merged {len(merged)} imported queries")
        return merged

    def update(self, query_id: int, edited_by: str | None = None, **changes) -> QueryRecord:
        """
        Edit a query, appending a new version snapshot.

        Args:
            query_id: The query to edit
            edited_by: Optional editor recorded on the snapshot
            **changes: Any of EDITABLE_FIELDS; None values are ignored

        Raises:
            KeyError: If the query does not exist
            ValueError: If an unknown field is given or the SQL becomes empty
        """
        unknown = set(changes) - set(EDITABLE_FIELDS)
        if unknown:
            raise ValueError(f"Cannot edit fields: {', '.join(sorted(unknown))}")

        with self._lock:
            record = self._queries.get(query_id)
            if record is None:
                raise KeyError(f"Query {query_id} not found")

            new_sql = changes.get("sql")
            if new_sql is not None and not new_sql.strip():
                raise ValueError("SQL query cannot be empty")

            new_tags = changes.get("tags")
            if new_tags is not None:
                old_tags = set(record.tags)
                self._attach_tags(t for t in new_tags if t not in old_tags)
                self._detach_tags(t for t in record.tags if t not in set(new_tags))

            for key, value in changes.items():
                if value is not None:
                    setattr(record, key, list(value) if key == "tags" else value)

            version = record.current_version + 1
            record.last_edited = human_timestamp()
            record.current_version = version
            record.versions.append(record.snapshot(version, edited_by=edited_by))

            logger.info(f"Query {query_id} edited -> v{version}")
            return record

    def toggle_favorite(self, query_id: int) -> QueryRecord:
        """
        Flip the favorite flag without creating a new version.

        Raises:
            KeyError: If the query does not exist
        """
        with self._lock:
            record = self._queries.get(query_id)
            if record is None:
                raise KeyError(f"Query {query_id} not found")
            record.is_favorite = not record.is_favorite
            return record

    def delete(self, query_id: int) -> bool:
        """Delete a query. Returns False if it didn't exist."""
        with self._lock:
            record = self._queries.pop(query_id, None)
            if record is None:
                return False
            self._detach_tags(record.tags)
            logger.info(f"Query deleted: {query_id}")
            return True

    def clear(self) -> None:
        with self._lock:
            self._queries.clear()

    def replace_all(self, records: Iterable[QueryRecord]) -> None:
        """
        Swap the whole store for the given records (used by reload).

        Usage counters are left alone, as when loading from disk.

        Raises:
            ValueError: If two records share an id; the store is unchanged
        """
        replacement: dict[int, QueryRecord] = {}
        for record in records:
            if record.id in replacement:
                raise ValueError(f"Query {record.id} already exists")
            replacement[record.id] = record

        with self._lock:
            self._queries = replacement
            self._last_id = max([self._last_id, *replacement])

    # =========================================================================
    # Reads
    # =========================================================================

    def get(self, query_id: int) -> QueryRecord | None:
        with self._lock:
            return self._queries.get(query_id)

    def all_queries(self) -> list[QueryRecord]:
        """All queries, newest first."""
        with self._lock:
            return sorted(self._queries.values(), key=lambda q: q.id, reverse=True)

    def public_queries(self) -> list[QueryRecord]:
        return [q for q in self.all_queries() if q.is_public]

    def favorites(self) -> list[QueryRecord]:
        return [q for q in self.all_queries() if q.is_favorite]

    def search(
        self,
        term: str | None = None,
        date: str | None = None,
        favorites_only: bool = False,
        user_id: str | None = None,
    ) -> list[QueryRecord]:
        """
        Filter queries, newest first.

        Args:
            term: Case-insensitive substring of the sql, description or name
            date: Exact creation date (YYYY-MM-DD)
            favorites_only: Only favorited queries
            user_id: Only queries owned by this user
        """
        needle = term.lower() if term else None
        matches = []
        for query in self.all_queries():
            if needle and not (
                needle in query.sql.lower()
                or needle in query.description.lower()
                or needle in query.name.lower()
            ):
                continue
            if date and query.date != date:
                continue
            if favorites_only and not query.is_favorite:
                continue
            if user_id is not None and query.user_id != user_id:
                continue
            matches.append(query)
        return matches

    def count(self) -> int:
        with self._lock:
            return len(self._queries)

    def __len__(self) -> int:
        return self.count()

    def __contains__(self, query_id: int) -> bool:
        with self._lock:
            return query_id in self._queries
