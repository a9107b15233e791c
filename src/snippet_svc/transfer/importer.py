"""Query Importer - Recover query records from JSON bundles and .sql dumps."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from ..queries.registry import QueryRegistry
from ..queries.types import QueryRecord, human_timestamp, now_millis, today_iso
from ..tags.registry import TagStore
from .exporter import RESULT_BLOCK_CLOSE
from .files import ReadableFile

logger = logging.getLogger(__name__)

QUERY_MARKER = "-- Query #"
DESCRIPTION_MARKER = "-- Description:"
TAGS_MARKER = "-- Tags:"
RESULT_MARKER = "Sample Result:"
BLOCK_OPEN = "/*"


class TransferError(Exception):
    """Raised when an export or import cannot be completed."""
    pass


class ImportFormatError(TransferError):
    """Raised when an import file cannot be read or has the wrong shape."""
    pass


@dataclass
class ImportResult:
    """Records recovered from an import file.

    tags/categories are passed through verbatim from JSON bundles and are
    always empty for .sql dumps.
    """

    queries: list[QueryRecord] = field(default_factory=list)
    tags: list[dict[str, Any]] = field(default_factory=list)
    categories: list[dict[str, Any]] = field(default_factory=list)
    metadata: dict[str, Any] | None = None


# =============================================================================
# JSON bundle
# =============================================================================

def parse_json_bundle(text: str) -> ImportResult:
    """Parse an export bundle.

    Raises:
        ImportFormatError: On malformed JSON or a missing/non-list ``queries``.
    """
    try:
        data = json.loads(text)
        if not isinstance(data, dict) or not isinstance(data.get("queries"), list):
            raise ValueError("Invalid file format: missing queries array")

        queries = []
        for entry in data["queries"]:
            if not isinstance(entry, dict):
                raise ValueError("Invalid file format: query entries must be objects")
            queries.append(QueryRecord.from_dict(entry))

        return ImportResult(
            queries=queries,
            tags=data.get("tags") or [],
            categories=data.get("categories") or [],
            metadata=data.get("metadata"),
        )
    except (ValueError, TypeError, AttributeError) as e:
        # json.JSONDecodeError is a ValueError
        raise ImportFormatError(f"Failed to parse JSON file: {e}") from e


# =============================================================================
# .sql dump
# =============================================================================

class _DumpState(Enum):
    IDLE = "idle"        # no record open yet
    SQL = "sql"          # record open, collecting SQL lines
    RESULT = "result"    # inside a /* Sample Result: ... */ block
    COMMENT = "comment"  # inside any other /* ... */ block


class _DumpParser:
    """Line-driven state machine over the export_to_sql layout."""

    def __init__(self) -> None:
        self.queries: list[QueryRecord] = []
        self.current: QueryRecord | None = None
        self.sql_lines: list[str] = []
        self.state = _DumpState.IDLE

    def parse(self, content: str) -> list[QueryRecord]:
        for raw_line in content.split("\n"):
            line = raw_line.strip()
            if line:
                self._feed(line)
        self._flush()
        return self.queries

    def _outside_block_state(self) -> _DumpState:
        return _DumpState.SQL if self.current is not None else _DumpState.IDLE

    def _feed(self, line: str) -> None:
        if self.state in (_DumpState.RESULT, _DumpState.COMMENT):
            if line.endswith(RESULT_BLOCK_CLOSE):
                self.state = self._outside_block_state()
            elif self.state == _DumpState.RESULT:
                self.current.result += line + "\n"
            return

        if line.startswith(BLOCK_OPEN):
            self._open_block(line)
            return

        if line.endswith(RESULT_BLOCK_CLOSE):
            # Stray block terminator
            return

        if line.startswith(QUERY_MARKER):
            self._flush()
            self._open_record(line)
            return

        if self.current is not None:
            if line.startswith(DESCRIPTION_MARKER):
                self.current.description = line[len(DESCRIPTION_MARKER):].strip()
                return
            if line.startswith(TAGS_MARKER):
                names = line[len(TAGS_MARKER):].split(",")
                self.current.tag_names = [n.strip() for n in names if n.strip()]
                return

        # Banners and any other comment lines
        if line.startswith("--") or line.startswith("="):
            return

        if self.state == _DumpState.SQL:
            self.sql_lines.append(line)

    def _open_block(self, line: str) -> None:
        is_result = RESULT_MARKER in line and self.current is not None
        if is_result:
            self.current.result = ""

        single_line = len(line) >= 4 and line.endswith(RESULT_BLOCK_CLOSE)
        if single_line:
            if is_result:
                inline = line[line.index(RESULT_MARKER) + len(RESULT_MARKER):-2].strip()
                if inline:
                    self.current.result = inline + "\n"
            return

        self.state = _DumpState.RESULT if is_result else _DumpState.COMMENT

    def _open_record(self, line: str) -> None:
        _, sep, rest = line.partition(": ")
        name = rest.strip() if sep else ""
        self.current = QueryRecord(
            id=now_millis() + len(self.queries),
            name=name or f"Imported Query {len(self.queries) + 1}",
            sql="",
            date=today_iso(),
            timestamp=human_timestamp(),
            current_version=1,
        )
        self.sql_lines = []
        self.state = _DumpState.SQL

    def _flush(self) -> None:
        # Records without SQL are dropped
        if self.current is not None and self.sql_lines:
            self.current.sql = "\n".join(self.sql_lines).strip()
            self.queries.append(self.current)
        self.current = None
        self.sql_lines = []
        self.state = _DumpState.IDLE


def parse_sql_dump(content: str) -> list[QueryRecord]:
    """Recover records from an export_to_sql dump.

    Never raises on malformed content: an unterminated block simply
    swallows the rest of the file. Per-line indentation is not preserved.
    """
    return _DumpParser().parse(content)


# =============================================================================
# File-level API
# =============================================================================

class QueryImporter:
    """Reads uploaded or local files into query records."""

    async def _read_text(self, file: ReadableFile) -> str:
        try:
            data = await file.read()
        except OSError as e:
            raise ImportFormatError(f"Failed to read file: {e}") from e

        if isinstance(data, str):
            return data
        try:
            return data.decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise ImportFormatError(f"Failed to read file: {e}") from e

    async def import_from_json(self, file: ReadableFile) -> ImportResult:
        """Import a JSON export bundle.

        Raises:
            ImportFormatError: If the file is unreadable or not a bundle.
        """
        text = await self._read_text(file)
        result = parse_json_bundle(text)
        logger.info(f"Parsed {len(result.queries)} queries from JSON file {file.filename}")
        return result

    async def import_from_sql(self, file: ReadableFile) -> ImportResult:
        """Import a .sql dump. Only ``queries`` is populated.

        Raises:
            ImportFormatError: If the file bytes cannot be decoded.
        """
        text = await self._read_text(file)
        queries = parse_sql_dump(text)
        logger.info(f"Parsed {len(queries)} queries from SQL file {file.filename}")
        return ImportResult(queries=queries)

    async def import_file(self, file: ReadableFile) -> ImportResult:
        """Dispatch on extension: .json bundles, anything else as a .sql dump."""
        if (file.filename or "").lower().endswith(".json"):
            return await self.import_from_json(file)
        return await self.import_from_sql(file)


# =============================================================================
# Merging into the stores
# =============================================================================

@dataclass
class MergeSummary:
    """What an import added to the query and tag stores."""

    queries: list[QueryRecord] = field(default_factory=list)
    resolved_tags: list[str] = field(default_factory=list)
    unresolved_tags: list[str] = field(default_factory=list)
    tags_added: int = 0
    categories_added: int = 0


def merge_import(
    result: ImportResult,
    registry: QueryRegistry,
    tag_store: TagStore | None = None,
) -> MergeSummary:
    """
    Apply a parsed import to the stores.

    Bundle tags and categories are merged first, so the tag ids carried by
    bundle queries resolve; ids of bundle tags that duplicate an existing
    name are rewritten to the existing tag. Dump ``tag_names`` are matched
    to existing tags by name, ignoring case. The queries are merged last.
    """
    summary = MergeSummary()

    if tag_store is not None and (result.tags or result.categories):
        tag_merge = tag_store.merge_tags_and_categories(result.tags, result.categories)
        summary.tags_added = len(tag_merge.tags)
        summary.categories_added = len(tag_merge.categories)
        if tag_merge.id_map:
            for query in result.queries:
                query.tags = list(dict.fromkeys(tag_merge.id_map.get(t, t) for t in query.tags))

    for query in result.queries:
        for name in query.tag_names or []:
            tag = tag_store.find_tag_by_name(name) if tag_store is not None else None
            if tag is None:
                if name not in summary.unresolved_tags:
                    summary.unresolved_tags.append(name)
                continue
            if tag.id not in query.tags:
                query.tags.append(tag.id)
            if name not in summary.resolved_tags:
                summary.resolved_tags.append(name)

    summary.queries = registry.merge(result.queries)
    return summary
