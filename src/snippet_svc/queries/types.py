"""Query record types - the unit of persistence and exchange."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class Visibility(str, Enum):
    """Whether a query shows up in the public listing."""
    PRIVATE = "private"
    PUBLIC = "public"


def now_millis() -> int:
    """Current time in milliseconds since the epoch (time-based ids)."""
    return int(time.time() * 1000)


def today_iso() -> str:
    """Current local date as YYYY-MM-DD."""
    return datetime.now().date().isoformat()


def human_timestamp() -> str:
    """Human-readable local moment, e.g. '2024-01-15 09:30:00'."""
    return datetime.now().strftime("%Y-%m-%d %H:%M:%S")


def _text(value: Any, default: str = "") -> str:
    """Coerce a scalar exchange value to str; containers are rejected."""
    if value is None:
        return default
    if isinstance(value, (dict, list)):
        raise TypeError(f"expected a string, got {type(value).__name__}")
    return value if isinstance(value, str) else str(value)


def _optional_text(value: Any) -> str | None:
    return None if value is None else _text(value)


def _text_list(value: Any) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise TypeError(f"expected a list, got {type(value).__name__}")
    return [_text(item) for item in value]


@dataclass(slots=True)
class QueryVersion:
    """Immutable-by-convention snapshot of a query's editable fields."""
    version: int
    name: str = ""
    sql: str = ""
    description: str = ""
    result: str = ""
    result_image: str | None = None
    tags: list[str] = field(default_factory=list)
    is_favorite: bool = False
    edited_at: str = ""
    edited_by: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "version": self.version,
            "name": self.name,
            "sql": self.sql,
            "description": self.description,
            "result": self.result,
        }
        if self.result_image is not None:
            data["resultImage"] = self.result_image
        data["tags"] = list(self.tags)
        data["isFavorite"] = self.is_favorite
        data["editedAt"] = self.edited_at
        if self.edited_by is not None:
            data["editedBy"] = self.edited_by
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> QueryVersion:
        return cls(
            version=int(data.get("version", 1)),
            name=_text(data.get("name")),
            sql=_text(data.get("sql")),
            description=_text(data.get("description")),
            result=_text(data.get("result")),
            result_image=_optional_text(data.get("resultImage")),
            tags=_text_list(data.get("tags")),
            is_favorite=bool(data.get("isFavorite", False)),
            edited_at=_text(data.get("editedAt")),
            edited_by=_optional_text(data.get("editedBy")),
        )


@dataclass(slots=True)
class QueryRecord:
    """
    A saved SQL snippet plus its metadata and version history.

    Field names are snake_case; the exchange format (JSON bundle, YAML store)
    uses the camelCase keys produced by to_dict().
    """
    id: int
    name: str
    sql: str
    description: str = ""
    result: str = ""
    result_image: str | None = None
    date: str = ""
    timestamp: str = ""
    last_edited: str | None = None
    tags: list[str] = field(default_factory=list)
    is_favorite: bool = False
    visibility: Visibility = Visibility.PRIVATE
    user_id: str | None = None
    current_version: int = 1
    versions: list[QueryVersion] = field(default_factory=list)

    # Populated only by the .sql dump importer; resolved against the tag store by the caller
    tag_names: list[str] | None = None

    @property
    def is_public(self) -> bool:
        return self.visibility == Visibility.PUBLIC

    def snapshot(self, version: int, edited_by: str | None = None) -> QueryVersion:
        """Build a version snapshot of the current editable fields."""
        return QueryVersion(
            version=version,
            name=self.name,
            sql=self.sql,
            description=self.description,
            result=self.result,
            result_image=self.result_image,
            tags=list(self.tags),
            is_favorite=self.is_favorite,
            edited_at=human_timestamp(),
            edited_by=edited_by,
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize with stable key order; unset optional fields are omitted."""
        data: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "sql": self.sql,
            "description": self.description,
            "result": self.result,
        }
        if self.result_image is not None:
            data["resultImage"] = self.result_image
        data["date"] = self.date
        data["timestamp"] = self.timestamp
        if self.last_edited is not None:
            data["lastEdited"] = self.last_edited
        data["tags"] = list(self.tags)
        data["isFavorite"] = self.is_favorite
        data["visibility"] = self.visibility.value
        if self.user_id is not None:
            data["userId"] = self.user_id
        data["currentVersion"] = self.current_version
        data["versions"] = [v.to_dict() for v in self.versions]
        if self.tag_names is not None:
            data["tagNames"] = list(self.tag_names)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> QueryRecord:
        """Parse a record from its exchange dictionary, tolerating missing keys.

        Only absent (or null) keys get defaults, so falsy values such as an
        empty name survive a round trip. Scalars are coerced to text.

        Raises:
            TypeError: If a text field holds a container or tags is not a list
            ValueError: If id or currentVersion is not an integer
        """
        visibility = Visibility.PRIVATE
        if "visibility" in data:
            try:
                visibility = Visibility(data["visibility"])
            except ValueError:
                pass

        raw_id = data.get("id")
        record_id = now_millis() if raw_id is None else int(raw_id)
        raw_name = data.get("name")
        raw_version = data.get("currentVersion")
        tag_names = data.get("tagNames")
        versions = data.get("versions") or []
        if not isinstance(versions, list):
            raise TypeError("versions must be a list")

        return cls(
            id=record_id,
            name=f"Query {record_id}" if raw_name is None else _text(raw_name),
            sql=_text(data.get("sql")),
            description=_text(data.get("description")),
            result=_text(data.get("result")),
            result_image=_optional_text(data.get("resultImage")),
            date=_text(data.get("date")),
            timestamp=_text(data.get("timestamp")),
            last_edited=_optional_text(data.get("lastEdited")),
            tags=_text_list(data.get("tags")),
            is_favorite=bool(data.get("isFavorite", False)),
            visibility=visibility,
            user_id=_optional_text(data.get("userId")),
            current_version=1 if raw_version is None else int(raw_version),
            versions=[QueryVersion.from_dict(v) for v in versions],
            tag_names=_text_list(tag_names) if tag_names is not None else None,
        )
