"""
Tag and category data model.

Tags label individual queries; categories group them more coarsely.
Both carry a usage counter maintained by the callers that attach them.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(slots=True)
class Tag:
    """A free-form label attached to queries (referenced by id)."""

    id: str
    name: str
    color: str = "#3b82f6"
    description: str | None = None
    created_at: str = ""
    usage_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to the exchange representation (camelCase keys)."""
        data: dict[str, Any] = {"id": self.id, "name": self.name, "color": self.color}
        if self.description is not None:
            data["description"] = self.description
        data["createdAt"] = self.created_at
        data["usageCount"] = self.usage_count
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Tag:
        return cls(
            id=str(data["id"]),
            name=data.get("name", ""),
            color=data.get("color", "#3b82f6"),
            description=data.get("description"),
            created_at=data.get("createdAt", ""),
            usage_count=max(0, int(data.get("usageCount", 0))),
        )


@dataclass(slots=True)
class Category:
    """A coarse grouping of queries, with an optional display icon."""

    id: str
    name: str
    color: str = "#6b7280"
    description: str | None = None
    icon: str | None = None
    created_at: str = ""
    query_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to the exchange representation (camelCase keys)."""
        data: dict[str, Any] = {"id": self.id, "name": self.name}
        if self.description is not None:
            data["description"] = self.description
        data["color"] = self.color
        if self.icon is not None:
            data["icon"] = self.icon
        data["createdAt"] = self.created_at
        data["queryCount"] = self.query_count
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Category:
        return cls(
            id=str(data["id"]),
            name=data.get("name", ""),
            color=data.get("color", "#6b7280"),
            description=data.get("description"),
            icon=data.get("icon"),
            created_at=data.get("createdAt", ""),
            query_count=max(0, int(data.get("queryCount", 0))),
        )


# Palette new tags draw their color from
TAG_COLORS = [
    "#3b82f6", "#ef4444", "#10b981", "#f59e0b", "#8b5cf6",
    "#06b6d4", "#f97316", "#84cc16", "#ec4899", "#6366f1",
]

# Seeded on first access when the store holds no categories
DEFAULT_CATEGORIES: list[dict[str, str]] = [
    {"name": "Analytics", "description": "Data analysis and reporting queries", "color": "#3b82f6", "icon": "📊"},
    {"name": "CRUD Operations", "description": "Create, Read, Update, Delete operations", "color": "#10b981", "icon": "🔄"},
    {"name": "Performance", "description": "Performance optimization queries", "color": "#f59e0b", "icon": "⚡"},
    {"name": "Maintenance", "description": "Database maintenance and admin queries", "color": "#6b7280", "icon": "🔧"},
    {"name": "Migration", "description": "Schema changes and data migration", "color": "#8b5cf6", "icon": "🚀"},
    {"name": "Backup", "description": "Backup and restore operations", "color": "#06b6d4", "icon": "💾"},
    {"name": "Security", "description": "Security and permissions related queries", "color": "#ef4444", "icon": "🔒"},
    {"name": "Testing", "description": "Test data and validation queries", "color": "#84cc16", "icon": "🧪"},
]
