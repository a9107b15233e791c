"""Pydantic models for the Transfer API."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field


class ExportFormat(str, Enum):
    """Download formats."""
    JSON = "json"
    SQL = "sql"


class ImportResponse(BaseModel):
    """Outcome of an import upload."""

    success: bool
    message: str
    format: ExportFormat
    imported: int = Field(0, description="Queries merged into the store")
    query_ids: list[int] = Field(default_factory=list, description="Ids assigned to the imported queries")
    resolved_tags: list[str] = Field(
        default_factory=list, description="Tag names from the file that matched existing tags"
    )
    unresolved_tags: list[str] = Field(
        default_factory=list, description="Tag names from the file with no matching tag"
    )
    tags_added: int = Field(0, description="Bundle tags added to the tag store")
    categories_added: int = Field(0, description="Bundle categories added to the tag store")
