"""Pydantic models for the Query API."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from .types import QueryRecord, QueryVersion, Visibility


class QueryVersionModel(BaseModel):
    """A version snapshot in API responses."""

    version: int
    name: str = ""
    sql: str = ""
    description: str = ""
    result: str = ""
    result_image: str | None = None
    tags: list[str] = Field(default_factory=list)
    is_favorite: bool = False
    edited_at: str = ""
    edited_by: str | None = None


class QueryModel(BaseModel):
    """Query representation for API responses."""

    id: int
    name: str
    sql: str
    description: str = ""
    result: str = ""
    result_image: str | None = None
    date: str = ""
    timestamp: str = ""
    last_edited: str | None = None
    tags: list[str] = Field(default_factory=list)
    is_favorite: bool = False
    visibility: Visibility = Visibility.PRIVATE
    user_id: str | None = None
    current_version: int = 1
    versions: list[QueryVersionModel] = Field(default_factory=list)


class QueryListResponse(BaseModel):
    """Response for list endpoints."""

    queries: list[QueryModel]
    total: int


class CreateQueryRequest(BaseModel):
    """Request model for saving a new query."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "name": "Active users",
                "sql": "SELECT id, email FROM users WHERE active = 1 LIMIT 50;",
                "description": "Users who logged in this month",
                "tags": ["3f9a2c1b7d4e"],
                "is_favorite": True,
                "visibility": "public",
            }
        }
    )

    sql: str = Field(..., description="Query text (must be non-empty)")
    name: str | None = Field(None, description="Display name; generated when omitted")
    description: str = Field("", description="Free text description")
    result: str = Field("", description="Sample result as plain text")
    result_image: str | None = Field(None, description="Sample result as a data-URI image")
    tags: list[str] = Field(default_factory=list, description="Tag ids")
    is_favorite: bool = False
    visibility: Visibility = Visibility.PRIVATE
    user_id: str | None = Field(None, description="Owner reference")


class UpdateQueryRequest(BaseModel):
    """Request model for editing a query. Omitted fields keep their values."""

    name: str | None = None
    sql: str | None = None
    description: str | None = None
    result: str | None = None
    result_image: str | None = None
    tags: list[str] | None = None
    is_favorite: bool | None = None
    visibility: Visibility | None = None
    edited_by: str | None = None


class SaveResponse(BaseModel):
    """Response for save operations."""

    success: bool
    message: str
    file_path: str | None = None


class ReloadResponse(BaseModel):
    """Response for reload operations."""

    success: bool
    message: str
    queries_loaded: int = 0


def version_to_model(version: QueryVersion) -> QueryVersionModel:
    return QueryVersionModel(
        version=version.version,
        name=version.name,
        sql=version.sql,
        description=version.description,
        result=version.result,
        result_image=version.result_image,
        tags=list(version.tags),
        is_favorite=version.is_favorite,
        edited_at=version.edited_at,
        edited_by=version.edited_by,
    )


def query_to_model(query: QueryRecord) -> QueryModel:
    """Convert QueryRecord dataclass to Pydantic model."""
    return QueryModel(
        id=query.id,
        name=query.name,
        sql=query.sql,
        description=query.description,
        result=query.result,
        result_image=query.result_image,
        date=query.date,
        timestamp=query.timestamp,
        last_edited=query.last_edited,
        tags=list(query.tags),
        is_favorite=query.is_favorite,
        visibility=query.visibility,
        user_id=query.user_id,
        current_version=query.current_version,
        versions=[version_to_model(v) for v in query.versions],
    )
