"""Pydantic models for the SQL analysis API."""

from __future__ import annotations

from pydantic import BaseModel, Field


class SqlRequest(BaseModel):
    """Request body carrying a SQL snippet."""

    sql: str = Field("", description="Raw SQL text to analyze")


class ValidationResponse(BaseModel):
    """Response for POST /analysis/validate."""

    is_valid: bool
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    suggestions: list[str] = Field(default_factory=list)
    query_type: str
    estimated_complexity: str


class FormatResponse(BaseModel):
    """Response for POST /analysis/format."""

    formatted: str


class InsightsResponse(BaseModel):
    """Response for POST /analysis/insights."""

    table_count: int
    column_count: int
    join_count: int
    condition_count: int
    has_aggregation: bool
    has_subquery: bool


class TagSuggestionResponse(BaseModel):
    """Response for POST /analysis/suggest-tags."""

    suggestions: list[str]
    existing_tag_ids: dict[str, str] = Field(
        default_factory=dict,
        description="Suggested names that already exist in the tag store, mapped to their ids",
    )
