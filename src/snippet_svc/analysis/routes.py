"""FastAPI routes for SQL analysis."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException

from ..tags.registry import TagStore, suggest_tags
from .analyzer import SqlAnalyzer
from .models import (
    FormatResponse,
    InsightsResponse,
    SqlRequest,
    TagSuggestionResponse,
    ValidationResponse,
)

logger = logging.getLogger(__name__)

# Create router
router = APIRouter(prefix="/analysis", tags=["Analysis"])

# Configuration - will be set during app startup
_analyzer = SqlAnalyzer()
_tag_store: TagStore | None = None
_enabled: bool = True


def configure(
    analyzer: SqlAnalyzer | None = None,
    tag_store: TagStore | None = None,
    enabled: bool = True,
) -> None:
    """Configure the analysis routes.

    Args:
        analyzer: Analyzer instance (default rule set when omitted).
        tag_store: Tag store used to match suggested tag names to ids.
        enabled: When False every endpoint answers 503.
    """
    global _analyzer, _tag_store, _enabled
    _analyzer = analyzer or SqlAnalyzer()
    _tag_store = tag_store
    _enabled = enabled


def _get_analyzer() -> SqlAnalyzer:
    if not _enabled:
        raise HTTPException(status_code=503, detail="SQL analysis is disabled")
    return _analyzer


@router.post("/validate", response_model=ValidationResponse)
async def validate_sql(request: SqlRequest):
    """Lint and classify a SQL snippet. Invalid SQL is reported, not rejected."""
    result = _get_analyzer().validate(request.sql)
    return ValidationResponse(**result.to_dict())


@router.post("/format", response_model=FormatResponse)
async def format_sql(request: SqlRequest):
    """Re-indent a SQL snippet."""
    return FormatResponse(formatted=_get_analyzer().format_sql(request.sql))


@router.post("/insights", response_model=InsightsResponse)
async def query_insights(request: SqlRequest):
    """Rough structural counts for a SQL snippet."""
    insights = _get_analyzer().get_query_insights(request.sql)
    return InsightsResponse(**insights.to_dict())


@router.post("/suggest-tags", response_model=TagSuggestionResponse)
async def suggest_tags_for_sql(request: SqlRequest):
    """Suggest tag names for a snippet, flagging the ones that already exist."""
    _get_analyzer()
    suggestions = suggest_tags(request.sql)

    existing: dict[str, str] = {}
    if _tag_store is not None:
        for name in suggestions:
            tag = _tag_store.find_tag_by_name(name)
            if tag is not None:
                existing[name] = tag.id

    return TagSuggestionResponse(suggestions=suggestions, existing_tag_ids=existing)
