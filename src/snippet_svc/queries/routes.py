"""FastAPI routes for saved queries."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Annotated, Callable

import yaml
from fastapi import APIRouter, HTTPException, Query

from ..analysis.analyzer import SqlAnalyzer
from .loader import load_queries_from_yaml, save_queries_to_yaml
from .models import (
    CreateQueryRequest,
    QueryListResponse,
    QueryModel,
    ReloadResponse,
    SaveResponse,
    UpdateQueryRequest,
    query_to_model,
)
from .registry import QueryRegistry

logger = logging.getLogger(__name__)

# Create router with Queries tag for OpenAPI grouping
router = APIRouter(prefix="/queries", tags=["Queries"])

# Configuration - will be set during app startup
_registry: QueryRegistry | None = None
_yaml_path: str = "queries.yaml"
_persist: Callable[[], None] | None = None
_analyzer: SqlAnalyzer | None = None


def configure(
    registry: QueryRegistry,
    yaml_path: str = "queries.yaml",
    persist: Callable[[], None] | None = None,
    analyzer: SqlAnalyzer | None = None,
) -> None:
    """Configure the Query routes.

    Args:
        registry: The query registry to manage
        yaml_path: Path to the queries YAML file (save/reload)
        persist: Called after every mutation (autosave); None disables it
        analyzer: When set, saves/edits whose SQL has structural errors are rejected
    """
    global _registry, _yaml_path, _persist, _analyzer
    _registry = registry
    _yaml_path = yaml_path
    _persist = persist
    _analyzer = analyzer


def _get_registry() -> QueryRegistry:
    """Get the query registry, raising if not configured."""
    if _registry is None:
        raise HTTPException(status_code=503, detail="Query store not initialized")
    return _registry


def _after_change() -> None:
    if _persist is not None:
        _persist()


def _check_sql(sql: str | None) -> None:
    if _analyzer is None or sql is None:
        return
    result = _analyzer.validate(sql)
    if not result.is_valid:
        raise HTTPException(status_code=400, detail="; ".join(result.errors))


def _list_response(queries) -> QueryListResponse:
    return QueryListResponse(queries=[query_to_model(q) for q in queries], total=len(queries))


# =============================================================================
# Listing Endpoints
# =============================================================================

@router.get("", response_model=QueryListResponse)
async def list_queries(
    search: Annotated[str | None, Query(description="Substring of name, description or SQL")] = None,
    date: Annotated[str | None, Query(description="Creation date (YYYY-MM-DD)")] = None,
    favorites: Annotated[bool, Query(description="Only favorites")] = False,
):
    """List saved queries, newest first."""
    registry = _get_registry()
    return _list_response(registry.search(term=search, date=date, favorites_only=favorites))


@router.get("/public", response_model=QueryListResponse)
async def list_public_queries(
    search: Annotated[str | None, Query(description="Substring of name, description or SQL")] = None,
    date: Annotated[str | None, Query(description="Creation date (YYYY-MM-DD)")] = None,
):
    """List queries shared publicly."""
    registry = _get_registry()
    queries = [q for q in registry.search(term=search, date=date) if q.is_public]
    return _list_response(queries)


@router.get("/admin", response_model=QueryListResponse)
async def list_all_queries(
    user_id: Annotated[str | None, Query(description="Filter by owner")] = None,
):
    """Admin view: every query regardless of visibility."""
    registry = _get_registry()
    return _list_response(registry.search(user_id=user_id))


# =============================================================================
# Save/Reload Endpoints
# =============================================================================

@router.post("/save", response_model=SaveResponse)
async def save_queries():
    """Persist all queries to the YAML file."""
    registry = _get_registry()
    output_path = Path(_yaml_path)
    try:
        count = save_queries_to_yaml(output_path, registry)
        return SaveResponse(
            success=True,
            message=f"Saved {count} queries to {output_path}",
            file_path=str(output_path.absolute()),
        )
    except OSError as e:
        logger.error(f"Failed to save queries: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to save: {str(e)}")


@router.post("/reload", response_model=ReloadResponse)
async def reload_queries():
    """Replace the in-memory queries with the YAML file contents."""
    registry = _get_registry()
    source_path = Path(_yaml_path)

    if not source_path.exists():
        raise HTTPException(status_code=404, detail=f"Queries file not found: {source_path}")

    # Parse into a scratch registry so a bad file leaves the store intact
    staging = QueryRegistry()
    try:
        loaded = load_queries_from_yaml(source_path, staging)
    except (yaml.YAMLError, ValueError, TypeError, AttributeError) as e:
        logger.warning(f"Reload of {source_path} rejected: {e}")
        raise HTTPException(status_code=400, detail=f"Invalid queries file: {e}")

    registry.replace_all(loaded)
    logger.info(f"Reloaded {len(loaded)} queries from {source_path}")

    return ReloadResponse(
        success=True,
        message=f"Reloaded {len(loaded)} queries from {source_path}",
        queries_loaded=len(loaded),
    )


# =============================================================================
# Query CRUD Endpoints
# =============================================================================

@router.post("", response_model=QueryModel, status_code=201)
async def create_query(request: CreateQueryRequest):
    """Save a new query (version 1)."""
    registry = _get_registry()
    _check_sql(request.sql)

    try:
        query = registry.create(
            sql=request.sql,
            name=request.name,
            description=request.description,
            result=request.result,
            result_image=request.result_image,
            tags=request.tags,
            is_favorite=request.is_favorite,
            visibility=request.visibility,
            user_id=request.user_id,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    _after_change()
    return query_to_model(query)


@router.get("/{query_id}", response_model=QueryModel)
async def get_query(query_id: int):
    """Get a single query with its version history."""
    query = _get_registry().get(query_id)
    if query is None:
        raise HTTPException(status_code=404, detail=f"Query not found: {query_id}")
    return query_to_model(query)


@router.put("/{query_id}", response_model=QueryModel)
async def update_query(query_id: int, request: UpdateQueryRequest):
    """
    Edit a query.

    Only provided fields change; a new version snapshot is appended.
    """
    registry = _get_registry()
    _check_sql(request.sql)

    changes = request.model_dump(exclude_none=True, exclude={"edited_by"})
    try:
        query = registry.update(query_id, edited_by=request.edited_by, **changes)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Query not found: {query_id}")
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    _after_change()
    return query_to_model(query)


@router.post("/{query_id}/favorite", response_model=QueryModel)
async def toggle_favorite(query_id: int):
    """Flip the favorite flag."""
    try:
        query = _get_registry().toggle_favorite(query_id)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Query not found: {query_id}")

    _after_change()
    return query_to_model(query)


@router.delete("/{query_id}")
async def delete_query(query_id: int):
    """Delete a query."""
    registry = _get_registry()
    if not registry.delete(query_id):
        raise HTTPException(status_code=404, detail=f"Query not found: {query_id}")

    _after_change()
    return {"success": True, "message": f"Query {query_id} deleted"}
