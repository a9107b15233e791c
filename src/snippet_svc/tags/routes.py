"""FastAPI routes for Tag and Category API."""

from __future__ import annotations

import logging
from typing import Annotated, Callable

from fastapi import APIRouter, HTTPException, Query

from .registry import TagStore
from .types import Category, Tag
from .models import (
    CategoryListResponse,
    CategoryModel,
    CreateCategoryRequest,
    CreateTagRequest,
    TagListResponse,
    TagModel,
    UpdateCategoryRequest,
    UpdateTagRequest,
)

logger = logging.getLogger(__name__)

# Create router with Tags tag for OpenAPI grouping
router = APIRouter(prefix="/tags", tags=["Tags"])

# Configuration - will be set during app startup
_tag_store: TagStore | None = None
_persist: Callable[[], None] | None = None


def configure(tag_store: TagStore, persist: Callable[[], None] | None = None) -> None:
    """Configure the Tag routes.

    Args:
        tag_store: The tag/category store to manage
        persist: Called after every mutation (autosave); None disables it
    """
    global _tag_store, _persist
    _tag_store = tag_store
    _persist = persist


def _get_store() -> TagStore:
    """Get the tag store, raising if not configured."""
    if _tag_store is None:
        raise HTTPException(status_code=503, detail="Tag store not initialized")
    return _tag_store


def _after_change() -> None:
    if _persist is not None:
        _persist()


def _tag_to_model(tag: Tag) -> TagModel:
    return TagModel(
        id=tag.id,
        name=tag.name,
        color=tag.color,
        description=tag.description,
        created_at=tag.created_at,
        usage_count=tag.usage_count,
    )


def _category_to_model(category: Category) -> CategoryModel:
    return CategoryModel(
        id=category.id,
        name=category.name,
        color=category.color,
        description=category.description,
        icon=category.icon,
        created_at=category.created_at,
        query_count=category.query_count,
    )


# =============================================================================
# Tag Endpoints
# =============================================================================

@router.get("", response_model=TagListResponse)
async def list_tags(
    search: Annotated[str | None, Query(description="Substring of name or description")] = None,
):
    """List tags, optionally filtered by a search term."""
    store = _get_store()
    tags = store.search_tags(search) if search else store.list_tags()
    return TagListResponse(tags=[_tag_to_model(t) for t in tags], count=len(tags))


@router.get("/popular", response_model=TagListResponse)
async def popular_tags(limit: Annotated[int, Query(ge=1, le=100)] = 10):
    """Most used tags first."""
    tags = _get_store().popular_tags(limit)
    return TagListResponse(tags=[_tag_to_model(t) for t in tags], count=len(tags))


@router.post("", response_model=TagModel, status_code=201)
async def create_tag(request: CreateTagRequest):
    """Create a new tag. Names are unique, ignoring case."""
    try:
        tag = _get_store().create_tag(request.name, request.description)
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e))

    _after_change()
    return _tag_to_model(tag)


# =============================================================================
# Category Endpoints
# =============================================================================

@router.get("/categories", response_model=CategoryListResponse)
async def list_categories(
    search: Annotated[str | None, Query(description="Substring of name or description")] = None,
):
    """List categories (seeded with defaults on first access)."""
    store = _get_store()
    categories = store.search_categories(search) if search else store.list_categories()
    return CategoryListResponse(
        categories=[_category_to_model(c) for c in categories],
        count=len(categories),
    )


@router.post("/categories", response_model=CategoryModel, status_code=201)
async def create_category(request: CreateCategoryRequest):
    """Create a new category."""
    try:
        category = _get_store().create_category(
            request.name, request.description, request.color, request.icon
        )
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e))

    _after_change()
    return _category_to_model(category)


@router.put("/categories/{category_id}", response_model=CategoryModel)
async def update_category(category_id: str, request: UpdateCategoryRequest):
    """Update a category; omitted fields keep their values."""
    try:
        category = _get_store().update_category(category_id, **request.model_dump())
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Category not found: {category_id}")

    _after_change()
    return _category_to_model(category)


@router.delete("/categories/{category_id}")
async def delete_category(category_id: str):
    """Delete a category."""
    if not _get_store().delete_category(category_id):
        raise HTTPException(status_code=404, detail=f"Category not found: {category_id}")

    _after_change()
    return {"success": True, "message": f"Category '{category_id}' deleted"}


# =============================================================================
# Single Tag Endpoints
# =============================================================================

@router.get("/{tag_id}", response_model=TagModel)
async def get_tag(tag_id: str):
    tag = _get_store().get_tag(tag_id)
    if tag is None:
        raise HTTPException(status_code=404, detail=f"Tag not found: {tag_id}")
    return _tag_to_model(tag)


@router.put("/{tag_id}", response_model=TagModel)
async def update_tag(tag_id: str, request: UpdateTagRequest):
    """Update a tag; omitted fields keep their values."""
    try:
        tag = _get_store().update_tag(tag_id, **request.model_dump())
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Tag not found: {tag_id}")

    _after_change()
    return _tag_to_model(tag)


@router.delete("/{tag_id}")
async def delete_tag(tag_id: str):
    """
    Delete a tag.

    Queries keep referencing the id; unknown ids are simply not rendered.
    """
    if not _get_store().delete_tag(tag_id):
        raise HTTPException(status_code=404, detail=f"Tag not found: {tag_id}")

    _after_change()
    return {"success": True, "message": f"Tag '{tag_id}' deleted"}
