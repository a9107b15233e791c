"""
Pydantic models for Tag API.

Provides request/response models for the tag and category endpoints.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class TagModel(BaseModel):
    """Tag representation for API responses."""

    id: str
    name: str
    color: str
    description: Optional[str] = None
    created_at: str = ""
    usage_count: int = 0


class CategoryModel(BaseModel):
    """Category representation for API responses."""

    id: str
    name: str
    color: str
    description: Optional[str] = None
    icon: Optional[str] = None
    created_at: str = ""
    query_count: int = 0


class CreateTagRequest(BaseModel):
    """Request model for creating a new tag."""

    model_config = ConfigDict(
        json_schema_extra={"example": {"name": "reporting", "description": "Monthly reports"}}
    )

    name: str = Field(..., min_length=1, description="Tag name (unique, case-insensitive)")
    description: Optional[str] = Field(None, description="What the tag is for")


class UpdateTagRequest(BaseModel):
    """Request model for updating a tag. Omitted fields keep their values."""

    name: Optional[str] = None
    color: Optional[str] = None
    description: Optional[str] = None


class CreateCategoryRequest(BaseModel):
    """Request model for creating a new category."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {"name": "Finance", "description": "Ledger queries", "color": "#0ea5e9", "icon": "💰"}
        }
    )

    name: str = Field(..., min_length=1, description="Category name (unique, case-insensitive)")
    description: Optional[str] = None
    color: Optional[str] = Field(None, description="Hex color; picked from the palette when omitted")
    icon: Optional[str] = None


class UpdateCategoryRequest(BaseModel):
    """Request model for updating a category. Omitted fields keep their values."""

    name: Optional[str] = None
    color: Optional[str] = None
    description: Optional[str] = None
    icon: Optional[str] = None


class TagListResponse(BaseModel):
    """Response for listing tags."""

    tags: List[TagModel]
    count: int


class CategoryListResponse(BaseModel):
    """Response for listing categories."""

    categories: List[CategoryModel]
    count: int
