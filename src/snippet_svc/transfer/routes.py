"""FastAPI routes for exporting and importing queries."""

from __future__ import annotations

import logging
from typing import Annotated, Callable

from fastapi import APIRouter, File, HTTPException, Query, UploadFile

from ..config import TransferConfig
from ..queries.registry import QueryRegistry
from ..tags.registry import TagStore
from .exporter import QueryExporter
from .files import (
    MEDIA_TYPES,
    ImportFile,
    download_response,
    generate_backup_filename,
    validate_import_file,
)
from .importer import ImportFormatError, QueryImporter, merge_import
from .models import ExportFormat, ImportResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/transfer", tags=["Transfer"])

# Configuration - will be set during app startup
_registry: QueryRegistry | None = None
_tag_store: TagStore | None = None
_config: TransferConfig = TransferConfig()
_persist: Callable[[], None] | None = None


def configure(
    registry: QueryRegistry,
    tag_store: TagStore | None = None,
    config: TransferConfig | None = None,
    persist: Callable[[], None] | None = None,
) -> None:
    """Configure the Transfer routes.

    Args:
        registry: The query registry to export from and merge into
        tag_store: Tag source for bundles, dump tag names and name resolution
        config: Upload limits and bundle version
        persist: Called after a successful import (autosave); None disables it
    """
    global _registry, _tag_store, _config, _persist
    _registry = registry
    _tag_store = tag_store
    _config = config or TransferConfig()
    _persist = persist


def _get_registry() -> QueryRegistry:
    if _registry is None:
        raise HTTPException(status_code=503, detail="Query store not initialized")
    return _registry


@router.get("/export")
async def export_queries(
    format: Annotated[ExportFormat, Query(description="json bundle or .sql dump")] = ExportFormat.JSON,
    ids: Annotated[list[int] | None, Query(description="Export only these query ids")] = None,
):
    """
    Download queries as a file.

    The filename follows the backup naming scheme
    (sql-queries-backup-YYYY-MM-DD.<format>).
    """
    registry = _get_registry()
    queries = registry.all_queries()
    if ids:
        wanted = set(ids)
        queries = [q for q in queries if q.id in wanted]

    exporter = QueryExporter(tag_store=_tag_store, format_version=_config.format_version)
    if format == ExportFormat.JSON:
        content = exporter.export_to_json(queries)
    else:
        content = exporter.export_to_sql(queries)

    logger.info(f"Exported {len(queries)} queries as {format.value}")
    return download_response(
        content,
        generate_backup_filename(format.value),
        MEDIA_TYPES[format.value],
    )


@router.post("/import", response_model=ImportResponse)
async def import_queries(file: UploadFile = File(...)):
    """
    Upload a .json bundle or .sql dump and merge its queries.

    Tags and categories carried by a .json bundle are added when new.
    Tags named in a .sql dump are matched to existing tags by name,
    ignoring case; names with no match are reported and dropped.
    """
    registry = _get_registry()

    content = await file.read()
    upload = ImportFile(filename=file.filename or "", content=content)

    check = validate_import_file(upload, _config.allowed_extensions, _config.max_file_size_bytes)
    if not check.is_valid:
        raise HTTPException(status_code=400, detail=check.error)

    try:
        result = await QueryImporter().import_file(upload)
    except ImportFormatError as e:
        logger.warning(f"Rejected import {upload.filename}: {e}")
        raise HTTPException(status_code=400, detail=str(e))

    summary = merge_import(result, registry, _tag_store)
    merged = summary.queries

    if _persist is not None:
        _persist()

    import_format = ExportFormat.JSON if upload.filename.lower().endswith(".json") else ExportFormat.SQL
    return ImportResponse(
        success=True,
        message=f"Imported {len(merged)} queries from {upload.filename}",
        format=import_format,
        imported=len(merged),
        query_ids=[q.id for q in merged],
        resolved_tags=summary.resolved_tags,
        unresolved_tags=summary.unresolved_tags,
        tags_added=summary.tags_added,
        categories_added=summary.categories_added,
    )
