"""SQL snippet service - FastAPI application."""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from typing import Callable

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from . import __version__
from .analysis.analyzer import SqlAnalyzer
from .analysis.routes import router as analysis_router, configure as analysis_configure
from .config import CONFIG_ENV_VAR, Config
from .queries.loader import load_queries_from_yaml, save_queries_to_yaml
from .queries.registry import QueryRegistry
from .queries.routes import router as queries_router, configure as queries_configure
from .tags.loader import load_tags_from_yaml, save_tags_to_yaml
from .tags.registry import TagRegistry
from .tags.routes import router as tags_router, configure as tags_configure
from .transfer.importer import ImportFormatError, TransferError
from .transfer.routes import router as transfer_router, configure as transfer_configure

logger = logging.getLogger(__name__)


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    version: str
    queries: int = 0
    tags: int = 0


# Global stores (initialized in lifespan or by wire_services)
_queries: QueryRegistry | None = None
_tags: TagRegistry | None = None


def _make_persist(config: Config, queries: QueryRegistry, tags: TagRegistry) -> Callable[[], None] | None:
    """Build the autosave callback shared by the mutating routes."""
    if not config.storage.autosave:
        return None

    def persist() -> None:
        try:
            save_queries_to_yaml(config.storage.queries_path, queries)
            save_tags_to_yaml(config.storage.tags_path, tags)
        except OSError as e:
            logger.error(f"Autosave failed: {e}")

    return persist


def wire_services(config: Config, load: bool = True) -> tuple[QueryRegistry, TagRegistry]:
    """
    Create the stores and configure every router.

    Args:
        config: Service configuration
        load: Load the on-disk stores into the new registries

    Returns:
        (query registry, tag registry)
    """
    global _queries, _tags

    tags = TagRegistry()
    queries = QueryRegistry(tag_store=tags)

    if load:
        # Loading restores saved usage counters as-is; add() does not bump them
        load_tags_from_yaml(config.storage.tags_path, tags)
        load_queries_from_yaml(config.storage.queries_path, queries)

    persist = _make_persist(config, queries, tags)
    analyzer = SqlAnalyzer()

    analysis_configure(analyzer=analyzer, tag_store=tags, enabled=config.analysis.enabled)
    queries_configure(
        registry=queries,
        yaml_path=config.storage.queries_path,
        persist=persist,
        analyzer=analyzer if config.analysis.validate_on_save else None,
    )
    tags_configure(tag_store=tags, persist=persist)
    transfer_configure(
        registry=queries,
        tag_store=tags,
        config=config.transfer,
        persist=persist,
    )

    _queries, _tags = queries, tags
    return queries, tags


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - startup and shutdown."""
    logger.info("Starting SQL snippet service...")

    # Load config (from $SNIPPET_SVC_CONFIG or defaults)
    config = Config.load()
    queries, tags = wire_services(config)

    logger.info(f"SQL snippet service started ({len(queries)} queries, {len(tags)} tags)")

    yield

    logger.info("SQL snippet service stopped")


# Create FastAPI app
app = FastAPI(
    title="SQL Snippet Service",
    description="Save, lint, tag, export and import SQL snippets.",
    version=__version__,
    lifespan=lifespan,
)

app.include_router(analysis_router)
app.include_router(queries_router)
app.include_router(tags_router)
app.include_router(transfer_router)


@app.exception_handler(ImportFormatError)
async def import_format_error_handler(request: Request, exc: ImportFormatError):
    return JSONResponse(
        status_code=400,
        content={"error": "Invalid import file", "detail": str(exc)},
    )


@app.exception_handler(TransferError)
async def transfer_error_handler(request: Request, exc: TransferError):
    return JSONResponse(
        status_code=500,
        content={"error": "Transfer error", "detail": str(exc)},
    )


@app.get("/health", response_model=HealthResponse)
async def health():
    """Health check endpoint."""
    return HealthResponse(
        status="healthy",
        version=__version__,
        queries=len(_queries) if _queries is not None else 0,
        tags=len(_tags) if _tags is not None else 0,
    )


def run(config_path: str | None = None):
    """Run the service with uvicorn.

    Args:
        config_path: Config file for the server and the app it serves.
            Exported as $SNIPPET_SVC_CONFIG so the lifespan (which may run
            in a reloader subprocess) loads the same file.
    """
    import uvicorn

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if config_path:
        os.environ[CONFIG_ENV_VAR] = os.path.abspath(config_path)
    config = Config.load(config_path)
    uvicorn.run(
        "snippet_svc.main:app",
        host=config.server.host,
        port=config.server.port,
        reload=config.server.reload,
    )


if __name__ == "__main__":
    run()
