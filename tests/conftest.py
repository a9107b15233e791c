"""Shared test fixtures for the SQL snippet service."""

import pytest
from fastapi.testclient import TestClient

from snippet_svc.config import Config, StorageConfig
from snippet_svc.main import app, wire_services
from snippet_svc.queries.registry import QueryRegistry
from snippet_svc.queries.types import Visibility
from snippet_svc.tags.registry import TagRegistry


# =============================================================================
# Store Fixtures
# =============================================================================

@pytest.fixture
def tag_registry() -> TagRegistry:
    """Empty tag store (default categories are seeded lazily)."""
    return TagRegistry()


@pytest.fixture
def query_registry(tag_registry) -> QueryRegistry:
    """Query store wired to the tag store for usage counting."""
    return QueryRegistry(tag_store=tag_registry)


@pytest.fixture
def sample_queries(query_registry, tag_registry):
    """Three saved queries, one tagged 'reporting', one public favorite."""
    reporting = tag_registry.create_tag("reporting", "Monthly reports")
    q1 = query_registry.create(
        sql="SELECT id, email FROM users WHERE active = 1 LIMIT 50;",
        name="Active users",
        description="Users who logged in this month",
        tags=[reporting.id],
    )
    q2 = query_registry.create(
        sql="SELECT COUNT(*) FROM orders;",
        name="Order count",
        result="count\n42",
        is_favorite=True,
        visibility=Visibility.PUBLIC,
    )
    q3 = query_registry.create(
        sql="DELETE FROM sessions WHERE expires_at < NOW();",
        name="Purge sessions",
        user_id="dba",
    )
    return q1, q2, q3


# =============================================================================
# Config / App Fixtures
# =============================================================================

@pytest.fixture
def config(tmp_path) -> Config:
    """Config whose on-disk stores live under tmp_path."""
    return Config(
        storage=StorageConfig(
            queries_path=str(tmp_path / "queries.yaml"),
            tags_path=str(tmp_path / "tags.yaml"),
            autosave=True,
        )
    )


@pytest.fixture
def stores(config):
    """Fresh stores with every router configured against them."""
    return wire_services(config, load=False)


@pytest.fixture
def client(stores) -> TestClient:
    """HTTP client over the app (lifespan is not run; stores come from `stores`)."""
    return TestClient(app)
