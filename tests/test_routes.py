"""HTTP tests for the service routers."""

from datetime import date
from pathlib import Path

import yaml

from snippet_svc.queries.registry import QueryRegistry
from snippet_svc.tags.registry import TagRegistry
from snippet_svc.transfer.exporter import QueryExporter


def _save(client, **overrides):
    payload = {"sql": "SELECT id FROM users LIMIT 5;", "name": "Users"}
    payload.update(overrides)
    response = client.post("/queries", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


class TestHealth:

    def test_health(self, client):
        _save(client)
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["queries"] == 1


class TestAnalysisRoutes:
    """POST /analysis/*"""

    def test_validate(self, client):
        response = client.post("/analysis/validate", json={"sql": "SELECT * FROM users"})

        assert response.status_code == 200
        data = response.json()
        assert data["is_valid"] is True
        assert data["query_type"] == "SELECT"
        assert data["estimated_complexity"] == "LOW"
        assert "Using SELECT * can impact performance" in data["warnings"]

    def test_validate_empty_is_reported_not_rejected(self, client):
        response = client.post("/analysis/validate", json={"sql": ""})

        assert response.status_code == 200
        assert response.json()["errors"] == ["SQL query cannot be empty"]

    def test_format(self, client):
        response = client.post("/analysis/format", json={"sql": "select a from t where b = 1"})
        assert response.json()["formatted"] == "SELECT a\nFROM t\nWHERE b = 1"

    def test_insights(self, client):
        response = client.post("/analysis/insights", json={"sql": "SELECT a, b FROM t JOIN u ON t.id = u.id"})

        data = response.json()
        assert data["table_count"] == 2
        assert data["column_count"] == 2
        assert data["join_count"] == 1

    def test_suggest_tags_flags_existing(self, client):
        created = client.post("/tags", json={"name": "Analytics"}).json()
        response = client.post("/analysis/suggest-tags", json={"sql": "SELECT COUNT(*) FROM t JOIN u ON 1=1"})

        data = response.json()
        assert data["suggestions"] == ["analytics", "complex"]
        assert data["existing_tag_ids"] == {"analytics": created["id"]}


class TestQueryRoutes:
    """CRUD under /queries."""

    def test_create_and_get(self, client):
        created = _save(client, description="All users")
        response = client.get(f"/queries/{created['id']}")

        assert response.status_code == 200
        data = response.json()
        assert data["name"] == "Users"
        assert data["current_version"] == 1
        assert data["visibility"] == "private"

    def test_create_empty_sql(self, client):
        response = client.post("/queries", json={"sql": "  "})
        assert response.status_code == 400

    def test_update_appends_version(self, client):
        created = _save(client)
        response = client.put(
            f"/queries/{created['id']}",
            json={"sql": "SELECT id FROM users LIMIT 10;", "edited_by": "alice"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["current_version"] == 2
        assert data["versions"][-1]["edited_by"] == "alice"
        assert data["name"] == "Users"

    def test_missing_query(self, client):
        assert client.get("/queries/1").status_code == 404
        assert client.put("/queries/1", json={"name": "x"}).status_code == 404
        assert client.delete("/queries/1").status_code == 404
        assert client.post("/queries/1/favorite").status_code == 404

    def test_list_filters(self, client):
        _save(client, name="Orders", sql="SELECT * FROM orders LIMIT 1;", is_favorite=True)
        _save(client, name="Shared", visibility="public", user_id="bob")

        assert client.get("/queries").json()["total"] == 2
        assert [q["name"] for q in client.get("/queries", params={"search": "orders"}).json()["queries"]] == ["Orders"]
        assert [q["name"] for q in client.get("/queries", params={"favorites": True}).json()["queries"]] == ["Orders"]
        assert [q["name"] for q in client.get("/queries/public").json()["queries"]] == ["Shared"]
        assert [q["name"] for q in client.get("/queries/admin", params={"user_id": "bob"}).json()["queries"]] == ["Shared"]

    def test_favorite_and_delete(self, client):
        created = _save(client)

        assert client.post(f"/queries/{created['id']}/favorite").json()["is_favorite"] is True
        assert client.delete(f"/queries/{created['id']}").status_code == 200
        assert client.get("/queries").json()["total"] == 0

    def test_autosave_writes_store(self, client, config):
        _save(client)
        data = yaml.safe_load(Path(config.storage.queries_path).read_text(encoding="utf-8"))
        assert [q["name"] for q in data["queries"]] == ["Users"]

    def test_save_and_reload(self, client, stores):
        queries, _ = stores
        created = _save(client)
        assert client.post("/queries/save").json()["success"] is True

        queries.clear()
        response = client.post("/queries/reload")

        assert response.json()["queries_loaded"] == 1
        assert created["id"] in queries

    def test_reload_rejects_malformed_file(self, client, stores, config):
        """A broken store file is rejected and the loaded queries are kept."""
        queries, _ = stores
        created = _save(client)
        Path(config.storage.queries_path).write_text("queries: [{{bad", encoding="utf-8")

        response = client.post("/queries/reload")

        assert response.status_code == 400
        assert "Invalid queries file" in response.json()["detail"]
        assert len(queries) == 1
        assert created["id"] in queries

    def test_reload_rejects_duplicate_ids(self, client, stores, config):
        queries, _ = stores
        created = _save(client)
        Path(config.storage.queries_path).write_text(
            "queries:\n"
            "  - {id: 1, name: One, sql: SELECT 1;}\n"
            "  - {id: 1, name: Again, sql: SELECT 2;}\n",
            encoding="utf-8",
        )

        assert client.post("/queries/reload").status_code == 400
        assert [q.id for q in queries.all_queries()] == [created["id"]]


class TestTagRoutes:
    """Tags and categories under /tags."""

    def test_tag_crud(self, client):
        created = client.post("/tags", json={"name": "ops", "description": "Operations"})
        assert created.status_code == 201
        tag_id = created.json()["id"]

        assert client.post("/tags", json={"name": "OPS"}).status_code == 409
        assert client.get(f"/tags/{tag_id}").json()["name"] == "ops"
        assert client.put(f"/tags/{tag_id}", json={"name": "operations"}).json()["name"] == "operations"
        assert client.get("/tags", params={"search": "oper"}).json()["count"] == 1
        assert client.delete(f"/tags/{tag_id}").status_code == 200
        assert client.get(f"/tags/{tag_id}").status_code == 404

    def test_popular(self, client):
        tag = client.post("/tags", json={"name": "ops"}).json()
        client.post("/tags", json={"name": "idle"})
        _save(client, tags=[tag["id"]])

        popular = client.get("/tags/popular", params={"limit": 1}).json()
        assert [t["name"] for t in popular["tags"]] == ["ops"]
        assert popular["tags"][0]["usage_count"] == 1

    def test_categories(self, client):
        listed = client.get("/tags/categories").json()
        assert listed["count"] == 8

        created = client.post("/tags/categories", json={"name": "Finance", "icon": "💰"})
        assert created.status_code == 201
        category_id = created.json()["id"]

        assert client.post("/tags/categories", json={"name": "finance"}).status_code == 409
        updated = client.put(f"/tags/categories/{category_id}", json={"color": "#000000"})
        assert updated.json()["color"] == "#000000"
        assert client.delete(f"/tags/categories/{category_id}").status_code == 200
        assert client.delete(f"/tags/categories/{category_id}").status_code == 404


class TestTransferRoutes:
    """Export downloads and import uploads."""

    def test_export_json(self, client):
        _save(client)
        response = client.get("/transfer/export", params={"format": "json"})

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("application/json")
        expected_name = f"sql-queries-backup-{date.today().isoformat()}.json"
        assert expected_name in response.headers["content-disposition"]
        assert response.json()["metadata"]["totalQueries"] == 1

    def test_export_sql_selected_ids(self, client):
        keep = _save(client, name="Keep")
        _save(client, name="Skip")

        response = client.get("/transfer/export", params={"format": "sql", "ids": [keep["id"]]})

        assert response.headers["content-type"].startswith("text/plain")
        assert "-- Query #1: Keep" in response.text
        assert "Skip" not in response.text

    def test_export_bad_format(self, client):
        assert client.get("/transfer/export", params={"format": "csv"}).status_code == 422

    def test_json_round_trip_through_api(self, client):
        _save(client, name="First")
        bundle = client.get("/transfer/export").content

        response = client.post(
            "/transfer/import",
            files={"file": ("backup.json", bundle, "application/json")},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["imported"] == 1
        assert data["format"] == "json"
        assert client.get("/queries").json()["total"] == 2

    def test_sql_import_resolves_tag_names(self, client):
        tag = client.post("/tags", json={"name": "reporting"}).json()
        dump = (
            "-- Query #1: Monthly\n"
            "-- Tags: Reporting, ghost\n"
            "SELECT 1;\n"
        )

        response = client.post(
            "/transfer/import",
            files={"file": ("dump.sql", dump.encode("utf-8"), "text/plain")},
        )

        data = response.json()
        assert data["resolved_tags"] == ["Reporting"]
        assert data["unresolved_tags"] == ["ghost"]

        imported = client.get(f"/queries/{data['query_ids'][0]}").json()
        assert imported["tags"] == [tag["id"]]
        assert client.get(f"/tags/{tag['id']}").json()["usage_count"] == 1

    def test_import_rejects_wrong_type(self, client):
        response = client.post(
            "/transfer/import",
            files={"file": ("notes.txt", b"SELECT 1;", "text/plain")},
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid file type. Please select a .json or .sql file."

    def test_import_rejects_malformed_json(self, client):
        response = client.post(
            "/transfer/import",
            files={"file": ("backup.json", b"{not json", "application/json")},
        )
        assert response.status_code == 400
        assert "Failed to parse JSON file" in response.json()["detail"]
        assert client.get("/queries").json()["total"] == 0

    def test_import_coerces_scalar_fields(self, client):
        bundle = b'{"queries": [{"id": 1, "name": 123, "sql": "SELECT 1;"}]}'

        response = client.post(
            "/transfer/import",
            files={"file": ("backup.json", bundle, "application/json")},
        )
        assert response.status_code == 200

        listed = client.get("/queries")
        assert listed.status_code == 200
        assert [q["name"] for q in listed.json()["queries"]] == ["123"]

    def test_restore_bundle_into_empty_store(self, client, stores):
        """Tags and categories carried by a bundle are recreated with their ids."""
        source_tags = TagRegistry()
        source_queries = QueryRegistry(tag_store=source_tags)
        tag = source_tags.create_tag("reporting", "Monthly reports")
        category = source_tags.create_category("Finance")
        source_queries.create(sql="SELECT 1;", name="Monthly", tags=[tag.id])
        bundle = QueryExporter(tag_store=source_tags).export_to_json(source_queries.all_queries())

        response = client.post(
            "/transfer/import",
            files={"file": ("backup.json", bundle.encode("utf-8"), "application/json")},
        )

        data = response.json()
        assert data["tags_added"] == 1
        assert data["categories_added"] == 1

        _, tags = stores
        assert tags.get_category(category.id).name == "Finance"
        restored = client.get(f"/tags/{tag.id}").json()
        assert restored["name"] == "reporting"
        assert restored["usage_count"] == 1
        imported = client.get(f"/queries/{data['query_ids'][0]}").json()
        assert imported["tags"] == [tag.id]

    def test_bundle_tag_matching_existing_name_is_remapped(self, client):
        existing = client.post("/tags", json={"name": "Reporting"}).json()
        bundle = (
            '{"queries": [{"id": 1, "name": "Monthly", "sql": "SELECT 1;", "tags": ["old-id"]}],'
            ' "tags": [{"id": "old-id", "name": "reporting"}]}'
        )

        data = client.post(
            "/transfer/import",
            files={"file": ("backup.json", bundle.encode("utf-8"), "application/json")},
        ).json()

        assert data["tags_added"] == 0
        imported = client.get(f"/queries/{data['query_ids'][0]}").json()
        assert imported["tags"] == [existing["id"]]
        assert client.get("/tags/old-id").status_code == 404
