"""Tests for the command line front end."""

import json
import os

import pytest
import yaml

from snippet_svc.cli import main
from snippet_svc.config import CONFIG_ENV_VAR
from snippet_svc.queries.registry import QueryRegistry
from snippet_svc.tags.registry import TagRegistry
from snippet_svc.transfer.exporter import QueryExporter


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "svc.yaml"
    path.write_text(
        "storage:\n"
        f"  queries_path: {tmp_path / 'queries.yaml'}\n"
        f"  tags_path: {tmp_path / 'tags.yaml'}\n",
        encoding="utf-8",
    )
    return path


class TestAnalysisCommands:

    def test_validate_valid(self, capsys):
        assert main(["validate", "SELECT id FROM users LIMIT 1;"]) == 0
        assert "SELECT" in capsys.readouterr().out

    def test_validate_invalid_exit_code(self, capsys):
        assert main(["validate", "SELECT (id FROM users"]) == 1
        assert "Unmatched opening parenthesis" in capsys.readouterr().out

    def test_validate_json(self, capsys):
        main(["validate", "--json", "DELETE FROM t"])
        data = json.loads(capsys.readouterr().out)
        assert data["query_type"] == "DELETE"

    def test_format_from_file(self, tmp_path, capsys):
        path = tmp_path / "q.sql"
        path.write_text("select a from t", encoding="utf-8")

        assert main(["format", "--file", str(path)]) == 0
        assert capsys.readouterr().out == "SELECT a\nFROM t\n"

    def test_insights_json(self, capsys):
        main(["insights", "--json", "SELECT a, b FROM t"])
        data = json.loads(capsys.readouterr().out)
        assert data["column_count"] == 2

    def test_missing_input_file(self, tmp_path, capsys):
        absent = str(tmp_path / "absent.sql")

        assert main(["validate", "--file", absent]) == 1
        assert "Error" in capsys.readouterr().err
        assert main(["format", "--file", absent]) == 1
        assert "Error" in capsys.readouterr().err

    def test_no_command(self, capsys):
        assert main([]) == 1


class TestTransferCommands:

    def test_import_then_export(self, tmp_path, config_file):
        dump = tmp_path / "dump.sql"
        dump.write_text("-- Query #1: One\nSELECT 1;\n-- Query #2: Two\nSELECT 2;\n", encoding="utf-8")

        assert main(["--config", str(config_file), "import", str(dump)]) == 0
        assert (tmp_path / "queries.yaml").exists()

        out = tmp_path / "out.json"
        assert main(["--config", str(config_file), "export", "--output", str(out)]) == 0

        bundle = json.loads(out.read_text(encoding="utf-8"))
        assert sorted(q["name"] for q in bundle["queries"]) == ["One", "Two"]

    def test_export_sql(self, tmp_path, config_file):
        out = tmp_path / "out.sql"
        assert main(["--config", str(config_file), "export", "--format", "sql", "-o", str(out)]) == 0
        assert out.read_text(encoding="utf-8").startswith("-- SQL Query Manager Export")

    def test_import_rejects_extension(self, tmp_path, config_file, capsys):
        path = tmp_path / "notes.txt"
        path.write_text("SELECT 1;", encoding="utf-8")

        assert main(["--config", str(config_file), "import", str(path)]) == 1
        assert "Invalid file type" in capsys.readouterr().err

    def test_import_malformed_json(self, tmp_path, config_file, capsys):
        path = tmp_path / "bad.json"
        path.write_text("{", encoding="utf-8")

        assert main(["--config", str(config_file), "import", str(path)]) == 1
        assert "Failed to parse JSON file" in capsys.readouterr().err

    def test_import_missing_file(self, tmp_path, config_file):
        assert main(["--config", str(config_file), "import", str(tmp_path / "absent.sql")]) == 1

    def test_import_bundle_restores_tags(self, tmp_path, config_file):
        source_tags = TagRegistry()
        source_queries = QueryRegistry(tag_store=source_tags)
        tag = source_tags.create_tag("reporting")
        source_queries.create(sql="SELECT 1;", name="Monthly", tags=[tag.id])
        bundle = tmp_path / "backup.json"
        bundle.write_text(
            QueryExporter(tag_store=source_tags).export_to_json(source_queries.all_queries()),
            encoding="utf-8",
        )

        assert main(["--config", str(config_file), "import", str(bundle)]) == 0

        saved = yaml.safe_load((tmp_path / "tags.yaml").read_text(encoding="utf-8"))
        assert [t["id"] for t in saved["tags"]] == [tag.id]
        assert saved["tags"][0]["usageCount"] == 1


class TestServeCommand:

    def test_serve_uses_config_file(self, tmp_path, monkeypatch):
        """The server port comes from --config, and the app sees the same file."""
        path = tmp_path / "svc.yaml"
        path.write_text("server:\n  port: 9999\n", encoding="utf-8")
        monkeypatch.setenv(CONFIG_ENV_VAR, "unused.yaml")
        calls = []
        monkeypatch.setattr("uvicorn.run", lambda app, **kwargs: calls.append(kwargs))

        assert main(["--config", str(path), "serve"]) == 0

        assert calls[0]["port"] == 9999
        assert os.environ[CONFIG_ENV_VAR] == str(path)
