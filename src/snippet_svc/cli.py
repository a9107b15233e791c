#!/usr/bin/env python3
"""
CLI tool for linting, formatting and moving SQL snippets around.

Usage:
    python -m snippet_svc.cli validate "SELECT * FROM users"
    python -m snippet_svc.cli format --file report.sql
    cat report.sql | python -m snippet_svc.cli insights
    python -m snippet_svc.cli export --format sql -o backup.sql
    python -m snippet_svc.cli import backup.json
    python -m snippet_svc.cli serve
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

from colorama import Fore, Style, init as colorama_init

from .analysis.analyzer import SqlAnalyzer
from .config import Config
from .queries.loader import load_queries_from_yaml, save_queries_to_yaml
from .queries.registry import QueryRegistry
from .tags.loader import load_tags_from_yaml, save_tags_to_yaml
from .tags.registry import TagRegistry
from .transfer.exporter import QueryExporter
from .transfer.files import ImportFile, generate_backup_filename, validate_import_file, write_export
from .transfer.importer import ImportFormatError, QueryImporter, merge_import

logger = logging.getLogger(__name__)


def colorize(text: str, color: str) -> str:
    return f"{color}{text}{Style.RESET_ALL}"


def print_json(data: Any, indent: int = 2) -> None:
    print(json.dumps(data, indent=indent, default=str))


def _read_sql(args) -> str:
    """SQL from the positional argument, --file, or stdin (in that order)."""
    if args.sql:
        return args.sql
    if args.file:
        return Path(args.file).read_text(encoding="utf-8")
    return sys.stdin.read()


def _load_sql(args) -> str | None:
    """Like _read_sql, but reports an unreadable --file and returns None."""
    try:
        return _read_sql(args)
    except (OSError, UnicodeDecodeError) as e:
        print(colorize(f"Error: {e}", Fore.RED), file=sys.stderr)
        return None


def _load_stores(config: Config) -> tuple[QueryRegistry, TagRegistry]:
    tags = TagRegistry()
    queries = QueryRegistry(tag_store=tags)
    load_tags_from_yaml(config.storage.tags_path, tags)
    load_queries_from_yaml(config.storage.queries_path, queries)
    return queries, tags


# =============================================================================
# Analysis commands
# =============================================================================

def cmd_validate(args) -> int:
    """Lint SQL. Exit code 1 when there are errors."""
    sql = _load_sql(args)
    if sql is None:
        return 1
    result = SqlAnalyzer().validate(sql)

    if args.json:
        print_json(result.to_dict())
        return 0 if result.is_valid else 1

    status = colorize("valid", Fore.GREEN) if result.is_valid else colorize("invalid", Fore.RED)
    print(colorize("Query:", Style.BRIGHT), status)
    print(colorize("Type:", Style.BRIGHT), result.query_type.value)
    print(colorize("Complexity:", Style.BRIGHT), result.estimated_complexity.value)

    sections = [
        ("Errors", result.errors, Fore.RED),
        ("Warnings", result.warnings, Fore.YELLOW),
        ("Suggestions", result.suggestions, Fore.CYAN),
    ]
    for label, messages, color in sections:
        if not messages:
            continue
        print(colorize(f"\n{label}:", Style.BRIGHT))
        for message in messages:
            print(f"  {colorize('•', color)} {message}")

    return 0 if result.is_valid else 1


def cmd_format(args) -> int:
    """Print the formatted SQL."""
    sql = _load_sql(args)
    if sql is None:
        return 1
    print(SqlAnalyzer().format_sql(sql))
    return 0


def cmd_insights(args) -> int:
    """Print structural counts."""
    sql = _load_sql(args)
    if sql is None:
        return 1
    insights = SqlAnalyzer().get_query_insights(sql)

    if args.json:
        print_json(insights.to_dict())
        return 0

    print(colorize("Tables:", Style.BRIGHT), insights.table_count)
    print(colorize("Columns:", Style.BRIGHT), insights.column_count)
    print(colorize("Joins:", Style.BRIGHT), insights.join_count)
    print(colorize("Conditions:", Style.BRIGHT), insights.condition_count)
    print(colorize("Aggregation:", Style.BRIGHT), insights.has_aggregation)
    print(colorize("Subquery:", Style.BRIGHT), insights.has_subquery)
    return 0


# =============================================================================
# Transfer commands
# =============================================================================

def cmd_export(args) -> int:
    """Export the query store to a file."""
    config = Config.load(args.config)
    queries, tags = _load_stores(config)

    exporter = QueryExporter(tag_store=tags, format_version=config.transfer.format_version)
    records = queries.all_queries()
    if args.format == "json":
        content = exporter.export_to_json(records)
    else:
        content = exporter.export_to_sql(records)

    output = Path(args.output or generate_backup_filename(args.format))
    write_export(content, output)
    print(f"Exported {colorize(str(len(records)), Fore.GREEN)} queries to {output}")
    return 0


def cmd_import(args) -> int:
    """Import a .json bundle or .sql dump into the query store."""
    config = Config.load(args.config)

    try:
        upload = ImportFile.from_path(args.path)
    except OSError as e:
        print(colorize(f"Error: {e}", Fore.RED), file=sys.stderr)
        return 1

    check = validate_import_file(
        upload,
        config.transfer.allowed_extensions,
        config.transfer.max_file_size_bytes,
    )
    if not check.is_valid:
        print(colorize(f"Error: {check.error}", Fore.RED), file=sys.stderr)
        return 1

    try:
        result = asyncio.run(QueryImporter().import_file(upload))
    except ImportFormatError as e:
        print(colorize(f"Error: {e}", Fore.RED), file=sys.stderr)
        return 1

    queries, tags = _load_stores(config)

    summary = merge_import(result, queries, tags)
    save_queries_to_yaml(config.storage.queries_path, queries)
    save_tags_to_yaml(config.storage.tags_path, tags)

    print(f"Imported {colorize(str(len(summary.queries)), Fore.GREEN)} queries from {upload.filename}")
    if summary.tags_added or summary.categories_added:
        print(f"Added {summary.tags_added} tags and {summary.categories_added} categories")
    if summary.unresolved_tags:
        names = ", ".join(summary.unresolved_tags)
        print(colorize(f"Unknown tags dropped: {names}", Fore.YELLOW))
    return 0


def cmd_serve(args) -> int:
    """Run the HTTP service."""
    from .main import run

    run(args.config)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="snippet-svc",
        description="CLI tool for the SQL snippet service",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--config",
        help="Config file (YAML or JSON); defaults to $SNIPPET_SVC_CONFIG",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # validate / format / insights read SQL the same way
    for name, help_text in [
        ("validate", "Lint a SQL query"),
        ("format", "Reformat a SQL query"),
        ("insights", "Count tables, columns and conditions"),
    ]:
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("sql", nargs="?", help="SQL text (reads --file or stdin when omitted)")
        sub.add_argument("--file", "-f", help="Read SQL from a file")
        if name != "format":
            sub.add_argument("--json", action="store_true", help="Print the raw result as JSON")

    export_parser = subparsers.add_parser("export", help="Export saved queries")
    export_parser.add_argument("--format", choices=["json", "sql"], default="json")
    export_parser.add_argument("--output", "-o", help="Output path (default: dated backup name)")

    import_parser = subparsers.add_parser("import", help="Import a .json or .sql file")
    import_parser.add_argument("path", help="File to import")

    subparsers.add_parser("serve", help="Run the HTTP service")

    return parser


COMMANDS = {
    "validate": cmd_validate,
    "format": cmd_format,
    "insights": cmd_insights,
    "export": cmd_export,
    "import": cmd_import,
    "serve": cmd_serve,
}


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    colorama_init()
    logging.basicConfig(
        level=logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    return COMMANDS[args.command](args)


if __name__ == "__main__":
    sys.exit(main() or 0)
