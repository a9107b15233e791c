"""
Export/Import Engine

Round-trips query collections through two file formats:
- a JSON bundle carrying queries, tags and categories
- a commented .sql dump that stays readable in any SQL editor

Also provides the import pre-check, download responses and backup names.
"""

from .exporter import QueryExporter, FORMAT_VERSION, iso_now
from .importer import (
    ImportFormatError,
    ImportResult,
    MergeSummary,
    QueryImporter,
    TransferError,
    merge_import,
    parse_json_bundle,
    parse_sql_dump,
)
from .files import (
    ALLOWED_EXTENSIONS,
    MAX_IMPORT_SIZE,
    FileCheck,
    ImportFile,
    download_response,
    generate_backup_filename,
    validate_import_file,
    write_export,
)

__all__ = [
    # Export
    "QueryExporter",
    "FORMAT_VERSION",
    "iso_now",
    # Import
    "QueryImporter",
    "ImportResult",
    "MergeSummary",
    "merge_import",
    "TransferError",
    "ImportFormatError",
    "parse_json_bundle",
    "parse_sql_dump",
    # Files
    "ALLOWED_EXTENSIONS",
    "MAX_IMPORT_SIZE",
    "FileCheck",
    "ImportFile",
    "download_response",
    "generate_backup_filename",
    "validate_import_file",
    "write_export",
]
