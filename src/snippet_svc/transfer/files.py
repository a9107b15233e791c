"""File handling for export/import: pre-checks, downloads and backup names."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Protocol

from fastapi.responses import Response

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = (".json", ".sql")
MAX_IMPORT_SIZE = 10 * 1024 * 1024  # 10,485,760 bytes

INVALID_TYPE_ERROR = "Invalid file type. Please select a .json or .sql file."
TOO_LARGE_ERROR = "File too large. Maximum size is 10MB."

MEDIA_TYPES = {
    "json": "application/json",
    "sql": "text/plain",
}


class ReadableFile(Protocol):
    """What the importer needs from a file; fastapi.UploadFile satisfies it."""

    filename: str | None

    async def read(self, size: int = -1) -> bytes:
        ...


@dataclass
class ImportFile:
    """An in-memory file with the same read interface as an upload."""

    filename: str
    content: bytes

    @property
    def size(self) -> int:
        return len(self.content)

    async def read(self, size: int = -1) -> bytes:
        return self.content if size < 0 else self.content[:size]

    @classmethod
    def from_path(cls, path: str | Path) -> ImportFile:
        path = Path(path)
        return cls(filename=path.name, content=path.read_bytes())

    @classmethod
    def from_text(cls, filename: str, text: str) -> ImportFile:
        return cls(filename=filename, content=text.encode("utf-8"))


@dataclass(frozen=True)
class FileCheck:
    """Result of the import pre-check. Rejections are data, not exceptions."""

    is_valid: bool
    error: str | None = None


def file_extension(filename: str) -> str:
    """Lowercased text after the last dot, with the dot ('.data' for 'data')."""
    return "." + filename.rsplit(".", 1)[-1].lower()


def validate_import_file(
    file,
    allowed_extensions: tuple[str, ...] | list[str] = ALLOWED_EXTENSIONS,
    max_size: int = MAX_IMPORT_SIZE,
) -> FileCheck:
    """Check a candidate import file's extension and size before parsing.

    Args:
        file: Anything with ``filename`` and ``size`` attributes.
        allowed_extensions: Accepted extensions, dot included.
        max_size: Largest accepted size in bytes.

    Returns:
        FileCheck with the user-facing error message on rejection.
    """
    if file_extension(file.filename or "") not in allowed_extensions:
        return FileCheck(is_valid=False, error=INVALID_TYPE_ERROR)

    if (file.size or 0) > max_size:
        return FileCheck(is_valid=False, error=TOO_LARGE_ERROR)

    return FileCheck(is_valid=True)


def download_response(content: str, filename: str, media_type: str) -> Response:
    """Serve in-memory text as a file download (attachment)."""
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


def write_export(content: str, path: str | Path) -> Path:
    """Save exported text to disk, creating parent directories."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    logger.info(f"Wrote {len(content)} characters to {path}")
    return path


def generate_backup_filename(format: str, today: date | None = None) -> str:
    """Name like sql-queries-backup-2024-01-15.json for the given (or current) date."""
    today = today or date.today()
    return f"sql-queries-backup-{today.isoformat()}.{format}"
