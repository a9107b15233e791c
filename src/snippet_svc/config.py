"""Configuration for the snippet service."""

from __future__ import annotations

import os
from dataclasses import dataclass, field

# Environment variable pointing at a YAML/JSON config file
CONFIG_ENV_VAR = "SNIPPET_SVC_CONFIG"


@dataclass
class ServerConfig:
    """HTTP server configuration."""
    host: str = "0.0.0.0"
    port: int = 8060
    reload: bool = False


@dataclass
class StorageConfig:
    """On-disk stores for queries and tags/categories."""
    queries_path: str = "queries.yaml"
    tags_path: str = "tags.yaml"
    autosave: bool = True  # Persist after every mutating API call


@dataclass
class TransferConfig:
    """Export/import configuration."""
    allowed_extensions: list[str] = field(default_factory=lambda: [".json", ".sql"])
    max_file_size_bytes: int = 10 * 1024 * 1024  # 10MB
    format_version: str = "1.0.0"


@dataclass
class AnalysisConfig:
    """SQL analyzer toggles."""
    enabled: bool = True
    validate_on_save: bool = False  # Reject saves whose SQL has structural errors


@dataclass
class Config:
    """Main configuration container."""
    server: ServerConfig = field(default_factory=ServerConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    transfer: TransferConfig = field(default_factory=TransferConfig)
    analysis: AnalysisConfig = field(default_factory=AnalysisConfig)

    @classmethod
    def from_dict(cls, data: dict) -> Config:
        """Create config from dictionary."""
        return cls(
            server=ServerConfig(**data.get("server", {})),
            storage=StorageConfig(**data.get("storage", {})),
            transfer=TransferConfig(**data.get("transfer", {})),
            analysis=AnalysisConfig(**data.get("analysis", {})),
        )

    @classmethod
    def from_yaml(cls, path: str) -> Config:
        """Load config from YAML file."""
        import yaml
        with open(path, "r") as f:
            data = yaml.safe_load(f)
        return cls.from_dict(data or {})

    @classmethod
    def from_json(cls, path: str) -> Config:
        """Load config from JSON file."""
        import json
        with open(path, "r") as f:
            data = json.load(f)
        return cls.from_dict(data)

    @classmethod
    def load(cls, path: str | None = None) -> Config:
        """Load config from a file, the environment, or defaults.

        Args:
            path: Explicit config path. Falls back to $SNIPPET_SVC_CONFIG.

        Returns:
            The loaded Config (defaults when no file is configured).
        """
        path = path or os.environ.get(CONFIG_ENV_VAR)
        if not path:
            return cls()
        if path.endswith(".json"):
            return cls.from_json(path)
        return cls.from_yaml(path)
