"""
Query Layer

Versioned query records: the shared record shape, the in-memory registry
that saves and edits them, and YAML persistence.
"""

from .types import QueryRecord, QueryVersion, Visibility
from .registry import QueryRegistry, EDITABLE_FIELDS
from .loader import load_queries_from_yaml, save_queries_to_yaml

__all__ = [
    "QueryRecord",
    "QueryVersion",
    "Visibility",
    "QueryRegistry",
    "EDITABLE_FIELDS",
    "load_queries_from_yaml",
    "save_queries_to_yaml",
]
