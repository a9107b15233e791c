"""SQL Analysis - heuristic lint, classification and formatting of SQL snippets.

This module provides:
- Syntax sanity checks (parentheses, quotes) reported as errors
- Style and safety warnings (SELECT *, unscoped writes, injection patterns)
- Performance suggestions and a weighted complexity estimate
- Cosmetic formatting and rough structural insights
"""

from .analyzer import (
    Complexity,
    DEFAULT_RULES,
    EMPTY_QUERY_ERROR,
    Finding,
    QueryInsights,
    QueryType,
    Severity,
    SqlAnalyzer,
    ValidationResult,
    format_sql,
    get_query_insights,
    validate,
)

__all__ = [
    # Types
    "Complexity",
    "Finding",
    "QueryInsights",
    "QueryType",
    "Severity",
    "ValidationResult",
    "DEFAULT_RULES",
    "EMPTY_QUERY_ERROR",
    # Services
    "SqlAnalyzer",
    "validate",
    "format_sql",
    "get_query_insights",
]
