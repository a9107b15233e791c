"""SQL Analyzer - Heuristic lint, classification and complexity for SQL snippets.

This is a text analyzer, not a parser: every rule is a regex or substring
predicate over the raw text (or an uppercased copy). Quotes inside comments,
escaped quotes and keywords inside string literals are not understood.
"""

from __future__ import annotations

import re
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Callable


class QueryType(str, Enum):
    """Statement classification by leading keyword."""

    SELECT = "SELECT"
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    CREATE = "CREATE"
    DROP = "DROP"
    ALTER = "ALTER"
    UNKNOWN = "UNKNOWN"


class Complexity(str, Enum):
    """Ordinal bucket for the weighted complexity score."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class Severity(str, Enum):
    """Where a finding lands in the validation result."""

    ERROR = "error"
    WARNING = "warning"
    SUGGESTION = "suggestion"


@dataclass(frozen=True)
class Finding:
    """A single rule hit."""

    severity: Severity
    message: str


@dataclass
class ValidationResult:
    """Outcome of SqlAnalyzer.validate. Only errors affect validity."""

    is_valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    suggestions: list[str] = field(default_factory=list)
    query_type: QueryType = QueryType.UNKNOWN
    estimated_complexity: Complexity = Complexity.LOW

    def to_dict(self) -> dict:
        data = asdict(self)
        data["query_type"] = self.query_type.value
        data["estimated_complexity"] = self.estimated_complexity.value
        return data


@dataclass
class QueryInsights:
    """Rough structural counts for a query."""

    table_count: int
    column_count: int
    join_count: int
    condition_count: int
    has_aggregation: bool
    has_subquery: bool

    def to_dict(self) -> dict:
        return asdict(self)


EMPTY_QUERY_ERROR = "SQL query cannot be empty"

# A rule sees the trimmed SQL and its uppercased copy
Rule = Callable[[str, str], list[Finding]]


def _error(message: str) -> Finding:
    return Finding(Severity.ERROR, message)


def _warning(message: str) -> Finding:
    return Finding(Severity.WARNING, message)


def _suggestion(message: str) -> Finding:
    return Finding(Severity.SUGGESTION, message)


def _lacks_limit(upper_sql: str) -> bool:
    return "LIMIT" not in upper_sql and "TOP" not in upper_sql


# =============================================================================
# Structural rules (errors)
# =============================================================================

def check_parentheses(sql: str, upper_sql: str) -> list[Finding]:
    """Running counter: must never go negative and must end at zero."""
    depth = 0
    for char in sql:
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
        if depth < 0:
            return [_error("Unmatched closing parenthesis")]
    if depth > 0:
        return [_error("Unmatched opening parenthesis")]
    return []


def check_quotes(sql: str, upper_sql: str) -> list[Finding]:
    """Odd quote counts. Character counts only, escapes are not understood."""
    findings = []
    if sql.count("'") % 2 != 0:
        findings.append(_error("Unmatched single quote"))
    if sql.count('"') % 2 != 0:
        findings.append(_error("Unmatched double quote"))
    return findings


# =============================================================================
# Style rules (warnings, some with a paired suggestion)
# =============================================================================

def check_semicolon(sql: str, upper_sql: str) -> list[Finding]:
    if not sql.endswith(";"):
        return [_warning("Query should end with a semicolon (;)")]
    return []


def check_select_without_from(sql: str, upper_sql: str) -> list[Finding]:
    # DUAL covers dialect-specific constant selects
    if "SELECT" in upper_sql and "FROM" not in upper_sql and "DUAL" not in upper_sql:
        return [_warning(
            "SELECT statement without FROM clause - consider adding FROM clause or using SELECT 1"
        )]
    return []


def check_select_star(sql: str, upper_sql: str) -> list[Finding]:
    if "SELECT *" in upper_sql:
        return [
            _warning("Using SELECT * can impact performance"),
            _suggestion("Consider specifying only the columns you need"),
        ]
    return []


def check_unscoped_write(sql: str, upper_sql: str) -> list[Finding]:
    if ("UPDATE" in upper_sql or "DELETE" in upper_sql) and "WHERE" not in upper_sql:
        return [
            _warning("UPDATE/DELETE without WHERE clause affects all rows"),
            _suggestion("Add a WHERE clause to limit the affected rows"),
        ]
    return []


def check_injection_pattern(sql: str, upper_sql: str) -> list[Finding]:
    # Case-sensitive on purpose: "' or " does not trigger
    if "'" in sql and ("' OR " in sql or "' AND " in sql):
        return [
            _warning("Potential SQL injection pattern detected"),
            _suggestion("Use parameterized queries to prevent SQL injection"),
        ]
    return []


_LIKE_WITHOUT_WILDCARD = re.compile(r"""LIKE\s+['"][^%_]*['"]""", re.IGNORECASE)


def check_like_without_wildcard(sql: str, upper_sql: str) -> list[Finding]:
    if _LIKE_WITHOUT_WILDCARD.search(sql):
        return [_warning("LIKE clause without wildcards (% or _) - consider using = instead")]
    return []


def check_order_by_without_limit(sql: str, upper_sql: str) -> list[Finding]:
    if "ORDER BY" in upper_sql and _lacks_limit(upper_sql):
        return [
            _warning("ORDER BY without LIMIT sorts the entire result set"),
            _suggestion("Consider adding LIMIT clause when using ORDER BY for better performance"),
        ]
    return []


# =============================================================================
# Performance rules (suggestions only)
# =============================================================================

def suggest_where_index(sql: str, upper_sql: str) -> list[Finding]:
    if "WHERE" in upper_sql:
        return [_suggestion("Ensure columns in WHERE clause are indexed for better performance")]
    return []


_FUNCTION_IN_WHERE = re.compile(r"WHERE.*\w+\s*\(")


def suggest_no_functions_in_where(sql: str, upper_sql: str) -> list[Finding]:
    if _FUNCTION_IN_WHERE.search(upper_sql):
        return [_suggestion(
            "Avoid using functions in WHERE clause - consider computed columns or different approach"
        )]
    return []


def suggest_limit(sql: str, upper_sql: str) -> list[Finding]:
    if "SELECT" in upper_sql and _lacks_limit(upper_sql):
        return [_suggestion("Consider adding LIMIT clause to prevent large result sets")]
    return []


def suggest_exists_over_in(sql: str, upper_sql: str) -> list[Finding]:
    if "IN (SELECT" in upper_sql:
        return [_suggestion(
            "Consider using EXISTS instead of IN with subqueries for better performance"
        )]
    return []


# Evaluation order is significant: it fixes the order of messages in each list
DEFAULT_RULES: tuple[Rule, ...] = (
    check_parentheses,
    check_quotes,
    check_semicolon,
    check_select_without_from,
    check_select_star,
    check_unscoped_write,
    check_injection_pattern,
    check_like_without_wildcard,
    check_order_by_without_limit,
    suggest_where_index,
    suggest_no_functions_in_where,
    suggest_limit,
    suggest_exists_over_in,
)


class SqlAnalyzer:
    """Validates, classifies, scores and reformats SQL snippets."""

    QUERY_TYPE_PREFIXES = (
        QueryType.SELECT,
        QueryType.INSERT,
        QueryType.UPDATE,
        QueryType.DELETE,
        QueryType.CREATE,
        QueryType.DROP,
        QueryType.ALTER,
    )

    # Complexity weights and bucket thresholds
    JOIN_WEIGHT = 2
    PAREN_WEIGHT = 1.5
    UNION_WEIGHT = 3
    AGGREGATE_WEIGHT = 1
    WINDOW_WEIGHT = 4
    LOW_THRESHOLD = 3
    MEDIUM_THRESHOLD = 8

    AGGREGATE_PATTERN = re.compile(r"COUNT|SUM|AVG|MIN|MAX|GROUP BY")
    WINDOW_PATTERN = re.compile(r"OVER\s*\(")

    # Clause keywords that start a new line in format_sql; longest variants first
    CLAUSE_PATTERN = re.compile(
        r"\s*\b("
        r"(?:(?:INNER|LEFT|RIGHT|FULL|CROSS)\s+(?:OUTER\s+)?)?JOIN"
        r"|FROM|WHERE|GROUP\s+BY|HAVING|ORDER\s+BY|LIMIT"
        r")\b",
        re.IGNORECASE,
    )
    SELECT_PATTERN = re.compile(r"\bSELECT\b", re.IGNORECASE)

    TABLE_PATTERN = re.compile(r"FROM\s+\w+|JOIN\s+\w+")
    SELECT_LIST_PATTERN = re.compile(r"SELECT\s+(.*?)(?:\bFROM\b|$)", re.IGNORECASE | re.DOTALL)
    CONDITION_PATTERN = re.compile(r"WHERE|AND|OR")
    SUBQUERY_PATTERN = re.compile(r"SELECT.*FROM", re.IGNORECASE)

    def __init__(self, rules: tuple[Rule, ...] = DEFAULT_RULES):
        """Initialize the analyzer.

        Args:
            rules: Ordered rule predicates to evaluate in validate().
        """
        self.rules = rules

    def validate(self, sql: str) -> ValidationResult:
        """Run every rule over the SQL text.

        Args:
            sql: Raw SQL text, possibly empty.

        Returns:
            A ValidationResult; never raises for any string input.
        """
        trimmed = (sql or "").strip()
        if not trimmed:
            return ValidationResult(
                is_valid=False,
                errors=[EMPTY_QUERY_ERROR],
                query_type=QueryType.UNKNOWN,
                estimated_complexity=Complexity.LOW,
            )

        upper_sql = trimmed.upper()
        buckets: dict[Severity, list[str]] = {severity: [] for severity in Severity}
        for rule in self.rules:
            for finding in rule(trimmed, upper_sql):
                buckets[finding.severity].append(finding.message)

        errors = buckets[Severity.ERROR]
        return ValidationResult(
            is_valid=not errors,
            errors=errors,
            warnings=buckets[Severity.WARNING],
            suggestions=buckets[Severity.SUGGESTION],
            query_type=self.get_query_type(trimmed),
            estimated_complexity=self.estimate_complexity(trimmed),
        )

    def get_query_type(self, sql: str) -> QueryType:
        """Classify by case-insensitive leading keyword."""
        upper_sql = sql.strip().upper()
        for query_type in self.QUERY_TYPE_PREFIXES:
            if upper_sql.startswith(query_type.value):
                return query_type
        return QueryType.UNKNOWN

    def complexity_score(self, sql: str) -> float:
        """Weighted count of joins, parentheses, unions, aggregates and windows.

        Matches are plain substrings of the uppercased text, so e.g. the MIN
        in ADMIN counts as an aggregate.
        """
        upper_sql = sql.upper()
        join_count = upper_sql.count("JOIN")
        paren_count = upper_sql.count("(")
        union_count = upper_sql.count("UNION")
        aggregate_count = len(self.AGGREGATE_PATTERN.findall(upper_sql))
        window_count = len(self.WINDOW_PATTERN.findall(upper_sql))

        return (
            join_count * self.JOIN_WEIGHT +
            paren_count * self.PAREN_WEIGHT +
            union_count * self.UNION_WEIGHT +
            aggregate_count * self.AGGREGATE_WEIGHT +
            window_count * self.WINDOW_WEIGHT
        )

    def estimate_complexity(self, sql: str) -> Complexity:
        score = self.complexity_score(sql)
        if score <= self.LOW_THRESHOLD:
            return Complexity.LOW
        if score <= self.MEDIUM_THRESHOLD:
            return Complexity.MEDIUM
        return Complexity.HIGH

    def format_sql(self, sql: str) -> str:
        """Cosmetic re-indentation.

        Collapses whitespace, breaks the line after each comma and before the
        major clause keywords. Keywords inside string literals or identifiers
        are rewritten as well.
        """
        formatted = re.sub(r"\s+", " ", sql)
        formatted = re.sub(r",\s*", ",\n  ", formatted)
        formatted = self.SELECT_PATTERN.sub("SELECT", formatted)
        formatted = self.CLAUSE_PATTERN.sub(
            lambda m: "\n" + re.sub(r"\s+", " ", m.group(1).upper()),
            formatted,
        )
        return formatted.strip()

    def get_query_insights(self, sql: str) -> QueryInsights:
        """Rough counts derived from token adjacency; overcounts freely."""
        upper_sql = sql.upper()

        select_list = self.SELECT_LIST_PATTERN.search(sql)
        column_count = len(select_list.group(1).split(",")) if select_list else 0

        return QueryInsights(
            table_count=len(self.TABLE_PATTERN.findall(upper_sql)),
            column_count=column_count,
            join_count=upper_sql.count("JOIN"),
            condition_count=len(self.CONDITION_PATTERN.findall(upper_sql)),
            has_aggregation=self.AGGREGATE_PATTERN.search(upper_sql) is not None,
            has_subquery="(" in sql and self.SUBQUERY_PATTERN.search(sql) is not None,
        )


_default_analyzer = SqlAnalyzer()


def validate(sql: str) -> ValidationResult:
    """Validate SQL with the default rule set."""
    return _default_analyzer.validate(sql)


def format_sql(sql: str) -> str:
    """Re-indent SQL with the default analyzer."""
    return _default_analyzer.format_sql(sql)


def get_query_insights(sql: str) -> QueryInsights:
    """Structural counts with the default analyzer."""
    return _default_analyzer.get_query_insights(sql)
