"""
Read-only SQL guard for queries against the spatial cache

The cache connection itself runs with external access disabled; this guard
keeps statements to a single read-only query.
"""

import re

from .exceptions import SqlValidationError


FORBIDDEN_KEYWORDS = [
    "INSERT",
    "UPDATE",
    "DELETE",
    "DROP",
    "CREATE",
    "ALTER",
    "TRUNCATE",
    "ATTACH",
    "DETACH",
    "COPY",
    "EXPORT",
    "IMPORT",
    "PRAGMA",
    "VACUUM",
]

FILE_ACCESS_PATTERNS = [
    re.compile(r"read_csv", re.IGNORECASE),
    re.compile(r"read_parquet", re.IGNORECASE),
    re.compile(r"read_json", re.IGNORECASE),
    re.compile(r"read_blob", re.IGNORECASE),
    re.compile(r"read_text", re.IGNORECASE),
    re.compile(r"glob\s*\(", re.IGNORECASE),
]

_KEYWORD_PATTERNS = [(kw, re.compile(rf"\b{kw}\b", re.IGNORECASE)) for kw in FORBIDDEN_KEYWORDS]

# Single-quoted literal, '' is an escaped quote
_STRING_LITERAL = re.compile(r"'(?:[^']|'')*'")


def validate_select_sql(sql: str) -> None:
    """
    Allow only a single SELECT (or WITH ... SELECT) statement

    Keywords and semicolons inside string literals are ignored.

    Raises:
        SqlValidationError: If the statement could modify the database or touch files
    """
    stripped = sql.strip()
    upper_sql = stripped.upper()

    if not upper_sql.startswith("SELECT") and not upper_sql.startswith("WITH"):
        raise SqlValidationError("Only SELECT queries are allowed")

    code = _STRING_LITERAL.sub("''", stripped)

    if ";" in code.rstrip().rstrip(";"):
        raise SqlValidationError("Only a single statement is allowed")

    for keyword, pattern in _KEYWORD_PATTERNS:
        if pattern.search(code):
            raise SqlValidationError(f"Forbidden keyword: {keyword}")

    for pattern in FILE_ACCESS_PATTERNS:
        if pattern.search(code):
            raise SqlValidationError("File access functions are not allowed")
