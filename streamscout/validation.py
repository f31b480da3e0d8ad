"""
Input validation for the public endpoints.

Both checks are pure and return a `ValidationResult`; invalid input is an
expected outcome, not an exception.
"""
from __future__ import annotations

import re
from dataclasses import dataclass

MAX_QUERY_LENGTH = 200
MAX_MOVIE_ID = 10_000_000

_CONTROL_CHARS_RE = re.compile(r"[\x00-\x1f]")
_INTEGER_RE = re.compile(r"[+-]?[0-9]+")


class ValidationError(ValueError):
    """Caller input is malformed; maps to HTTP 400 with `reason`."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    error: str | None = None

    def raise_for_error(self) -> None:
        if not self.valid:
            raise ValidationError(self.error or "Invalid input")


_OK = ValidationResult(valid=True)


def _invalid(reason: str) -> ValidationResult:
    return ValidationResult(valid=False, error=reason)


def validate_search_query(query: str | None) -> ValidationResult:
    if query is None:
        return _invalid("Query parameter is required")

    trimmed = query.strip()
    if not trimmed:
        return _invalid("Query cannot be empty")
    if len(trimmed) > MAX_QUERY_LENGTH:
        return _invalid(f"Query cannot exceed {MAX_QUERY_LENGTH} characters")
    if _CONTROL_CHARS_RE.search(trimmed):
        return _invalid("Query contains invalid control characters")
    return _OK


def validate_movie_id(movie_id: str | None) -> ValidationResult:
    if movie_id is None or not movie_id.strip():
        return _invalid("Movie ID is required")

    trimmed = movie_id.strip()
    # Leading integer part, the way a lenient parser would read "123.45" or "12abc".
    match = _INTEGER_RE.match(trimmed)
    if match is None:
        return _invalid("Movie ID must be a valid number")
    raw = match.group(0)
    digits = raw.lstrip("+-").lstrip("0")
    if raw.startswith("-") or not digits:
        return _invalid("Movie ID must be a positive number")
    # Checked on length first: int() refuses very long digit strings.
    if len(digits) > len(str(MAX_MOVIE_ID)):
        return _invalid("Movie ID exceeds maximum value")
    parsed = int(digits)
    if parsed > MAX_MOVIE_ID:
        return _invalid("Movie ID exceeds maximum value")
    if str(parsed) != trimmed:
        return _invalid("Movie ID must be an integer")
    return _OK


def parse_movie_id(movie_id: str | None) -> int:
    """Validate and convert, raising `ValidationError` on bad input."""
    if movie_id is None:
        raise ValidationError("Movie ID is required")
    validate_movie_id(movie_id).raise_for_error()
    return int(movie_id.strip())
