"""
Input validation helpers shared by the metadata registry and the query layer.
"""

import re
from typing import Any

from shared.config.constants import Limits

# Lowercase SQL identifiers only. Anything interpolated into a statement
# (table, column and alias names) must match this.
IDENTIFIER_PATTERN = re.compile(r"^[a-z_][a-z0-9_]*$")

_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f-\x9f]")


def is_safe_identifier(name: Any) -> bool:
    """Return True when ``name`` can be spliced into SQL as an identifier."""
    return (
        isinstance(name, str)
        and len(name) <= Limits.MAX_IDENTIFIER_LENGTH
        and IDENTIFIER_PATTERN.match(name) is not None
    )


def sanitize_search_term(term: Any, max_length: int = Limits.MAX_SEARCH_TERM_LENGTH) -> str:
    """
    Sanitize search term for safe use in queries.

    Non-string input yields an empty string.

    Args:
        term: The search term to sanitize
        max_length: Maximum allowed length

    Returns:
        Sanitized search term
    """
    if not term or not isinstance(term, str):
        return ""

    # Remove null bytes and other control characters
    term = _CONTROL_CHARS.sub("", term).strip()

    # Limit length
    if len(term) > max_length:
        term = term[:max_length].rstrip()

    return term


def is_numeric(value: Any) -> bool:
    """True for int/float values that are not booleans."""
    return isinstance(value, (int, float)) and not isinstance(value, bool)
