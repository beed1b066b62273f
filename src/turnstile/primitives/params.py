"""Request parameter names and decoding helpers (RFC 6749 Appendix A)."""

from __future__ import annotations

import re
from typing import Mapping
from urllib.parse import parse_qs

PARAM_CLIENT_ID = "client_id"
PARAM_CLIENT_SECRET = "client_secret"
PARAM_GRANT_TYPE = "grant_type"
PARAM_REDIRECT_URI = "redirect_uri"
PARAM_STATE = "state"
PARAM_SCOPE = "scope"
PARAM_CODE = "code"
PARAM_CODE_CHALLENGE = "code_challenge"
PARAM_CODE_CHALLENGE_METHOD = "code_challenge_method"
PARAM_CODE_VERIFIER = "code_verifier"
PARAM_RESPONSE_TYPE = "response_type"

# A "%" not followed by two hex digits
_INVALID_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")

QueryValues = Mapping[str, list[str]]


def parse_space_separated(raw_value: str | None) -> tuple[str, ...]:
    """Split a space-delimited parameter (``scope``, ``response_type``).

    Order and duplicates are preserved. Empty tokens are dropped, so a blank
    value yields an empty tuple rather than a single empty string.
    """
    if raw_value is None:
        return ()

    return tuple(part for part in raw_value.strip().split(" ") if part)


def parse_query_string(raw: str) -> dict[str, list[str]]:
    """Decode an ``application/x-www-form-urlencoded`` string.

    Blank values are kept. Semicolon separators, malformed percent escapes
    and escapes that decode to invalid UTF-8 are rejected.

    Raises:
        ValueError: If the string is malformed
    """
    if ";" in raw:
        raise ValueError("invalid semicolon separator in query")

    match = _INVALID_ESCAPE.search(raw)
    if match:
        raise ValueError(f"invalid URL escape {raw[match.start():match.start() + 3]!r}")

    # UnicodeDecodeError is a ValueError
    return parse_qs(raw, keep_blank_values=True, errors="strict")


def first_value(values: QueryValues, key: str) -> str:
    """Return the first value for ``key``, or an empty string if absent."""
    found = values.get(key)
    return found[0] if found else ""
