# =============================================================================
# lib/utils.py - Shared Utilities
# =============================================================================
# Common helpers for talking to external HTTP APIs:
# - Lenient response body parsing (JSON when possible, raw text otherwise)
# - Bearer auth headers
# - Short, readable descriptions of error bodies
# =============================================================================

import json
from typing import Any

import httpx

# Longest error body excerpt appended to a failure message
MAX_DETAIL_LENGTH = 200

# Fields commonly used by APIs to explain an error
_DETAIL_KEYS = ("detail", "message", "error")


# =============================================================================
# Response Parsing
# =============================================================================

def parse_response_body(response: httpx.Response) -> Any:
    """
    Parse a response body without ever raising.

    Returns:
        None for an empty body, the decoded JSON value when the body is
        valid JSON, otherwise the raw text.

    Example:
        parse_response_body(httpx.Response(200, text='{"a": 1}'))  # {"a": 1}
        parse_response_body(httpx.Response(502, text="Bad gateway"))  # "Bad gateway"
    """
    text = response.text
    if not text:
        return None

    try:
        return json.loads(text)
    except ValueError:
        return text


def describe_body(body: Any) -> str | None:
    """
    Pull a short human-readable detail out of a parsed error body.

    Raw text is used as-is; objects contribute their first string
    detail/message/error field. Anything else yields None.
    """
    detail = None
    if isinstance(body, str):
        detail = body
    elif isinstance(body, dict):
        for key in _DETAIL_KEYS:
            value = body.get(key)
            if isinstance(value, str) and value.strip():
                detail = value
                break

    if detail is None:
        return None

    detail = " ".join(detail.split())
    if not detail:
        return None
    if len(detail) > MAX_DETAIL_LENGTH:
        detail = detail[:MAX_DETAIL_LENGTH] + "..."
    return detail


# =============================================================================
# Headers
# =============================================================================

def bearer_headers(token: str) -> dict[str, str]:
    """Headers for an authenticated JSON POST."""
    return {
        "Authorization": f"Bearer {token}",
        "Content-Type": "application/json",
    }


def compact_json(value: Any) -> str:
    """Render a value as compact JSON (no whitespace between tokens)."""
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False, default=str)
