"""Entity-tag helpers for plan documents.

A plan's tag is the MD5 hex digest of its compact JSON serialization, so the
same document always yields the same tag and any edit yields a new one. MD5
is used for change detection only; it is not a tamper-proof signature.

Conditional headers are parsed here too, so routes and the controller never
compare raw header strings themselves.
"""

from __future__ import annotations

import hashlib
import json
import logging
from typing import Any

__all__ = [
    "TaggingError",
    "serialize_plan",
    "compute_plan_etag",
    "format_etag",
    "normalize_etag",
    "etag_matches",
]

logger = logging.getLogger(__name__)


class TaggingError(ValueError):
    """Raised when a document cannot be serialized for tagging."""


def serialize_plan(body: Any) -> str:
    """Serialize a document the way it is stored: compact JSON, key order kept."""
    try:
        return json.dumps(body, separators=(",", ":"), ensure_ascii=False, allow_nan=False)
    except (TypeError, ValueError) as e:
        raise TaggingError(f"document is not JSON-serializable: {e}") from e


def compute_plan_etag(body: Any) -> str:
    """Return the content tag for a plan document.

    Deterministic across identical content. Raises TaggingError for values
    JSON cannot represent (sets, NaN, arbitrary objects).
    """
    payload = serialize_plan(body).encode("utf-8")
    return hashlib.md5(payload, usedforsecurity=False).hexdigest()


def format_etag(tag: str) -> str:
    """Render a stored tag as a strong entity-tag header value."""
    return f'"{tag}"'


def normalize_etag(value: str | None) -> str:
    """Reduce an If-Match / If-None-Match header value to a bare tag.

    The value is one opaque token: surrounding whitespace and a single pair
    of surrounding quotes are removed, so the quoted tag this service emits
    compares equal to the stored one. Nothing else is interpreted.
    """
    if value is None:
        return ""
    s = value.strip()
    if len(s) >= 2 and s.startswith('"') and s.endswith('"'):
        s = s[1:-1]
    return s


def etag_matches(current: str, header_value: str | None) -> bool:
    """Return True when the header names exactly the current tag."""
    token = normalize_etag(header_value)
    matched = token != "" and token == current
    logger.debug("etag.compare", extra={"current": current, "header_token": token, "matched": matched})
    return matched
