"""URL combination and parameter filtering.

Both functions are pure; the builder calls them but they do not depend on it.
"""

from __future__ import annotations

import re
from urllib.parse import urlsplit

from rest_builder.models import Pair


class InvalidUrlError(ValueError):
    """Raised when a base URL and path do not combine into an absolute URI."""


def _is_blank(value: str | None) -> bool:
    return value is None or not value.strip()


def is_valid_pair(pair: Pair) -> bool:
    """True if both name and value are present and not whitespace-only."""
    name, value = pair
    return not _is_blank(name) and not _is_blank(value)


def combine_url(base_url: str | None, path: str | None) -> str:
    """Join base_url and path, collapsing doubled slashes outside the scheme.

    The base is followed by a "/" separator unless it is blank, in which case
    it is omitted entirely and path must itself be absolute. Once the
    "scheme://" marker is removed, runs of slashes are collapsed until no "//"
    remains, so "http://h/" + "/v1/x" gives "http://h/v1/x".

    Args:
        base_url: Base URL, or None/blank for none.
        path: Path relative to base_url, or an absolute URL when there is no base.

    Returns:
        The combined absolute URL.

    Raises:
        InvalidUrlError: If the joined string has no scheme or authority, or
            its port or host is malformed.
    """
    prefix = "" if _is_blank(base_url) else f"{base_url}/"
    combined = f"{prefix}{path or ''}".strip()

    try:
        parts = urlsplit(combined)
        # Port is only validated on access
        parts.port
    except ValueError as e:
        raise InvalidUrlError(f"Invalid URL '{combined}': {e}") from e

    if not parts.scheme or not parts.netloc:
        raise InvalidUrlError(f"Invalid URL '{combined}': not an absolute URI")
    if any(ch.isspace() for ch in parts.netloc):
        raise InvalidUrlError(f"Invalid URL '{combined}': whitespace in host")

    # urlsplit lower-cases the scheme, so "HTTP://" must match too
    marker = f"{parts.scheme}://"
    combined = re.sub(re.escape(marker), "", combined, flags=re.IGNORECASE)
    while "//" in combined:
        combined = combined.replace("//", "/")
    return f"{marker}{combined}"
