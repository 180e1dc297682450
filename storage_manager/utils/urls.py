"""
URL and key helpers.
"""

import posixpath
from typing import Any
from urllib.parse import urlparse


def is_valid_url(value: Any) -> bool:
    """True for absolute http(s) URLs."""
    if not isinstance(value, str):
        return False
    parsed = urlparse(value)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def join_key(*parts: str) -> str:
    """Join object key segments with forward slashes, skipping empty parts."""
    cleaned = [part.strip("/") for part in parts if part and part.strip("/")]
    return posixpath.join(*cleaned) if cleaned else ""


def url_file_name(url: str) -> str:
    """Last path segment of a URL, possibly empty."""
    return posixpath.basename(urlparse(url).path)
