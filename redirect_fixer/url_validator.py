"""
1.0 URL Validator
Pragmatic normalization/validation for HTTP(S) URLs.

Not a full RFC 3986 parser: an URL is accepted when, after trimming, it has
an http/https scheme, a syntactically valid host, an optional numeric port,
and no embedded whitespace.
"""

import logging
import re
from typing import Optional
from urllib.parse import urlsplit

logger = logging.getLogger(__name__)

ALLOWED_SCHEMES = ("http", "https")

# Labels of letters, digits and hyphens (IDN already punycoded), or an IPv4 address
_HOST_RE = re.compile(
    r'^(?:[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?\.)*[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?\.?$',
    re.IGNORECASE,
)
_WHITESPACE_RE = re.compile(r'\s')


def is_absolute(url: str) -> bool:
    """True iff the URL parses with both a scheme and a host."""
    if not url:
        return False
    try:
        parts = urlsplit(url.strip())
    except ValueError:
        return False
    return bool(parts.scheme) and bool(parts.hostname)


def normalize(raw: Optional[str]) -> Optional[str]:
    """
    2.0 Normalize and validate a URL.

    Returns the trimmed URL, or None when it is empty, relative, not
    http(s), or its host/port is malformed. Never fetches anything.
    """
    if raw is None:
        return None

    url = raw.strip()
    if not url:
        return None

    if _WHITESPACE_RE.search(url):
        logger.debug(f"Rejecting URL with embedded whitespace: {url!r}")
        return None

    try:
        parts = urlsplit(url)
        # Accessing .port raises ValueError on a non-numeric/out-of-range port
        parts.port
    except ValueError:
        logger.debug(f"Rejecting unparseable URL: {url!r}")
        return None

    if parts.scheme.lower() not in ALLOWED_SCHEMES:
        return None

    host = parts.hostname
    if not host or not _HOST_RE.match(host):
        return None

    return url
