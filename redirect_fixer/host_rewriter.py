"""
1.0 Host Rewriter
Moves URLs between environments (e.g. staging -> production).

Only URLs whose host is the home host (or a subdomain of it) are touched,
and only their host. Two phases, applied in order:
1. Base-domain swap: the home base domain (without `www.`) at the end of
   the host becomes the target base domain, so `shop.example.com` moves to
   `shop.staging.example.com`.
2. `www.` reconciliation on the host: stripped when the home host has it
   and the target does not, added when the reverse is true.

Hosts may be given bare (`www.example.com`) or as URLs
(`https://www.example.com/`); only their hostname is used. The URL keeps
its own scheme.
"""

import logging
from urllib.parse import urlsplit

from redirect_fixer.url_validator import is_absolute

logger = logging.getLogger(__name__)

WWW = "www."


def _host_of(value: str) -> str:
    """Hostname of a bare host or a full URL ('' when unparseable)."""
    if not value:
        return ""
    if "://" not in value:
        value = f"https://{value}"
    try:
        return (urlsplit(value).hostname or "").lower()
    except ValueError:
        return ""


def _strip_www(host: str) -> str:
    return host[len(WWW):] if host.startswith(WWW) else host


def _matches(host: str, domain: str) -> bool:
    """True when host is domain or one of its subdomains."""
    return host == domain or host.endswith(f".{domain}")


def _with_host(url: str, new_host: str) -> str:
    """Replace the URL's host, keeping userinfo and port."""
    netloc = urlsplit(url).netloc
    userinfo, at, hostport = netloc.rpartition("@")
    _, colon, port = hostport.partition(":")
    new_netloc = f"{userinfo}{at}{new_host}{colon}{port}"
    return url.replace(f"//{netloc}", f"//{new_netloc}", 1)


def _set_www(url: str, present: bool) -> str:
    """Add or remove the `www.` prefix on the URL's host only."""
    host = (urlsplit(url).hostname or "").lower()
    has_www = host.startswith(WWW)

    if present and not has_www:
        return _with_host(url, WWW + host)
    if not present and has_www:
        return _with_host(url, host[len(WWW):])
    return url


def rewrite_host(url: str, home_host: str, target_host: str) -> str:
    """
    2.0 Rewrite an absolute URL's host from home_host to target_host.

    Only the URL's host is edited: paths, query strings and fragments that
    mention either host are left alone. No-op when target_host is empty,
    when url is not absolute, or when its host is neither home_host nor a
    subdomain of it. Applying it twice gives the same result as applying
    it once.
    """
    if not target_host or not home_host:
        return url

    if not is_absolute(url):
        return url

    old_host = _host_of(home_host)
    new_host = _host_of(target_host)
    if not old_host or not new_host:
        return url

    try:
        host = (urlsplit(url).hostname or "").lower()
    except ValueError:
        return url
    if not host or not _matches(host, old_host):
        return url

    old_base = _strip_www(old_host)
    new_base = _strip_www(new_host)
    host_base = _strip_www(host)

    # 2.1 A host already under the target base is left alone when the target
    # is the more specific name (example.com -> staging.example.com)
    already_moved = _matches(host_base, new_base) and len(new_base) >= len(old_base)
    if not already_moved and _matches(host_base, old_base):
        prefix = WWW if host.startswith(WWW) else ""
        url = _with_host(url, prefix + host_base[:-len(old_base)] + new_base)

    # 2.2 Reconcile www. independently of the swap
    if old_host.startswith(WWW) and not new_host.startswith(WWW):
        url = _set_www(url, present=False)
    elif not old_host.startswith(WWW) and new_host.startswith(WWW):
        url = _set_www(url, present=True)

    return url


def to_absolute(path_or_url: str, target_host: str) -> str:
    """
    3.0 Turn a relative path into an https URL under target_host.

    Absolute URLs are returned unchanged, protocol-relative ones get
    `https:`. Without a target_host the input is returned as-is.
    """
    if not path_or_url or is_absolute(path_or_url):
        return path_or_url

    if path_or_url.startswith("//"):
        return f"https:{path_or_url}"

    if not target_host:
        return path_or_url

    base = target_host if "://" in target_host else f"https://{target_host}"
    return f"{base.rstrip('/')}/{path_or_url.lstrip('/')}"


def process_url(url: str, home_host: str, target_host: str) -> str:
    """Absolutize a list entry under target_host, then rewrite its host."""
    url = (url or "").strip()
    if not url:
        return url
    return rewrite_host(to_absolute(url, target_host), home_host, target_host)
