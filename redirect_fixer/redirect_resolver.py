"""
1.0 Redirect Resolver
Resolves one URL to its final, stable destination.

Status-code policy (in priority order):
- 301 + Location        -> follow (the only code treated as permanent)
- 302/303/307/308 + Loc -> REDIRECTED, Location reported, not followed
- 404/410               -> existing redirect hint, then slug lookup, else BROKEN
- 401/403/429/5xx       -> TRANSIENT, reported as-is (possibly temporary)
- other non-200         -> OTHER, reported as-is
- 200                   -> RESOLVED at the URL actually reached

Every hop is rewritten with the request's (home_host, target_host) rule and
validated before any network call. The chain is bounded by max_redirects;
exceeding it is reported as a TRANSPORT_ERROR with error 'redirect_loop'.

Usage:
    resolver = RedirectResolver(config=ResolverConfig(timeout_seconds=30))
    result = resolver.resolve(ResolveRequest("https://example.com/old/"))
"""

import logging
from typing import Optional, Any
from urllib.parse import urljoin

from redirect_fixer.config import ResolverConfig
from redirect_fixer.content_lookup import ContentFallbackLookup
from redirect_fixer.errors import TransportFailure
from redirect_fixer.http_client import HeadClient
from redirect_fixer.models import (
    MISSING_CODES,
    TEMPORARY_REDIRECT_CODES,
    TRANSIENT_CODES,
    Outcome,
    ResolveRequest,
    ResolveResult,
)
from redirect_fixer.url_validator import is_absolute, normalize


class RedirectResolver:
    """
    2.0 RedirectResolver Class

    Collaborators are injected: an HTTP client with a
    `head(url, timeout=..., credentials=...)` method returning an object with
    `status_code` and `location`, and an optional ContentFallbackLookup.
    """

    def __init__(
        self,
        http_client: Optional[Any] = None,
        content_lookup: Optional[ContentFallbackLookup] = None,
        config: Optional[ResolverConfig] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.config = config or ResolverConfig()
        self._owns_client = http_client is None
        self.http_client = http_client or HeadClient(self.config)
        self.content_lookup = content_lookup
        self.logger = logger or logging.getLogger(__name__)

    def close(self) -> None:
        """Close the HEAD client if this resolver created it."""
        if self._owns_client:
            self.http_client.close()

    def resolve(self, request: ResolveRequest) -> ResolveResult:
        """
        3.0 Resolve request.target_url.

        Never raises for network or input problems: every failure is a
        ResolveResult (INVALID, TRANSPORT_ERROR, BROKEN, TRANSIENT...).
        """
        url = request.target_url
        chain_length = 0

        while True:
            current = normalize(request.rule.rewrite(url or ""))

            # 3.1 Invalid input short-circuits before any network call
            if current is None:
                self._trace(
                    logging.ERROR, f"Invalid URL: {url}",
                    event="error", url=url, decision="invalid", chain_length=chain_length,
                )
                return ResolveResult(Outcome.INVALID, 0, url or "", chain_length, error="invalid_url")

            if chain_length == 0:
                self._trace(logging.INFO, f"Fetching {current}", event="fetch", url=current, chain_length=0)
            else:
                self._trace(
                    logging.INFO, f"-- Following {current}",
                    event="follow", url=current, chain_length=chain_length,
                )

            # 3.2 One HEAD request, redirects disabled at the transport
            try:
                response = self.http_client.head(
                    current,
                    timeout=self.config.timeout_seconds,
                    credentials=request.credentials,
                )
            except TransportFailure as e:
                self._trace(
                    logging.ERROR, f"Error fetching url: {e.code} {e.message}",
                    event="error", url=current, decision=e.code, chain_length=chain_length,
                )
                return ResolveResult(Outcome.TRANSPORT_ERROR, 0, current, chain_length, error=e.code)

            code = response.status_code
            location = response.location
            next_url = None

            # 3.3 Permanent redirect: follow
            if code == 301 and location:
                self._trace(
                    logging.INFO, f"-- {code} found",
                    event="status", url=current, status=code, decision="follow", chain_length=chain_length,
                )
                next_url = urljoin(current, location)

            # 3.4 Temporary redirects: report, don't follow
            elif code in TEMPORARY_REDIRECT_CODES and location:
                self._trace(
                    logging.INFO, f"-- {code} found",
                    event="status", url=current, status=code, decision="report", chain_length=chain_length,
                )
                return ResolveResult(Outcome.REDIRECTED, code, urljoin(current, location), chain_length + 1)

            # 3.5 Missing or gone: existing redirect, then slug lookup
            elif code in MISSING_CODES:
                existing = self._existing_target(request, current)
                if existing and existing != current:
                    self._trace(
                        logging.INFO, f"-- {code}, checking existing redirect",
                        event="existing", url=current, status=code, decision="existing", chain_length=chain_length,
                    )
                    next_url = existing
                else:
                    return self._slug_fallback(current, code, chain_length)

            # 3.6 Temporary origin issues: skip entirely
            elif code in TRANSIENT_CODES:
                self._trace(
                    logging.WARNING, f"-- {code} found, skipping (may be temporary)",
                    event="status", url=current, status=code, decision="transient", chain_length=chain_length,
                )
                return ResolveResult(Outcome.TRANSIENT, code, current, chain_length)

            elif code != 200:
                self._trace(
                    logging.INFO, f"-- {code} found",
                    event="status", url=current, status=code, decision="other", chain_length=chain_length,
                )
                return ResolveResult(Outcome.OTHER, code, current, chain_length)

            else:
                self._trace(
                    logging.INFO, f"-- {code} {current}",
                    event="status", url=current, status=code, decision="resolved", chain_length=chain_length,
                )
                return ResolveResult(Outcome.RESOLVED, code, current, chain_length)

            # 3.7 Bounded chain: a loop never runs past max_redirects
            if chain_length + 1 > self.config.max_redirects:
                self._trace(
                    logging.ERROR,
                    f"-- Redirect loop detected after {chain_length} redirects at {current}",
                    event="error", url=current, status=code, decision="redirect_loop", chain_length=chain_length,
                )
                return ResolveResult(
                    Outcome.TRANSPORT_ERROR, 0, current, chain_length, error="redirect_loop"
                )

            url = next_url
            chain_length += 1

    def _existing_target(self, request: ResolveRequest, current: str) -> Optional[str]:
        """The existing redirect hint, absolutized/rewritten, or None when unusable."""
        hint = (request.existing_hint or "").strip()
        if not hint:
            return None

        if is_absolute(hint):
            hint = request.rule.rewrite(hint)
        elif request.target_host:
            hint = request.rule.absolutize(hint)
        else:
            hint = urljoin(current, hint)

        return normalize(hint)

    def _slug_fallback(self, current: str, code: int, chain_length: int) -> ResolveResult:
        self._trace(
            logging.INFO, f"-- {code} found, checking for slug",
            event="lookup", url=current, status=code, decision="lookup", chain_length=chain_length,
        )

        post_url = self.content_lookup.find(current) if self.content_lookup else None
        if post_url:
            self._trace(
                logging.INFO, f"-- 200 {post_url}",
                event="status", url=post_url, status=200, decision="resolved", chain_length=chain_length,
            )
            return ResolveResult(Outcome.RESOLVED, 200, post_url, chain_length)

        self._trace(
            logging.INFO, f"-- {code} found",
            event="status", url=current, status=code, decision="broken", chain_length=chain_length,
        )
        return ResolveResult(Outcome.BROKEN, code, current, chain_length)

    def _trace(self, level: int, message: str, **event: Any) -> None:
        """Log message with a structured trace event attached as `record.trace`."""
        event.setdefault("status", None)
        event.setdefault("decision", None)
        self.logger.log(level, message, extra={"trace": event})
