"""
Data models shared by the resolver, the batch runner and the formatters.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Dict, List, Any, Tuple

import pandas as pd

from redirect_fixer.host_rewriter import rewrite_host, to_absolute

TRANSIENT_CODES = (401, 403, 429, 500, 502, 503, 504)
MISSING_CODES = (404, 410)
TEMPORARY_REDIRECT_CODES = (302, 303, 307, 308)
BROKEN_LINK_CODES = (404, 410, 500, 502, 503, 504)


class Outcome(str, Enum):
    """Classification of one resolution."""
    RESOLVED = "resolved"
    REDIRECTED = "redirected"
    TRANSIENT = "transient"
    BROKEN = "broken"
    INVALID = "invalid"
    TRANSPORT_ERROR = "transport_error"
    # Any other non-200 status (e.g. 400, 405, a 3xx without Location)
    OTHER = "other"


@dataclass(frozen=True)
class RewriteRule:
    """A (home_host, target_host) pair; empty target_host disables rewriting."""
    home_host: str = ""
    target_host: str = ""

    def rewrite(self, url: str) -> str:
        return rewrite_host(url, self.home_host, self.target_host)

    def absolutize(self, url: str) -> str:
        return to_absolute(url, self.target_host)


@dataclass(frozen=True)
class ResolveRequest:
    """Immutable input to one resolution."""
    target_url: str
    existing_hint: Optional[str] = None
    home_host: str = ""
    target_host: str = ""
    credentials: Optional[Tuple[str, str]] = None

    @property
    def rule(self) -> RewriteRule:
        return RewriteRule(self.home_host, self.target_host)


@dataclass(frozen=True)
class ResolveResult:
    """
    Outcome of a resolution.

    status_code is 0 for INVALID and TRANSPORT_ERROR (no HTTP status was
    received); error carries the transport's reason in that case.
    """
    outcome: Outcome
    status_code: int
    final_location: str
    chain_length: int = 0
    error: Optional[str] = None

    @property
    def is_resolved(self) -> bool:
        return self.outcome is Outcome.RESOLVED

    @property
    def is_failure(self) -> bool:
        return self.outcome in (Outcome.INVALID, Outcome.TRANSPORT_ERROR)


@dataclass
class Document:
    """A document of the content store (a post, page, product...)."""
    id: int
    title: str = ""
    permalink: str = ""
    body: str = ""
    slug: str = ""
    kind: str = "post"
    status: str = "publish"


@dataclass
class BatchRecord:
    """One row of a batch report."""
    original_url: str
    final_url: str
    status_code: int
    source_document_id: Optional[int] = None
    source_title: Optional[str] = None
    source_permalink: Optional[str] = None
    error: Optional[str] = None

    @property
    def has_source(self) -> bool:
        return self.source_document_id is not None

    def to_dict(self, include_final_url: bool = True) -> Dict[str, Any]:
        """Serialize with the output field names (post_* for provenance)."""
        record: Dict[str, Any] = {'original_url': self.original_url}
        if include_final_url:
            record['final_url'] = self.final_url
        record['status_code'] = self.status_code
        if self.has_source:
            record['post_id'] = self.source_document_id
            record['post_title'] = self.source_title or ''
            record['permalink'] = self.source_permalink or ''
        return record


@dataclass
class BatchReport:
    """Aggregated result of one batch run; owned by the BatchRunner."""
    found: int = 0
    skipped: int = 0
    redirects: List[BatchRecord] = field(default_factory=list)
    broken_links: List[BatchRecord] = field(default_factory=list)
    errors: List[BatchRecord] = field(default_factory=list)
    processed: int = 0
    cancelled: bool = False

    def to_dataframe(self, bucket: str = "redirects") -> pd.DataFrame:
        """Expose one bucket (redirects, broken_links, errors) as a DataFrame."""
        records = getattr(self, bucket)
        include_final_url = bucket != "broken_links"
        rows = [r.to_dict(include_final_url=include_final_url) for r in records]
        return pd.DataFrame(rows)
