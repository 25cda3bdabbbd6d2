"""
1.0 Content Fallback Lookup
Last-resort lookup of a live document for a dead URL.

Only shallow paths are considered (one or two segments, e.g. `/my-post/`
or `/blog/my-post/`); the last segment is used as the document slug.
"""

import logging
from abc import ABC, abstractmethod
from typing import Iterable, List, Optional, Set, Sequence
from urllib.parse import urlsplit, unquote

from redirect_fixer.models import Document

logger = logging.getLogger(__name__)

MAX_PATH_SEGMENTS = 2

# WordPress post types that never have a public permalink
INTERNAL_KINDS = {
    "revision",
    "nav_menu_item",
    "custom_css",
    "customize_changeset",
    "oembed_cache",
    "user_request",
    "wp_block",
    "wp_template",
    "wp_template_part",
    "wp_global_styles",
    "wp_navigation",
}


class ContentStore(ABC):
    """Where published documents are looked up by identifier (slug)."""

    @abstractmethod
    def public_kinds(self) -> Set[str]:
        """All publicly visible document kinds."""

    @abstractmethod
    def find_published_by_identifier(self, identifier: str, kinds: Iterable[str]) -> Optional[str]:
        """Canonical URL of the single published document matching identifier, else None."""


class DocumentCollection(ContentStore):
    """
    2.0 In-memory document set.

    Serves both as the batch runner's document source and as the content
    store behind the fallback lookup.
    """

    def __init__(self, documents: Optional[Iterable[Document]] = None):
        self.documents: List[Document] = list(documents or [])

    def __len__(self) -> int:
        return len(self.documents)

    def __iter__(self):
        return iter(self.documents)

    def public_kinds(self) -> Set[str]:
        return {d.kind for d in self.documents if d.kind and d.kind not in INTERNAL_KINDS}

    def find_published_by_identifier(self, identifier: str, kinds: Iterable[str]) -> Optional[str]:
        kinds = set(kinds)
        permalinks = {
            d.permalink
            for d in self.documents
            if d.slug == identifier and d.status == "publish" and d.kind in kinds and d.permalink
        }
        if len(permalinks) > 1:
            logger.warning(
                f"-- {len(permalinks)} published documents match '{identifier}', not picking one"
            )
            return None
        return next(iter(permalinks), None)

    def select(
        self,
        kinds: Optional[Sequence[str]] = None,
        statuses: Optional[Sequence[str]] = None,
        ids: Optional[Sequence[int]] = None,
        limit: int = 0,
        offset: int = 0,
    ) -> List[Document]:
        """
        2.1 Filter documents the way the posts query does.

        kinds/statuses of None or containing "any" match everything.
        When ids are given they win over paging (limit/offset).
        """
        def wanted(values, value):
            return not values or "any" in values or value in values

        if ids:
            id_set = {int(i) for i in ids}
            return [
                d for d in self.documents
                if d.id in id_set and wanted(kinds, d.kind) and wanted(statuses, d.status)
            ]

        matching = [d for d in self.documents if wanted(kinds, d.kind) and wanted(statuses, d.status)]
        matching = matching[offset:]
        if limit:
            matching = matching[:limit]
        return matching


class ContentFallbackLookup:
    """
    3.0 Maps a dead URL to a published document via its last path segment.
    """

    def __init__(self, store: ContentStore, kinds: Optional[Iterable[str]] = None, logger: Optional[logging.Logger] = None):
        self.store = store
        self.kinds = set(kinds) if kinds else None
        self.logger = logger or logging.getLogger(__name__)

    def find(self, url: str) -> Optional[str]:
        """Return the canonical URL of a matching document, or None."""
        try:
            path = urlsplit(url).path
        except ValueError:
            return None

        parts = [unquote(p) for p in path.split("/") if p]

        if not parts or len(parts) > MAX_PATH_SEGMENTS:
            self.logger.info("-- No parts or more than 2 parts")
            return None

        slug = parts[-1]
        kinds = self.kinds or self.store.public_kinds()

        permalink = self.store.find_published_by_identifier(slug, kinds)
        if permalink:
            self.logger.info(f"-- Post found, returning: {permalink}")
        return permalink
