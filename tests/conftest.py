"""
Shared fixtures: an in-memory HEAD transport so no test touches the network.
"""

import pytest

from redirect_fixer.config import ResolverConfig
from redirect_fixer.content_lookup import ContentFallbackLookup, DocumentCollection
from redirect_fixer.http_client import HeadResponse
from redirect_fixer.models import Document
from redirect_fixer.redirect_resolver import RedirectResolver


class FakeHeadClient:
    """
    Answers HEAD requests from a route table.

    Route values: an int status, a (status, location) tuple, or an exception
    instance to raise. Unknown URLs answer 404.
    """

    def __init__(self, routes=None):
        self.routes = dict(routes or {})
        self.calls = []
        self.closed = False

    def head(self, url, timeout=None, credentials=None):
        self.calls.append({"url": url, "timeout": timeout, "credentials": credentials})
        reply = self.routes.get(url, 404)
        if isinstance(reply, Exception):
            raise reply
        if isinstance(reply, tuple):
            status, location = reply
            return HeadResponse(status, {"Location": location})
        return HeadResponse(reply)

    def close(self):
        self.closed = True

    @property
    def urls(self):
        return [c["url"] for c in self.calls]


@pytest.fixture
def fake_client():
    return FakeHeadClient()


@pytest.fixture
def documents():
    return DocumentCollection([
        Document(
            id=1, title="Hello World", permalink="https://example.com/hello-world/",
            body='<p>See <a href="https://example.com/old-page/">this</a> and '
                 '<a href="/relative/">that</a> and <a href="https://example.com/gone/">gone</a></p>',
            slug="hello-world",
        ),
        Document(
            id=2, title="About", permalink="https://example.com/about/",
            body='<a href="https://example.com/about/">self</a>',
            slug="about", kind="page",
        ),
        Document(id=3, title="Empty", permalink="https://example.com/empty/", body="", slug="empty"),
        Document(
            id=4, title="Draft", permalink="https://example.com/?p=4",
            body='<a href="https://example.com/draft-link/">x</a>',
            slug="draft-post", status="draft",
        ),
        Document(id=5, title="Rev", permalink="", body="", slug="hello-world-rev", kind="revision", status="inherit"),
    ])


@pytest.fixture
def make_resolver(fake_client):
    """Build a RedirectResolver over fake_client, optionally with a content store."""

    def _make(routes=None, store=None, **config):
        fake_client.routes.update(routes or {})
        lookup = ContentFallbackLookup(store) if store is not None else None
        return RedirectResolver(
            http_client=fake_client,
            content_lookup=lookup,
            config=ResolverConfig.from_dict(config),
        )

    return _make
