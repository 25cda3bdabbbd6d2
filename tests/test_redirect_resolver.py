"""
RESOLVER TESTS - Status-code policy, chain bounds, fallbacks, tracing

The HEAD transport is the in-memory FakeHeadClient from conftest.py.
"""

import logging

import pytest

from redirect_fixer.errors import TransportFailure
from redirect_fixer.models import Outcome, ResolveRequest

# =============================================================================
# 1. STATUS-CODE POLICY
# =============================================================================

def test_200_resolves_in_place(make_resolver, fake_client):
    resolver = make_resolver({"https://example.com/ok/": 200})

    result = resolver.resolve(ResolveRequest("https://example.com/ok/"))

    assert result.outcome is Outcome.RESOLVED
    assert result.status_code == 200
    assert result.final_location == "https://example.com/ok/"
    assert result.chain_length == 0
    assert fake_client.urls == ["https://example.com/ok/"]


@pytest.mark.parametrize("code", [302, 303, 307, 308])
def test_temporary_redirect_is_reported_not_followed(make_resolver, fake_client, code):
    resolver = make_resolver({
        "https://example.com/tmp/": (code, "https://example.com/elsewhere/"),
        "https://example.com/elsewhere/": 200,
    })

    result = resolver.resolve(ResolveRequest("https://example.com/tmp/"))

    assert result.outcome is Outcome.REDIRECTED
    assert result.status_code == code
    assert result.final_location == "https://example.com/elsewhere/"
    assert result.chain_length == 1
    assert fake_client.urls == ["https://example.com/tmp/"]


def test_permanent_chain_is_followed(make_resolver):
    resolver = make_resolver({
        "https://example.com/a": (301, "https://example.com/b"),
        "https://example.com/b": (301, "https://example.com/c"),
        "https://example.com/c": (301, "https://example.com/d"),
        "https://example.com/d": 200,
    })

    result = resolver.resolve(ResolveRequest("https://example.com/a"))

    assert result.outcome is Outcome.RESOLVED
    assert result.final_location == "https://example.com/d"
    assert result.chain_length == 3


def test_relative_location_is_joined(make_resolver, fake_client):
    resolver = make_resolver({
        "https://example.com/blog/old": (301, "new"),
        "https://example.com/blog/new": (301, "/top/"),
        "https://example.com/top/": 200,
    })

    result = resolver.resolve(ResolveRequest("https://example.com/blog/old"))

    assert result.final_location == "https://example.com/top/"
    assert fake_client.urls[-1] == "https://example.com/top/"


@pytest.mark.parametrize("code", [401, 403, 429, 500, 502, 503, 504])
def test_transient_codes(make_resolver, code):
    resolver = make_resolver({"https://example.com/x": code})

    result = resolver.resolve(ResolveRequest("https://example.com/x"))

    assert result.outcome is Outcome.TRANSIENT
    assert result.status_code == code
    assert result.final_location == "https://example.com/x"


def test_other_codes(make_resolver):
    resolver = make_resolver({
        "https://example.com/405": 405,
        "https://example.com/301-without-location": 301,
    })

    assert resolver.resolve(ResolveRequest("https://example.com/405")).outcome is Outcome.OTHER
    result = resolver.resolve(ResolveRequest("https://example.com/301-without-location"))
    assert result.outcome is Outcome.OTHER
    assert result.status_code == 301


# =============================================================================
# 2. CHAIN BOUND
# =============================================================================

def test_self_loop_stops_at_max_redirects(make_resolver, fake_client):
    resolver = make_resolver({"https://example.com/loop": (301, "https://example.com/loop")}, max_redirects=5)

    result = resolver.resolve(ResolveRequest("https://example.com/loop"))

    assert result.outcome is Outcome.TRANSPORT_ERROR
    assert result.status_code == 0
    assert result.error == "redirect_loop"
    assert result.chain_length == 5
    assert len(fake_client.calls) == 6


def test_chain_at_exact_bound_resolves(make_resolver):
    resolver = make_resolver({
        "https://example.com/1": (301, "https://example.com/2"),
        "https://example.com/2": (301, "https://example.com/3"),
        "https://example.com/3": 200,
    }, max_redirects=2)

    result = resolver.resolve(ResolveRequest("https://example.com/1"))

    assert result.outcome is Outcome.RESOLVED
    assert result.chain_length == 2


# =============================================================================
# 3. 404/410 FALLBACKS
# =============================================================================

def test_existing_hint_is_followed(make_resolver):
    resolver = make_resolver({
        "https://example.com/old/": 404,
        "https://example.com/new/": 200,
    })

    result = resolver.resolve(ResolveRequest("https://example.com/old/", existing_hint="https://example.com/new/"))

    assert result.outcome is Outcome.RESOLVED
    assert result.final_location == "https://example.com/new/"
    assert result.chain_length == 1


def test_relative_hint_is_absolutized_under_target(make_resolver, fake_client):
    resolver = make_resolver({"https://staging.example.com/new/": 200})

    result = resolver.resolve(ResolveRequest(
        "https://example.com/old/",
        existing_hint="/new/",
        home_host="example.com",
        target_host="staging.example.com",
    ))

    assert fake_client.urls == ["https://staging.example.com/old/", "https://staging.example.com/new/"]
    assert result.final_location == "https://staging.example.com/new/"


def test_slug_fallback_returns_canonical_url(make_resolver, documents):
    resolver = make_resolver(store=documents)

    result = resolver.resolve(ResolveRequest("https://example.com/blog/hello-world/"))

    assert result.outcome is Outcome.RESOLVED
    assert result.status_code == 200
    assert result.final_location == "https://example.com/hello-world/"


def test_hint_equal_to_current_goes_to_slug_lookup(make_resolver, documents, fake_client):
    resolver = make_resolver(store=documents)

    result = resolver.resolve(ResolveRequest(
        "https://example.com/about/", existing_hint="https://example.com/about/"
    ))

    assert result.final_location == "https://example.com/about/"
    assert len(fake_client.calls) == 1


@pytest.mark.parametrize("url,code", [
    ("https://example.com/a/b/c/", 404),
    ("https://example.com/draft-post/", 410),
    ("https://example.com/", 404),
])
def test_missing_without_match_is_broken(make_resolver, documents, url, code):
    resolver = make_resolver({url: code}, store=documents)

    result = resolver.resolve(ResolveRequest(url))

    assert result.outcome is Outcome.BROKEN
    assert result.status_code == code
    assert result.final_location == url


def test_missing_without_store_is_broken(make_resolver):
    resolver = make_resolver()

    result = resolver.resolve(ResolveRequest("https://example.com/hello-world/"))

    assert result.outcome is Outcome.BROKEN
    assert result.status_code == 404


# =============================================================================
# 4. INVALID INPUT / TRANSPORT ERRORS
# =============================================================================

@pytest.mark.parametrize("url", ["", "not a url", "/relative/", "ftp://example.com/x"])
def test_invalid_input_makes_no_request(make_resolver, fake_client, url):
    resolver = make_resolver()

    result = resolver.resolve(ResolveRequest(url))

    assert result.outcome is Outcome.INVALID
    assert result.status_code == 0
    assert result.error == "invalid_url"
    assert fake_client.calls == []


def test_invalid_location_stops_the_chain(make_resolver):
    resolver = make_resolver({"https://example.com/x": (301, "ftp://example.com/file")})

    result = resolver.resolve(ResolveRequest("https://example.com/x"))

    assert result.outcome is Outcome.INVALID
    assert result.final_location == "ftp://example.com/file"


def test_transport_failure_becomes_result(make_resolver):
    resolver = make_resolver({"https://slow.example.com/": TransportFailure("timeout", "no response after 30s")})

    result = resolver.resolve(ResolveRequest("https://slow.example.com/"))

    assert result.outcome is Outcome.TRANSPORT_ERROR
    assert result.status_code == 0
    assert result.error == "timeout"
    assert result.final_location == "https://slow.example.com/"


# =============================================================================
# 5. REWRITING, CREDENTIALS, TIMEOUT
# =============================================================================

def test_every_hop_is_rewritten(make_resolver, fake_client):
    resolver = make_resolver({
        "https://staging.example.com/a": (301, "https://example.com/b"),
        "https://staging.example.com/b": 200,
    })

    result = resolver.resolve(ResolveRequest(
        "https://example.com/a", home_host="example.com", target_host="staging.example.com"
    ))

    assert fake_client.urls == ["https://staging.example.com/a", "https://staging.example.com/b"]
    assert result.final_location == "https://staging.example.com/b"


def test_credentials_and_timeout_reach_transport(make_resolver, fake_client):
    resolver = make_resolver({"https://example.com/": 200}, timeout_seconds=7)

    resolver.resolve(ResolveRequest("https://example.com/", credentials=("admin", "secret")))

    assert fake_client.calls[0]["credentials"] == ("admin", "secret")
    assert fake_client.calls[0]["timeout"] == 7


def test_close_leaves_injected_client_open(make_resolver, fake_client):
    make_resolver().close()

    assert not fake_client.closed


def test_close_releases_own_client():
    from unittest import mock

    from conftest import FakeHeadClient
    from redirect_fixer.redirect_resolver import RedirectResolver

    client = FakeHeadClient()
    with mock.patch("redirect_fixer.redirect_resolver.HeadClient", return_value=client):
        RedirectResolver().close()

    assert client.closed


# =============================================================================
# 6. TRACE EVENTS
# =============================================================================

def test_trace_events_are_attached_to_log_records(make_resolver, caplog):
    caplog.set_level(logging.INFO, logger="redirect_fixer.redirect_resolver")
    resolver = make_resolver({
        "https://example.com/a": (301, "https://example.com/b"),
        "https://example.com/b": 200,
    })

    resolver.resolve(ResolveRequest("https://example.com/a"))

    traces = [r.trace for r in caplog.records if hasattr(r, "trace")]
    events = [t["event"] for t in traces]
    assert events == ["fetch", "status", "follow", "status"]
    assert traces[1]["status"] == 301
    assert traces[1]["decision"] == "follow"
    assert traces[-1]["decision"] == "resolved"
    assert traces[-1]["chain_length"] == 1
    assert all(set(t) >= {"event", "url", "status", "decision", "chain_length"} for t in traces)
