import pytest

from redirect_fixer.url_validator import is_absolute, normalize


@pytest.mark.parametrize("raw,expected", [
    ("https://example.com/a/", "https://example.com/a/"),
    ("  http://example.com:8080/x?y=1  ", "http://example.com:8080/x?y=1"),
    ("HTTPS://Example.com/", "HTTPS://Example.com/"),
    ("https://127.0.0.1/", "https://127.0.0.1/"),
])
def test_normalize_accepts(raw, expected):
    assert normalize(raw) == expected


@pytest.mark.parametrize("raw", [
    None,
    "",
    "   ",
    "/relative/path",
    "example.com/no-scheme",
    "ftp://example.com/file",
    "mailto:someone@example.com",
    "https://exa mple.com/",
    "https://example.com/a b",
    "https://example.com:abc/",
    "https://exa_mple.com/",
    "https:///path-only",
])
def test_normalize_rejects(raw):
    assert normalize(raw) is None


def test_is_absolute():
    assert is_absolute("https://example.com")
    assert is_absolute("http://example.com/x")
    assert not is_absolute("/x")
    assert not is_absolute("#anchor")
    assert not is_absolute("mailto:a@b.c")
    assert not is_absolute("")
