from __future__ import annotations

import pytest

from sidebar.utils.urls import ensure_scheme, extract_hostname


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("example.com", "https://example.com"),
        ("https://example.com/path", "https://example.com/path"),
        ("http://intranet.local", "http://intranet.local"),
        ("ftp://files.example.com", "https://ftp://files.example.com"),
    ],
)
def test_ensure_scheme(raw: str, expected: str) -> None:
    assert ensure_scheme(raw) == expected


@pytest.mark.parametrize(
    ("url", "expected"),
    [
        ("https://GitHub.com/openai", "github.com"),
        ("http://localhost:8080/app", "localhost"),
        ("github.com", None),
        ("https://", None),
        ("https://[::1", None),
        ("", None),
    ],
)
def test_extract_hostname(url: str, expected: str | None) -> None:
    assert extract_hostname(url) == expected
