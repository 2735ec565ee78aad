"""Unit tests for URL normalization."""

from __future__ import annotations

import pytest

from adaptive_scraper.core.exceptions import InvalidURLError
from adaptive_scraper.scraper.url_normalizer import normalize_url


class TestNormalizeUrl:
    def test_missing_scheme_defaults_to_https(self) -> None:
        result = normalize_url("example.com")
        assert result.url == "https://example.com/"
        assert result.origin == "https://example.com"

    def test_keeps_http_scheme(self) -> None:
        assert normalize_url("http://example.com/a").url == "http://example.com/a"

    def test_lowercases_scheme_and_host(self) -> None:
        assert normalize_url("HTTPS://Example.COM/Path").url == "https://example.com/Path"

    def test_drops_default_port(self) -> None:
        assert normalize_url("https://example.com:443/x").url == "https://example.com/x"
        assert normalize_url("http://example.com:80/x").url == "http://example.com/x"

    def test_keeps_non_default_port_in_origin(self) -> None:
        result = normalize_url("http://example.com:8080/x")
        assert result.origin == "http://example.com:8080"
        assert result.robots_url == "http://example.com:8080/robots.txt"

    def test_drops_fragment_keeps_query(self) -> None:
        result = normalize_url("https://example.com/a?b=1#frag")
        assert result.url == "https://example.com/a?b=1"
        assert result.path_with_query == "/a?b=1"

    def test_strips_surrounding_whitespace(self) -> None:
        assert normalize_url("  https://example.com/  ").url == "https://example.com/"

    def test_idn_host_is_punycoded(self) -> None:
        assert normalize_url("https://bücher.example/").origin == "https://xn--bcher-kva.example"

    def test_ipv6_host(self) -> None:
        assert normalize_url("http://[::1]:8000/").origin == "http://[::1]:8000"

    def test_space_in_query_is_percent_encoded(self) -> None:
        result = normalize_url("https://example.com/search?q=hello world")
        assert result.url == "https://example.com/search?q=hello%20world"
        assert result.query == "q=hello%20world"

    def test_space_in_path_is_percent_encoded(self) -> None:
        assert normalize_url("example.com/my page").url == "https://example.com/my%20page"

    @pytest.mark.parametrize(
        "raw",
        [
            "example.com",
            "https://Example.com:443/a b".replace(" ", "%20"),
            "http://example.com/päth?q=ä",
            "https://user:pw@example.com/x?y=1",
            "https://example.com/already%20escaped",
            "https://example.com/search?q=hello world",
            "example.com/a b",
        ],
    )
    def test_normalization_is_idempotent(self, raw: str) -> None:
        once = normalize_url(raw)
        twice = normalize_url(once.url)
        assert twice == once

    @pytest.mark.parametrize(
        "raw",
        [
            "not a url!!",
            "",
            "   ",
            "ftp://example.com/file",
            "javascript:alert(1)",
            "https://",
            "http://exa mple.com",
            "ht tps://example.com/",
            "exa mple.com/path",
            "https://example.com:99999/",
        ],
    )
    def test_invalid_input_raises(self, raw: str) -> None:
        with pytest.raises(InvalidURLError) as exc_info:
            normalize_url(raw)
        assert exc_info.value.reason == "invalid_url"
