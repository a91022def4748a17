"""Tests for core/string_utils.py."""

import pytest

from mediabroker.core.string_utils import (
    first_non_empty,
    normalize_string,
    safe_filename,
    title_from_url,
)


class TestNormalizeString:
    def test_casefold_and_strip(self) -> None:
        assert normalize_string("  Hello World  ") == "hello world"


class TestFirstNonEmpty:
    def test_returns_first(self) -> None:
        assert first_non_empty(None, "", "mp3", "aac") == "mp3"

    def test_all_empty(self) -> None:
        assert first_non_empty(None, "") == ""


class TestSafeFilename:
    """Tests for safe_filename."""

    def test_replaces_unsafe_characters(self) -> None:
        assert safe_filename('AC/DC: "Live"') == "AC DC Live"

    def test_strips_dots_and_spaces(self) -> None:
        assert safe_filename(" ..name.. ") == "name"

    def test_empty_falls_back(self) -> None:
        assert safe_filename("///") == "download"

    def test_truncates(self) -> None:
        assert len(safe_filename("a" * 500)) == 200

    def test_keeps_unicode(self) -> None:
        assert safe_filename("Björk – Jóga") == "Björk – Jóga"


class TestTitleFromUrl:
    """Tests for title_from_url."""

    @pytest.mark.parametrize(
        "url,expected",
        [
            ("https://example.com/music/my_song.mp3", "my_song"),
            ("https://example.com/watch/abc/", "abc"),
            ("https://example.com/a%20b.ogg", "a b"),
            ("https://example.com/", "example.com"),
        ],
    )
    def test_title(self, url: str, expected: str) -> None:
        assert title_from_url(url) == expected
