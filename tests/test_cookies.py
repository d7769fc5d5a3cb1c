"""Tests for cookie encoding, validation and the on-disk credential formats."""

import logging

import pytest

from k2think.auth.cookies import (
    convert_cookie_file,
    cookies_to_header,
    encode_cookies,
    is_plausible_cookie_string,
    load_cookie_cache,
    mask_cookies,
    parse_cookie_lines,
    resolve_credentials,
    save_cookie_cache,
)
from k2think.config import Settings


class TestEncodeCookies:
    def test_encodes_values_not_names(self):
        assert encode_cookies("a=b;c=d/e") == "a=b; c=d%2Fe"

    def test_unreserved_values_unchanged(self):
        assert encode_cookies("session=abc-123_X.y~z") == "session=abc-123_X.y~z"

    def test_value_may_contain_equals(self):
        """Only the first '=' separates name from value."""
        assert encode_cookies("token=a=b==") == "token=a%3Db%3D%3D"

    def test_header_unsafe_characters(self):
        assert encode_cookies("k=$x y,z") == "k=%24x%20y%2Cz"

    def test_segment_without_equals_passes_through(self):
        assert encode_cookies("flag; a=b") == "flag; a=b"

    def test_trims_segments(self):
        assert encode_cookies("  a=1 ;   b=2  ") == "a=1; b=2"

    def test_not_idempotent(self):
        once = encode_cookies("a=x/y")
        twice = encode_cookies(once)
        assert once == "a=x%2Fy"
        assert twice == "a=x%252Fy"

    def test_fails_soft(self, caplog):
        """Non-string input is returned unchanged with a warning."""
        raw = object()
        with caplog.at_level(logging.WARNING, logger="k2think.auth.cookies"):
            assert encode_cookies(raw) is raw
        assert "Cookie encoding failed" in caplog.text


class TestPlausibleCookieString:
    def test_simple_pair(self):
        assert is_plausible_cookie_string("k=v") is True

    def test_no_pair(self):
        assert is_plausible_cookie_string("nonkv") is False

    def test_null_byte(self):
        assert is_plausible_cookie_string("k=v\x00") is False

    def test_delete_char(self):
        assert is_plausible_cookie_string("k=v\x7f") is False

    @pytest.mark.parametrize("value", ["", None, 42, b"k=v"])
    def test_non_strings_and_empty(self, value):
        assert is_plausible_cookie_string(value) is False


class TestCookieFiles:
    def test_parse_cookie_lines(self, caplog):
        text = "token=abc\n\nbroken line\nlang = en \n"
        with caplog.at_level(logging.WARNING):
            pairs = parse_cookie_lines(text)
        assert pairs == [("token", "abc"), ("lang", "en")]
        assert "Skipping cookie line" in caplog.text

    def test_cookies_to_header_skips_empty(self):
        assert cookies_to_header([("a", "1"), ("b", ""), ("", "x"), ("c", "3")]) == "a=1; c=3"

    def test_convert_cookie_file(self, tmp_path):
        source = tmp_path / "Cookie.json"
        cache = tmp_path / "cookies.txt"
        source.write_text("token=abc\nlang=en\n", encoding="utf-8")

        result = convert_cookie_file(source, cache)

        assert result == "token=abc; lang=en"
        assert cache.read_text(encoding="utf-8") == "token=abc; lang=en"

    def test_convert_without_pairs_raises(self, tmp_path):
        source = tmp_path / "Cookie.json"
        source.write_text("nothing useful\n", encoding="utf-8")
        with pytest.raises(ValueError):
            convert_cookie_file(source, tmp_path / "cookies.txt")

    def test_convert_missing_source(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            convert_cookie_file(tmp_path / "absent", tmp_path / "cookies.txt")

    def test_cache_roundtrip_and_missing(self, tmp_path):
        cache = tmp_path / "cookies.txt"
        assert load_cookie_cache(cache) is None
        save_cookie_cache(cache, "a=1; b=2\n")
        assert load_cookie_cache(cache) == "a=1; b=2"

    def test_mask_cookies(self):
        assert mask_cookies("token=abcdefgh; x=1") == "token=abcd…; x=…"


class TestResolveCredentials:
    def test_cache_file_wins(self, settings, tmp_path):
        save_cookie_cache(settings.cookie_cache_file, "token=from-file")
        resolution = resolve_credentials(settings)
        assert resolution.found
        assert resolution.cookies == "token=from-file"
        assert resolution.origin == "cache_file"

    def test_falls_back_to_environment(self, settings):
        resolution = resolve_credentials(settings)
        assert resolution.cookies == "token=abc/def; lang=en"
        assert resolution.origin == "environment"

    def test_nothing_found(self, no_cookie_settings):
        resolution = resolve_credentials(no_cookie_settings)
        assert not resolution.found
        assert resolution.origin is None

    def test_env_var_alias(self, monkeypatch, tmp_path):
        monkeypatch.setenv("K2THINK_COOKIES", "token=env")
        s = Settings(cookie_cache_file=str(tmp_path / "none.txt"))
        assert resolve_credentials(s).cookies == "token=env"
