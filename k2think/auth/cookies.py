"""Cookie credential handling.

Covers the transport-safe encoding of a raw cookie string plus the two
on-disk credential formats:

- source file: one ``name=value`` per line (browser export)
- cache file: a single flattened ``name=value; name=value`` line
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import quote

from k2think.config import Settings

logger = logging.getLogger(__name__)

# Characters encodeURIComponent leaves alone besides alphanumerics
_URI_COMPONENT_SAFE = "-_.!~*'()"

_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")
_SOURCE_LINE = re.compile(r"^([^=]+)=(.*)$")


def encode_cookies(raw: str) -> str:
    """Percent-encode every cookie value, leaving names untouched.

    Splits on ';' and then on the first '=' of each segment, so values may
    themselves contain '='. Segments without '=' pass through unchanged.
    Not idempotent: encode exactly once.

    Never raises: on any failure the input is returned as-is.
    """
    try:
        encoded_pairs = []
        for pair in (segment.strip() for segment in raw.split(";")):
            name, sep, value = pair.partition("=")
            if not name or not sep:
                encoded_pairs.append(pair)
                continue
            encoded_pairs.append(f"{name}={quote(value, safe=_URI_COMPONENT_SAFE)}")
        return "; ".join(encoded_pairs)
    except Exception as e:
        logger.warning("Cookie encoding failed, using raw value: %s", e)
        return raw


def is_plausible_cookie_string(value: object) -> bool:
    """Cheap sanity check before a cookie string reaches a header.

    True for a non-empty str holding at least one '=' and no ASCII control
    characters. Says nothing about RFC 6265 compliance.
    """
    if not value or not isinstance(value, str):
        return False
    if "=" not in value:
        return False
    if _CONTROL_CHARS.search(value):
        logger.warning("Cookie string contains control characters")
        return False
    return True


def parse_cookie_lines(text: str) -> list[tuple[str, str]]:
    """Parse the newline-delimited ``name=value`` source format."""
    pairs: list[tuple[str, str]] = []
    for line in text.splitlines():
        if not line.strip():
            continue
        match = _SOURCE_LINE.match(line)
        if not match:
            logger.warning("Skipping cookie line without name=value: %.40s", line)
            continue
        pairs.append((match.group(1).strip(), match.group(2).strip()))
    return pairs


def cookies_to_header(pairs: list[tuple[str, str]]) -> str:
    """Flatten (name, value) pairs into ``name=value; name=value``."""
    kept = []
    for name, value in pairs:
        if not name or not value:
            logger.warning("Skipping cookie without name or value: %r", name)
            continue
        kept.append(f"{name}={value}")
    return "; ".join(kept)


def load_cookie_cache(path: str | Path) -> str | None:
    """Read the flattened cookie cache file; None if absent or empty."""
    cache = Path(path)
    if not cache.is_file():
        return None
    content = cache.read_text(encoding="utf-8").strip()
    return content or None


def save_cookie_cache(path: str | Path, cookies: str) -> Path:
    cache = Path(path)
    cache.write_text(cookies, encoding="utf-8")
    logger.info("Cookies saved to %s", cache)
    return cache


def convert_cookie_file(source: str | Path, cache: str | Path) -> str:
    """Convert a ``name=value``-per-line source file into the cache file.

    Returns the flattened cookie string. Raises FileNotFoundError if the
    source file is missing and ValueError if it holds no usable cookies.
    """
    source_path = Path(source)
    pairs = parse_cookie_lines(source_path.read_text(encoding="utf-8"))
    cookie_string = cookies_to_header(pairs)
    if not cookie_string:
        raise ValueError(f"No name=value cookies found in {source_path}")
    logger.info("Converted %d cookies from %s", len(pairs), source_path)
    save_cookie_cache(cache, cookie_string)
    return cookie_string


def mask_cookies(cookies: str, visible: int = 4) -> str:
    """Render a cookie string for display with every value masked."""
    masked = []
    for pair in (segment.strip() for segment in cookies.split(";")):
        name, sep, value = pair.partition("=")
        if not sep:
            masked.append(pair)
            continue
        masked.append(f"{name}={value[:visible]}…" if len(value) > visible else f"{name}=…")
    return "; ".join(masked)


@dataclass
class CredentialResolution:
    """Where the raw cookie string came from, if anywhere."""

    cookies: str | None
    origin: str | None = None  # "cache_file" or "environment"

    @property
    def found(self) -> bool:
        return bool(self.cookies)


def resolve_credentials(settings: Settings) -> CredentialResolution:
    """Find raw cookies: cache file first, then the K2THINK_COOKIES setting."""
    try:
        cached = load_cookie_cache(settings.cookie_cache_file)
    except OSError as e:
        logger.warning("Could not read %s: %s", settings.cookie_cache_file, e)
        cached = None
    if cached:
        return CredentialResolution(cookies=cached, origin="cache_file")
    if settings.cookies:
        return CredentialResolution(cookies=settings.cookies, origin="environment")
    return CredentialResolution(cookies=None)
