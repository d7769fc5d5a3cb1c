"""Cookie credentials: encoding, validation and on-disk sources."""

from k2think.auth.cookies import (
    CredentialResolution,
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

__all__ = [
    "CredentialResolution",
    "convert_cookie_file",
    "cookies_to_header",
    "encode_cookies",
    "is_plausible_cookie_string",
    "load_cookie_cache",
    "mask_cookies",
    "parse_cookie_lines",
    "resolve_credentials",
    "save_cookie_cache",
]
