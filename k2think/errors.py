"""Exception taxonomy for the k2think client.

Extraction problems are not exceptions: extract_json() returns them as data
(see k2think.methods.extractor). Per-frame SSE decode noise is never raised.
"""

from __future__ import annotations


class K2ThinkError(Exception):
    """Base class for all client errors."""


class CredentialError(K2ThinkError):
    """Credentials are missing or unusable.

    reason is "missing" or "invalid" so callers can tell the two apart.
    """

    def __init__(self, message: str, reason: str = "missing") -> None:
        super().__init__(message)
        self.reason = reason


class EncodingError(CredentialError):
    """Credential encoding failed hard (only raised where soft fallback is disabled)."""

    def __init__(self, message: str) -> None:
        super().__init__(message, reason="invalid")


class TransportError(K2ThinkError):
    """Non-2xx HTTP status or network failure.

    status_code is None when no response was received at all.
    """

    def __init__(self, status_code: int | None, body: str = "") -> None:
        self.status_code = status_code
        self.body = body
        if status_code is None:
            super().__init__(f"Transport failure: {body}")
        else:
            super().__init__(f"HTTP {status_code}: {body[:500]}")


class StreamDecodeError(TransportError):
    """The streaming endpoint answered with a non-2xx status before any frame."""


class SessionStateError(K2ThinkError):
    """Operation attempted in a session state that does not allow it."""


class MethodUnavailableError(K2ThinkError):
    """A structured method was invoked while the builder is disabled."""


class InvalidInputError(K2ThinkError, ValueError):
    """Input rejected by a structured method's validator."""


class TemplateNotFoundError(K2ThinkError, KeyError):
    """Unknown method template name."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else ""
