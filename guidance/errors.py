"""Outcome types and failure classification for guidance requests."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

import openai

from guidance.schema import GuidanceResult

__all__ = [
    "GuidanceErrorKind",
    "GuidanceSuccess",
    "GuidanceFailure",
    "GuidanceOutcome",
    "classify_failure",
]


class GuidanceErrorKind(str, Enum):
    """Client-visible failure categories."""

    missing_credential = "MissingCredential"
    unauthorized = "Unauthorized"
    service_unavailable = "ServiceUnavailable"
    region_restricted = "RegionRestricted"
    malformed_response = "MalformedResponse"
    unknown_failure = "UnknownFailure"

    @property
    def retryable(self) -> bool:
        return self is GuidanceErrorKind.service_unavailable


DEFAULT_MESSAGES = {
    GuidanceErrorKind.missing_credential: (
        "API key missing: set OPENAI_API_KEY before requesting guidance."
    ),
    GuidanceErrorKind.unauthorized: (
        "Authentication failed: the configured API key was rejected by the AI service."
    ),
    GuidanceErrorKind.service_unavailable: (
        "The AI service is busy right now. Please try again in a few seconds."
    ),
    GuidanceErrorKind.region_restricted: (
        "The AI service is not available in your location."
    ),
    GuidanceErrorKind.malformed_response: (
        "The AI model returned an incomplete or unreadable response."
    ),
    GuidanceErrorKind.unknown_failure: "Analysis failed: unknown connection error.",
}


@dataclass(frozen=True)
class GuidanceSuccess:
    result: GuidanceResult

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class GuidanceFailure:
    kind: GuidanceErrorKind
    message: str

    @property
    def ok(self) -> bool:
        return False

    @property
    def retryable(self) -> bool:
        return self.kind.retryable

    @classmethod
    def of(cls, kind: GuidanceErrorKind, detail: Optional[str] = None) -> "GuidanceFailure":
        message = DEFAULT_MESSAGES[kind]
        if detail:
            message = f"{message} ({detail})"
        return cls(kind=kind, message=message)


GuidanceOutcome = Union[GuidanceSuccess, GuidanceFailure]


_REGION_MARKERS = (
    "unsupported_country_region_territory",
    "country, region, or territory not supported",
    "location is not supported",
    "not available in your region",
)
_AUTH_MARKERS = (
    "invalid api key",
    "incorrect api key",
    "invalid_api_key",
    "api_key_invalid",
    "permission denied",
    "permission_denied",
)
_BUSY_MARKERS = (
    "overloaded",
    "server is busy",
    "service unavailable",
    "temporarily unavailable",
)
_BUSY_STATUS = {503, 529}


def _error_code(exc: BaseException) -> str:
    code = getattr(exc, "code", None)
    if code:
        return str(code).lower()
    body = getattr(exc, "body", None)
    if isinstance(body, dict):
        return str(body.get("code") or "").lower()
    return ""


def classify_failure(exc: BaseException) -> GuidanceFailure:
    """Map an exception raised by the LLM call to a failure category.

    Unrecognised errors become ``UnknownFailure`` and keep the underlying
    message so it can be shown to the user.
    """

    message = str(exc) or exc.__class__.__name__
    lower = message.lower()
    code = _error_code(exc)
    status = getattr(exc, "status_code", None)

    if code == "unsupported_country_region_territory" or any(m in lower for m in _REGION_MARKERS):
        return GuidanceFailure.of(GuidanceErrorKind.region_restricted)

    if isinstance(exc, (openai.AuthenticationError, openai.PermissionDeniedError)) or status in (401, 403):
        return GuidanceFailure.of(GuidanceErrorKind.unauthorized)
    if code == "invalid_api_key" or any(m in lower for m in _AUTH_MARKERS):
        return GuidanceFailure.of(GuidanceErrorKind.unauthorized)

    if isinstance(exc, openai.RateLimitError) and code != "insufficient_quota" and "insufficient_quota" not in lower:
        return GuidanceFailure.of(GuidanceErrorKind.service_unavailable)
    if status in _BUSY_STATUS or any(m in lower for m in _BUSY_MARKERS):
        return GuidanceFailure.of(GuidanceErrorKind.service_unavailable)

    return GuidanceFailure(
        kind=GuidanceErrorKind.unknown_failure,
        message=f"Analysis failed: {message}",
    )
