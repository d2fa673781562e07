"""Failure taxonomy shared by the job, recovery and trend paths."""
from __future__ import annotations

import httpx

TIMEOUT_MESSAGE = "The research request timed out. Please try again with a more specific topic."
RATE_LIMIT_MESSAGE = "Rate limit exceeded. Please try again later."
AUTH_MESSAGE = "Authentication error with research service. Please contact support."


class ResearchServiceError(Exception):
    status_code = 500

    def __init__(self, message: str, *, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class InvalidRequestError(ResearchServiceError):
    """A required field is missing or blank. Raised before any cache or collaborator access."""

    status_code = 400


class CollaboratorError(ResearchServiceError):
    """An external research, question or trend call failed or returned an unusable shape."""

    status_code = 502


class CacheUnavailableError(ResearchServiceError):
    """The cache backend is not configured or cannot be reached."""

    status_code = 503


def friendly_collaborator_message(exc: BaseException) -> tuple[str, int]:
    """Translate a raw collaborator failure into (message, http status)."""
    if isinstance(exc, ResearchServiceError):
        return exc.message, exc.status_code
    if isinstance(exc, httpx.TimeoutException):
        return TIMEOUT_MESSAGE, 504

    message = str(exc) or exc.__class__.__name__
    lowered = message.lower()
    if "timeout" in lowered or "timed out" in lowered:
        return TIMEOUT_MESSAGE, 504
    if "rate limit" in lowered or "429" in lowered:
        return RATE_LIMIT_MESSAGE, 429
    if "authentication" in lowered or "401" in lowered:
        return AUTH_MESSAGE, 401
    return message, 502
