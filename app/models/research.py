from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

DEFAULT_CONTENT_TYPE = "article"
DEFAULT_PLATFORM = "general"
DEFAULT_LANGUAGE = "en"
DEFAULT_AUDIENCE = "general audience"


@dataclass(frozen=True)
class ResearchRequest:
    topic: str
    content_type: str = DEFAULT_CONTENT_TYPE
    platform: str = DEFAULT_PLATFORM
    language: str = DEFAULT_LANGUAGE
    # Forwarded to the research provider only; not part of the cache key.
    audience: str = DEFAULT_AUDIENCE


def extract_context_field(context: str | None, label: str) -> str | None:
    """Pull `Label: value` out of a free-text context string (value ends at the next comma)."""
    if not context:
        return None
    match = re.search(rf"{re.escape(label)}:\s*([^,\n]+)", context, flags=re.IGNORECASE)
    if not match:
        return None
    value = match.group(1).strip()
    return value or None


class JobState(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass
class Job:
    request: ResearchRequest
    state: JobState = JobState.PENDING
    progress: int = 0
    result: dict[str, Any] | None = None
    error: str | None = None
    status_code: int | None = None
    from_cache: bool = False
    started_at: datetime | None = None
    finished_at: datetime | None = None

    @property
    def done(self) -> bool:
        return self.state in (JobState.SUCCEEDED, JobState.FAILED)
