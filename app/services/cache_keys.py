"""Deterministic cache keys for research requests.

The exact key addresses a single cached result and is the only key ever
written. The fuzzy prefix is coarser (shorter topic, no type/platform/language)
and is only used to scan for a close match when a reconnecting client cannot
be served by the exact key.
"""
from __future__ import annotations

import re

from app.models.research import ResearchRequest

KEY_NAMESPACE = "research"
EXACT_TOPIC_LENGTH = 100
FUZZY_TOPIC_LENGTH = 50

_NON_ALNUM = re.compile(r"[^a-z0-9]")


def norm(value: str | None, max_len: int | None = None) -> str:
    """Lowercase, trim, replace each char outside [a-z0-9] with '-', truncate.

    Runs are replaced character by character, never collapsed, so
    "shops!!!" becomes "shops---".
    """
    cleaned = _NON_ALNUM.sub("-", (value or "").lower().strip())
    if max_len is not None:
        cleaned = cleaned[:max_len]
    return cleaned


def exact_key(request: ResearchRequest) -> str:
    return ":".join(
        (
            KEY_NAMESPACE,
            norm(request.topic, EXACT_TOPIC_LENGTH),
            norm(request.content_type),
            norm(request.platform),
            request.language,
        )
    )


def fuzzy_prefix(request: ResearchRequest) -> str:
    return f"{KEY_NAMESPACE}:{norm(request.topic, FUZZY_TOPIC_LENGTH)}"
