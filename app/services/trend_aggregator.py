from __future__ import annotations

from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Iterable

from app.config import settings
from app.models.trends import TrendItem

_OLDEST = datetime.min.replace(tzinfo=timezone.utc)


def extract_keywords(query: str | None) -> list[str]:
    """Lowercased whitespace tokens longer than three characters."""
    if not query:
        return []
    return [word for word in query.lower().split() if len(word) > 3]


def parse_pub_date(value: datetime | str | int | float | None) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    elif isinstance(value, str):
        raw = value.strip()
        if not raw:
            return None
        try:
            parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
        except ValueError:
            try:
                parsed = parsedate_to_datetime(raw)
            except (TypeError, ValueError, IndexError):
                return None
    else:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _matches(item: TrendItem, keywords: list[str]) -> bool:
    text = f"{item.title} {item.summary}".lower()
    return any(keyword in text for keyword in keywords)


def aggregate(
    sources: Iterable[Iterable[TrendItem]],
    filter_keywords: list[str] | None = None,
    *,
    limit: int | None = None,
) -> list[TrendItem]:
    """Merge source lists into one newest-first list without duplicate titles.

    Dedup runs after the sort so the surviving copy of a title is the most
    recent one. Items with a missing or unparsable date sort as oldest.
    """
    limit = settings.trend_max_items if limit is None else limit
    items = [item for source in sources for item in source]

    if filter_keywords:
        items = [item for item in items if _matches(item, filter_keywords)]

    items.sort(key=lambda item: parse_pub_date(item.pub_date) or _OLDEST, reverse=True)

    unique: list[TrendItem] = []
    seen_titles: set[str] = set()
    for item in items:
        if item.title in seen_titles:
            continue
        seen_titles.add(item.title)
        unique.append(item)

    return unique[: max(limit, 0)]
