from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable

from app.models.trends import TrendItem
from app.services import logger as log_service
from app.services import trend_aggregator
from app.tools import reddit_trends, rss_trends

TrendSourceFn = Callable[[str], Awaitable[list[TrendItem]]]


def default_sources() -> dict[str, TrendSourceFn]:
    return {
        "reddit": reddit_trends.fetch_trends,
        "rss": rss_trends.fetch_trends,
    }


async def fetch_all(
    business_type: str,
    sources: dict[str, TrendSourceFn] | None = None,
) -> dict[str, list[TrendItem]]:
    """Fetch every source concurrently. A failed source yields an empty list."""
    sources = sources or default_sources()
    names = list(sources)
    results = await asyncio.gather(
        *(sources[name](business_type) for name in names),
        return_exceptions=True,
    )

    by_source: dict[str, list[TrendItem]] = {}
    for name, result in zip(names, results):
        if isinstance(result, Exception):
            log_service.log_collaborator_call(name, "error", error=str(result))
            by_source[name] = []
            continue
        by_source[name] = list(result)
    return by_source


async def list_trends(
    business_type: str,
    research_topic: str | None = None,
    *,
    sources: dict[str, TrendSourceFn] | None = None,
) -> dict[str, Any]:
    by_source = await fetch_all(business_type or "general", sources)
    keywords = trend_aggregator.extract_keywords(research_topic)
    trends = trend_aggregator.aggregate(by_source.values(), keywords)

    log_service.log_event(
        "trends_listed",
        "Aggregated trending topics",
        business_type=business_type,
        returned=len(trends),
        **{f"{name}_items": len(items) for name, items in by_source.items()},
    )
    return {
        "success": True,
        "data": [item.to_dict() for item in trends],
        "sources": {name: len(items) > 0 for name, items in by_source.items()},
    }
