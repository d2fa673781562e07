"""Cache-only lookup for a client that lost its progress stream.

Never calls a collaborator, so it is cheap and safe to poll.
"""
from __future__ import annotations

from typing import Any

from app.config import settings
from app.models.research import ResearchRequest
from app.services import cache_keys
from app.services import logger as log_service
from app.services.errors import CacheUnavailableError
from app.services.result_cache import CacheEntry, ResultCache

NOT_FOUND: dict[str, Any] = {"found": False}


def _pick_partial(entries: list[CacheEntry], prefer_fresh: bool) -> CacheEntry:
    if prefer_fresh:
        # max() keeps the first of equal timestamps, so ties still follow scan order.
        return max(entries, key=lambda entry: entry.stored_at)
    return entries[0]


async def check_completion(
    cache: ResultCache,
    request: ResearchRequest,
    *,
    prefer_fresh: bool | None = None,
) -> dict[str, Any]:
    """Exact-key lookup, then fuzzy-prefix scan. Cache outages read as not found."""
    prefer_fresh = settings.recovery_prefer_fresh if prefer_fresh is None else prefer_fresh
    key = cache_keys.exact_key(request)

    if not await cache.available():
        log_service.log_cache_operation("recover", key, "unsupported")
        return dict(NOT_FOUND)

    try:
        value = await cache.get(key)
        if value is not None:
            log_service.log_cache_operation("recover", key, "exact")
            return {"found": True, "matchType": "exact", "result": value}

        prefix = cache_keys.fuzzy_prefix(request)
        entries = await cache.scan_prefix(prefix)
    except CacheUnavailableError as e:
        log_service.log_cache_operation("recover", key, "unavailable", error=e.message)
        return dict(NOT_FOUND)

    if entries:
        entry = _pick_partial(entries, prefer_fresh)
        log_service.log_cache_operation("recover", entry.key, "partial", details=f"prefix={prefix}")
        return {"found": True, "matchType": "partial", "result": entry.value}

    log_service.log_cache_operation("recover", key, "not_found")
    return dict(NOT_FOUND)
