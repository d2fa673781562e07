from __future__ import annotations

from app.services.job_runner import JobRunner
from app.services.result_cache import ResultCache, close_cache, get_cache
from app.services.trend_sources import TrendSourceFn, default_sources

_runner: JobRunner | None = None


def get_result_cache() -> ResultCache:
    return get_cache()


def get_job_runner() -> JobRunner:
    """Process-wide runner sharing the process-wide cache."""
    global _runner
    if _runner is None:
        _runner = JobRunner(get_cache())
    return _runner


def get_trend_sources() -> dict[str, TrendSourceFn]:
    return default_sources()


async def shutdown() -> None:
    """Let detached jobs finish writing their results, then release the cache."""
    global _runner
    if _runner is not None:
        await _runner.drain()
        _runner = None
    await close_cache()
