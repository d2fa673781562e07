"""Runs one research job: cache check, collaborator call, cache write, events.

Execution and delivery are separate: `stream()` starts the job as its own task
and relays events through a ProgressChannel. If the client disconnects, the
job keeps running and its result still lands in the cache, where the recovery
lookup can find it later.
"""
from __future__ import annotations

import asyncio
import time
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Awaitable, Callable

from app.config import settings
from app.models.events import SSEEvent
from app.models.research import Job, JobState, ResearchRequest
from app.services import cache_keys, streaming
from app.services import logger as log_service
from app.services.errors import (
    CacheUnavailableError,
    CollaboratorError,
    InvalidRequestError,
    friendly_collaborator_message,
)
from app.services.progress_channel import ProgressChannel
from app.services.result_cache import ResultCache

ResearchFn = Callable[[ResearchRequest], Awaitable[str]]
EmitFn = Callable[[SSEEvent], None]


def validate_request(request: ResearchRequest) -> None:
    if not request.topic or not request.topic.strip():
        raise InvalidRequestError("Topic is required")


def _default_research_fn() -> ResearchFn:
    from app.tools.perplexity_research import generate_research

    return generate_research


def _coerce_cached_result(value: Any) -> dict[str, Any] | None:
    if isinstance(value, dict) and isinstance(value.get("research"), str):
        return value
    return None


class JobRunner:
    def __init__(
        self,
        cache: ResultCache,
        research_fn: ResearchFn | None = None,
        *,
        heartbeat_seconds: float | None = None,
        queue_size: int | None = None,
        ttl: int | None = None,
    ):
        self.cache = cache
        self.research_fn = research_fn or _default_research_fn()
        self.heartbeat_seconds = (
            settings.progress_heartbeat_seconds if heartbeat_seconds is None else heartbeat_seconds
        )
        self.queue_size = settings.progress_queue_size if queue_size is None else queue_size
        self.ttl = ttl
        self._background: set[asyncio.Task] = set()

    async def _cached_result(self, key: str) -> dict[str, Any] | None:
        try:
            value = await self.cache.get(key)
        except CacheUnavailableError as e:
            log_service.log_cache_operation("get", key, "unavailable", error=e.message)
            return None
        if value is None:
            log_service.log_cache_operation("get", key, "miss")
            return None
        result = _coerce_cached_result(value)
        if result is None:
            log_service.log_cache_operation("get", key, "malformed", details=type(value).__name__)
            return None
        log_service.log_cache_operation("get", key, "hit")
        return result

    async def _store_result(self, key: str, result: dict[str, Any]) -> None:
        try:
            await self.cache.set(key, result, self.ttl)
        except CacheUnavailableError as e:
            # The client still gets the result; only recovery is lost.
            log_service.log_cache_operation("set", key, "unavailable", error=e.message)
            return
        log_service.log_cache_operation("set", key, "stored")

    async def _call_collaborator(self, job: Job, emit: EmitFn) -> str:
        task = asyncio.ensure_future(self.research_fn(job.request))
        started = time.monotonic()
        try:
            if self.heartbeat_seconds <= 0:
                return await task
            while True:
                done, _ = await asyncio.wait({task}, timeout=self.heartbeat_seconds)
                if done:
                    return task.result()
                emit(
                    streaming.progress(
                        job.progress,
                        "researching",
                        elapsed_seconds=int(time.monotonic() - started),
                    )
                )
        finally:
            if not task.done():
                task.cancel()

    async def execute(self, request: ResearchRequest, emit: EmitFn | None = None) -> Job:
        """Run a job to completion and return it.

        Raises InvalidRequestError for a blank topic before touching the cache
        or the collaborator. Every other failure ends the job in FAILED state
        with exactly one error event emitted.
        """
        validate_request(request)
        emit = emit or (lambda event: None)
        job = Job(request=request, state=JobState.RUNNING, started_at=datetime.now(timezone.utc))
        key = cache_keys.exact_key(request)

        try:
            cached = await self._cached_result(key)
            if cached is not None:
                job.result = cached
                job.from_cache = True
                job.progress = 100
                job.state = JobState.SUCCEEDED
                log_service.log_event("research_cache_hit", "Served research from cache", key=key)
                emit(streaming.completed(cached, from_cache=True))
                return job

            log_service.log_event("research_started", "Research job started", key=key)
            emit(streaming.progress(0, "starting"))

            research = await self._call_collaborator(job, emit)
            if not isinstance(research, str) or not research.strip():
                raise CollaboratorError("Research service returned empty research")

            result = {"research": research}
            await self._store_result(key, result)
            job.result = result
            job.progress = 100
            job.state = JobState.SUCCEEDED
            log_service.log_event("research_completed", "Research job completed", key=key)
            emit(streaming.completed(result, from_cache=False))
        except Exception as e:
            message, status_code = friendly_collaborator_message(e)
            job.error = message
            job.status_code = status_code
            job.state = JobState.FAILED
            log_service.log_event(
                "research_failed",
                "Research job failed",
                key=key,
                error=str(e),
            )
            emit(streaming.error(message, status_code=status_code))
        finally:
            job.finished_at = datetime.now(timezone.utc)
        return job

    async def _run_into_channel(self, request: ResearchRequest, channel: ProgressChannel) -> Job:
        job = await self.execute(request, emit=channel.publish)
        if channel.detached:
            log_service.log_event(
                "research_finished_detached",
                "Job finished after client disconnected",
                state=job.state.value,
            )
        return job

    async def stream(self, request: ResearchRequest) -> AsyncIterator[SSEEvent]:
        """Yield this job's events; leaving early does not cancel the job."""
        try:
            validate_request(request)
        except InvalidRequestError as e:
            yield streaming.error(e.message, status_code=e.status_code)
            return

        channel = ProgressChannel(self.queue_size)
        task = asyncio.create_task(self._run_into_channel(request, channel))
        self._background.add(task)
        task.add_done_callback(self._background.discard)

        try:
            async for event in channel:
                yield event
        finally:
            if not task.done():
                channel.detach()
                log_service.log_event(
                    "stream_detached",
                    "Client stopped listening; job continues",
                    key=cache_keys.exact_key(request),
                )

    async def drain(self) -> None:
        """Wait for jobs whose clients have detached."""
        if self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)
