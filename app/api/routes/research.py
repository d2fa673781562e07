from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sse_starlette.sse import EventSourceResponse

from app.api.deps import get_job_runner, get_result_cache
from app.models.research import JobState
from app.models.schemas import ResearchResponse, ResearchSubmission
from app.services import logger as log_service
from app.services import recovery, streaming
from app.services.errors import InvalidRequestError
from app.services.job_runner import JobRunner, validate_request
from app.services.result_cache import ResultCache

router = APIRouter(prefix="/api/research", tags=["research"])


@router.post("", response_model=ResearchResponse)
async def run_research(
    submission: ResearchSubmission,
    runner: JobRunner = Depends(get_job_runner),
):
    """Run a research job and answer once it finishes (no progress events)."""
    request = submission.to_request()
    try:
        job = await runner.execute(request)
    except InvalidRequestError as e:
        return JSONResponse({"error": e.message}, status_code=e.status_code)

    if job.state is not JobState.SUCCEEDED or job.result is None:
        return JSONResponse({"error": job.error or "Research failed"}, status_code=job.status_code or 500)
    return ResearchResponse(research=job.result["research"])


@router.post("/stream")
async def stream_research(
    submission: ResearchSubmission,
    runner: JobRunner = Depends(get_job_runner),
):
    """SSE endpoint that streams progress, then one completed or error event."""
    request = submission.to_request()

    async def event_generator():
        try:
            async for event in runner.stream(request):
                yield event.to_sse()
        except Exception as e:
            log_service.log_event(
                event_type="stream_error",
                message="Unhandled error in research stream",
                error=str(e),
            )
            yield streaming.error("Research stream failed unexpectedly.").to_sse()

    return EventSourceResponse(event_generator())


@router.post("/check")
async def check_research(
    submission: ResearchSubmission,
    cache: ResultCache = Depends(get_result_cache),
):
    """Recover a result that finished after the client stopped listening."""
    request = submission.to_request()
    try:
        validate_request(request)
    except InvalidRequestError as e:
        return JSONResponse({"error": e.message}, status_code=e.status_code)

    outcome = await recovery.check_completion(cache, request)
    if not outcome["found"]:
        return JSONResponse(outcome, status_code=404)
    return outcome
