from __future__ import annotations

import time
from typing import Any

import httpx

from app.config import settings
from app.models.research import ResearchRequest
from app.services import logger as log_service
from app.services.errors import CollaboratorError, friendly_collaborator_message

LANGUAGE_NAMES = {
    "en": "English",
    "es": "Spanish",
}


def build_prompt(request: ResearchRequest) -> str:
    language = LANGUAGE_NAMES.get(request.language, request.language)
    return (
        f'Research the topic: "{request.topic.strip()}".\n'
        f"Target audience: {request.audience}.\n"
        f"The research will be used to write a {request.content_type} "
        f"for the {request.platform} platform.\n"
        "Cover current statistics, audience pain points, expert opinions, "
        "recent developments and cite every source with a link.\n"
        f"Write the research in {language}."
    )


def _extract_text(payload: Any) -> str:
    if not isinstance(payload, dict):
        raise CollaboratorError("Research service returned an unexpected response shape")
    choices = payload.get("choices") or []
    if not choices or not isinstance(choices[0], dict):
        raise CollaboratorError("Research service returned no choices")
    message = choices[0].get("message") or {}
    content = message.get("content") if isinstance(message, dict) else None
    if not isinstance(content, str) or not content.strip():
        raise CollaboratorError("Research service returned empty research")
    return content


async def generate_research(
    request: ResearchRequest,
    *,
    http_client: httpx.AsyncClient | None = None,
) -> str:
    """Ask the research provider for a research document on the request's topic."""
    if not settings.perplexity_api_key:
        raise CollaboratorError("Perplexity API key not configured", status_code=500)

    body = {
        "model": settings.perplexity_model,
        "messages": [
            {
                "role": "system",
                "content": "You are a meticulous research assistant for content creators.",
            },
            {"role": "user", "content": build_prompt(request)},
        ],
        "max_tokens": settings.research_max_tokens,
        "temperature": settings.research_temperature,
    }

    async def _do_request(client: httpx.AsyncClient) -> Any:
        response = await client.post(
            settings.perplexity_base_url,
            json=body,
            headers={
                "Authorization": f"Bearer {settings.perplexity_api_key}",
                "Content-Type": "application/json",
            },
        )
        response.raise_for_status()
        return response.json()

    started = time.monotonic()
    try:
        if http_client is None:
            async with httpx.AsyncClient(timeout=settings.research_timeout_seconds) as client:
                payload = await _do_request(client)
        else:
            payload = await _do_request(http_client)
        research = _extract_text(payload)
    except CollaboratorError as e:
        log_service.log_collaborator_call(
            "perplexity",
            "error",
            duration_ms=int((time.monotonic() - started) * 1000),
            error=e.message,
        )
        raise
    except (httpx.HTTPError, ValueError) as e:
        message, status_code = friendly_collaborator_message(e)
        log_service.log_collaborator_call(
            "perplexity",
            "error",
            duration_ms=int((time.monotonic() - started) * 1000),
            error=str(e) or e.__class__.__name__,
        )
        raise CollaboratorError(message, status_code=status_code) from e

    log_service.log_collaborator_call(
        "perplexity",
        "success",
        duration_ms=int((time.monotonic() - started) * 1000),
        research_chars=len(research),
    )
    return research
