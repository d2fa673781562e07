from __future__ import annotations

import json
import re
import time
from typing import Any

from app import llm_client
from app.config import settings
from app.services import logger as log_service
from app.services.errors import CollaboratorError, friendly_collaborator_message

SYSTEM_PROMPT = (
    "You help content creators sharpen a research brief. Given the text, return "
    "between 3 and 6 short follow-up questions that would make the research more "
    "specific. Respond with a JSON array of strings and nothing else."
)

_JSON_ARRAY = re.compile(r"\[[\s\S]*\]")


def parse_questions(raw: str) -> list[str]:
    """Pull a JSON array of question strings out of an LLM reply."""
    match = _JSON_ARRAY.search(raw or "")
    if not match:
        raise CollaboratorError("Question service did not return a JSON array")
    try:
        parsed: Any = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        raise CollaboratorError("Question service returned malformed JSON") from e
    if not isinstance(parsed, list):
        raise CollaboratorError("Question service did not return a JSON array")
    questions = [q.strip() for q in parsed if isinstance(q, str) and q.strip()]
    if not questions:
        raise CollaboratorError("Question service returned no questions")
    return questions


async def generate_questions(text: str) -> list[str]:
    if not settings.openrouter_api_key:
        raise CollaboratorError("OpenRouter API key not configured", status_code=500)

    model = llm_client.get_model()
    started = time.monotonic()
    try:
        response = await llm_client.client().chat.completions.create(
            model=model,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": text},
            ],
            temperature=0.3,
        )
        content = response.choices[0].message.content or ""
        questions = parse_questions(content)
    except CollaboratorError as e:
        log_service.log_collaborator_call(
            "questions",
            "error",
            duration_ms=int((time.monotonic() - started) * 1000),
            error=e.message,
            model=model,
        )
        raise
    except Exception as e:
        message, status_code = friendly_collaborator_message(e)
        log_service.log_collaborator_call(
            "questions",
            "error",
            duration_ms=int((time.monotonic() - started) * 1000),
            error=str(e),
            model=model,
        )
        raise CollaboratorError(message, status_code=status_code) from e

    log_service.log_collaborator_call(
        "questions",
        "success",
        duration_ms=int((time.monotonic() - started) * 1000),
        model=model,
        questions=len(questions),
    )
    return questions
