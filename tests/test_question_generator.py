from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from app.config import settings
from app.services.errors import CollaboratorError
from app.tools import question_generator


def test_parse_questions_finds_array_in_chatty_reply():
    raw = 'Sure! Here you go:\n["Who is the audience?", "  ", "What budget?"]\nHope that helps.'

    assert question_generator.parse_questions(raw) == ["Who is the audience?", "What budget?"]


@pytest.mark.parametrize("raw", ["no array here", "[not json]", "[]", '[1, 2]'])
def test_parse_questions_rejects_unusable_replies(raw):
    with pytest.raises(CollaboratorError):
        question_generator.parse_questions(raw)


def _completion(content: str):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


@pytest.mark.asyncio
async def test_generate_questions_uses_llm_reply(monkeypatch):
    monkeypatch.setattr(settings, "openrouter_api_key", "key")
    fake = MagicMock()
    fake.chat.completions.create = AsyncMock(return_value=_completion('["Q1?", "Q2?"]'))

    with patch("app.tools.question_generator.llm_client.client", return_value=fake):
        questions = await question_generator.generate_questions("coffee shop marketing")

    assert questions == ["Q1?", "Q2?"]
    kwargs = fake.chat.completions.create.await_args.kwargs
    assert kwargs["messages"][-1]["content"] == "coffee shop marketing"


@pytest.mark.asyncio
async def test_generate_questions_maps_provider_errors(monkeypatch):
    monkeypatch.setattr(settings, "openrouter_api_key", "key")
    fake = MagicMock()
    fake.chat.completions.create = AsyncMock(side_effect=RuntimeError("429 rate limit"))

    with patch("app.tools.question_generator.llm_client.client", return_value=fake):
        with pytest.raises(CollaboratorError) as exc_info:
            await question_generator.generate_questions("text")

    assert exc_info.value.status_code == 429


@pytest.mark.asyncio
async def test_generate_questions_requires_key(monkeypatch):
    monkeypatch.setattr(settings, "openrouter_api_key", "")

    with pytest.raises(CollaboratorError) as exc_info:
        await question_generator.generate_questions("text")

    assert exc_info.value.status_code == 500
