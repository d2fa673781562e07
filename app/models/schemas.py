from __future__ import annotations

from pydantic import BaseModel

from app.models.research import (
    DEFAULT_AUDIENCE,
    DEFAULT_CONTENT_TYPE,
    DEFAULT_LANGUAGE,
    DEFAULT_PLATFORM,
    ResearchRequest,
    extract_context_field,
)


# --- Requests ---


class ResearchSubmission(BaseModel):
    topic: str = ""
    contentType: str | None = None
    platform: str | None = None
    language: str | None = None
    context: str | None = None

    def to_request(self) -> ResearchRequest:
        """Resolve explicit fields, then context-string fields, then defaults."""
        return ResearchRequest(
            topic=self.topic,
            content_type=(
                self.contentType
                or extract_context_field(self.context, "Content Type")
                or DEFAULT_CONTENT_TYPE
            ),
            platform=(
                self.platform
                or extract_context_field(self.context, "Platform")
                or DEFAULT_PLATFORM
            ),
            language=self.language or DEFAULT_LANGUAGE,
            audience=extract_context_field(self.context, "Target Audience") or DEFAULT_AUDIENCE,
        )


class QuestionsRequest(BaseModel):
    text: str = ""


# --- Responses ---


class ResearchResponse(BaseModel):
    research: str


class QuestionsResponse(BaseModel):
    questions: list[str]
