from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from app.models.schemas import QuestionsRequest, QuestionsResponse
from app.services.errors import CollaboratorError
from app.tools import question_generator

router = APIRouter(prefix="/api/questions", tags=["questions"])


@router.post("", response_model=QuestionsResponse)
async def generate_questions(request: QuestionsRequest):
    """Follow-up questions for a research brief. Failures are reported, never faked."""
    if not request.text.strip():
        return JSONResponse({"error": "Text is required"}, status_code=400)
    try:
        questions = await question_generator.generate_questions(request.text)
    except CollaboratorError as e:
        return JSONResponse({"error": e.message}, status_code=e.status_code)
    return QuestionsResponse(questions=questions)
