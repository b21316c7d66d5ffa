"""Tool handler for answer_question."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from coursetutor.errors import ErrorCode, TutorError
from coursetutor.models.tools import AnswerQuestionInput, CompletionOutput

if TYPE_CHECKING:
    from coursetutor.state import AppState


async def handle(
    question: str,
    chapter_title: str,
    chapter_content: str,
    conversation_history: list[dict] | None,
    state: AppState,
) -> dict:
    """Handle an answer_question tool call."""
    log = structlog.get_logger().bind(tool="answer_question")
    log.info("handler_called", history_turns=len(conversation_history or []))

    try:
        validated = AnswerQuestionInput(
            question=question,
            chapter_title=chapter_title,
            chapter_content=chapter_content,
            conversation_history=conversation_history or [],
        )
    except ValueError as exc:
        raise TutorError(
            code=ErrorCode.INVALID_INPUT,
            message=str(exc),
            suggestion="Question, chapter title, and content are required.",
            recoverable=False,
        ) from exc

    if state.tutor is None:
        raise RuntimeError("Tutor service not initialized")

    result = await state.tutor.answer_question(
        validated.question,
        validated.chapter_title,
        validated.chapter_content,
        validated.conversation_history,
    )
    log.info("answer_complete", provider=result.provider, fallback=result.fallback)

    return CompletionOutput(**result.model_dump()).model_dump(mode="json")
