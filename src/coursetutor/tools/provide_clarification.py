"""Tool handler for provide_clarification."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from coursetutor.errors import ErrorCode, TutorError
from coursetutor.models.tools import CompletionOutput, ProvideClarificationInput

if TYPE_CHECKING:
    from coursetutor.state import AppState


async def handle(
    request: str,
    chapter_title: str,
    chapter_content: str,
    state: AppState,
) -> dict:
    """Handle a provide_clarification tool call."""
    log = structlog.get_logger().bind(tool="provide_clarification")
    log.info("handler_called")

    try:
        validated = ProvideClarificationInput(
            request=request,
            chapter_title=chapter_title,
            chapter_content=chapter_content,
        )
    except ValueError as exc:
        raise TutorError(
            code=ErrorCode.INVALID_INPUT,
            message=str(exc),
            suggestion="Clarification request, chapter title, and content are required.",
            recoverable=False,
        ) from exc

    if state.tutor is None:
        raise RuntimeError("Tutor service not initialized")

    result = await state.tutor.provide_clarification(
        validated.request, validated.chapter_title, validated.chapter_content
    )
    log.info("clarification_complete", provider=result.provider, fallback=result.fallback)

    return CompletionOutput(**result.model_dump()).model_dump(mode="json")
