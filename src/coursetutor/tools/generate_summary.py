"""Tool handler for generate_summary.

Receives AppState, validates input, delegates to the tutor service, and
returns a structured dict. No MCP or FastMCP imports; server.py handles the
MCP wiring.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from coursetutor.errors import ErrorCode, TutorError
from coursetutor.models.tools import GenerateSummaryInput, SummaryOutput

if TYPE_CHECKING:
    from coursetutor.state import AppState


async def handle(chapter_title: str, chapter_content: str, state: AppState) -> dict:
    """Handle a generate_summary tool call."""
    log = structlog.get_logger().bind(tool="generate_summary")
    log.info("handler_called")

    try:
        validated = GenerateSummaryInput(
            chapter_title=chapter_title,
            chapter_content=chapter_content,
        )
    except ValueError as exc:
        raise TutorError(
            code=ErrorCode.INVALID_INPUT,
            message=str(exc),
            suggestion="Chapter title and content are required.",
            recoverable=False,
        ) from exc

    if state.tutor is None:
        raise RuntimeError("Tutor service not initialized")

    summary = await state.tutor.generate_summary(
        validated.chapter_title, validated.chapter_content
    )
    log.info("summary_complete", fallback=summary.fallback, key_points=len(summary.key_points))

    output = SummaryOutput(
        chapter_title=validated.chapter_title,
        summary=summary.summary,
        key_points=summary.key_points,
        concepts=summary.concepts,
        fallback=summary.fallback,
    )
    return output.model_dump(mode="json")
