"""Tool handler for generate_notes.

The returned ``title`` is the display title the LMS stores the note under;
persisting the note is the caller's business.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from coursetutor.errors import ErrorCode, TutorError
from coursetutor.models.tools import GenerateNotesInput, NotesOutput

if TYPE_CHECKING:
    from coursetutor.state import AppState


async def handle(
    chapter_title: str,
    chapter_content: str,
    note_type: str,
    custom_prompt: str | None,
    state: AppState,
) -> dict:
    """Handle a generate_notes tool call."""
    log = structlog.get_logger().bind(tool="generate_notes", note_type=note_type)
    log.info("handler_called", custom_prompt=custom_prompt is not None)

    try:
        validated = GenerateNotesInput(
            chapter_title=chapter_title,
            chapter_content=chapter_content,
            note_type=note_type,
            custom_prompt=custom_prompt,
        )
    except ValueError as exc:
        raise TutorError(
            code=ErrorCode.INVALID_INPUT,
            message=str(exc),
            suggestion=(
                "Chapter title and content are required; note_type must be one of "
                "manual, ai_generated, summary, key_points."
            ),
            recoverable=False,
        ) from exc

    if state.tutor is None:
        raise RuntimeError("Tutor service not initialized")

    result = await state.tutor.generate_notes(
        validated.chapter_title,
        validated.chapter_content,
        validated.note_type,
        validated.custom_prompt,
    )
    log.info("notes_complete", provider=result.provider, fallback=result.fallback)

    output = NotesOutput(
        **result.model_dump(),
        chapter_title=validated.chapter_title,
        note_type=validated.note_type,
        title=f"AI Notes: {validated.chapter_title}",
    )
    return output.model_dump(mode="json")
