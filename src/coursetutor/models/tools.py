from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from coursetutor.models.chat import ChatTurn, NoteType

MAX_TITLE_LENGTH = 500
MAX_CONTENT_LENGTH = 200_000
MAX_QUESTION_LENGTH = 4_000


def _require_text(v: str, field: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError(f"{field} must not be empty")
    return v


class ChapterInput(BaseModel):
    chapter_title: str = Field(max_length=MAX_TITLE_LENGTH)
    chapter_content: str = Field(max_length=MAX_CONTENT_LENGTH)

    @field_validator("chapter_title")
    @classmethod
    def title_required(cls, v: str) -> str:
        return _require_text(v, "chapter_title")

    @field_validator("chapter_content")
    @classmethod
    def content_required(cls, v: str) -> str:
        return _require_text(v, "chapter_content")


class GenerateSummaryInput(ChapterInput):
    pass


class AnswerQuestionInput(ChapterInput):
    question: str = Field(max_length=MAX_QUESTION_LENGTH)
    conversation_history: list[ChatTurn] = []

    @field_validator("question")
    @classmethod
    def question_required(cls, v: str) -> str:
        return _require_text(v, "question")


class ProvideClarificationInput(ChapterInput):
    request: str = Field(max_length=MAX_QUESTION_LENGTH)

    @field_validator("request")
    @classmethod
    def request_required(cls, v: str) -> str:
        return _require_text(v, "request")


class GenerateNotesInput(ChapterInput):
    note_type: NoteType = NoteType.AI_GENERATED
    custom_prompt: str | None = Field(default=None, max_length=MAX_QUESTION_LENGTH)

    @field_validator("custom_prompt")
    @classmethod
    def blank_prompt_is_none(cls, v: str | None) -> str | None:
        # A blank custom prompt falls back to the note-type template
        if v is None or not v.strip():
            return None
        return v.strip()


class SummaryOutput(BaseModel):
    chapter_title: str
    summary: str
    key_points: list[str]
    concepts: list[str]
    fallback: bool


class CompletionOutput(BaseModel):
    content: str
    produced_at: datetime
    provider: str | None
    fallback: bool
    cached: bool


class NotesOutput(CompletionOutput):
    chapter_title: str
    note_type: NoteType
    title: str  # Display title for the saved note, e.g. "AI Notes: Cell Biology"
