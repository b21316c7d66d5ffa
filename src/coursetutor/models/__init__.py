from __future__ import annotations

from coursetutor.models.cache import CacheEntry
from coursetutor.models.chat import (
    ChatTurn,
    CompletionRequest,
    CompletionResult,
    NoteType,
    ProviderChain,
    ProviderSpec,
    SummaryResult,
)
from coursetutor.models.tools import (
    AnswerQuestionInput,
    CompletionOutput,
    GenerateNotesInput,
    GenerateSummaryInput,
    NotesOutput,
    ProvideClarificationInput,
    SummaryOutput,
)

__all__ = [
    # chat
    "ChatTurn",
    "CompletionRequest",
    "CompletionResult",
    "NoteType",
    "ProviderChain",
    "ProviderSpec",
    "SummaryResult",
    # cache
    "CacheEntry",
    # tools
    "AnswerQuestionInput",
    "GenerateNotesInput",
    "GenerateSummaryInput",
    "ProvideClarificationInput",
    "CompletionOutput",
    "NotesOutput",
    "SummaryOutput",
]
