from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from typing import Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

# Conversation history beyond this many turns is dropped before a request
MAX_PRIOR_TURNS = 4


class NoteType(StrEnum):
    MANUAL = "manual"
    AI_GENERATED = "ai_generated"
    SUMMARY = "summary"
    KEY_POINTS = "key_points"


class ProviderSpec(BaseModel):
    """One backend attempt: endpoint, credentials and model. Built once at startup."""

    model_config = ConfigDict(frozen=True)

    name: str
    base_url: str
    api_key: str = Field(default="", repr=False)
    model_id: str


@dataclass(frozen=True)
class ProviderChain:
    """Ordered providers for one logical operation plus the per-attempt timeout."""

    name: str
    providers: tuple[ProviderSpec, ...]
    timeout_seconds: float

    @property
    def provider_names(self) -> list[str]:
        return [p.name for p in self.providers]


class ChatTurn(BaseModel):
    role: Literal["user", "assistant"]
    content: str

    @field_validator("role", mode="before")
    @classmethod
    def coerce_role(cls, v: object) -> str:
        """Anything that is not the learner speaks as the assistant."""
        return "user" if v == "user" else "assistant"


class CompletionRequest(BaseModel):
    system_prompt: str
    user_prompt: str
    prior_turns: list[ChatTurn] = []
    temperature: float = 0.7
    max_tokens: int = 1000

    @field_validator("prior_turns")
    @classmethod
    def keep_recent_turns(cls, v: list[ChatTurn]) -> list[ChatTurn]:
        return v[-MAX_PRIOR_TURNS:]


class CompletionResult(BaseModel):
    """Text returned to a caller.

    Either verified non-empty provider output, a fresh cache hit, or a
    locally built fallback. ``provider`` is None for the last two.
    """

    content: str
    produced_at: datetime
    provider: str | None = None
    fallback: bool = False
    cached: bool = False


class SummaryResult(BaseModel):
    """Structured chapter summary.

    Accepts the camelCase keys the summary prompt asks providers to emit.
    """

    summary: str = Field(min_length=1)
    key_points: list[str] = Field(validation_alias=AliasChoices("keyPoints", "key_points"))
    concepts: list[str]
    fallback: bool = False
