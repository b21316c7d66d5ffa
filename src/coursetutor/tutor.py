"""Tutoring operations built on the provider cascade.

Each operation follows the same path: build the cache key from every input
that shapes the answer, return a fresh cached answer if there is one, run the
operation's provider chain otherwise, and store only genuine provider answers.
Fallback text is never cached, so the next call tries the providers again.

No operation raises for provider trouble. Callers always get a well-formed,
non-empty result.
"""

from __future__ import annotations

import json
import re
from collections.abc import Callable, Mapping, Sequence
from datetime import UTC, datetime
from typing import TYPE_CHECKING

import structlog
from pydantic import ValidationError

from coursetutor.cache import make_cache_key
from coursetutor.chain import attempt_chain, build_chain
from coursetutor.fallbacks import (
    answer_fallback,
    clarification_fallback,
    notes_fallback,
    summary_fallback,
)
from coursetutor.models.chat import CompletionResult, NoteType, SummaryResult
from coursetutor.prompts import (
    clarification_request,
    notes_request,
    question_request,
    summary_request,
)

if TYPE_CHECKING:
    from coursetutor.config import Settings
    from coursetutor.models.chat import ChatTurn, CompletionRequest, ProviderChain
    from coursetutor.protocols import CompleterProtocol, ResponseCacheProtocol

log = structlog.get_logger()

_CODE_FENCE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)


def _utcnow() -> datetime:
    return datetime.now(UTC)


def parse_summary(text: str) -> SummaryResult:
    """Parse a provider's JSON summary. Raises ValueError on bad JSON or shape.

    A surrounding markdown code fence is tolerated; anything else is not.
    """
    stripped = text.strip()
    match = _CODE_FENCE.match(stripped)
    if match:
        stripped = match.group(1)
    try:
        parsed = SummaryResult.model_validate(json.loads(stripped))
    except (json.JSONDecodeError, ValidationError) as exc:
        raise ValueError(f"Invalid summary response: {exc}") from exc
    # The fallback label is ours to set, never the provider's.
    return parsed.model_copy(update={"fallback": False})


class TutorService:
    """The four tutoring operations, each bound to its own provider chain."""

    def __init__(
        self,
        *,
        completer: CompleterProtocol,
        cache: ResponseCacheProtocol,
        question_chain: ProviderChain,
        notes_chain: ProviderChain,
        summary_chain: ProviderChain,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._completer = completer
        self._cache = cache
        self._question_chain = question_chain
        self._notes_chain = notes_chain
        self._summary_chain = summary_chain
        self._clock = clock

    async def _complete(
        self,
        key: str,
        request: CompletionRequest,
        chain: ProviderChain,
        fallback: Callable[[], str],
    ) -> CompletionResult:
        cached = await self._cache.get(key)
        if cached is not None:
            log.info("cache_hit", chain=chain.name, key=key)
            return CompletionResult(content=cached, produced_at=self._clock(), cached=True)

        result = await attempt_chain(
            request,
            chain.providers,
            self._completer,
            timeout_seconds=chain.timeout_seconds,
            fallback=fallback,
            clock=self._clock,
        )
        if not result.fallback:
            await self._cache.put(key, result.content)
        return result

    async def generate_summary(self, chapter_title: str, chapter_content: str) -> SummaryResult:
        key = make_cache_key(
            "summary",
            title=chapter_title,
            content=chapter_content,
            providers=self._summary_chain.provider_names,
        )
        cached = await self._cache.get(key)
        if cached is not None:
            log.info("cache_hit", chain=self._summary_chain.name, key=key)
            try:
                return parse_summary(cached)
            except ValueError:
                log.warning("cache_entry_unparseable", key=key)

        result = await attempt_chain(
            summary_request(chapter_title, chapter_content),
            self._summary_chain.providers,
            self._completer,
            timeout_seconds=self._summary_chain.timeout_seconds,
            fallback=lambda: summary_fallback(chapter_title).model_dump_json(),
            clock=self._clock,
        )
        if result.fallback:
            return summary_fallback(chapter_title)

        # A provider can answer with text that is not the JSON we asked for.
        # That is not a chain failure; it falls back locally instead.
        try:
            summary = parse_summary(result.content)
        except ValueError as exc:
            log.warning("summary_parse_failed", provider=result.provider, error=str(exc))
            return summary_fallback(chapter_title)

        await self._cache.put(key, result.content)
        return summary

    async def answer_question(
        self,
        question: str,
        chapter_title: str,
        chapter_content: str,
        history: Sequence[ChatTurn] = (),
    ) -> CompletionResult:
        request = question_request(question, chapter_title, chapter_content, history)
        key = make_cache_key(
            "question",
            question=question,
            title=chapter_title,
            content=chapter_content,
            history=[t.model_dump() for t in request.prior_turns],
            providers=self._question_chain.provider_names,
        )
        return await self._complete(
            key,
            request,
            self._question_chain,
            lambda: answer_fallback(question, chapter_title, chapter_content),
        )

    async def generate_notes(
        self,
        chapter_title: str,
        chapter_content: str,
        note_type: NoteType = NoteType.AI_GENERATED,
        custom_prompt: str | None = None,
    ) -> CompletionResult:
        if custom_prompt is not None and not custom_prompt.strip():
            custom_prompt = None
        key = make_cache_key(
            "notes",
            title=chapter_title,
            content=chapter_content,
            note_type=note_type.value,
            custom_prompt=custom_prompt,
            providers=self._notes_chain.provider_names,
        )
        return await self._complete(
            key,
            notes_request(chapter_title, chapter_content, note_type, custom_prompt),
            self._notes_chain,
            lambda: notes_fallback(chapter_title, chapter_content),
        )

    async def provide_clarification(
        self, request: str, chapter_title: str, chapter_content: str
    ) -> CompletionResult:
        key = make_cache_key(
            "clarification",
            request=request,
            title=chapter_title,
            content=chapter_content,
            providers=self._summary_chain.provider_names,
        )
        return await self._complete(
            key,
            clarification_request(request, chapter_title, chapter_content),
            self._summary_chain,
            lambda: clarification_fallback(request, chapter_title),
        )


def build_tutor_service(
    settings: Settings,
    completer: CompleterProtocol,
    cache: ResponseCacheProtocol,
    environ: Mapping[str, str] | None = None,
) -> TutorService:
    """Resolve the configured chains and wire them into a TutorService."""
    providers = settings.providers
    return TutorService(
        completer=completer,
        cache=cache,
        question_chain=build_chain(
            "question", providers.question_chain, providers.endpoints, environ
        ),
        notes_chain=build_chain("notes", providers.notes_chain, providers.endpoints, environ),
        summary_chain=build_chain(
            "summary", providers.summary_chain, providers.endpoints, environ
        ),
    )
