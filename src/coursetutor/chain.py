"""Ordered provider cascade.

Providers are tried strictly one after another in preference order. Each
attempt is bounded by ``asyncio.wait_for``, which cancels the in-flight call
when the timer fires, so a late answer from a timed-out provider is never
observed. The first non-empty answer wins; later providers are not called.

When every provider fails the caller-supplied fallback builds the result
locally. ``attempt_chain`` never raises for provider failures: exhaustion is a
normal outcome, not an error.
"""

from __future__ import annotations

import asyncio
import os
from collections.abc import Callable, Mapping, Sequence
from datetime import UTC, datetime
from typing import TYPE_CHECKING

import structlog

from coursetutor.errors import TutorError
from coursetutor.models.chat import CompletionResult, ProviderChain, ProviderSpec

if TYPE_CHECKING:
    from coursetutor.config import ChainSettings, EndpointSettings
    from coursetutor.models.chat import CompletionRequest
    from coursetutor.protocols import CompleterProtocol

log = structlog.get_logger()


def _utcnow() -> datetime:
    return datetime.now(UTC)


def build_chain(
    name: str,
    chain: ChainSettings,
    endpoints: Mapping[str, EndpointSettings],
    environ: Mapping[str, str] | None = None,
) -> ProviderChain:
    """Resolve configured steps into immutable provider specs.

    API keys are read from the environment here, once. A missing key is not
    an error: the provider will reject the call and the chain moves on.
    """
    env = os.environ if environ is None else environ
    providers: list[ProviderSpec] = []
    for step in chain.steps:
        endpoint = endpoints.get(step.endpoint)
        if endpoint is None:
            raise ValueError(
                f"Chain {name!r} step {step.name!r}: unknown endpoint {step.endpoint!r}"
            )
        providers.append(
            ProviderSpec(
                name=step.name,
                base_url=endpoint.base_url,
                api_key=env.get(endpoint.api_key_env, ""),
                model_id=step.model,
            )
        )
    return ProviderChain(
        name=name,
        providers=tuple(providers),
        timeout_seconds=chain.timeout_seconds,
    )


async def attempt_chain(
    request: CompletionRequest,
    providers: Sequence[ProviderSpec],
    completer: CompleterProtocol,
    *,
    timeout_seconds: float,
    fallback: Callable[[], str],
    clock: Callable[[], datetime] = _utcnow,
) -> CompletionResult:
    """Return the first non-empty provider answer, or the local fallback."""
    for position, provider in enumerate(providers, start=1):
        attempt_log = log.bind(
            provider=provider.name,
            model=provider.model_id,
            position=position,
            chain_length=len(providers),
        )
        attempt_log.info("provider_attempt")
        try:
            content = await asyncio.wait_for(
                completer.complete(provider, request),
                timeout=timeout_seconds,
            )
        except TimeoutError:
            attempt_log.warning("provider_timeout", timeout_seconds=timeout_seconds)
            continue
        except TutorError as exc:
            attempt_log.warning(
                "provider_failed",
                code=exc.code,
                message=exc.message,
                recoverable=exc.recoverable,
            )
            continue
        except Exception:
            attempt_log.warning("provider_unexpected_error", exc_info=True)
            continue

        if not content or not content.strip():
            attempt_log.warning("provider_empty_response")
            continue

        attempt_log.info("provider_succeeded", content_length=len(content))
        return CompletionResult(
            content=content,
            produced_at=clock(),
            provider=provider.name,
        )

    log.error(
        "provider_chain_exhausted",
        attempted=[p.name for p in providers],
    )
    return CompletionResult(
        content=fallback(),
        produced_at=clock(),
        provider=None,
        fallback=True,
    )
