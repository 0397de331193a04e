"""
Fallback chain over an ordered list of provider instances.

The chain is walked strictly in order: one provider's call resolves before the
next starts. A failure whose code is in the retriable set moves on to the next
instance; any other code stops the walk with that failure. With the default
policy every defined code except ``unknown`` is retriable, so in practice the
walk ends on the first success or when the chain is exhausted.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Sequence

from screentutor.app.core.logging import get_logger
from screentutor.app.providers.client import ProviderClient
from screentutor.app.providers.translator import get_response_text
from screentutor.app.providers.types import (
    ErrorCode,
    FallbackOutcome,
    InvocationFailure,
    Message,
    ProviderError,
    ProviderInstance,
)

logger = get_logger(__name__)

FALLBACK_CHAIN_ID = "fallback-chain"

RETRIABLE_CODES: frozenset[ErrorCode] = frozenset(
    {"auth_error", "rate_limit", "network_error", "invalid_response"}
)


def is_retriable_error(error: ProviderError, retriable_codes: Iterable[str] = RETRIABLE_CODES) -> bool:
    return error.code in retriable_codes


def build_provider_chain(
    instances: Sequence[ProviderInstance],
    primary_provider_id: str | None = None,
) -> list[ProviderInstance]:
    """Order enabled instances for one request, primary first when it is enabled."""
    enabled: list[ProviderInstance] = []
    seen: set[str] = set()
    for instance in instances:
        if not instance.enabled or instance.id in seen:
            continue
        seen.add(instance.id)
        enabled.append(instance)

    if not primary_provider_id:
        return enabled

    primary = next((i for i in enabled if i.id == primary_provider_id), None)
    if primary is None:
        return enabled
    return [primary] + [i for i in enabled if i.id != primary_provider_id]


def sort_by_fallback_order(
    instances: Sequence[ProviderInstance],
    fallback_order: Sequence[str],
) -> list[ProviderInstance]:
    """Stable sort by position in ``fallback_order``; unlisted ids go last."""
    rank = {provider_id: position for position, provider_id in enumerate(fallback_order)}
    return sorted(instances, key=lambda i: rank.get(i.id, len(rank)))


@dataclass(frozen=True)
class LLMReply:
    text: str | None = None
    provider_id: str | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _exhausted(attempted: list[str], errors: list[ProviderError]) -> InvocationFailure:
    if not attempted:
        message = "No enabled providers in chain"
    else:
        details = "; ".join(f"{e.provider_id}: {e.message}" for e in errors)
        message = f"All {len(attempted)} providers failed. Errors: {details}"
    return InvocationFailure(error=ProviderError(FALLBACK_CHAIN_ID, "unknown", message))


class FallbackOrchestrator:
    def __init__(self, client: ProviderClient, retriable_codes: Iterable[str] = RETRIABLE_CODES):
        self.client = client
        self.retriable_codes = frozenset(retriable_codes)

    async def call_with_fallback(
        self,
        chain: Sequence[ProviderInstance],
        messages: Sequence[Message],
        max_tokens: int | None = None,
        temperature: float | None = None,
        timeout: float | None = None,
    ) -> FallbackOutcome:
        attempted: list[str] = []
        errors: list[ProviderError] = []

        for instance in chain:
            # build_provider_chain already drops these; the walk re-checks.
            if not instance.enabled or instance.id in attempted:
                continue

            attempted.append(instance.id)
            result = await self.client.invoke(
                instance,
                messages,
                max_tokens=max_tokens,
                temperature=temperature,
                timeout=timeout,
            )

            if result.success:
                if errors:
                    logger.info(
                        "Fallback chain recovered",
                        data={"provider_id": instance.id, "attempted": list(attempted)},
                    )
                return FallbackOutcome(result=result, attempted_providers=attempted, errors=errors)

            errors.append(result.error)
            if not is_retriable_error(result.error, self.retriable_codes):
                logger.warning(
                    "Provider failed with non-retriable error, stopping chain",
                    data={"provider_id": instance.id, "code": result.error.code},
                )
                return FallbackOutcome(result=result, attempted_providers=attempted, errors=errors)

            logger.warning(
                f"Provider {instance.name} failed ({result.error.code}): {result.error.message}. Trying next provider",
                data={"provider_id": instance.id, "code": result.error.code},
            )

        return FallbackOutcome(result=_exhausted(attempted, errors), attempted_providers=attempted, errors=errors)

    async def call_llm(
        self,
        chain: Sequence[ProviderInstance],
        messages: Sequence[Message],
        max_tokens: int | None = None,
        temperature: float | None = None,
        timeout: float | None = None,
    ) -> LLMReply:
        outcome = await self.call_with_fallback(
            chain, messages, max_tokens=max_tokens, temperature=temperature, timeout=timeout
        )
        if outcome.result.success:
            return LLMReply(
                text=get_response_text(outcome.result.response),
                provider_id=outcome.result.provider_id,
            )
        return LLMReply(error=outcome.result.error.message)


__all__ = [
    "FALLBACK_CHAIN_ID",
    "RETRIABLE_CODES",
    "FallbackOrchestrator",
    "LLMReply",
    "build_provider_chain",
    "is_retriable_error",
    "sort_by_fallback_order",
]
