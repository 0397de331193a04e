"""Provider-agnostic chat completion layer: catalog, translation, invocation, fallback and health."""

from .client import ProviderClient
from .fallback import (
    FALLBACK_CHAIN_ID,
    RETRIABLE_CODES,
    FallbackOrchestrator,
    LLMReply,
    build_provider_chain,
    is_retriable_error,
    sort_by_fallback_order,
)
from .health import HealthProber
from .registry import DEFAULT_FALLBACK_ORDER, ProviderCatalog, catalog
from .types import (
    ChatCompletion,
    CredentialCheck,
    FallbackOutcome,
    ImagePart,
    InvocationFailure,
    InvocationResult,
    InvocationSuccess,
    Message,
    ProviderDefinition,
    ProviderError,
    ProviderHealth,
    ProviderInstance,
    TextPart,
)

__all__ = [
    "ProviderClient",
    "FALLBACK_CHAIN_ID",
    "RETRIABLE_CODES",
    "FallbackOrchestrator",
    "LLMReply",
    "build_provider_chain",
    "is_retriable_error",
    "sort_by_fallback_order",
    "HealthProber",
    "DEFAULT_FALLBACK_ORDER",
    "ProviderCatalog",
    "catalog",
    "ChatCompletion",
    "CredentialCheck",
    "FallbackOutcome",
    "ImagePart",
    "InvocationFailure",
    "InvocationResult",
    "InvocationSuccess",
    "Message",
    "ProviderDefinition",
    "ProviderError",
    "ProviderHealth",
    "ProviderInstance",
    "TextPart",
]
