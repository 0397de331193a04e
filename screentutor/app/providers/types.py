from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal, Sequence, Union

ProviderTier = Literal["paid", "free", "local"]
ApiFamily = Literal["openai_compat", "anthropic"]
MessageRole = Literal["system", "user", "assistant"]
ErrorCode = Literal["rate_limit", "auth_error", "network_error", "invalid_response", "unknown"]
HealthStatus = Literal["healthy", "degraded", "unhealthy", "unknown"]


@dataclass(frozen=True)
class RateLimitHint:
    requests_per_min: int
    tokens_per_min: int


@dataclass(frozen=True)
class ProviderDefinition:
    id: str
    name: str
    base_url: str
    default_model: str
    tier: ProviderTier
    requires_api_key: bool
    models: tuple[str, ...] = ()
    rate_limit: RateLimitHint | None = None
    custom_headers: dict[str, str] = field(default_factory=dict)
    supports_vision: bool = False
    api_family: ApiFamily = "openai_compat"
    description: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "base_url": self.base_url,
            "default_model": self.default_model,
            "tier": self.tier,
            "requires_api_key": self.requires_api_key,
            "models": list(self.models),
            "rate_limit": (
                {
                    "requests_per_min": self.rate_limit.requests_per_min,
                    "tokens_per_min": self.rate_limit.tokens_per_min,
                }
                if self.rate_limit
                else None
            ),
            "supports_vision": self.supports_vision,
            "api_family": self.api_family,
            "description": self.description,
        }


@dataclass
class ProviderInstance:
    """A catalog definition plus the user's runtime configuration for it."""

    definition: ProviderDefinition
    api_key: str = ""
    model: str = ""
    enabled: bool = False
    max_tokens: int | None = None
    base_url: str | None = None
    custom_headers: dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.model:
            self.model = self.definition.default_model

    @property
    def id(self) -> str:
        return self.definition.id

    @property
    def name(self) -> str:
        return self.definition.name

    @property
    def tier(self) -> ProviderTier:
        return self.definition.tier

    @property
    def endpoint_root(self) -> str:
        return (self.base_url or self.definition.base_url).rstrip("/")


@dataclass(frozen=True)
class TextPart:
    text: str
    type: Literal["text"] = "text"


@dataclass(frozen=True)
class ImagePart:
    data: str
    media_type: str | None = None
    type: Literal["image"] = "image"


ContentPart = Union[TextPart, ImagePart]
MessageContent = Union[str, tuple[ContentPart, ...]]


@dataclass(frozen=True)
class Message:
    role: MessageRole
    content: MessageContent

    def __post_init__(self) -> None:
        # Freeze part sequences so translators can only read them.
        if not isinstance(self.content, str):
            object.__setattr__(self, "content", tuple(self.content))

    @classmethod
    def text(cls, role: MessageRole, text: str) -> Message:
        return cls(role=role, content=text)

    @classmethod
    def parts(cls, role: MessageRole, parts: Sequence[ContentPart]) -> Message:
        return cls(role=role, content=tuple(parts))


@dataclass
class Usage:
    prompt_tokens: int
    completion_tokens: int
    total_tokens: int

    def to_dict(self) -> dict[str, int]:
        return {
            "prompt_tokens": self.prompt_tokens,
            "completion_tokens": self.completion_tokens,
            "total_tokens": self.total_tokens,
        }


@dataclass
class Choice:
    index: int
    role: str
    content: Any
    finish_reason: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "index": self.index,
            "message": {"role": self.role, "content": self.content},
            "finish_reason": self.finish_reason,
        }


@dataclass
class ChatCompletion:
    id: str
    model: str
    choices: list[Choice]
    usage: Usage | None = None
    object: str | None = None
    created: int | None = None
    # Vendor body for families that are already in the shared shape.
    raw: dict[str, Any] | None = field(default=None, repr=False, compare=False)

    def to_dict(self) -> dict[str, Any]:
        if self.raw is not None:
            return self.raw
        data: dict[str, Any] = {
            "id": self.id,
            "model": self.model,
            "choices": [choice.to_dict() for choice in self.choices],
        }
        if self.usage is not None:
            data["usage"] = self.usage.to_dict()
        if self.object is not None:
            data["object"] = self.object
        if self.created is not None:
            data["created"] = self.created
        return data


@dataclass(frozen=True)
class ProviderError:
    provider_id: str
    code: ErrorCode
    message: str
    retry_after_ms: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "provider_id": self.provider_id,
            "code": self.code,
            "message": self.message,
            "retry_after_ms": self.retry_after_ms,
        }


@dataclass(frozen=True)
class InvocationSuccess:
    response: ChatCompletion
    provider_id: str

    @property
    def success(self) -> bool:
        return True

    def to_dict(self) -> dict[str, Any]:
        return {"success": True, "provider_id": self.provider_id, "response": self.response.to_dict()}


@dataclass(frozen=True)
class InvocationFailure:
    error: ProviderError

    @property
    def success(self) -> bool:
        return False

    def to_dict(self) -> dict[str, Any]:
        return {"success": False, "error": self.error.to_dict()}


InvocationResult = Union[InvocationSuccess, InvocationFailure]


@dataclass
class ProviderHealth:
    provider_id: str
    status: HealthStatus
    last_checked: datetime
    latency_ms: float | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "provider_id": self.provider_id,
            "status": self.status,
            "latency_ms": self.latency_ms,
            "last_checked": self.last_checked.isoformat(),
            "error": self.error,
        }


@dataclass(frozen=True)
class CredentialCheck:
    valid: bool
    confirmed: bool = True
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"valid": self.valid, "confirmed": self.confirmed, "error": self.error}


@dataclass
class FallbackOutcome:
    result: InvocationResult
    attempted_providers: list[str] = field(default_factory=list)
    errors: list[ProviderError] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.result.success

    def attempt_log(self) -> str:
        """Render the attempt history, e.g. ``tried groq, ollama; groq: rate_limit (Rate limit exceeded)``."""
        if not self.attempted_providers:
            return "no providers attempted"
        summary = "tried " + ", ".join(self.attempted_providers)
        if not self.errors:
            return summary
        failures = "; ".join(f"{e.provider_id}: {e.code} ({e.message})" for e in self.errors)
        return f"{summary}; {failures}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "result": self.result.to_dict(),
            "attempted_providers": list(self.attempted_providers),
            "errors": [e.to_dict() for e in self.errors],
        }
