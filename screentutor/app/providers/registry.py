from __future__ import annotations

from screentutor.app.providers.types import (
    ProviderDefinition,
    ProviderInstance,
    ProviderTier,
    RateLimitHint,
)

DEFAULT_MAX_TOKENS = 2048

PROVIDER_DEFINITIONS: tuple[ProviderDefinition, ...] = (
    # Paid tier: user brings their own key
    ProviderDefinition(
        id="anthropic",
        name="Anthropic (Claude)",
        base_url="https://api.anthropic.com/v1",
        default_model="claude-sonnet-4-5-20250514",
        tier="paid",
        requires_api_key=True,
        models=(
            "claude-sonnet-4-5-20250514",
            "claude-opus-4-20250514",
            "claude-3-5-haiku-20241022",
        ),
        custom_headers={"anthropic-version": "2023-06-01"},
        supports_vision=True,
        api_family="anthropic",
        description="Best instruction following, teaching personality",
    ),
    ProviderDefinition(
        id="openai",
        name="OpenAI",
        base_url="https://api.openai.com/v1",
        default_model="gpt-4o",
        tier="paid",
        requires_api_key=True,
        models=("gpt-4o", "gpt-4o-mini", "gpt-4-turbo", "gpt-4.1"),
        supports_vision=True,
        description="Strong general reasoning",
    ),
    ProviderDefinition(
        id="google",
        name="Google (Gemini)",
        base_url="https://generativelanguage.googleapis.com/v1beta/openai",
        default_model="gemini-2.5-pro-preview-05-06",
        tier="paid",
        requires_api_key=True,
        models=("gemini-2.5-pro-preview-05-06", "gemini-2.0-flash"),
        supports_vision=True,
        description="Long context, multimodal fallback",
    ),
    ProviderDefinition(
        id="deepseek",
        name="DeepSeek",
        base_url="https://api.deepseek.com/v1",
        default_model="deepseek-chat",
        tier="paid",
        requires_api_key=True,
        models=("deepseek-chat", "deepseek-reasoner"),
        description="High quality, very cheap",
    ),
    ProviderDefinition(
        id="mistral",
        name="Mistral",
        base_url="https://api.mistral.ai/v1",
        default_model="mistral-large-latest",
        tier="paid",
        requires_api_key=True,
        models=("mistral-large-latest", "mistral-medium-latest", "mistral-small-latest"),
        description="Good European option, fast",
    ),
    # Free tier: free sign-up, rate limited
    ProviderDefinition(
        id="groq",
        name="Groq",
        base_url="https://api.groq.com/openai/v1",
        default_model="llama-3.3-70b-versatile",
        tier="free",
        requires_api_key=True,
        models=(
            "llama-3.3-70b-versatile",
            "llama-3.1-8b-instant",
            "gemma2-9b-it",
            "mixtral-8x7b-32768",
        ),
        rate_limit=RateLimitHint(requests_per_min=30, tokens_per_min=15000),
        description="Fast inference, generous free tier",
    ),
    ProviderDefinition(
        id="openrouter",
        name="OpenRouter",
        base_url="https://openrouter.ai/api/v1",
        default_model="meta-llama/llama-3.3-70b-instruct:free",
        tier="free",
        requires_api_key=True,
        models=(
            "meta-llama/llama-3.3-70b-instruct:free",
            "google/gemma-3-27b-it:free",
            "qwen/qwen-2.5-72b-instruct:free",
            "mistralai/mistral-7b-instruct:free",
        ),
        rate_limit=RateLimitHint(requests_per_min=20, tokens_per_min=10000),
        custom_headers={"HTTP-Referer": "https://screentutor.app", "X-Title": "ScreenTutor"},
        description="Many free models behind one key",
    ),
    ProviderDefinition(
        id="google-ai-studio",
        name="Google AI Studio",
        base_url="https://generativelanguage.googleapis.com/v1beta/openai",
        default_model="gemini-2.0-flash",
        tier="free",
        requires_api_key=True,
        models=("gemini-2.0-flash", "gemini-1.5-flash"),
        supports_vision=True,
        description="Generous free quota",
    ),
    # Local tier: offline, no key
    ProviderDefinition(
        id="ollama",
        name="Ollama (Local)",
        base_url="http://localhost:11434/v1",
        default_model="llama3.3:8b",
        tier="local",
        requires_api_key=False,
        models=("llama3.3:8b", "llama3.3:70b", "mistral:7b", "qwen2.5:7b", "deepseek-r1:7b"),
        description="Fully local, no internet needed",
    ),
    ProviderDefinition(
        id="lmstudio",
        name="LM Studio (Local)",
        base_url="http://localhost:1234/v1",
        default_model="local-model",
        tier="local",
        requires_api_key=False,
        models=("local-model",),
        description="GUI app, drag-and-drop model loading",
    ),
)

DEFAULT_FALLBACK_ORDER: tuple[str, ...] = ("groq", "openrouter", "google-ai-studio", "ollama")


class ProviderCatalog:
    """Read-only lookup over the known provider definitions."""

    def __init__(self, definitions: tuple[ProviderDefinition, ...] = PROVIDER_DEFINITIONS):
        self._definitions: dict[str, ProviderDefinition] = {}
        for definition in definitions:
            if definition.id in self._definitions:
                raise ValueError(f"Duplicate provider id: {definition.id}")
            self._definitions[definition.id] = definition

    def __contains__(self, provider_id: object) -> bool:
        return provider_id in self._definitions

    def __len__(self) -> int:
        return len(self._definitions)

    def get(self, provider_id: str) -> ProviderDefinition | None:
        return self._definitions.get(provider_id)

    def list(self) -> list[ProviderDefinition]:
        return list(self._definitions.values())

    def by_tier(self, tier: ProviderTier) -> list[ProviderDefinition]:
        return [d for d in self._definitions.values() if d.tier == tier]

    def paid(self) -> list[ProviderDefinition]:
        return self.by_tier("paid")

    def free(self) -> list[ProviderDefinition]:
        return self.by_tier("free")

    def local(self) -> list[ProviderDefinition]:
        return self.by_tier("local")

    def create_instance(
        self,
        provider_id: str,
        api_key: str = "",
        model: str | None = None,
        enabled: bool | None = None,
        max_tokens: int | None = None,
        base_url: str | None = None,
        custom_headers: dict[str, str] | None = None,
    ) -> ProviderInstance:
        """Build an instance for a known provider.

        When ``enabled`` is not given, local providers start enabled and keyed
        providers are enabled only once a key is supplied.
        """
        definition = self._definitions.get(provider_id)
        if definition is None:
            raise KeyError(f"Unknown provider: {provider_id}")
        if enabled is None:
            enabled = definition.tier == "local" or bool(api_key)
        return ProviderInstance(
            definition=definition,
            api_key=api_key,
            model=model or definition.default_model,
            enabled=enabled,
            max_tokens=max_tokens,
            base_url=base_url,
            custom_headers=dict(custom_headers or {}),
        )

    def initial_instances(self) -> list[ProviderInstance]:
        return [self.create_instance(d.id) for d in self._definitions.values()]


catalog = ProviderCatalog()
