"""
Wire-format translation between the provider-agnostic model and each API family.

Two families are known: ``openai_compat`` (chat completions, shared by most
vendors and the local servers) and ``anthropic`` (messages API, which carries
the system prompt as a top-level field, embeds images as base64 sources and
authenticates with ``x-api-key``). Each family is one entry in ``FAMILIES``;
dispatch is a table lookup on ``ProviderDefinition.api_family``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Sequence

from screentutor.app.core.errors import MalformedResponseError
from screentutor.app.providers.registry import DEFAULT_MAX_TOKENS
from screentutor.app.providers.types import (
    ChatCompletion,
    Choice,
    ContentPart,
    Message,
    MessageContent,
    ProviderInstance,
    TextPart,
    Usage,
)

DEFAULT_IMAGE_MEDIA_TYPE = "image/png"


def get_text_content(content: MessageContent) -> str:
    """Plain-string view of message content; image parts are dropped."""
    if isinstance(content, str):
        return content
    return "\n".join(part.text for part in content if isinstance(part, TextPart))


def get_response_text(response: ChatCompletion) -> str:
    if not response.choices:
        return ""
    content = response.choices[0].content
    return content if isinstance(content, str) else ""


def _openai_part(part: ContentPart) -> dict[str, Any]:
    if isinstance(part, TextPart):
        return {"type": "text", "text": part.text}
    media_type = part.media_type or DEFAULT_IMAGE_MEDIA_TYPE
    return {"type": "image_url", "image_url": {"url": f"data:{media_type};base64,{part.data}"}}


def _anthropic_part(part: ContentPart) -> dict[str, Any]:
    if isinstance(part, TextPart):
        return {"type": "text", "text": part.text}
    return {
        "type": "image",
        "source": {
            "type": "base64",
            "media_type": part.media_type or DEFAULT_IMAGE_MEDIA_TYPE,
            "data": part.data,
        },
    }


def _content(content: MessageContent, convert: Callable[[ContentPart], dict[str, Any]]) -> Any:
    if isinstance(content, str):
        return content
    return [convert(part) for part in content]


def _openai_body(instance: ProviderInstance, messages: Sequence[Message], max_tokens: int) -> dict[str, Any]:
    return {
        "model": instance.model,
        "messages": [{"role": m.role, "content": _content(m.content, _openai_part)} for m in messages],
        "max_tokens": max_tokens,
    }


def _anthropic_body(instance: ProviderInstance, messages: Sequence[Message], max_tokens: int) -> dict[str, Any]:
    body: dict[str, Any] = {"model": instance.model}
    system = next((m for m in messages if m.role == "system"), None)
    if system is not None:
        body["system"] = get_text_content(system.content)
    body["messages"] = [
        {"role": m.role, "content": _content(m.content, _anthropic_part)}
        for m in messages
        if m.role != "system"
    ]
    body["max_tokens"] = max_tokens
    return body


def _require_object(raw: Any) -> dict[str, Any]:
    if not isinstance(raw, dict):
        raise MalformedResponseError(f"Expected a JSON object, got {type(raw).__name__}")
    return raw


def _token_count(usage: dict[str, Any], key: str) -> int:
    value = usage.get(key)
    return value if isinstance(value, int) else 0


def _usage(usage_raw: Any, prompt_key: str, completion_key: str) -> Usage | None:
    if not isinstance(usage_raw, dict):
        return None
    prompt = _token_count(usage_raw, prompt_key)
    completion = _token_count(usage_raw, completion_key)
    total = usage_raw.get("total_tokens")
    return Usage(
        prompt_tokens=prompt,
        completion_tokens=completion,
        total_tokens=total if isinstance(total, int) else prompt + completion,
    )


def _normalize_openai(raw: Any) -> ChatCompletion:
    """Typed view over an already-standard body; ``to_dict()`` returns the body untouched."""
    data = _require_object(raw)
    choices_raw = data.get("choices")
    choices = []
    for position, choice in enumerate(choices_raw if isinstance(choices_raw, list) else []):
        if not isinstance(choice, dict):
            continue
        message = choice.get("message")
        if not isinstance(message, dict):
            message = {}
        choices.append(
            Choice(
                index=choice.get("index", position),
                role=message.get("role", "assistant"),
                content=message.get("content"),
                finish_reason=choice.get("finish_reason"),
            )
        )

    return ChatCompletion(
        id=data.get("id", ""),
        model=data.get("model", ""),
        choices=choices,
        usage=_usage(data.get("usage"), "prompt_tokens", "completion_tokens"),
        object=data.get("object"),
        created=data.get("created"),
        raw=data,
    )


def _normalize_anthropic(raw: Any) -> ChatCompletion:
    data = _require_object(raw)
    blocks = data.get("content") or []
    if not isinstance(blocks, list):
        raise MalformedResponseError("Response content is not a list")
    text = next(
        (b.get("text") or "" for b in blocks if isinstance(b, dict) and b.get("type") == "text"),
        "",
    )

    return ChatCompletion(
        id=data.get("id", ""),
        model=data.get("model", ""),
        choices=[Choice(index=0, role="assistant", content=text, finish_reason=data.get("stop_reason"))],
        usage=_usage(data.get("usage"), "input_tokens", "output_tokens"),
    )


@dataclass(frozen=True)
class WireFamily:
    path: str
    auth_header: str
    bearer: bool
    build_body: Callable[[ProviderInstance, Sequence[Message], int], dict[str, Any]]
    normalize: Callable[[Any], ChatCompletion]


FAMILIES: dict[str, WireFamily] = {
    "openai_compat": WireFamily(
        path="/chat/completions",
        auth_header="Authorization",
        bearer=True,
        build_body=_openai_body,
        normalize=_normalize_openai,
    ),
    "anthropic": WireFamily(
        path="/messages",
        auth_header="x-api-key",
        bearer=False,
        build_body=_anthropic_body,
        normalize=_normalize_anthropic,
    ),
}


def family_for(instance: ProviderInstance) -> WireFamily:
    try:
        return FAMILIES[instance.definition.api_family]
    except KeyError:
        raise ValueError(f"Unsupported API family: {instance.definition.api_family}") from None


def build_body(
    instance: ProviderInstance,
    messages: Sequence[Message],
    max_tokens: int | None = None,
    temperature: float | None = None,
    default_max_tokens: int = DEFAULT_MAX_TOKENS,
) -> dict[str, Any]:
    if max_tokens is None:
        max_tokens = instance.max_tokens if instance.max_tokens is not None else default_max_tokens
    body = family_for(instance).build_body(instance, messages, max_tokens)
    if temperature is not None:
        body["temperature"] = temperature
    return body


def build_headers(instance: ProviderInstance) -> dict[str, str]:
    family = family_for(instance)
    headers = {"Content-Type": "application/json"}
    if instance.api_key:
        headers[family.auth_header] = f"Bearer {instance.api_key}" if family.bearer else instance.api_key

    # Names compare case-insensitively. Instance headers replace earlier
    # ones; catalog headers only fill gaps.
    _merge_headers(headers, instance.custom_headers, override=True)
    _merge_headers(headers, instance.definition.custom_headers, override=False)
    return headers


def _merge_headers(headers: dict[str, str], extra: dict[str, str], override: bool) -> None:
    for key, value in extra.items():
        existing = next((k for k in headers if k.lower() == key.lower()), None)
        if existing is None:
            headers[key] = value
        elif override:
            del headers[existing]
            headers[key] = value


def endpoint_for(instance: ProviderInstance) -> str:
    return f"{instance.endpoint_root}{family_for(instance).path}"


def normalize_response(instance: ProviderInstance, raw: Any) -> ChatCompletion:
    return family_for(instance).normalize(raw)


__all__ = [
    "FAMILIES",
    "WireFamily",
    "build_body",
    "build_headers",
    "endpoint_for",
    "family_for",
    "get_response_text",
    "get_text_content",
    "normalize_response",
]
