"""Pydantic request/response schemas for the HTTP surface, and their mapping onto provider types."""
from __future__ import annotations

from typing import Literal, Union

from pydantic import BaseModel, Field

from screentutor.app.core.errors import APIError
from screentutor.app.providers.registry import ProviderCatalog
from screentutor.app.providers.types import ImagePart, Message, ProviderInstance, TextPart


class HealthResponse(BaseModel):
    status: str
    request_id: str | None = None


class TextPartIn(BaseModel):
    type: Literal["text"] = "text"
    text: str


class ImagePartIn(BaseModel):
    type: Literal["image"] = "image"
    data: str
    media_type: str | None = None


class MessageIn(BaseModel):
    role: Literal["system", "user", "assistant"]
    content: Union[str, list[Union[TextPartIn, ImagePartIn]]]

    def to_message(self) -> Message:
        if isinstance(self.content, str):
            return Message(role=self.role, content=self.content)
        parts = [
            TextPart(text=p.text) if isinstance(p, TextPartIn) else ImagePart(data=p.data, media_type=p.media_type)
            for p in self.content
        ]
        return Message.parts(self.role, parts)


class ProviderInstanceIn(BaseModel):
    id: str
    api_key: str = ""
    model: str | None = None
    enabled: bool = True
    max_tokens: int | None = Field(default=None, ge=1)
    base_url: str | None = None
    custom_headers: dict[str, str] = Field(default_factory=dict)

    def to_instance(self, catalog: ProviderCatalog) -> ProviderInstance:
        if self.id not in catalog:
            raise APIError(code="PROVIDER_ERROR", message=f"Unknown provider: {self.id}")
        return catalog.create_instance(
            self.id,
            api_key=self.api_key,
            model=self.model,
            enabled=self.enabled,
            max_tokens=self.max_tokens,
            base_url=self.base_url,
            custom_headers=self.custom_headers,
        )


class ChatRequest(BaseModel):
    providers: list[ProviderInstanceIn]
    primary_provider_id: str | None = None
    messages: list[MessageIn] = Field(min_length=1)
    max_tokens: int | None = Field(default=None, ge=1)
    temperature: float | None = Field(default=None, ge=0, le=2)
    timeout_seconds: float | None = Field(default=None, gt=0, le=300)

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "providers": [{"id": "groq", "api_key": "gsk_..."}, {"id": "ollama"}],
                    "primary_provider_id": "groq",
                    "messages": [
                        {"role": "system", "content": "You are a patient tutor."},
                        {"role": "user", "content": "What does this error mean?"},
                    ],
                    "max_tokens": 512,
                }
            ]
        }
    }


class ProbeRequest(BaseModel):
    providers: list[ProviderInstanceIn]


class ValidateKeyRequest(BaseModel):
    api_key: str = ""
    model: str | None = None
    base_url: str | None = None
