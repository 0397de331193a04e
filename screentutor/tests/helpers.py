"""Shared builders for provider tests: canned vendor bodies and mock transports."""
import httpx

from screentutor.app.providers.client import ProviderClient
from screentutor.app.providers.registry import catalog


def openai_completion(text: str = "Hello", model: str = "gpt-4o", completion_id: str = "chatcmpl-1") -> dict:
    return {
        "id": completion_id,
        "object": "chat.completion",
        "created": 1700000000,
        "model": model,
        "choices": [{"index": 0, "message": {"role": "assistant", "content": text}, "finish_reason": "stop"}],
        "usage": {"prompt_tokens": 5, "completion_tokens": 1, "total_tokens": 6},
    }


def anthropic_message(text: str = "Hello", model: str = "claude-sonnet-4-5-20250514") -> dict:
    return {
        "id": "msg_1",
        "type": "message",
        "role": "assistant",
        "model": model,
        "content": [{"type": "text", "text": text}],
        "stop_reason": "end_turn",
        "usage": {"input_tokens": 3, "output_tokens": 1},
    }


def make_instance(provider_id: str = "openai", api_key: str = "sk-test", enabled: bool = True, **kwargs):
    return catalog.create_instance(provider_id, api_key=api_key, enabled=enabled, **kwargs)


def mock_provider_client(handler, **kwargs) -> ProviderClient:
    """ProviderClient whose HTTP traffic is answered by ``handler``."""
    return ProviderClient(client=httpx.AsyncClient(transport=httpx.MockTransport(handler)), **kwargs)


class RecordingHandler:
    """Route requests by host and remember every request seen."""

    def __init__(self, routes: dict | None = None):
        self.routes = routes if routes is not None else {}
        self.requests: list[httpx.Request] = []

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get(request.url.host)
        if route is None:
            return httpx.Response(404, json={"error": {"message": f"no route for {request.url.host}"}})
        result = route(request)
        if hasattr(result, "__await__"):
            result = await result
        return result

    @property
    def hosts(self) -> list[str]:
        return [r.url.host for r in self.requests]
