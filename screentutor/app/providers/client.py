from __future__ import annotations

import asyncio
from typing import Any, Sequence

import httpx

from screentutor.app.core.logging import get_logger
from screentutor.app.providers.registry import DEFAULT_MAX_TOKENS
from screentutor.app.providers.translator import (
    build_body,
    build_headers,
    endpoint_for,
    normalize_response,
)
from screentutor.app.providers.types import (
    InvocationFailure,
    InvocationResult,
    InvocationSuccess,
    Message,
    ProviderError,
    ProviderInstance,
)

logger = get_logger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_RETRY_AFTER_MS = 60_000


def _format_seconds(seconds: float) -> str:
    return f"{seconds:g}s"


def _retry_after_ms(body: Any, headers: httpx.Headers) -> int:
    retry_after = body.get("retry_after") if isinstance(body, dict) else None
    if retry_after is None:
        retry_after = headers.get("retry-after")
    try:
        seconds = float(retry_after) if retry_after is not None else 0.0
    except (TypeError, ValueError):
        seconds = 0.0
    if seconds <= 0:
        return DEFAULT_RETRY_AFTER_MS
    return int(round(seconds * 1000))


def _vendor_message(body: Any) -> str | None:
    if not isinstance(body, dict):
        return None
    error = body.get("error")
    if isinstance(error, dict):
        message = error.get("message")
        return message if isinstance(message, str) else None
    message = body.get("message")
    return message if isinstance(message, str) else None


def classify_status(provider_id: str, status: int, body: Any, headers: httpx.Headers | None = None) -> ProviderError:
    """Map a non-2xx response onto the closed error taxonomy."""
    if status in (401, 403):
        return ProviderError(provider_id, "auth_error", "Invalid API key or unauthorized access")
    if status == 429:
        return ProviderError(
            provider_id,
            "rate_limit",
            "Rate limit exceeded",
            retry_after_ms=_retry_after_ms(body, headers or httpx.Headers()),
        )
    if status >= 500:
        return ProviderError(provider_id, "network_error", f"Server error: {status}")
    message = _vendor_message(body) or f"Request failed with status {status}"
    return ProviderError(provider_id, "invalid_response", message)


def _decode_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text


class ProviderClient:
    """Performs exactly one provider call per ``invoke`` and never raises."""

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        default_max_tokens: int = DEFAULT_MAX_TOKENS,
    ):
        self.timeout_seconds = timeout_seconds
        self.default_max_tokens = default_max_tokens
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout_seconds)

    @property
    def http(self) -> httpx.AsyncClient:
        return self._client

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> ProviderClient:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def _post(self, instance: ProviderInstance, body: dict[str, Any], timeout: float) -> httpx.Response:
        return await self._client.post(
            endpoint_for(instance),
            headers=build_headers(instance),
            json=body,
            timeout=timeout,
        )

    async def invoke(
        self,
        instance: ProviderInstance,
        messages: Sequence[Message],
        max_tokens: int | None = None,
        temperature: float | None = None,
        timeout: float | None = None,
    ) -> InvocationResult:
        timeout = timeout if timeout is not None else self.timeout_seconds
        provider_id = instance.id

        try:
            body = build_body(
                instance,
                messages,
                max_tokens=max_tokens,
                temperature=temperature,
                default_max_tokens=self.default_max_tokens,
            )
            # wait_for cancels the request task on expiry, which closes the connection.
            response = await asyncio.wait_for(self._post(instance, body, timeout), timeout=timeout)
        except (asyncio.TimeoutError, httpx.TimeoutException):
            return self._fail(ProviderError(provider_id, "network_error", f"Request timed out after {_format_seconds(timeout)}"))
        except httpx.HTTPError as exc:
            return self._fail(ProviderError(provider_id, "network_error", str(exc) or type(exc).__name__))
        except Exception as exc:
            logger.exception("Unexpected error calling provider", data={"provider_id": provider_id})
            return self._fail(ProviderError(provider_id, "unknown", str(exc) or "Unknown error occurred"))

        if not response.is_success:
            return self._fail(classify_status(provider_id, response.status_code, _decode_body(response), response.headers))

        try:
            payload = response.json()
        except ValueError:
            return self._fail(ProviderError(provider_id, "invalid_response", "Provider returned a non-JSON body"))
        try:
            completion = normalize_response(instance, payload)
        except (ValueError, TypeError, AttributeError) as exc:
            return self._fail(ProviderError(provider_id, "invalid_response", str(exc) or "Malformed provider response"))

        logger.debug(
            "Provider call succeeded",
            data={"provider_id": provider_id, "model": completion.model, "status": response.status_code},
        )
        return InvocationSuccess(response=completion, provider_id=provider_id)

    def _fail(self, error: ProviderError) -> InvocationFailure:
        logger.info(
            "Provider call failed",
            data={"provider_id": error.provider_id, "code": error.code, "error_message": error.message},
        )
        return InvocationFailure(error=error)


__all__ = ["ProviderClient", "classify_status", "DEFAULT_TIMEOUT_SECONDS"]
