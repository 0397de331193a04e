"""
Provider health probing.

Probes are best-effort and for display only: they never feed the fallback
chain. Local servers get a cheap ``GET /models`` reachability check before any
chat call; keyed providers without a key are reported ``unknown`` without
touching the network.
"""

from __future__ import annotations

import asyncio
import time
from datetime import datetime, timezone
from typing import Sequence

import httpx

from screentutor.app.core.logging import get_logger
from screentutor.app.providers.client import ProviderClient
from screentutor.app.providers.registry import ProviderCatalog, catalog as default_catalog
from screentutor.app.providers.types import (
    CredentialCheck,
    Message,
    ProviderHealth,
    ProviderInstance,
)

logger = get_logger(__name__)

HEALTH_CHECK_TIMEOUT_SECONDS = 10.0
LOCAL_CHECK_TIMEOUT_SECONDS = 5.0
DEGRADED_AFTER_SECONDS = 5.0
PROBE_MAX_TOKENS = 10

TEST_MESSAGES = (Message(role="user", content='Say "OK" and nothing else.'),)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _elapsed_ms(started: float) -> float:
    return round((time.monotonic() - started) * 1000, 2)


def _server_root(base_url: str) -> str:
    root = base_url.rstrip("/")
    return root[: -len("/v1")] if root.endswith("/v1") else root


class HealthProber:
    def __init__(
        self,
        client: ProviderClient,
        probe_timeout: float = HEALTH_CHECK_TIMEOUT_SECONDS,
        local_check_timeout: float = LOCAL_CHECK_TIMEOUT_SECONDS,
        degraded_after_seconds: float = DEGRADED_AFTER_SECONDS,
    ):
        self.client = client
        self.probe_timeout = probe_timeout
        self.local_check_timeout = local_check_timeout
        self.degraded_after_seconds = degraded_after_seconds

    async def check_local_running(self, base_url: str) -> bool:
        """True when ``{base_url}/models`` answers 2xx within the local timeout."""
        try:
            response = await asyncio.wait_for(
                self.client.http.get(f"{base_url.rstrip('/')}/models", timeout=self.local_check_timeout),
                timeout=self.local_check_timeout,
            )
        except (asyncio.TimeoutError, httpx.HTTPError):
            return False
        return response.is_success

    async def probe(self, instance: ProviderInstance) -> ProviderHealth:
        try:
            health = await self._probe(instance)
        except Exception as exc:
            logger.exception("Health probe crashed", data={"provider_id": instance.id})
            health = ProviderHealth(
                provider_id=instance.id,
                status="unhealthy",
                last_checked=_now(),
                error=str(exc) or type(exc).__name__,
            )
        logger.debug(
            "Health probe finished",
            data={"provider_id": instance.id, "status": health.status, "latency_ms": health.latency_ms},
        )
        return health

    async def _probe(self, instance: ProviderInstance) -> ProviderHealth:
        started = time.monotonic()

        if instance.tier == "local" and not await self.check_local_running(instance.endpoint_root):
            return ProviderHealth(
                provider_id=instance.id,
                status="unhealthy",
                last_checked=_now(),
                error=f"{instance.name} is not running at {instance.endpoint_root}",
            )

        if instance.definition.requires_api_key and not instance.api_key:
            return ProviderHealth(
                provider_id=instance.id,
                status="unknown",
                last_checked=_now(),
                error="No API key configured",
            )

        result = await self.client.invoke(
            instance,
            TEST_MESSAGES,
            max_tokens=PROBE_MAX_TOKENS,
            timeout=self.probe_timeout,
        )
        latency_ms = _elapsed_ms(started)

        if result.success:
            degraded = latency_ms > self.degraded_after_seconds * 1000
            return ProviderHealth(
                provider_id=instance.id,
                status="degraded" if degraded else "healthy",
                latency_ms=latency_ms,
                last_checked=_now(),
            )

        # A throttled provider still accepted the credential.
        status = "degraded" if result.error.code == "rate_limit" else "unhealthy"
        return ProviderHealth(
            provider_id=instance.id,
            status=status,
            latency_ms=latency_ms,
            last_checked=_now(),
            error=result.error.message,
        )

    async def probe_all(self, instances: Sequence[ProviderInstance]) -> dict[str, ProviderHealth]:
        """Probe each distinct instance concurrently; results are keyed by provider id."""
        distinct: dict[str, ProviderInstance] = {}
        for instance in instances:
            distinct.setdefault(instance.id, instance)

        results = await asyncio.gather(*(self.probe(i) for i in distinct.values()))
        return {health.provider_id: health for health in results}

    async def validate_credential(self, instance: ProviderInstance) -> CredentialCheck:
        if not instance.api_key:
            return CredentialCheck(valid=False, error="No API key provided")

        result = await self.client.invoke(
            instance,
            TEST_MESSAGES,
            max_tokens=PROBE_MAX_TOKENS,
            timeout=self.probe_timeout,
        )
        if result.success:
            return CredentialCheck(valid=True)
        if result.error.code == "auth_error":
            return CredentialCheck(valid=False, error="Invalid API key")
        if result.error.code == "rate_limit":
            return CredentialCheck(valid=True, confirmed=False, error=result.error.message)
        return CredentialCheck(valid=False, error=result.error.message)

    async def detect_local_providers(self, catalog: ProviderCatalog = default_catalog) -> dict[str, bool]:
        local = catalog.local()
        running = await asyncio.gather(*(self.check_local_running(d.base_url) for d in local))
        return {definition.id: ok for definition, ok in zip(local, running)}

    async def list_ollama_models(self, base_url: str = "http://localhost:11434/v1") -> list[str]:
        """Model names from Ollama's native ``/api/tags``; empty when unreachable."""
        try:
            response = await asyncio.wait_for(
                self.client.http.get(f"{_server_root(base_url)}/api/tags", timeout=self.local_check_timeout),
                timeout=self.local_check_timeout,
            )
            if not response.is_success:
                return []
            data = response.json()
        except (asyncio.TimeoutError, httpx.HTTPError, ValueError):
            return []
        models = data.get("models") if isinstance(data, dict) else None
        if not isinstance(models, list):
            return []
        return [m["name"] for m in models if isinstance(m, dict) and isinstance(m.get("name"), str)]


__all__ = [
    "HealthProber",
    "TEST_MESSAGES",
    "HEALTH_CHECK_TIMEOUT_SECONDS",
    "LOCAL_CHECK_TIMEOUT_SECONDS",
    "DEGRADED_AFTER_SECONDS",
]
