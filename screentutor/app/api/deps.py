from __future__ import annotations

from fastapi import Request

from screentutor.app.providers.fallback import FallbackOrchestrator
from screentutor.app.providers.health import HealthProber
from screentutor.app.providers.registry import ProviderCatalog, catalog


def get_catalog() -> ProviderCatalog:
    return catalog


def get_orchestrator(request: Request) -> FallbackOrchestrator:
    return request.app.state.orchestrator


def get_prober(request: Request) -> HealthProber:
    return request.app.state.prober
