from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Query

from screentutor.app.api.deps import get_catalog, get_prober
from screentutor.app.domain.schemas import ProbeRequest, ValidateKeyRequest
from screentutor.app.providers.health import HealthProber
from screentutor.app.providers.registry import ProviderCatalog

router = APIRouter(prefix="/providers", tags=["providers"])


def _unknown_provider(provider_id: str) -> HTTPException:
    return HTTPException(
        status_code=400,
        detail={"code": "PROVIDER_ERROR", "message": f"Unknown provider: {provider_id}"},
    )


@router.get("")
async def list_providers(
    tier: Literal["paid", "free", "local"] | None = Query(None, description="Only providers of this tier"),
    catalog: ProviderCatalog = Depends(get_catalog),
):
    definitions = catalog.by_tier(tier) if tier else catalog.list()
    return [d.to_dict() for d in definitions]


@router.get("/local")
async def detect_local_providers(
    prober: HealthProber = Depends(get_prober),
    catalog: ProviderCatalog = Depends(get_catalog),
):
    return await prober.detect_local_providers(catalog)


@router.post("/health")
async def probe_providers(
    req: ProbeRequest,
    prober: HealthProber = Depends(get_prober),
    catalog: ProviderCatalog = Depends(get_catalog),
):
    instances = [p.to_instance(catalog) for p in req.providers]
    health = await prober.probe_all(instances)
    return {provider_id: h.to_dict() for provider_id, h in health.items()}


@router.get("/{provider_id}")
async def get_provider(
    provider_id: str,
    catalog: ProviderCatalog = Depends(get_catalog),
):
    definition = catalog.get(provider_id)
    if definition is None:
        raise _unknown_provider(provider_id)
    return definition.to_dict()


@router.post("/{provider_id}/validate")
async def validate_provider_key(
    provider_id: str,
    req: ValidateKeyRequest,
    prober: HealthProber = Depends(get_prober),
    catalog: ProviderCatalog = Depends(get_catalog),
):
    if provider_id not in catalog:
        raise _unknown_provider(provider_id)
    instance = catalog.create_instance(
        provider_id,
        api_key=req.api_key,
        model=req.model,
        enabled=True,
        base_url=req.base_url,
    )
    check = await prober.validate_credential(instance)
    return check.to_dict()
