from __future__ import annotations

from fastapi import APIRouter, Depends

from screentutor.app.api.deps import get_catalog, get_orchestrator
from screentutor.app.core.logging import get_logger
from screentutor.app.domain.schemas import ChatRequest
from screentutor.app.providers.fallback import FallbackOrchestrator, build_provider_chain
from screentutor.app.providers.registry import ProviderCatalog

logger = get_logger(__name__)

router = APIRouter(tags=["chat"])


@router.post("/chat")
async def chat(
    req: ChatRequest,
    orchestrator: FallbackOrchestrator = Depends(get_orchestrator),
    catalog: ProviderCatalog = Depends(get_catalog),
):
    """Run one chat completion through the fallback chain.

    Always answers 200: provider failures are part of the returned outcome.
    """
    instances = [p.to_instance(catalog) for p in req.providers]
    chain = build_provider_chain(instances, req.primary_provider_id)
    messages = [m.to_message() for m in req.messages]

    outcome = await orchestrator.call_with_fallback(
        chain,
        messages,
        max_tokens=req.max_tokens,
        temperature=req.temperature,
        timeout=req.timeout_seconds,
    )
    logger.info(
        "Chat completed",
        data={
            "success": outcome.success,
            "attempted": outcome.attempted_providers,
            "error_count": len(outcome.errors),
        },
    )

    payload = outcome.to_dict()
    payload["attempt_log"] = outcome.attempt_log()
    return payload
