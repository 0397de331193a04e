import httpx
import pytest

from screentutor.app.providers.fallback import (
    FALLBACK_CHAIN_ID,
    FallbackOrchestrator,
    build_provider_chain,
    is_retriable_error,
    sort_by_fallback_order,
)
from screentutor.app.providers.registry import DEFAULT_FALLBACK_ORDER
from screentutor.app.providers.types import Message, ProviderError
from screentutor.tests.helpers import RecordingHandler, make_instance, mock_provider_client, openai_completion

MESSAGES = [Message(role="user", content="Explain this screen")]

GROQ = "api.groq.com"
OPENROUTER = "openrouter.ai"
OPENAI = "api.openai.com"


def _orchestrator(handler, **kwargs):
    return FallbackOrchestrator(mock_provider_client(handler), **kwargs)


def _ok(text="ok"):
    return lambda request: httpx.Response(200, json=openai_completion(text))


def _status(code):
    return lambda request: httpx.Response(code, json={"error": {"message": f"status {code}"}})


def test_build_chain_drops_disabled_and_orders_primary_first():
    a = make_instance("groq")
    b = make_instance("openrouter", enabled=False)
    c = make_instance("openai")
    d = make_instance("ollama", api_key="")

    chain = build_provider_chain([a, b, c, d], primary_provider_id="openai")

    assert [i.id for i in chain] == ["openai", "groq", "ollama"]


def test_build_chain_ignores_disabled_or_unknown_primary():
    a = make_instance("groq")
    b = make_instance("openai", enabled=False)

    assert [i.id for i in build_provider_chain([a, b], "openai")] == ["groq"]
    assert [i.id for i in build_provider_chain([a, b], "mistral")] == ["groq"]
    assert [i.id for i in build_provider_chain([a, b])] == ["groq"]


def test_build_chain_keeps_first_duplicate():
    first = make_instance("groq", model="llama-3.1-8b-instant")
    second = make_instance("groq")

    chain = build_provider_chain([first, second])

    assert chain == [first]


def test_sort_by_fallback_order_puts_unlisted_last():
    instances = [make_instance(pid) for pid in ("openai", "ollama", "groq", "mistral")]

    ordered = sort_by_fallback_order(instances, DEFAULT_FALLBACK_ORDER)

    assert [i.id for i in ordered] == ["groq", "ollama", "openai", "mistral"]


def test_retriable_codes():
    assert is_retriable_error(ProviderError("x", "rate_limit", "m"))
    assert is_retriable_error(ProviderError("x", "auth_error", "m"))
    assert is_retriable_error(ProviderError("x", "network_error", "m"))
    assert is_retriable_error(ProviderError("x", "invalid_response", "m"))
    assert not is_retriable_error(ProviderError("x", "unknown", "m"))


@pytest.mark.asyncio
async def test_first_success_ends_walk():
    handler = RecordingHandler({GROQ: _status(429), OPENROUTER: _ok("from openrouter"), OPENAI: _ok()})
    chain = [make_instance("groq"), make_instance("openrouter"), make_instance("openai")]

    outcome = await _orchestrator(handler).call_with_fallback(chain, MESSAGES)

    assert outcome.success
    assert outcome.result.provider_id == "openrouter"
    assert outcome.attempted_providers == ["groq", "openrouter"]
    assert [e.code for e in outcome.errors] == ["rate_limit"]
    assert handler.hosts == [GROQ, OPENROUTER]


@pytest.mark.asyncio
async def test_all_failures_synthesize_chain_error():
    handler = RecordingHandler({GROQ: _status(401), OPENROUTER: _status(500), OPENAI: _status(429)})
    chain = [make_instance("groq"), make_instance("openrouter"), make_instance("openai")]

    outcome = await _orchestrator(handler).call_with_fallback(chain, MESSAGES)

    assert not outcome.success
    assert outcome.attempted_providers == ["groq", "openrouter", "openai"]
    assert [e.provider_id for e in outcome.errors] == ["groq", "openrouter", "openai"]
    error = outcome.result.error
    assert error.provider_id == FALLBACK_CHAIN_ID
    assert error.code == "unknown"
    assert error.message.startswith("All 3 providers failed. Errors: ")
    assert "openrouter: Server error: 500" in error.message


@pytest.mark.asyncio
async def test_disabled_instances_are_never_attempted():
    handler = RecordingHandler({GROQ: _ok(), OPENAI: _ok()})
    chain = [make_instance("openai", enabled=False), make_instance("groq")]

    outcome = await _orchestrator(handler).call_with_fallback(chain, MESSAGES)

    assert outcome.attempted_providers == ["groq"]
    assert handler.hosts == [GROQ]


@pytest.mark.asyncio
async def test_duplicate_ids_attempted_once():
    handler = RecordingHandler({GROQ: _status(503)})
    chain = [make_instance("groq"), make_instance("groq")]

    outcome = await _orchestrator(handler).call_with_fallback(chain, MESSAGES)

    assert outcome.attempted_providers == ["groq"]
    assert len(handler.requests) == 1


@pytest.mark.asyncio
async def test_empty_chain():
    outcome = await _orchestrator(RecordingHandler()).call_with_fallback([], MESSAGES)

    assert not outcome.success
    assert outcome.attempted_providers == []
    assert outcome.errors == []
    assert outcome.result.error.message == "No enabled providers in chain"
    assert outcome.attempt_log() == "no providers attempted"


@pytest.mark.asyncio
async def test_unknown_error_stops_walk():
    def explode(request):
        raise RuntimeError("boom")

    handler = RecordingHandler({GROQ: explode, OPENAI: _ok()})
    chain = [make_instance("groq"), make_instance("openai")]

    outcome = await _orchestrator(handler).call_with_fallback(chain, MESSAGES)

    assert not outcome.success
    assert outcome.attempted_providers == ["groq"]
    assert outcome.result.error.code == "unknown"
    assert outcome.result.error.provider_id == "groq"


@pytest.mark.asyncio
async def test_custom_retriable_set_makes_auth_fatal():
    handler = RecordingHandler({GROQ: _status(401), OPENAI: _ok()})
    chain = [make_instance("groq"), make_instance("openai")]
    orchestrator = _orchestrator(handler, retriable_codes={"rate_limit", "network_error"})

    outcome = await orchestrator.call_with_fallback(chain, MESSAGES)

    assert outcome.result.error.code == "auth_error"
    assert outcome.attempted_providers == ["groq"]


@pytest.mark.asyncio
async def test_attempt_log_lists_failures():
    handler = RecordingHandler({GROQ: _status(429), OPENAI: _ok()})
    chain = [make_instance("groq"), make_instance("openai")]

    outcome = await _orchestrator(handler).call_with_fallback(chain, MESSAGES)

    assert outcome.attempt_log() == "tried groq, openai; groq: rate_limit (Rate limit exceeded)"


@pytest.mark.asyncio
async def test_call_llm_returns_text_or_error():
    handler = RecordingHandler({GROQ: _status(500), OPENAI: _ok("The button saves your file.")})
    orchestrator = _orchestrator(handler)

    reply = await orchestrator.call_llm([make_instance("groq"), make_instance("openai")], MESSAGES)
    assert reply.ok
    assert reply.text == "The button saves your file."
    assert reply.provider_id == "openai"

    failed = await orchestrator.call_llm([make_instance("groq")], MESSAGES)
    assert not failed.ok
    assert failed.text is None
    assert failed.error.startswith("All 1 providers failed")
