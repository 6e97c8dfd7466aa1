"""Tests for the routing engine: tier selection, enhancement policy and fallback."""

import pytest

from prompt_router.config.settings import Settings
from prompt_router.errors import AllProvidersFailed
from prompt_router.inference.engine import PromptRouter, create_router
from prompt_router.inference.providers import HuggingFaceAdapter, OpenRouterAdapter, PuterAdapter
from prompt_router.models.routing import ComplexityTier, GenerationParams, RouteOptions

GREETING = "Hello world how are you doing today?"


def words(n: int, filler: str = "token") -> str:
    return " ".join([filler] * n)


def analysis_prompt() -> str:
    """Roughly 120 words containing 'analyze'."""
    return "Please analyze the following quarterly figures " + words(115, "figure")


def medium_prompt() -> str:
    return words(40, "river")


# --- tier selection ---


@pytest.mark.asyncio
async def test_greeting_routes_small_to_huggingface(router_factory):
    router, adapters = router_factory()

    result = await router.route(GREETING)

    assert result.tier == ComplexityTier.SMALL
    assert result.provider_name == "HuggingFace"
    assert len(adapters[ComplexityTier.SMALL].calls) == 1
    assert not adapters[ComplexityTier.MEDIUM].calls
    assert not adapters[ComplexityTier.HIGH].calls


@pytest.mark.asyncio
async def test_medium_prompt_routes_to_openrouter(router_factory):
    router, adapters = router_factory()

    result = await router.route(medium_prompt())

    assert result.tier == ComplexityTier.MEDIUM
    assert result.provider_name == "OpenRouter"


@pytest.mark.asyncio
async def test_analysis_prompt_routes_high_with_enhancement(router_factory, enhancement_service):
    router, adapters = router_factory(service=enhancement_service)
    prompt = analysis_prompt()

    result = await router.route(prompt)

    assert result.tier == ComplexityTier.HIGH
    assert result.provider_name == "Puter"
    assert result.enhanced
    assert enhancement_service.prompts == [prompt]
    assert adapters[ComplexityTier.HIGH].calls[0].prompt == f"ENHANCED: {prompt}"
    assert adapters[ComplexityTier.HIGH].calls[0].task == "reasoning"


@pytest.mark.asyncio
async def test_result_fields(router_factory):
    router, _ = router_factory()

    result = await router.route(GREETING, RouteOptions(user_id="user-1"))

    assert result.word_count == 7
    assert result.signature == "Test Signature"
    assert result.model_used == "hf/a"
    assert result.text == "HuggingFace answer from hf/a"
    assert result.attempts == 1
    assert result.request_id


@pytest.mark.asyncio
async def test_each_route_gets_a_fresh_request_id(router_factory):
    router, _ = router_factory()

    first = await router.route(GREETING)
    second = await router.route(GREETING)

    assert first.request_id != second.request_id


# --- enhancement policy ---


@pytest.mark.asyncio
@pytest.mark.parametrize("prompt", [GREETING, medium_prompt()])
async def test_lower_tiers_never_enhance(router_factory, enhancement_service, prompt):
    router, _ = router_factory(service=enhancement_service)

    result = await router.route(prompt)

    assert not result.enhanced
    assert enhancement_service.prompts == []


@pytest.mark.asyncio
async def test_skip_directive_blocks_enhancement_and_is_stripped(router_factory, enhancement_service):
    router, adapters = router_factory(service=enhancement_service)
    prompt = analysis_prompt() + " !NO Enhance"

    result = await router.route(prompt)

    assert result.tier == ComplexityTier.HIGH
    assert not result.enhanced
    assert enhancement_service.prompts == []
    sent = adapters[ComplexityTier.HIGH].calls[0].prompt
    assert "!no enhance" not in sent.lower()
    assert sent == analysis_prompt()


@pytest.mark.asyncio
async def test_skip_directive_scenario(router_factory, enhancement_service):
    router, adapters = router_factory(service=enhancement_service)

    await router.route("Enhance this prompt please !no enhance")

    assert enhancement_service.prompts == []
    sent = adapters[ComplexityTier.SMALL].calls[0].prompt
    assert sent == "Enhance this prompt please"


@pytest.mark.asyncio
async def test_pre_enhanced_prompt_takes_precedence(router_factory, enhancement_service):
    router, adapters = router_factory(service=enhancement_service)

    result = await router.route(
        analysis_prompt(),
        RouteOptions(pre_enhanced_prompt="Analyze Q3 revenue by region with a table."),
    )

    assert result.enhanced
    assert enhancement_service.prompts == []
    assert adapters[ComplexityTier.HIGH].calls[0].prompt == "Analyze Q3 revenue by region with a table."


@pytest.mark.asyncio
async def test_skip_directive_beats_pre_enhanced_prompt(router_factory, enhancement_service):
    router, adapters = router_factory(service=enhancement_service)

    await router.route(
        "Analyze my notes !no enchace",
        RouteOptions(pre_enhanced_prompt="Something else entirely"),
    )

    assert adapters[ComplexityTier.HIGH].calls[0].prompt == "Analyze my notes"


@pytest.mark.asyncio
async def test_enhancement_failure_does_not_change_outcome(router_factory, enhancement_service):
    enhancement_service.error = RuntimeError("rewriter down")
    router, adapters = router_factory(service=enhancement_service)
    prompt = analysis_prompt()

    result = await router.route(prompt)

    assert result.provider_name == "Puter"
    assert not result.enhanced
    assert adapters[ComplexityTier.HIGH].calls[0].prompt == prompt


# --- fallback ---


@pytest.mark.asyncio
@pytest.mark.parametrize("k", [0, 1, 2, 3])
async def test_k_retryable_failures_then_success(router_factory, k):
    router, adapters = router_factory(medium=["retry"] * k + ["ok"])
    adapter = adapters[ComplexityTier.MEDIUM]

    result = await router.route(medium_prompt())

    assert len(adapter.calls) == k + 1
    assert adapter.models_called == adapter.models[: k + 1]
    assert result.model_used == adapter.models[k]
    assert result.attempts == k + 1


@pytest.mark.asyncio
async def test_all_candidates_fail(router_factory):
    router, adapters = router_factory(small=["retry", "retry", "retry"])
    adapter = adapters[ComplexityTier.SMALL]

    with pytest.raises(AllProvidersFailed) as exc_info:
        await router.route(GREETING)

    error = exc_info.value
    assert len(adapter.calls) == len(adapter.models)
    assert error.attempts == len(adapter.models)
    assert error.request_id in str(error)
    assert error.last_failure.model_id == "hf/c"
    assert "retry failure on hf/c" in str(error)


@pytest.mark.asyncio
async def test_fatal_failures_continue_by_default(router_factory):
    router, adapters = router_factory(small=["fatal", "ok"])

    result = await router.route(GREETING)

    assert result.model_used == "hf/b"
    assert len(adapters[ComplexityTier.SMALL].calls) == 2


@pytest.mark.asyncio
async def test_stop_on_fatal_short_circuits(router_factory):
    router, adapters = router_factory(small=["retry", "fatal", "ok"], stop_on_fatal=True)

    with pytest.raises(AllProvidersFailed) as exc_info:
        await router.route(GREETING)

    assert len(adapters[ComplexityTier.SMALL].calls) == 2
    assert exc_info.value.attempts == 2


@pytest.mark.asyncio
async def test_unexpected_adapter_exception_counts_as_failure(router_factory):
    router, adapters = router_factory(small=[KeyError("boom"), "ok"])

    result = await router.route(GREETING)

    assert result.model_used == "hf/b"


@pytest.mark.asyncio
async def test_no_cross_tier_fallback(router_factory):
    router, adapters = router_factory(small=["retry"] * 3)

    with pytest.raises(AllProvidersFailed):
        await router.route(GREETING)

    assert not adapters[ComplexityTier.MEDIUM].calls
    assert not adapters[ComplexityTier.HIGH].calls


@pytest.mark.asyncio
async def test_missing_tier_adapter_fails_without_attempts():
    router = PromptRouter(adapters={}, candidates={ComplexityTier.SMALL: ["a", "b", "c"]})

    with pytest.raises(AllProvidersFailed) as exc_info:
        await router.route(GREETING)

    assert exc_info.value.attempts == 0
    assert "no provider registered" in str(exc_info.value)


@pytest.mark.asyncio
async def test_generation_params_are_forwarded(router_factory):
    router, adapters = router_factory()

    await router.route(GREETING, RouteOptions(params=GenerationParams(temperature=0.1, max_tokens=64)))

    params = adapters[ComplexityTier.SMALL].calls[0].params
    assert params.temperature == 0.1
    assert params.max_tokens == 64


# --- sticky index ---


@pytest.mark.asyncio
async def test_success_updates_sticky_index_but_not_candidate_order(router_factory):
    router, adapters = router_factory(medium=["retry", "ok"])
    adapter = adapters[ComplexityTier.MEDIUM]

    await router.route(medium_prompt())
    assert adapter.sticky.value == 1

    router.reset_sticky()
    assert adapter.sticky.value == 0

    await router.route(medium_prompt())
    assert adapter.models_called[2] == adapter.models[0]


@pytest.mark.asyncio
async def test_failed_route_leaves_sticky_index_alone(router_factory):
    router, adapters = router_factory(medium=["retry", "ok"] + ["retry"] * 4)
    adapter = adapters[ComplexityTier.MEDIUM]

    await router.route(medium_prompt())
    with pytest.raises(AllProvidersFailed):
        await router.route(medium_prompt())

    assert adapter.sticky.value == 1


# --- stats ---


@pytest.mark.asyncio
async def test_stats(router_factory):
    router, _ = router_factory(small=["retry", "ok"])

    await router.route(GREETING)
    stats = router.get_stats()

    assert stats["total_requests"] == 1
    assert stats["succeeded"] == 1
    assert stats["fallbacks"] == 1
    assert stats["tier_distribution"]["small"] == 1

    router.reset_stats()
    assert router.get_stats()["total_requests"] == 0


# --- factory ---


def test_create_router_registers_configured_adapters():
    settings = Settings(
        _env_file=None,
        openrouter_api_key="or",
        hf_api_key="hf",
        puter_api_key="puter",
        anthropic_api_key="",
        medium_timeout=12,
        low_word_threshold=10,
        high_word_threshold=50,
    )

    router = create_router(settings)

    assert isinstance(router.adapters[ComplexityTier.SMALL], HuggingFaceAdapter)
    assert isinstance(router.adapters[ComplexityTier.MEDIUM], OpenRouterAdapter)
    assert isinstance(router.adapters[ComplexityTier.HIGH], PuterAdapter)
    assert router.adapters[ComplexityTier.MEDIUM].timeout == 12
    assert router.adapters[ComplexityTier.MEDIUM].sticky is not None
    assert router.candidates[ComplexityTier.MEDIUM] == tuple(settings.medium_model_candidates)
    assert router.classifier.high_word_threshold == 50
    assert not router.enhancer.enabled


def test_create_router_skips_unconfigured_adapters():
    settings = Settings(
        _env_file=None,
        openrouter_api_key="or",
        hf_api_key="",
        puter_api_key="puter",
        anthropic_api_key="",
    )

    router = create_router(settings)

    assert ComplexityTier.SMALL not in router.adapters
    assert ComplexityTier.MEDIUM in router.adapters
