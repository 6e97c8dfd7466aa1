"""
Prompt Routing Engine.

Routes a user prompt to exactly one text-generation provider:
1. Classify the prompt into a complexity tier and task label
2. Enhance high-tier prompts (unless skipped or pre-enhanced)
3. Strip the skip directive from the final text
4. Pick the provider bound to the tier (small -> HuggingFace,
   medium -> OpenRouter, high -> Puter)
5. Try the tier's candidate models in declared order until one succeeds

Candidates are attempted sequentially. There is no cross-tier fallback; only
the tier's own model list is walked.
"""

import uuid
from typing import Any, Mapping, Optional, Sequence

import structlog

from prompt_router.config.settings import Settings
from prompt_router.errors import AllProvidersFailed, ProviderConfigurationError
from prompt_router.logging.logger import bind_request
from prompt_router.models.routing import (
    ComplexityTier,
    Prompt,
    ProviderRequest,
    RouteOptions,
    RouteRequest,
    RouteResult,
)

from .classifier import PromptClassifier, create_classifier
from .enhancer import PromptEnhancer, create_enhancer, has_skip_directive, strip_skip_directive
from .providers import (
    FailureKind,
    HuggingFaceAdapter,
    OpenRouterAdapter,
    ProviderAdapter,
    ProviderFailure,
    ProviderOutcome,
    PuterAdapter,
)

logger = structlog.get_logger(__name__)

DEFAULT_SIGNATURE = "Built by Flamingo (human curated)"


def _empty_stats() -> dict[str, Any]:
    return {
        "total_requests": 0,
        "succeeded": 0,
        "exhausted": 0,
        "enhanced": 0,
        "fallbacks": 0,
        "total_attempts": 0,
        "tier_distribution": {tier.value: 0 for tier in ComplexityTier},
    }


class PromptRouter:
    """
    Prompt orchestration router.

    Owns classification, provider selection, enhancement, invocation with
    fallback, and result assembly. Produces one RouteResult or raises one
    AllProvidersFailed per call.

    Example:
        router = create_router(settings)
        result = await router.route("Hello world how are you doing today?")
        # tier=small, served by HuggingFace
    """

    def __init__(
        self,
        adapters: Mapping[ComplexityTier, ProviderAdapter],
        candidates: Mapping[ComplexityTier, Sequence[str]],
        classifier: Optional[PromptClassifier] = None,
        enhancer: Optional[PromptEnhancer] = None,
        signature: str = DEFAULT_SIGNATURE,
        stop_on_fatal: bool = False,
    ):
        """
        Initialize router.

        Args:
            adapters: Provider adapter bound to each tier
            candidates: Ordered fallback model ids per tier
            classifier: Prompt classifier (created if not provided)
            enhancer: Prompt enhancer (a disabled one if not provided)
            signature: Attribution string attached to every result
            stop_on_fatal: End the fallback loop on the first fatal failure
        """
        self.adapters = dict(adapters)
        self.candidates = {tier: tuple(models) for tier, models in candidates.items()}
        self.classifier = classifier or create_classifier()
        self.enhancer = enhancer or PromptEnhancer()
        self.signature = signature
        self.stop_on_fatal = stop_on_fatal

        self.stats = _empty_stats()

        logger.info(
            "prompt_router_initialized",
            tiers={tier.value: adapter.name for tier, adapter in self.adapters.items()},
            enhancement_enabled=self.enhancer.enabled,
            stop_on_fatal=stop_on_fatal,
        )

    async def route(self, prompt: str, options: Optional[RouteOptions] = None) -> RouteResult:
        """
        Route a prompt to its tier's provider.

        Args:
            prompt: Raw user prompt
            options: Optional user id, pre-enhanced prompt and generation params

        Returns:
            RouteResult from the first candidate that succeeded

        Raises:
            AllProvidersFailed: If no candidate produced a response
        """
        options = options or RouteOptions()
        request_id = str(uuid.uuid4())

        with bind_request(request_id, user_id=options.user_id):
            self.stats["total_requests"] += 1

            original = Prompt(text=prompt if isinstance(prompt, str) else "")
            classification = self.classifier.classify(original.text)
            tier = classification.tier
            self.stats["tier_distribution"][tier.value] += 1

            logger.info(
                "route_started",
                tier=tier.value,
                task=classification.task,
                word_count=classification.word_count,
                preview=original.text[:100],
            )

            final, enhanced = await self._prepare_prompt(original, tier, options)

            route_request = RouteRequest(
                prompt=final,
                tier=tier,
                task=classification.task,
                model_candidates=self.candidates.get(tier, ()),
            )

            return await self._dispatch(
                route_request,
                request_id=request_id,
                word_count=classification.word_count,
                enhanced=enhanced,
                options=options,
            )

    async def _prepare_prompt(
        self,
        original: Prompt,
        tier: ComplexityTier,
        options: RouteOptions,
    ) -> tuple[Prompt, bool]:
        """Apply enhancement policy and strip the skip directive."""
        text = original.text
        enhanced = False

        if has_skip_directive(text):
            logger.debug("enhancement_skipped", reason="skip_directive")
        elif options.pre_enhanced_prompt:
            text = options.pre_enhanced_prompt
            enhanced = True
            logger.debug("enhancement_skipped", reason="pre_enhanced")
        elif tier == ComplexityTier.HIGH:
            rewritten = await self.enhancer.enhance(text)
            enhanced = rewritten != text
            text = rewritten

        if enhanced:
            self.stats["enhanced"] += 1

        return original.replaced(strip_skip_directive(text)), enhanced

    async def _dispatch(
        self,
        route_request: RouteRequest,
        request_id: str,
        word_count: int,
        enhanced: bool,
        options: RouteOptions,
    ) -> RouteResult:
        """Walk the tier's candidates in order until one succeeds."""
        tier = route_request.tier
        adapter = self.adapters.get(tier)
        candidates = route_request.model_candidates

        if adapter is None or not candidates:
            self.stats["exhausted"] += 1
            reason = "no provider registered" if adapter is None else "no candidate models"
            logger.error("route_unavailable", tier=tier.value, reason=reason)
            raise AllProvidersFailed(request_id, f"{reason} for tier {tier.value}", attempts=0)

        last_failure: Optional[ProviderFailure] = None
        attempts = 0

        for position, model_id in enumerate(candidates):
            attempts += 1
            logger.info(
                "provider_attempt",
                provider=adapter.name,
                model=model_id,
                attempt=attempts,
                of=len(candidates),
            )

            outcome = await self._invoke(adapter, route_request, model_id, options)

            if outcome.ok:
                adapter.record_success(outcome.model_id)
                self.stats["succeeded"] += 1
                self.stats["total_attempts"] += attempts
                self.stats["fallbacks"] += attempts - 1

                logger.info(
                    "route_succeeded",
                    provider=outcome.provider_name,
                    model=outcome.model_id,
                    attempts=attempts,
                    latency_ms=outcome.latency_ms,
                )

                return RouteResult(
                    text=outcome.text,
                    provider_name=outcome.provider_name,
                    model_used=outcome.model_id,
                    word_count=word_count,
                    task=route_request.task,
                    signature=self.signature,
                    request_id=request_id,
                    tier=tier,
                    enhanced=enhanced,
                    attempts=attempts,
                )

            last_failure = outcome
            remaining = len(candidates) - position - 1

            if outcome.kind == FailureKind.FATAL and self.stop_on_fatal:
                logger.warning("fallback_stopped", reason="fatal_failure", error=outcome.message)
                break

            if remaining:
                logger.warning(
                    "provider_attempt_failed",
                    provider=adapter.name,
                    model=model_id,
                    kind=outcome.kind.value,
                    error=outcome.message,
                    remaining=remaining,
                )

        self.stats["exhausted"] += 1
        self.stats["total_attempts"] += attempts

        logger.error(
            "route_exhausted",
            provider=adapter.name,
            attempts=attempts,
            last_error=last_failure.message if last_failure else None,
        )
        raise AllProvidersFailed(request_id, last_failure, attempts=attempts)

    async def _invoke(
        self,
        adapter: ProviderAdapter,
        route_request: RouteRequest,
        model_id: str,
        options: RouteOptions,
    ) -> ProviderOutcome:
        request = ProviderRequest(
            prompt=route_request.prompt.text,
            task=route_request.task,
            model_id=model_id,
            params=options.params,
        )
        try:
            return await adapter.invoke(request)
        except Exception as e:
            # Adapters classify expected failures themselves; anything else is a defect
            logger.exception("provider_attempt_crashed", provider=adapter.name, model=model_id)
            return ProviderFailure(
                kind=FailureKind.FATAL,
                provider_name=adapter.name,
                model_id=model_id,
                message=f"{type(e).__name__}: {e}",
            )

    def reset_sticky(self) -> None:
        """Reset every adapter's sticky model index."""
        for adapter in self.adapters.values():
            adapter.reset_sticky()
        logger.info("sticky_indexes_reset")

    def get_stats(self) -> dict[str, Any]:
        """Get routing statistics."""
        total = self.stats["total_requests"]
        success_rate = self.stats["succeeded"] / total * 100 if total > 0 else 0

        return {
            **self.stats,
            "success_rate": success_rate,
            "enhancer": self.enhancer.get_stats(),
            "providers": {tier.value: adapter.get_stats() for tier, adapter in self.adapters.items()},
        }

    def reset_stats(self) -> None:
        """Reset all statistics."""
        self.stats = _empty_stats()


def create_router(settings: Settings) -> PromptRouter:
    """
    Build a router from settings.

    Adapters whose credentials are missing are logged and left unregistered;
    prompts for their tier fail with AllProvidersFailed.
    """
    builders = {
        ComplexityTier.SMALL: lambda: HuggingFaceAdapter(
            api_key=settings.hf_api_key,
            endpoint=settings.hf_endpoint,
            timeout=settings.small_timeout,
            models=settings.small_model_candidates,
        ),
        ComplexityTier.MEDIUM: lambda: OpenRouterAdapter(
            api_key=settings.openrouter_api_key,
            endpoint=settings.openrouter_endpoint,
            timeout=settings.medium_timeout,
            models=settings.medium_model_candidates,
            site_url=settings.site_url,
            app_title=settings.app_title,
        ),
        ComplexityTier.HIGH: lambda: PuterAdapter(
            api_key=settings.puter_api_key,
            endpoint=settings.puter_script_url,
            timeout=settings.high_timeout,
            models=settings.high_model_candidates,
        ),
    }

    adapters: dict[ComplexityTier, ProviderAdapter] = {}
    for tier, build in builders.items():
        try:
            adapters[tier] = build()
        except ProviderConfigurationError as e:
            logger.error("provider_not_registered", tier=tier.value, provider=e.provider_name, missing=e.missing)

    return PromptRouter(
        adapters=adapters,
        candidates={
            ComplexityTier.SMALL: settings.small_model_candidates,
            ComplexityTier.MEDIUM: settings.medium_model_candidates,
            ComplexityTier.HIGH: settings.high_model_candidates,
        },
        classifier=create_classifier(
            low_word_threshold=settings.low_word_threshold,
            high_word_threshold=settings.high_word_threshold,
        ),
        enhancer=create_enhancer(
            api_key=settings.anthropic_api_key,
            model=settings.enhancer_model,
            timeout=settings.enhancer_timeout,
        ),
        signature=settings.signature,
        stop_on_fatal=settings.stop_on_fatal,
    )
