"""Shared fixtures: scripted adapters and enhancement services."""

from typing import Callable, Optional, Sequence

import pytest

from prompt_router.inference.engine import PromptRouter
from prompt_router.inference.enhancer import PromptEnhancer
from prompt_router.inference.providers import (
    FailureKind,
    ProviderAdapter,
    ProviderFailure,
    ProviderSuccess,
)
from prompt_router.models.routing import ComplexityTier, ProviderRequest

SMALL_MODELS = ["hf/a", "hf/b", "hf/c"]
MEDIUM_MODELS = ["or/a", "or/b", "or/c", "or/d"]
HIGH_MODELS = ["puter/a", "puter/b", "puter/c"]


class ScriptedAdapter(ProviderAdapter):
    """
    In-memory adapter that replays a script of outcomes.

    Script entries: "ok", "retry", "fatal", or an exception instance to raise.
    Once the script runs out every call succeeds.
    """

    def __init__(
        self,
        name: str,
        script: Sequence[object] = (),
        models: Optional[Sequence[str]] = None,
        sticky: bool = False,
    ):
        self.name = name
        super().__init__(
            api_key="test-key",
            endpoint="http://provider.test",
            models=models,
            sticky=sticky,
        )
        self.script = list(script)
        self.calls: list[ProviderRequest] = []

    async def invoke(self, request: ProviderRequest):
        self.calls.append(request)
        step = self.script.pop(0) if self.script else "ok"
        model = request.model_id or ""

        if isinstance(step, Exception):
            raise step
        if step == "ok":
            return ProviderSuccess(
                text=f"{self.name} answer from {model}",
                provider_name=self.name,
                model_id=model,
            )
        kind = FailureKind.RETRYABLE if step == "retry" else FailureKind.FATAL
        return ProviderFailure(
            kind=kind,
            provider_name=self.name,
            model_id=model,
            message=f"{step} failure on {model}",
            status_code=503 if step == "retry" else 400,
        )

    @property
    def models_called(self) -> list[Optional[str]]:
        return [call.model_id for call in self.calls]

    def build_payload(self, model, request):
        return {}

    def parse_response(self, data):
        return ""


class FakeEnhancementService:
    """Records prompts and returns a marked rewrite, or raises if told to."""

    def __init__(self, error: Optional[Exception] = None, reply: Optional[str] = None):
        self.error = error
        self.reply = reply
        self.prompts: list[str] = []

    async def rewrite(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.reply if self.reply is not None else f"ENHANCED: {prompt}"


@pytest.fixture
def enhancement_service() -> FakeEnhancementService:
    return FakeEnhancementService()


@pytest.fixture
def router_factory() -> Callable[..., tuple[PromptRouter, dict[ComplexityTier, ScriptedAdapter]]]:
    """Build a router over scripted adapters for each tier."""

    def build(
        small: Sequence[object] = (),
        medium: Sequence[object] = (),
        high: Sequence[object] = (),
        service: Optional[FakeEnhancementService] = None,
        stop_on_fatal: bool = False,
        sticky_medium: bool = True,
    ):
        adapters = {
            ComplexityTier.SMALL: ScriptedAdapter("HuggingFace", small, models=SMALL_MODELS),
            ComplexityTier.MEDIUM: ScriptedAdapter(
                "OpenRouter", medium, models=MEDIUM_MODELS, sticky=sticky_medium
            ),
            ComplexityTier.HIGH: ScriptedAdapter("Puter", high, models=HIGH_MODELS),
        }
        router = PromptRouter(
            adapters=adapters,
            candidates={
                ComplexityTier.SMALL: SMALL_MODELS,
                ComplexityTier.MEDIUM: MEDIUM_MODELS,
                ComplexityTier.HIGH: HIGH_MODELS,
            },
            enhancer=PromptEnhancer(service=service, timeout=1.0),
            signature="Test Signature",
            stop_on_fatal=stop_on_fatal,
        )
        return router, adapters

    return build
