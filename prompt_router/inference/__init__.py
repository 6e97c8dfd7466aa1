"""
Prompt routing for the prompt router.

Routes each user prompt to one text-generation provider based on its
complexity tier, with in-tier model fallback.

Components:
- PromptClassifier: Classifies prompts (small/medium/high) and labels the task
- PromptEnhancer: Best-effort rewriting of high-tier prompts
- Provider adapters: OpenRouter, HuggingFace, Puter
- PromptRouter: Orchestrates classification, enhancement and fallback
"""

from .classifier import (
    ClassificationResult,
    PromptClassifier,
    create_classifier,
)
from .engine import (
    PromptRouter,
    create_router,
)
from .enhancer import (
    AnthropicEnhancementService,
    EnhancementService,
    PromptEnhancer,
    create_enhancer,
    has_skip_directive,
    strip_skip_directive,
)
from .providers import (
    FailureKind,
    HuggingFaceAdapter,
    OpenRouterAdapter,
    ProviderAdapter,
    ProviderFailure,
    ProviderOutcome,
    ProviderSuccess,
    PuterAdapter,
    StickyModelIndex,
)

__all__ = [
    # Classifier
    "PromptClassifier",
    "ClassificationResult",
    "create_classifier",
    # Enhancer
    "PromptEnhancer",
    "EnhancementService",
    "AnthropicEnhancementService",
    "create_enhancer",
    "has_skip_directive",
    "strip_skip_directive",
    # Engine
    "PromptRouter",
    "create_router",
    # Providers
    "ProviderAdapter",
    "ProviderOutcome",
    "ProviderSuccess",
    "ProviderFailure",
    "FailureKind",
    "StickyModelIndex",
    "OpenRouterAdapter",
    "HuggingFaceAdapter",
    "PuterAdapter",
]
