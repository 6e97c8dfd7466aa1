"""
Prompt Enhancer.

Rewrites high-complexity prompts through an external rewriting service before
they are dispatched. Enhancement is best-effort: any failure returns the
original prompt and is only logged.

Users can opt out per prompt with the in-band skip directive ``!no enhance``
(the misspelling ``!no enchace`` is honoured too). The directive is removed
from whatever text is finally sent to a provider.
"""

import asyncio
import re
from typing import Any, Optional, Protocol

import structlog
from anthropic import Anthropic

from prompt_router.communication.concurrency import run_io_bound

logger = structlog.get_logger(__name__)

SKIP_DIRECTIVES = ("!no enhance", "!no enchace")

_SKIP_RE = re.compile("|".join(re.escape(d) for d in SKIP_DIRECTIVES), re.IGNORECASE)
_STRIP_RE = re.compile(r"[ \t]*(?:" + _SKIP_RE.pattern + ")", re.IGNORECASE)

ENHANCEMENT_INSTRUCTIONS = """You are a prompt enhancement expert. Your task is to take a user's prompt and make it clearer, more specific, and more likely to get a high-quality response from an AI assistant.

RULES:
1. Keep the original intent and meaning exactly the same
2. Make it more specific and actionable
3. Add context if missing
4. Improve clarity without changing the core request
5. Keep the enhanced version concise but comprehensive

Original prompt: "{prompt}"

Provide ONLY the enhanced version, nothing else:"""


def has_skip_directive(text: str) -> bool:
    """Check whether the prompt opts out of enhancement."""
    return bool(text) and _SKIP_RE.search(text) is not None


def strip_skip_directive(text: str) -> str:
    """Remove every skip directive, in any casing, and trim the result."""
    if not text:
        return text
    return _STRIP_RE.sub("", text).strip()


class EnhancementService(Protocol):
    """External prompt rewriting service."""

    async def rewrite(self, prompt: str) -> str:
        ...


class AnthropicEnhancementService:
    """
    Prompt rewriting backed by the Anthropic Messages API.

    The SDK client is synchronous, so calls run in the I/O thread pool.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "claude-3-5-haiku-latest",
        timeout: float = 20.0,
        max_tokens: int = 1024,
    ):
        if not api_key:
            raise ValueError("Anthropic API key is required for prompt enhancement")

        self.model = model
        self.timeout = timeout
        self.max_tokens = max_tokens
        self.client = Anthropic(api_key=api_key, timeout=timeout, max_retries=0)

        logger.info("anthropic_enhancer_initialized", model=model, timeout=timeout)

    async def rewrite(self, prompt: str) -> str:
        """Ask the model for an enhanced version of the prompt."""
        response = await run_io_bound(
            self.client.messages.create,
            model=self.model,
            max_tokens=self.max_tokens,
            temperature=0.3,
            messages=[
                {"role": "user", "content": ENHANCEMENT_INSTRUCTIONS.format(prompt=prompt)}
            ],
        )
        return "".join(
            block.text for block in response.content if getattr(block, "type", None) == "text"
        )


class PromptEnhancer:
    """
    Best-effort prompt enhancer.

    Wraps an EnhancementService with a timeout and swallows its failures so
    routing is never blocked by the rewriting step.
    """

    def __init__(self, service: Optional[EnhancementService] = None, timeout: float = 20.0):
        self.service = service
        self.timeout = timeout
        self.stats = {"attempted": 0, "enhanced": 0, "failed": 0}

    @property
    def enabled(self) -> bool:
        return self.service is not None

    async def enhance(self, prompt: str) -> str:
        """
        Enhance a prompt.

        Args:
            prompt: Original prompt text

        Returns:
            The rewritten prompt, or the original on any failure or empty rewrite
        """
        if self.service is None:
            logger.debug("enhancement_disabled")
            return prompt

        self.stats["attempted"] += 1
        try:
            enhanced = await asyncio.wait_for(self.service.rewrite(prompt), timeout=self.timeout)
        except asyncio.TimeoutError:
            self.stats["failed"] += 1
            logger.warning("enhancement_failed", error="timeout", timeout=self.timeout)
            return prompt
        except Exception as e:
            self.stats["failed"] += 1
            logger.warning("enhancement_failed", error=str(e), error_type=type(e).__name__)
            return prompt

        enhanced = (enhanced or "").strip()
        if not enhanced:
            self.stats["failed"] += 1
            logger.warning("enhancement_empty")
            return prompt

        self.stats["enhanced"] += 1
        logger.info(
            "prompt_enhanced",
            original_chars=len(prompt),
            enhanced_chars=len(enhanced),
        )
        return enhanced

    def get_stats(self) -> dict[str, Any]:
        """Get enhancement statistics."""
        return {**self.stats, "enabled": self.enabled}


def create_enhancer(
    api_key: str = "",
    model: str = "claude-3-5-haiku-latest",
    timeout: float = 20.0,
) -> PromptEnhancer:
    """
    Factory function to create a prompt enhancer.

    An empty API key yields an enhancer that returns prompts unchanged.
    """
    service = AnthropicEnhancementService(api_key, model=model, timeout=timeout) if api_key else None
    return PromptEnhancer(service=service, timeout=timeout)
