"""
Prompt Complexity Classifier.

Maps prompt text to a complexity tier (small, medium, high) and a coarse task
label. The tier drives provider selection; the task label is forwarded to
providers that accept one.

Classification is deterministic word counting plus case-insensitive keyword
containment, so "debugging" counts as "debug". It never raises: unexpected
input degrades to the small tier.
"""

from dataclasses import dataclass
from typing import Any, Iterable, Optional

import structlog

from prompt_router.models.routing import ComplexityTier, count_words

logger = structlog.get_logger(__name__)

HEAVY_KEYWORDS = frozenset(
    {"code", "analyze", "research", "develop", "debug", "create", "complex", "programming"}
)
SIMPLE_KEYWORDS = frozenset({"hi", "hello", "simple", "basic"})

# Checked in order, first match wins.
TASK_KEYWORDS: tuple[tuple[str, frozenset[str]], ...] = (
    ("coding", frozenset({"code", "programming", "debug", "function"})),
    ("research", frozenset({"research", "find", "information", "search"})),
    ("writing", frozenset({"write", "essay", "article", "blog"})),
    ("reasoning", frozenset({"analyze", "explain", "logic", "reasoning"})),
)
DEFAULT_TASK = "general"


@dataclass(frozen=True)
class ClassificationResult:
    """Result of prompt classification."""

    tier: ComplexityTier
    task: str
    word_count: int
    reasoning: str


class PromptClassifier:
    """
    Keyword and length based prompt classifier.

    Rules, in precedence order:
    - HIGH: more than high_word_threshold words, or any heavy keyword
    - SMALL: at most low_word_threshold words, or any simple keyword
    - MEDIUM: everything else
    """

    def __init__(
        self,
        low_word_threshold: int = 20,
        high_word_threshold: int = 100,
        heavy_keywords: Optional[Iterable[str]] = None,
        simple_keywords: Optional[Iterable[str]] = None,
    ):
        """
        Initialize classifier.

        Args:
            low_word_threshold: Word count at or below this = SMALL
            high_word_threshold: Word count above this = HIGH
            heavy_keywords: Keywords forcing HIGH (defaults to HEAVY_KEYWORDS)
            simple_keywords: Keywords forcing SMALL (defaults to SIMPLE_KEYWORDS)
        """
        if high_word_threshold <= low_word_threshold:
            raise ValueError("high_word_threshold must be greater than low_word_threshold")

        self.low_word_threshold = low_word_threshold
        self.high_word_threshold = high_word_threshold
        self.heavy_keywords = frozenset(k.lower() for k in (heavy_keywords or HEAVY_KEYWORDS))
        self.simple_keywords = frozenset(k.lower() for k in (simple_keywords or SIMPLE_KEYWORDS))

    def classify(self, prompt: Any) -> ClassificationResult:
        """
        Classify prompt complexity.

        Args:
            prompt: Prompt text; non-string input is treated as empty

        Returns:
            ClassificationResult with tier, task label and word count
        """
        text = prompt if isinstance(prompt, str) else ""
        word_count = count_words(text)
        lowered = text.lower()

        heavy = self._matches(lowered, self.heavy_keywords)
        simple = self._matches(lowered, self.simple_keywords)

        if word_count > self.high_word_threshold:
            tier = ComplexityTier.HIGH
            reasoning = f"{word_count} words exceeds {self.high_word_threshold}"
        elif heavy:
            tier = ComplexityTier.HIGH
            reasoning = "heavy keywords: " + ", ".join(heavy)
        elif word_count <= self.low_word_threshold:
            tier = ComplexityTier.SMALL
            reasoning = f"{word_count} words within {self.low_word_threshold}"
        elif simple:
            tier = ComplexityTier.SMALL
            reasoning = "simple keywords: " + ", ".join(simple)
        else:
            tier = ComplexityTier.MEDIUM
            reasoning = "no keyword or length rule matched"

        task = self.task_label(lowered)

        logger.debug(
            "prompt_classified",
            tier=tier.value,
            task=task,
            word_count=word_count,
            reasoning=reasoning,
        )

        return ClassificationResult(
            tier=tier,
            task=task,
            word_count=word_count,
            reasoning=reasoning,
        )

    @staticmethod
    def task_label(text: str) -> str:
        """Derive the coarse task label from lowercased prompt text."""
        for label, keywords in TASK_KEYWORDS:
            if any(keyword in text for keyword in keywords):
                return label
        return DEFAULT_TASK

    @staticmethod
    def _matches(text: str, keywords: frozenset[str]) -> list[str]:
        """Keywords contained anywhere in the lowercased text."""
        return sorted(keyword for keyword in keywords if keyword in text)


def create_classifier(
    low_word_threshold: int = 20,
    high_word_threshold: int = 100,
) -> PromptClassifier:
    """
    Factory function to create a prompt classifier.

    Args:
        low_word_threshold: Word count at or below this = SMALL
        high_word_threshold: Word count above this = HIGH

    Returns:
        Configured PromptClassifier instance
    """
    return PromptClassifier(
        low_word_threshold=low_word_threshold,
        high_word_threshold=high_word_threshold,
    )
