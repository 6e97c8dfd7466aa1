"""Request-scoped data models for prompt routing."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, computed_field


class ComplexityTier(str, Enum):
    """Prompt complexity tiers, ordered small < medium < high."""

    SMALL = "small"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def rank(self) -> int:
        """Position of the tier in the small < medium < high ordering."""
        return _TIER_ORDER.index(self)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, ComplexityTier):
            return NotImplemented
        return self.rank < other.rank


_TIER_ORDER = [ComplexityTier.SMALL, ComplexityTier.MEDIUM, ComplexityTier.HIGH]


def count_words(text: Any) -> int:
    """Whitespace-delimited token count; non-text input counts as zero words."""
    if not isinstance(text, str):
        return 0
    return len([word for word in text.split() if word])


class Prompt(BaseModel):
    """Immutable prompt text with derived counts."""

    model_config = ConfigDict(frozen=True)

    text: str

    @computed_field  # type: ignore[prop-decorator]
    @property
    def word_count(self) -> int:
        return count_words(self.text)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def char_count(self) -> int:
        return len(self.text)

    def replaced(self, text: str) -> "Prompt":
        """Return a new prompt carrying different text."""
        return Prompt(text=text)


class GenerationParams(BaseModel):
    """Sampling parameters forwarded to a provider."""

    model_config = ConfigDict(frozen=True)

    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    max_tokens: int | None = Field(default=None, ge=1)


class ProviderRequest(BaseModel):
    """Generic request handed to a provider adapter."""

    model_config = ConfigDict(frozen=True)

    prompt: str
    task: str = "general"
    model_id: str | None = None
    params: GenerationParams = Field(default_factory=GenerationParams)


class RouteRequest(BaseModel):
    """A classified prompt bound to its tier's ordered fallback candidates."""

    model_config = ConfigDict(frozen=True)

    prompt: Prompt
    tier: ComplexityTier
    task: str
    model_candidates: tuple[str, ...]


class RouteOptions(BaseModel):
    """Caller-supplied options for a single routing call."""

    model_config = ConfigDict(frozen=True)

    user_id: str | None = None
    pre_enhanced_prompt: str | None = None
    params: GenerationParams = Field(default_factory=GenerationParams)


class RouteResult(BaseModel):
    """The single successful outcome of a routing call."""

    model_config = ConfigDict(frozen=True)

    text: str
    provider_name: str
    model_used: str
    word_count: int
    task: str
    signature: str
    request_id: str
    tier: ComplexityTier
    enhanced: bool = False
    attempts: int = Field(default=1, ge=1)
