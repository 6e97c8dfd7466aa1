"""Tests for prompt classification."""

import pytest

from prompt_router.inference.classifier import PromptClassifier, create_classifier
from prompt_router.models.routing import ComplexityTier


def words(n: int, filler: str = "token") -> str:
    return " ".join([filler] * n)


@pytest.fixture
def classifier() -> PromptClassifier:
    return create_classifier()


@pytest.mark.parametrize(
    "count, expected",
    [
        (0, ComplexityTier.SMALL),
        (20, ComplexityTier.SMALL),
        (21, ComplexityTier.MEDIUM),
        (100, ComplexityTier.MEDIUM),
        (101, ComplexityTier.HIGH),
    ],
)
def test_word_count_boundaries(classifier, count, expected):
    assert classifier.classify(words(count)).tier == expected


def test_greeting_scenario(classifier):
    result = classifier.classify("Hello world how are you doing today?")
    assert result.word_count == 7
    assert result.tier == ComplexityTier.SMALL


def test_simple_keyword_forces_small_for_medium_length(classifier):
    prompt = "hello " + words(40)
    assert classifier.classify(prompt).tier == ComplexityTier.SMALL


def test_word_count_above_high_threshold_beats_simple_keyword(classifier):
    prompt = "hello simple basic " + words(98)
    assert classifier.classify(prompt).tier == ComplexityTier.HIGH


@pytest.mark.parametrize(
    "keyword",
    ["code", "analyze", "research", "develop", "debug", "create", "complex", "programming"],
)
def test_heavy_keyword_forces_high(classifier, keyword):
    assert classifier.classify(f"please {keyword} this").tier == ComplexityTier.HIGH


def test_heavy_keyword_beats_simple_keyword(classifier):
    assert classifier.classify("hi, can you debug a simple loop?").tier == ComplexityTier.HIGH


def test_keywords_are_case_insensitive(classifier):
    assert classifier.classify("ANALYZE the quarterly numbers").tier == ComplexityTier.HIGH


@pytest.mark.parametrize(
    "prompt",
    [
        "I need help debugging a flaky integration suite " + words(20),
        "Our developers created a new onboarding flow " + words(20),
    ],
)
def test_keywords_match_inside_longer_words(classifier, prompt):
    assert classifier.classify(prompt).tier == ComplexityTier.HIGH


def test_simple_keyword_inside_longer_word_forces_small(classifier):
    # "hi" is contained in "this"
    prompt = "this " + words(30)
    assert classifier.classify(prompt).tier == ComplexityTier.SMALL


@pytest.mark.parametrize("prompt", ["", "   \n\t  ", None, 42])
def test_degenerate_input_is_small(classifier, prompt):
    result = classifier.classify(prompt)
    assert result.tier == ComplexityTier.SMALL
    assert result.word_count == 0
    assert result.task == "general"


@pytest.mark.parametrize(
    "prompt, task",
    [
        ("Write some code for me", "coding"),
        ("Research this topic", "research"),
        ("Write an essay about rivers", "writing"),
        ("Analyze this data", "reasoning"),
        ("Tell me about rivers", "general"),
        ("Help with debugging this loop", "coding"),
        ("I keep finding odd results", "research"),
        ("Rewrite my cover letter", "writing"),
    ],
)
def test_task_labels(classifier, prompt, task):
    assert classifier.classify(prompt).task == task


def test_classification_is_deterministic(classifier):
    prompt = "Explain how tides work " + words(30)
    assert classifier.classify(prompt) == classifier.classify(prompt)


def test_custom_thresholds():
    classifier = PromptClassifier(low_word_threshold=5, high_word_threshold=10)
    assert classifier.classify(words(5)).tier == ComplexityTier.SMALL
    assert classifier.classify(words(6)).tier == ComplexityTier.MEDIUM
    assert classifier.classify(words(11)).tier == ComplexityTier.HIGH


def test_invalid_thresholds_rejected():
    with pytest.raises(ValueError):
        PromptClassifier(low_word_threshold=50, high_word_threshold=50)
