from __future__ import annotations

import pytest

from whispr.agents import ContentClassifier
from whispr.errors import ClassificationUnavailable
from whispr.utils.cost_tracker import CostTracker


def test_heuristic_labels() -> None:
    classifier = ContentClassifier({"backend": "heuristic"})

    crisis = classifier.classify("I feel so empty and alone, thinking of giving up")
    assert crisis.label == "need_help"
    assert crisis.confidence >= 0.9

    assert classifier.classify("Exams next week and I feel overwhelmed").label == "stressed"
    assert classifier.classify("Had a lovely walk in the park").label == "normal"


def test_heuristic_has_no_length_floor() -> None:
    result = ContentClassifier({"backend": "heuristic"}).classify("hi")
    assert result.label == "normal"
    assert 0.0 <= result.confidence <= 1.0


def test_llm_response_with_prose_is_parsed(llm_config, scripted_client) -> None:
    client = scripted_client('Sure! {"label": "stressed", "confidence": 0.82} Hope that helps.')
    tracker = CostTracker()
    classifier = ContentClassifier(llm_config, cost_tracker=tracker, client=client)

    result = classifier.classify("deadline tomorrow and nothing works")

    assert (result.label, result.confidence) == ("stressed", 0.82)
    assert client.requests[0]["model"] == "test-model"
    assert tracker.get_stats()["by_purpose"]["classify"]["calls"] == 1


def test_llm_confidence_is_clamped(llm_config, scripted_client) -> None:
    classifier = ContentClassifier(llm_config, client=scripted_client('{"label": "need_help", "confidence": 1.4}'))
    assert classifier.classify("text").confidence == 1.0


@pytest.mark.parametrize(
    "content",
    [
        '{"label": "angry", "confidence": 0.5}',
        '{"label": "normal"}',
        '{"label": "normal", "confidence": "high"}',
        '{"label": "normal", "confidence": true}',
        "I cannot classify this.",
        "",
    ],
)
def test_malformed_llm_response_is_unavailable(llm_config, scripted_client, content) -> None:
    classifier = ContentClassifier(llm_config, client=scripted_client(content))
    with pytest.raises(ClassificationUnavailable):
        classifier.classify("some whisper")


def test_backend_error_is_unavailable(llm_config, scripted_client) -> None:
    classifier = ContentClassifier(llm_config, client=scripted_client(TimeoutError("provider timed out")))
    with pytest.raises(ClassificationUnavailable):
        classifier.classify("some whisper")


def test_missing_api_key_does_not_fall_back(monkeypatch) -> None:
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    classifier = ContentClassifier({"backend": "openai"})
    with pytest.raises(ClassificationUnavailable):
        classifier.classify("I feel fine today")
