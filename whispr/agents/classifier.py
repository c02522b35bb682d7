from __future__ import annotations

import logging
from typing import Dict, Optional

from whispr.errors import ClassificationUnavailable
from whispr.state.models import LABELS

from .base import ClassificationResult
from .llm import LLMAgent, extract_json

logger = logging.getLogger(__name__)

CRISIS_PHRASES = [
    "kill myself", "suicide", "suicidal", "end it all", "giving up", "give up on life",
    "want to die", "no reason to live", "hurt myself", "self harm", "self-harm",
    "better off without me", "empty and alone", "can't go on", "cant go on",
]
STRESS_WORDS = [
    "stress", "anxious", "anxiety", "overwhelmed", "exhausted", "worried", "pressure",
    "deadline", "exam", "can't sleep", "panic", "lonely", "sad", "tired of",
]


class ContentClassifier(LLMAgent):
    """
    Assigns a severity label and confidence to whisper text.
    Never invents a label: any backend failure raises ClassificationUnavailable.
    """

    purpose = "classify"

    system_prompt = (
        "You are a safety classifier for an anonymous peer-support app. "
        "Read the user's post and judge how much support they need. "
        "Labels: normal (everyday sharing), stressed (worry, pressure, sadness), "
        "need_help (hopelessness, self-harm or suicidal thoughts, crisis). "
        'Respond only as JSON: {"label": "normal|stressed|need_help", "confidence": <number 0-1>}.'
    )

    def _heuristic_policy(self, content: str) -> ClassificationResult:
        text = content.lower()
        if any(phrase in text for phrase in CRISIS_PHRASES):
            return ClassificationResult(label="need_help", confidence=0.93)
        if any(word in text for word in STRESS_WORDS):
            return ClassificationResult(label="stressed", confidence=0.8)
        return ClassificationResult(label="normal", confidence=0.7)

    def _llm_policy(self, content: str) -> ClassificationResult:
        try:
            raw = self._complete(
                [
                    {"role": "system", "content": self.system_prompt},
                    {"role": "user", "content": f"Post: {content}"},
                ]
            )
        except Exception as e:
            logger.warning("Classification call failed: %s", e)
            raise ClassificationUnavailable(str(e)) from e

        result = parse_classification(extract_json(raw))
        if result is None:
            logger.warning("Classification response malformed: %r", raw[:200])
            raise ClassificationUnavailable("classification response was malformed")
        return result

    def classify(self, content: str) -> ClassificationResult:
        if self.uses_llm:
            return self._llm_policy(content)
        return self._heuristic_policy(content)


def parse_classification(data: Dict) -> Optional[ClassificationResult]:
    label = str(data.get("label", "")).strip().lower().replace(" ", "_")
    confidence = data.get("confidence")
    if label not in LABELS:
        return None
    if isinstance(confidence, bool) or not isinstance(confidence, (int, float)):
        return None
    return ClassificationResult(label=label, confidence=min(1.0, max(0.0, float(confidence))))
