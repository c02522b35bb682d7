from __future__ import annotations

import logging
from typing import Sequence

from whispr.state.models import ChatTurn

from .base import ConverseResult
from .classifier import CRISIS_PHRASES, STRESS_WORDS
from .llm import LLMAgent, extract_json

logger = logging.getLogger(__name__)

APOLOGY_REPLY = "I'm having a little trouble connecting right now. Please try again in a moment."


class EscalationDetector(LLMAgent):
    """
    Supportive chat companion that also decides whether the crisis-helpline
    panel should be shown.

    Failures degrade to a fixed apology with escalate=False. The helpline
    panel is always reachable from the UI, so a missed escalation is
    preferred over a false one caused by an outage.
    """

    purpose = "converse"

    system_prompt = (
        "You are Whispr, a warm, non-judgmental listener in an anonymous support app. "
        "Reply briefly and kindly, reflect what the person shares, and never give medical advice "
        "or diagnoses. Set escalate to true only if the person expresses thoughts of suicide, "
        "self-harm, being in danger, or being unable to stay safe. "
        'Respond only as JSON: {"reply": "<your message>", "escalate": true|false}.'
    )

    def _heuristic_policy(self, message: str, history: Sequence[ChatTurn]) -> ConverseResult:
        text = message.lower()
        if any(phrase in text for phrase in CRISIS_PHRASES):
            return ConverseResult(
                reply=(
                    "I'm really sorry you're carrying this. You don't have to face it alone, "
                    "and talking to someone right now can help. Please consider reaching out "
                    "to one of the helplines below."
                ),
                escalate=True,
            )
        if any(word in text for word in STRESS_WORDS):
            return ConverseResult(
                reply="That sounds like a lot to hold. What's weighing on you the most right now?",
                escalate=False,
            )
        opener = "Thanks for sharing that with me." if history else "Namaste. I'm glad you're here."
        return ConverseResult(reply=f"{opener} How are you feeling about it?", escalate=False)

    def _llm_policy(self, message: str, history: Sequence[ChatTurn]) -> ConverseResult:
        window = self.config.get("history_window", 20)
        recent = list(history)[-window:] if window > 0 else []
        messages = [{"role": "system", "content": self.system_prompt}]
        for turn in recent:
            role = "user" if turn.sender == "user" else "assistant"
            messages.append({"role": role, "content": turn.text})
        messages.append({"role": "user", "content": message})

        data = extract_json(self._complete(messages))
        reply = data.get("reply")
        escalate = data.get("escalate")
        if not isinstance(reply, str) or not reply.strip():
            raise ValueError("reply missing from conversation response")
        if not isinstance(escalate, bool):
            raise ValueError("escalate flag missing from conversation response")
        return ConverseResult(reply=reply.strip(), escalate=escalate)

    def converse(self, message: str, history: Sequence[ChatTurn], identity_id: str) -> ConverseResult:
        if not self.uses_llm:
            return self._heuristic_policy(message, history)
        try:
            return self._llm_policy(message, history)
        except Exception as e:
            logger.warning("Conversation judgment failed for %s: %s", identity_id, e)
            return ConverseResult(reply=APOLOGY_REPLY, escalate=False, degraded=True)
