from __future__ import annotations

import logging

from whispr.errors import GenerationUnavailable

from .classifier import CRISIS_PHRASES, STRESS_WORDS
from .llm import LLMAgent

logger = logging.getLogger(__name__)


class ReplyGenerator(LLMAgent):
    """Drafts the supportive reply a moderator attaches to a whisper."""

    purpose = "reply"

    system_prompt = (
        "You are an empathetic and helpful assistant generating replies to messages in Whispr, "
        "a mental health support app. Give quick, supportive, non-medical encouragement. "
        "Be concise and easy to understand. Never give medical advice or make diagnoses. "
        "If the message shows severe distress, suggest seeking professional help or contacting "
        "a crisis hotline. Put the person's safety and well-being first. "
        "Respond with the reply text only."
    )

    def _heuristic_policy(self, content: str) -> str:
        text = content.lower()
        if any(phrase in text for phrase in CRISIS_PHRASES):
            return (
                "Thank you for trusting us with something this heavy. You matter, and you don't "
                "have to go through this alone. If you can, please call or text 988, or text HOME "
                "to 741741, to talk with someone right now."
            )
        if any(word in text for word in STRESS_WORDS):
            return (
                "It sounds like you're under a lot of pressure. Be gentle with yourself, take one "
                "small step at a time, and consider talking it through with someone you trust."
            )
        return "Thanks for sharing this with the community. We're glad you're here."

    def generate(self, content: str) -> str:
        if not self.uses_llm:
            return self._heuristic_policy(content)
        try:
            reply = self._complete(
                [
                    {"role": "system", "content": self.system_prompt},
                    {"role": "user", "content": f"Message: {content}"},
                ]
            ).strip()
        except Exception as e:
            logger.warning("Reply generation failed: %s", e)
            raise GenerationUnavailable(str(e)) from e
        if not reply:
            raise GenerationUnavailable("Reply was empty.")
        return reply
