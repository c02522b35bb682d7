from __future__ import annotations

import json
import logging
import os
from typing import Dict, List, Optional

from openai import OpenAI

logger = logging.getLogger(__name__)

LLM_BACKENDS = ("openai", "together")
TOGETHER_BASE_URL = "https://api.together.xyz/v1"


def build_client(config: Dict) -> Optional[OpenAI]:
    """
    OpenAI-compatible client for the configured backend, or None when the
    backend is heuristic or its API key is not set.
    """
    backend = config.get("backend", "heuristic")
    timeout = config.get("timeout", 30.0)
    if backend == "together" and os.getenv("TOGETHER_API_KEY"):
        # Together.ai uses OpenAI-compatible API
        return OpenAI(api_key=os.getenv("TOGETHER_API_KEY"), base_url=TOGETHER_BASE_URL, timeout=timeout)
    if backend == "openai" and os.getenv("OPENAI_API_KEY"):
        return OpenAI(timeout=timeout)
    if backend in LLM_BACKENDS:
        logger.warning("No API key for %s backend; judgment calls will be unavailable", backend)
    return None


def extract_json(text: str) -> Dict:
    """Parse the first JSON object in a model response, tolerating prose around it."""
    if not text:
        return {}
    try:
        data = json.loads(text)
        return data if isinstance(data, dict) else {}
    except json.JSONDecodeError:
        pass

    start = text.find("{")
    if start == -1:
        return {}
    depth = 0
    for i in range(start, len(text)):
        if text[i] == "{":
            depth += 1
        elif text[i] == "}":
            depth -= 1
            if depth == 0:
                try:
                    data = json.loads(text[start : i + 1])
                except json.JSONDecodeError:
                    return {}
                return data if isinstance(data, dict) else {}
    return {}


class LLMAgent:
    """
    Shared plumbing for the judgment agents: backend selection, the chat
    completion call and token accounting.
    """

    purpose = "judgment"
    default_model = "Qwen/Qwen2.5-7B-Instruct-Turbo"

    def __init__(self, config: Dict, cost_tracker=None, client=None):
        self.config = config
        self.cost_tracker = cost_tracker
        self.backend = self.config.get("backend", "heuristic")
        self._client = client if client is not None else build_client(config)

    @property
    def uses_llm(self) -> bool:
        return self.backend in LLM_BACKENDS

    def _complete(self, messages: List[Dict[str, str]]) -> str:
        if self._client is None:
            raise RuntimeError(f"{self.backend} backend is not configured")

        model = self.config.get("model", self.default_model)
        response = self._client.chat.completions.create(
            model=model,
            messages=messages,
            max_tokens=self.config.get("max_tokens", 256),
            temperature=self.config.get("temperature", 0.4),
        )
        usage = getattr(response, "usage", None)
        if self.cost_tracker and usage is not None:
            self.cost_tracker.record_call(
                model=model,
                purpose=self.purpose,
                prompt_tokens=getattr(usage, "prompt_tokens", 0) or 0,
                completion_tokens=getattr(usage, "completion_tokens", 0) or 0,
                total_tokens=getattr(usage, "total_tokens", None),
            )
        return response.choices[0].message.content or ""
