from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Dict, List


@dataclass
class JudgmentCall:
    """Token usage of one LLM judgment call."""
    model: str
    purpose: str  # classify | converse | reply
    prompt_tokens: int
    completion_tokens: int
    total_tokens: int
    cost: float


class CostTracker:
    """
    Tracks token spend of the judgment capability, by model and by purpose.
    Prices are per 1K tokens (input + output combined) and approximate.
    Safe to share between the request threads.
    """

    PRICING = {
        "Qwen/Qwen2.5-7B-Instruct-Turbo": 0.0002,
        "meta-llama/Llama-3.3-70B-Instruct-Turbo": 0.0007,
        "gpt-4o-mini": 0.0004,
        "default": 0.0005,
    }

    def __init__(self):
        self.calls: List[JudgmentCall] = []
        self._lock = threading.Lock()

    def price_for(self, model: str) -> float:
        if model in self.PRICING:
            return self.PRICING[model]
        name = model.lower()
        if "7b" in name or "mini" in name:
            return self.PRICING["Qwen/Qwen2.5-7B-Instruct-Turbo"]
        if "70b" in name:
            return self.PRICING["meta-llama/Llama-3.3-70B-Instruct-Turbo"]
        return self.PRICING["default"]

    def record_call(
        self,
        model: str,
        purpose: str,
        prompt_tokens: int = 0,
        completion_tokens: int = 0,
        total_tokens: int | None = None,
    ) -> float:
        """Record a call and return its cost."""
        if total_tokens is None:
            total_tokens = prompt_tokens + completion_tokens
        cost = (total_tokens / 1000.0) * self.price_for(model)
        with self._lock:
            self.calls.append(
                JudgmentCall(
                    model=model,
                    purpose=purpose,
                    prompt_tokens=prompt_tokens,
                    completion_tokens=completion_tokens,
                    total_tokens=total_tokens,
                    cost=cost,
                )
            )
        return cost

    def get_stats(self) -> Dict:
        with self._lock:
            calls = list(self.calls)

        by_model: Dict[str, Dict] = {}
        by_purpose: Dict[str, Dict] = {}
        for call in calls:
            for bucket, key in ((by_model, call.model), (by_purpose, call.purpose)):
                stats = bucket.setdefault(key, {"calls": 0, "tokens": 0, "cost": 0.0})
                stats["calls"] += 1
                stats["tokens"] += call.total_tokens
                stats["cost"] += call.cost

        total_cost = sum(c.cost for c in calls)
        for bucket in (by_model, by_purpose):
            for stats in bucket.values():
                stats["cost"] = round(stats["cost"], 4)

        return {
            "total_calls": len(calls),
            "total_tokens": sum(c.total_tokens for c in calls),
            "total_cost": round(total_cost, 4),
            "by_model": by_model,
            "by_purpose": by_purpose,
        }

    def reset(self) -> None:
        with self._lock:
            self.calls.clear()
