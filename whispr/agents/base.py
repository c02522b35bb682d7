from __future__ import annotations

from dataclasses import dataclass


@dataclass
class ClassificationResult:
    label: str  # normal | stressed | need_help
    confidence: float


@dataclass
class ConverseResult:
    reply: str
    escalate: bool
    degraded: bool = False  # True when the fixed apology was returned
