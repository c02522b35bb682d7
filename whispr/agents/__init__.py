from .base import ClassificationResult, ConverseResult
from .classifier import ContentClassifier
from .escalation import APOLOGY_REPLY, EscalationDetector
from .reply import ReplyGenerator

__all__ = [
    "APOLOGY_REPLY",
    "ClassificationResult",
    "ConverseResult",
    "ContentClassifier",
    "EscalationDetector",
    "ReplyGenerator",
]
