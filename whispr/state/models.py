from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

LABELS = ("normal", "stressed", "need_help")
ACTION_TYPES = ("re-label", "hide", "unhide", "reply")


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="microseconds")


def new_id() -> str:
    return uuid.uuid4().hex


@dataclass
class Whisper:
    """A moderated post. Only label, hidden and reply ever change after creation."""
    id: str
    author_id: str
    content: str
    created_at: str
    label: str
    confidence: float
    hidden: bool = False
    reply: Optional[str] = None

    def __post_init__(self):
        if self.label not in LABELS:
            raise ValueError(f"Unknown label: {self.label!r}")
        if self.confidence is None or not 0.0 <= float(self.confidence) <= 1.0:
            raise ValueError(f"Confidence out of range: {self.confidence!r}")

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "authorId": self.author_id,
            "content": self.content,
            "createdAt": self.created_at,
            "label": self.label,
            "confidence": self.confidence,
            "hidden": self.hidden,
        }
        if self.reply is not None:
            data["reply"] = self.reply
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Whisper":
        return cls(
            id=data["id"],
            author_id=data.get("authorId", ""),
            content=data.get("content", ""),
            created_at=data.get("createdAt", ""),
            label=data["label"],
            confidence=float(data["confidence"]),
            hidden=bool(data.get("hidden", False)),
            reply=data.get("reply"),
        )


@dataclass
class AdminAction:
    """One audit-log entry. Written once, never changed."""
    id: str
    admin_id: str
    target_id: str
    type: str
    timestamp: str
    details: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if self.type not in ACTION_TYPES:
            raise ValueError(f"Unknown action type: {self.type!r}")

    def describe(self) -> str:
        if self.type == "re-label":
            return f'Changed label from "{self.details.get("from")}" to "{self.details.get("to")}".'
        if self.type == "hide":
            return "Hid the post from public view."
        if self.type == "unhide":
            return "Made the post public again."
        return "Generated an AI reply."

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "adminId": self.admin_id,
            "targetId": self.target_id,
            "type": self.type,
            "timestamp": self.timestamp,
            "details": dict(self.details),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AdminAction":
        return cls(
            id=data["id"],
            admin_id=data.get("adminId", ""),
            target_id=data.get("targetId", ""),
            type=data["type"],
            timestamp=data.get("timestamp", ""),
            details=dict(data.get("details") or {}),
        )


@dataclass
class ChatTurn:
    sender: str
    text: str
    timestamp: str = field(default_factory=utc_now)

    def to_dict(self) -> Dict[str, str]:
        return {"sender": self.sender, "text": self.text, "timestamp": self.timestamp}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChatTurn":
        return cls(sender=data["sender"], text=data.get("text", ""), timestamp=data.get("timestamp", ""))


@dataclass
class ChatSession:
    """Conversation state for one anonymous identity. Escalation is sticky."""
    id: str
    user_id: str
    created_at: str = field(default_factory=utc_now)
    messages: List[ChatTurn] = field(default_factory=list)
    escalated: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "userId": self.user_id,
            "createdAt": self.created_at,
            "messages": [m.to_dict() for m in self.messages],
            "escalated": self.escalated,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChatSession":
        return cls(
            id=data["id"],
            user_id=data.get("userId", ""),
            created_at=data.get("createdAt", ""),
            messages=[ChatTurn.from_dict(m) for m in data.get("messages", [])],
            escalated=bool(data.get("escalated", False)),
        )
