from __future__ import annotations

from typing import Iterable, Optional

from whispr.state.document_store import DocumentStore
from whispr.state.models import ChatSession, ChatTurn, new_id

CHAT_SESSIONS = "chatSessions"


class ChatSessionStore:
    """
    One session per anonymous identity, found by lookup-or-create on userId.
    The store has no uniqueness constraint, so two concurrent first messages
    can create two sessions; find() then returns the oldest.

    Writes never rewrite the whole session: turns go through an atomic list
    append and escalation is only ever set to True.
    """

    def __init__(self, store: DocumentStore):
        self.store = store

    def path(self, session_id: str) -> str:
        return f"{CHAT_SESSIONS}/{session_id}"

    def get(self, session_id: str) -> Optional[ChatSession]:
        data = self.store.get(CHAT_SESSIONS, session_id)
        return ChatSession.from_dict(data) if data else None

    def find(self, user_id: str) -> Optional[ChatSession]:
        docs = self.store.query(CHAT_SESSIONS, where={"userId": user_id}, order_by="createdAt", limit=1)
        return ChatSession.from_dict(docs[0]) if docs else None

    def create(self, user_id: str) -> ChatSession:
        session = ChatSession(id=new_id(), user_id=user_id)
        self.store.set(CHAT_SESSIONS, session.id, session.to_dict())
        return session

    def get_or_create(self, user_id: str) -> ChatSession:
        return self.find(user_id) or self.create(user_id)

    def append_turns(self, session_id: str, turns: Iterable[ChatTurn]) -> None:
        self.store.append(CHAT_SESSIONS, session_id, "messages", [t.to_dict() for t in turns])

    def mark_escalated(self, session_id: str) -> None:
        self.store.update(CHAT_SESSIONS, session_id, {"escalated": True})
