from __future__ import annotations

from typing import List, Optional

from whispr.errors import NotFound
from whispr.state.document_store import DocumentStore
from whispr.state.models import Whisper

WHISPERS = "whispers"

# Stored field names for the attributes moderators may change.
MUTABLE_FIELDS = {"label": "label", "hidden": "hidden", "reply": "reply"}


class WhisperStore:
    """
    Owns the current moderation state of each whisper.
    Content, author and timestamps are write-once; label, hidden and reply
    can be changed through update().
    """

    def __init__(self, store: DocumentStore):
        self.store = store

    def path(self, whisper_id: str) -> str:
        return f"{WHISPERS}/{whisper_id}"

    def create(self, whisper: Whisper) -> Whisper:
        self.store.set(WHISPERS, whisper.id, whisper.to_dict())
        return whisper

    def get(self, whisper_id: str) -> Optional[Whisper]:
        data = self.store.get(WHISPERS, whisper_id)
        return Whisper.from_dict(data) if data else None

    def require(self, whisper_id: str) -> Whisper:
        whisper = self.get(whisper_id)
        if whisper is None:
            raise NotFound(WHISPERS, whisper_id)
        return whisper

    def update(self, whisper_id: str, **fields) -> None:
        unknown = set(fields) - set(MUTABLE_FIELDS)
        if unknown:
            raise ValueError(f"Whisper fields are immutable: {sorted(unknown)}")
        self.store.update(
            WHISPERS,
            whisper_id,
            {MUTABLE_FIELDS[name]: value for name, value in fields.items()},
        )

    def list_visible(self) -> List[Whisper]:
        """Public feed: newest first, hidden whispers excluded."""
        docs = self.store.query(WHISPERS, where={"hidden": False}, order_by="createdAt", descending=True)
        return [Whisper.from_dict(d) for d in docs]

    def list_all(self) -> List[Whisper]:
        """Moderator view: newest first, hidden whispers included."""
        docs = self.store.query(WHISPERS, order_by="createdAt", descending=True)
        return [Whisper.from_dict(d) for d in docs]
