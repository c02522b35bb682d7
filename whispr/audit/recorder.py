from __future__ import annotations

from dataclasses import replace
from typing import Any, Dict, List, Optional

from whispr.state.document_store import DocumentStore
from whispr.state.models import AdminAction, new_id, utc_now

ADMIN_ACTIONS = "adminActions"


class AuditRecorder:
    """
    Append-only log of moderator actions.
    Every record() call writes exactly one new document. Retries are not
    deduplicated, so a retried attempt shows up twice.
    """

    def __init__(self, store: DocumentStore):
        self.store = store

    @property
    def path(self) -> str:
        return ADMIN_ACTIONS

    @staticmethod
    def build(admin_id: str, target_id: str, action_type: str, details: Dict[str, Any]) -> AdminAction:
        """Stamp a new action with an id and the current time."""
        return AdminAction(
            id=new_id(),
            admin_id=admin_id,
            target_id=target_id,
            type=action_type,
            timestamp=utc_now(),
            details=details,
        )

    def record(self, action: AdminAction) -> AdminAction:
        """Store a new entry and return it under the id the store assigned."""
        doc_id = self.store.add(ADMIN_ACTIONS, action.to_dict())
        return replace(action, id=doc_id)

    def list(self, limit: Optional[int] = None, target_id: Optional[str] = None) -> List[AdminAction]:
        """Newest first."""
        where = {"targetId": target_id} if target_id else None
        docs = self.store.query(ADMIN_ACTIONS, where=where, order_by="timestamp", descending=True, limit=limit)
        return [AdminAction.from_dict(d) for d in docs]
