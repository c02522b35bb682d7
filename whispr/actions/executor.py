from __future__ import annotations

from concurrent.futures import Future
from dataclasses import dataclass, field
from typing import List, Optional

from whispr.agents import ReplyGenerator
from whispr.audit.recorder import AuditRecorder
from whispr.errors import ValidationError
from whispr.state.models import LABELS, AdminAction
from whispr.state.whisper_store import WhisperStore
from whispr.utils.background import BackgroundWriter


@dataclass
class ActionResult:
    """Outcome of a moderator action as reported to the moderator."""
    action: str
    success: bool
    message: str
    whisper_id: str
    admin_id: str
    reply: Optional[str] = None
    pending: List[Future] = field(default_factory=list, repr=False)


class ActionExecutor:
    """
    Applies moderator actions to a whisper and records each attempt in the
    audit log.

    The state write and the audit write are fire-and-forget: success is
    reported as soon as they are submitted, and a write that later fails is
    only visible on the deferred-error channel. For relabel and toggle the two
    writes are independent, so the audit entry exists even when the state
    write is rejected. Reply generation writes the reply first and logs only
    once that write has landed.
    """

    def __init__(
        self,
        whispers: WhisperStore,
        audit: AuditRecorder,
        replies: ReplyGenerator,
        writer: BackgroundWriter,
    ):
        self.whispers = whispers
        self.audit = audit
        self.replies = replies
        self.writer = writer

    def relabel(self, admin_id: str, whisper_id: str, new_label: str) -> ActionResult:
        if new_label not in LABELS:
            raise ValidationError(f"Unknown label: {new_label}")
        whisper = self.whispers.require(whisper_id)

        # Same-label relabels are not special-cased; they are still logged.
        pending = [
            self._write_state(whisper_id, label=new_label),
            self._write_audit(
                self.audit.build(admin_id, whisper_id, "re-label", {"from": whisper.label, "to": new_label})
            ),
        ]
        return ActionResult(
            action="re-label",
            success=True,
            message=f'Post label updated to "{new_label}".',
            whisper_id=whisper_id,
            admin_id=admin_id,
            pending=pending,
        )

    def toggle_visibility(self, admin_id: str, whisper_id: str) -> ActionResult:
        whisper = self.whispers.require(whisper_id)
        was_hidden = whisper.hidden
        hidden = not was_hidden
        action_type = "hide" if hidden else "unhide"

        # Read-then-write without a version check: concurrent toggles are last-write-wins.
        pending = [
            self._write_state(whisper_id, hidden=hidden),
            self._write_audit(self.audit.build(admin_id, whisper_id, action_type, {"wasHidden": was_hidden})),
        ]
        return ActionResult(
            action=action_type,
            success=True,
            message=f"Post has been {'hidden' if hidden else 'made visible'}.",
            whisper_id=whisper_id,
            admin_id=admin_id,
            pending=pending,
        )

    def generate_reply(self, admin_id: str, whisper_id: str) -> ActionResult:
        whisper = self.whispers.require(whisper_id)
        # GenerationUnavailable propagates before anything is written.
        reply = self.replies.generate(whisper.content)

        action = self.audit.build(admin_id, whisper_id, "reply", {"generatedReply": reply})
        # Resolves with the chained audit write, or False when the reply write fails first.
        audit_logged: Future = Future()

        def write_then_log():
            try:
                self.whispers.update(whisper_id, reply=reply)
            except Exception:
                audit_logged.set_result(False)
                raise
            self._write_audit(action).add_done_callback(lambda f: audit_logged.set_result(f.result()))

        pending = [
            self.writer.submit(
                write_then_log,
                path=self.whispers.path(whisper_id),
                operation="update",
                request_data={"reply": reply},
            ),
            audit_logged,
        ]
        return ActionResult(
            action="reply",
            success=True,
            message="AI reply has been generated and attached.",
            whisper_id=whisper_id,
            admin_id=admin_id,
            reply=reply,
            pending=pending,
        )

    def _write_state(self, whisper_id: str, **fields) -> Future:
        return self.writer.submit(
            lambda: self.whispers.update(whisper_id, **fields),
            path=self.whispers.path(whisper_id),
            operation="update",
            request_data=dict(fields),
        )

    def _write_audit(self, action: AdminAction) -> Future:
        return self.writer.submit(
            lambda: self.audit.record(action),
            path=self.audit.path,
            operation="create",
            request_data={"type": action.type, "targetId": action.target_id},
        )
