from __future__ import annotations

import pytest

from whispr.audit.recorder import AuditRecorder
from whispr.errors import NotFound
from whispr.state.document_store import InMemoryDocumentStore
from whispr.state.models import AdminAction, ChatTurn, Whisper, new_id, utc_now
from whispr.state.session_store import ChatSessionStore
from whispr.state.whisper_store import WhisperStore


def _whisper(**overrides) -> Whisper:
    fields = dict(
        id=new_id(),
        author_id="anon-1",
        content="hello world",
        created_at=utc_now(),
        label="normal",
        confidence=0.7,
    )
    fields.update(overrides)
    return Whisper(**fields)


def test_whisper_requires_valid_label_and_confidence() -> None:
    with pytest.raises(ValueError):
        _whisper(label="fine")
    with pytest.raises(ValueError):
        _whisper(confidence=1.5)
    with pytest.raises(ValueError):
        _whisper(confidence=None)


def test_whisper_store_only_updates_moderation_fields() -> None:
    whispers = WhisperStore(InMemoryDocumentStore())
    whisper = whispers.create(_whisper())

    whispers.update(whisper.id, label="stressed", hidden=True, reply="We hear you.")
    with pytest.raises(ValueError):
        whispers.update(whisper.id, content="edited")
    with pytest.raises(NotFound):
        whispers.require("missing")

    stored = whispers.get(whisper.id)
    assert (stored.label, stored.hidden, stored.reply, stored.content) == (
        "stressed", True, "We hear you.", "hello world",
    )


def test_audit_recorder_never_deduplicates() -> None:
    audit = AuditRecorder(InMemoryDocumentStore())
    action = audit.build("admin", "w1", "hide", {"wasHidden": False})

    audit.record(action)
    audit.record(AdminAction.from_dict({**action.to_dict(), "id": new_id()}))
    audit.record(audit.build("admin", "w2", "unhide", {"wasHidden": True}))

    assert len(audit.list()) == 3
    assert [a.type for a in audit.list(target_id="w1")] == ["hide", "hide"]
    assert audit.list(limit=1)[0].target_id == "w2"


def test_action_descriptions() -> None:
    relabel = AuditRecorder.build("admin", "w1", "re-label", {"from": "normal", "to": "need_help"})
    assert relabel.describe() == 'Changed label from "normal" to "need_help".'
    with pytest.raises(ValueError):
        AuditRecorder.build("admin", "w1", "delete", {})


def test_recording_the_same_action_twice_keeps_both() -> None:
    audit = AuditRecorder(InMemoryDocumentStore())
    action = audit.build("admin", "w1", "hide", {"wasHidden": False})

    first = audit.record(action)
    second = audit.record(action)

    assert first.id != second.id
    logged = audit.list()
    assert len(logged) == 2
    assert {a.id for a in logged} == {first.id, second.id}
    assert all(a.details == {"wasHidden": False} for a in logged)


def test_session_escalation_never_resets() -> None:
    sessions = ChatSessionStore(InMemoryDocumentStore())
    session = sessions.create("anon-1")

    sessions.append_turns(session.id, [ChatTurn("user", "a"), ChatTurn("ai", "b")])
    sessions.mark_escalated(session.id)
    sessions.append_turns(session.id, [ChatTurn("user", "c"), ChatTurn("ai", "d")])

    stored = sessions.find("anon-1")
    assert stored.escalated is True
    assert [t.text for t in stored.messages] == ["a", "b", "c", "d"]
    assert sessions.get_or_create("anon-1").id == session.id
    assert sessions.find("anon-2") is None
