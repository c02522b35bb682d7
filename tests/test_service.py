from __future__ import annotations

import time

import pytest

from conftest import ADMIN, DenyingStore
from whispr.agents import APOLOGY_REPLY, ContentClassifier, EscalationDetector
from whispr.errors import ClassificationUnavailable, ValidationError
from whispr.state.document_store import InMemoryDocumentStore
from whispr.state.models import LABELS


class SlowUpdateStore(InMemoryDocumentStore):
    """Widens the gap between reading a session and writing it back."""

    def update(self, collection, doc_id, fields):
        time.sleep(0.05)
        super().update(collection, doc_id, fields)

    def append(self, collection, doc_id, field, items):
        time.sleep(0.05)
        super().append(collection, doc_id, field, items)


class CountingClassifier(ContentClassifier):
    def __init__(self):
        super().__init__({"backend": "heuristic"})
        self.calls = 0

    def classify(self, content):
        self.calls += 1
        return super().classify(content)


def test_submit_sets_label_and_confidence_together(service) -> None:
    whisper = service.submit_whisper("anon-1", "  Finally finished my thesis draft!  ")

    stored = service.whispers.get(whisper.id)
    assert stored.content == "Finally finished my thesis draft!"
    assert stored.label in LABELS
    assert 0.0 <= stored.confidence <= 1.0
    assert stored.hidden is False
    assert stored.reply is None


@pytest.mark.parametrize("content", ["", "hey", "    hi    ", "abcd"])
def test_short_content_is_rejected_before_classification(make_service, content) -> None:
    store = InMemoryDocumentStore()
    classifier = CountingClassifier()
    service = make_service(store=store, classifier=classifier)

    with pytest.raises(ValidationError):
        service.submit_whisper("anon-1", content)

    assert classifier.calls == 0
    assert store.query("whispers") == []


def test_missing_author_is_rejected(service) -> None:
    with pytest.raises(ValidationError):
        service.submit_whisper("", "A perfectly long whisper")


def test_classification_outage_stores_nothing(make_service, llm_config, scripted_client) -> None:
    store = InMemoryDocumentStore()
    classifier = ContentClassifier(llm_config, client=scripted_client(ConnectionError("unreachable")))
    service = make_service(store=store, classifier=classifier)

    with pytest.raises(ClassificationUnavailable):
        service.submit_whisper("anon-1", "I feel fine, just checking in")

    assert store.query("whispers") == []


def test_feed_excludes_hidden_and_is_newest_first(service) -> None:
    first = service.submit_whisper("anon-1", "First whisper of the day")
    second = service.submit_whisper("anon-2", "Second whisper of the day")
    third = service.submit_whisper("anon-3", "Third whisper of the day")

    service.toggle_visibility(ADMIN, second.id)
    service.flush()

    assert [w.id for w in service.list_visible_whispers()] == [third.id, first.id]
    assert all(not w.hidden for w in service.list_visible_whispers())
    assert [w.id for w in service.list_all_whispers_for_moderator(ADMIN)] == [third.id, second.id, first.id]


def test_audit_log_limit(service) -> None:
    whisper = service.submit_whisper("anon-1", "Just a normal day here")
    for label in ("stressed", "need_help", "normal"):
        service.relabel(ADMIN, whisper.id, label)
        service.flush()

    latest = service.list_audit_log(ADMIN, limit=2)
    assert [a.details["to"] for a in latest] == ["normal", "need_help"]


def test_chat_creates_session_and_keeps_history(service) -> None:
    first = service.send_chat_turn("anon-9", "Today was okay I guess")
    service.flush()
    service.send_chat_turn("anon-9", "Work has been a lot though")
    service.flush()

    session = service.sessions.find("anon-9")
    assert first.reply
    assert [t.sender for t in session.messages] == ["user", "ai", "user", "ai"]
    assert session.messages[0].text == "Today was okay I guess"
    assert session.escalated is False


def test_escalation_is_sticky_for_the_session(service) -> None:
    crisis = service.send_chat_turn("anon-5", "I keep thinking I want to die")
    service.flush()
    calm = service.send_chat_turn("anon-5", "Thanks, talking helps a bit")
    service.flush()

    assert crisis.escalate is True
    assert calm.escalate is False
    assert calm.escalated is True
    assert service.sessions.find("anon-5").escalated is True


def test_back_to_back_turns_keep_escalation_and_every_exchange(make_service) -> None:
    service = make_service(store=SlowUpdateStore())
    service.send_chat_turn("anon-6", "Hi, first time here")

    crisis = service.send_chat_turn("anon-6", "I keep thinking I want to die")
    calm = service.send_chat_turn("anon-6", "ok thanks")
    service.flush()

    assert crisis.escalate is True
    assert calm.escalate is False
    assert calm.escalated is True
    session = service.sessions.find("anon-6")
    assert session.escalated is True
    assert [t.text for t in session.messages if t.sender == "user"] == [
        "Hi, first time here", "I keep thinking I want to die", "ok thanks",
    ]
    assert len(session.messages) == 6


def test_first_two_turns_share_one_session(service) -> None:
    first = service.send_chat_turn("anon-8", "I want to die")
    second = service.send_chat_turn("anon-8", "hello again")
    service.flush()

    assert len(service.store.query("chatSessions", where={"userId": "anon-8"})) == 1
    assert first.escalated is True
    assert second.escalated is True
    session = service.sessions.find("anon-8")
    assert session.escalated is True
    assert len(session.messages) == 4


def test_chat_survives_detector_outage(make_service, llm_config, scripted_client) -> None:
    detector = EscalationDetector(llm_config, client=scripted_client(TimeoutError("slow provider")))
    service = make_service(detector=detector)

    result = service.send_chat_turn("anon-2", "I want to die")
    service.flush()

    assert result.reply == APOLOGY_REPLY
    assert result.escalate is False
    assert result.degraded is True
    assert service.sessions.find("anon-2").messages[-1].text == APOLOGY_REPLY


def test_chat_session_write_failure_goes_to_channel(make_service, failures) -> None:
    service = make_service(store=DenyingStore(deny={"chatSessions"}))

    result = service.send_chat_turn("anon-3", "Hello there")
    service.flush()

    assert result.reply
    assert len(failures) == 1
    assert failures[0].request_data["userId"] == "anon-3"
    assert failures[0].operation == "create"
    assert service.sessions.find("anon-3") is None


@pytest.mark.parametrize("identity,message", [("", "hello"), ("anon-1", "   ")])
def test_chat_validation(service, identity, message) -> None:
    with pytest.raises(ValidationError):
        service.send_chat_turn(identity, message)


def test_end_to_end_moderation_scenario(service) -> None:
    whisper = service.submit_whisper("anon-42", "I feel so empty and alone, thinking of giving up")
    assert whisper.label == "need_help"
    assert whisper.confidence >= 0.9
    assert service.whispers.get(whisper.id).hidden is False

    service.toggle_visibility(ADMIN, whisper.id)
    service.flush()
    assert service.whispers.get(whisper.id).hidden is True
    log = service.list_audit_log(ADMIN)
    assert [(a.type, a.details) for a in log] == [("hide", {"wasHidden": False})]

    service.relabel(ADMIN, whisper.id, "stressed")
    service.flush()
    assert service.whispers.get(whisper.id).label == "stressed"
    log = service.list_audit_log(ADMIN)
    assert len(log) == 2
    assert log[0].type == "re-label"
    assert log[0].details == {"from": "need_help", "to": "stressed"}
    assert whisper.id not in [w.id for w in service.list_visible_whispers()]
