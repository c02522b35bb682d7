from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

from whispr.actions.executor import ActionExecutor, ActionResult
from whispr.agents import ContentClassifier, EscalationDetector, ReplyGenerator
from whispr.audit.recorder import AuditRecorder
from whispr.auth import ModeratorDirectory
from whispr.config import AppConfig
from whispr.errors import NotFound, StoreError, ValidationError
from whispr.state.document_store import DocumentStore, InMemoryDocumentStore, JsonFileDocumentStore
from whispr.state.models import AdminAction, ChatSession, ChatTurn, Whisper, new_id, utc_now
from whispr.state.session_store import CHAT_SESSIONS, ChatSessionStore
from whispr.state.whisper_store import WhisperStore
from whispr.utils.background import BackgroundWriter
from whispr.utils.cost_tracker import CostTracker
from whispr.utils.deferred import DeferredErrorChannel, DeferredFailure, default_channel

logger = logging.getLogger(__name__)


@dataclass
class ChatTurnResult:
    reply: str
    escalate: bool  # this turn's judgment
    escalated: bool  # sticky session flag, drives the helpline panel
    degraded: bool = False


class WhisprService:
    """
    Entry points used by the web, CLI or server layer.

    Whisper submission, chat-session persistence and all reads are
    synchronous. Moderator actions are fire-and-forget. Failed moderator and
    chat-session writes surface on the deferred-error channel only.
    """

    def __init__(
        self,
        config: AppConfig,
        store: DocumentStore,
        classifier: ContentClassifier,
        detector: EscalationDetector,
        executor: ActionExecutor,
        moderators: ModeratorDirectory,
        writer: BackgroundWriter,
        channel: DeferredErrorChannel,
        cost_tracker: Optional[CostTracker] = None,
    ):
        self.config = config
        self.store = store
        self.whispers = WhisperStore(store)
        self.audit = AuditRecorder(store)
        self.sessions = ChatSessionStore(store)
        self.classifier = classifier
        self.detector = detector
        self.executor = executor
        self.moderators = moderators
        self.writer = writer
        self.channel = channel
        self.cost_tracker = cost_tracker

    # -- public -------------------------------------------------------------

    def submit_whisper(self, author_id: str, content: str) -> Whisper:
        if not author_id:
            raise ValidationError("Missing author identity.")
        content = (content or "").strip()
        if len(content) < self.config.moderation.min_whisper_length:
            raise ValidationError(
                f"Whisper is too short (minimum {self.config.moderation.min_whisper_length} characters)."
            )

        # ClassificationUnavailable propagates: nothing is stored without a label.
        result = self.classifier.classify(content)
        whisper = Whisper(
            id=new_id(),
            author_id=author_id,
            content=content,
            created_at=utc_now(),
            label=result.label,
            confidence=result.confidence,
        )
        self.whispers.create(whisper)
        logger.info("Stored whisper %s label=%s confidence=%.2f", whisper.id, whisper.label, whisper.confidence)
        return whisper

    def send_chat_turn(
        self, identity_id: str, message: str, history: Optional[Sequence[ChatTurn]] = None
    ) -> ChatTurnResult:
        if not identity_id:
            raise ValidationError("Missing identity.")
        if not message or not message.strip():
            raise ValidationError("Message is empty.")

        try:
            session = self.sessions.find(identity_id)
        except StoreError as e:
            logger.warning("Could not load chat session for %s: %s", identity_id, e)
            session = None
        if history is None:
            history = session.messages if session else []

        result = self.detector.converse(message, history, identity_id)
        turns = [ChatTurn(sender="user", text=message), ChatTurn(sender="ai", text=result.reply)]
        stored = self._persist_exchange(identity_id, session, turns, result.escalate)

        escalated = result.escalate or bool(session and session.escalated) or bool(stored and stored.escalated)
        return ChatTurnResult(
            reply=result.reply,
            escalate=result.escalate,
            escalated=escalated,
            degraded=result.degraded,
        )

    def list_visible_whispers(self) -> List[Whisper]:
        return self.whispers.list_visible()

    # -- moderator ----------------------------------------------------------

    def list_all_whispers_for_moderator(self, identity: str) -> List[Whisper]:
        self.moderators.verify_moderator(identity)
        return self.whispers.list_all()

    def list_audit_log(self, identity: str, limit: Optional[int] = None) -> List[AdminAction]:
        self.moderators.verify_moderator(identity)
        return self.audit.list(limit=limit if limit is not None else self.config.moderation.audit_log_limit)

    def relabel(self, identity: str, whisper_id: str, new_label: str) -> ActionResult:
        admin_id = self.moderators.verify_moderator(identity)
        return self.executor.relabel(admin_id, whisper_id, new_label)

    def toggle_visibility(self, identity: str, whisper_id: str) -> ActionResult:
        admin_id = self.moderators.verify_moderator(identity)
        return self.executor.toggle_visibility(admin_id, whisper_id)

    def generate_reply(self, identity: str, whisper_id: str) -> ActionResult:
        admin_id = self.moderators.verify_moderator(identity)
        return self.executor.generate_reply(admin_id, whisper_id)

    # -- lifecycle ----------------------------------------------------------

    def flush(self) -> None:
        """Wait for pending background writes and the failures they reported."""
        self.writer.drain()
        self.channel.drain()

    def close(self) -> None:
        self.writer.shutdown()

    # -- internal -----------------------------------------------------------

    def _persist_exchange(
        self, identity_id: str, session: Optional[ChatSession], turns: List[ChatTurn], escalate: bool
    ) -> Optional[ChatSession]:
        """
        Write the exchange before the turn returns, so the next turn from the
        same identity sees it. A rejected write is published on the
        deferred-error channel and never reaches the chatting user.
        """
        operation = "update" if session else "create"
        path = self.sessions.path(session.id) if session else CHAT_SESSIONS
        try:
            if session is None:
                session = self.sessions.create(identity_id)
                operation, path = "update", self.sessions.path(session.id)
            self.sessions.append_turns(session.id, turns)
            if escalate:
                self.sessions.mark_escalated(session.id)
            return self.sessions.get(session.id)
        except (StoreError, NotFound) as e:
            logger.warning("Chat session %s of %s failed: %s", operation, path, e)
            self.channel.publish(
                DeferredFailure(
                    path=path,
                    operation=operation,
                    request_data={"userId": identity_id, "escalate": escalate},
                    error=e,
                )
            )
            return None


def build_store(config: AppConfig) -> DocumentStore:
    if config.store.backend == "json":
        return JsonFileDocumentStore(config.store.path)
    if config.store.backend == "memory":
        return InMemoryDocumentStore()
    raise ValueError(f"Unknown store backend: {config.store.backend}")


def build_service(
    config: Optional[AppConfig] = None,
    store: Optional[DocumentStore] = None,
    channel: Optional[DeferredErrorChannel] = None,
    classifier: Optional[ContentClassifier] = None,
    detector: Optional[EscalationDetector] = None,
    replies: Optional[ReplyGenerator] = None,
) -> WhisprService:
    config = config or AppConfig()
    store = store if store is not None else build_store(config)
    channel = channel if channel is not None else default_channel(config.deferred.max_pending_failures)
    cost_tracker = CostTracker()

    classifier = classifier or ContentClassifier(config.classifier.model_dump(), cost_tracker=cost_tracker)
    detector = detector or EscalationDetector(config.converse.model_dump(), cost_tracker=cost_tracker)
    replies = replies or ReplyGenerator(config.reply.model_dump(), cost_tracker=cost_tracker)

    writer = BackgroundWriter(channel, max_workers=config.deferred.writer_workers)
    executor = ActionExecutor(WhisperStore(store), AuditRecorder(store), replies, writer)
    return WhisprService(
        config=config,
        store=store,
        classifier=classifier,
        detector=detector,
        executor=executor,
        moderators=ModeratorDirectory(config.all_admin_ids()),
        writer=writer,
        channel=channel,
        cost_tracker=cost_tracker,
    )
