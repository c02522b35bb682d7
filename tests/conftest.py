from __future__ import annotations

from types import SimpleNamespace
from typing import Callable, Iterable, List, Optional

import pytest

from whispr.config import AppConfig, ModerationConfig
from whispr.errors import PermissionDenied
from whispr.pipeline.service import build_service
from whispr.state.document_store import InMemoryDocumentStore
from whispr.utils.deferred import DeferredErrorChannel

ADMIN = "admin@whispr.com"


class ScriptedClient:
    """Stands in for an OpenAI client: returns scripted contents in order, or raises."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests: List[dict] = []
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._create))

    def _create(self, **kwargs):
        self.requests.append(kwargs)
        item = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(item, BaseException):
            raise item
        return SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content=item))],
            usage=SimpleNamespace(prompt_tokens=40, completion_tokens=10, total_tokens=50),
        )


class DenyingStore(InMemoryDocumentStore):
    """In-memory store whose access policy rejects writes to some collections."""

    def __init__(self, deny: Iterable[str] = ()):
        super().__init__()
        self.deny = set(deny)

    def _check(self, collection: str, doc_id: str, operation: str) -> None:
        if collection in self.deny:
            raise PermissionDenied(f"{collection}/{doc_id}", operation)

    def set(self, collection, doc_id, data):
        self._check(collection, doc_id, "create")
        super().set(collection, doc_id, data)

    def update(self, collection, doc_id, fields):
        self._check(collection, doc_id, "update")
        super().update(collection, doc_id, fields)

    def append(self, collection, doc_id, field, items):
        self._check(collection, doc_id, "update")
        super().append(collection, doc_id, field, items)


@pytest.fixture
def llm_config() -> dict:
    return {"backend": "openai", "model": "test-model", "max_tokens": 64, "temperature": 0.0, "history_window": 4}


@pytest.fixture
def scripted_client() -> Callable[..., ScriptedClient]:
    return ScriptedClient


@pytest.fixture
def channel():
    ch = DeferredErrorChannel(maxsize=50).start()
    yield ch
    ch.close()


@pytest.fixture
def failures(channel) -> list:
    received: list = []
    channel.subscribe(received.append)
    return received


@pytest.fixture
def make_service(channel):
    created = []

    def _make(store: Optional[InMemoryDocumentStore] = None, **agents):
        config = AppConfig(moderation=ModerationConfig(admin_ids=[ADMIN]))
        service = build_service(
            config,
            store=store if store is not None else InMemoryDocumentStore(),
            channel=channel,
            **agents,
        )
        created.append(service)
        return service

    yield _make
    for service in created:
        service.close()


@pytest.fixture
def service(make_service):
    return make_service()
