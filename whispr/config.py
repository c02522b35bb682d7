from __future__ import annotations

import json
import os
from pathlib import Path
from typing import List

import yaml
from pydantic import BaseModel, Field


class JudgmentConfig(BaseModel):
    backend: str = "heuristic"  # heuristic | openai | together
    model: str = "Qwen/Qwen2.5-7B-Instruct-Turbo"
    max_tokens: int = 256
    temperature: float = 0.4
    timeout: float = 30.0  # seconds, passed to the LLM client
    history_window: int = 20  # chat turns included in the prompt


class StoreConfig(BaseModel):
    backend: str = "memory"  # memory | json
    path: Path = Path("data/whispr_store.json")


class ModerationConfig(BaseModel):
    min_whisper_length: int = 5
    admin_ids: List[str] = Field(default_factory=list)
    audit_log_limit: int = 50


class DeferredConfig(BaseModel):
    max_pending_failures: int = 100
    writer_workers: int = 4


class AppConfig(BaseModel):
    classifier: JudgmentConfig = Field(default_factory=lambda: JudgmentConfig(temperature=0.0, max_tokens=64))
    converse: JudgmentConfig = Field(default_factory=JudgmentConfig)
    reply: JudgmentConfig = Field(default_factory=lambda: JudgmentConfig(temperature=0.7))
    store: StoreConfig = Field(default_factory=StoreConfig)
    moderation: ModerationConfig = Field(default_factory=ModerationConfig)
    deferred: DeferredConfig = Field(default_factory=DeferredConfig)
    log_level: str = "INFO"

    @classmethod
    def from_yaml(cls, path: Path) -> "AppConfig":
        with path.open("r", encoding="utf-8") as f:
            payload = yaml.safe_load(f) or {}
        return cls.model_validate(payload)

    def to_json(self) -> str:
        return json.dumps(self.model_dump(mode="json"), indent=2)

    def all_admin_ids(self) -> List[str]:
        """Configured moderators plus any listed in WHISPR_ADMIN_IDS."""
        extra = [a.strip() for a in os.getenv("WHISPR_ADMIN_IDS", "").split(",") if a.strip()]
        return list(dict.fromkeys([*self.moderation.admin_ids, *extra]))


def load_config(path: str | Path | None = None) -> AppConfig:
    if path is None:
        return AppConfig()
    path = Path(path)
    return AppConfig.from_yaml(path)
