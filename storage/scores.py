"""Persistence helpers for score records."""
from __future__ import annotations

from typing import Optional

from agents.types import ScoreRecord

from .kv import kv_get, kv_set

PREFIX = "score:"


def save_score(record: ScoreRecord) -> None:
    kv_set(f"{PREFIX}{record.token}", record.model_dump(mode="json"))


def get_score(token: str) -> Optional[ScoreRecord]:
    data = kv_get(f"{PREFIX}{token}")
    return ScoreRecord.model_validate(data) if data is not None else None
