"""Leaderboard index: a single newest-first list keyed by invite token."""
from __future__ import annotations

from typing import List, Optional

from agents.types import LeaderboardEntry
from config.settings import settings

from .kv import kv_get, kv_set

INDEX_KEY = "scores:index"


def add_to_leaderboard_index(entry: LeaderboardEntry, max_size: Optional[int] = None) -> None:
    """Insert ``entry`` at the front, replacing any entry with the same token."""

    cap = max_size or settings.LEADERBOARD_MAX_SIZE
    existing = kv_get(INDEX_KEY) or []
    kept = [item for item in existing if item.get("token") != entry.token]
    updated = [entry.model_dump(mode="json"), *kept][:cap]
    kv_set(INDEX_KEY, updated)


def list_leaderboard_index() -> List[LeaderboardEntry]:
    return [LeaderboardEntry.model_validate(item) for item in kv_get(INDEX_KEY) or []]
