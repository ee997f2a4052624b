"""Persistence helpers for roleplay sessions."""
from __future__ import annotations

from typing import Optional

from funnel.state import Session

from .kv import kv_get, kv_set


def _key(session_id: str) -> str:
    return f"session:{session_id}"


def save_session(session: Session) -> None:
    kv_set(_key(session.id), session.to_record())


def get_session(session_id: str) -> Optional[Session]:
    """Load a stored session or ``None``."""

    data = kv_get(_key(session_id))
    if data is None:
        return None
    return Session.model_validate(data)
