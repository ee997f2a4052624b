"""Invite tokens and the session → token link."""
from __future__ import annotations

from typing import Optional

from agents.types import InviteRecord

from .kv import kv_get, kv_set


def save_invite(invite: InviteRecord) -> None:
    """Store the invite and index it by session id."""

    kv_set(f"invite:{invite.token}", invite.model_dump(mode="json"))
    kv_set(f"session_invite:{invite.session_id}", {"token": invite.token})


def get_invite(token: str) -> Optional[InviteRecord]:
    data = kv_get(f"invite:{token}")
    return InviteRecord.model_validate(data) if data is not None else None


def get_invite_for_session(session_id: str) -> Optional[str]:
    data = kv_get(f"session_invite:{session_id}")
    if not data:
        return None
    return data.get("token")
