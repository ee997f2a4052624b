"""Keyed JSON store on top of SQLite: atomic per-key reads and writes."""
from __future__ import annotations

import datetime as dt
import json
import sqlite3
from typing import Any, List, Optional, Tuple

from services.errors import DependencyFailure

from .sqlite import get_conn


def _now() -> str:
    return dt.datetime.now(dt.timezone.utc).isoformat()


def _escape_like(prefix: str) -> str:
    return prefix.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def kv_get(key: str) -> Optional[Any]:
    """Return the decoded value stored under ``key`` or ``None``."""

    try:
        with get_conn() as conn:
            row = conn.execute("SELECT value FROM kv_store WHERE key = ?", (key,)).fetchone()
    except sqlite3.Error as exc:
        raise DependencyFailure(f"store read failed for {key}") from exc
    if row is None:
        return None
    return json.loads(row["value"])


def kv_set(key: str, value: Any) -> None:
    """Insert or replace ``key``; last write wins."""

    try:
        with get_conn() as conn:
            conn.execute(
                """INSERT INTO kv_store (key, value, updated_at) VALUES (?, ?, ?)
                   ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at""",
                (key, json.dumps(value, ensure_ascii=False), _now()),
            )
    except sqlite3.Error as exc:
        raise DependencyFailure(f"store write failed for {key}") from exc


def kv_set_if_absent(key: str, value: Any) -> bool:
    """Insert ``key`` only when missing. Returns ``True`` when this call wrote it."""

    try:
        with get_conn() as conn:
            cur = conn.execute(
                "INSERT OR IGNORE INTO kv_store (key, value, updated_at) VALUES (?, ?, ?)",
                (key, json.dumps(value, ensure_ascii=False), _now()),
            )
            return cur.rowcount == 1
    except sqlite3.Error as exc:
        raise DependencyFailure(f"store write failed for {key}") from exc


def kv_delete(key: str) -> bool:
    try:
        with get_conn() as conn:
            cur = conn.execute("DELETE FROM kv_store WHERE key = ?", (key,))
            return cur.rowcount > 0
    except sqlite3.Error as exc:
        raise DependencyFailure(f"store delete failed for {key}") from exc


def kv_list_prefix(prefix: str) -> List[Tuple[str, Any]]:
    """Return ``(key, value)`` pairs whose key starts with ``prefix``, ordered by key."""

    try:
        with get_conn() as conn:
            rows = conn.execute(
                "SELECT key, value FROM kv_store WHERE key LIKE ? ESCAPE '\\' ORDER BY key",
                (_escape_like(prefix) + "%",),
            ).fetchall()
    except sqlite3.Error as exc:
        raise DependencyFailure(f"store scan failed for {prefix}") from exc
    return [(row["key"], json.loads(row["value"])) for row in rows]


def kv_delete_prefix(prefix: str) -> int:
    try:
        with get_conn() as conn:
            cur = conn.execute(
                "DELETE FROM kv_store WHERE key LIKE ? ESCAPE '\\'",
                (_escape_like(prefix) + "%",),
            )
            return int(cur.rowcount)
    except sqlite3.Error as exc:
        raise DependencyFailure(f"store delete failed for {prefix}") from exc


__all__ = ["kv_delete", "kv_delete_prefix", "kv_get", "kv_list_prefix", "kv_set", "kv_set_if_absent"]
