import sqlite3

from config.settings import settings
from storage.kv import kv_delete, kv_delete_prefix, kv_get, kv_list_prefix, kv_set, kv_set_if_absent
from storage.migrate import migrate


def test_migrate_creates_kv_table():
    migrate(settings.DB_PATH)
    conn = sqlite3.connect(settings.DB_PATH)
    try:
        tables = {row[0] for row in conn.execute("SELECT name FROM sqlite_master WHERE type='table'")}
    finally:
        conn.close()
    assert "kv_store" in tables


def test_set_get_and_last_write_wins():
    assert kv_get("missing") is None
    kv_set("k", {"a": 1})
    kv_set("k", {"a": 2})
    assert kv_get("k") == {"a": 2}


def test_set_if_absent_keeps_first_value():
    assert kv_set_if_absent("once", "first") is True
    assert kv_set_if_absent("once", "second") is False
    assert kv_get("once") == "first"


def test_prefix_scan_escapes_wildcards():
    kv_set("a_b:1", 1)
    kv_set("axb:1", 2)
    kv_set("a_b:2", 3)
    assert kv_list_prefix("a_b:") == [("a_b:1", 1), ("a_b:2", 3)]
    assert kv_delete_prefix("a_b:") == 2
    assert kv_get("axb:1") == 2


def test_delete_reports_presence():
    kv_set("gone", True)
    assert kv_delete("gone") is True
    assert kv_delete("gone") is False
