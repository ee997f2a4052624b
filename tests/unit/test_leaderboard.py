import datetime as dt

import pytest

from agents.types import LeaderboardEntry
from services.errors import InvalidInputError
from services.leaderboard import list_leaderboard, query_leaderboard
from storage.leaderboard import add_to_leaderboard_index, list_leaderboard_index

NOW = dt.datetime(2026, 10, 19, 12, 0, tzinfo=dt.timezone.utc)


def _entry(token: str, score: int, age: dt.timedelta, **extra) -> LeaderboardEntry:
    return LeaderboardEntry(
        token=token,
        score=score,
        grade="A" if score >= 90 else "C",
        created_at=(NOW - age).isoformat(),
        **extra,
    )


def test_ties_break_by_most_recent_completion():
    entries = [
        _entry("low", 80, dt.timedelta(hours=1)),
        _entry("older", 95, dt.timedelta(hours=5)),
        _entry("newer", 95, dt.timedelta(hours=2)),
    ]
    page = list_leaderboard(entries, now=NOW)
    assert [e.token for e in page.entries] == ["newer", "older", "low"]


def test_24h_window_boundary_is_inclusive():
    entries = [
        _entry("edge", 70, dt.timedelta(hours=24)),
        _entry("stale", 99, dt.timedelta(hours=24, seconds=1)),
    ]
    page = list_leaderboard(entries, range_="24h", now=NOW)
    assert [e.token for e in page.entries] == ["edge"]
    assert page.total_matched == 1
    assert page.total_stored == 2
    assert page.range_used == "24h"


def test_default_range_is_seven_days():
    entries = [_entry("recent", 60, dt.timedelta(days=6)), _entry("old", 90, dt.timedelta(days=8))]
    page = list_leaderboard(entries, now=NOW)
    assert page.range_used == "7d"
    assert [e.token for e in page.entries] == ["recent"]
    assert len(list_leaderboard(entries, range_="all", now=NOW).entries) == 2


def test_filters_apply_before_truncation():
    entries = [_entry(f"a{i}", 50 + i, dt.timedelta(hours=i + 1), conference_id="A") for i in range(3)]
    entries += [_entry(f"b{i}", 90 + i, dt.timedelta(hours=i + 1), conference_id="B") for i in range(2)]
    page = list_leaderboard(entries, conference_id="A", limit=2, now=NOW)
    assert [e.token for e in page.entries] == ["a2", "a1"]
    assert page.total_matched == 3
    assert page.limit_used == 2
    assert page.insights.activity.sessions_completed == 3


def test_job_title_filter_is_case_insensitive():
    entries = [
        _entry("sre", 70, dt.timedelta(hours=1), job_title="Site Reliability Engineer"),
        _entry("pm", 80, dt.timedelta(hours=1), job_title="Product Manager"),
    ]
    page = list_leaderboard(entries, job_title="site reliability ENGINEER", now=NOW)
    assert [e.token for e in page.entries] == ["sre"]


def test_limit_defaults_caps_and_validates():
    entries = [_entry(f"e{i}", i, dt.timedelta(minutes=i + 1)) for i in range(30)]
    assert list_leaderboard(entries, now=NOW).limit_used == 20
    assert len(list_leaderboard(entries, now=NOW).entries) == 20
    assert list_leaderboard(entries, limit=500, now=NOW).limit_used == 200
    with pytest.raises(InvalidInputError):
        list_leaderboard(entries, limit=0, now=NOW)
    with pytest.raises(InvalidInputError):
        list_leaderboard(entries, range_="90d", now=NOW)


def test_index_dedupes_by_token_and_caps():
    add_to_leaderboard_index(_entry("t1", 50, dt.timedelta(hours=1)))
    add_to_leaderboard_index(_entry("t2", 60, dt.timedelta(hours=1)))
    add_to_leaderboard_index(_entry("t1", 75, dt.timedelta(minutes=5)))
    stored = list_leaderboard_index()
    assert [e.token for e in stored] == ["t1", "t2"]
    assert stored[0].score == 75

    add_to_leaderboard_index(_entry("t3", 10, dt.timedelta(hours=1)), max_size=2)
    assert [e.token for e in list_leaderboard_index()] == ["t3", "t1"]


def test_query_reads_persisted_index():
    add_to_leaderboard_index(_entry("t1", 88, dt.timedelta(hours=1)))
    page = query_leaderboard(range_="all")
    assert page.entries[0].token == "t1"
    assert page.total_stored == 1
