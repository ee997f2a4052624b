"""Leaderboard queries: filter, rank and truncate the stored index."""
from __future__ import annotations

import datetime as dt
from typing import Dict, Iterable, List, Optional

from agents.types import InsightsSummary, LeaderboardEntry, LeaderboardPage, LeaderboardRange
from config.settings import settings
from funnel.state import parse_timestamp
from storage.leaderboard import list_leaderboard_index

from .errors import InvalidInputError
from .insights import compute_insights

RANGE_WINDOWS: Dict[str, Optional[dt.timedelta]] = {
    "24h": dt.timedelta(hours=24),
    "7d": dt.timedelta(days=7),
    "30d": dt.timedelta(days=30),
    "all": None,
}
DEFAULT_RANGE: LeaderboardRange = "7d"


def _parse_ts(value: str) -> Optional[dt.datetime]:
    try:
        return parse_timestamp(value)
    except (AttributeError, ValueError):
        return None


def resolve_limit(limit: Optional[int]) -> int:
    if limit is None:
        return settings.LEADERBOARD_DEFAULT_LIMIT
    if limit < 1:
        raise InvalidInputError("limit must be at least 1", field="limit")
    return min(limit, settings.LEADERBOARD_MAX_LIMIT)


def resolve_range(range_: Optional[str]) -> LeaderboardRange:
    if range_ is None:
        return DEFAULT_RANGE
    if range_ not in RANGE_WINDOWS:
        raise InvalidInputError(f"range must be one of {', '.join(RANGE_WINDOWS)}", field="range")
    return range_  # type: ignore[return-value]


def filter_entries(
    entries: Iterable[LeaderboardEntry],
    *,
    range_: LeaderboardRange = DEFAULT_RANGE,
    conference_id: Optional[str] = None,
    persona_id: Optional[str] = None,
    trainee_id: Optional[str] = None,
    job_title: Optional[str] = None,
    now: Optional[dt.datetime] = None,
) -> List[LeaderboardEntry]:
    """Entries completed inside the range window that match every given filter."""

    window = RANGE_WINDOWS[range_]
    cutoff = (now or dt.datetime.now(dt.timezone.utc)) - window if window is not None else None
    wanted_title = job_title.strip().lower() if job_title else None

    matched: List[LeaderboardEntry] = []
    for entry in entries:
        if cutoff is not None:
            completed = _parse_ts(entry.created_at)
            if completed is None or completed < cutoff:
                continue
        if conference_id and entry.conference_id != conference_id:
            continue
        if persona_id and entry.persona_id != persona_id:
            continue
        if trainee_id and entry.trainee_id != trainee_id:
            continue
        if wanted_title and (entry.job_title or "").strip().lower() != wanted_title:
            continue
        matched.append(entry)
    return matched


def rank_entries(entries: Iterable[LeaderboardEntry]) -> List[LeaderboardEntry]:
    """Highest score first; ties go to the most recent completion."""

    epoch = dt.datetime.min.replace(tzinfo=dt.timezone.utc)
    by_recency = sorted(entries, key=lambda entry: _parse_ts(entry.created_at) or epoch, reverse=True)
    return sorted(by_recency, key=lambda entry: entry.score, reverse=True)


def list_leaderboard(
    entries: List[LeaderboardEntry],
    *,
    range_: Optional[str] = None,
    conference_id: Optional[str] = None,
    persona_id: Optional[str] = None,
    trainee_id: Optional[str] = None,
    job_title: Optional[str] = None,
    limit: Optional[int] = None,
    now: Optional[dt.datetime] = None,
) -> LeaderboardPage:
    """Filter, then rank, then truncate ``entries``.

    Raises:
        InvalidInputError: If ``limit`` is below 1 or ``range_`` is unknown.
    """

    limit_used = resolve_limit(limit)
    range_used = resolve_range(range_)
    matched = filter_entries(
        entries,
        range_=range_used,
        conference_id=conference_id,
        persona_id=persona_id,
        trainee_id=trainee_id,
        job_title=job_title,
        now=now,
    )
    return LeaderboardPage(
        entries=rank_entries(matched)[:limit_used],
        total_matched=len(matched),
        total_stored=len(entries),
        range_used=range_used,
        limit_used=limit_used,
        insights=compute_insights(matched),
    )


def query_leaderboard(**filters) -> LeaderboardPage:
    """``list_leaderboard`` over the persisted index."""

    return list_leaderboard(list_leaderboard_index(), **filters)


def query_insights(
    *,
    range_: Optional[str] = None,
    conference_id: Optional[str] = None,
    persona_id: Optional[str] = None,
    trainee_id: Optional[str] = None,
    job_title: Optional[str] = None,
    now: Optional[dt.datetime] = None,
) -> InsightsSummary:
    matched = filter_entries(
        list_leaderboard_index(),
        range_=resolve_range(range_),
        conference_id=conference_id,
        persona_id=persona_id,
        trainee_id=trainee_id,
        job_title=job_title,
        now=now,
    )
    return compute_insights(matched)


__all__ = [
    "DEFAULT_RANGE",
    "filter_entries",
    "list_leaderboard",
    "query_insights",
    "query_leaderboard",
    "rank_entries",
    "resolve_limit",
    "resolve_range",
]
