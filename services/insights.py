"""Aggregate trainee, scenario and activity insights over a set of scores."""
from __future__ import annotations

from collections import Counter
from typing import Dict, List, Sequence, Union

from agents.types import (
    ActiveTrainee,
    ActivitySummary,
    InsightsSummary,
    LeaderboardEntry,
    ScenarioSummary,
    ScoreRecord,
    TraineeSummary,
)

ScoreLike = Union[ScoreRecord, LeaderboardEntry]

TOP_ACTIVE = 5
GRADES = ("A", "B", "C", "D", "F")
PLACEHOLDER = "—"


def _round_half_up(value: float) -> int:
    return int(value + 0.5)


def _mean(values: Sequence[int]) -> int:
    return _round_half_up(sum(values) / len(values)) if values else 0


def _completed(item: ScoreLike) -> str:
    return getattr(item, "completed_at", None) or item.created_at


def _trainee_summary(trainee_id: str, items: List[ScoreLike]) -> TraineeSummary:
    ordered = sorted(items, key=_completed)
    scores = [item.score for item in ordered]
    return TraineeSummary(
        trainee_id=trainee_id,
        trainee_name_short=ordered[0].trainee_name_short or PLACEHOLDER,
        sessions_completed=len(ordered),
        avg_score=_mean(scores),
        best_score=max(scores),
        first_score=scores[0],
        latest_score=scores[-1],
        improvement=scores[-1] - scores[0],
    )


def compute_insights(scores: Sequence[ScoreLike]) -> InsightsSummary:
    """Summaries over ``scores``; entries without a trainee or scenario are skipped per group."""

    by_trainee: Dict[str, List[ScoreLike]] = {}
    by_scenario: Dict[tuple[str, str], List[ScoreLike]] = {}
    for item in scores:
        if item.trainee_id:
            by_trainee.setdefault(item.trainee_id, []).append(item)
        if item.conference_id and item.persona_id:
            by_scenario.setdefault((item.conference_id, item.persona_id), []).append(item)

    trainee_summaries = [_trainee_summary(tid, items) for tid, items in by_trainee.items()]
    trainee_summaries.sort(key=lambda summary: summary.sessions_completed, reverse=True)

    scenario_summaries: List[ScenarioSummary] = []
    for (conference_id, persona_id), items in by_scenario.items():
        values = [item.score for item in items]
        scenario_summaries.append(
            ScenarioSummary(
                conference_id=conference_id,
                conference_name=items[0].conference_name or PLACEHOLDER,
                persona_id=persona_id,
                persona_display_name=items[0].persona_display_name or PLACEHOLDER,
                attempts=len(items),
                avg_score=_mean(values),
                best_score=max(values),
            )
        )
    scenario_summaries.sort(key=lambda summary: summary.attempts, reverse=True)

    top_active = [
        ActiveTrainee(
            trainee_id=tid,
            trainee_name_short=items[0].trainee_name_short or PLACEHOLDER,
            count=len(items),
        )
        for tid, items in by_trainee.items()
    ]
    top_active.sort(key=lambda active: active.count, reverse=True)

    grade_counts = Counter(item.grade for item in scores)
    return InsightsSummary(
        trainee_summaries=trainee_summaries,
        scenario_summaries=scenario_summaries,
        activity=ActivitySummary(
            sessions_completed=len(scores),
            avg_score=_mean([item.score for item in scores]),
            top_active_trainees=top_active[:TOP_ACTIVE],
            grade_distribution={grade: grade_counts.get(grade, 0) for grade in GRADES},
        ),
    )


__all__ = ["compute_insights"]
