"""Shared type definitions for records, enrichment, scores and insights."""
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field

Difficulty = Literal["easy", "medium", "hard"]
Grade = Literal["A", "B", "C", "D", "F"]
Outcome = Literal["MQL_READY", "DEMO_READY", "SELF_SERVICE_READY", "DEFERRED_INTEREST", "POLITE_EXIT"]
OutcomeActionType = Literal["SCAN_BADGE", "HANDOFF_DEMOER", "HAND_FLYER", "HAND_SWAG"]
LeaderboardRange = Literal["24h", "7d", "30d", "all"]
EnsureStatus = Literal["cached", "fresh", "pending"]


class PersonaRecord(BaseModel):
    id: str
    persona_type: str
    display_name: Optional[str] = None
    job_title: Optional[str] = None
    modifiers: List[str] = Field(default_factory=list)
    emotional_posture: str = "neutral"
    tooling_bias: str = ""
    otel_familiarity: str = "unknown"

    def attendee_profile(self) -> str:
        return (
            f"Persona: {self.persona_type}\n"
            f"Modifiers: {'; '.join(self.modifiers)}\n"
            f"Emotional posture: {self.emotional_posture}\n"
            f"Tooling bias: {self.tooling_bias}\n"
            f"OpenTelemetry familiarity: {self.otel_familiarity}"
        )

    def title(self) -> str:
        if self.display_name:
            return self.display_name
        parts = [self.persona_type]
        if self.modifiers:
            parts.append(self.modifiers[0])
        if self.tooling_bias:
            parts.append(self.tooling_bias)
        return " · ".join(part for part in parts if part)


class ConferenceRecord(BaseModel):
    id: str
    name: str
    themes: List[str] = Field(default_factory=list)
    seniority_mix: str = ""
    notes: str = ""

    def context(self) -> str:
        lines = [f"Conference: {self.name}", f"Themes: {', '.join(self.themes)}"]
        if self.seniority_mix:
            lines.append(f"Seniority mix: {self.seniority_mix}")
        if self.notes:
            lines.append(f"Notes: {self.notes}")
        return "\n".join(lines)


class TraineeRecord(BaseModel):
    id: str
    first_name: str
    last_name: str = ""

    def short_name(self) -> str:
        first = self.first_name.strip()
        initial = self.last_name.strip()[:1]
        return f"{first} {initial}." if initial else first


class AttendeeStyleGuide(BaseModel):
    tone: str
    brevity: Literal["short", "medium"] = "medium"
    skepticism: Literal["low", "medium", "high"] = "medium"
    venting_triggers: List[str] = Field(default_factory=list)


class DomainContext(BaseModel):
    themes: List[str] = Field(default_factory=list)
    typical_topics: List[str] = Field(default_factory=list)


class PersonaBehavior(BaseModel):
    reveal_when_earned: List[str] = Field(default_factory=list)
    resist_if_pitched: List[str] = Field(default_factory=list)
    objections: List[str] = Field(default_factory=list)


class VocabHints(BaseModel):
    mirror_terms: List[str] = Field(default_factory=list)
    avoid_terms: List[str] = Field(default_factory=list)


class EnrichmentDraft(BaseModel):
    """Generated portion of an enrichment, as returned by a provider."""

    attendee_style_guide: AttendeeStyleGuide
    domain_context: DomainContext = Field(default_factory=DomainContext)
    persona_behavior: PersonaBehavior = Field(default_factory=PersonaBehavior)
    vocab_hints: VocabHints = Field(default_factory=VocabHints)
    prompt_addendum: str


class Enrichment(EnrichmentDraft):
    version: str = "1.0"
    generated_at: str
    conference_id: str
    persona_id: str
    trainee_id: Optional[str] = None
    provider: str


class EnrichmentInput(BaseModel):
    conference_id: str = Field(min_length=1)
    persona_id: str = Field(min_length=1)
    trainee_id: Optional[str] = None
    conference_context: str
    attendee_profile: str


class EnsureResult(BaseModel):
    status: EnsureStatus
    provider: Optional[str] = None
    error: Optional[str] = None


class InviteRecord(BaseModel):
    token: str
    session_id: str
    created_at: str
    conference_id: Optional[str] = None
    persona_id: Optional[str] = None
    trainee_id: Optional[str] = None
    created_by: Optional[str] = None


class ScoreBreakdown(BaseModel):
    listening: int
    discovery: int
    empathy: int
    otel_assumptions: int
    guardrails: int
    customer_impact: int
    outcome_bonus: int
    efficiency_penalty: int
    states_reached: int
    states_total: int
    violation_count: int
    trainee_turns: int
    active_seconds: int


class ScoreRecord(BaseModel):
    token: str
    session_id: str
    score: int = Field(ge=0, le=100)
    grade: Grade
    outcome: Outcome
    breakdown: ScoreBreakdown
    highlights: List[str] = Field(default_factory=list)
    mistakes: List[str] = Field(default_factory=list)
    violations: List[str] = Field(default_factory=list)
    difficulty: Optional[str] = None
    created_at: str
    completed_at: str
    conference_id: Optional[str] = None
    conference_name: Optional[str] = None
    persona_id: Optional[str] = None
    persona_display_name: Optional[str] = None
    trainee_id: Optional[str] = None
    trainee_name_short: Optional[str] = None
    job_title: Optional[str] = None


class LeaderboardEntry(BaseModel):
    token: str
    score: int
    grade: str
    created_at: str
    conference_id: Optional[str] = None
    conference_name: Optional[str] = None
    persona_id: Optional[str] = None
    persona_display_name: Optional[str] = None
    job_title: Optional[str] = None
    difficulty: Optional[str] = None
    trainee_id: Optional[str] = None
    trainee_name_short: Optional[str] = None


class TraineeSummary(BaseModel):
    trainee_id: str
    trainee_name_short: str
    sessions_completed: int
    avg_score: int
    best_score: int
    first_score: Optional[int] = None
    latest_score: Optional[int] = None
    improvement: Optional[int] = None


class ScenarioSummary(BaseModel):
    conference_id: str
    conference_name: str
    persona_id: str
    persona_display_name: str
    attempts: int
    avg_score: int
    best_score: int


class ActiveTrainee(BaseModel):
    trainee_id: str
    trainee_name_short: str
    count: int


class ActivitySummary(BaseModel):
    sessions_completed: int
    avg_score: int
    top_active_trainees: List[ActiveTrainee] = Field(default_factory=list)
    grade_distribution: Dict[str, int] = Field(default_factory=dict)


class InsightsSummary(BaseModel):
    trainee_summaries: List[TraineeSummary] = Field(default_factory=list)
    scenario_summaries: List[ScenarioSummary] = Field(default_factory=list)
    activity: ActivitySummary


class LeaderboardPage(BaseModel):
    entries: List[LeaderboardEntry]
    total_matched: int
    total_stored: int
    range_used: LeaderboardRange
    limit_used: int
    insights: InsightsSummary
