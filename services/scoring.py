"""Heuristic session scoring: component breakdown, total, grade and feedback."""
from __future__ import annotations

import re
from typing import List, Optional

from agents.types import Grade, Outcome, ScoreBreakdown, ScoreRecord
from config.simulator import SimulatorRules, simulator_rules
from funnel.machine import OPEN_ENDED_RE, outcome_for, states_reached
from funnel.state import FUNNEL_ORDER, FunnelState, Session, TranscriptMessage, parse_timestamp

COMPONENT_MAX = 20
IDLE_GAP_S = 120
MAX_NOTES = 6

LISTENING_PHRASES = (
    "what i'm hearing",
    "sounds like",
    "so you're saying",
    "if i understand",
    "let me make sure",
    "to clarify",
    "help me understand",
)
EMPATHY_PHRASES = (
    "that must be",
    "frustrating",
    "i can imagine",
    "sorry",
    "understand",
    "hear you",
    "that's tough",
    "that sounds",
    "rough",
    "brutal",
)
CUSTOMER_IMPACT_PHRASES = (
    "customer",
    "end user",
    "user experience",
    "customer-facing",
    "customer impact",
    "affecting customers",
)
OTEL_ASSERTION_CUES = ("since you", "with your", "your otel", "you're using")
OTEL_ASKING_CUES = ("are you", "do you", "have you", "familiar with")

SUCCESS_OUTCOMES = ("MQL_READY", "DEMO_READY", "SELF_SERVICE_READY")
OUTCOME_HIGHLIGHTS = {
    "SELF_SERVICE_READY": "Closed with appropriate self-service path (SUCCESS)",
    "MQL_READY": "Secured MQL/follow-up opportunity (SUCCESS)",
    "DEMO_READY": "Earned genuine demo interest (SUCCESS)",
    "DEFERRED_INTEREST": "Respectful close with deferred interest (POSITIVE)",
}
GRADE_STEPS: tuple[tuple[int, Grade], ...] = ((90, "A"), (80, "B"), (70, "C"), (60, "D"))

_OTEL_RE = re.compile(r"\b(opentelemetry|otel)\b")


def grade_for(score: int) -> Grade:
    """Map a 0-100 score onto a letter grade."""

    for floor, grade in GRADE_STEPS:
        if score >= floor:
            return grade
    return "F"


def active_seconds(transcript: List[TranscriptMessage]) -> int:
    """Seconds between consecutive messages, ignoring idle gaps of two minutes or more."""

    total = 0.0
    for prev, curr in zip(transcript, transcript[1:]):
        gap = (parse_timestamp(curr.timestamp) - parse_timestamp(prev.timestamp)).total_seconds()
        if 0 <= gap < IDLE_GAP_S:
            total += gap
    return int(total)


def _count_phrases(text: str, phrases: tuple[str, ...]) -> int:
    return sum(1 for phrase in phrases if phrase in text)


def _is_otel_assertion(message: str) -> bool:
    lower = message.lower()
    if not _OTEL_RE.search(lower):
        return False
    asks = "?" in message and any(cue in lower for cue in OTEL_ASKING_CUES)
    return any(cue in lower for cue in OTEL_ASSERTION_CUES) and not asks


def _completed_at(session: Session) -> str:
    if session.ended_at:
        return session.ended_at
    if session.transcript:
        return session.transcript[-1].timestamp
    return session.start_time


def score_session(
    session: Session,
    token: str,
    *,
    completed_at: Optional[str] = None,
    rules: Optional[SimulatorRules] = None,
) -> ScoreRecord:
    """Score a finished session. The result depends only on the inputs."""

    rules = rules or simulator_rules()
    trainee = [m.text for m in session.transcript if m.type == "trainee"]
    joined = " ".join(trainee).lower()
    outcome: Outcome = session.outcome or outcome_for(session.current_state)

    listening = min(COMPONENT_MAX, 5 + 5 * _count_phrases(joined, LISTENING_PHRASES))
    questions = sum(1 for text in trainee if "?" in text)
    open_ended = sum(1 for text in trainee if OPEN_ENDED_RE.search(text))
    discovery = min(COMPONENT_MAX, 2 * questions + 3 * open_ended)
    empathy = min(COMPONENT_MAX, 2 + 4 * _count_phrases(joined, EMPATHY_PHRASES))
    otel_assumptions = max(0, COMPONENT_MAX - 10 * sum(1 for text in trainee if _is_otel_assertion(text)))

    early_pitch = any("Early pitch" in violation for violation in session.violations)
    guardrails = COMPONENT_MAX - 5 * len(session.violations) - (5 if early_pitch else 0)
    guardrails = max(0, guardrails)

    customer_focus = _count_phrases(joined, CUSTOMER_IMPACT_PHRASES) > 0
    customer_impact = 5 if customer_focus else 0

    if outcome in SUCCESS_OUTCOMES:
        outcome_bonus = 10
    elif outcome == "DEFERRED_INTEREST":
        outcome_bonus = 5
    else:
        outcome_bonus = 0

    turn_limit = rules.turn_limit(session.kickoff.difficulty)
    efficient = len(trainee) <= turn_limit
    efficiency_penalty = 5 if not efficient and outcome == "POLITE_EXIT" else 0

    total = listening + discovery + empathy + otel_assumptions + guardrails + customer_impact + outcome_bonus
    score = min(100, max(0, total - efficiency_penalty))
    reached = states_reached(session)

    highlights: List[str] = []
    if outcome in OUTCOME_HIGHLIGHTS:
        highlights.append(OUTCOME_HIGHLIGHTS[outcome])
    if listening >= 15:
        highlights.append("Strong active listening with reflection phrases")
    if discovery >= 15:
        highlights.append("Good use of open-ended discovery questions")
    if empathy >= 15:
        highlights.append("Showed empathy and validation")
    if otel_assumptions >= 18:
        highlights.append("Avoided making OTel assumptions")
    if guardrails >= 18:
        highlights.append("Maintained keyword discipline")
    if customer_focus:
        highlights.append("Framed conversation around customer impact")
    if reached >= 4:
        highlights.append(f"Advanced through {reached} conversation states")
    if efficient and trainee:
        highlights.append(f"Efficient convergence ({len(trainee)} turns)")

    mistakes: List[str] = []
    if listening < 10:
        mistakes.append("Lacked active listening and reflection")
    if discovery < 10:
        mistakes.append("Too few discovery questions - mostly statements")
    if empathy < 10:
        mistakes.append("Missed opportunities to validate and show empathy")
    if otel_assumptions < 10:
        mistakes.append("Made assumptions about OTel familiarity")
    if guardrails < 15:
        mistakes.append("Used banned keywords or pitched too early")
    if session.current_state == FunnelState.ICEBREAKER:
        mistakes.append("Conversation stalled in ICEBREAKER state")
    if session.violations:
        mistakes.append(f"{len(session.violations)} guardrail violation(s) detected")
    if efficiency_penalty:
        mistakes.append(f"Ran past the {turn_limit}-turn limit without a clear close")

    kickoff = session.kickoff
    return ScoreRecord(
        token=token,
        session_id=session.id,
        score=score,
        grade=grade_for(score),
        outcome=outcome,
        breakdown=ScoreBreakdown(
            listening=listening,
            discovery=discovery,
            empathy=empathy,
            otel_assumptions=otel_assumptions,
            guardrails=guardrails,
            customer_impact=customer_impact,
            outcome_bonus=outcome_bonus,
            efficiency_penalty=efficiency_penalty,
            states_reached=reached,
            states_total=len(FUNNEL_ORDER),
            violation_count=len(session.violations),
            trainee_turns=len(trainee),
            active_seconds=active_seconds(session.transcript),
        ),
        highlights=highlights[:MAX_NOTES],
        mistakes=mistakes[:MAX_NOTES],
        violations=list(session.violations),
        difficulty=kickoff.difficulty,
        created_at=session.start_time,
        completed_at=completed_at or _completed_at(session),
        conference_id=kickoff.conference_id,
        conference_name=kickoff.conference_name,
        persona_id=kickoff.persona_id,
        persona_display_name=kickoff.persona_display_name,
        trainee_id=kickoff.trainee_id,
        trainee_name_short=kickoff.trainee_name_short,
        job_title=kickoff.job_title,
    )


__all__ = ["active_seconds", "grade_for", "score_session"]
