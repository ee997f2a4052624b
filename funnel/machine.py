"""Progression policy for the discovery funnel.

The machine never writes attendee language. It inspects the trainee's latest
utterance, records violations and decides whether the session moves one
state forward. Transitions are forward-only and recorded in ``state_history``.
"""
from __future__ import annotations

import datetime as dt
import re
from dataclasses import dataclass, field
from typing import List, Optional

from agents.types import Outcome
from config.simulator import SimulatorRules, simulator_rules

from .state import FunnelState, Session, StateTransition

OPEN_ENDED_RE = re.compile(r"\b(what|how|tell me|describe|walk me through|help me understand)\b", re.IGNORECASE)
EMPATHY_RE = re.compile(
    r"\b(understand|hear you|sounds like|that must|that's tough|that’s tough|frustrat|brutal|rough)\b",
    re.IGNORECASE,
)

OUTCOME_BY_STATE: dict[FunnelState, Outcome] = {
    FunnelState.OUTCOME: "DEMO_READY",
    FunnelState.SOLUTION_FRAMING: "DEFERRED_INTEREST",
}


@dataclass
class TurnAnalysis:
    """Heuristic reading of a single trainee message."""

    issues: List[str] = field(default_factory=list)
    is_question: bool = False
    is_open_ended: bool = False
    is_empathetic: bool = False
    pitch_detected: bool = False
    mentions_otel: bool = False


def _now() -> str:
    return dt.datetime.now(dt.timezone.utc).isoformat()


def _mentions(lower: str, terms: List[str]) -> bool:
    return any(re.search(rf"\b{re.escape(term)}\b", lower) for term in terms)


def analyze_trainee_message(
    text: str,
    current_state: FunnelState,
    rules: Optional[SimulatorRules] = None,
) -> TurnAnalysis:
    """Flag keyword discipline breaches and classify the message shape."""

    rules = rules or simulator_rules()
    lower = (text or "").lower()
    issues: List[str] = []

    for keyword in rules.banned_keywords:
        if keyword and keyword in lower:
            issues.append(f'Used banned keyword: "{keyword}"')

    pitch_detected = any(signal in lower for signal in rules.pitch_signals if signal)
    if pitch_detected and current_state == FunnelState.ICEBREAKER:
        issues.append("Early pitch detected in ICEBREAKER state")

    is_question = "?" in (text or "")
    mentions_otel = _mentions(lower, rules.otel_terms)
    asks_about_otel = is_question and (mentions_otel or any(term in lower for term in rules.otel_question_terms))
    if mentions_otel and not asks_about_otel:
        issues.append("Assumed OTel familiarity without asking")

    return TurnAnalysis(
        issues=issues,
        is_question=is_question,
        is_open_ended=bool(OPEN_ENDED_RE.search(text or "")),
        is_empathetic=bool(EMPATHY_RE.search(text or "")),
        pitch_detected=pitch_detected,
        mentions_otel=mentions_otel,
    )


def should_advance(current_state: FunnelState, analysis: TurnAnalysis) -> bool:
    """Decide whether this turn earns the next funnel state."""

    if analysis.issues:
        return False
    if current_state == FunnelState.ICEBREAKER:
        return analysis.is_question and analysis.is_open_ended
    if current_state == FunnelState.EXPLORATION:
        return analysis.is_open_ended
    if current_state == FunnelState.PAIN_DISCOVERY:
        return analysis.is_empathetic
    if current_state == FunnelState.SOLUTION_FRAMING:
        return True
    return False


def advance(session: Session, timestamp: Optional[str] = None) -> Optional[StateTransition]:
    """Move ``session`` exactly one state forward and record the transition.

    Returns ``None`` at the last state, where there is nowhere to go.
    """

    current = session.current_state
    target = current.next()
    if target == current:
        return None
    transition = StateTransition(from_state=current, to=target, timestamp=timestamp or _now())
    session.state_history.append(transition)
    session.current_state = target
    return transition


def progress(session: Session, analysis: TurnAnalysis, timestamp: Optional[str] = None) -> Optional[StateTransition]:
    """Record the turn's violations and advance when the policy allows."""

    if analysis.issues:
        session.violations.extend(analysis.issues)
    if should_advance(session.current_state, analysis):
        return advance(session, timestamp)
    return None


def outcome_for(state: FunnelState) -> Outcome:
    """Fixed end-of-session outcome for the final funnel state."""

    return OUTCOME_BY_STATE.get(FunnelState(state), "POLITE_EXIT")


def states_reached(session: Session) -> int:
    """Distinct funnel states the session has occupied, including the current one."""

    seen = {session.current_state}
    for transition in session.state_history:
        seen.add(transition.from_state)
        seen.add(transition.to)
    return len(seen)


__all__ = [
    "OUTCOME_BY_STATE",
    "TurnAnalysis",
    "advance",
    "analyze_trainee_message",
    "outcome_for",
    "progress",
    "should_advance",
    "states_reached",
]
