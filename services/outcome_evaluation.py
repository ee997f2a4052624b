"""Attendee-utterance detectors: evaluation questions and explicit commitments.

Evaluation questions ("how much effort is the rollout?") are mid-funnel
engagement, not exit intent, so they must never produce a pending outcome.
Commitment detectors are high-precision gates: they only fire on explicit
requests for a next step.
"""
from __future__ import annotations

import re
from typing import Iterable, Optional, Tuple

from pydantic import BaseModel

from agents.types import Outcome, OutcomeActionType

_NON_ALNUM = re.compile(r"[^a-z0-9\s]")
_NON_WORD = re.compile(r"[^\w\s]")
_SPACES = re.compile(r"\s+")

# Ordered and extensible; any match suppresses, no precedence between entries.
EVALUATION_PATTERNS: Tuple[str, ...] = (
    "how much effort",
    "rollout",
    "what does that look like",
    "how heavy",
    "heavy lift",
    "bandwidth",
    "how hard",
    "integration effort",
    "instrumentation effort",
    "time to value",
    "how long to get value",
    "complexity",
    "setup time",
    "how long does it take",
    "what s involved",
    "migration path",
    "learning curve",
    "onboarding time",
    "team capacity",
    "resource requirements",
    "what s the process",
    "how does that work",
    "implementation",
)

MQL_PHRASES: Tuple[str, ...] = (
    "scan my badge",
    "let me scan",
    "get my badge",
    "take my badge",
    "have someone follow up",
    "can someone follow up",
    "have sales follow up",
    "have someone reach out",
    "can someone reach out",
    "reach out after",
    "follow up with me",
    "contact me later",
    "get in touch",
    "schedule a call",
    "set up a call",
    "can we schedule",
    "book a call",
    "talk to sales",
    "speak to sales",
    "connect me with sales",
    "here's my email",
    "my contact info",
    "take my info",
    "let me give you my",
)

DEMO_PHRASES: Tuple[str, ...] = (
    "can you show me",
    "can i see",
    "show me a demo",
    "show me how",
    "is there a demo",
    "let's do a demo",
    "can we walk through",
    "i'd like a demo",
    "i'd love a demo",
    "i want to see a demo",
    "who can demo",
    "can someone demo",
    "walk me through",
    "schedule a demo",
    "set up a demo",
    "book a demo",
    "arrange a demo",
    "see it in action",
    "show me in practice",
    "see how it works",
    "who does demos",
    "get a demo from",
)

SELF_SERVICE_PHRASES: Tuple[str, ...] = (
    "try the free tier",
    "start with the free tier",
    "point me to the free tier",
    "sign up for free tier",
    "check out the free tier",
    "send me the docs",
    "point me to the docs",
    "i'll read the docs",
    "where are the docs",
    "link to the docs",
    "documentation link",
    "i'll try it myself",
    "i'll check it out",
    "i'll poke around",
    "i want to try it",
    "let me try it",
    "i'll play with it",
    "where can i sign up",
    "how do i sign up",
    "i'll sign up",
    "create an account",
    "send me the links",
    "send me the resources",
)

DEFERRED_PHRASES: Tuple[str, ...] = (
    "on our radar",
    "not this quarter",
    "next quarter",
    "next year",
    "later this year",
    "not ready yet",
    "not ready right now",
    "after our migration",
    "after we finish",
    "down the road",
    "in the future",
    "when we're ready",
    "when things settle",
    "circle back later",
    "revisit this later",
    "touch base in",
    "interested but",
    "sounds good but",
    "promising but",
)

# Checked in this order; the first detector that fires wins.
COMMITMENT_ORDER: Tuple[Tuple[Outcome, Tuple[str, ...]], ...] = (
    ("MQL_READY", MQL_PHRASES),
    ("DEMO_READY", DEMO_PHRASES),
    ("SELF_SERVICE_READY", SELF_SERVICE_PHRASES),
    ("DEFERRED_INTEREST", DEFERRED_PHRASES),
)


class OutcomeAction(BaseModel):
    action_type: OutcomeActionType
    action_label: str
    system_message: str


OUTCOME_ACTIONS: dict[str, OutcomeAction] = {
    "MQL_READY": OutcomeAction(
        action_type="SCAN_BADGE",
        action_label="Scan attendee badge",
        system_message="You scan their badge and confirm a follow-up.",
    ),
    "DEMO_READY": OutcomeAction(
        action_type="HANDOFF_DEMOER",
        action_label="Pass off to Demoer",
        system_message="You hand them off to the demo engineer.",
    ),
    "SELF_SERVICE_READY": OutcomeAction(
        action_type="HAND_FLYER",
        action_label="Hand them a flyer",
        system_message="You hand them a flyer with free tier info and documentation links.",
    ),
}
DEFAULT_ACTION = OutcomeAction(
    action_type="HAND_SWAG",
    action_label="Hand them swag",
    system_message="You hand them some swag and thank them for stopping by.",
)


def normalize_evaluation_text(raw: str) -> str:
    lowered = (raw or "").lower()
    return _SPACES.sub(" ", _NON_ALNUM.sub(" ", lowered)).strip()


def is_evaluation_question(raw: str, patterns: Iterable[str] = EVALUATION_PATTERNS) -> bool:
    """Return ``True`` when ``raw`` asks a mid-funnel evaluation question."""

    text = normalize_evaluation_text(raw)
    if not text:
        return False
    return any(pattern in text for pattern in patterns)


def _normalize_phrase(text: str) -> str:
    return _SPACES.sub(" ", _NON_WORD.sub(" ", (text or "").lower())).strip()


def _contains_any(text: str, phrases: Iterable[str]) -> bool:
    normalized = _normalize_phrase(text)
    return any(_normalize_phrase(phrase) in normalized for phrase in phrases)


def detect_committed_outcome(text: str) -> Optional[Outcome]:
    """Return the explicit next-step commitment in ``text``, if any."""

    for outcome, phrases in COMMITMENT_ORDER:
        if _contains_any(text, phrases):
            return outcome
    return None


def pending_outcome_for(attendee_text: str) -> Optional[Outcome]:
    """Commitment carried by an attendee reply; evaluation questions never commit."""

    if is_evaluation_question(attendee_text):
        return None
    return detect_committed_outcome(attendee_text)


def outcome_action(outcome: Optional[str]) -> OutcomeAction:
    return OUTCOME_ACTIONS.get(outcome or "", DEFAULT_ACTION)


__all__ = [
    "COMMITMENT_ORDER",
    "EVALUATION_PATTERNS",
    "OutcomeAction",
    "detect_committed_outcome",
    "is_evaluation_question",
    "normalize_evaluation_text",
    "outcome_action",
    "pending_outcome_for",
]
