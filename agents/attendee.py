"""Attendee voice: opening lines, prompt composition and reply generation."""
from __future__ import annotations

import zlib
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

from config.llm import ATTENDEE_TARGET, load_config, resolve_route
from config.registry import ATTENDEE_KEY, get_model, is_bound
from config.settings import settings
from config.simulator import SimulatorRules, simulator_rules
from funnel.state import FunnelState, Session
from observability.logger import log_event

MOCK_REPLIES: Dict[FunnelState, Tuple[str, ...]] = {
    FunnelState.ICEBREAKER: (
        "Hey. Just doing a quick lap between talks. What's this booth about?",
        "Yeah, I've got a minute. What are you focused on here?",
        "Hi. I'm trying not to get pulled into a pitch. What do you all do?",
    ),
    FunnelState.EXPLORATION: (
        "I'm an SRE. Mostly focused on reliability and incident response right now.",
        "We run a pretty standard stack: metrics, logs, some tracing. It mostly works.",
        "My day is a lot of on-call, reviews, and trying to reduce alert noise.",
    ),
    FunnelState.PAIN_DISCOVERY: (
        "Honestly, alerts are the worst part. We get paged for symptoms, not causes.",
        "We had an outage recently where everything looked fine until users started complaining.",
        "It's frustrating. We spend more time figuring out where to look than actually fixing things.",
    ),
    FunnelState.SOLUTION_FRAMING: (
        "That sounds interesting, but I'm skeptical of anything that promises a silver bullet.",
        "How would that help during an incident, not just after?",
        "What's the learning curve for engineers?",
    ),
    FunnelState.OUTCOME: (
        "I could do a quick demo if it's focused.",
        "This is interesting. Can we follow up after the conference?",
        "I should get to my next talk, but thanks.",
    ),
}

CANNED_REPLIES: Dict[FunnelState, str] = {
    FunnelState.ICEBREAKER: "Hi. Just looking around for now.",
    FunnelState.EXPLORATION: "Sure, happy to tell you a bit about what we do.",
    FunnelState.PAIN_DISCOVERY: "It's been a rough few months, honestly.",
    FunnelState.SOLUTION_FRAMING: "Maybe. I'd need to see how that fits our setup.",
    FunnelState.OUTCOME: "Thanks, this was helpful.",
}

# (posture cues, modifier cues, both required, line); first match wins
OPENING_RULES: Tuple[Tuple[Tuple[str, ...], Tuple[str, ...], bool, str], ...] = (
    (("guard", "blunt"), ("outage", "firefighting"), True, "*walks up, looks tense, like they've been firefighting*"),
    (("guard", "blunt"), (), False, "*walks up, glances at badge, keeps it brief*"),
    (("rush", "hurr"), ("time-constrained",), False, "*approaches quickly, checking phone, clearly in a hurry*"),
    (("burn", "exhaust", "tired"), (), False, "*sighs, half-smiles, looks tired*"),
    (("curious", "eager", "engaged"), (), False, "*leans in, scanning the booth display*"),
    (("skeptic", "critical"), (), False, "*approaches with arms crossed, evaluating*"),
    (("thought", "analyt", "consider"), (), False, "*pauses at the booth, thoughtful expression*"),
    (("friend", "open", "warm"), (), False, "*walks up with a friendly nod*"),
    (("frustrat", "stress"), ("alert fatigue",), False, "*approaches looking visibly frustrated*"),
    ((), ("cost", "budget", "procurement"), False, "*stops by, clearly evaluating options*"),
    ((), ("migrat", "transition", "growing"), False, "*approaches with a curious but cautious look*"),
)
DEFAULT_OPENING = "*approaches booth casually*"

ReplyFn = Callable[..., str]


def _profile_field(profile: str, label: str) -> str:
    for line in profile.lower().splitlines():
        if line.startswith(f"{label}:"):
            return line.split(":", 1)[1].strip()
    return ""


def opening_line(attendee_profile: str) -> str:
    """Stage direction that opens the conversation, chosen from posture and modifiers."""

    posture = _profile_field(attendee_profile, "emotional posture") or "neutral"
    modifiers = _profile_field(attendee_profile, "modifiers")
    for posture_cues, modifier_cues, both, line in OPENING_RULES:
        posture_hit = any(cue in posture for cue in posture_cues)
        modifier_hit = any(cue in modifiers for cue in modifier_cues)
        if (posture_hit and modifier_hit) if both else (posture_hit or modifier_hit):
            return line
    return DEFAULT_OPENING


def build_attendee_prompt(session: Session, rules: Optional[SimulatorRules] = None) -> List[Dict[str, str]]:
    """System prompt plus the recent transcript as chat messages."""

    rules = rules or simulator_rules()
    kickoff = session.kickoff
    state_rules = rules.state(session.current_state.value)

    sections = [
        f"You are a conference attendee stopping by the {rules.product_name} booth. "
        "Stay in character, reply in plain conversational prose and never coach the trainee.",
        f"CURRENT STATE: {session.current_state.value}\n{state_rules.description}",
    ]
    if state_rules.attendee_behavior:
        sections.append("BEHAVIOUR:\n" + "\n".join(f"- {item}" for item in state_rules.attendee_behavior))
    sections.append(f"SCENARIO:\n{kickoff.conference_context}\n{kickoff.attendee_profile}\nDifficulty: {kickoff.difficulty}")
    if kickoff.enrichment and kickoff.enrichment.prompt_addendum:
        sections.append(f"ENRICHMENT GUIDANCE:\n{kickoff.enrichment.prompt_addendum}")
    if session.trainer_feedback and session.trainer_feedback.guidance:
        sections.append(f"TRAINER GUIDANCE:\n{session.trainer_feedback.guidance}")

    trainee_turns = sum(1 for message in session.transcript if message.type == "trainee")
    if trainee_turns > rules.turn_limit(kickoff.difficulty):
        sections.append(
            "TURN LIMIT REACHED: converge toward a close now with a clear next step or a polite exit."
        )

    messages: List[Dict[str, str]] = [{"role": "system", "content": "\n\n".join(sections)}]
    for message in session.transcript[-settings.TRANSCRIPT_WINDOW :]:
        if message.type == "trainee":
            messages.append({"role": "user", "content": message.text})
        elif message.type == "attendee":
            messages.append({"role": "assistant", "content": message.text})
    return messages


def mock_reply(session: Session, messages: List[Dict[str, str]]) -> str:
    """Deterministic variant for the current state, stable per session and turn."""

    variants = MOCK_REPLIES[session.current_state]
    seed = zlib.crc32(f"{session.id}:{len(session.transcript)}".encode("utf-8"))
    return variants[seed % len(variants)]


def llm_reply(session: Session, messages: List[Dict[str, str]]) -> str:
    from llm_gateway import chat_text

    route = resolve_route(load_config(Path(settings.LLM_CONFIG_PATH)), ATTENDEE_TARGET)
    return chat_text(messages, cfg=route)


def _providers() -> List[Tuple[str, ReplyFn]]:
    chain: List[Tuple[str, ReplyFn]] = []
    if is_bound(ATTENDEE_KEY):
        chain.append(("registry", get_model(ATTENDEE_KEY)))
    elif settings.CHAT_PROVIDER == "llm":
        chain.append(("llm", llm_reply))
    chain.append(("mock", mock_reply))
    return chain


def generate_reply(session: Session, rules: Optional[SimulatorRules] = None) -> Tuple[str, str]:
    """Return ``(reply, provider)``, falling back to canned per-state lines."""

    messages = build_attendee_prompt(session, rules)
    for name, fn in _providers():
        try:
            text = (fn(session, messages) or "").strip()
        except Exception as exc:  # noqa: BLE001
            log_event("attendee_provider_failed", session.id, provider=name, error=repr(exc))
            continue
        if text:
            return text, name
        log_event("attendee_provider_empty", session.id, provider=name)
    return CANNED_REPLIES[session.current_state], "canned"


__all__ = [
    "CANNED_REPLIES",
    "MOCK_REPLIES",
    "build_attendee_prompt",
    "generate_reply",
    "llm_reply",
    "mock_reply",
    "opening_line",
]
