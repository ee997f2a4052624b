"""Enrichment providers: a deterministic mock and an LLM-backed generator."""
from __future__ import annotations

import datetime as dt
import re
from pathlib import Path
from typing import Any, Callable, List

from agents.types import (
    AttendeeStyleGuide,
    DomainContext,
    Enrichment,
    EnrichmentDraft,
    EnrichmentInput,
    PersonaBehavior,
    VocabHints,
)
from config.llm import ENRICHMENT_TARGET, load_config, resolve_route
from config.registry import ENRICHMENT_KEY, get_model, is_bound
from config.settings import settings
from services.errors import DependencyFailure

EnrichmentFn = Callable[[EnrichmentInput], Any]


def _field(text: str, label: str) -> str:
    match = re.search(rf"{re.escape(label)}:\s*([^\n]+)", text or "")
    return match.group(1).strip() if match else ""


def _split(raw: str, sep: str) -> List[str]:
    return [part.strip() for part in raw.split(sep) if part.strip()]


def _tone(posture: str) -> str:
    lower = posture.lower()
    if "guarded" in lower or "skeptical" in lower:
        return "reserved, cautious"
    if "friendly" in lower or "open" in lower:
        return "warm, conversational"
    if "frustrated" in lower or "stressed" in lower:
        return "tense, weary"
    return "professional, measured"


def _brevity(persona_type: str, modifiers: str) -> str:
    lower = persona_type.lower()
    if "senior" in lower or "director" in lower or "busy" in modifiers or "impatient" in modifiers:
        return "short"
    return "medium"


def _skepticism(otel: str, modifiers: str) -> str:
    if "attached to current tools" in modifiers or "skeptical" in modifiers:
        return "high"
    if "active" in otel or "starting" in otel:
        return "low"
    if "aware" in otel or "considering" in otel:
        return "medium"
    return "high"


def _venting_triggers(themes: List[str], modifiers: str) -> List[str]:
    lowered = [theme.lower() for theme in themes]
    triggers: List[str] = []
    if any("incident" in theme for theme in lowered):
        triggers.append("recent production incidents")
    if any("toil" in theme for theme in lowered):
        triggers.append("manual work and toil")
    if any("scale" in theme for theme in lowered):
        triggers.append("scaling challenges")
    if "frustrated" in modifiers:
        triggers.append("lack of visibility")
    if "stressed" in modifiers:
        triggers.append("time pressure")
    return triggers


def _typical_topics(themes: List[str], persona_type: str) -> List[str]:
    lower = persona_type.lower()
    topics = list(themes)
    if "sre" in lower or "reliability" in lower:
        topics += ["SLOs", "on-call rotation", "incident response"]
    if "platform" in lower or "infrastructure" in lower:
        topics += ["developer experience", "self-service"]
    if "security" in lower:
        topics += ["compliance", "audit logs"]
    return topics


def _behavior(otel: str, modifiers: str) -> PersonaBehavior:
    reveal = ["current pain points", "budget constraints", "team priorities"]
    if "active" in otel or "starting" in otel:
        reveal.append("current observability stack details")

    resist = ["direct sales pitches", "feature lists without context"]
    if "skeptical" in modifiers or "guarded" in modifiers:
        resist += ["claims without evidence", "vendor promises"]

    objections: List[str] = []
    if "never" in otel:
        objections += ["never heard of OpenTelemetry", "sounds complicated"]
    if "aware" in otel:
        objections.append("not sure if it's worth the effort")
    if "attached to current tools" in modifiers:
        objections += ["current tools work fine", "don't want to switch"]
    return PersonaBehavior(reveal_when_earned=reveal, resist_if_pitched=resist, objections=objections)


def _vocab(themes: List[str], persona_type: str, otel: str) -> VocabHints:
    lower = persona_type.lower()
    mirror = list(themes)
    if "sre" in lower:
        mirror += ["reliability", "SLO", "incident"]
    if "platform" in lower:
        mirror += ["developer experience", "internal platform"]
    if "devops" in lower:
        mirror += ["CI/CD", "deployment"]
    avoid: List[str] = []
    if "never" in otel or "aware" in otel:
        avoid = ["span", "trace context", "baggage", "exemplars"]
    return VocabHints(mirror_terms=mirror, avoid_terms=avoid)


def _addendum(style: AttendeeStyleGuide, behavior: PersonaBehavior) -> str:
    length = "brief (1-2 sentences)" if style.brevity == "short" else "moderate (2-4 sentences)"
    parts = [f"Tone: Speak in a {style.tone} manner.", f"Response length: Keep responses {length}."]
    if style.skepticism == "high":
        parts.append("Skepticism: Express doubt about claims; ask 'how' and 'why' questions.")
    elif style.skepticism == "medium":
        parts.append("Skepticism: Show cautious interest; probe for details.")
    if style.venting_triggers:
        parts.append(f"Pain points: When discussing {', '.join(style.venting_triggers)}, express frustration naturally.")
    if behavior.objections:
        parts.append(f"Objections: {', '.join(behavior.objections)}. Raise these if appropriate.")
    parts.append(
        f"Trust: Only reveal {', '.join(behavior.reveal_when_earned)} after the trainee has "
        "demonstrated genuine curiosity about your challenges."
    )
    parts.append(f"Resistance: Push back if the trainee uses {', '.join(behavior.resist_if_pitched)}.")
    return " ".join(parts)


def mock_enrich(data: EnrichmentInput) -> EnrichmentDraft:
    """Derive an enrichment deterministically from the profile and conference text."""

    themes = _split(_field(data.conference_context, "Themes"), ",")
    persona_type = _field(data.attendee_profile, "Persona")
    modifiers = _field(data.attendee_profile, "Modifiers").lower()
    posture = _field(data.attendee_profile, "Emotional posture")
    otel = _field(data.attendee_profile, "OpenTelemetry familiarity").lower()

    style = AttendeeStyleGuide(
        tone=_tone(posture),
        brevity=_brevity(persona_type, modifiers),
        skepticism=_skepticism(otel, modifiers),
        venting_triggers=_venting_triggers(themes, modifiers),
    )
    behavior = _behavior(otel, modifiers)
    return EnrichmentDraft(
        attendee_style_guide=style,
        domain_context=DomainContext(themes=themes, typical_topics=_typical_topics(themes, persona_type)),
        persona_behavior=behavior,
        vocab_hints=_vocab(themes, persona_type, otel),
        prompt_addendum=_addendum(style, behavior),
    )


ENRICHMENT_SYSTEM_PROMPT = (
    "You analyze conference attendee personas and produce behavioural enrichment for a booth "
    "roleplay. Describe how the attendee talks, what they reveal once trust is earned, what "
    "pushes them away and which words to mirror or avoid. Keep prompt_addendum under 120 words."
)


def llm_enrich(data: EnrichmentInput) -> EnrichmentDraft:
    """Generate an enrichment through the configured ``enrichment`` LLM route."""

    from llm_gateway import LlmGatewayError, chat

    route = resolve_route(load_config(Path(settings.LLM_CONFIG_PATH)), ENRICHMENT_TARGET)
    messages = [
        {"role": "system", "content": ENRICHMENT_SYSTEM_PROMPT},
        {
            "role": "user",
            "content": f"{data.conference_context}\n\n{data.attendee_profile}",
        },
    ]
    try:
        return chat(messages, EnrichmentDraft, cfg=route)
    except LlmGatewayError as exc:
        raise DependencyFailure(f"enrichment provider failed: {exc}") from exc


def _provider() -> tuple[str, EnrichmentFn]:
    if is_bound(ENRICHMENT_KEY):
        return "registry", get_model(ENRICHMENT_KEY)
    if settings.ENRICHMENT_PROVIDER == "llm":
        return "llm", llm_enrich
    return "mock", mock_enrich


def enrich(data: EnrichmentInput) -> Enrichment:
    """Run the active provider and stamp the result with its identity.

    Raises:
        DependencyFailure: If the provider fails or returns an unusable payload.
    """

    name, fn = _provider()
    try:
        raw = fn(data)
    except DependencyFailure:
        raise
    except Exception as exc:  # noqa: BLE001
        raise DependencyFailure(f"enrichment provider {name} failed: {exc}") from exc

    if isinstance(raw, Enrichment):
        return raw
    try:
        draft = raw if isinstance(raw, EnrichmentDraft) else EnrichmentDraft.model_validate(raw)
    except ValueError as exc:
        raise DependencyFailure(f"enrichment provider {name} returned an invalid payload") from exc
    return Enrichment(
        **draft.model_dump(),
        generated_at=dt.datetime.now(dt.timezone.utc).isoformat(),
        conference_id=data.conference_id,
        persona_id=data.persona_id,
        trainee_id=data.trainee_id,
        provider=name,
    )


__all__ = ["enrich", "llm_enrich", "mock_enrich"]
