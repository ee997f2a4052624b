import pytest

from agents.enrichment_provider import enrich, mock_enrich
from agents.types import ConferenceRecord, EnrichmentInput, PersonaRecord
from config.registry import ENRICHMENT_KEY, bind_model
from services.errors import DependencyFailure


def _input() -> EnrichmentInput:
    persona = PersonaRecord(
        id="p-sre",
        persona_type="Senior SRE",
        modifiers=["recent outage", "attached to current tools"],
        emotional_posture="guarded",
        tooling_bias="Datadog",
        otel_familiarity="aware",
    )
    conference = ConferenceRecord(id="c-kc", name="KubeCon", themes=["incident response", "scale"])
    return EnrichmentInput(
        conference_id=conference.id,
        persona_id=persona.id,
        conference_context=conference.context(),
        attendee_profile=persona.attendee_profile(),
    )


def test_mock_enrichment_is_derived_from_profile():
    draft = mock_enrich(_input())
    style = draft.attendee_style_guide
    assert style.tone == "reserved, cautious"
    assert style.brevity == "short"
    assert style.skepticism == "high"
    assert style.venting_triggers == ["recent production incidents", "scaling challenges"]
    assert draft.domain_context.themes == ["incident response", "scale"]
    assert "SLOs" in draft.domain_context.typical_topics
    assert "current tools work fine" in draft.persona_behavior.objections
    assert "span" in draft.vocab_hints.avoid_terms
    assert draft.prompt_addendum.startswith("Tone: Speak in a reserved, cautious manner.")
    assert mock_enrich(_input()) == draft


def test_enrich_stamps_identity_with_default_mock():
    result = enrich(_input())
    assert result.provider == "mock"
    assert result.conference_id == "c-kc"
    assert result.persona_id == "p-sre"
    assert result.generated_at


def test_enrich_accepts_registry_payloads():
    payload = mock_enrich(_input()).model_dump()
    bind_model(ENRICHMENT_KEY, lambda data: payload)
    assert enrich(_input()).provider == "registry"


def test_enrich_wraps_provider_errors():
    bind_model(ENRICHMENT_KEY, lambda data: {"prompt_addendum": "missing style guide"})
    with pytest.raises(DependencyFailure):
        enrich(_input())

    def boom(data):
        raise RuntimeError("socket closed")

    bind_model(ENRICHMENT_KEY, boom)
    with pytest.raises(DependencyFailure):
        enrich(_input())
