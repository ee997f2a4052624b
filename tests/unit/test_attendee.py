import agents.attendee as attendee
from config.registry import ATTENDEE_KEY, bind_model
from config.settings import settings
from agents.enrichment_provider import enrich
from agents.types import EnrichmentInput
from funnel.state import FunnelState, TrainerFeedback

from roleplay_builders import make_session


def test_opening_line_follows_posture_and_modifiers():
    guarded_outage = "Persona: SRE\nModifiers: recent outage\nEmotional posture: guarded"
    assert attendee.opening_line(guarded_outage) == "*walks up, looks tense, like they've been firefighting*"
    assert attendee.opening_line("Emotional posture: guarded") == "*walks up, glances at badge, keeps it brief*"
    assert attendee.opening_line("Modifiers: time-constrained\nEmotional posture: neutral").startswith(
        "*approaches quickly"
    )
    assert attendee.opening_line("Modifiers: budget review") == "*stops by, clearly evaluating options*"
    assert attendee.opening_line("") == attendee.DEFAULT_OPENING


def test_prompt_includes_state_enrichment_and_recent_window(monkeypatch):
    monkeypatch.setattr(settings, "TRANSCRIPT_WINDOW", 2)
    session = make_session(["first question?", "second question?", "third question?"], state=FunnelState.EXPLORATION)
    session.kickoff.enrichment = enrich(
        EnrichmentInput(
            conference_id="c-1",
            persona_id="p-1",
            conference_context="Conference: SREcon\nThemes: incident response",
            attendee_profile=session.kickoff.attendee_profile,
        )
    )
    session.trainer_feedback = TrainerFeedback(
        guidance="Push back on vague answers.", updated_at="2026-10-18T12:00:00+00:00"
    )
    messages = attendee.build_attendee_prompt(session)
    system = messages[0]["content"]
    assert messages[0]["role"] == "system"
    assert "CURRENT STATE: EXPLORATION" in system
    assert "Honeycomb booth" in system
    assert "ENRICHMENT GUIDANCE:\n" + session.kickoff.enrichment.prompt_addendum in system
    assert "TRAINER GUIDANCE:\nPush back on vague answers." in system
    assert [m["content"] for m in messages[1:]] == ["second question?", "third question?"]


def test_prompt_warns_when_turn_limit_exceeded():
    session = make_session(["ok"] * 11, difficulty="easy")
    assert "TURN LIMIT REACHED" in attendee.build_attendee_prompt(session)[0]["content"]


def test_registry_provider_is_preferred():
    bind_model(ATTENDEE_KEY, lambda session, messages: "  We mostly run Kubernetes.  ")
    reply, provider = attendee.generate_reply(make_session())
    assert (reply, provider) == ("We mostly run Kubernetes.", "registry")


def test_failed_provider_falls_back_to_mock_then_canned(monkeypatch):
    def broken(session, messages):
        raise RuntimeError("llm down")

    bind_model(ATTENDEE_KEY, broken)
    session = make_session(state=FunnelState.PAIN_DISCOVERY)
    reply, provider = attendee.generate_reply(session)
    assert provider == "mock"
    assert reply in attendee.MOCK_REPLIES[FunnelState.PAIN_DISCOVERY]

    monkeypatch.setattr(attendee, "mock_reply", broken)
    reply, provider = attendee.generate_reply(session)
    assert provider == "canned"
    assert reply == attendee.CANNED_REPLIES[FunnelState.PAIN_DISCOVERY]


def test_mock_reply_is_stable_for_same_turn():
    session = make_session(["hello?"])
    assert attendee.mock_reply(session, []) == attendee.mock_reply(session, [])
