from config.simulator import simulator_rules
from funnel.state import FunnelState
from services.scoring import active_seconds, grade_for, score_session

from roleplay_builders import make_session


def test_grade_is_step_function():
    cases = {100: "A", 90: "A", 89: "B", 80: "B", 79: "C", 70: "C", 69: "D", 60: "D", 59: "F", 0: "F"}
    for score, grade in cases.items():
        assert grade_for(score) == grade


def test_zero_transition_session_scores_at_floor():
    record = score_session(make_session(), "tok")
    b = record.breakdown
    assert (b.listening, b.discovery, b.empathy, b.otel_assumptions, b.guardrails) == (5, 0, 2, 20, 20)
    assert record.score == 47
    assert record.grade == "F"
    assert record.outcome == "POLITE_EXIT"
    assert b.states_reached == 1 and b.states_total == 5
    assert "Conversation stalled in ICEBREAKER state" in record.mistakes


def test_guardrails_penalize_violations_and_early_pitch():
    session = make_session(violations=['Used banned keyword: "refinery"', "Early pitch detected in ICEBREAKER state"])
    b = score_session(session, "tok").breakdown
    assert b.guardrails == 5
    assert b.violation_count == 2


def test_strong_session_is_clamped_to_100():
    trainee = [
        "What I'm hearing is it sounds like alerts are noisy, so you're saying pages are late?",
        "If I understand, let me make sure, to clarify: help me understand how on-call works?",
        "That must be frustrating, I can imagine. Sorry, I understand and hear you, that's tough. How do you cope?",
        "That sounds rough, brutal even. What happens to your customers during incidents?",
    ]
    record = score_session(make_session(trainee, state=FunnelState.OUTCOME), "tok")
    assert record.outcome == "DEMO_READY"
    assert record.breakdown.listening == 20
    assert record.breakdown.empathy == 20
    assert record.breakdown.discovery == 20
    assert record.breakdown.customer_impact == 5
    assert record.breakdown.outcome_bonus == 10
    assert record.score == 100
    assert record.grade == "A"
    assert len(record.highlights) <= 6


def test_outcome_bonus_uses_recorded_outcome():
    base = score_session(make_session(), "tok").score
    mql = score_session(make_session(outcome="MQL_READY"), "tok")
    deferred = score_session(make_session(outcome="DEFERRED_INTEREST"), "tok")
    assert mql.score == base + 10
    assert deferred.score == base + 5


def test_inefficiency_penalty_only_for_polite_exit():
    limit = simulator_rules().turn_limit("medium")
    chatter = ["ok"] * (limit + 1)
    polite = score_session(make_session(chatter), "tok")
    assert polite.breakdown.efficiency_penalty == 5
    deferred = score_session(make_session(chatter, outcome="DEFERRED_INTEREST"), "tok")
    assert deferred.breakdown.efficiency_penalty == 0
    easy_ok = score_session(make_session(["ok"] * 10, difficulty="easy"), "tok")
    assert easy_ok.breakdown.efficiency_penalty == 0


def test_otel_assertions_lose_points():
    session = make_session(["Since you're using OTel already, with your OTel setup this is easy."])
    assert score_session(session, "tok").breakdown.otel_assumptions == 10


def test_active_seconds_ignores_idle_gaps():
    session = make_session(["hi", "how are you?"], gap_s=30)
    session.transcript[-1].timestamp = "2026-10-18T12:05:00+00:00"
    # 30s counted, then a 4.5 minute gap is idle
    assert active_seconds(session.transcript) == 30


def test_scoring_is_deterministic_and_snapshots_kickoff():
    session = make_session(["What are you working on?"], state=FunnelState.EXPLORATION)
    first = score_session(session, "tok")
    second = score_session(session, "tok")
    assert first == second
    assert first.completed_at == session.ended_at
    assert first.trainee_name_short == "Sam R."
    assert first.job_title == "Platform Engineer"
    assert first.conference_name == "SREcon"
