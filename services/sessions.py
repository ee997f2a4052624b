"""Session lifecycle: start, invite, turn handling, ending and completion."""
from __future__ import annotations

import datetime as dt
import secrets
import uuid
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from agents.attendee import generate_reply, opening_line
from agents.types import (
    Difficulty,
    Enrichment,
    EnrichmentInput,
    InviteRecord,
    LeaderboardEntry,
    Outcome,
    ScoreRecord,
)
from funnel.machine import analyze_trainee_message, outcome_for, progress
from funnel.state import (
    FUNNEL_ORDER,
    Kickoff,
    Session,
    StateTransition,
    TrainerFeedback,
    TranscriptMessage,
    parse_timestamp,
)
from observability.logger import log_event
from observability.tracing import span
from storage.invites import get_invite, get_invite_for_session, save_invite
from storage.leaderboard import add_to_leaderboard_index
from storage.records import get_conference, get_persona, get_trainee
from storage.scores import get_score, save_score
from storage.sessions import get_session as load_session
from storage.sessions import save_session

from .enrichment_cache import EnrichmentCache, get_enrichment_cache
from .errors import DependencyFailure, InvalidInputError, NotFoundError
from .outcome_evaluation import OutcomeAction, outcome_action, pending_outcome_for
from .scoring import score_session

OVERALL_ASSESSMENT: Dict[str, str] = {
    "DEMO_READY": "Strong execution! You earned genuine interest.",
    "DEFERRED_INTEREST": "Good progress. More discovery could have sealed it.",
}
DEFAULT_ASSESSMENT = "Conversation ended early. Review failure modes."


class TurnResult(BaseModel):
    session: Session
    attendee_message: TranscriptMessage
    transition: Optional[StateTransition] = None
    violations: List[str] = Field(default_factory=list)
    pending_outcome: Optional[Outcome] = None
    provider: str


class StateProgress(BaseModel):
    reached: int
    total: int


class EndResult(BaseModel):
    feedback: Optional[TranscriptMessage] = None
    outcome: Outcome
    state_progress: StateProgress
    violations: List[str] = Field(default_factory=list)
    score: Optional[ScoreRecord] = None


class CompleteResult(BaseModel):
    session: Session
    outcome: Outcome
    action: OutcomeAction
    score: Optional[ScoreRecord] = None


class InviteResult(BaseModel):
    invite: InviteRecord
    session: Session
    enrichment_input: Optional[EnrichmentInput] = None


class ReviewResult(BaseModel):
    token: str
    session_id: str
    kickoff: Dict[str, Any]
    current_state: str
    transcript: List[TranscriptMessage]
    violations: List[str]
    active: bool
    outcome: Optional[Outcome] = None
    score: Optional[ScoreRecord] = None


def _now() -> str:
    return dt.datetime.now(dt.timezone.utc).isoformat()


def _message(kind: str, text: str, timestamp: str) -> TranscriptMessage:
    return TranscriptMessage(id=str(uuid.uuid4()), type=kind, text=text, timestamp=timestamp)


def get_session(session_id: str) -> Session:
    """Load ``session_id`` or raise ``NotFoundError``."""

    session = load_session(session_id)
    if session is None:
        raise NotFoundError("session", session_id)
    return session


def _cached_enrichment(cache: EnrichmentCache, conference_id: Optional[str], persona_id: str, session_id: str):
    if not conference_id:
        return None
    try:
        return cache.get(conference_id, persona_id)
    except DependencyFailure as exc:
        log_event("enrichment_lookup", session_id, cache="error", error=str(exc))
        return None


def _enrichment_on_demand(session: Session, cache: EnrichmentCache) -> Optional[Enrichment]:
    """Cached enrichment for the session, generated within the cache deadline when missing."""

    kickoff = session.kickoff
    if not kickoff.conference_id or not kickoff.conference_context or not kickoff.attendee_profile:
        return _cached_enrichment(cache, kickoff.conference_id, kickoff.persona_id, session.id)
    result = cache.ensure(
        EnrichmentInput(
            conference_id=kickoff.conference_id,
            persona_id=kickoff.persona_id,
            trainee_id=kickoff.trainee_id,
            conference_context=kickoff.conference_context,
            attendee_profile=kickoff.attendee_profile,
        )
    )
    log_event("enrichment_on_demand", session.id, status=result.status, provider=result.provider, error=result.error)
    if result.status == "pending":
        return None
    return _cached_enrichment(cache, kickoff.conference_id, kickoff.persona_id, session.id)


def start_session(
    persona_id: str,
    *,
    conference_id: Optional[str] = None,
    trainee_id: Optional[str] = None,
    difficulty: Difficulty = "medium",
    attendee_profile: Optional[str] = None,
    conference_context: Optional[str] = None,
    cache: Optional[EnrichmentCache] = None,
    now: Optional[str] = None,
) -> Session:
    """Create and persist a session in ``ICEBREAKER`` with the attendee's opening line.

    Stored records supply the profile and context; explicit text overrides them.
    Enrichment is attached only if already cached, never generated here.

    Raises:
        InvalidInputError: If no persona id is given or no profile can be resolved.
        NotFoundError: If a referenced conference or trainee does not exist.
    """

    if not persona_id or not persona_id.strip():
        raise InvalidInputError("persona_id is required", field="persona_id")

    persona = get_persona(persona_id)
    profile = attendee_profile or (persona.attendee_profile() if persona else None)
    if not profile:
        raise NotFoundError("persona", persona_id)

    conference = get_conference(conference_id) if conference_id else None
    if conference_id and conference is None:
        raise NotFoundError("conference", conference_id)
    trainee = get_trainee(trainee_id) if trainee_id else None
    if trainee_id and trainee is None:
        raise NotFoundError("trainee", trainee_id)

    timestamp = now or _now()
    session_id = str(uuid.uuid4())
    kickoff = Kickoff(
        persona_id=persona_id,
        persona_display_name=persona.title() if persona else None,
        conference_id=conference_id,
        conference_name=conference.name if conference else None,
        conference_context=conference_context or (conference.context() if conference else ""),
        attendee_profile=profile,
        difficulty=difficulty,
        enrichment=_cached_enrichment(cache or get_enrichment_cache(), conference_id, persona_id, session_id),
        trainee_id=trainee_id,
        trainee_name_short=trainee.short_name() if trainee else None,
        job_title=persona.job_title if persona else None,
    )
    session = Session(
        id=session_id,
        kickoff=kickoff,
        start_time=timestamp,
        transcript=[_message("attendee", opening_line(profile), timestamp)],
    )
    save_session(session)
    log_event(
        "session_started",
        session_id,
        state=session.current_state.value,
        persona_id=persona_id,
        conference_id=conference_id,
        difficulty=difficulty,
        cache="hit" if kickoff.enrichment else "miss",
    )
    return session


def create_invite(
    persona_id: str,
    conference_id: str,
    *,
    trainee_id: Optional[str] = None,
    difficulty: Difficulty = "medium",
    created_by: Optional[str] = None,
    cache: Optional[EnrichmentCache] = None,
    now: Optional[str] = None,
) -> InviteResult:
    """Start a session for a shareable token.

    The returned ``enrichment_input`` is what the caller should warm in the
    background when the session started without a cached enrichment.
    """

    if not conference_id:
        raise InvalidInputError("conference_id is required", field="conference_id")
    if get_persona(persona_id) is None:
        raise NotFoundError("persona", persona_id)

    session = start_session(
        persona_id,
        conference_id=conference_id,
        trainee_id=trainee_id,
        difficulty=difficulty,
        cache=cache,
        now=now,
    )
    invite = InviteRecord(
        token=secrets.token_urlsafe(16),
        session_id=session.id,
        created_at=session.start_time,
        conference_id=conference_id,
        persona_id=persona_id,
        trainee_id=trainee_id,
        created_by=created_by,
    )
    save_invite(invite)
    log_event("invite_created", session.id, token=invite.token, persona_id=persona_id)

    enrichment_input = None
    if session.kickoff.enrichment is None:
        enrichment_input = EnrichmentInput(
            conference_id=conference_id,
            persona_id=persona_id,
            trainee_id=trainee_id,
            conference_context=session.kickoff.conference_context,
            attendee_profile=session.kickoff.attendee_profile,
        )
    return InviteResult(invite=invite, session=session, enrichment_input=enrichment_input)


def warm_enrichment(data: EnrichmentInput, cache: Optional[EnrichmentCache] = None) -> None:
    """Background warm-up; failures are logged, never raised."""

    try:
        result = (cache or get_enrichment_cache()).ensure(data)
    except Exception as exc:  # noqa: BLE001
        log_event("enrichment_warmup", None, status="failed", error=repr(exc))
        return
    log_event("enrichment_warmup", None, status=result.status, provider=result.provider, error=result.error)


def apply_turn(session_id: str, text: str, *, cache: Optional[EnrichmentCache] = None, now: Optional[str] = None) -> TurnResult:
    """Record a trainee message, reply as the attendee and advance when earned.

    Raises:
        InvalidInputError: If the message is empty or the session has ended.
        NotFoundError: If the session does not exist.
    """

    if not text or not text.strip():
        raise InvalidInputError("message text is required", field="text")
    session = get_session(session_id)
    if not session.active:
        raise InvalidInputError("session has ended", field="session_id")

    if session.kickoff.enrichment is None:
        session.kickoff.enrichment = _enrichment_on_demand(session, cache or get_enrichment_cache())

    timestamp = now or _now()
    session.transcript.append(_message("trainee", text.strip(), timestamp))
    state_before = session.current_state
    analysis = analyze_trainee_message(text, state_before)

    with span("attendee_reply", session_id, state=state_before.value) as fields:
        reply, provider = generate_reply(session)
        fields["provider"] = provider
    attendee = _message("attendee", reply, timestamp)
    session.transcript.append(attendee)

    committed = pending_outcome_for(reply)
    if committed is not None:
        session.pending_outcome = committed

    transition = progress(session, analysis, timestamp)
    save_session(session)
    log_event(
        "turn",
        session_id,
        state=state_before.value,
        to=transition.to.value if transition else None,
        outcome=session.pending_outcome,
        violations=len(analysis.issues),
        provider=provider,
    )
    return TurnResult(
        session=session,
        attendee_message=attendee,
        transition=transition,
        violations=analysis.issues,
        pending_outcome=session.pending_outcome,
        provider=provider,
    )


def _progress(session: Session) -> StateProgress:
    return StateProgress(reached=session.current_state.position, total=len(FUNNEL_ORDER) - 1)


def _feedback_text(session: Session, outcome: Outcome, ended_at: str) -> str:
    started = parse_timestamp(session.start_time)
    ended = parse_timestamp(ended_at)
    duration = max(0, int((ended - started).total_seconds()))
    reached = _progress(session)

    lines = [
        "SESSION FEEDBACK",
        f"Duration: {duration // 60}m {duration % 60}s",
        f"Outcome: {outcome}",
        f"State progress: {reached.reached}/{reached.total}",
        "",
        "What you did well:",
    ]
    if not session.violations:
        lines.append("- Maintained discipline with product keywords")
    if session.state_history:
        lines.append(f"- Advanced the conversation through {len(session.state_history)} state(s)")
    lines += ["", "Where you could improve:"]
    lines += [f"- {violation}" for violation in session.violations]
    if reached.reached < 3:
        lines.append("- Focus on discovery before solution framing")
    lines += [
        "",
        "Persona alignment:",
        f"Hidden profile was used to generate responses appropriate to difficulty level: {session.kickoff.difficulty}",
        "",
        "Overall assessment:",
        OVERALL_ASSESSMENT.get(outcome, DEFAULT_ASSESSMENT),
        "",
        "State transitions:",
    ]
    lines += [f"{t.from_state.value} -> {t.to.value}" for t in session.state_history] or ["None"]
    lines += ["", "Remember: listen, discover pain, validate, then align to outcomes."]
    return "\n".join(lines)


def _record_score(session: Session, token: str) -> ScoreRecord:
    with span("score_session", session.id) as fields:
        record = score_session(session, token)
        fields.update(score=record.score, grade=record.grade, outcome=record.outcome)
    save_score(record)
    add_to_leaderboard_index(
        LeaderboardEntry(
            token=record.token,
            score=record.score,
            grade=record.grade,
            created_at=record.completed_at,
            conference_id=record.conference_id,
            conference_name=record.conference_name,
            persona_id=record.persona_id,
            persona_display_name=record.persona_display_name,
            job_title=record.job_title,
            difficulty=record.difficulty,
            trainee_id=record.trainee_id,
            trainee_name_short=record.trainee_name_short,
        )
    )
    return record


def end_session(session_id: str, *, now: Optional[str] = None) -> EndResult:
    """End the session from any state. Repeated calls return the stored result unchanged."""

    session = get_session(session_id)
    token = get_invite_for_session(session_id)

    if not session.active:
        feedback = next((m for m in session.transcript if m.id == session.feedback_message_id), None)
        return EndResult(
            feedback=feedback,
            outcome=session.outcome or outcome_for(session.current_state),
            state_progress=_progress(session),
            violations=list(session.violations),
            score=get_score(token) if token else None,
        )

    ended_at = now or _now()
    outcome = outcome_for(session.current_state)
    feedback = _message("system", _feedback_text(session, outcome, ended_at), ended_at)
    session.transcript.append(feedback)
    session.feedback_message_id = feedback.id
    session.active = False
    session.ended_at = ended_at
    session.outcome = outcome
    save_session(session)

    score = _record_score(session, token) if token else None
    log_event(
        "session_ended",
        session_id,
        state=session.current_state.value,
        outcome=outcome,
        score=score.score if score else None,
        grade=score.grade if score else None,
    )
    return EndResult(
        feedback=feedback,
        outcome=outcome,
        state_progress=_progress(session),
        violations=list(session.violations),
        score=score,
    )


def complete_session(session_id: str, *, now: Optional[str] = None) -> CompleteResult:
    """Close the session with the action matching its pending outcome.

    Raises:
        InvalidInputError: If the session has already ended.
    """

    session = get_session(session_id)
    if not session.active:
        raise InvalidInputError("session has already ended", field="session_id")

    completed_at = now or _now()
    outcome: Outcome = session.pending_outcome or "POLITE_EXIT"
    action = outcome_action(outcome)
    session.transcript.append(_message("system", action.system_message, completed_at))
    session.active = False
    session.ended_at = completed_at
    session.outcome = outcome
    save_session(session)

    token = get_invite_for_session(session_id)
    score = _record_score(session, token) if token else None
    log_event(
        "session_completed",
        session_id,
        state=session.current_state.value,
        outcome=outcome,
        score=score.score if score else None,
        grade=score.grade if score else None,
    )
    return CompleteResult(session=session, outcome=outcome, action=action, score=score)


def get_trainer_feedback(session_id: str) -> Optional[TrainerFeedback]:
    return get_session(session_id).trainer_feedback


def save_trainer_feedback(
    session_id: str,
    guidance: str,
    *,
    apply_to_scenario: bool = False,
    updated_by: Optional[str] = None,
) -> TrainerFeedback:
    if not guidance or not guidance.strip():
        raise InvalidInputError("guidance is required", field="guidance")
    session = get_session(session_id)
    session.trainer_feedback = TrainerFeedback(
        guidance=guidance.strip(),
        apply_to_scenario=apply_to_scenario,
        updated_at=_now(),
        updated_by=updated_by,
    )
    save_session(session)
    log_event("trainer_feedback", session_id, apply_to_scenario=apply_to_scenario, length=len(guidance))
    return session.trainer_feedback


def get_score_for_token(token: str) -> ScoreRecord:
    record = get_score(token)
    if record is None:
        raise NotFoundError("score", token)
    return record


def get_review(token: str) -> ReviewResult:
    """Trainer view of an invite's session; the hidden attendee profile is withheld."""

    invite = get_invite(token)
    if invite is None:
        raise NotFoundError("invite", token)
    session = get_session(invite.session_id)
    kickoff = session.kickoff.model_dump(mode="json", exclude={"attendee_profile"})
    return ReviewResult(
        token=token,
        session_id=session.id,
        kickoff=kickoff,
        current_state=session.current_state.value,
        transcript=session.transcript,
        violations=session.violations,
        active=session.active,
        outcome=session.outcome,
        score=get_score(token),
    )


__all__ = [
    "CompleteResult",
    "EndResult",
    "InviteResult",
    "ReviewResult",
    "StateProgress",
    "TurnResult",
    "apply_turn",
    "complete_session",
    "create_invite",
    "end_session",
    "get_review",
    "get_score_for_token",
    "get_session",
    "get_trainer_feedback",
    "save_trainer_feedback",
    "start_session",
    "warm_enrichment",
]
