"""FastAPI routes for roleplay sessions, enrichment and the leaderboard."""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Header, HTTPException, Query, Response

from agents.types import Enrichment, EnrichmentInput, EnsureResult, InsightsSummary, LeaderboardPage, ScoreRecord
from api.schemas import (
    FeedbackReq,
    FeedbackResp,
    InvalidateReq,
    InvalidateResp,
    InviteReq,
    InviteResp,
    MessageReq,
    MessageResp,
    StartReq,
)
from config.settings import settings
from funnel.state import Session
from services import sessions as session_service
from services.enrichment_cache import EnrichmentCache, get_enrichment_cache
from services.errors import DependencyFailure, InvalidInputError, NotFoundError, SimulatorError
from services.leaderboard import query_insights, query_leaderboard
from services.sessions import CompleteResult, EndResult, ReviewResult


router = APIRouter(prefix="/api")


def _http_error(exc: SimulatorError) -> HTTPException:
    if isinstance(exc, InvalidInputError):
        return HTTPException(status_code=400, detail=str(exc))
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, DependencyFailure):
        return HTTPException(status_code=502, detail=str(exc))
    return HTTPException(status_code=500, detail=str(exc))


def _require_admin(x_admin_token: Optional[str]) -> None:
    if not settings.ADMIN_TOKEN or x_admin_token != settings.ADMIN_TOKEN:
        raise HTTPException(status_code=401, detail="Admin token required")


@router.post("/invite/create", response_model=InviteResp, status_code=201)
def create_invite(
    req: InviteReq,
    background: BackgroundTasks,
    cache: EnrichmentCache = Depends(get_enrichment_cache),
) -> InviteResp:
    try:
        result = session_service.create_invite(
            req.persona_id,
            req.conference_id,
            trainee_id=req.trainee_id,
            difficulty=req.difficulty,
            created_by=req.created_by,
            cache=cache,
        )
    except SimulatorError as exc:
        raise _http_error(exc) from exc
    if result.enrichment_input is not None:
        background.add_task(session_service.warm_enrichment, result.enrichment_input, cache)
    return InviteResp(
        token=result.invite.token,
        session_id=result.session.id,
        session=result.session,
        enrichment_scheduled=result.enrichment_input is not None,
    )


@router.post("/session/start", response_model=Session, status_code=201)
def start_session(req: StartReq, cache: EnrichmentCache = Depends(get_enrichment_cache)) -> Session:
    try:
        return session_service.start_session(
            req.persona_id,
            conference_id=req.conference_id,
            trainee_id=req.trainee_id,
            difficulty=req.difficulty,
            attendee_profile=req.attendee_profile,
            conference_context=req.conference_context,
            cache=cache,
        )
    except SimulatorError as exc:
        raise _http_error(exc) from exc


@router.get("/session/{session_id}", response_model=Session)
def get_session(session_id: str) -> Session:
    try:
        return session_service.get_session(session_id)
    except SimulatorError as exc:
        raise _http_error(exc) from exc


@router.post("/session/{session_id}/message", response_model=MessageResp)
def post_message(
    session_id: str,
    req: MessageReq,
    cache: EnrichmentCache = Depends(get_enrichment_cache),
) -> MessageResp:
    try:
        result = session_service.apply_turn(session_id, req.text, cache=cache)
    except SimulatorError as exc:
        raise _http_error(exc) from exc
    return MessageResp(
        session=result.session,
        attendee_message=result.attendee_message,
        transition=result.transition,
        violations=result.violations,
        pending_outcome=result.pending_outcome,
    )


@router.post("/session/{session_id}/end", response_model=EndResult)
def end_session(session_id: str) -> EndResult:
    try:
        return session_service.end_session(session_id)
    except SimulatorError as exc:
        raise _http_error(exc) from exc


@router.post("/session/{session_id}/complete", response_model=CompleteResult)
def complete_session(session_id: str) -> CompleteResult:
    try:
        return session_service.complete_session(session_id)
    except SimulatorError as exc:
        raise _http_error(exc) from exc


@router.get("/session/{session_id}/feedback", response_model=FeedbackResp)
def get_feedback(session_id: str) -> FeedbackResp:
    try:
        return FeedbackResp(feedback=session_service.get_trainer_feedback(session_id))
    except SimulatorError as exc:
        raise _http_error(exc) from exc


@router.post("/session/{session_id}/feedback", response_model=FeedbackResp)
def save_feedback(session_id: str, req: FeedbackReq) -> FeedbackResp:
    try:
        feedback = session_service.save_trainer_feedback(
            session_id,
            req.guidance,
            apply_to_scenario=req.apply_to_scenario,
            updated_by=req.updated_by,
        )
    except SimulatorError as exc:
        raise _http_error(exc) from exc
    return FeedbackResp(feedback=feedback)


@router.get("/review/{token}", response_model=ReviewResult)
def get_review(token: str) -> ReviewResult:
    try:
        return session_service.get_review(token)
    except SimulatorError as exc:
        raise _http_error(exc) from exc


@router.get("/score/{token}", response_model=ScoreRecord)
def get_score(token: str) -> ScoreRecord:
    try:
        return session_service.get_score_for_token(token)
    except SimulatorError as exc:
        raise _http_error(exc) from exc


@router.get("/enrichment/{conference_id}/{persona_id}", response_model=Enrichment)
def get_enrichment(
    conference_id: str,
    persona_id: str,
    cache: EnrichmentCache = Depends(get_enrichment_cache),
) -> Enrichment:
    try:
        enrichment = cache.get(conference_id, persona_id)
    except SimulatorError as exc:
        raise _http_error(exc) from exc
    if enrichment is None:
        raise HTTPException(status_code=404, detail="Enrichment not found")
    return enrichment


@router.post("/enrichment", response_model=Enrichment)
def generate_enrichment(req: EnrichmentInput, cache: EnrichmentCache = Depends(get_enrichment_cache)) -> Enrichment:
    try:
        return cache.get_or_generate(req)
    except SimulatorError as exc:
        raise _http_error(exc) from exc


@router.post("/enrichment/ensure", response_model=EnsureResult)
def ensure_enrichment(
    req: EnrichmentInput,
    response: Response,
    cache: EnrichmentCache = Depends(get_enrichment_cache),
) -> EnsureResult:
    result = cache.ensure(req)
    if result.status == "pending":
        response.status_code = 202
    return result


@router.post("/admin/enrichment/invalidate", response_model=InvalidateResp)
def invalidate_enrichment(
    req: InvalidateReq,
    x_admin_token: Optional[str] = Header(default=None),
    cache: EnrichmentCache = Depends(get_enrichment_cache),
) -> InvalidateResp:
    _require_admin(x_admin_token)
    try:
        removed = cache.invalidate(req.conference_id, req.persona_id)
    except SimulatorError as exc:
        raise _http_error(exc) from exc
    return InvalidateResp(removed=removed)


@router.get("/leaderboard", response_model=LeaderboardPage)
def leaderboard(
    range_: Optional[str] = Query(default=None, alias="range"),
    conference_id: Optional[str] = None,
    persona_id: Optional[str] = None,
    trainee_id: Optional[str] = None,
    job_title: Optional[str] = None,
    limit: Optional[int] = None,
) -> LeaderboardPage:
    try:
        return query_leaderboard(
            range_=range_,
            conference_id=conference_id,
            persona_id=persona_id,
            trainee_id=trainee_id,
            job_title=job_title,
            limit=limit,
        )
    except SimulatorError as exc:
        raise _http_error(exc) from exc


@router.get("/insights", response_model=InsightsSummary)
def insights(
    range_: Optional[str] = Query(default=None, alias="range"),
    conference_id: Optional[str] = None,
    persona_id: Optional[str] = None,
    trainee_id: Optional[str] = None,
    job_title: Optional[str] = None,
) -> InsightsSummary:
    try:
        return query_insights(
            range_=range_,
            conference_id=conference_id,
            persona_id=persona_id,
            trainee_id=trainee_id,
            job_title=job_title,
        )
    except SimulatorError as exc:
        raise _http_error(exc) from exc
