"""Pydantic schemas for the roleplay HTTP API."""
from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field

from agents.types import Difficulty, Outcome
from funnel.state import Session, StateTransition, TrainerFeedback, TranscriptMessage


class StartReq(BaseModel):
    persona_id: str = Field(min_length=1)
    conference_id: Optional[str] = None
    trainee_id: Optional[str] = None
    difficulty: Difficulty = "medium"
    attendee_profile: Optional[str] = None
    conference_context: Optional[str] = None


class InviteReq(BaseModel):
    persona_id: str = Field(min_length=1)
    conference_id: str = Field(min_length=1)
    trainee_id: Optional[str] = None
    difficulty: Difficulty = "medium"
    created_by: Optional[str] = None


class InviteResp(BaseModel):
    token: str
    session_id: str
    session: Session
    enrichment_scheduled: bool


class MessageReq(BaseModel):
    text: str


class MessageResp(BaseModel):
    session: Session
    attendee_message: TranscriptMessage
    transition: Optional[StateTransition] = None
    violations: List[str] = Field(default_factory=list)
    pending_outcome: Optional[Outcome] = None


class FeedbackReq(BaseModel):
    guidance: str
    apply_to_scenario: bool = False
    updated_by: Optional[str] = None


class FeedbackResp(BaseModel):
    feedback: Optional[TrainerFeedback] = None


class InvalidateReq(BaseModel):
    conference_id: Optional[str] = None
    persona_id: Optional[str] = None


class InvalidateResp(BaseModel):
    removed: int
