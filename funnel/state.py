"""Session state and the ordered discovery funnel."""
from __future__ import annotations

import datetime as dt
from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from agents.types import Difficulty, Enrichment, Outcome

MessageType = Literal["system", "trainee", "attendee"]


def parse_timestamp(value: str) -> dt.datetime:
    """Parse an ISO-8601 timestamp; a naive value is taken as UTC."""

    parsed = dt.datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=dt.timezone.utc)
    return parsed


class FunnelState(str, Enum):
    """Conversation stages in their fixed forward order."""

    ICEBREAKER = "ICEBREAKER"
    EXPLORATION = "EXPLORATION"
    PAIN_DISCOVERY = "PAIN_DISCOVERY"
    SOLUTION_FRAMING = "SOLUTION_FRAMING"
    OUTCOME = "OUTCOME"

    @property
    def position(self) -> int:
        return FUNNEL_ORDER.index(self)

    @property
    def is_last(self) -> bool:
        return self.position == len(FUNNEL_ORDER) - 1

    def next(self) -> "FunnelState":
        """Return the following state; ``OUTCOME`` maps to itself."""
        if self.is_last:
            return self
        return FUNNEL_ORDER[self.position + 1]


FUNNEL_ORDER: tuple[FunnelState, ...] = tuple(FunnelState)
INITIAL_STATE = FunnelState.ICEBREAKER


class TranscriptMessage(BaseModel):
    id: str
    type: MessageType
    text: str
    timestamp: str


class StateTransition(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    from_state: FunnelState = Field(alias="from")
    to: FunnelState
    timestamp: str

    @model_validator(mode="after")
    def _forward_only(self) -> "StateTransition":
        if self.to.position <= self.from_state.position:
            raise ValueError(f"transition must move forward: {self.from_state.value} -> {self.to.value}")
        return self


class Kickoff(BaseModel):
    persona_id: str
    persona_display_name: Optional[str] = None
    conference_id: Optional[str] = None
    conference_name: Optional[str] = None
    conference_context: str = ""
    attendee_profile: str
    difficulty: Difficulty = "medium"
    enrichment: Optional[Enrichment] = None
    trainee_id: Optional[str] = None
    trainee_name_short: Optional[str] = None
    job_title: Optional[str] = None


class TrainerFeedback(BaseModel):
    guidance: str
    apply_to_scenario: bool = False
    updated_at: str
    updated_by: Optional[str] = None


class Session(BaseModel):
    """Serializable roleplay session."""

    id: str
    current_state: FunnelState = INITIAL_STATE
    state_history: List[StateTransition] = Field(default_factory=list)
    transcript: List[TranscriptMessage] = Field(default_factory=list)
    violations: List[str] = Field(default_factory=list)
    kickoff: Kickoff
    start_time: str
    active: bool = True

    pending_outcome: Optional[Outcome] = None
    outcome: Optional[Outcome] = None
    ended_at: Optional[str] = None
    feedback_message_id: Optional[str] = None
    trainer_feedback: Optional[TrainerFeedback] = None

    @model_validator(mode="after")
    def _history_matches_state(self) -> "Session":
        expected = self.state_history[-1].to if self.state_history else INITIAL_STATE
        if self.current_state != expected:
            raise ValueError(
                f"current_state {self.current_state.value} does not match history tail {expected.value}"
            )
        return self

    def to_record(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


__all__ = [
    "FUNNEL_ORDER",
    "FunnelState",
    "INITIAL_STATE",
    "Kickoff",
    "MessageType",
    "Session",
    "StateTransition",
    "TrainerFeedback",
    "TranscriptMessage",
    "parse_timestamp",
]
