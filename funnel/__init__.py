"""Discovery funnel state machine."""
from .machine import (
    TurnAnalysis,
    advance,
    analyze_trainee_message,
    outcome_for,
    progress,
    should_advance,
    states_reached,
)
from .state import FUNNEL_ORDER, INITIAL_STATE, FunnelState, Kickoff, Session, StateTransition, TrainerFeedback, TranscriptMessage

__all__ = [
    "FUNNEL_ORDER",
    "INITIAL_STATE",
    "FunnelState",
    "Kickoff",
    "Session",
    "StateTransition",
    "TrainerFeedback",
    "TranscriptMessage",
    "TurnAnalysis",
    "advance",
    "analyze_trainee_message",
    "outcome_for",
    "progress",
    "should_advance",
    "states_reached",
]
