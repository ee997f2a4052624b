"""Configuration package for the roleplay simulator."""
from .llm import ATTENDEE_TARGET, ENRICHMENT_TARGET, LlmConfig, LlmRoute, load_config, resolve_route
from .registry import ATTENDEE_KEY, ENRICHMENT_KEY, bind_model, get_model, is_bound, unbind_model
from .settings import Settings, settings

__all__ = [
    "ATTENDEE_TARGET",
    "ENRICHMENT_TARGET",
    "LlmConfig",
    "LlmRoute",
    "load_config",
    "resolve_route",
    "ATTENDEE_KEY",
    "ENRICHMENT_KEY",
    "bind_model",
    "get_model",
    "is_bound",
    "unbind_model",
    "Settings",
    "settings",
]
