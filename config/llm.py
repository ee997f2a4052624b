"""LLM route configuration loaded from JSON."""
from __future__ import annotations

from pathlib import Path
from typing import Dict

from pydantic import BaseModel, Field


class LlmRoute(BaseModel):
    """LLM endpoint configuration."""

    name: str
    base_url: str
    endpoint: str
    model: str
    timeout_s: float = Field(ge=0.1)
    max_retries: int = Field(default=2, ge=0)
    api_key_env: str | None = None
    response_format: str | None = None
    extra_headers: Dict[str, str] = Field(default_factory=dict)
    sequential: bool = False
    enforce_json: bool = True
    temperature: float | None = None


class LlmConfig(BaseModel):
    """Routes plus the target → route mapping."""

    llm_routes: Dict[str, LlmRoute]
    registry: Dict[str, str]


ENRICHMENT_TARGET = "enrichment"
ATTENDEE_TARGET = "attendee"


def load_config(path: Path) -> LlmConfig:
    """Load configuration from disk."""

    data = path.read_text(encoding="utf-8")
    return LlmConfig.model_validate_json(data)


def resolve_route(cfg: LlmConfig, target: str) -> LlmRoute:
    """Return the route bound to ``target``."""

    if target not in cfg.registry:
        raise KeyError(f"Registry entry missing for '{target}'")
    route_id = cfg.registry[target]
    if route_id not in cfg.llm_routes:
        raise KeyError(f"Route '{route_id}' missing for '{target}'")
    return cfg.llm_routes[route_id]
