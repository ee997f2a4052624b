"""YAML-driven simulator rules: state behaviour, keyword discipline and turn limits."""
from __future__ import annotations

import os
import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from config.settings import settings


@dataclass
class StateRules:
    """Attendee guidance for a single funnel state."""

    description: str = ""
    attendee_behavior: List[str] = field(default_factory=list)


DEFAULT_RULES: dict = {
    "version": 1,
    "product_name": "Honeycomb",
    "states": {
        "ICEBREAKER": {
            "description": "Attendee is guarded and only passing by the booth.",
            "attendee_behavior": ["brief answers", "polite but non-committal", "wary of a pitch"],
        },
        "EXPLORATION": {
            "description": "Attendee shares role and tooling when asked open questions.",
            "attendee_behavior": ["describes role", "mentions current stack", "no pain volunteered yet"],
        },
        "PAIN_DISCOVERY": {
            "description": "Attendee reveals operational pain once it feels heard.",
            "attendee_behavior": ["vents about incidents", "shares a war story when validated"],
        },
        "SOLUTION_FRAMING": {
            "description": "Attendee weighs whether the approach fits their problem.",
            "attendee_behavior": ["asks evaluation questions", "raises objections", "tests for hype"],
        },
        "OUTCOME": {
            "description": "The conversation is concluding.",
            "attendee_behavior": [],
        },
    },
    "banned_product_keywords": [
        "bubbleup",
        "refinery",
        "honeycomb query",
        "burn alerts",
        "wide events",
    ],
    "pitch_signals": [
        "honeycomb",
        "our product",
        "our platform",
        "we do",
        "we help",
        "we're an observability platform",
    ],
    "otel_terms": ["opentelemetry", "otel"],
    "otel_question_terms": ["opentelemetry", "otel", "instrument", "collector"],
    "turn_limits": {"easy": 10, "medium": 12, "hard": 14},
}


def _load_yaml(path: str) -> dict:
    import yaml  # local import keeps module import cheap until rules are read

    with open(path, "r", encoding="utf-8") as handle:
        return yaml.safe_load(handle) or {}


class SimulatorRules:
    """Load simulator rules from YAML and fall back to built-in defaults."""

    def __init__(self, path: Optional[str] = None):
        self.path = path or settings.SIMULATOR_RULES_PATH
        self._mtime = 0.0
        self._config: dict = {}
        self.reload_if_changed(force=True)

    def reload_if_changed(self, force: bool = False) -> None:
        """Reload YAML configuration when the file timestamp changes."""

        try:
            stat = os.stat(self.path)
            if not force and stat.st_mtime <= self._mtime:
                return
            cfg = _load_yaml(self.path)
            self._mtime = stat.st_mtime
        except FileNotFoundError:
            cfg = {}
            self._mtime = time.time()

        merged = dict(DEFAULT_RULES)
        merged.update({key: value for key, value in cfg.items() if value is not None})
        self._config = merged

    @property
    def product_name(self) -> str:
        return str(self._config.get("product_name", ""))

    def state(self, name: str) -> StateRules:
        raw = (self._config.get("states") or {}).get(name) or {}
        return StateRules(
            description=str(raw.get("description", "")),
            attendee_behavior=[str(item) for item in raw.get("attendee_behavior", []) or []],
        )

    def _lowered(self, key: str) -> List[str]:
        return [str(item).lower() for item in self._config.get(key, []) or []]

    @property
    def banned_keywords(self) -> List[str]:
        return self._lowered("banned_product_keywords")

    @property
    def pitch_signals(self) -> List[str]:
        return self._lowered("pitch_signals")

    @property
    def otel_terms(self) -> List[str]:
        return self._lowered("otel_terms")

    @property
    def otel_question_terms(self) -> List[str]:
        return self._lowered("otel_question_terms")

    @property
    def turn_limits(self) -> Dict[str, int]:
        limits = self._config.get("turn_limits") or {}
        return {str(key): int(value) for key, value in limits.items()}

    def turn_limit(self, difficulty: Optional[str]) -> int:
        limits = self.turn_limits
        return limits.get(difficulty or "medium", limits.get("medium", 12))


_rules: Optional[SimulatorRules] = None


def simulator_rules() -> SimulatorRules:
    global _rules
    if _rules is None:
        _rules = SimulatorRules()
    _rules.reload_if_changed()
    return _rules


def reload_rules(path: Optional[str] = None) -> SimulatorRules:
    """Replace the active rules, re-reading ``path`` (or the configured file)."""

    global _rules
    _rules = SimulatorRules(path)
    return _rules


__all__ = ["DEFAULT_RULES", "SimulatorRules", "StateRules", "reload_rules", "simulator_rules"]
