"""Error taxonomy shared by the simulator services."""
from __future__ import annotations

from typing import Optional


class SimulatorError(RuntimeError):
    """Base class for simulator failures."""


class InvalidInputError(SimulatorError):
    """Missing or malformed caller input; never retried."""

    def __init__(self, message: str, field: Optional[str] = None) -> None:
        super().__init__(message)
        self.field = field


class NotFoundError(SimulatorError):
    """Unknown session, invite, score or record id."""

    def __init__(self, kind: str, ident: str) -> None:
        super().__init__(f"{kind} not found: {ident}")
        self.kind = kind
        self.ident = ident


class DependencyFailure(SimulatorError):
    """Store or provider error."""


class DependencyTimeout(DependencyFailure):
    """A dependency exceeded its deadline."""


__all__ = [
    "DependencyFailure",
    "DependencyTimeout",
    "InvalidInputError",
    "NotFoundError",
    "SimulatorError",
]
