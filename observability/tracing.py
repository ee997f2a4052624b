"""Span helper for timing dependency calls."""
from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional

from .logger import log_event


@contextmanager
def span(name: str, session_id: Optional[str] = None, **attrs: Any) -> Iterator[Dict[str, Any]]:
    """Time the enclosed block and log a ``span`` event.

    The yielded dict collects attributes set inside the block; failures are
    recorded on the event and re-raised.
    """

    fields: Dict[str, Any] = dict(attrs)
    start = time.monotonic()
    try:
        yield fields
    except Exception as exc:
        fields["error"] = type(exc).__name__
        raise
    finally:
        fields["ms"] = int((time.monotonic() - start) * 1000)
        level = logging.WARNING if "error" in fields else logging.INFO
        log_event("span", session_id, level=level, span=name, **fields)


__all__ = ["span"]
