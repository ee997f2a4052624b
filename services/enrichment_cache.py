"""Store-backed enrichment cache with a bounded warm-up path.

``ensure`` races generation against ``ENRICHMENT_TIMEOUT_S``. Only the caller
persists, and only when generation finished first; an attempt that lost the
race is marked abandoned and its result is dropped.
"""
from __future__ import annotations

import threading
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from functools import lru_cache
from typing import Callable, Optional
from urllib.parse import quote

from agents.enrichment_provider import enrich
from agents.types import Enrichment, EnrichmentInput, EnsureResult
from config.settings import settings
from observability.logger import log_event
from observability.tracing import span
from storage.kv import kv_delete, kv_delete_prefix, kv_get, kv_set_if_absent

from .errors import DependencyFailure, DependencyTimeout, InvalidInputError

PREFIX = "enrichment:"


def _encode(part: str) -> str:
    return quote(part, safe="")


def enrichment_key(conference_id: str, persona_id: str) -> str:
    """Store key for one (conference, persona) pair; each part is percent-encoded so ``:`` cannot collide."""

    return f"{PREFIX}{_encode(conference_id)}:{_encode(persona_id)}"


class _Attempt:
    """One submitted generation; ``abandoned`` is set once the caller stops waiting."""

    def __init__(self, key: str):
        self.key = key
        self.abandoned = threading.Event()


class EnrichmentCache:
    def __init__(
        self,
        provider: Callable[[EnrichmentInput], Enrichment] = enrich,
        *,
        timeout_s: Optional[float] = None,
        max_workers: Optional[int] = None,
    ):
        self._provider = provider
        self._timeout_s = timeout_s
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers or settings.ENRICHMENT_WORKERS,
            thread_name_prefix="enrichment",
        )

    @property
    def timeout_s(self) -> float:
        return self._timeout_s if self._timeout_s is not None else settings.ENRICHMENT_TIMEOUT_S

    def get(self, conference_id: str, persona_id: str) -> Optional[Enrichment]:
        data = kv_get(enrichment_key(conference_id, persona_id))
        return Enrichment.model_validate(data) if data is not None else None

    def _persist(self, enrichment: Enrichment) -> Enrichment:
        """Write ``enrichment`` unless another writer got there first; return the stored value."""

        key = enrichment_key(enrichment.conference_id, enrichment.persona_id)
        if kv_set_if_absent(key, enrichment.model_dump(mode="json")):
            return enrichment
        log_event("enrichment_write_skipped", None, key=key)
        return self.get(enrichment.conference_id, enrichment.persona_id) or enrichment

    def get_or_generate(self, data: EnrichmentInput) -> Enrichment:
        """Return the cached enrichment or generate one without a deadline.

        Raises:
            DependencyFailure: If the provider or the store fails.
        """

        cached = self.get(data.conference_id, data.persona_id)
        if cached is not None:
            log_event("enrichment_lookup", None, cache="hit", provider=cached.provider)
            return cached
        with span("enrichment_generate", None, conference_id=data.conference_id, persona_id=data.persona_id) as fields:
            generated = self._provider(data)
            fields["provider"] = generated.provider
        return self._persist(generated)

    def _run(self, data: EnrichmentInput, attempt: _Attempt) -> Optional[Enrichment]:
        if attempt.abandoned.is_set():
            log_event("enrichment_skipped", None, key=attempt.key)
            return None
        result = self._provider(data)
        if attempt.abandoned.is_set():
            log_event("enrichment_discarded", None, key=attempt.key, provider=result.provider)
        return result

    def _await(self, future: "Future[Enrichment]", attempt: _Attempt) -> Enrichment:
        try:
            return future.result(timeout=self.timeout_s)
        except FutureTimeout as exc:
            attempt.abandoned.set()
            future.cancel()
            raise DependencyTimeout(f"enrichment exceeded {self.timeout_s}s") from exc

    def ensure(self, data: EnrichmentInput) -> EnsureResult:
        """Make sure an enrichment exists, waiting at most ``timeout_s``.

        Never raises for provider failures or timeouts; those report ``pending``
        and leave the store untouched.
        """

        key = enrichment_key(data.conference_id, data.persona_id)
        try:
            cached = self.get(data.conference_id, data.persona_id)
        except DependencyFailure as exc:
            log_event("enrichment_ensure", None, status="pending", error=str(exc))
            return EnsureResult(status="pending", error=str(exc))
        if cached is not None:
            log_event("enrichment_ensure", None, status="cached", provider=cached.provider)
            return EnsureResult(status="cached", provider=cached.provider)

        attempt = _Attempt(key)
        future = self._executor.submit(self._run, data, attempt)
        try:
            generated = self._await(future, attempt)
            stored = self._persist(generated)
        except DependencyTimeout as exc:
            log_event("enrichment_ensure", None, status="pending", error="timeout", ms=int(self.timeout_s * 1000))
            return EnsureResult(status="pending", error=str(exc))
        except DependencyFailure as exc:
            log_event("enrichment_ensure", None, status="pending", error=str(exc))
            return EnsureResult(status="pending", error=str(exc))
        except Exception as exc:  # noqa: BLE001
            log_event("enrichment_ensure", None, status="pending", error=repr(exc))
            return EnsureResult(status="pending", error=f"enrichment provider failed: {exc}")
        log_event("enrichment_ensure", None, status="fresh", provider=stored.provider)
        return EnsureResult(status="fresh", provider=stored.provider)

    def invalidate(self, conference_id: Optional[str] = None, persona_id: Optional[str] = None) -> int:
        """Drop one entry, every entry of a conference, or the whole cache."""

        if persona_id and not conference_id:
            raise InvalidInputError("conference_id is required when persona_id is given", field="conference_id")
        if conference_id and persona_id:
            removed = 1 if kv_delete(enrichment_key(conference_id, persona_id)) else 0
        elif conference_id:
            removed = kv_delete_prefix(f"{PREFIX}{_encode(conference_id)}:")
        else:
            removed = kv_delete_prefix(PREFIX)
        log_event("enrichment_invalidate", None, conference_id=conference_id, persona_id=persona_id, removed=removed)
        return removed

    def shutdown(self, wait: bool = False) -> None:
        self._executor.shutdown(wait=wait)


@lru_cache(maxsize=1)
def get_enrichment_cache() -> EnrichmentCache:
    """Process-wide cache instance used by the API and session services."""

    return EnrichmentCache()


__all__ = ["EnrichmentCache", "enrichment_key", "get_enrichment_cache"]
