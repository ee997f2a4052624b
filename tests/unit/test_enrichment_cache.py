import threading

import pytest

from agents.enrichment_provider import mock_enrich
from agents.types import Enrichment, EnrichmentInput
from services.enrichment_cache import EnrichmentCache, enrichment_key
from services.errors import DependencyFailure, InvalidInputError
from storage.kv import kv_get


def _input(conference_id="c-1", persona_id="p-1") -> EnrichmentInput:
    return EnrichmentInput(
        conference_id=conference_id,
        persona_id=persona_id,
        conference_context="Conference: SREcon\nThemes: incident response",
        attendee_profile="Persona: SRE\nEmotional posture: guarded\nOpenTelemetry familiarity: aware",
    )


def _enrichment(data: EnrichmentInput, provider: str = "fake") -> Enrichment:
    return Enrichment(
        **mock_enrich(data).model_dump(),
        generated_at="2026-10-18T12:00:00+00:00",
        conference_id=data.conference_id,
        persona_id=data.persona_id,
        provider=provider,
    )


def test_ensure_fresh_then_cached():
    calls = []

    def provider(data):
        calls.append(data.persona_id)
        return _enrichment(data)

    cache = EnrichmentCache(provider, timeout_s=2.0)
    try:
        first = cache.ensure(_input())
        assert first.status == "fresh"
        assert first.provider == "fake"
        assert cache.get("c-1", "p-1") is not None

        second = cache.ensure(_input())
        assert second.status == "cached"
        assert calls == ["p-1"]
    finally:
        cache.shutdown()


def test_ensure_timeout_reports_pending_and_never_persists():
    release = threading.Event()
    finished = threading.Event()

    def slow_provider(data):
        release.wait(5)
        try:
            return _enrichment(data)
        finally:
            finished.set()

    cache = EnrichmentCache(slow_provider, timeout_s=0.05)
    try:
        result = cache.ensure(_input())
        assert result.status == "pending"
        assert "exceeded" in (result.error or "")
        release.set()
        assert finished.wait(5)
        assert kv_get(enrichment_key("c-1", "p-1")) is None
    finally:
        release.set()
        cache.shutdown()


def test_ensure_provider_failure_is_pending():
    def broken(data):
        raise DependencyFailure("provider down")

    cache = EnrichmentCache(broken, timeout_s=1.0)
    try:
        result = cache.ensure(_input())
        assert result.status == "pending"
        assert result.error == "provider down"
        assert cache.get("c-1", "p-1") is None
    finally:
        cache.shutdown()


def test_get_or_generate_raises_on_provider_failure():
    def broken(data):
        raise DependencyFailure("provider down")

    cache = EnrichmentCache(broken)
    try:
        with pytest.raises(DependencyFailure):
            cache.get_or_generate(_input())
    finally:
        cache.shutdown()


def test_first_persisted_value_wins():
    cache = EnrichmentCache(lambda data: _enrichment(data, provider="first"))
    try:
        stored = cache.get_or_generate(_input())
        assert stored.provider == "first"
        # a concurrent writer that lost the race gets the stored value back
        assert cache._persist(_enrichment(_input(), provider="second")).provider == "first"
        assert cache.get("c-1", "p-1").provider == "first"
    finally:
        cache.shutdown()


def test_invalidate_single_conference_and_all():
    cache = EnrichmentCache(lambda data: _enrichment(data))
    try:
        for conference_id, persona_id in [("c-1", "p-1"), ("c-1", "p-2"), ("c-2", "p-1")]:
            cache.get_or_generate(_input(conference_id, persona_id))

        assert cache.invalidate("c-1", "p-1") == 1
        assert cache.get("c-1", "p-1") is None
        assert cache.invalidate("c-1") == 1
        assert cache.get("c-2", "p-1") is not None
        assert cache.invalidate() == 1
        assert cache.get("c-2", "p-1") is None
        with pytest.raises(InvalidInputError):
            cache.invalidate(persona_id="p-1")
    finally:
        cache.shutdown()


def test_timed_out_attempts_do_not_pile_up_on_a_hanging_provider():
    release = threading.Event()
    calls = []

    def hanging(data):
        calls.append(data.persona_id)
        release.wait(5)
        return _enrichment(data)

    cache = EnrichmentCache(hanging, timeout_s=0.05, max_workers=1)
    try:
        statuses = [cache.ensure(_input()).status for _ in range(5)]
        assert statuses == ["pending"] * 5
    finally:
        release.set()
        cache.shutdown(wait=True)
    assert len(calls) <= 1
    # an attempt that did run finished after its caller gave up
    assert cache.get("c-1", "p-1") is None


def test_ids_containing_colons_do_not_collide():
    cache = EnrichmentCache(lambda data: _enrichment(data), timeout_s=2.0)
    try:
        assert enrichment_key("a:b", "c") != enrichment_key("a", "b:c")
        cache.get_or_generate(_input("a:b", "c"))
        assert cache.get("a", "b:c") is None
        assert cache.get("a:b", "c").persona_id == "c"

        assert cache.invalidate("a") == 0
        assert cache.get("a:b", "c") is not None
        assert cache.invalidate("a:b") == 1
        assert cache.get("a:b", "c") is None
    finally:
        cache.shutdown()
