import os
import sys
import tempfile
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from storage.migrate import migrate
from config.settings import settings
from config.registry import ATTENDEE_KEY, ENRICHMENT_KEY, bind_model, unbind_model
from config.simulator import reload_rules
from services.enrichment_cache import get_enrichment_cache


@pytest.fixture(autouse=True)
def tmp_db(monkeypatch):
    td = tempfile.TemporaryDirectory()
    db_path = os.path.join(td.name, "test.db")
    monkeypatch.setattr(settings, "DB_PATH", db_path, raising=False)
    monkeypatch.setattr(settings, "SIMULATOR_RULES_PATH", str(ROOT / "config" / "simulator.yaml"), raising=False)
    monkeypatch.setattr(settings, "LLM_CONFIG_PATH", str(ROOT / "config" / "llm_routes.json"), raising=False)
    migrate(db_path)
    reload_rules()
    try:
        yield
    finally:
        unbind_model(ENRICHMENT_KEY)
        unbind_model(ATTENDEE_KEY)
        get_enrichment_cache.cache_clear()
        td.cleanup()


@pytest.fixture
def fake_models():
    bind_model(ATTENDEE_KEY, lambda session, messages: "Sure, tell me more about that.")
    return True


@pytest.fixture
def seeded_records():
    from agents.types import ConferenceRecord, PersonaRecord, TraineeRecord
    from storage.records import put_conference, put_persona, put_trainee

    put_persona(
        PersonaRecord(
            id="p-sre",
            persona_type="Senior SRE",
            display_name="Guarded SRE",
            job_title="Site Reliability Engineer",
            modifiers=["recent outage", "attached to current tools"],
            emotional_posture="guarded",
            tooling_bias="Datadog",
            otel_familiarity="aware",
        )
    )
    put_conference(
        ConferenceRecord(
            id="c-kubecon",
            name="KubeCon",
            themes=["incident response", "scale"],
            seniority_mix="mostly senior ICs",
        )
    )
    put_trainee(TraineeRecord(id="t-1", first_name="Sam", last_name="Rivera"))
    return {"persona_id": "p-sre", "conference_id": "c-kubecon", "trainee_id": "t-1"}
