"""Read-only lookups for persona, conference and trainee records.

Records are maintained by an external editor; ``put_*`` exists for seeding
and tests.
"""
from __future__ import annotations

from typing import Optional

from agents.types import ConferenceRecord, PersonaRecord, TraineeRecord

from .kv import kv_get, kv_set


def get_persona(persona_id: str) -> Optional[PersonaRecord]:
    data = kv_get(f"persona:{persona_id}")
    return PersonaRecord.model_validate(data) if data is not None else None


def get_conference(conference_id: str) -> Optional[ConferenceRecord]:
    data = kv_get(f"conference:{conference_id}")
    return ConferenceRecord.model_validate(data) if data is not None else None


def get_trainee(trainee_id: str) -> Optional[TraineeRecord]:
    data = kv_get(f"trainee:{trainee_id}")
    return TraineeRecord.model_validate(data) if data is not None else None


def put_persona(record: PersonaRecord) -> None:
    kv_set(f"persona:{record.id}", record.model_dump(mode="json"))


def put_conference(record: ConferenceRecord) -> None:
    kv_set(f"conference:{record.id}", record.model_dump(mode="json"))


def put_trainee(record: TraineeRecord) -> None:
    kv_set(f"trainee:{record.id}", record.model_dump(mode="json"))
