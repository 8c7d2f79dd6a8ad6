"""In-memory intention storage.

Records live in a module-level dict keyed by id and are lost on restart.
"""
import uuid
from datetime import datetime, timezone
from typing import Any

from intentions.models import CreateIntentionRequest, IntentionRecord

_intentions: dict[str, IntentionRecord] = {}


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


async def list_intentions(user_id: str) -> list[IntentionRecord]:
    return [i for i in _intentions.values() if i.user_id == user_id]


async def get_intention(intention_id: str) -> IntentionRecord | None:
    return _intentions.get(intention_id)


async def create_intention(body: CreateIntentionRequest) -> IntentionRecord:
    now = _now_iso()
    record = IntentionRecord(
        id=str(uuid.uuid4()),
        created_at=now,
        updated_at=now,
        ai_rephrased=False,
        **body.model_dump(),
    )
    _intentions[record.id] = record
    return record


async def update_intention(intention_id: str, changes: dict[str, Any]) -> IntentionRecord | None:
    """Merge ``changes`` into the stored record and bump updatedAt."""
    existing = _intentions.get(intention_id)
    if existing is None:
        return None
    updated = existing.model_copy(update={**changes, "updated_at": _now_iso()})
    _intentions[intention_id] = updated
    return updated


async def delete_intention(intention_id: str) -> bool:
    return _intentions.pop(intention_id, None) is not None


def clear() -> None:
    _intentions.clear()
