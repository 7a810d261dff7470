from datetime import datetime, timedelta

from sqlalchemy import func, select

from studio.models import GenerationRecord
from studio.services.generation_client import GenerationResult
from studio.services.ledger import GenerationLedger
from studio.services.prompts import build_design_request


def _request():
    return build_design_request({
        "prompt": "Bold red geometric emblem, minimalist",
        "clothing_type": "hoodie",
        "image_position": "back",
        "style": "geometric",
        "color_scheme": "warm",
        "text": "RED",
    })


async def _count(db) -> int:
    return (await db.execute(select(func.count()).select_from(GenerationRecord))).scalar_one()


async def test_record_writes_one_row(db):
    result = GenerationResult(
        image_url="https://cdn.test/remote.png",
        stored_url="http://testserver/files/ai-designs/generated/abc.png",
    )

    record_id = await GenerationLedger().record(db, "user-1", _request(), result, "session-1")

    record = await db.get(GenerationRecord, record_id)
    assert record.user_id == "user-1"
    assert record.session_id == "session-1"
    assert record.prompt == "Bold red geometric emblem, minimalist"
    assert record.style == "geometric"
    assert record.color_scheme == "warm"
    assert record.clothing_type == "hoodie"
    assert record.image_position == "back"
    assert record.included_text == "RED"
    # Stored URL is preferred over the service URL
    assert record.image_url == "http://testserver/files/ai-designs/generated/abc.png"
    assert record.created_at is not None


async def test_anonymous_generation_is_not_recorded(db):
    result = GenerationResult(image_url="https://cdn.test/remote.png")

    assert await GenerationLedger().record(db, None, _request(), result, "session-1") is None
    assert await _count(db) == 0


async def test_duplicate_calls_write_duplicate_rows(db):
    ledger = GenerationLedger()
    result = GenerationResult(image_url="https://cdn.test/remote.png")

    first = await ledger.record(db, "user-1", _request(), result, "session-1")
    second = await ledger.record(db, "user-1", _request(), result, "session-1")

    assert first != second
    assert await _count(db) == 2


async def test_history_newest_first(db):
    now = datetime.utcnow()
    for age, user_id in [(3, "user-1"), (1, "user-1"), (2, "user-1"), (0, "user-2")]:
        db.add(GenerationRecord(
            user_id=user_id,
            session_id="s",
            prompt=f"design {age}",
            style="modern",
            color_scheme="normal",
            clothing_type="t-shirt",
            image_position="front",
            image_url=f"https://cdn.test/{age}.png",
            created_at=now - timedelta(minutes=age),
        ))
    await db.commit()

    ledger = GenerationLedger()
    records = await ledger.history(db, "user-1")
    assert [r.prompt for r in records] == ["design 1", "design 2", "design 3"]

    page = await ledger.history(db, "user-1", limit=1, offset=1)
    assert [r.prompt for r in page] == ["design 2"]
