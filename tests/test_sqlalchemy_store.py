from __future__ import annotations

import pytest
import pytest_asyncio
from sqlalchemy import inspect
from sqlalchemy.ext.asyncio import async_sessionmaker
from sqlalchemy.pool import StaticPool

from app.database import create_engine, init_models, make_session_scope
from app.domain.models import AudioStatus, JobStatus, RecordingJob
from app.infrastructure.persistence.recordings_sqlalchemy import SQLAlchemyRecordingStore
from app.models import Recording


@pytest_asyncio.fixture
async def sql_engine():
    engine = create_engine("sqlite+aiosqlite://")
    await init_models(engine)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def sql_store(sql_engine):
    scope = make_session_scope(async_sessionmaker(sql_engine, expire_on_commit=False))
    yield SQLAlchemyRecordingStore(scope), scope


def test_sqlite_engine_shares_one_connection():
    engine = create_engine("sqlite+aiosqlite://")

    assert isinstance(engine.sync_engine.pool, StaticPool)


@pytest.mark.asyncio
async def test_init_models_creates_recordings_table(sql_engine):
    async with sql_engine.connect() as conn:
        tables = await conn.run_sync(lambda sync_conn: inspect(sync_conn).get_table_names())

    assert Recording.__tablename__ in tables


def _job(recording_id: str = "session_1") -> RecordingJob:
    return RecordingJob(
        id=recording_id,
        user_id="user-1",
        video_url=f"https://assets.test/{recording_id}.webm",
        media_name=f"{recording_id}.webm",
        mime_type="video/webm",
        screenshots=["https://shots.test/1.png", None],
        events=[{"type": "click", "timestamp": 10}],
    )


@pytest.mark.asyncio
async def test_save_and_get_round_trip(sql_store):
    store, _ = sql_store
    job = _job()

    await store.save(job)

    assert await store.get(job.id) == job
    assert await store.get("session_missing") is None


@pytest.mark.asyncio
async def test_save_overwrites_whole_snapshot(sql_store, guide_factory):
    store, scope = sql_store
    job = _job()
    await store.save(job)

    done = job.advance(AudioStatus.CLEANING, original_transcript="hello").advance(
        AudioStatus.COMPLETED, generated_guide=guide_factory("one")
    )
    await store.save(done)

    stored = await store.get(job.id)
    assert stored.status is JobStatus.COMPLETED
    assert stored.original_transcript == "hello"
    assert stored.generated_guide.steps[0].narration_text == "one"

    async with scope() as session:
        row = await session.get(Recording, job.id)
        assert row.status == "completed"
        assert row.audio_status == "completed"
        assert row.document["generatedGuide"]["steps"][0]["stepIndex"] == 0


@pytest.mark.asyncio
async def test_list_all_returns_every_snapshot(sql_store):
    store, _ = sql_store
    await store.save(_job("session_1"))
    await store.save(_job("session_2"))

    assert {job.id for job in await store.list_all()} == {"session_1", "session_2"}
