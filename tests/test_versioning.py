"""Version assignment under concurrency, collisions and corrupted history."""
import asyncio
from contextlib import asynccontextmanager

import pytest
import pytest_asyncio
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from canvasforge.config import settings
from canvasforge.errors import IntegrityFault, VersionContention
from canvasforge.models.base import Base
from canvasforge.models.checkpoint import Checkpoint
from canvasforge.store import checkpoints, games, versioning

from conftest import OWNER_A, OWNER_B, triple


@pytest_asyncio.fixture
async def file_sessions(tmp_path):
    """Session factory over a file database so every session has its own connection."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'versions.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


@pytest.mark.asyncio
async def test_concurrent_appends_get_distinct_consecutive_versions(file_sessions):
    async with file_sessions() as db:
        game = await games.create_game(db, "Racer", OWNER_A)
        game_id = game.id

    async def save(n):
        async with file_sessions() as db:
            saved = await checkpoints.append_checkpoint(
                db, game_id, OWNER_A, f"tweak {n}", triple(f"t{n}"), ""
            )
            return saved.id, saved.version

    results = await asyncio.gather(*(save(n) for n in range(8)))

    assert sorted(v for _, v in results) == list(range(1, 9))
    async with file_sessions() as db:
        listed = await checkpoints.list_checkpoints(db, game_id, OWNER_A)
        refreshed = await games.get_game(db, game_id, OWNER_A)
    assert [c.version for c in listed] == list(range(8, 0, -1))
    # The pointer ends on the highest version.
    top_id = next(cid for cid, v in results if v == 8)
    assert refreshed.current_checkpoint_id == top_id


@pytest.mark.asyncio
async def test_concurrent_appends_without_process_lock_all_succeed(file_sessions, monkeypatch):
    """Separate processes share no lock; the unique constraint and retries must suffice."""

    @asynccontextmanager
    async def no_lock(game_id):
        yield

    monkeypatch.setattr(versioning, "version_lock", no_lock)
    writers = 10
    assert settings.VERSION_RETRY_ATTEMPTS >= writers

    async with file_sessions() as db:
        game = await games.create_game(db, "Racer", OWNER_A)
        game_id = game.id

    async def save(n):
        async with file_sessions() as db:
            saved = await checkpoints.append_checkpoint(
                db, game_id, OWNER_A, f"tweak {n}", triple(f"t{n}"), ""
            )
            return saved.version

    versions = await asyncio.gather(*(save(n) for n in range(writers)))

    assert sorted(versions) == list(range(1, writers + 1))
    async with file_sessions() as db:
        listed = await checkpoints.list_checkpoints(db, game_id, OWNER_A)
    assert [c.version for c in listed] == list(range(writers, 0, -1))


@pytest.mark.asyncio
async def test_version_collision_is_retried(db_session, monkeypatch):
    game = await games.create_game(db_session, "Pong", OWNER_A)
    game_id = game.id
    await checkpoints.append_checkpoint(db_session, game_id, OWNER_A, "first", triple("v1"), "")

    real_next_version = versioning.next_version
    calls = []

    async def stale_once(db, gid, owner_key):
        calls.append(gid)
        if len(calls) == 1:
            # Another writer "already" holds version 1.
            return 1
        return await real_next_version(db, gid, owner_key)

    monkeypatch.setattr(versioning, "next_version", stale_once)

    saved = await checkpoints.append_checkpoint(db_session, game_id, OWNER_A, "second", triple("v2"), "")
    saved_id, saved_version = saved.id, saved.version

    assert len(calls) == 2
    assert saved_version == 2
    await db_session.refresh(game)
    assert game.current_checkpoint_id == saved_id
    listed = await checkpoints.list_checkpoints(db_session, game_id, OWNER_A)
    assert [c.version for c in listed] == [2, 1]


@pytest.mark.asyncio
async def test_version_collision_gives_up_after_retry_budget(db_session, monkeypatch):
    monkeypatch.setattr(settings, "VERSION_RETRY_BACKOFF", 0.0)
    game = await games.create_game(db_session, "Pong", OWNER_A)
    game_id = game.id
    first = await checkpoints.append_checkpoint(db_session, game_id, OWNER_A, "first", triple("v1"), "")
    first_id = first.id
    calls = []

    async def always_stale(db, gid, owner_key):
        calls.append(gid)
        return 1

    monkeypatch.setattr(versioning, "next_version", always_stale)

    with pytest.raises(VersionContention):
        await checkpoints.append_checkpoint(db_session, game_id, OWNER_A, "second", triple("v2"), "")

    assert len(calls) == settings.VERSION_RETRY_ATTEMPTS
    await db_session.refresh(game)
    assert game.current_checkpoint_id == first_id
    listed = await checkpoints.list_checkpoints(db_session, game_id, OWNER_A)
    assert [c.version for c in listed] == [1]


@pytest.mark.asyncio
async def test_next_version_starts_at_one(db_session):
    game = await games.create_game(db_session, "Pong", OWNER_A)
    assert await versioning.next_version(db_session, game.id, OWNER_A) == 1


@pytest.mark.asyncio
async def test_diverged_checkpoint_owner_is_an_integrity_fault(db_session):
    game = await games.create_game(db_session, "Pong", OWNER_A)
    game_id = game.id
    await checkpoints.append_checkpoint(db_session, game_id, OWNER_A, "first", triple("v1"), "")

    await db_session.execute(
        update(Checkpoint).where(Checkpoint.game_id == game_id).values(owner_key=OWNER_B)
    )
    await db_session.commit()

    with pytest.raises(IntegrityFault):
        await versioning.next_version(db_session, game_id, OWNER_A)
    with pytest.raises(IntegrityFault):
        await checkpoints.append_checkpoint(db_session, game_id, OWNER_A, "second", triple("v2"), "")
