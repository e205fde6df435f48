"""Per-game version numbering for checkpoints.

Versions for one game are ``1..N`` with no gaps.  Assignment is a read of the
current maximum followed by an insert, so callers must hold ``version_lock``
for the game across read, insert and commit.  The lock only covers one
process; across processes the ``(game_id, version)`` unique constraint makes
the losing insert fail, and ``checkpoints.append_checkpoint`` retries it.
"""
import asyncio
import logging
import weakref
from contextlib import asynccontextmanager

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from canvasforge.errors import IntegrityFault
from canvasforge.models.checkpoint import Checkpoint

log = logging.getLogger(__name__)

# Entries disappear once no coroutine holds or waits on the lock.
_locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()


def _lock_for(game_id: str) -> asyncio.Lock:
    lock = _locks.get(game_id)
    if lock is None:
        lock = asyncio.Lock()
        _locks[game_id] = lock
    return lock


@asynccontextmanager
async def version_lock(game_id: str):
    lock = _lock_for(game_id)
    async with lock:
        yield


async def latest_checkpoint(db: AsyncSession, game_id: str) -> Checkpoint | None:
    """Highest-version checkpoint of a game, whoever owns it."""
    result = await db.execute(
        select(Checkpoint)
        .where(Checkpoint.game_id == game_id)
        .order_by(Checkpoint.version.desc())
        .limit(1)
    )
    return result.scalars().first()


async def next_version(db: AsyncSession, game_id: str, owner_key: str) -> int:
    """Version the next checkpoint of ``game_id`` must take.

    The existing sequence must belong to ``owner_key``; a mismatch means the
    denormalized owner on the checkpoints has diverged from the game.
    """
    latest = await latest_checkpoint(db, game_id)
    if latest is None:
        return 1
    if latest.owner_key != owner_key:
        log.error(
            "Checkpoint %s of game %s is owned by %r, game is owned by %r",
            latest.id, game_id, latest.owner_key, owner_key,
        )
        raise IntegrityFault(f"Checkpoint owner diverged from game {game_id}")
    return latest.version + 1
