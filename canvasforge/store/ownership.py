"""Ownership guard for every read by id and every mutation.

A missing resource and a resource owned by someone else look identical to the
caller: the loaders below return ``None`` in both cases, and a malformed id is
just another way of not finding anything.
"""
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from canvasforge.models.checkpoint import Checkpoint
from canvasforge.models.game import Game


def authorize(caller_key: str | None, resource_owner_key: str | None) -> bool:
    """Exact string comparison; no side effects, never raises."""
    if not caller_key or resource_owner_key is None:
        return False
    return caller_key == resource_owner_key


def normalize_id(raw) -> str | None:
    """Return the canonical form of a record id, or None if it is malformed."""
    if not isinstance(raw, str):
        return None
    try:
        return str(uuid.UUID(raw))
    except ValueError:
        return None


async def load_owned_game(db: AsyncSession, game_id, owner_key: str | None) -> Game | None:
    key = normalize_id(game_id)
    if key is None:
        return None
    game = await db.get(Game, key)
    if game is None or not authorize(owner_key, game.owner_key):
        return None
    return game


async def load_owned_checkpoint(
    db: AsyncSession, checkpoint_id, owner_key: str | None
) -> Checkpoint | None:
    key = normalize_id(checkpoint_id)
    if key is None:
        return None
    checkpoint = await db.get(Checkpoint, key)
    if checkpoint is None or not authorize(owner_key, checkpoint.owner_key):
        return None
    return checkpoint
