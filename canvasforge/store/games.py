"""Owner-scoped games: create, list, fetch and delete.

Every function takes the caller's owner key explicitly.  Reads by id go
through the ownership guard and come back as ``None`` when the caller may not
see the game.
"""
import logging

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from canvasforge.errors import IntegrityFault, ValidationError
from canvasforge.models.base import utcnow
from canvasforge.models.checkpoint import Checkpoint
from canvasforge.models.game import GAME_NAME_MAX_LENGTH, Game
from canvasforge.store.ownership import load_owned_game

log = logging.getLogger(__name__)


def validate_name(name) -> str:
    if not isinstance(name, str) or not name.strip():
        raise ValidationError("name", "Game name is required")
    name = name.strip()
    if len(name) > GAME_NAME_MAX_LENGTH:
        raise ValidationError(
            "name", f"Game name must be at most {GAME_NAME_MAX_LENGTH} characters"
        )
    return name


def require_owner_key(owner_key) -> str:
    if not isinstance(owner_key, str) or not owner_key:
        raise ValidationError("owner_key", "Owner key is required")
    return owner_key


async def create_game(
    db: AsyncSession,
    name: str,
    owner_key: str,
    description: str | None = None,
) -> Game:
    name = validate_name(name)
    owner_key = require_owner_key(owner_key)
    now = utcnow()
    game = Game(
        name=name,
        owner_key=owner_key,
        description=description,
        is_private=True,
        published_to_marketplace=False,
        published_to_community=False,
        created_at=now,
        updated_at=now,
    )
    db.add(game)
    await db.commit()
    log.info("Created game %s (%r) for %s", game.id, game.name, owner_key)
    return game


async def list_games(db: AsyncSession, owner_key: str) -> list[Game]:
    """All games of one owner, most recently updated first."""
    if not owner_key:
        return []
    result = await db.execute(
        select(Game)
        .where(Game.owner_key == owner_key)
        .order_by(Game.updated_at.desc(), Game.created_at.desc())
    )
    return list(result.scalars().all())


async def get_game(db: AsyncSession, game_id, owner_key: str) -> Game | None:
    return await load_owned_game(db, game_id, owner_key)


async def get_game_by_name(db: AsyncSession, name, owner_key: str) -> Game | None:
    """The owner's most recently updated game called ``name``.

    Names are not unique per owner; integrations that address games by name
    get the one the owner touched last.
    """
    if not owner_key or not isinstance(name, str) or not name.strip():
        return None
    result = await db.execute(
        select(Game)
        .where(Game.owner_key == owner_key, Game.name == name.strip())
        .order_by(Game.updated_at.desc(), Game.created_at.desc())
        .limit(1)
    )
    return result.scalars().first()


async def delete_game(db: AsyncSession, game_id, owner_key: str) -> bool:
    """Delete a game together with all of its checkpoints.

    Both deletes run in one transaction.  If the game row does not go away,
    or checkpoints survive the cascade, nothing is committed and
    ``IntegrityFault`` is raised.
    """
    game = await load_owned_game(db, game_id, owner_key)
    if game is None:
        return False
    target_id = game.id

    await db.execute(
        delete(Checkpoint).where(
            Checkpoint.game_id == target_id,
            Checkpoint.owner_key == owner_key,
        )
    )
    remaining = (await db.execute(
        select(func.count()).select_from(Checkpoint).where(Checkpoint.game_id == target_id)
    )).scalar_one()
    result = await db.execute(
        delete(Game).where(Game.id == target_id, Game.owner_key == owner_key)
    )
    if remaining or result.rowcount != 1:
        await db.rollback()
        log.error(
            "Cascade delete of game %s aborted: %d checkpoints left, %d game rows removed",
            target_id, remaining, result.rowcount,
        )
        raise IntegrityFault(f"Cascade delete of game {target_id} was incomplete")

    await db.commit()
    log.info("Deleted game %s for %s", target_id, owner_key)
    return True


async def record_token(
    db: AsyncSession,
    game_id,
    owner_key: str,
    token_id: str,
    ipfs_hash: str | None = None,
) -> Game | None:
    """Store the NFT minted for a game by the token layer.

    Recording the same token twice is a no-op; a game can only ever carry
    one token.
    """
    if not isinstance(token_id, str) or not token_id:
        raise ValidationError("token_id", "Token id is required")
    game = await load_owned_game(db, game_id, owner_key)
    if game is None:
        return None
    if game.token_id is not None:
        if game.token_id != token_id:
            raise ValidationError("token_id", f"Game is already tokenized as {game.token_id}")
        return game

    now = utcnow()
    game.token_id = token_id
    game.ipfs_hash = ipfs_hash
    game.tokenized_at = now
    game.updated_at = now
    await db.commit()
    log.info("Recorded token %s for game %s", token_id, game.id)
    return game
