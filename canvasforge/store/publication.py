"""Moves games between private and the two public channels.

``publish``/``unpublish`` are owner operations.  ``list_published`` and
``get_published_with_latest_code`` are the public read side: they take no
owner key and only ever return games whose flag for the requested target is
set.
"""
import logging
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from canvasforge.config import settings
from canvasforge.errors import IntegrityFault, ValidationError
from canvasforge.models.base import utcnow
from canvasforge.models.checkpoint import Checkpoint
from canvasforge.models.game import Game
from canvasforge.store import versioning
from canvasforge.store.ownership import load_owned_game, normalize_id
from canvasforge.store.publication_state import PublicationTarget, parse_target

log = logging.getLogger(__name__)

_TARGET_COLUMNS = {
    PublicationTarget.MARKETPLACE: Game.published_to_marketplace,
    PublicationTarget.COMMUNITY: Game.published_to_community,
}


@dataclass(frozen=True)
class PublishedGame:
    game: Game
    checkpoint: Checkpoint


async def _has_content(db: AsyncSession, game: Game) -> bool:
    result = await db.execute(
        select(Checkpoint.id)
        .where(Checkpoint.game_id == game.id, Checkpoint.owner_key == game.owner_key)
        .limit(1)
    )
    return result.first() is not None


async def publish(db: AsyncSession, game_id, owner_key: str, target) -> bool:
    """Publish an owned game to ``target``.

    Returns False when the game is not visible to ``owner_key``.  Publishing
    to a target the game is already on changes nothing.  ``published_at`` is
    stamped only the first time the game goes public.
    """
    target = parse_target(target)
    game = await load_owned_game(db, game_id, owner_key)
    if game is None:
        return False

    state = game.publication_state
    if state.is_published_to(target):
        return True
    new_state = state.publish(target)
    if not await _has_content(db, game):
        raise ValidationError("game_id", "Cannot publish a game without content")

    now = utcnow()
    game.apply_publication_state(new_state)
    if game.published_at is None:
        game.published_at = now
    game.updated_at = now
    await db.commit()
    log.info("Published game %s to %s (%s -> %s)", game.id, target.value, state.value, new_state.value)
    return True


async def unpublish(db: AsyncSession, game_id, owner_key: str, target) -> bool:
    """Withdraw an owned game from ``target``. ``published_at`` is kept."""
    target = parse_target(target)
    game = await load_owned_game(db, game_id, owner_key)
    if game is None:
        return False

    state = game.publication_state
    if not state.is_published_to(target):
        return True
    new_state = state.unpublish(target)

    game.apply_publication_state(new_state)
    game.updated_at = utcnow()
    await db.commit()
    log.info("Unpublished game %s from %s (%s -> %s)", game.id, target.value, state.value, new_state.value)
    return True


async def list_published(
    db: AsyncSession,
    target,
    limit: int | None = None,
    offset: int = 0,
) -> list[Game]:
    """Public listing for one channel, most recently published first."""
    target = parse_target(target)
    if limit is None:
        limit = settings.PUBLISHED_PAGE_SIZE
    if not 1 <= limit <= settings.PUBLISHED_MAX_PAGE_SIZE:
        raise ValidationError(
            "limit", f"Must be between 1 and {settings.PUBLISHED_MAX_PAGE_SIZE}"
        )
    if offset < 0:
        raise ValidationError("offset", "Must not be negative")

    result = await db.execute(
        select(Game)
        .where(_TARGET_COLUMNS[target].is_(True))
        .order_by(Game.published_at.desc(), Game.updated_at.desc())
        .offset(offset)
        .limit(limit)
    )
    return list(result.scalars().all())


async def resolve_current_checkpoint(db: AsyncSession, game: Game) -> Checkpoint | None:
    """The checkpoint a game currently shows.

    Follows ``current_checkpoint_id`` when set, otherwise falls back to the
    highest version.  A pointer to a checkpoint that does not exist, or that
    belongs to another game or owner, is an integrity fault.
    """
    if game.current_checkpoint_id is None:
        return await versioning.latest_checkpoint(db, game.id)

    checkpoint = await db.get(Checkpoint, game.current_checkpoint_id)
    if (
        checkpoint is None
        or checkpoint.game_id != game.id
        or checkpoint.owner_key != game.owner_key
    ):
        log.error(
            "Game %s points at checkpoint %s which is missing or foreign",
            game.id, game.current_checkpoint_id,
        )
        raise IntegrityFault(f"Game {game.id} has a dangling checkpoint pointer")
    return checkpoint


async def get_published_with_latest_code(
    db: AsyncSession, game_id, target
) -> PublishedGame | None:
    """A published game with the checkpoint it currently shows.

    None unless the game is published to ``target`` and has content; a game
    that exists privately is indistinguishable from one that does not exist.
    """
    target = parse_target(target)
    key = normalize_id(game_id)
    if key is None:
        return None
    game = await db.get(Game, key)
    if game is None or not game.publication_state.is_published_to(target):
        return None

    checkpoint = await resolve_current_checkpoint(db, game)
    if checkpoint is None:
        return None
    return PublishedGame(game=game, checkpoint=checkpoint)
