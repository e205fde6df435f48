"""The append-only version history of a game.

Checkpoints are never modified once written.  ``append_checkpoint`` is the
only way to create one; it assigns the next version under the game's version
lock and then moves the game's current-checkpoint pointer to it.
"""
import asyncio
import logging
import random
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from canvasforge.artifacts import ArtifactTriple
from canvasforge.config import settings
from canvasforge.errors import NotFoundOrUnauthorized, ValidationError, VersionContention
from canvasforge.models.base import utcnow
from canvasforge.models.checkpoint import Checkpoint
from canvasforge.models.game import Game
from canvasforge.store import versioning
from canvasforge.store.ownership import load_owned_checkpoint, load_owned_game, normalize_id

log = logging.getLogger(__name__)

MANUAL_SAVE_PROMPT = "Manual code save"
MANUAL_SAVE_DESCRIPTION = "Manual code changes saved"


@dataclass(frozen=True)
class LatestCode:
    checkpoint_id: str
    version: int
    artifacts: ArtifactTriple


@dataclass(frozen=True)
class GameData:
    game: Game
    checkpoints: list[Checkpoint]
    latest: ArtifactTriple | None


def _backoff(attempt: int) -> float:
    return settings.VERSION_RETRY_BACKOFF * attempt * random.uniform(0.5, 1.5)


def _validate_artifacts(artifacts) -> ArtifactTriple:
    if not isinstance(artifacts, ArtifactTriple):
        raise ValidationError("artifacts", "Expected markup, styles and logic")
    for field in ("markup", "styles", "logic"):
        if not isinstance(getattr(artifacts, field), str):
            raise ValidationError(field, "Must be a string")
    return artifacts


async def append_checkpoint(
    db: AsyncSession,
    game_id,
    owner_key: str,
    prompt: str,
    artifacts: ArtifactTriple,
    description: str,
) -> Checkpoint:
    """Store a new checkpoint as the next version of the game and point the game at it.

    Raises ``NotFoundOrUnauthorized`` when the game is missing or not owned by
    ``owner_key``.  A version collision with another writer rolls back and
    retries with a fresh maximum after a short randomized pause;
    ``VersionContention`` is raised if every attempt collides.
    """
    if not isinstance(prompt, str) or not prompt.strip():
        raise ValidationError("prompt", "Prompt is required")
    if not isinstance(description, str):
        raise ValidationError("description", "Must be a string")
    artifacts = _validate_artifacts(artifacts)
    key = normalize_id(game_id)
    if key is None:
        raise NotFoundOrUnauthorized("Game")

    attempts = max(1, settings.VERSION_RETRY_ATTEMPTS)
    async with versioning.version_lock(key):
        for attempt in range(1, attempts + 1):
            game = await load_owned_game(db, key, owner_key)
            if game is None:
                raise NotFoundOrUnauthorized("Game")

            version = await versioning.next_version(db, game.id, game.owner_key)
            now = utcnow()
            checkpoint = Checkpoint(
                game_id=game.id,
                owner_key=game.owner_key,
                prompt=prompt,
                markup=artifacts.markup,
                styles=artifacts.styles,
                logic=artifacts.logic,
                description=description,
                version=version,
                created_at=now,
            )
            db.add(checkpoint)
            try:
                await db.flush()
            except IntegrityError:
                await db.rollback()
                log.warning(
                    "Version %d of game %s was taken concurrently (attempt %d/%d)",
                    version, key, attempt, attempts,
                )
                if attempt < attempts:
                    await asyncio.sleep(_backoff(attempt))
                continue

            # Point at the checkpoint only once its row exists.
            game.current_checkpoint_id = checkpoint.id
            game.updated_at = now
            await db.commit()
            log.info("Saved checkpoint v%d (%s) for game %s", version, checkpoint.id, key)
            return checkpoint

    log.warning("Gave up assigning a version for game %s after %d attempts", key, attempts)
    raise VersionContention(f"Game {key} is being saved concurrently, try again")


async def save_code_changes(
    db: AsyncSession, game_id, owner_key: str, artifacts: ArtifactTriple
) -> Checkpoint:
    """Checkpoint hand-edited code without going through the generator."""
    return await append_checkpoint(
        db, game_id, owner_key, MANUAL_SAVE_PROMPT, artifacts, MANUAL_SAVE_DESCRIPTION
    )


async def list_checkpoints(db: AsyncSession, game_id, owner_key: str) -> list[Checkpoint]:
    """Checkpoints of an owned game, newest version first. Empty if not visible."""
    game = await load_owned_game(db, game_id, owner_key)
    if game is None:
        return []
    result = await db.execute(
        select(Checkpoint)
        .where(Checkpoint.game_id == game.id, Checkpoint.owner_key == owner_key)
        .order_by(Checkpoint.version.desc())
    )
    return list(result.scalars().all())


async def delete_checkpoint(db: AsyncSession, checkpoint_id, owner_key: str) -> bool:
    """Delete one checkpoint; if it was current, fall back to the highest remaining version."""
    checkpoint = await load_owned_checkpoint(db, checkpoint_id, owner_key)
    if checkpoint is None:
        return False
    game_id = checkpoint.game_id
    deleted_id = checkpoint.id

    async with versioning.version_lock(game_id):
        await db.delete(checkpoint)
        await db.flush()

        game = await db.get(Game, game_id)
        if game is not None and game.current_checkpoint_id == deleted_id:
            latest = await versioning.latest_checkpoint(db, game_id)
            game.current_checkpoint_id = latest.id if latest else None
            game.updated_at = utcnow()
        await db.commit()

    log.info("Deleted checkpoint %s of game %s", deleted_id, game_id)
    return True


async def get_latest_code(db: AsyncSession, game_id, owner_key: str) -> LatestCode | None:
    game = await load_owned_game(db, game_id, owner_key)
    if game is None:
        return None
    result = await db.execute(
        select(Checkpoint)
        .where(Checkpoint.game_id == game.id, Checkpoint.owner_key == owner_key)
        .order_by(Checkpoint.version.desc())
        .limit(1)
    )
    latest = result.scalars().first()
    if latest is None:
        return None
    return LatestCode(
        checkpoint_id=latest.id, version=latest.version, artifacts=latest.artifacts
    )


async def load_game_data(db: AsyncSession, game_id, owner_key: str) -> GameData | None:
    """Everything the editor needs to open a game, without touching the generator."""
    game = await load_owned_game(db, game_id, owner_key)
    if game is None:
        return None
    checkpoints = await list_checkpoints(db, game.id, owner_key)
    latest = checkpoints[0].artifacts if checkpoints else None
    return GameData(game=game, checkpoints=checkpoints, latest=latest)
