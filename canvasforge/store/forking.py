"""Fork a community game into a new game owned by someone else."""
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from canvasforge.errors import NotFoundOrUnauthorized
from canvasforge.models.game import GAME_NAME_MAX_LENGTH, Game
from canvasforge.store import checkpoints, games
from canvasforge.store.publication import get_published_with_latest_code
from canvasforge.store.publication_state import PublicationTarget

log = logging.getLogger(__name__)

FORK_PROMPT = "Forked from community game"


def fork_name_for(source_name: str) -> str:
    return f"Fork of {source_name}"[:GAME_NAME_MAX_LENGTH]


async def fork_game(
    db: AsyncSession,
    source_game_id,
    forker_key: str,
    fork_name: str | None = None,
) -> Game:
    """Copy the current checkpoint of a community game into a new game.

    Only the community channel discloses code, so marketplace-only and
    private games cannot be forked; they raise ``NotFoundOrUnauthorized``
    just like a missing game.  The new game keeps no link to its source.
    """
    games.require_owner_key(forker_key)
    published = await get_published_with_latest_code(
        db, source_game_id, PublicationTarget.COMMUNITY
    )
    if published is None:
        raise NotFoundOrUnauthorized("Community game")

    source, seed = published.game, published.checkpoint
    # Read everything from the source before the first commit below.
    source_id, source_name, source_version = source.id, source.name, seed.version
    description = source.description or f"Forked from {source_name}"
    artifacts = seed.artifacts

    fork = await games.create_game(
        db, fork_name or fork_name_for(source_name), forker_key, description
    )
    fork_id = fork.id
    try:
        await checkpoints.append_checkpoint(
            db, fork_id, forker_key, FORK_PROMPT, artifacts, f"Forked from {source_name}"
        )
    except Exception:
        log.exception("Seeding fork %s failed; removing it", fork_id)
        await db.rollback()
        await games.delete_game(db, fork_id, forker_key)
        raise

    log.info(
        "Forked game %s v%d into %s for %s", source_id, source_version, fork.id, forker_key
    )
    return fork
