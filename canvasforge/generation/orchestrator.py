"""Generate code and, when asked, keep the result as a new checkpoint.

The generator call finishes (or fails) before the store is touched, so no
version lock is ever held while waiting on the model.  A failed save does not
undo a successful generation: the caller still gets the code, just without a
checkpoint id.
"""
import logging
from dataclasses import dataclass

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from canvasforge.artifacts import ArtifactTriple
from canvasforge.errors import ForgeError, GenerationUnavailable, ValidationError
from canvasforge.store import checkpoints

from .generator import CodeGenerator

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class GenerationOutcome:
    artifacts: ArtifactTriple
    description: str
    checkpoint_id: str | None = None


async def generate_and_maybe_checkpoint(
    db: AsyncSession,
    generator: CodeGenerator,
    prompt: str,
    previous: ArtifactTriple | None = None,
    game_id: str | None = None,
    owner_key: str | None = None,
    save: bool = False,
) -> GenerationOutcome:
    if not isinstance(prompt, str) or not prompt.strip():
        raise ValidationError("prompt", "Prompt is required")

    try:
        result = await generator.generate(prompt, previous)
    except GenerationUnavailable:
        raise
    except Exception as exc:
        log.exception("Code generator raised an unexpected error")
        raise GenerationUnavailable(
            "Failed to generate game. The AI model might be unavailable."
        ) from exc

    outcome = GenerationOutcome(artifacts=result.artifacts, description=result.description)
    if not (save and game_id and owner_key):
        return outcome

    try:
        checkpoint = await checkpoints.append_checkpoint(
            db, game_id, owner_key, prompt, result.artifacts, result.description
        )
    except (ForgeError, SQLAlchemyError):
        log.warning("Generated code for game %s was not saved", game_id, exc_info=True)
        await db.rollback()
        return outcome

    return GenerationOutcome(
        artifacts=result.artifacts,
        description=result.description,
        checkpoint_id=checkpoint.id,
    )
