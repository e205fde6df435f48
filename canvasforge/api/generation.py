from functools import lru_cache
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from canvasforge.api.schemas import ArtifactsBody
from canvasforge.auth.deps import get_optional_caller_key
from canvasforge.config import settings
from canvasforge.database import get_db
from canvasforge.generation import CodeGenerator, OpenAIGameCodeGenerator, generate_and_maybe_checkpoint

router = APIRouter(prefix="/api", tags=["generation"])

class GenerateRequest(BaseModel):
    prompt: str
    previous: Optional[ArtifactsBody] = None
    game_id: Optional[str] = None
    save: bool = False

class GenerateResponse(ArtifactsBody):
    description: str
    checkpoint_id: Optional[str] = None

@lru_cache
def get_generator() -> CodeGenerator:
    return OpenAIGameCodeGenerator(
        model=settings.GENERATOR_MODEL,
        api_key=settings.GENERATOR_API_KEY,
        base_url=settings.GENERATOR_BASE_URL,
        timeout=settings.GENERATOR_TIMEOUT,
    )

@router.post("/generate", response_model=GenerateResponse)
async def generate(
    req: GenerateRequest,
    owner_key: Optional[str] = Depends(get_optional_caller_key),
    generator: CodeGenerator = Depends(get_generator),
    db: AsyncSession = Depends(get_db),
):
    """Generate (or refine) game code; with ``save`` set, keep it as a checkpoint."""
    outcome = await generate_and_maybe_checkpoint(
        db,
        generator,
        req.prompt,
        previous=req.previous.to_triple() if req.previous else None,
        game_id=req.game_id,
        owner_key=owner_key,
        save=req.save,
    )
    return GenerateResponse(
        markup=outcome.artifacts.markup,
        styles=outcome.artifacts.styles,
        logic=outcome.artifacts.logic,
        description=outcome.description,
        checkpoint_id=outcome.checkpoint_id,
    )
