from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from canvasforge.api.schemas import ArtifactsBody, GameResponse, TargetRequest
from canvasforge.auth.deps import get_caller_key
from canvasforge.database import get_db
from canvasforge.store import forking, games, publication

router = APIRouter(prefix="/api", tags=["publication"])

class PublishedCode(ArtifactsBody):
    checkpoint_id: str
    version: int

class PublishedGameResponse(BaseModel):
    game: GameResponse
    code: PublishedCode

class ForkRequest(BaseModel):
    name: Optional[str] = None

async def _owned_game_response(db: AsyncSession, game_id: str, owner_key: str) -> GameResponse:
    game = await games.get_game(db, game_id, owner_key)
    if game is None:
        raise HTTPException(status_code=404, detail="Game not found")
    return GameResponse.model_validate(game)

@router.post("/games/{game_id}/publish", response_model=GameResponse)
async def publish_game(
    game_id: str,
    req: TargetRequest,
    owner_key: str = Depends(get_caller_key),
    db: AsyncSession = Depends(get_db),
):
    if not await publication.publish(db, game_id, owner_key, req.target):
        raise HTTPException(status_code=404, detail="Game not found")
    return await _owned_game_response(db, game_id, owner_key)

@router.post("/games/{game_id}/unpublish", response_model=GameResponse)
async def unpublish_game(
    game_id: str,
    req: TargetRequest,
    owner_key: str = Depends(get_caller_key),
    db: AsyncSession = Depends(get_db),
):
    if not await publication.unpublish(db, game_id, owner_key, req.target):
        raise HTTPException(status_code=404, detail="Game not found")
    return await _owned_game_response(db, game_id, owner_key)

@router.get("/published/{target}", response_model=list[GameResponse])
async def list_published(
    target: str,
    limit: Optional[int] = Query(default=None),
    offset: int = Query(default=0),
    db: AsyncSession = Depends(get_db),
):
    """Public listing; no caller identity involved."""
    result = await publication.list_published(db, target, limit=limit, offset=offset)
    return [GameResponse.model_validate(g) for g in result]

@router.get("/published/{target}/{game_id}", response_model=PublishedGameResponse)
async def get_published_game(
    target: str,
    game_id: str,
    db: AsyncSession = Depends(get_db),
):
    published = await publication.get_published_with_latest_code(db, game_id, target)
    if published is None:
        raise HTTPException(status_code=404, detail="Game not found")
    checkpoint = published.checkpoint
    return PublishedGameResponse(
        game=GameResponse.model_validate(published.game),
        code=PublishedCode(
            checkpoint_id=checkpoint.id,
            version=checkpoint.version,
            markup=checkpoint.markup,
            styles=checkpoint.styles,
            logic=checkpoint.logic,
        ),
    )

@router.post("/published/community/{game_id}/fork", response_model=GameResponse)
async def fork_game(
    game_id: str,
    req: Optional[ForkRequest] = None,
    owner_key: str = Depends(get_caller_key),
    db: AsyncSession = Depends(get_db),
):
    fork = await forking.fork_game(db, game_id, owner_key, req.name if req else None)
    return GameResponse.model_validate(fork)
