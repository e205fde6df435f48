from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from canvasforge.api.schemas import ArtifactsBody, CheckpointResponse, GameResponse
from canvasforge.auth.deps import get_caller_key
from canvasforge.database import get_db
from canvasforge.store import checkpoints, games

router = APIRouter(prefix="/api/games", tags=["games"])

class CreateGameRequest(BaseModel):
    name: str
    description: Optional[str] = None

class RecordTokenRequest(BaseModel):
    token_id: str
    ipfs_hash: Optional[str] = None

class GameDataResponse(BaseModel):
    game: GameResponse
    checkpoints: list[CheckpointResponse]
    latest: Optional[ArtifactsBody] = None

class LatestCodeResponse(ArtifactsBody):
    checkpoint_id: str
    version: int

@router.post("", response_model=GameResponse)
async def create_game(
    req: CreateGameRequest,
    owner_key: str = Depends(get_caller_key),
    db: AsyncSession = Depends(get_db),
):
    game = await games.create_game(db, req.name, owner_key, req.description)
    return GameResponse.model_validate(game)

@router.get("", response_model=list[GameResponse])
async def list_games(
    owner_key: str = Depends(get_caller_key),
    db: AsyncSession = Depends(get_db),
):
    return [GameResponse.model_validate(g) for g in await games.list_games(db, owner_key)]

@router.get("/by-name", response_model=GameResponse)
async def get_game_by_name(
    name: str,
    owner_key: str = Depends(get_caller_key),
    db: AsyncSession = Depends(get_db),
):
    game = await games.get_game_by_name(db, name, owner_key)
    if game is None:
        raise HTTPException(status_code=404, detail="Game not found")
    return GameResponse.model_validate(game)

@router.get("/{game_id}", response_model=GameResponse)
async def get_game(
    game_id: str,
    owner_key: str = Depends(get_caller_key),
    db: AsyncSession = Depends(get_db),
):
    game = await games.get_game(db, game_id, owner_key)
    if game is None:
        raise HTTPException(status_code=404, detail="Game not found")
    return GameResponse.model_validate(game)

@router.delete("/{game_id}")
async def delete_game(
    game_id: str,
    owner_key: str = Depends(get_caller_key),
    db: AsyncSession = Depends(get_db),
):
    """Delete a game and every checkpoint it has."""
    if not await games.delete_game(db, game_id, owner_key):
        raise HTTPException(status_code=404, detail="Game not found")
    return {"status": "deleted"}

@router.get("/{game_id}/load", response_model=GameDataResponse)
async def load_game(
    game_id: str,
    owner_key: str = Depends(get_caller_key),
    db: AsyncSession = Depends(get_db),
):
    """Load a game with its full history for the editor."""
    data = await checkpoints.load_game_data(db, game_id, owner_key)
    if data is None:
        raise HTTPException(status_code=404, detail="Game not found")
    return GameDataResponse(
        game=GameResponse.model_validate(data.game),
        checkpoints=[CheckpointResponse.model_validate(c) for c in data.checkpoints],
        latest=ArtifactsBody.from_triple(data.latest) if data.latest else None,
    )

@router.get("/{game_id}/latest", response_model=LatestCodeResponse)
async def latest_code(
    game_id: str,
    owner_key: str = Depends(get_caller_key),
    db: AsyncSession = Depends(get_db),
):
    latest = await checkpoints.get_latest_code(db, game_id, owner_key)
    if latest is None:
        raise HTTPException(status_code=404, detail="No code saved for this game")
    return LatestCodeResponse(
        checkpoint_id=latest.checkpoint_id,
        version=latest.version,
        markup=latest.artifacts.markup,
        styles=latest.artifacts.styles,
        logic=latest.artifacts.logic,
    )

@router.post("/{game_id}/token", response_model=GameResponse)
async def record_token(
    game_id: str,
    req: RecordTokenRequest,
    owner_key: str = Depends(get_caller_key),
    db: AsyncSession = Depends(get_db),
):
    """Record the NFT the token layer minted for this game."""
    game = await games.record_token(db, game_id, owner_key, req.token_id, req.ipfs_hash)
    if game is None:
        raise HTTPException(status_code=404, detail="Game not found")
    return GameResponse.model_validate(game)
