from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from canvasforge.api.schemas import ArtifactsBody, CheckpointResponse
from canvasforge.auth.deps import get_caller_key
from canvasforge.database import get_db
from canvasforge.store import checkpoints

router = APIRouter(prefix="/api", tags=["checkpoints"])

class SaveCheckpointRequest(ArtifactsBody):
    prompt: str
    description: str = ""

@router.get("/games/{game_id}/checkpoints", response_model=list[CheckpointResponse])
async def list_checkpoints(
    game_id: str,
    owner_key: str = Depends(get_caller_key),
    db: AsyncSession = Depends(get_db),
):
    result = await checkpoints.list_checkpoints(db, game_id, owner_key)
    return [CheckpointResponse.model_validate(c) for c in result]

@router.post("/games/{game_id}/checkpoints", response_model=CheckpointResponse)
async def save_checkpoint(
    game_id: str,
    req: SaveCheckpointRequest,
    owner_key: str = Depends(get_caller_key),
    db: AsyncSession = Depends(get_db),
):
    checkpoint = await checkpoints.append_checkpoint(
        db, game_id, owner_key, req.prompt, req.to_triple(), req.description
    )
    return CheckpointResponse.model_validate(checkpoint)

@router.post("/games/{game_id}/code", response_model=CheckpointResponse)
async def save_code_changes(
    game_id: str,
    req: ArtifactsBody,
    owner_key: str = Depends(get_caller_key),
    db: AsyncSession = Depends(get_db),
):
    """Save hand-edited code as a new checkpoint."""
    checkpoint = await checkpoints.save_code_changes(db, game_id, owner_key, req.to_triple())
    return CheckpointResponse.model_validate(checkpoint)

@router.delete("/checkpoints/{checkpoint_id}")
async def delete_checkpoint(
    checkpoint_id: str,
    owner_key: str = Depends(get_caller_key),
    db: AsyncSession = Depends(get_db),
):
    if not await checkpoints.delete_checkpoint(db, checkpoint_id, owner_key):
        raise HTTPException(status_code=404, detail="Checkpoint not found")
    return {"status": "deleted"}
