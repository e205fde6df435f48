from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from canvasforge.artifacts import ArtifactTriple
from canvasforge.store.publication_state import PublicationState

class ArtifactsBody(BaseModel):
    markup: str
    styles: str
    logic: str

    def to_triple(self) -> ArtifactTriple:
        return ArtifactTriple(markup=self.markup, styles=self.styles, logic=self.logic)

    @classmethod
    def from_triple(cls, triple: ArtifactTriple) -> "ArtifactsBody":
        return cls(markup=triple.markup, styles=triple.styles, logic=triple.logic)

class GameResponse(BaseModel):
    id: str
    name: str
    owner_key: str
    description: Optional[str] = None
    current_checkpoint_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    is_private: bool
    published_to_marketplace: bool
    published_to_community: bool
    published_at: Optional[datetime] = None
    publication_state: PublicationState
    token_id: Optional[str] = None
    ipfs_hash: Optional[str] = None
    tokenized_at: Optional[datetime] = None

    model_config = {"from_attributes": True}

class CheckpointResponse(BaseModel):
    id: str
    game_id: str
    owner_key: str
    prompt: str
    markup: str
    styles: str
    logic: str
    description: str
    version: int
    created_at: datetime

    model_config = {"from_attributes": True}

class TargetRequest(BaseModel):
    # Plain string so an unknown target is reported as a field-level 400
    target: str
