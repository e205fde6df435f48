import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from canvasforge.store.publication_state import PublicationState

from .base import Base, utcnow

GAME_NAME_MAX_LENGTH = 100


class Game(Base):
    __tablename__ = "games"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    name: Mapped[str] = mapped_column(String(GAME_NAME_MAX_LENGTH))
    owner_key: Mapped[str] = mapped_column(String(128), index=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    # Not a foreign key: games and checkpoints would otherwise reference each other
    current_checkpoint_id: Mapped[Optional[str]] = mapped_column(
        String(36), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(default=utcnow)
    is_private: Mapped[bool] = mapped_column(Boolean, default=True)
    published_to_marketplace: Mapped[bool] = mapped_column(Boolean, default=False)
    published_to_community: Mapped[bool] = mapped_column(Boolean, default=False)
    published_at: Mapped[Optional[datetime]] = mapped_column(nullable=True)
    token_id: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    ipfs_hash: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    tokenized_at: Mapped[Optional[datetime]] = mapped_column(nullable=True)

    @property
    def publication_state(self) -> PublicationState:
        return PublicationState.from_flags(
            marketplace=self.published_to_marketplace,
            community=self.published_to_community,
        )

    def apply_publication_state(self, state: PublicationState) -> None:
        self.published_to_marketplace, self.published_to_community = state.flags
        self.is_private = state is PublicationState.PRIVATE
