import uuid
from datetime import datetime

from sqlalchemy import CheckConstraint, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from canvasforge.artifacts import ArtifactTriple

from .base import Base, utcnow


class Checkpoint(Base):
    __tablename__ = "checkpoints"
    __table_args__ = (
        UniqueConstraint("game_id", "version", name="uq_checkpoint_game_version"),
        Index("ix_checkpoint_game_owner", "game_id", "owner_key"),
        CheckConstraint("version >= 1", name="ck_checkpoint_version_positive"),
    )

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    game_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("games.id", ondelete="CASCADE")
    )
    owner_key: Mapped[str] = mapped_column(String(128))
    prompt: Mapped[str] = mapped_column(Text)
    markup: Mapped[str] = mapped_column(Text)
    styles: Mapped[str] = mapped_column(Text)
    logic: Mapped[str] = mapped_column(Text)
    description: Mapped[str] = mapped_column(Text)
    version: Mapped[int] = mapped_column(Integer)
    created_at: Mapped[datetime] = mapped_column(default=utcnow)

    @property
    def artifacts(self) -> ArtifactTriple:
        return ArtifactTriple(markup=self.markup, styles=self.styles, logic=self.logic)
