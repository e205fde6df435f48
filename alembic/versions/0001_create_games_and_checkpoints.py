"""create games and checkpoints

Revision ID: 0001
Revises:
Create Date: 2026-10-17 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "games",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("owner_key", sa.String(128), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("current_checkpoint_id", sa.String(36), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.Column("is_private", sa.Boolean(), nullable=False),
        sa.Column("published_to_marketplace", sa.Boolean(), nullable=False),
        sa.Column("published_to_community", sa.Boolean(), nullable=False),
        sa.Column("published_at", sa.DateTime(), nullable=True),
        sa.Column("token_id", sa.String(128), nullable=True),
        sa.Column("ipfs_hash", sa.String(128), nullable=True),
        sa.Column("tokenized_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_games_owner_key", "games", ["owner_key"])

    op.create_table(
        "checkpoints",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("game_id", sa.String(36), nullable=False),
        sa.Column("owner_key", sa.String(128), nullable=False),
        sa.Column("prompt", sa.Text(), nullable=False),
        sa.Column("markup", sa.Text(), nullable=False),
        sa.Column("styles", sa.Text(), nullable=False),
        sa.Column("logic", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["game_id"], ["games.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("game_id", "version", name="uq_checkpoint_game_version"),
        sa.CheckConstraint("version >= 1", name="ck_checkpoint_version_positive"),
    )
    op.create_index("ix_checkpoint_game_owner", "checkpoints", ["game_id", "owner_key"])


def downgrade() -> None:
    op.drop_index("ix_checkpoint_game_owner", table_name="checkpoints")
    op.drop_table("checkpoints")
    op.drop_index("ix_games_owner_key", table_name="games")
    op.drop_table("games")
