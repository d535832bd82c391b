"""player and match tables

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-18 00:00:00.000000
"""

from alembic import op
import sqlalchemy as sa

revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "player",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("role", sa.String(20), nullable=False),
        sa.Column("rating", sa.Integer(), nullable=False, server_default="1500"),
        sa.Column("matches_played", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("wins", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("losses", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("role IN ('goalkeeper', 'forward')", name="ck_player_role"),
        sa.CheckConstraint("matches_played = wins + losses", name="ck_player_match_counts"),
    )
    op.create_index(
        "uq_player_name_lower",
        "player",
        [sa.text("lower(name)")],
        unique=True,
    )
    op.create_index("ix_player_rating", "player", ["rating"])

    op.create_table(
        "match",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("team1_player1_id", sa.Integer(), sa.ForeignKey("player.id"), nullable=False),
        sa.Column("team1_player2_id", sa.Integer(), sa.ForeignKey("player.id"), nullable=False),
        sa.Column("team2_player1_id", sa.Integer(), sa.ForeignKey("player.id"), nullable=False),
        sa.Column("team2_player2_id", sa.Integer(), sa.ForeignKey("player.id"), nullable=False),
        sa.Column("winner", sa.SmallInteger(), nullable=False),
        sa.Column("team1_delta", sa.Float(), nullable=False),
        sa.Column("team2_delta", sa.Float(), nullable=False),
        sa.Column("played_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("winner IN (1, 2)", name="ck_match_winner"),
    )
    op.create_index("ix_match_played_at", "match", ["played_at"])


def downgrade() -> None:
    op.drop_index("ix_match_played_at", table_name="match")
    op.drop_table("match")
    op.drop_index("ix_player_rating", table_name="player")
    op.drop_index("uq_player_name_lower", table_name="player")
    op.drop_table("player")
