"""case-folded player name key

Revision ID: 0002_player_name_key
Revises: 0001_initial
Create Date: 2026-10-18 12:00:00.000000
"""

from alembic import op
import sqlalchemy as sa

revision = "0002_player_name_key"
down_revision = "0001_initial"
branch_labels = None
depends_on = None


def upgrade() -> None:
    with op.batch_alter_table("player") as batch:
        batch.add_column(sa.Column("name_key", sa.String(255), nullable=True))

    # lower() in SQLite ignores non-ASCII letters, so fold in Python
    conn = op.get_bind()
    player = sa.table("player", sa.column("id"), sa.column("name"), sa.column("name_key"))
    for pid, name in conn.execute(sa.select(player.c.id, player.c.name)).all():
        conn.execute(
            player.update()
            .where(player.c.id == pid)
            .values(name_key=name.strip().casefold())
        )

    op.drop_index("uq_player_name_lower", table_name="player")
    with op.batch_alter_table("player") as batch:
        batch.alter_column("name_key", existing_type=sa.String(255), nullable=False)
    op.create_index("uq_player_name_key", "player", ["name_key"], unique=True)


def downgrade() -> None:
    op.drop_index("uq_player_name_key", table_name="player")
    op.create_index(
        "uq_player_name_lower",
        "player",
        [sa.text("lower(name)")],
        unique=True,
    )
    with op.batch_alter_table("player") as batch:
        batch.drop_column("name_key")
