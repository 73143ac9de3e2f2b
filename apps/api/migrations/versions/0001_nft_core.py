"""nft core: recipe_slots / tokens / metadata / token_names / characters / transition_events

- recipe_slots: pre-seeded catalog, unique (pool_id, slot_number)
- tokens: one row per revealed asset; unique token_address, unique (recipe, token_number)
- metadata / token_names / characters / transition_events: append-only (no UPDATE / no DELETE)

Revision ID: 0001_nft_core
Revises:
Create Date: 2026-10-17
"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "0001_nft_core"
down_revision = None
branch_labels = None
depends_on = None

APPEND_ONLY_TABLES = ("metadata", "token_names", "characters", "transition_events")


def upgrade() -> None:
    # ---- catalog ----
    op.create_table(
        "recipe_slots",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("pool_id", sa.Text(), nullable=False),
        sa.Column("slot_number", sa.Integer(), nullable=False),
        sa.Column("stat_points", sa.Integer(), nullable=False),
        sa.Column("cosmetic_points", sa.Integer(), nullable=False),
        sa.Column("hero_tier", sa.Text(), nullable=False),
    )
    op.create_index(
        "uq_recipe_slots_pool_id_slot_number",
        "recipe_slots",
        ["pool_id", "slot_number"],
        unique=True,
    )

    # ---- assets ----
    op.create_table(
        "tokens",
        sa.Column("id", sa.Text(), primary_key=True),
        sa.Column("token_address", sa.Text(), nullable=False),
        sa.Column("mint_name", sa.Text(), nullable=True),
        sa.Column("mint_number", sa.Integer(), nullable=True),
        sa.Column("recipe", sa.Text(), nullable=False),
        sa.Column("token_number", sa.Integer(), nullable=False),
        sa.Column("stat_points", sa.Integer(), nullable=False),
        sa.Column("cosmetic_points", sa.Integer(), nullable=False),
        sa.Column("stat_tier", sa.Integer(), nullable=False),
        sa.Column("cosmetic_tier", sa.Integer(), nullable=False),
        sa.Column("hero_tier", sa.Text(), nullable=False),
        sa.Column("created_at", sa.Text(), nullable=False),
    )
    op.create_index("uq_tokens_token_address", "tokens", ["token_address"], unique=True)
    # detects concurrent allocation of the same slot at write time
    op.create_index("uq_tokens_recipe_token_number", "tokens", ["recipe", "token_number"], unique=True)

    op.create_table(
        "metadata",
        sa.Column("id", sa.Text(), primary_key=True),
        sa.Column("nft_id", sa.Text(), sa.ForeignKey("tokens.id"), nullable=False),
        sa.Column("stage", sa.Text(), nullable=False),  # minted|revealed|customized
        sa.Column("metadata_url", sa.Text(), nullable=False),
        sa.Column("image_url", sa.Text(), nullable=True),
        sa.Column("created_at", sa.Text(), nullable=False),
    )
    op.create_index("uq_metadata_nft_id_stage", "metadata", ["nft_id", "stage"], unique=True)

    op.create_table(
        "token_names",
        sa.Column("id", sa.Text(), primary_key=True),
        sa.Column("nft_id", sa.Text(), sa.ForeignKey("tokens.id"), nullable=False),
        sa.Column("token_name", sa.Text(), nullable=False),
        sa.Column("token_name_status", sa.Text(), nullable=False),
        sa.Column("created_at", sa.Text(), nullable=False),
    )
    op.create_index("ix_token_names_nft_id", "token_names", ["nft_id"])

    op.create_table(
        "characters",
        sa.Column("id", sa.Text(), primary_key=True),
        sa.Column("nft_id", sa.Text(), sa.ForeignKey("tokens.id"), nullable=False),
        sa.Column("token_id", sa.Text(), nullable=False),
        sa.Column("constitution", sa.Integer(), nullable=True),
        sa.Column("strength", sa.Integer(), nullable=True),
        sa.Column("dexterity", sa.Integer(), nullable=True),
        sa.Column("wisdom", sa.Integer(), nullable=True),
        sa.Column("intelligence", sa.Integer(), nullable=True),
        sa.Column("charisma", sa.Integer(), nullable=True),
        sa.Column("race", sa.Text(), nullable=True),
        sa.Column("sex", sa.Text(), nullable=True),
        sa.Column("face_style", sa.Text(), nullable=True),
        sa.Column("eye_detail", sa.Text(), nullable=True),
        sa.Column("eyes", sa.Text(), nullable=True),
        sa.Column("facial_hair", sa.Text(), nullable=True),
        sa.Column("glasses", sa.Text(), nullable=True),
        sa.Column("hair_style", sa.Text(), nullable=True),
        sa.Column("hair_color", sa.Text(), nullable=True),
        sa.Column("necklace", sa.Text(), nullable=True),
        sa.Column("earring", sa.Text(), nullable=True),
        sa.Column("nose_piercing", sa.Text(), nullable=True),
        sa.Column("scar", sa.Text(), nullable=True),
        sa.Column("tattoo", sa.Text(), nullable=True),
        sa.Column("background", sa.Text(), nullable=True),
        sa.Column("created_at", sa.Text(), nullable=False),
    )
    op.create_index("uq_characters_nft_id", "characters", ["nft_id"], unique=True)
    op.create_index("uq_characters_token_id", "characters", ["token_id"], unique=True)

    op.create_table(
        "transition_events",
        sa.Column("event_id", sa.Text(), primary_key=True),
        sa.Column("transition_id", sa.Text(), nullable=False),
        sa.Column("token_address", sa.Text(), nullable=False),
        sa.Column("kind", sa.Text(), nullable=False),  # reveal|customize
        sa.Column("state", sa.Text(), nullable=False),
        sa.Column("detail_json", sa.Text(), nullable=True),
        sa.Column("request_id", sa.Text(), nullable=True),
        sa.Column("created_at", sa.Text(), nullable=False),
    )
    op.create_index(
        "ix_transition_events_token_address_created_at",
        "transition_events",
        ["token_address", "created_at"],
    )
    op.create_index("ix_transition_events_transition_id", "transition_events", ["transition_id"])

    # ---- append-only invariants (SQLite triggers) ----
    for table in APPEND_ONLY_TABLES:
        op.execute(f"""
        CREATE TRIGGER IF NOT EXISTS trg_{table}_no_update
        BEFORE UPDATE ON {table}
        BEGIN
          SELECT RAISE(ABORT, 'append-only: {table} cannot be updated');
        END;
        """)
        op.execute(f"""
        CREATE TRIGGER IF NOT EXISTS trg_{table}_no_delete
        BEFORE DELETE ON {table}
        BEGIN
          SELECT RAISE(ABORT, 'append-only: {table} cannot be deleted');
        END;
        """)

    # tokens are never deleted; rows are only inserted
    op.execute("""
    CREATE TRIGGER IF NOT EXISTS trg_tokens_no_delete
    BEFORE DELETE ON tokens
    BEGIN
      SELECT RAISE(ABORT, 'append-only: tokens cannot be deleted');
    END;
    """)


def downgrade() -> None:
    op.execute("DROP TRIGGER IF EXISTS trg_tokens_no_delete;")
    for table in reversed(APPEND_ONLY_TABLES):
        op.execute(f"DROP TRIGGER IF EXISTS trg_{table}_no_delete;")
        op.execute(f"DROP TRIGGER IF EXISTS trg_{table}_no_update;")

    op.drop_index("ix_transition_events_transition_id", table_name="transition_events")
    op.drop_index("ix_transition_events_token_address_created_at", table_name="transition_events")
    op.drop_table("transition_events")

    op.drop_index("uq_characters_token_id", table_name="characters")
    op.drop_index("uq_characters_nft_id", table_name="characters")
    op.drop_table("characters")

    op.drop_index("ix_token_names_nft_id", table_name="token_names")
    op.drop_table("token_names")

    op.drop_index("uq_metadata_nft_id_stage", table_name="metadata")
    op.drop_table("metadata")

    op.drop_index("uq_tokens_recipe_token_number", table_name="tokens")
    op.drop_index("uq_tokens_token_address", table_name="tokens")
    op.drop_table("tokens")

    op.drop_index("uq_recipe_slots_pool_id_slot_number", table_name="recipe_slots")
    op.drop_table("recipe_slots")
