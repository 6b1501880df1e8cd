"""Initial schema: recipes

Revision ID: 001_initial_schema
Revises: 
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001_initial_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

JSONType = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def upgrade() -> None:
    op.create_table(
        "recipes",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(64), nullable=False),
        # Cache keys
        sa.Column("source_url", sa.Text(), nullable=False),
        sa.Column("url_hash", sa.String(16), nullable=False),
        # Recipe data
        sa.Column("title", sa.String(300), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("ingredients", JSONType, nullable=False),
        sa.Column("instructions", JSONType, nullable=False),
        sa.Column("servings", sa.Integer(), nullable=True),
        sa.Column("prep_time", sa.Integer(), nullable=True),
        sa.Column("cook_time", sa.Integer(), nullable=True),
        sa.Column("total_time", sa.Integer(), nullable=True),
        sa.Column("inactive_time", sa.Integer(), nullable=True),
        sa.Column("image_url", sa.Text(), nullable=True),
        sa.Column("thumbnail_url", sa.Text(), nullable=True),
        sa.Column("nutrition", JSONType, nullable=True),
        # Extraction metadata
        sa.Column("extracted_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("extraction_confidence", sa.Float(), nullable=True),
        sa.Column("extractor_used", sa.String(32), nullable=True),
        sa.Column("agents_used", JSONType, nullable=True),
        # User edits
        sa.Column("user_modified", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("original_servings", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_recipes_user_id", "recipes", ["user_id"])
    op.create_index("ix_recipes_url_hash", "recipes", ["url_hash"])
    op.create_index("ix_recipes_user_url", "recipes", ["user_id", "url_hash"], unique=True)
    op.create_index("ix_recipes_user_extracted", "recipes", ["user_id", "extracted_at"])


def downgrade() -> None:
    op.drop_index("ix_recipes_user_extracted", table_name="recipes")
    op.drop_index("ix_recipes_user_url", table_name="recipes")
    op.drop_index("ix_recipes_url_hash", table_name="recipes")
    op.drop_index("ix_recipes_user_id", table_name="recipes")
    op.drop_table("recipes")
