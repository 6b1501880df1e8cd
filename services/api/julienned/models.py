"""SQLAlchemy ORM models for Julienned.

Tables:
- recipes: Extracted recipes, scoped per user and keyed by a URL cache key.
  The same table doubles as the global cache: any user's extraction of a
  URL can be copied into another user's collection by url_hash.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import (
    String,
    DateTime,
    Text,
    Integer,
    Boolean,
    Float,
    Index,
)
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func, false
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.types import JSON

from .db import Base


# JSONB on Postgres, plain JSON everywhere else (SQLite in tests)
JSONType = JSON().with_variant(JSONB, "postgresql")


def generate_uuid() -> str:
    return str(uuid.uuid4())


class SavedRecipe(Base):
    """A recipe extracted from a source URL and owned by one user."""
    __tablename__ = "recipes"
    __table_args__ = (
        Index("ix_recipes_user_id", "user_id"),
        Index("ix_recipes_url_hash", "url_hash"),
        Index("ix_recipes_user_url", "user_id", "url_hash", unique=True),
        Index("ix_recipes_user_extracted", "user_id", "extracted_at"),
    )

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=generate_uuid
    )

    # Ownership
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)

    # Cache keys
    source_url: Mapped[str] = mapped_column(Text, nullable=False)
    url_hash: Mapped[str] = mapped_column(String(16), nullable=False)

    # Core recipe data
    title: Mapped[str] = mapped_column(String(300), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    ingredients: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    instructions: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    servings: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    prep_time: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)  # active hands-on minutes
    cook_time: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    total_time: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)  # as published, may exclude passive time
    inactive_time: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)  # rising, chilling, marinating

    # Media
    image_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    thumbnail_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    nutrition: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)

    # Extraction metadata
    extracted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    extraction_confidence: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    extractor_used: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    agents_used: Mapped[Optional[list]] = mapped_column(JSONType, nullable=True, default=list)

    # User modifications
    user_modified: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )
    original_servings: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
