"""Persistence for extracted recipes.

Every saved recipe belongs to one user. The same table serves as the global
cache: a recipe extracted for one user can be copied into another user's
collection by URL hash without fetching the page again.
"""
import logging
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.urls import hash_url
from ..models import SavedRecipe
from ..schemas import Recipe, RecipePatch

logger = logging.getLogger(__name__)

# Columns written from a Recipe on save
RECIPE_FIELDS = (
    "title",
    "description",
    "servings",
    "prep_time",
    "cook_time",
    "total_time",
    "inactive_time",
    "image_url",
    "thumbnail_url",
)

# Columns carried over when copying a cached recipe to another user
COPY_FIELDS = RECIPE_FIELDS + (
    "source_url",
    "url_hash",
    "ingredients",
    "instructions",
    "nutrition",
    "extraction_confidence",
    "extractor_used",
    "agents_used",
    "original_servings",
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RecipeStore:
    def __init__(self, db: Session):
        self.db = db

    def get(self, recipe_id: str) -> Optional[SavedRecipe]:
        return self.db.get(SavedRecipe, recipe_id)

    def get_by_url_hash(self, user_id: str, url_hash: str) -> Optional[SavedRecipe]:
        return self.db.scalars(
            select(SavedRecipe)
            .where(SavedRecipe.user_id == user_id, SavedRecipe.url_hash == url_hash)
            .limit(1)
        ).first()

    def get_global_by_url_hash(self, url_hash: str) -> Optional[SavedRecipe]:
        """Any user's extraction of this URL, preferring unedited and recent ones."""
        return self.db.scalars(
            select(SavedRecipe)
            .where(SavedRecipe.url_hash == url_hash)
            .order_by(SavedRecipe.user_modified.asc(), SavedRecipe.extracted_at.desc())
            .limit(1)
        ).first()

    def list_for_user(self, user_id: str, limit: int = 100) -> List[SavedRecipe]:
        return list(self.db.scalars(
            select(SavedRecipe)
            .where(SavedRecipe.user_id == user_id)
            .order_by(SavedRecipe.extracted_at.desc(), SavedRecipe.created_at.desc())
            .limit(limit)
        ))

    def search(self, user_id: str, query: str, limit: int = 50) -> List[SavedRecipe]:
        return list(self.db.scalars(
            select(SavedRecipe)
            .where(
                SavedRecipe.user_id == user_id,
                SavedRecipe.title.ilike(f"%{query}%"),
            )
            .order_by(SavedRecipe.extracted_at.desc())
            .limit(limit)
        ))

    def save(
        self,
        user_id: str,
        source_url: str,
        recipe: Recipe,
        *,
        confidence: Optional[float] = None,
        extractor_used: Optional[str] = None,
        agents_used: Optional[List[str]] = None,
    ) -> SavedRecipe:
        """
        Upsert keyed by (user_id, url_hash of source_url).

        Re-saving a URL the user already has overwrites the extracted fields
        and clears user_modified; ownership never changes.
        """
        url_hash = hash_url(source_url)
        fields = dict(
            source_url=source_url,
            ingredients=[i.model_dump(exclude_none=True) for i in recipe.ingredients],
            instructions=list(recipe.instructions),
            nutrition=recipe.nutrition.model_dump(exclude_none=True) if recipe.nutrition else None,
            extraction_confidence=confidence,
            extractor_used=extractor_used,
            agents_used=list(agents_used or []),
            original_servings=recipe.servings,
            user_modified=False,
        )
        fields.update((name, getattr(recipe, name)) for name in RECIPE_FIELDS)

        row = self.get_by_url_hash(user_id, url_hash)
        if row is None:
            row = SavedRecipe(user_id=user_id, url_hash=url_hash)
            self.db.add(row)
            logger.info("Saving new recipe for user=%s hash=%s", user_id, url_hash)
        else:
            logger.info("Overwriting recipe %s from re-extraction", row.id)
        self._fill(row, fields)

        try:
            self.db.commit()
        except IntegrityError:
            # A concurrent save inserted this (user_id, url_hash) first
            self.db.rollback()
            row = self.get_by_url_hash(user_id, url_hash)
            if row is None:
                raise
            logger.info("Lost insert race for user=%s hash=%s, updating %s", user_id, url_hash, row.id)
            self._fill(row, fields)
            self.db.commit()

        self.db.refresh(row)
        return row

    def _fill(self, row: SavedRecipe, fields: dict) -> None:
        for name, value in fields.items():
            setattr(row, name, value)
        row.extracted_at = _utcnow()

    def copy_to_user(self, user_id: str, source: SavedRecipe) -> SavedRecipe:
        """Copy a cached recipe into user_id's collection (no-op if already there)."""
        existing = self.get_by_url_hash(user_id, source.url_hash)
        if existing is not None:
            return existing

        source_id, url_hash = source.id, source.url_hash
        row = SavedRecipe(user_id=user_id)
        self._fill(row, {name: getattr(source, name) for name in COPY_FIELDS})
        self.db.add(row)
        try:
            self.db.commit()
        except IntegrityError:
            # Someone else copied or saved it for this user in the meantime
            self.db.rollback()
            existing = self.get_by_url_hash(user_id, url_hash)
            if existing is None:
                raise
            return existing
        self.db.refresh(row)
        logger.info("Copied recipe %s to user=%s as %s", source_id, user_id, row.id)
        return row

    def update(self, row: SavedRecipe, patch: RecipePatch) -> SavedRecipe:
        """Apply a user edit. Marks the recipe as user-modified."""
        for key, value in patch.model_dump(exclude_unset=True, exclude_none=True).items():
            setattr(row, key, value)
        row.user_modified = True
        self.db.commit()
        self.db.refresh(row)
        return row

    def delete(self, row: SavedRecipe) -> None:
        self.db.delete(row)
        self.db.commit()
