import logging
from dataclasses import dataclass
from typing import Literal, Optional

from ..core.urls import hash_url
from ..models import SavedRecipe
from .recipe_store import RecipeStore

logger = logging.getLogger("julienned.extraction")


@dataclass
class CacheHit:
    recipe: SavedRecipe
    source: Literal["user_cache", "global_cache"]


class RecipeCache:
    """Two-level lookup: the user's own recipes first, then anyone's."""

    def __init__(self, store: RecipeStore):
        self.store = store

    def lookup(self, user_id: str, url: str) -> Optional[CacheHit]:
        url_hash = hash_url(url)

        own = self.store.get_by_url_hash(user_id, url_hash)
        if own is not None:
            logger.info("Cache hit (user) hash=%s", url_hash)
            return CacheHit(recipe=own, source="user_cache")

        shared = self.store.get_global_by_url_hash(url_hash)
        if shared is not None:
            # The next lookup by this user is a user-cache hit
            copy = self.store.copy_to_user(user_id, shared)
            logger.info("Cache hit (global) hash=%s copied to user=%s", url_hash, user_id)
            return CacheHit(recipe=copy, source="global_cache")

        return None
