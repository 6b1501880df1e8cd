"""Saved recipes API router.

Endpoints:
- GET /api/recipes - List the caller's recipes, newest first
- GET /api/recipes/search?q= - Title search within the caller's recipes
- GET /api/recipes/check-duplicate?url= - Caller's recipe for this URL, if any
- GET /api/recipes/{id} - Get recipe
- PATCH /api/recipes/{id} - Edit recipe (marks it user-modified)
- DELETE /api/recipes/{id} - Delete recipe
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from ..core.urls import hash_url, is_valid_url
from ..deps import get_recipe_store, get_user_id
from ..models import SavedRecipe
from ..schemas import RecipePatch, SavedRecipeOut
from ..services.recipe_store import RecipeStore

router = APIRouter()
logger = logging.getLogger("julienned.recipes")


def _owned_recipe(store: RecipeStore, recipe_id: str, user_id: str) -> SavedRecipe:
    recipe = store.get(recipe_id)
    if not recipe:
        raise HTTPException(status_code=404, detail="Recipe not found")
    if recipe.user_id != user_id:
        raise HTTPException(status_code=403, detail="Not authorized")
    return recipe


@router.get("/recipes", response_model=list[SavedRecipeOut])
def list_recipes(
    limit: int = Query(100, ge=1, le=500),
    user_id: str = Depends(get_user_id),
    store: RecipeStore = Depends(get_recipe_store),
):
    return store.list_for_user(user_id, limit=limit)


@router.get("/recipes/search", response_model=list[SavedRecipeOut])
def search_recipes(
    q: str = Query(..., min_length=1, max_length=200),
    user_id: str = Depends(get_user_id),
    store: RecipeStore = Depends(get_recipe_store),
):
    return store.search(user_id, q.strip())


@router.get("/recipes/check-duplicate", response_model=Optional[SavedRecipeOut])
def check_duplicate(
    url: str = Query(..., min_length=1),
    user_id: str = Depends(get_user_id),
    store: RecipeStore = Depends(get_recipe_store),
):
    """Return the caller's existing recipe for this URL, or null."""
    if not is_valid_url(url):
        raise HTTPException(status_code=400, detail="Please provide a valid HTTP or HTTPS URL")
    return store.get_by_url_hash(user_id, hash_url(url))


@router.get("/recipes/{recipe_id}", response_model=SavedRecipeOut)
def get_recipe(
    recipe_id: str,
    user_id: str = Depends(get_user_id),
    store: RecipeStore = Depends(get_recipe_store),
):
    return _owned_recipe(store, recipe_id, user_id)


@router.patch("/recipes/{recipe_id}", response_model=SavedRecipeOut)
def patch_recipe(
    recipe_id: str,
    patch: RecipePatch,
    user_id: str = Depends(get_user_id),
    store: RecipeStore = Depends(get_recipe_store),
):
    recipe = _owned_recipe(store, recipe_id, user_id)
    updated = store.update(recipe, patch)
    logger.info("Recipe %s edited by user=%s", recipe_id, user_id)
    return updated


@router.delete("/recipes/{recipe_id}", status_code=204)
def delete_recipe(
    recipe_id: str,
    user_id: str = Depends(get_user_id),
    store: RecipeStore = Depends(get_recipe_store),
):
    recipe = _owned_recipe(store, recipe_id, user_id)
    store.delete(recipe)
    logger.info("Recipe %s deleted by user=%s", recipe_id, user_id)
