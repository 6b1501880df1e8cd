"""
Executes tool calls requested by the extraction model.

Every call goes through ``ToolDispatcher.dispatch``: the tool name is
recorded on the request's agents-used trail, the handler is looked up in
TOOL_HANDLERS, and the handler's result (a JSON-serializable dict) is
returned for the model. Handler failures are reported back to the model as
``{"success": False, "error": ...}`` instead of aborting the request.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from ..models import SavedRecipe
from ..parsing.generic import extract_generic
from ..parsing.ingredient_parser import (
    CATEGORY_ORDER,
    classify_ingredient,
    parse_ingredient,
    parse_ingredients,
)
from ..parsing.schema_org import extract_from_markup
from ..parsing.selectors import extract_with_selectors
from ..schemas import ParsedIngredient, Recipe, SavedRecipeOut
from ..services.cache import RecipeCache
from ..services.fetcher import PageFetcher
from ..services.images import download_image
from ..services.recipe_store import RecipeStore

logger = logging.getLogger("julienned.extraction")

LLM_DEFAULT_CONFIDENCE = 0.9

FETCH_OK_MESSAGE = (
    "Page fetched successfully. Use extract_schema_recipe, extract_with_selectors, "
    "or extract_generic to extract the recipe."
)


@dataclass
class ToolContext:
    """Mutable state for one extraction request. Never shared between requests."""
    user_id: str
    url: str
    fetched_html: Optional[str] = None
    extracted_recipe: Optional[Recipe] = None
    saved_recipe_id: Optional[str] = None
    agents_used: List[str] = field(default_factory=list)
    bypass_cache: bool = False


class ToolError(Exception):
    """A tool could not run with the given arguments."""


def _require(args: dict, key: str) -> Any:
    value = args.get(key)
    if value is None or value == "":
        raise ToolError(f"Missing required argument: {key}")
    return value


def _recipe_payload(recipe: Recipe) -> dict:
    return recipe.model_dump(by_alias=True, exclude_none=True, mode="json")


def _saved_payload(row: SavedRecipe) -> dict:
    return SavedRecipeOut.model_validate(row).model_dump(by_alias=True, exclude_none=True, mode="json")


def _html_for(args: dict, ctx: ToolContext) -> Optional[str]:
    html = args.get("html")
    return html if isinstance(html, str) and html else ctx.fetched_html


# --- Handlers ---
# Signature: (dispatcher, ctx, args) -> result dict

async def _check_recipe_cache(d: "ToolDispatcher", ctx: ToolContext, args: dict) -> dict:
    url = _require(args, "url")
    if ctx.bypass_cache:
        return {"found": False, "message": "Cache bypassed: a fresh extraction was requested"}
    hit = d.cache.lookup(ctx.user_id, url)
    if hit is None:
        return {"found": False}
    # A hit counts as this request's result if the model stops here
    ctx.extracted_recipe = SavedRecipeOut.model_validate(hit.recipe)
    ctx.saved_recipe_id = hit.recipe.id
    return {"found": True, "source": hit.source, "recipe": _saved_payload(hit.recipe)}


async def _fetch_page(d: "ToolDispatcher", ctx: ToolContext, args: dict) -> dict:
    url = _require(args, "url")
    headers = args.get("headers") if isinstance(args.get("headers"), dict) else None
    result = await d.fetcher.fetch(url, headers)
    if result.success and result.html:
        # The body stays server-side; only metadata goes back to the model
        ctx.fetched_html = result.html
        return {
            "success": True,
            "statusCode": result.status_code,
            "contentType": result.content_type,
            "htmlLength": len(result.html),
            "message": FETCH_OK_MESSAGE,
        }
    return {"success": False, "error": result.error, "statusCode": result.status_code}


def _extraction_result(ctx: ToolContext, recipe: Optional[Recipe], error: str) -> dict:
    if recipe is None:
        return {"success": False, "error": error}
    ctx.extracted_recipe = recipe
    return {"success": True, "recipe": _recipe_payload(recipe)}


async def _extract_schema_recipe(d: "ToolDispatcher", ctx: ToolContext, args: dict) -> dict:
    html = _html_for(args, ctx)
    if not html:
        return {"success": False, "error": "No HTML content available"}
    return _extraction_result(ctx, extract_from_markup(html), "No schema.org recipe found")


async def _extract_with_selectors(d: "ToolDispatcher", ctx: ToolContext, args: dict) -> dict:
    html = _html_for(args, ctx)
    if not html:
        return {"success": False, "error": "No HTML content available"}
    site_name = _require(args, "siteName")
    return _extraction_result(
        ctx, extract_with_selectors(html, str(site_name)), "Could not extract with selectors"
    )


async def _extract_generic(d: "ToolDispatcher", ctx: ToolContext, args: dict) -> dict:
    html = _html_for(args, ctx)
    if not html:
        return {"success": False, "error": "No HTML content available"}
    return _extraction_result(ctx, extract_generic(html), "Could not extract recipe")


async def _parse_ingredient(d: "ToolDispatcher", ctx: ToolContext, args: dict) -> dict:
    text = _require(args, "ingredientText")
    parsed = parse_ingredient(str(text))
    return {"success": True, "parsed": parsed.model_dump(by_alias=True, exclude_none=True)}


async def _parse_ingredients_batch(d: "ToolDispatcher", ctx: ToolContext, args: dict) -> dict:
    lines = _require(args, "ingredients")
    if not isinstance(lines, list):
        raise ToolError("ingredients must be an array of strings")
    parsed = parse_ingredients(str(line) for line in lines)
    return {"success": True, "parsed": [p.model_dump(by_alias=True, exclude_none=True) for p in parsed]}


async def _classify_ingredient(d: "ToolDispatcher", ctx: ToolContext, args: dict) -> dict:
    ingredient = _require(args, "ingredient")
    return {"success": True, "category": classify_ingredient(str(ingredient))}


async def _download_image(d: "ToolDispatcher", ctx: ToolContext, args: dict) -> dict:
    image_url = _require(args, "imageUrl")
    stored = await download_image(d.fetcher, str(image_url), bool(args.get("skipThumbnail", False)))
    if stored is None:
        return {"success": False, "error": "Could not download image"}
    result = {"success": True, "imageUrl": stored.image_url}
    if stored.thumbnail_url:
        result["thumbnailUrl"] = stored.thumbnail_url
    return result


def _coerce_ingredient(entry: Any) -> ParsedIngredient:
    """Model-supplied ingredient; unstructured entries are re-parsed from text."""
    if isinstance(entry, str):
        return parse_ingredient(entry)
    if not isinstance(entry, dict) or not entry.get("text"):
        raise ToolError("Each ingredient needs a text field")
    data = dict(entry)
    if data.get("category") not in CATEGORY_ORDER:
        data.pop("category", None)
    try:
        ingredient = ParsedIngredient.model_validate(data)
    except ValidationError:
        return parse_ingredient(str(data["text"]))
    if not ingredient.item or not ingredient.category:
        return parse_ingredient(ingredient.text)
    return ingredient


def _positive_int(value: Any) -> Optional[int]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    value = int(round(value))
    return value if value > 0 else None


def _minutes(value: Any) -> Optional[int]:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
        return None
    return int(round(value))


async def _save_recipe(d: "ToolDispatcher", ctx: ToolContext, args: dict) -> dict:
    title = _require(args, "title")
    raw_ingredients = args.get("ingredients") or []
    raw_instructions = args.get("instructions") or []
    if not isinstance(raw_ingredients, list) or not isinstance(raw_instructions, list):
        raise ToolError("ingredients and instructions must be arrays")

    recipe = Recipe(
        title=str(title),
        description=args.get("description") or None,
        ingredients=[_coerce_ingredient(e) for e in raw_ingredients],
        instructions=[str(s).strip() for s in raw_instructions if str(s).strip()],
        servings=_positive_int(args.get("servings")),
        prep_time=_minutes(args.get("prepTime")),
        cook_time=_minutes(args.get("cookTime")),
        image_url=args.get("imageUrl") or None,
        thumbnail_url=args.get("thumbnailUrl") or None,
    )

    # Carry over what the extractors found but the model did not pass along
    found = ctx.extracted_recipe
    if found is not None:
        recipe.total_time = found.total_time
        recipe.inactive_time = found.inactive_time
        recipe.nutrition = found.nutrition
        if recipe.image_url is None:
            recipe.image_url = found.image_url

    confidence = args.get("confidence")
    if isinstance(confidence, bool) or not isinstance(confidence, (int, float)) or not 0 <= confidence <= 1:
        confidence = LLM_DEFAULT_CONFIDENCE

    row = d.store.save(
        ctx.user_id,
        str(args.get("url") or ctx.url),
        recipe,
        confidence=float(confidence),
        extractor_used="llm",
        agents_used=list(ctx.agents_used),
    )
    ctx.extracted_recipe = recipe
    ctx.saved_recipe_id = row.id
    return {"success": True, "recipeId": row.id}


Handler = Callable[["ToolDispatcher", ToolContext, dict], Awaitable[dict]]

TOOL_HANDLERS: Dict[str, Handler] = {
    "check_recipe_cache": _check_recipe_cache,
    "fetch_page": _fetch_page,
    "extract_schema_recipe": _extract_schema_recipe,
    "extract_with_selectors": _extract_with_selectors,
    "extract_generic": _extract_generic,
    "parse_ingredient": _parse_ingredient,
    "parse_ingredients_batch": _parse_ingredients_batch,
    "classify_ingredient": _classify_ingredient,
    "download_image": _download_image,
    "save_recipe": _save_recipe,
}


class ToolDispatcher:
    def __init__(self, store: RecipeStore, fetcher: PageFetcher):
        self.store = store
        self.cache = RecipeCache(store)
        self.fetcher = fetcher

    async def dispatch(self, name: str, args: Optional[dict], ctx: ToolContext) -> dict:
        ctx.agents_used.append(name)
        handler = TOOL_HANDLERS.get(name)
        if handler is None:
            logger.warning("Model requested unknown tool %r", name)
            return {"success": False, "error": f"Unknown tool: {name}"}

        logger.info("Dispatching tool %s", name)
        try:
            return await handler(self, ctx, args or {})
        except (ToolError, ValidationError, ValueError, TypeError) as e:
            logger.info("Tool %s rejected arguments: %s", name, e)
            return {"success": False, "error": str(e)}
        except SQLAlchemyError as e:
            self.store.db.rollback()
            logger.error("Tool %s hit a database error: %s", name, e)
            return {"success": False, "error": "Failed to save recipe"}
        except Exception as e:
            logger.exception("Tool %s failed", name)
            return {"success": False, "error": f"{e.__class__.__name__}: {e}"}
