"""Pydantic schemas for Julienned.

Request/response and in-flight models for:
- Recipes and parsed ingredients
- Saved (persisted) recipes
- The extraction result envelope

Field names are snake_case in Python and camelCase on the wire, matching
the record layout the mobile client and meal planner read.
"""

from datetime import datetime
from typing import Optional, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


IngredientCategory = Literal[
    "produce",
    "meat_seafood",
    "dairy",
    "bakery",
    "pantry",
    "frozen",
    "canned",
    "spices",
    "condiments",
    "beverages",
    "other",
]

ExtractorType = Literal["schema", "schema_fast_path", "site_specific", "generic", "llm"]

CacheSource = Literal[
    "user_cache",
    "global_cache",
    "fresh_extraction",
    "extraction_failed",
    "error",
]

# FETCH_FAILED, PARSE_ERROR, RATE_LIMITED, SITE_BLOCKED, TIMEOUT and
# UNKNOWN_ERROR are reserved; the pipeline does not raise them yet.
ExtractionErrorCode = Literal[
    "INVALID_URL",
    "FETCH_FAILED",
    "NO_RECIPE_FOUND",
    "PARSE_ERROR",
    "RATE_LIMITED",
    "SITE_BLOCKED",
    "TIMEOUT",
    "LLM_ERROR",
    "UNKNOWN_ERROR",
]


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# --- Recipe ---

class ParsedIngredient(CamelModel):
    text: str
    quantity: Optional[float] = None
    unit: Optional[str] = None
    item: Optional[str] = None
    preparation: Optional[str] = None
    category: Optional[IngredientCategory] = None


class Nutrition(CamelModel):
    calories: Optional[int] = None
    protein: Optional[int] = None
    carbs: Optional[int] = None
    fat: Optional[int] = None
    fiber: Optional[int] = None
    sodium: Optional[int] = None


class Recipe(CamelModel):
    title: str = "Untitled Recipe"
    description: Optional[str] = None
    ingredients: list[ParsedIngredient] = Field(default_factory=list)
    instructions: list[str] = Field(default_factory=list)
    servings: Optional[int] = Field(None, ge=1)
    prep_time: Optional[int] = Field(None, ge=0)
    cook_time: Optional[int] = Field(None, ge=0)
    total_time: Optional[int] = Field(None, ge=0)
    inactive_time: Optional[int] = Field(None, ge=0)
    image_url: Optional[str] = None
    thumbnail_url: Optional[str] = None
    nutrition: Optional[Nutrition] = None


class SavedRecipeOut(Recipe):
    id: str
    user_id: str
    source_url: str
    url_hash: str
    extracted_at: Optional[datetime] = None
    extraction_confidence: Optional[float] = Field(None, ge=0, le=1)
    extractor_used: Optional[ExtractorType] = None
    agents_used: list[str] = Field(default_factory=list)
    user_modified: bool = False
    original_servings: Optional[int] = None
    created_at: Optional[datetime] = None


class RecipePatch(CamelModel):
    """User edit of a saved recipe. Any field sent marks the recipe as user-modified."""
    title: Optional[str] = Field(None, min_length=1, max_length=300)
    description: Optional[str] = None
    ingredients: Optional[list[ParsedIngredient]] = None
    instructions: Optional[list[str]] = None
    servings: Optional[int] = Field(None, ge=1)
    prep_time: Optional[int] = Field(None, ge=0)
    cook_time: Optional[int] = Field(None, ge=0)


# --- Extraction ---

class ExtractOptions(CamelModel):
    force_refresh: bool = False
    skip_images: bool = False
    parse_nutrition: bool = False


class ExtractRequest(CamelModel):
    url: str
    options: Optional[ExtractOptions] = None


class ExtractionError(CamelModel):
    code: ExtractionErrorCode
    message: str
    retryable: bool


class ExtractionMetadata(CamelModel):
    extraction_time_ms: int
    source: CacheSource
    agents_used: list[str] = Field(default_factory=list)
    confidence: Optional[float] = None
    extractor_used: Optional[ExtractorType] = None


class ExtractionResult(CamelModel):
    success: bool
    recipe: Optional[SavedRecipeOut] = None
    error: Optional[ExtractionError] = None
    cached: bool = False
    metadata: ExtractionMetadata
