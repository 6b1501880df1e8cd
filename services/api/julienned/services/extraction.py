"""
Recipe extraction entry point.

Pipeline for one URL:
1. Validate the URL (no I/O for invalid input)
2. Cache lookup (user's own recipes, then the global cache) unless refreshing
3. Fast path: fetch + schema.org JSON-LD, no model involved
4. Fallback: bounded LLM tool-calling loop

Every outcome, including failures, is returned as an ExtractionResult;
nothing raises out of ``extract``.
"""
import logging
import time
from typing import List, Optional

from sqlalchemy.orm import Session

from ..agents.dispatcher import ToolContext, ToolDispatcher
from ..agents.orchestrator import ExtractionOrchestrator, LoopState
from ..core.ai_client import AIClient
from ..core.urls import is_valid_url
from ..models import SavedRecipe
from ..parsing.ingredient_parser import parse_ingredients
from ..parsing.schema_org import extract_from_markup
from ..schemas import (
    ExtractionError,
    ExtractionMetadata,
    ExtractionResult,
    SavedRecipeOut,
)
from .cache import RecipeCache
from .fetcher import PageFetcher
from .recipe_store import RecipeStore

logger = logging.getLogger("julienned.extraction")

FAST_PATH_CONFIDENCE = 0.95
LLM_CONFIDENCE = 0.9


class ExtractionService:
    def __init__(
        self,
        db: Session,
        fetcher: Optional[PageFetcher] = None,
        ai: Optional[AIClient] = None,
        max_turns: Optional[int] = None,
    ):
        self.db = db
        self.store = RecipeStore(db)
        self.cache = RecipeCache(self.store)
        self.fetcher = fetcher or PageFetcher()
        self.dispatcher = ToolDispatcher(self.store, self.fetcher)
        self.orchestrator = ExtractionOrchestrator(self.dispatcher, ai=ai, max_turns=max_turns)

    @staticmethod
    def _elapsed_ms(started: float) -> int:
        return int((time.monotonic() - started) * 1000)

    def _failure(
        self,
        started: float,
        code: str,
        message: str,
        retryable: bool,
        source: str,
        agents_used: Optional[List[str]] = None,
    ) -> ExtractionResult:
        return ExtractionResult(
            success=False,
            error=ExtractionError(code=code, message=message, retryable=retryable),
            cached=False,
            metadata=ExtractionMetadata(
                extraction_time_ms=self._elapsed_ms(started),
                source=source,
                agents_used=list(agents_used or []),
            ),
        )

    def _success(
        self,
        started: float,
        row: SavedRecipe,
        agents_used: List[str],
        confidence: float,
        extractor: str,
    ) -> ExtractionResult:
        return ExtractionResult(
            success=True,
            recipe=SavedRecipeOut.model_validate(row),
            cached=False,
            metadata=ExtractionMetadata(
                extraction_time_ms=self._elapsed_ms(started),
                source="fresh_extraction",
                agents_used=list(agents_used),
                confidence=confidence,
                extractor_used=extractor,
            ),
        )

    async def _fast_path(
        self, url: str, user_id: str, agents_used: List[str], ctx: ToolContext
    ) -> Optional[SavedRecipe]:
        """Fetch + JSON-LD. Returns the saved row, or None to fall back to the model."""
        agents_used.append("fetch_agent")
        fetched = await self.fetcher.fetch(url)
        if not (fetched.success and fetched.html):
            logger.info("Fast path fetch failed for %s: %s", url, fetched.error)
            return None

        ctx.fetched_html = fetched.html
        agents_used.append("schema_extractor")
        recipe = extract_from_markup(fetched.html)
        if recipe is None or not recipe.title or not recipe.ingredients:
            logger.info("Fast path found no usable schema.org recipe for %s", url)
            return None

        recipe.ingredients = parse_ingredients([i.text for i in recipe.ingredients])
        return self.store.save(
            user_id,
            url,
            recipe,
            confidence=FAST_PATH_CONFIDENCE,
            extractor_used="schema_fast_path",
            agents_used=agents_used,
        )

    async def extract(self, url: str, user_id: str, force_refresh: bool = False) -> ExtractionResult:
        started = time.monotonic()

        if not is_valid_url(url):
            return self._failure(
                started, "INVALID_URL", "Please provide a valid HTTP or HTTPS URL",
                retryable=False, source="error",
            )

        if not force_refresh:
            hit = self.cache.lookup(user_id, url)
            if hit is not None:
                return ExtractionResult(
                    success=True,
                    recipe=SavedRecipeOut.model_validate(hit.recipe),
                    cached=True,
                    metadata=ExtractionMetadata(
                        extraction_time_ms=self._elapsed_ms(started),
                        source=hit.source,
                        agents_used=["cache_agent"],
                    ),
                )

        agents_used = ["cache_agent"]
        ctx = ToolContext(user_id=user_id, url=url, agents_used=agents_used, bypass_cache=force_refresh)

        try:
            row = await self._fast_path(url, user_id, agents_used, ctx)
        except Exception as e:
            self.db.rollback()
            logger.warning("Fast path failed for %s, falling back to LLM: %s", url, e)
            row = None
        if row is not None:
            logger.info("Fast path extracted %s -> recipe %s", url, row.id)
            return self._success(started, row, agents_used, FAST_PATH_CONFIDENCE, "schema_fast_path")

        try:
            outcome = await self.orchestrator.run(ctx)
        except Exception as e:
            logger.error("LLM orchestration failed for %s: %s", url, e)
            return self._failure(
                started, "LLM_ERROR", str(e) or "Extraction failed",
                retryable=True, source="error", agents_used=agents_used,
            )

        if outcome.state == LoopState.DONE and outcome.recipe is not None:
            return self._success(started, outcome.recipe, agents_used, LLM_CONFIDENCE, "llm")

        return self._failure(
            started, "NO_RECIPE_FOUND", "Could not extract a recipe from this URL",
            retryable=False, source="extraction_failed", agents_used=agents_used,
        )

    async def refresh(self, recipe_id: str, user_id: str) -> ExtractionResult:
        """Re-extract a saved recipe from its source URL, bypassing the cache."""
        started = time.monotonic()
        row = self.store.get(recipe_id)
        if row is None:
            return self._failure(
                started, "NO_RECIPE_FOUND", "Recipe not found", retryable=False, source="error",
            )
        if row.user_id != user_id:
            return self._failure(
                started, "NO_RECIPE_FOUND", "Not authorized", retryable=False, source="error",
            )
        return await self.extract(row.source_url, user_id, force_refresh=True)
