"""Recipe extraction API router.

Endpoints:
- POST /api/extract - Extract a recipe from a URL (cache, fast path, LLM fallback)
- POST /api/recipes/{id}/refresh - Re-extract a saved recipe, ignoring the cache

Both return the ExtractionResult envelope with status 200; extraction
failures are reported inside the envelope, not as HTTP errors.
"""

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.util import get_remote_address

from ..deps import get_extraction_service, get_user_id
from ..infra.idempotency import idempotency_precheck, idempotency_store_result, idempotency_clear_key
from ..schemas import ExtractRequest, ExtractionResult
from ..services.extraction import ExtractionService
from ..settings import settings

router = APIRouter()
limiter = Limiter(key_func=get_remote_address)
logger = logging.getLogger("julienned.extraction")


@router.post("/extract", response_model=ExtractionResult)
@limiter.limit(settings.extract_rate_limit)
async def extract_recipe(
    request: Request,  # Required for rate limiter
    body: ExtractRequest,
    user_id: str = Depends(get_user_id),
    service: ExtractionService = Depends(get_extraction_service),
):
    """Extract a recipe. Send Idempotency-Key to make client retries safe."""
    pre = await idempotency_precheck(request, user_id=user_id, route_key="extract")
    if isinstance(pre, JSONResponse):
        return pre

    force_refresh = bool(body.options and body.options.force_refresh)
    try:
        result = await service.extract(body.url, user_id, force_refresh=force_refresh)
    except Exception:
        if pre:
            await idempotency_clear_key(pre[0])
        raise

    payload = result.model_dump(by_alias=True, mode="json")
    if pre:
        await idempotency_store_result(pre[0], pre[1], status=200, body=payload)

    logger.info(
        "extract user=%s success=%s source=%s",
        user_id, result.success, result.metadata.source,
    )
    return JSONResponse(content=payload)


@router.post("/recipes/{recipe_id}/refresh", response_model=ExtractionResult)
@limiter.limit(settings.extract_rate_limit)
async def refresh_recipe(
    request: Request,  # Required for rate limiter
    recipe_id: str,
    user_id: str = Depends(get_user_id),
    service: ExtractionService = Depends(get_extraction_service),
):
    result = await service.refresh(recipe_id, user_id)
    return JSONResponse(content=result.model_dump(by_alias=True, mode="json"))
