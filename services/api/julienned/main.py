# Julienned API Main Entry Point
import logging
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded

from .settings import settings
from .infra.redis_client import close_redis
from .routers.ready import router as ready_router
from .routers.extraction import router as extraction_router
from .routers.recipes import router as recipes_router

# Configure structured logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[logging.StreamHandler(sys.stdout)]
)
logger = logging.getLogger("julienned")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(
        "Julienned API starting (ai_mode=%s, model=%s, max_turns=%d)",
        settings.ai_mode, settings.gemini_text_model, settings.max_orchestration_turns,
    )
    yield
    await close_redis()


# Rate limiter (per-IP); extraction endpoints carry their own tighter limit
limiter = Limiter(key_func=get_remote_address, default_limits=[settings.rate_limit_default])

app = FastAPI(title="Julienned API", version="0.1.0", lifespan=lifespan)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(ready_router, prefix="/api", tags=["ready"])
app.include_router(extraction_router, prefix="/api", tags=["extraction"])
app.include_router(recipes_router, prefix="/api", tags=["recipes"])
