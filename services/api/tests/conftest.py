import copy
import json
import os
from unittest.mock import AsyncMock

os.environ.setdefault("AI_MODE", "mock")

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import fakeredis
import fakeredis.aioredis

from julienned.main import app, limiter as app_limiter
from julienned.db import Base, get_db
from julienned.infra import redis_client
from julienned.routers.extraction import limiter as extract_limiter
from julienned.core.ai_client import ModelTurn, ToolCall
from julienned.services.fetcher import PageFetcher

# --- Test Database Setup ---

SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,  # one shared in-memory connection for all sessions
)
TestingSessionLocal = sessionmaker(bind=engine, autoflush=False)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(autouse=True)
def setup_database():
    """Create tables before each test, drop after."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client():
    """Test client with DB override."""
    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def db_session():
    """Direct database session for setup."""
    session = TestingSessionLocal()
    yield session
    session.close()


@pytest.fixture(autouse=True)
def mock_redis():
    server = fakeredis.FakeServer()
    redis_client._redis_async = fakeredis.aioredis.FakeRedis(server=server, decode_responses=True)
    yield
    redis_client._redis_async = None


@pytest.fixture(autouse=True)
def reset_rate_limits():
    app_limiter.reset()
    extract_limiter.reset()
    yield


# --- Pages ---

def recipe_page(recipe: dict, extra_head: str = "") -> str:
    """HTML page carrying ``recipe`` as a JSON-LD block."""
    return (
        "<html><head><title>Recipe</title>"
        f'<script type="application/ld+json">{json.dumps(recipe)}</script>'
        f"{extra_head}</head><body><h1>{recipe.get('name', '')}</h1></body></html>"
    )


PANCAKES = {
    "@context": "https://schema.org",
    "@type": "Recipe",
    "name": "Fluffy Pancakes",
    "description": "Weekend pancakes &amp; syrup",
    "recipeIngredient": [
        "1 1/2 cups all-purpose flour",
        "2 eggs",
        "1 1/4 cups milk",
        "3 tbsp butter, melted",
    ],
    "recipeInstructions": [
        {"@type": "HowToStep", "text": "Whisk the dry ingredients."},
        {"@type": "HowToStep", "text": "Add the wet ingredients and let rest for 10 minutes."},
        {"@type": "HowToStep", "text": "Cook on a hot griddle."},
    ],
    "recipeYield": "4 servings",
    "prepTime": "PT10M",
    "cookTime": "PT20M",
    "totalTime": "PT40M",
    "image": {"@type": "ImageObject", "url": "https://cdn.example.com/pancakes.jpg"},
    "nutrition": {"@type": "NutritionInformation", "calories": "350 kcal", "proteinContent": "9 g"},
}


@pytest.fixture
def pancakes():
    return copy.deepcopy(PANCAKES)


@pytest.fixture
def pancakes_html():
    return recipe_page(PANCAKES)


@pytest.fixture
def page():
    return recipe_page


class FakeWeb:
    """httpx.MockTransport backed by a url -> (status, body) table."""

    def __init__(self, pages=None):
        self.pages = dict(pages or {})
        self.requests = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        url = str(request.url)
        if request.method == "HEAD":
            if url in self.pages:
                status, _ = self.pages[url]
                return httpx.Response(status, headers={"content-type": "image/jpeg"})
            return httpx.Response(404)
        if url not in self.pages:
            return httpx.Response(404, text="not found")
        status, body = self.pages[url]
        return httpx.Response(status, text=body, headers={"content-type": "text/html; charset=utf-8"})

    def fetcher(self) -> PageFetcher:
        return PageFetcher(transport=httpx.MockTransport(self.handler))


@pytest.fixture
def fake_web():
    return FakeWeb()


# --- Scripted model ---

class AIScript:
    """Builds a fake AI client that replays canned model turns."""

    @staticmethod
    def call(name, **arguments):
        return ToolCall(id=f"call-{name}", name=name, arguments=arguments)

    @staticmethod
    def tools(*calls):
        return ModelTurn(tool_calls=list(calls), stop="tool_use")

    @staticmethod
    def done(text="Recipe saved."):
        return ModelTurn(text=text, stop="end_turn")

    @staticmethod
    def model(*turns, **kwargs):
        ai = AsyncMock()
        if turns:
            ai.run_tool_turn.side_effect = list(turns)
        for key, value in kwargs.items():
            setattr(ai.run_tool_turn, key, value)
        return ai


@pytest.fixture
def script():
    return AIScript
