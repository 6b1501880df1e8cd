import pytest

from julienned.agents.dispatcher import FETCH_OK_MESSAGE, TOOL_HANDLERS, ToolContext, ToolDispatcher
from julienned.agents.tools import EXTRACTION_TOOLS
from julienned.services.recipe_store import RecipeStore

URL = "https://example.com/pancakes"
IMAGE = "https://cdn.example.com/pancakes.jpg"


@pytest.fixture
def dispatcher(db_session, fake_web, pancakes_html):
    fake_web.pages[URL] = (200, pancakes_html)
    fake_web.pages[IMAGE] = (200, "")
    return ToolDispatcher(RecipeStore(db_session), fake_web.fetcher())


@pytest.fixture
def ctx():
    return ToolContext(user_id="u1", url=URL)


def test_registry_matches_handlers():
    assert {t["name"] for t in EXTRACTION_TOOLS} == set(TOOL_HANDLERS)
    for tool in EXTRACTION_TOOLS:
        assert tool["input_schema"]["type"] == "object"


@pytest.mark.asyncio
async def test_unknown_tool(dispatcher, ctx):
    result = await dispatcher.dispatch("summon_chef", {}, ctx)
    assert result == {"success": False, "error": "Unknown tool: summon_chef"}
    assert ctx.agents_used == ["summon_chef"]


@pytest.mark.asyncio
async def test_fetch_keeps_html_server_side(dispatcher, ctx, pancakes_html):
    result = await dispatcher.dispatch("fetch_page", {"url": URL}, ctx)

    assert result["success"] is True
    assert result["statusCode"] == 200
    assert result["htmlLength"] == len(pancakes_html)
    assert result["message"] == FETCH_OK_MESSAGE
    assert "html" not in result
    assert ctx.fetched_html == pancakes_html


@pytest.mark.asyncio
async def test_fetch_http_error(dispatcher, ctx):
    result = await dispatcher.dispatch("fetch_page", {"url": "https://example.com/missing"}, ctx)
    assert result == {"success": False, "error": "HTTP 404: Not Found", "statusCode": 404}
    assert ctx.fetched_html is None


@pytest.mark.asyncio
async def test_missing_argument(dispatcher, ctx):
    result = await dispatcher.dispatch("fetch_page", {}, ctx)
    assert result == {"success": False, "error": "Missing required argument: url"}


@pytest.mark.asyncio
async def test_extract_needs_html(dispatcher, ctx):
    for tool in ("extract_schema_recipe", "extract_generic"):
        result = await dispatcher.dispatch(tool, {}, ctx)
        assert result == {"success": False, "error": "No HTML content available"}


@pytest.mark.asyncio
async def test_extract_schema_after_fetch(dispatcher, ctx):
    await dispatcher.dispatch("fetch_page", {"url": URL}, ctx)
    result = await dispatcher.dispatch("extract_schema_recipe", {}, ctx)

    assert result["success"] is True
    assert result["recipe"]["title"] == "Fluffy Pancakes"
    assert result["recipe"]["prepTime"] == 10
    assert result["recipe"]["inactiveTime"] == 10
    assert ctx.extracted_recipe.title == "Fluffy Pancakes"


@pytest.mark.asyncio
async def test_extract_with_selectors_unknown_site(dispatcher, ctx):
    await dispatcher.dispatch("fetch_page", {"url": URL}, ctx)
    result = await dispatcher.dispatch("extract_with_selectors", {"siteName": "mysteryblog"}, ctx)
    assert result == {"success": False, "error": "Could not extract with selectors"}

    missing = await dispatcher.dispatch("extract_with_selectors", {}, ctx)
    assert missing == {"success": False, "error": "Missing required argument: siteName"}


@pytest.mark.asyncio
async def test_ingredient_tools(dispatcher, ctx):
    single = await dispatcher.dispatch("parse_ingredient", {"ingredientText": "2 cups milk"}, ctx)
    assert single["parsed"]["quantity"] == 2
    assert single["parsed"]["category"] == "dairy"

    batch = await dispatcher.dispatch("parse_ingredients_batch", {"ingredients": ["1 egg", "salt"]}, ctx)
    assert [p["item"] for p in batch["parsed"]] == ["egg", "salt"]

    bad = await dispatcher.dispatch("parse_ingredients_batch", {"ingredients": "1 egg"}, ctx)
    assert bad["success"] is False

    category = await dispatcher.dispatch("classify_ingredient", {"ingredient": "garlic powder"}, ctx)
    assert category == {"success": True, "category": "spices"}


@pytest.mark.asyncio
async def test_download_image(dispatcher, ctx):
    ok = await dispatcher.dispatch("download_image", {"imageUrl": IMAGE}, ctx)
    assert ok == {"success": True, "imageUrl": IMAGE}

    missing = await dispatcher.dispatch("download_image", {"imageUrl": "https://cdn.example.com/nope.jpg"}, ctx)
    assert missing == {"success": False, "error": "Could not download image"}


@pytest.mark.asyncio
async def test_save_recipe(dispatcher, ctx, db_session):
    await dispatcher.dispatch("fetch_page", {"url": URL}, ctx)
    await dispatcher.dispatch("extract_schema_recipe", {}, ctx)

    result = await dispatcher.dispatch("save_recipe", {
        "url": URL,
        "title": "Fluffy Pancakes",
        "ingredients": ["1 1/2 cups flour", {"text": "2 eggs", "quantity": 2, "item": "eggs", "category": "dairy"}],
        "instructions": ["Mix.", "  ", "Cook."],
        "servings": 4,
        "prepTime": -5,
    }, ctx)

    assert result["success"] is True
    assert ctx.saved_recipe_id == result["recipeId"]

    row = RecipeStore(db_session).get(result["recipeId"])
    assert row.user_id == "u1"
    assert row.extractor_used == "llm"
    assert row.extraction_confidence == 0.9
    assert row.instructions == ["Mix.", "Cook."]
    assert row.ingredients[0]["quantity"] == 1.5
    assert row.ingredients[0]["category"] == "pantry"
    assert row.ingredients[1]["item"] == "eggs"
    assert row.prep_time is None
    # Carried over from the extractor output
    assert row.inactive_time == 10
    assert row.image_url == IMAGE
    assert row.agents_used == ["fetch_page", "extract_schema_recipe", "save_recipe"]


@pytest.mark.asyncio
async def test_save_recipe_requires_title(dispatcher, ctx):
    result = await dispatcher.dispatch("save_recipe", {"ingredients": [], "instructions": []}, ctx)
    assert result == {"success": False, "error": "Missing required argument: title"}
    assert ctx.saved_recipe_id is None


@pytest.mark.asyncio
async def test_check_cache(dispatcher, ctx):
    miss = await dispatcher.dispatch("check_recipe_cache", {"url": URL}, ctx)
    assert miss == {"found": False}

    await dispatcher.dispatch("save_recipe", {"title": "Pancakes", "ingredients": ["flour"], "instructions": ["Cook."]}, ctx)
    hit = await dispatcher.dispatch("check_recipe_cache", {"url": URL}, ctx)
    assert hit["found"] is True
    assert hit["source"] == "user_cache"
    assert hit["recipe"]["title"] == "Pancakes"

    ctx.bypass_cache = True
    bypassed = await dispatcher.dispatch("check_recipe_cache", {"url": URL}, ctx)
    assert bypassed["found"] is False
