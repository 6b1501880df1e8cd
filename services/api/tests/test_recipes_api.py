import pytest

from julienned.schemas import ParsedIngredient, Recipe
from julienned.services.recipe_store import RecipeStore

URL = "https://example.com/recipes/chili"
U1 = {"X-User-Id": "u1"}
U2 = {"X-User-Id": "u2"}


@pytest.fixture
def chili(db_session):
    recipe = Recipe(
        title="Texas Chili",
        ingredients=[ParsedIngredient(text="1 lb beef", quantity=1, unit="lb", item="beef", category="meat_seafood")],
        instructions=["Brown the beef.", "Simmer."],
        servings=6,
    )
    row = RecipeStore(db_session).save("u1", URL, recipe, confidence=0.95, extractor_used="schema_fast_path")
    return row.id


def test_list_is_scoped_to_user(client, chili):
    mine = client.get("/api/recipes", headers=U1).json()
    assert [r["id"] for r in mine] == [chili]
    assert mine[0]["ingredients"][0]["category"] == "meat_seafood"
    assert mine[0]["extractionConfidence"] == 0.95

    assert client.get("/api/recipes", headers=U2).json() == []


def test_missing_user_header(client):
    assert client.get("/api/recipes").status_code == 400


def test_get_recipe(client, chili):
    res = client.get(f"/api/recipes/{chili}", headers=U1)
    assert res.status_code == 200
    assert res.json()["title"] == "Texas Chili"
    assert res.json()["originalServings"] == 6

    assert client.get(f"/api/recipes/{chili}", headers=U2).status_code == 403
    assert client.get("/api/recipes/does-not-exist", headers=U1).status_code == 404


def test_patch_marks_user_modified(client, chili):
    res = client.patch(f"/api/recipes/{chili}", json={"title": "My Chili", "servings": 3}, headers=U1)

    assert res.status_code == 200
    body = res.json()
    assert body["title"] == "My Chili"
    assert body["servings"] == 3
    assert body["originalServings"] == 6
    assert body["userModified"] is True

    assert client.patch(f"/api/recipes/{chili}", json={"title": "Stolen"}, headers=U2).status_code == 403
    assert client.patch(f"/api/recipes/{chili}", json={"servings": 0}, headers=U1).status_code == 422


def test_delete(client, chili):
    assert client.delete(f"/api/recipes/{chili}", headers=U2).status_code == 403
    assert client.delete(f"/api/recipes/{chili}", headers=U1).status_code == 204
    assert client.get(f"/api/recipes/{chili}", headers=U1).status_code == 404


def test_search(client, chili):
    hits = client.get("/api/recipes/search", params={"q": "chili"}, headers=U1).json()
    assert [r["id"] for r in hits] == [chili]
    assert client.get("/api/recipes/search", params={"q": "pasta"}, headers=U1).json() == []


def test_check_duplicate(client, chili):
    tracked = URL + "/?utm_source=pinterest"
    res = client.get("/api/recipes/check-duplicate", params={"url": tracked}, headers=U1)
    assert res.status_code == 200
    assert res.json()["id"] == chili

    other = client.get("/api/recipes/check-duplicate", params={"url": URL}, headers=U2)
    assert other.json() is None

    bad = client.get("/api/recipes/check-duplicate", params={"url": "chili"}, headers=U1)
    assert bad.status_code == 400
