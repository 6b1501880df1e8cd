import pytest
from fastapi import Depends
from sqlalchemy.orm import Session

from julienned.db import get_db
from julienned.deps import get_extraction_service
from julienned.main import app
from julienned.services.extraction import ExtractionService

URL = "https://example.com/pancakes"
HEADERS = {"X-User-Id": "u1"}


@pytest.fixture
def ai(script):
    return script.model(script.done("No recipe here."))


@pytest.fixture
def api(client, fake_web, pancakes_html, ai):
    fake_web.pages[URL] = (200, pancakes_html)

    def _service(db: Session = Depends(get_db)):
        return ExtractionService(db, fetcher=fake_web.fetcher(), ai=ai)

    app.dependency_overrides[get_extraction_service] = _service
    return client


def test_requires_user(api):
    res = api.post("/api/extract", json={"url": URL})
    assert res.status_code == 400


def test_invalid_url_is_reported_in_envelope(api, fake_web):
    res = api.post("/api/extract", json={"url": "not-a-url"}, headers=HEADERS)

    assert res.status_code == 200
    body = res.json()
    assert body["success"] is False
    assert body["error"] == {
        "code": "INVALID_URL",
        "message": "Please provide a valid HTTP or HTTPS URL",
        "retryable": False,
    }
    assert body["metadata"]["source"] == "error"
    assert fake_web.requests == []


def test_extract_returns_camel_case_envelope(api):
    res = api.post("/api/extract", json={"url": URL}, headers=HEADERS)

    assert res.status_code == 200
    body = res.json()
    assert body["success"] is True
    assert body["cached"] is False
    assert body["metadata"]["extractorUsed"] == "schema_fast_path"
    assert body["metadata"]["extractionTimeMs"] >= 0
    recipe = body["recipe"]
    assert recipe["title"] == "Fluffy Pancakes"
    assert recipe["userId"] == "u1"
    assert recipe["prepTime"] == 10
    assert recipe["sourceUrl"] == URL
    assert recipe["userModified"] is False


def test_second_extract_is_cached(api):
    api.post("/api/extract", json={"url": URL}, headers=HEADERS)
    res = api.post("/api/extract", json={"url": URL}, headers=HEADERS)
    assert res.json()["cached"] is True
    assert res.json()["metadata"]["source"] == "user_cache"


def test_force_refresh_option(api, fake_web):
    api.post("/api/extract", json={"url": URL}, headers=HEADERS)
    fetches = len(fake_web.requests)

    res = api.post("/api/extract", json={"url": URL, "options": {"forceRefresh": True}}, headers=HEADERS)

    assert res.json()["metadata"]["source"] == "fresh_extraction"
    assert len(fake_web.requests) == fetches + 1


def test_no_recipe_found(api, ai):
    res = api.post("/api/extract", json={"url": "https://example.com/empty"}, headers=HEADERS)
    body = res.json()
    assert body["success"] is False
    assert body["error"]["code"] == "NO_RECIPE_FOUND"
    assert body["metadata"]["source"] == "extraction_failed"
    ai.run_tool_turn.assert_awaited_once()


def test_idempotent_replay(api, fake_web):
    headers = {**HEADERS, "Idempotency-Key": "extract-1"}

    first = api.post("/api/extract", json={"url": URL}, headers=headers)
    fetches = len(fake_web.requests)
    replay = api.post("/api/extract", json={"url": URL}, headers=headers)

    assert replay.status_code == 200
    assert replay.json() == first.json()
    assert replay.json()["metadata"]["source"] == "fresh_extraction"
    assert len(fake_web.requests) == fetches


def test_idempotency_key_reuse_with_other_payload(api):
    headers = {**HEADERS, "Idempotency-Key": "extract-2"}
    api.post("/api/extract", json={"url": URL}, headers=headers)

    res = api.post("/api/extract", json={"url": "https://example.com/other"}, headers=headers)

    assert res.status_code == 409


def test_refresh_endpoint(api):
    saved = api.post("/api/extract", json={"url": URL}, headers=HEADERS).json()["recipe"]

    res = api.post(f"/api/recipes/{saved['id']}/refresh", headers=HEADERS)
    assert res.status_code == 200
    assert res.json()["success"] is True
    assert res.json()["recipe"]["id"] == saved["id"]

    other = api.post(f"/api/recipes/{saved['id']}/refresh", headers={"X-User-Id": "u2"})
    assert other.json()["success"] is False
    assert other.json()["error"]["message"] == "Not authorized"
