"""HTTP API tests: the workflow runs end to end against fake fetch and LLM dependencies."""

from __future__ import annotations

import json

import pytest
from fastapi.testclient import TestClient
from pydantic import ValidationError

from app.api.routes import get_client_factory, get_http_session
from app.config import Settings, get_settings
from app.main import app as fastapi_app
from services.llm_client import LlmConfigError

PASTED_ARTICLE = (
    "Dhaka's stock market closed higher on Thursday, as investors bought banking shares, "
    "and turnover rose to its highest level in three weeks. "
) * 5


@pytest.fixture()
def deps():
    """テストごとに差し替える LLM クライアントと HTTP セッション。"""
    return {"llm": None, "session": None}


@pytest.fixture()
def client(deps, fake_llm, fake_session_factory, make_article_html):
    deps["llm"] = fake_llm
    deps["session"] = fake_session_factory(make_article_html())

    fastapi_app.dependency_overrides[get_settings] = lambda: Settings(
        _env_file=None,
        llm_provider="openai",
        keyword_count_policy="flexible",
    )
    fastapi_app.dependency_overrides[get_client_factory] = lambda: (lambda provider=None: deps["llm"])
    fastapi_app.dependency_overrides[get_http_session] = lambda: deps["session"]

    yield TestClient(fastapi_app)

    fastapi_app.dependency_overrides.clear()


def test_health(client):
    resp = client.get("/api/health")

    assert resp.status_code == 200
    assert resp.json() == {"status": "ok", "provider": "openai", "count_policy": "flexible"}


def test_keywords_from_text(client, deps):
    resp = client.post("/api/keywords/from-text", json={"content": PASTED_ARTICLE})

    assert resp.status_code == 200
    body = resp.json()
    assert body["article"] is None
    assert body["result"]["primary"][0]["term"] == "gold price"
    assert body["result"]["contentType"] == "News Article"
    assert body["result"]["detectedLanguage"] == "english"
    assert body["progress_messages"][0].startswith("[language] start")
    assert len(deps["llm"].calls) == 2


def test_short_text_is_rejected_before_llm(client, deps):
    resp = client.post("/api/keywords/from-text", json={"content": "Too short to analyse."})

    assert resp.status_code == 422
    assert resp.json()["error"] == "content_too_short"
    assert deps["llm"].calls == []


def test_keywords_from_url(client, deps):
    resp = client.post(
        "/api/keywords/from-url",
        json={"url": "https://news.example/gold", "deep_analysis": True},
    )

    assert resp.status_code == 200
    body = resp.json()
    assert body["article"]["title"] == "Gold prices hit record high"
    assert "Most read stories" not in body["article"]["body"]
    assert body["progress_messages"][0].startswith("[fetch] start")
    assert deps["session"].requests[0]["url"] == "https://news.example/gold"
    assert deps["llm"].calls[-1]["deep"] is True


def test_invalid_url_is_bad_request(client):
    resp = client.post("/api/keywords/from-url", json={"url": "news.example/gold"})

    assert resp.status_code == 400
    assert resp.json()["error"] == "invalid_url"


def test_fetch_timeout_is_gateway_timeout(client, deps, fake_session_factory, timeout_error):
    deps["session"] = fake_session_factory(error=timeout_error)

    resp = client.post("/api/keywords/from-url", json={"url": "https://news.example/gold"})

    assert resp.status_code == 504
    assert resp.json()["error"] == "fetch_timeout"


def test_fetch_status_is_bad_gateway(client, deps, fake_session_factory):
    deps["session"] = fake_session_factory("forbidden", status_code=403)

    resp = client.post("/api/keywords/from-url", json={"url": "https://news.example/gold"})

    assert resp.status_code == 502
    assert resp.json()["error"] == "fetch_error"


def test_prose_llm_output_is_reported(client, deps, make_llm):
    deps["llm"] = make_llm(keyword_text="I'm sorry, I cannot do that.")

    resp = client.post("/api/keywords/from-text", json={"content": PASTED_ARTICLE})

    assert resp.status_code == 502
    body = resp.json()
    assert body["error"] == "llm_output_not_json"
    assert body["preview"] == "I'm sorry, I cannot do that."


def test_invalid_counts_are_reported(client, deps, make_llm, make_payload):
    deps["llm"] = make_llm(keyword_text=json.dumps(make_payload(primary=[])))

    resp = client.post("/api/keywords/from-text", json={"content": PASTED_ARTICLE})

    assert resp.status_code == 502
    body = resp.json()
    assert body["error"] == "llm_output_invalid"
    assert body["counts"]["primary"] == 0
    assert body["expected"] == {"primary": "1-10", "secondary": "2-20", "longtail": "3-30"}


def test_missing_api_key_is_server_error(client):
    def _unconfigured(provider=None):
        raise LlmConfigError("OPENAI_API_KEY is not set.")

    fastapi_app.dependency_overrides[get_client_factory] = lambda: _unconfigured

    resp = client.post("/api/keywords/from-text", json={"content": PASTED_ARTICLE})

    assert resp.status_code == 500
    assert resp.json()["error"] == "llm_not_configured"


def test_extract_from_html(client, make_article_html):
    resp = client.post("/api/extract", json={"html": make_article_html()})

    assert resp.status_code == 200
    body = resp.json()
    assert body["article"]["title"] == "Gold prices hit record high"
    assert body["char_count"] >= 500


def test_extract_from_url_uses_session(client, deps):
    resp = client.post("/api/extract", json={"url": "https://news.example/gold"})

    assert resp.status_code == 200
    assert len(deps["session"].requests) == 1


def test_extract_requires_input(client):
    resp = client.post("/api/extract", json={})

    assert resp.status_code == 400


def test_extract_short_page(client):
    resp = client.post("/api/extract", json={"html": "<html><body><article><p>Tiny.</p></article></body></html>"})

    assert resp.status_code == 422
    assert resp.json()["error"] == "content_too_short"


def test_unknown_count_policy_fails_when_settings_load():
    with pytest.raises(ValidationError) as exc_info:
        Settings(_env_file=None, keyword_count_policy="loose")

    assert "flexible, strict" in str(exc_info.value)


def test_count_policy_setting_is_normalised():
    assert Settings(_env_file=None, keyword_count_policy=" Strict ").keyword_count_policy == "strict"
