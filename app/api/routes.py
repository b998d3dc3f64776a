# app/api/routes.py
from __future__ import annotations

import logging
from typing import Callable, Iterator, List, Optional

import requests
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from app.config import Settings, get_settings
from app.graph.lg_state import WorkflowDeps
from app.graph.lg_workflow import run_text_workflow, run_url_workflow
from models.article_models import ExtractedArticle, ExtractRequest, ExtractResponse
from models.keyword_models import KeywordResult
from services.content_extractor import extract_article
from services.count_policies import get_count_policy
from services.crawler import fetch_html
from services.llm_client import LlmClient, create_llm_client

logger = logging.getLogger(__name__)

router = APIRouter()

ClientFactory = Callable[[Optional[str]], LlmClient]


# --------- Request / Response モデル ---------


class KeywordsFromUrlRequest(BaseModel):
    url: str
    deep_analysis: bool = False
    provider: Optional[str] = None


class KeywordsFromTextRequest(BaseModel):
    content: str
    deep_analysis: bool = False
    provider: Optional[str] = None


class KeywordResponse(BaseModel):
    article: Optional[ExtractedArticle] = None
    result: KeywordResult
    progress_messages: List[str] = []


class HealthResponse(BaseModel):
    status: str
    provider: str
    count_policy: str


# --------- 依存関係 ---------


def get_client_factory(settings: Settings = Depends(get_settings)) -> ClientFactory:
    """リクエストごとに LLM クライアントを作るファクトリ（テストでは差し替える）。"""

    def factory(provider: Optional[str] = None) -> LlmClient:
        return create_llm_client(settings, provider)

    return factory


def get_http_session() -> Iterator[requests.Session]:
    """記事取得用のセッション。リクエストごとに作って閉じる。"""
    session = requests.Session()
    try:
        yield session
    finally:
        session.close()


def _build_deps(
    settings: Settings,
    client_factory: ClientFactory,
    session: requests.Session,
    provider: Optional[str],
) -> WorkflowDeps:
    return WorkflowDeps(
        client=client_factory(provider),
        policy=get_count_policy(settings.keyword_count_policy),
        proxy_url=settings.fetch_proxy_url,
        fetch_timeout=settings.fetch_timeout_seconds,
        session=session,
    )


# --------- エンドポイント ---------


@router.get("/health", response_model=HealthResponse)
def api_health(settings: Settings = Depends(get_settings)) -> HealthResponse:
    return HealthResponse(
        status="ok",
        provider=settings.llm_provider,
        count_policy=get_count_policy(settings.keyword_count_policy).name,
    )


@router.post("/extract", response_model=ExtractResponse)
def api_extract(
    payload: ExtractRequest,
    settings: Settings = Depends(get_settings),
    session: requests.Session = Depends(get_http_session),
) -> ExtractResponse:
    """
    URL か HTML から本文だけを抽出して返す。
    抽出結果の確認用（LLM は呼ばない）。
    """
    if payload.html:
        html = payload.html
    elif payload.url:
        html = fetch_html(
            payload.url,
            proxy_url=settings.fetch_proxy_url,
            timeout=settings.fetch_timeout_seconds,
            session=session,
        )
    else:
        raise HTTPException(status_code=400, detail="Either 'url' or 'html' is required.")

    article = extract_article(html)
    logger.info("[api.extract] title=%r chars=%d", article.title, article.char_count)
    return ExtractResponse(article=article, char_count=article.char_count)


@router.post("/keywords/from-url", response_model=KeywordResponse)
def api_keywords_from_url(
    payload: KeywordsFromUrlRequest,
    settings: Settings = Depends(get_settings),
    client_factory: ClientFactory = Depends(get_client_factory),
    session: requests.Session = Depends(get_http_session),
) -> KeywordResponse:
    """
    URL → 取得 → 本文抽出 → 言語・種別判定 → キーワード生成。
    """
    logger.info(
        "[api.keywords.from-url] url=%s deep=%s provider=%s",
        payload.url,
        payload.deep_analysis,
        payload.provider or settings.llm_provider,
    )
    deps = _build_deps(settings, client_factory, session, payload.provider)
    state = run_url_workflow(payload.url, deps, deep_analysis=payload.deep_analysis)

    return KeywordResponse(
        article=state.get("article"),
        result=state["keyword_result"],
        progress_messages=state.get("progress_messages", []),
    )


@router.post("/keywords/from-text", response_model=KeywordResponse)
def api_keywords_from_text(
    payload: KeywordsFromTextRequest,
    settings: Settings = Depends(get_settings),
    client_factory: ClientFactory = Depends(get_client_factory),
    session: requests.Session = Depends(get_http_session),
) -> KeywordResponse:
    """貼り付けテキストからキーワードを生成する（最低 500 文字）。"""
    logger.info(
        "[api.keywords.from-text] chars=%d deep=%s provider=%s",
        len(payload.content),
        payload.deep_analysis,
        payload.provider or settings.llm_provider,
    )
    deps = _build_deps(settings, client_factory, session, payload.provider)
    state = run_text_workflow(payload.content, deps, deep_analysis=payload.deep_analysis)

    return KeywordResponse(
        result=state["keyword_result"],
        progress_messages=state.get("progress_messages", []),
    )
