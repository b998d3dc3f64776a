# app/graph/nodes.py
from __future__ import annotations

import logging
from typing import List

from agents.content_type_agent import detect_content_type
from agents.keyword_generator_agent import generate_keywords
from app.graph.lg_state import GraphState, WorkflowDeps
from models.article_models import ExtractedArticle
from models.keyword_models import KeywordResult
from services.content_extractor import MIN_ARTICLE_CHARS, ContentTooShortError, extract_article
from services.crawler import fetch_html
from services.language import detect_language

logger = logging.getLogger(__name__)


def _log_progress(state: GraphState, node: str, message: str) -> GraphState:
    """
    進捗ログを state に積むユーティリティ。
    state は dict (GraphState) として扱う。
    """
    line = f"[{node}] {message}"

    messages: List[str] = list(state.get("progress_messages", []))
    messages.append(line)

    state["progress_messages"] = messages
    state["current_node"] = node

    logger.info(line)
    return state


# ---------- Fetch ノード ----------


def fetch_node(state: GraphState, deps: WorkflowDeps) -> GraphState:
    """記事 URL から HTML を取得する。"""
    state = _log_progress(state, "fetch", "start: fetching article HTML")

    html = fetch_html(
        state["url"],
        proxy_url=deps.proxy_url,
        timeout=deps.fetch_timeout,
        session=deps.session,
    )
    state["html"] = html

    state = _log_progress(state, "fetch", f"done: fetched {len(html)} characters of HTML")
    return state


# ---------- Extract ノード ----------


def extract_node(state: GraphState, deps: WorkflowDeps) -> GraphState:
    """HTML から本文を抽出し、プロンプト用のテキストを state に入れる。"""
    state = _log_progress(state, "extract", "start: extracting main article text")

    article: ExtractedArticle = extract_article(state["html"])
    state["article"] = article
    state["content"] = article.text

    state = _log_progress(state, "extract", f"done: extracted {article.char_count} characters")
    return state


# ---------- Language ノード ----------


def language_node(state: GraphState, deps: WorkflowDeps) -> GraphState:
    """貼り付け／抽出テキストの長さを確認し、言語を判定する。"""
    state = _log_progress(state, "language", "start: detecting language")

    content = (state.get("content") or "").strip()
    if len(content) < MIN_ARTICLE_CHARS:
        raise ContentTooShortError(len(content), MIN_ARTICLE_CHARS)

    language = detect_language(content)
    state["language"] = language

    state = _log_progress(state, "language", f"done: language={language}")
    return state


# ---------- Content type ノード ----------


def content_type_node(state: GraphState, deps: WorkflowDeps) -> GraphState:
    state = _log_progress(state, "content_type", "start: classifying content")

    content_type = detect_content_type(state["content"], deps.client)
    state["content_type"] = content_type

    state = _log_progress(state, "content_type", f"done: content_type={content_type}")
    return state


# ---------- Keyword ノード ----------


def keyword_node(state: GraphState, deps: WorkflowDeps) -> GraphState:
    """
    Keyword ノード:
    本文・言語・コンテンツ種別から KeywordResult を生成して state に詰める。
    """
    state = _log_progress(
        state,
        "keyword_generator",
        f"start: generating keywords (deep_analysis={state.get('deep_analysis', False)})",
    )

    result: KeywordResult = generate_keywords(
        state["content"],
        deps.client,
        deps.policy,
        deep=bool(state.get("deep_analysis")),
        content_type=state.get("content_type") or "General",
        language=state.get("language"),
    )
    state["keyword_result"] = result

    counts = result.category_counts()
    state = _log_progress(
        state,
        "keyword_generator",
        "done: " + ", ".join(f"{name}={count}" for name, count in counts.items()),
    )
    return state
