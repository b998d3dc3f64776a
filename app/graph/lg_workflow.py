# app/graph/lg_workflow.py
from __future__ import annotations

import logging

from app.graph import nodes
from app.graph.lg_state import GraphState, WorkflowDeps, create_initial_state

logger = logging.getLogger(__name__)


def run_url_workflow(url: str, deps: WorkflowDeps, deep_analysis: bool = False) -> GraphState:
    """
    URL 入力用の直列ワークフロー。

    fetch → extract → language → content_type → keyword_generator
    """
    logger.info("[lg_workflow] run_url_workflow start url=%s deep=%s", url, deep_analysis)

    state = create_initial_state(url=url, deep_analysis=deep_analysis)

    # 1) HTML 取得（プロキシ・タイムアウト付き）
    state = nodes.fetch_node(state, deps)

    # 2) 本文抽出
    state = nodes.extract_node(state, deps)

    # 3) 以降は貼り付けと共通
    state = _run_generation(state, deps)

    logger.info("[lg_workflow] run_url_workflow done url=%s current_node=%s", url, state.get("current_node"))
    return state


def run_text_workflow(content: str, deps: WorkflowDeps, deep_analysis: bool = False) -> GraphState:
    """
    貼り付けテキスト用の直列ワークフロー（取得・抽出は行わない）。

    language → content_type → keyword_generator
    """
    logger.info("[lg_workflow] run_text_workflow start chars=%d deep=%s", len(content), deep_analysis)

    state = create_initial_state(content=content, deep_analysis=deep_analysis)
    state = _run_generation(state, deps)

    logger.info("[lg_workflow] run_text_workflow done current_node=%s", state.get("current_node"))
    return state


def _run_generation(state: GraphState, deps: WorkflowDeps) -> GraphState:
    state = nodes.language_node(state, deps)
    state = nodes.content_type_node(state, deps)
    state = nodes.keyword_node(state, deps)
    return state
