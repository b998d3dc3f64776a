# app/graph/lg_state.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests

from models.policy_models import CountPolicy
from services.llm_client import LlmClient


class GraphState(Dict[str, Any]):
    """
    LangGraph 風の「状態」コンテナ。
    実体はただの dict だが、型ヒントとして分かりやすくするためのラッパ。
    """
    pass


@dataclass
class WorkflowDeps:
    """
    ノードが使う外部依存（LLM クライアント・件数ポリシー・取得設定）。
    リクエストごとに組み立てて渡し、グローバルには持たない。
    """

    client: LlmClient
    policy: CountPolicy
    proxy_url: Optional[str] = None
    fetch_timeout: float = 30.0
    session: Optional[requests.Session] = None


def create_initial_state(
    *,
    url: Optional[str] = None,
    content: Optional[str] = None,
    deep_analysis: bool = False,
) -> GraphState:
    """
    ワークフロー開始時の初期 state を作成。
    url か content（貼り付けテキスト）のどちらかを入れる。
    """
    state: GraphState = GraphState()
    state["url"] = url
    state["content"] = content
    state["deep_analysis"] = deep_analysis
    state["progress_messages"] = []  # 各ノードからのログ的メッセージ
    state["current_node"] = None
    return state
