# agents/content_type_agent.py

from __future__ import annotations

import logging

from services.llm_client import LlmClient, LlmConfigError, LlmProviderError

logger = logging.getLogger(__name__)

CONTENT_TYPES = ("News Article", "Business Article", "Press Release", "General")
DEFAULT_CONTENT_TYPE = "General"

# 分類に使う先頭文字数
CLASSIFY_CHARS = 2000

SYSTEM_PROMPT = "You classify news articles. Reply with the category name only."

USER_PROMPT_TEMPLATE = """
Classify the following article text into ONE of these categories:

- News Article: recent events, current affairs, politics, general interest; objective reporting.
- Business Article: finance, economy, industries, companies or markets; financial data and analysis.
- Press Release: an official statement from an organization, formal and promotional in tone.
- General: only if the text does not clearly fit any category above.

Article Text:
---
{article}
---

Classification:
""".strip()


def detect_content_type(article_text: str, client: LlmClient) -> str:
    """
    記事のコンテンツ種別を LLM で判定する。
    想定外の回答やプロバイダエラー時は General にフォールバックする。
    """
    prompt = USER_PROMPT_TEMPLATE.format(article=article_text[:CLASSIFY_CHARS])
    try:
        response = client.complete(SYSTEM_PROMPT, prompt, temperature=0.0, max_tokens=10)
    except (LlmProviderError, LlmConfigError) as e:
        logger.warning("[content_type] classification failed, fallback used: %s", e)
        return DEFAULT_CONTENT_TYPE

    answer = response.text.strip().strip(".*\"'")
    for content_type in CONTENT_TYPES:
        if answer.lower() == content_type.lower():
            logger.info("[content_type] detected content_type=%s", content_type)
            return content_type

    logger.warning("[content_type] unexpected answer=%r, fallback used", answer[:50])
    return DEFAULT_CONTENT_TYPE
