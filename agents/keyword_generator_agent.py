# agents/keyword_generator_agent.py

from __future__ import annotations

import logging
from typing import Dict, Optional

from models.keyword_models import KeywordResult
from models.policy_models import CountPolicy
from services.language import Language, detect_language
from services.llm_client import LlmClient
from services.response_parser import parse_keyword_response

logger = logging.getLogger(__name__)

# ============================================================
# 生成パラメータ
# ============================================================

FAST_TEMPERATURE = 0.4
DEEP_TEMPERATURE = 0.2
FAST_MAX_TOKENS = 4096
DEEP_MAX_TOKENS = 8192

SYSTEM_PROMPT = (
    "You are a world-class SEO keyword research specialist for a Bangladeshi news publisher. "
    "You must respond with ONLY valid JSON, no markdown, no explanations, just pure JSON."
)


# ============================================================
# プロンプト部品（コンテンツ種別 × 言語）
# ============================================================

PERSONAS: Dict[str, Dict[str, str]] = {
    "News Article": {
        "persona": "a senior SEO editor for a national English and Bangla daily newspaper",
        "competitors": "Prothom Alo, Dhaka Tribune, bdnews24, The Business Standard",
    },
    "Business Article": {
        "persona": "a senior SEO editor specialising in business and financial journalism",
        "competitors": "The Financial Express, The Business Standard, Bonik Barta",
    },
    "Press Release": {
        "persona": "an SEO specialist for official announcements and press releases",
        "competitors": "government announcements and corporate newsrooms",
    },
    "General": {
        "persona": "a senior SEO specialist for a news website",
        "competitors": "other national news portals",
    },
}

LANGUAGE_INSTRUCTIONS: Dict[str, str] = {
    "english": (
        "The article is in English. Return English keywords taken verbatim from the article "
        "wherever possible."
    ),
    "bangla": (
        "The article is in Bangla (Bengali script). Return keywords in Bengali script, and for each "
        "keyword also fill termBangla (Bengali script) and termEnglish (transliteration with meaning). "
        "Also provide metaTitleBangla, metaDescriptionBangla, banglaSearchInsights and transliterationGuide."
    ),
    "mixed": (
        "The article mixes Bangla and English (code-switching). Return keywords the way readers search, "
        "mixing scripts where natural, and fill termBangla / termEnglish for Bangla keywords. "
        "Also provide metaTitleBangla, metaDescriptionBangla, banglaSearchInsights and transliterationGuide."
    ),
}

PROMPT_TEMPLATE = """
Persona: You are {persona}.

Task: Analyse the {content_type} below and produce an SEO keyword strategy that competes with {competitors}.

{language_instruction}

Article:
---
{article}
---

Keyword quantities (inclusive ranges):
{ranges}

Every keyword item is an object:
{{"term": "...", "rationale": "...", "searchIntent": "informational|navigational|transactional|commercial",
 "searchVolume": "high|medium|low", "difficulty": "easy|medium|hard"}}

Return ONE JSON object with these keys:
primary, secondary, longtail, lsiKeywords, entities, questionKeywords (arrays of keyword items),
competitorInsights (string, required), metaTitle (50-60 chars), metaDescription (150-160 chars),
seoScore (0-100), serpFeatureTargets (array of strings), localSeoSignals (array of strings).
""".strip()

_CATEGORY_LABELS = {
    "primary": "Primary keywords",
    "secondary": "Secondary keywords",
    "longtail": "Long-tail keywords",
    "lsiKeywords": "LSI keywords (optional)",
    "questionKeywords": "Question keywords (optional)",
    "entities": "Entities (optional)",
}


def build_prompt(
    article_text: str,
    content_type: str,
    language: Language,
    policy: CountPolicy,
) -> str:
    """コンテンツ種別・言語・件数ポリシーから 1 本のプロンプトを組み立てる。"""
    persona = PERSONAS.get(content_type, PERSONAS["General"])
    ranges = "\n".join(
        f"- {_CATEGORY_LABELS.get(name, name)} ({name}): {rng.min}-{rng.max}"
        for name, rng in {**policy.required, **policy.optional}.items()
    )
    return PROMPT_TEMPLATE.format(
        persona=persona["persona"],
        content_type=content_type,
        competitors=persona["competitors"],
        language_instruction=LANGUAGE_INSTRUCTIONS[language],
        article=article_text,
        ranges=ranges,
    )


# ============================================================
# 公開関数
# ============================================================

def generate_keywords(
    article_text: str,
    client: LlmClient,
    policy: CountPolicy,
    *,
    deep: bool = False,
    content_type: str = "General",
    language: Optional[Language] = None,
) -> KeywordResult:
    """
    記事テキストから KeywordResult を生成する。

    - language を省略した場合はここで判定する
    - LLM の応答は response_parser で抽出・検証し、失敗はそのまま例外で返す
    """
    language = language or detect_language(article_text)
    prompt = build_prompt(article_text, content_type, language, policy)

    logger.info(
        "[keyword_generator] start provider=%s deep=%s content_type=%s language=%s policy=%s",
        client.provider,
        deep,
        content_type,
        language,
        policy.name,
    )

    response = client.complete(
        SYSTEM_PROMPT,
        prompt,
        deep=deep,
        temperature=DEEP_TEMPERATURE if deep else FAST_TEMPERATURE,
        max_tokens=DEEP_MAX_TOKENS if deep else FAST_MAX_TOKENS,
        json_mode=True,
    )

    result = parse_keyword_response(
        response.text,
        policy,
        detected_language=language,
        content_type=content_type,
        search_references=response.search_references,
    )

    logger.info(
        "[keyword_generator] success provider=%s counts=%s",
        client.provider,
        result.category_counts(),
    )
    return result
