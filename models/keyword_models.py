# models/keyword_models.py

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


# -----------------------------------------
# 付帯メタデータの語彙
# -----------------------------------------
SearchIntent = Literal["informational", "navigational", "transactional", "commercial"]
SearchVolume = Literal["high", "medium", "low"]
Difficulty = Literal["easy", "medium", "hard"]
DetectedLanguage = Literal["english", "bangla", "mixed"]

_INTENTS = ("informational", "navigational", "transactional", "commercial")
_VOLUMES = ("high", "medium", "low")
_DIFFICULTIES = ("easy", "medium", "hard")
_LANGUAGES = ("english", "bangla", "mixed")


def _normalize_choice(value: object, choices: tuple[str, ...]) -> Optional[str]:
    """LLM が返した表記ゆれ（大文字・前後空白）を吸収し、未知の値は None にする。"""
    if not isinstance(value, str):
        return None
    v = value.strip().lower()
    return v if v in choices else None


# -----------------------------------------
# キーワード 1 件
# -----------------------------------------
class KeywordItem(BaseModel):
    """LLM が返すキーワード 1 件。

    Attributes:
        term (str): キーワード本体（空白のみは不可）。
        rationale (str): 選定理由（空白のみは不可）。
        search_intent (SearchIntent | None): 検索意図。
        search_volume (SearchVolume | None): 推定検索ボリューム。
        difficulty (Difficulty | None): 推定難易度。
        term_bangla (str | None): ベンガル文字表記。
        term_english (str | None): 英語表記・翻字。
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    term: str = Field(..., min_length=1)
    rationale: str = Field(..., min_length=1)
    search_intent: Optional[SearchIntent] = Field(None, alias="searchIntent")
    search_volume: Optional[SearchVolume] = Field(None, alias="searchVolume")
    difficulty: Optional[Difficulty] = None
    term_bangla: Optional[str] = Field(None, alias="termBangla")
    term_english: Optional[str] = Field(None, alias="termEnglish")

    @field_validator("term", "rationale", mode="before")
    @classmethod
    def _strip_text(cls, value: object) -> object:
        return value.strip() if isinstance(value, str) else value

    @field_validator("search_intent", mode="before")
    @classmethod
    def _normalize_intent(cls, value: object) -> Optional[str]:
        return _normalize_choice(value, _INTENTS)

    @field_validator("search_volume", mode="before")
    @classmethod
    def _normalize_volume(cls, value: object) -> Optional[str]:
        return _normalize_choice(value, _VOLUMES)

    @field_validator("difficulty", mode="before")
    @classmethod
    def _normalize_difficulty(cls, value: object) -> Optional[str]:
        return _normalize_choice(value, _DIFFICULTIES)


# -----------------------------------------
# 検索参照（Gemini のグラウンディング情報）
# -----------------------------------------
class WebReference(BaseModel):
    uri: str
    title: str = ""


class GroundingChunk(BaseModel):
    """呼び出し側（プロバイダ）が付与する参照リンク。モデルの本文からは作らない。"""

    web: Optional[WebReference] = None


# -----------------------------------------
# キーワード生成結果（集約）
# -----------------------------------------
class KeywordResult(BaseModel):
    """検証済みのキーワード生成結果。

    カテゴリ配列（primary / secondary / longtail は必須、その他は任意）と
    自由記述フィールド、呼び出し側が付与する由来情報
    （content_type / detected_language / search_references）をまとめる。
    JSON では LLM と同じ camelCase 名で入出力する。
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    primary: List[KeywordItem]
    secondary: List[KeywordItem]
    longtail: List[KeywordItem]
    lsi_keywords: Optional[List[KeywordItem]] = Field(None, alias="lsiKeywords")
    entities: Optional[List[KeywordItem]] = None
    question_keywords: Optional[List[KeywordItem]] = Field(None, alias="questionKeywords")

    competitor_insights: str = Field(..., min_length=1, alias="competitorInsights")

    # ---- 由来情報（呼び出し側が付与） ----
    search_references: List[GroundingChunk] = Field(default_factory=list, alias="searchReferences")
    content_type: str = Field("General", alias="contentType")
    detected_language: Optional[DetectedLanguage] = Field(None, alias="detectedLanguage")

    # ---- 任意の SEO 付帯情報 ----
    seo_score: Optional[float] = Field(None, alias="seoScore")
    meta_title: Optional[str] = Field(None, alias="metaTitle")
    meta_description: Optional[str] = Field(None, alias="metaDescription")
    serp_feature_targets: List[str] = Field(default_factory=list, alias="serpFeatureTargets")
    local_seo_signals: List[str] = Field(default_factory=list, alias="localSeoSignals")

    # ---- バングラ語向けフィールド ----
    meta_title_bangla: Optional[str] = Field(None, alias="metaTitleBangla")
    meta_description_bangla: Optional[str] = Field(None, alias="metaDescriptionBangla")
    bangla_search_insights: Optional[str] = Field(None, alias="banglaSearchInsights")
    transliteration_guide: Optional[str] = Field(None, alias="transliterationGuide")

    @field_validator("detected_language", mode="before")
    @classmethod
    def _normalize_language(cls, value: object) -> Optional[str]:
        return _normalize_choice(value, _LANGUAGES)

    @field_validator("competitor_insights", mode="before")
    @classmethod
    def _strip_insights(cls, value: object) -> object:
        return value.strip() if isinstance(value, str) else value

    @field_validator("serp_feature_targets", "local_seo_signals", mode="before")
    @classmethod
    def _none_as_empty(cls, value: object) -> object:
        # null は空リスト扱い
        return [] if value is None else value

    # ------------------------------
    # カテゴリごとの件数（ログ・レスポンス用）
    # ------------------------------
    def category_counts(self) -> dict[str, int]:
        """カテゴリ名（JSON 名）→ 件数。任意カテゴリは存在する場合のみ含める。"""
        counts = {
            "primary": len(self.primary),
            "secondary": len(self.secondary),
            "longtail": len(self.longtail),
        }
        optional = {
            "lsiKeywords": self.lsi_keywords,
            "entities": self.entities,
            "questionKeywords": self.question_keywords,
        }
        for name, items in optional.items():
            if items is not None:
                counts[name] = len(items)
        return counts
