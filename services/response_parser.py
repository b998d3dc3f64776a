# services/response_parser.py

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from pydantic import TypeAdapter, ValidationError

from models.keyword_models import GroundingChunk, KeywordItem, KeywordResult
from models.policy_models import CategoryRange, CountPolicy

logger = logging.getLogger(__name__)

# ============================================================
# JSON 抽出パターン
# ============================================================

_FENCED_BLOCK = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```")
_EMBEDDED_OBJECT = re.compile(r"\{[\s\S]*\}")
_PREFIXED_OBJECT = re.compile(r"(?:Here's|Here is|Output:|Result:)?\s*(\{[\s\S]*\})", re.IGNORECASE)

PREVIEW_CHARS = 200
PARSE_PREVIEW_CHARS = 500

COMPETITOR_INSIGHTS_KEY = "competitorInsights"
_LANGUAGES = ("english", "bangla", "mixed")

_KEYWORD_ITEMS = TypeAdapter(List[KeywordItem])


# ============================================================
# 例外
# ============================================================

class ResponseParseError(RuntimeError):
    """LLM が JSON 出力の約束を守らなかった。"""

    def __init__(self, message: str, preview: str) -> None:
        self.preview = preview
        super().__init__(message)


class NoJsonFoundError(ResponseParseError):
    def __init__(self, text: str) -> None:
        preview = text[:PREVIEW_CHARS]
        super().__init__(
            "The AI did not return a JSON object. "
            f"Response preview: {preview!r}. Please try again or use Deep Analysis mode.",
            preview,
        )


class JsonParseError(ResponseParseError):
    def __init__(self, reason: str, candidate: str) -> None:
        self.reason = reason
        preview = candidate[:PARSE_PREVIEW_CHARS]
        super().__init__(
            f"Failed to parse AI response as JSON ({reason}). "
            "The AI may have returned text instead of pure JSON. Please try again.",
            preview,
        )


class KeywordValidationError(RuntimeError):
    """件数レンジ外・必須フィールド欠落など、形は JSON だが中身が契約違反。"""

    def __init__(
        self,
        errors: List[str],
        counts: Dict[str, int],
        policy: CountPolicy,
    ) -> None:
        self.errors = errors
        self.counts = counts
        self.policy = policy
        received = ", ".join(f"{name} ({counts.get(name, 0)})" for name in policy.required)
        super().__init__(
            "AI returned incomplete keyword data: "
            + "; ".join(errors)
            + f". Expected: {policy.describe()}. Received: {received}. "
            "Try again, use Deep Analysis mode, or provide a longer article."
        )


# ============================================================
# 検証レポート
# ============================================================

@dataclass
class ValidationReport:
    """validate_keyword_result の結果。"""

    errors: List[str] = field(default_factory=list)
    counts: Dict[str, int] = field(default_factory=dict)
    dropped: List[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors


# ============================================================
# 1) JSON 文字列の抽出
# ============================================================

def extract_json_candidate(text: str) -> str:
    """
    LLM の応答から JSON オブジェクト部分の文字列を取り出す。

    優先順:
      1. 先頭が { ならそのまま
      2. ```json ... ``` / ``` ... ``` の中身
      3. 最初の { から最後の } まで
      4. "Here's" / "Output:" などの前置き + {...}
    """
    stripped = text.strip()
    candidate: Optional[str] = None
    strategy = "raw"

    if stripped.startswith("{"):
        candidate = stripped

    if candidate is None:
        match = _FENCED_BLOCK.search(stripped)
        if match and match.group(1):
            candidate, strategy = match.group(1), "fenced"

    if candidate is None:
        match = _EMBEDDED_OBJECT.search(stripped)
        if match:
            candidate, strategy = match.group(0), "embedded"

    if candidate is None:
        match = _PREFIXED_OBJECT.search(stripped)
        if match and match.group(1):
            candidate, strategy = match.group(1), "prefixed"

    if candidate is None:
        raise NoJsonFoundError(text)

    # JSON の後ろに付いた説明文を落とす
    candidate = candidate.strip()
    last_brace = candidate.rfind("}")
    if last_brace != -1:
        candidate = candidate[: last_brace + 1]

    logger.debug("[response_parser] json candidate strategy=%s length=%d", strategy, len(candidate))
    return candidate


# ============================================================
# 2) パース
# ============================================================

def parse_json_candidate(candidate: str) -> Any:
    try:
        return json.loads(candidate)
    except json.JSONDecodeError as e:
        logger.error(
            "[response_parser] JSON parse error error=%s content=%r",
            e,
            candidate[:PARSE_PREVIEW_CHARS],
        )
        raise JsonParseError(str(e), candidate) from e


# ============================================================
# 3) 形と件数の検証
# ============================================================

def _is_filled_string(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def _check_category(name: str, value: Any, rng: CategoryRange) -> Optional[str]:
    """カテゴリ 1 つを検証し、問題があればメッセージを返す。"""
    if not isinstance(value, list):
        return f"{name} is not an array"

    if not rng.contains(len(value)):
        return f"{name} count is {len(value)}, expected {rng.label()}"

    for index, item in enumerate(value):
        if not isinstance(item, dict):
            return f"{name}[{index}] is not an object"
        if not _is_filled_string(item.get("term")):
            return f"{name}[{index}] has an empty term"
        if not _is_filled_string(item.get("rationale")):
            return f"{name}[{index}] has an empty rationale"

    # termBangla などの付帯フィールドの型も KeywordItem で確認する
    try:
        _KEYWORD_ITEMS.validate_python(value)
    except ValidationError as e:
        err = e.errors()[0]
        index, *path = err["loc"]
        field_path = ".".join(str(p) for p in path)
        return f"{name}[{index}].{field_path} is invalid: {err['msg']}"
    return None


def validate_keyword_result(data: Any, policy: CountPolicy) -> ValidationReport:
    """
    パース済みの値が KeywordResult の形と件数ポリシーを満たすか検証する。

    必須カテゴリ・competitorInsights の違反は errors に積む（結果全体が不採用）。
    任意カテゴリは存在する場合のみ検証し、違反したものは dropped に積んで警告だけ出す。
    """
    report = ValidationReport()

    if not isinstance(data, dict):
        report.errors.append(f"response is not a JSON object (got {type(data).__name__})")
        return report

    for name, rng in policy.required.items():
        value = data.get(name)
        if isinstance(value, list):
            report.counts[name] = len(value)
        problem = _check_category(name, value, rng)
        if problem:
            report.errors.append(problem)

    if not _is_filled_string(data.get(COMPETITOR_INSIGHTS_KEY)):
        report.errors.append(f"{COMPETITOR_INSIGHTS_KEY} is missing or empty")

    for name, rng in policy.optional.items():
        if data.get(name) is None:
            continue
        value = data[name]
        if isinstance(value, list):
            report.counts[name] = len(value)
        problem = _check_category(name, value, rng)
        if problem:
            logger.warning("[response_parser] optional category dropped: %s", problem)
            report.dropped.append(name)

    return report


# ============================================================
# 4) KeywordResult への変換
# ============================================================

# 検証契約の対象（ここが型違反なら結果全体を不採用）
_CONTRACT_KEYS = frozenset(
    ["primary", "secondary", "longtail", "lsiKeywords", "entities", "questionKeywords", COMPETITOR_INSIGHTS_KEY]
)


def _field_keys(key: str) -> List[str]:
    """エラー位置のキーから、入力に現れうる名前（alias とフィールド名）を引く。"""
    for name, info in KeywordResult.model_fields.items():
        if key in (name, info.alias):
            return [name, info.alias or name]
    return [key]


def _validate_result(payload: Dict[str, Any], report: ValidationReport, policy: CountPolicy) -> KeywordResult:
    """
    KeywordResult を組み立てる。
    契約外のフィールド（seoScore, metaTitle など）が型違反なら警告を出して捨て、もう一度だけ検証する。
    """
    try:
        return KeywordResult.model_validate(payload)
    except ValidationError as e:
        bad_keys = {str(err["loc"][0]) for err in e.errors() if err["loc"]}
        loose_keys = bad_keys - _CONTRACT_KEYS
        if not loose_keys or loose_keys != bad_keys:
            errors = [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()]
            raise KeywordValidationError(errors, report.counts, policy) from e

    for key in sorted(loose_keys):
        logger.warning("[response_parser] invalid optional field dropped: %s=%r", key, payload.get(key))
        for name in _field_keys(key):
            payload.pop(name, None)

    try:
        return KeywordResult.model_validate(payload)
    except ValidationError as e:
        errors = [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()]
        raise KeywordValidationError(errors, report.counts, policy) from e

def build_keyword_result(
    data: Any,
    policy: CountPolicy,
    *,
    detected_language: Optional[str] = None,
    content_type: Optional[str] = None,
    search_references: Optional[Iterable[GroundingChunk]] = None,
) -> KeywordResult:
    """
    検証して KeywordResult を生成する。
    由来情報（言語・コンテンツ種別・参照リンク）は呼び出し側から受け取る。
    """
    report = validate_keyword_result(data, policy)
    if not report.is_valid:
        logger.error(
            "[response_parser] validation failed policy=%s errors=%s counts=%s",
            policy.name,
            report.errors,
            report.counts,
        )
        raise KeywordValidationError(report.errors, report.counts, policy)

    payload: Dict[str, Any] = {k: v for k, v in data.items() if k not in report.dropped}

    if content_type:
        payload["contentType"] = content_type
    if search_references is not None:
        payload["searchReferences"] = list(search_references)
    if detected_language:
        model_language = payload.get("detectedLanguage")
        if not isinstance(model_language, str) or model_language.strip().lower() not in _LANGUAGES:
            payload["detectedLanguage"] = detected_language

    result = _validate_result(payload, report, policy)

    logger.info(
        "[response_parser] keyword result accepted policy=%s counts=%s dropped=%s",
        policy.name,
        result.category_counts(),
        report.dropped,
    )
    return result


def parse_keyword_response(
    text: str,
    policy: CountPolicy,
    *,
    detected_language: Optional[str] = None,
    content_type: Optional[str] = None,
    search_references: Optional[Iterable[GroundingChunk]] = None,
) -> KeywordResult:
    """LLM の生テキスト → JSON 抽出 → パース → 検証 → KeywordResult。"""
    candidate = extract_json_candidate(text)
    data = parse_json_candidate(candidate)
    return build_keyword_result(
        data,
        policy,
        detected_language=detected_language,
        content_type=content_type,
        search_references=search_references,
    )
