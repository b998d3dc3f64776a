# services/content_extractor.py

from __future__ import annotations

import logging
import re
from typing import List, Union

from bs4 import BeautifulSoup, Tag

from models.article_models import ExtractedArticle

logger = logging.getLogger(__name__)

# ============================================================
# ヒューリスティック用パラメータ
# ============================================================

# 本文と無関係なので丸ごと削除するタグ
NOISE_TAGS = ["script", "style", "nav", "header", "footer", "aside", "form", "noscript", "svg"]

# class / id にこれらが含まれる要素は本文コンテナ候補から外す（部分一致）
NOISE_PATTERN = re.compile(
    r"comment|share|related|ad|footer|header|menu|nav|sidebar|promo|social|widget"
)

# 本文コンテナ候補
CANDIDATE_SELECTOR = (
    'article, main, div[class*="content"], div[class*="post"], '
    'div[id*="content"], div[id*="post"]'
)

# スコア計算の対象にするブロック
SCORED_BLOCK_TAGS = ["p", "li", "blockquote", "pre"]
# 本文テキストとして拾うブロック
TEXT_BLOCK_TAGS = ["p", "h1", "h2", "h3", "h4", "h5", "h6", "li", "blockquote", "pre"]

NOISE_SCORE = -100.0
MIN_BLOCK_CHARS = 25          # これ以下のブロックはキャプションやボタン扱い
COMMA_WEIGHT = 10             # 読点が多い = 地の文
LINK_DENSITY_THRESHOLD = 0.35
MIN_STRUCTURED_CHARS = 300    # これ未満ならプレーンテキストにフォールバック
MIN_ARTICLE_CHARS = 500       # キーワード生成に必要な最低文字数
DEFAULT_TITLE = "Untitled"

_BLANK_LINE_RUN = re.compile(r"(\n\s*){3,}")
_LINE_BREAK_RUN = re.compile(r"(\r\n|\n|\r){3,}")

Element = Union[BeautifulSoup, Tag]


# ============================================================
# 例外
# ============================================================

class HtmlParseError(RuntimeError):
    """HTML を DOM として解釈できなかった。"""


class ContentTooShortError(RuntimeError):
    """抽出結果がキーワード生成に必要な長さに足りない。"""

    def __init__(self, length: int, minimum: int = MIN_ARTICLE_CHARS) -> None:
        self.length = length
        self.minimum = minimum
        super().__init__(
            "Article content is too short for accurate analysis "
            f"(minimum {minimum} characters required, got {length}). "
            "The extraction may have failed; try another URL or paste the article text."
        )


# ============================================================
# ユーティリティ
# ============================================================

def _rendered_text(element: Element) -> str:
    """
    innerText 相当のテキスト。
    pre 以外は空白を 1 つに畳み、pre は改行を残す。
    """
    if isinstance(element, Tag) and element.name == "pre":
        return element.get_text().strip()
    return " ".join(element.get_text().split())


def _plain_text(element: Element) -> str:
    """コンテナ全体のプレーンテキスト（テキストノードを 1 行ずつ）。"""
    return "\n".join(element.stripped_strings)


def _class_and_id(element: Element) -> str:
    if not isinstance(element, Tag):
        return ""
    classes = element.get("class") or []
    if isinstance(classes, str):
        classes = [classes]
    element_id = element.get("id") or ""
    return f"{' '.join(classes)} {element_id}".lower()


# ============================================================
# 公開関数
# ============================================================

def parse_document(html: Union[str, bytes]) -> BeautifulSoup:
    """
    HTML 文字列を BeautifulSoup に変換する。
    タグを含まないテキストもそのまま文書として扱う（本文はプレーンテキストで拾う）。
    文字列以外の入力とパーサ自体の失敗だけが HtmlParseError。
    """
    if not isinstance(html, (str, bytes)):
        raise HtmlParseError(f"HTML input must be text, got {type(html).__name__}.")

    try:
        soup = BeautifulSoup(html, "html.parser")
    except Exception as e:  # noqa: BLE001
        raise HtmlParseError(f"Failed to parse HTML: {e}") from e

    if soup.find() is None:
        logger.debug("[extractor] document has no elements, treating input as plain text")
    return soup


def strip_noise(document: BeautifulSoup) -> None:
    """script / nav / footer などと aria-hidden="true" の要素をその場で削除する。"""
    targets: List[Tag] = document.find_all(NOISE_TAGS)
    targets += document.find_all(attrs={"aria-hidden": "true"})

    removed = 0
    for tag in targets:
        # 親ごと削除済みの子はスキップ
        if tag.decomposed:
            continue
        tag.decompose()
        removed += 1

    logger.debug("[extractor] strip_noise removed=%d", removed)


def extract_title(document: BeautifulSoup) -> str:
    """最初の h1、無ければ <title>。どちらも空なら DEFAULT_TITLE。"""
    h1 = document.find("h1")
    if h1 is not None:
        text = _rendered_text(h1)
        if text:
            return text

    if document.title is not None:
        text = document.title.get_text().strip()
        if text:
            return text

    return DEFAULT_TITLE


def score_element(element: Element) -> float:
    """
    本文コンテナらしさのスコア。

    - class/id がノイズ語彙に当たれば即 NOISE_SCORE
    - 25 文字を超える p/li/blockquote/pre の文字数を加算
    - カンマ 1 個につき COMMA_WEIGHT を加算
    - リンク密度が閾値を超えたら (1 - 密度) 倍に減衰
    """
    if NOISE_PATTERN.search(_class_and_id(element)):
        return NOISE_SCORE

    score = 0.0
    for block in element.find_all(SCORED_BLOCK_TAGS):
        length = len(block.get_text().strip())
        if length > MIN_BLOCK_CHARS:
            score += length

    full_text = element.get_text()
    score += full_text.count(",") * COMMA_WEIGHT

    link_text_length = sum(len(a.get_text()) for a in element.find_all("a"))
    total_text_length = len(full_text) or 1
    link_density = link_text_length / total_text_length

    if link_density > LINK_DENSITY_THRESHOLD:
        score *= 1 - link_density

    return score


def select_best_container(document: BeautifulSoup) -> Element:
    """
    候補要素をスコアリングし、最高スコアの要素を返す。
    同点は先に出てきた方、候補が無ければ body。
    """
    body: Element = document.body or document

    candidates: List[Element] = document.select(CANDIDATE_SELECTOR)
    if not candidates:
        candidates = [body]

    best: Element = body
    best_score = -1.0
    for candidate in candidates:
        score = score_element(candidate)
        if score > best_score:
            best_score = score
            best = candidate

    logger.debug(
        "[extractor] best container tag=%s score=%.1f candidates=%d",
        getattr(best, "name", None),
        best_score,
        len(candidates),
    )
    return best


def extract_clean_text(element: Element) -> str:
    """子孫のブロック要素を文書順に走査し、空行区切りのテキストにする。"""
    parts: List[str] = []
    for block in element.find_all(TEXT_BLOCK_TAGS):
        text = _rendered_text(block)
        if text:
            parts.append(text + "\n\n")

    text = "".join(parts).strip()
    return _BLANK_LINE_RUN.sub("\n\n", text)


def extract_article(html: Union[str, bytes]) -> ExtractedArticle:
    """
    HTML から記事タイトルと本文を取り出す。

    parse → ノイズ除去 → タイトル → 本文コンテナ選択 → テキスト化。
    構造化テキストが短すぎる場合はコンテナのプレーンテキストで代替する。
    """
    document = parse_document(html)
    strip_noise(document)

    title = extract_title(document)
    container = select_best_container(document)

    content = extract_clean_text(container)
    if len(content) < MIN_STRUCTURED_CHARS:
        logger.warning(
            "[extractor] structured text too short (%d chars), falling back to plain text",
            len(content),
        )
        content = _plain_text(container).strip()

    body = _LINE_BREAK_RUN.sub("\n\n", content)
    article = ExtractedArticle(title=title, body=body)

    length = article.char_count
    if length < MIN_ARTICLE_CHARS:
        raise ContentTooShortError(length, MIN_ARTICLE_CHARS)

    logger.info("[extractor] extracted title=%r chars=%d", title, length)
    return article
