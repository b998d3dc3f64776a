# services/language.py

from __future__ import annotations

import re
from typing import Literal

Language = Literal["english", "bangla", "mixed"]

# ベンガル文字の Unicode ブロック U+0980〜U+09FF
_BANGLA_CHAR = re.compile(r"[\u0980-\u09FF]")
_LATIN_CHAR = re.compile(r"[a-zA-Z]")
_WHITESPACE = re.compile(r"\s")

BANGLA_THRESHOLD = 60.0  # これを超えたら bangla
MIXED_THRESHOLD = 20.0   # 両方の文字があり、これを超えたら mixed


def bangla_ratio(text: str) -> float:
    """空白以外の文字に占めるベンガル文字の割合（%）。"""
    total = len(_WHITESPACE.sub("", text))
    if total == 0:
        return 0.0
    return len(_BANGLA_CHAR.findall(text)) / total * 100


def detect_language(text: str) -> Language:
    """
    記事の言語を english / bangla / mixed に分類する。
    mixed はバングラ語と英語のコードスイッチング（Banglish）。
    """
    ratio = bangla_ratio(text)
    if ratio > BANGLA_THRESHOLD:
        return "bangla"
    if _BANGLA_CHAR.search(text) and _LATIN_CHAR.search(text) and ratio > MIXED_THRESHOLD:
        return "mixed"
    return "english"
