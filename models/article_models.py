# models/article_models.py

from __future__ import annotations

import re

from pydantic import BaseModel, ConfigDict, Field

# \r\n / \n / \r が 3 回以上続く箇所を空行 1 つに畳む
_EXCESS_BREAKS = re.compile(r"(\r\n|\n|\r){3,}")


class ExtractedArticle(BaseModel):
    """
    Content Extractor の出力。
    - title: h1 もしくは <title> から取ったタイトル
    - body: 本文コンテナから抽出したプレーンテキスト
    生成後は変更しない（プロンプト組み立て側が読むだけ）。
    """

    model_config = ConfigDict(frozen=True)

    title: str
    body: str

    @property
    def text(self) -> str:
        """プロンプトに埋め込む 1 本のテキスト（タイトル + 空行 + 本文）。"""
        return _EXCESS_BREAKS.sub("\n\n", f"{self.title}\n\n{self.body}")

    @property
    def char_count(self) -> int:
        return len(self.text.strip())


class ExtractRequest(BaseModel):
    """/api/extract のリクエスト。url か html のどちらかを指定する。"""

    url: str | None = None
    html: str | None = None


class ExtractResponse(BaseModel):
    article: ExtractedArticle
    char_count: int = Field(..., description="タイトル込みの文字数")
