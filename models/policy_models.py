# models/policy_models.py

from __future__ import annotations

from typing import Dict

from pydantic import BaseModel, ConfigDict, Field, model_validator


class CategoryRange(BaseModel):
    """1 カテゴリあたりの許容件数（min〜max、両端含む）。"""

    model_config = ConfigDict(frozen=True)

    min: int = Field(..., ge=0)
    max: int = Field(..., ge=0)

    @model_validator(mode="after")
    def _check_order(self) -> "CategoryRange":
        if self.min > self.max:
            raise ValueError(f"min ({self.min}) must not exceed max ({self.max})")
        return self

    def contains(self, count: int) -> bool:
        return self.min <= count <= self.max

    def label(self) -> str:
        return f"{self.min}-{self.max}"


class CountPolicy(BaseModel):
    """
    カテゴリ件数ポリシー（バージョン付き設定）。
    - required: 満たさないと結果全体を不採用にするカテゴリ
    - optional: 存在する場合のみ検証し、不正なら落とすカテゴリ
    """

    model_config = ConfigDict(frozen=True)

    name: str
    required: Dict[str, CategoryRange]
    optional: Dict[str, CategoryRange] = Field(default_factory=dict)

    def describe(self) -> str:
        """エラーメッセージ用の "primary (1-10), secondary (2-20), ..." 形式。"""
        return ", ".join(f"{name} ({rng.label()})" for name, rng in self.required.items())
