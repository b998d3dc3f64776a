# services/count_policies.py

from __future__ import annotations

from typing import Dict

from models.policy_models import CategoryRange, CountPolicy

# ============================================================
# 件数ポリシー定義
# ============================================================

# 初期リビジョン相当：件数をかなり厳密に指定する
STRICT_POLICY = CountPolicy(
    name="strict",
    required={
        "primary": CategoryRange(min=3, max=5),
        "secondary": CategoryRange(min=8, max=12),
        "longtail": CategoryRange(min=10, max=15),
    },
    optional={
        "lsiKeywords": CategoryRange(min=5, max=8),
        "questionKeywords": CategoryRange(min=5, max=8),
        "entities": CategoryRange(min=1, max=50),
    },
)

# 最新リビジョン相当：記事の長さに合わせて幅を持たせる
FLEXIBLE_POLICY = CountPolicy(
    name="flexible",
    required={
        "primary": CategoryRange(min=1, max=10),
        "secondary": CategoryRange(min=2, max=20),
        "longtail": CategoryRange(min=3, max=30),
    },
    optional={
        "lsiKeywords": CategoryRange(min=1, max=15),
        "questionKeywords": CategoryRange(min=1, max=15),
        "entities": CategoryRange(min=1, max=50),
    },
)

COUNT_POLICIES: Dict[str, CountPolicy] = {
    STRICT_POLICY.name: STRICT_POLICY,
    FLEXIBLE_POLICY.name: FLEXIBLE_POLICY,
}

DEFAULT_POLICY_NAME = FLEXIBLE_POLICY.name


def get_count_policy(name: str | None = None) -> CountPolicy:
    """名前からポリシーを引く。None の場合はデフォルト（flexible）。"""
    key = (name or DEFAULT_POLICY_NAME).strip().lower()
    try:
        return COUNT_POLICIES[key]
    except KeyError:
        raise KeyError(
            f"Unknown keyword count policy '{name}'. Known policies: {', '.join(sorted(COUNT_POLICIES))}"
        ) from None
