# app/config.py

import logging
from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from services.count_policies import COUNT_POLICIES


class Settings(BaseSettings):
    """
    アプリ全体で使う設定クラス。
    .env から環境変数を読み込み、属性として参照できるようにする。
    抽出・パース処理はこの設定を直接読まず、必要な値を引数で受け取る。
    """

    # ---------- LLM プロバイダ ----------
    # LLM_PROVIDER=openai | gemini
    llm_provider: str = "openai"

    # ---------- OpenAI ----------
    # OPENAI_API_KEY=sk-xxxx... を .env に書く想定
    openai_api_key: str | None = None
    openai_model: str = "gpt-4.1-mini"       # 通常モード
    openai_deep_model: str = "gpt-4.1"       # Deep Analysis モード

    # ---------- Gemini ----------
    gemini_api_key: str | None = None
    gemini_model: str = "gemini-2.0-flash"
    gemini_deep_model: str = "gemini-2.5-pro"

    # ---------- キーワード件数ポリシー ----------
    # strict（3-5 / 8-12 / 10-15）か flexible（1-10 / 2-20 / 3-30）
    keyword_count_policy: str = "flexible"

    # ---------- 記事取得 ----------
    # 例: FETCH_PROXY_URL=https://api.allorigins.win/raw?url={url}
    fetch_proxy_url: str | None = None
    fetch_timeout_seconds: float = 30.0

    # ---------- ログ ----------
    log_level: str = "INFO"

    # ---------- Pydantic Settings 設定 ----------
    model_config = SettingsConfigDict(
        env_file=".env",            # .env を読む
        env_file_encoding="utf-8",
        extra="ignore",             # 定義外の環境変数があっても無視（エラーにしない）
    )

    @field_validator("keyword_count_policy", mode="before")
    @classmethod
    def _check_count_policy(cls, value: object) -> object:
        """未知のポリシー名は起動時にエラーにする（リクエストごとに 500 を返さない）。"""
        if not isinstance(value, str):
            return value
        name = value.strip().lower()
        if name not in COUNT_POLICIES:
            raise ValueError(
                f"Unknown keyword count policy '{value}'. Known policies: {', '.join(sorted(COUNT_POLICIES))}"
            )
        return name


@lru_cache
def get_settings() -> Settings:
    """Settings をシングルトン的に使うためのヘルパ。"""
    return Settings()


def configure_logging(level: str = "INFO") -> None:
    """
    ルートロガーにコンソール出力を付ける。
    開発中は必ずコンソールに出したいので、ハンドラが無ければ直付けする。
    """
    root = logging.getLogger()
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(
            logging.Formatter(
                "[%(asctime)s] [%(levelname)s] %(name)s - %(message)s",
                "%Y-%m-%d %H:%M:%S",
            )
        )
        root.addHandler(handler)
    root.setLevel(level.upper())
