# services/llm_client.py

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol

import google.generativeai as genai
import openai
from google.api_core import exceptions as google_exceptions
from openai import OpenAI

from app.config import Settings
from models.keyword_models import GroundingChunk, WebReference

logger = logging.getLogger(__name__)

SUPPORTED_PROVIDERS = ("openai", "gemini")


# ============================================================
# 例外
# ============================================================

class LlmConfigError(RuntimeError):
    """API キー未設定・未知のプロバイダなど、呼び出し前の設定不備。"""


class LlmProviderError(RuntimeError):
    """プロバイダ呼び出しの失敗（認証・クォータ・レート制限・空応答など）。"""


# ============================================================
# 共通インターフェイス
# ============================================================

@dataclass
class LlmResponse:
    text: str
    search_references: List[GroundingChunk] = field(default_factory=list)


class LlmClient(Protocol):
    provider: str

    def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        deep: bool = False,
        temperature: float = 0.3,
        max_tokens: int = 2048,
        json_mode: bool = False,
    ) -> LlmResponse:
        ...


# ============================================================
# OpenAI
# ============================================================

class OpenAIChatClient:
    """openai SDK の Chat Completions を使うクライアント。"""

    provider = "openai"

    def __init__(
        self,
        api_key: str,
        model: str,
        deep_model: Optional[str] = None,
        client: Optional[OpenAI] = None,
    ) -> None:
        self.model = model
        self.deep_model = deep_model or model
        self._client = client or OpenAI(api_key=api_key)

    def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        deep: bool = False,
        temperature: float = 0.3,
        max_tokens: int = 2048,
        json_mode: bool = False,
    ) -> LlmResponse:
        model_name = self.deep_model if deep else self.model
        kwargs: Dict[str, Any] = {
            "model": model_name,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        logger.info("[llm_client] openai call start model=%s json_mode=%s", model_name, json_mode)

        try:
            response = self._client.chat.completions.create(**kwargs)
        except openai.AuthenticationError as e:
            raise LlmProviderError(
                "OpenAI API Key Error: Invalid or missing API key. "
                "Please check your API key at https://platform.openai.com/api-keys"
            ) from e
        except openai.RateLimitError as e:
            if "quota" in str(e).lower():
                raise LlmProviderError(
                    "OpenAI Quota Exceeded: You have exceeded your API usage quota. "
                    "Check your usage at https://platform.openai.com/usage"
                ) from e
            raise LlmProviderError(
                "OpenAI Rate Limit: Too many requests. Please wait a moment and try again."
            ) from e
        except openai.OpenAIError as e:
            raise LlmProviderError(f"OpenAI request failed: {e}") from e

        usage = getattr(response, "usage", None)
        logger.info(
            "[llm_client] openai response received model=%s total_tokens=%s",
            model_name,
            getattr(usage, "total_tokens", None) if usage else None,
        )

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise LlmProviderError("Received empty response from OpenAI. Please try again.")
        return LlmResponse(text=content.strip())


# ============================================================
# Gemini
# ============================================================

def _grounding_chunks(response: Any) -> List[GroundingChunk]:
    """Gemini 応答のグラウンディング情報を GroundingChunk に詰め替える。"""
    candidates = getattr(response, "candidates", None) or []
    if not candidates:
        return []
    metadata = getattr(candidates[0], "grounding_metadata", None)
    chunks = getattr(metadata, "grounding_chunks", None) or []

    refs: List[GroundingChunk] = []
    for chunk in chunks:
        web = getattr(chunk, "web", None)
        uri = getattr(web, "uri", None) if web else None
        if not uri:
            continue
        refs.append(GroundingChunk(web=WebReference(uri=uri, title=getattr(web, "title", "") or "")))
    return refs


def _response_text(response: Any) -> str:
    """response.text が使えない（parts が無い）場合は parts を連結する。"""
    try:
        return (response.text or "").strip()
    except ValueError:
        texts: List[str] = []
        for candidate in getattr(response, "candidates", None) or []:
            content = getattr(candidate, "content", None)
            for part in getattr(content, "parts", None) or []:
                texts.append(getattr(part, "text", "") or "")
        return "".join(texts).strip()


class GeminiClient:
    """google-generativeai の GenerativeModel を使うクライアント。"""

    provider = "gemini"

    def __init__(self, api_key: str, model: str, deep_model: Optional[str] = None) -> None:
        self.model = model
        self.deep_model = deep_model or model
        genai.configure(api_key=api_key)

    def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        deep: bool = False,
        temperature: float = 0.3,
        max_tokens: int = 2048,
        json_mode: bool = False,
    ) -> LlmResponse:
        model_name = self.deep_model if deep else self.model
        generation_config: Dict[str, Any] = {
            "temperature": temperature,
            "max_output_tokens": max_tokens,
        }
        if json_mode:
            generation_config["response_mime_type"] = "application/json"

        logger.info("[llm_client] gemini call start model=%s json_mode=%s", model_name, json_mode)

        model = genai.GenerativeModel(model_name, system_instruction=system_prompt)
        try:
            response = model.generate_content(user_prompt, generation_config=generation_config)
        except (google_exceptions.Unauthenticated, google_exceptions.PermissionDenied) as e:
            raise LlmProviderError(
                "Gemini API Key Error: Invalid or missing API key. Please check your GEMINI_API_KEY."
            ) from e
        except google_exceptions.ResourceExhausted as e:
            raise LlmProviderError(
                "Gemini Quota Exceeded: quota or rate limit reached. Please wait and try again."
            ) from e
        except google_exceptions.GoogleAPIError as e:
            raise LlmProviderError(f"Gemini request failed: {e}") from e

        text = _response_text(response)
        if not text:
            raise LlmProviderError(
                "Received empty response from Gemini. This may indicate an API quota issue or invalid API key."
            )

        refs = _grounding_chunks(response)
        logger.info(
            "[llm_client] gemini response received model=%s length=%d references=%d",
            model_name,
            len(text),
            len(refs),
        )
        return LlmResponse(text=text, search_references=refs)


# ============================================================
# 生成ヘルパ
# ============================================================

def create_llm_client(settings: Settings, provider: Optional[str] = None) -> LlmClient:
    """
    設定からクライアントを組み立てる（グローバルにはキャッシュしない）。
    provider を省略した場合は settings.llm_provider を使う。
    """
    name = (provider or settings.llm_provider or "openai").strip().lower()

    if name == "openai":
        if not settings.openai_api_key:
            raise LlmConfigError("OPENAI_API_KEY is not set. Get one from https://platform.openai.com/api-keys")
        return OpenAIChatClient(
            api_key=settings.openai_api_key,
            model=settings.openai_model,
            deep_model=settings.openai_deep_model,
        )

    if name == "gemini":
        if not settings.gemini_api_key:
            raise LlmConfigError("GEMINI_API_KEY is not set. Please add it to your .env file.")
        return GeminiClient(
            api_key=settings.gemini_api_key,
            model=settings.gemini_model,
            deep_model=settings.gemini_deep_model,
        )

    raise LlmConfigError(
        f"Unknown LLM provider '{name}'. Supported providers: {', '.join(SUPPORTED_PROVIDERS)}"
    )
