# app/main.py
from __future__ import annotations

import logging
from typing import Dict, Type

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.api.routes import router as api_router
from app.config import configure_logging, get_settings
from services.content_extractor import ContentTooShortError, HtmlParseError
from services.crawler import FetchError, FetchTimeoutError, InvalidUrlError
from services.llm_client import LlmConfigError, LlmProviderError
from services.response_parser import KeywordValidationError, ResponseParseError

logger = logging.getLogger(__name__)

# 例外 → (HTTP ステータス, エラー種別)
# サブクラスを先に並べる（FetchTimeoutError は FetchError より前）
ERROR_STATUS: Dict[Type[Exception], tuple[int, str]] = {
    InvalidUrlError: (400, "invalid_url"),
    HtmlParseError: (422, "html_parse_error"),
    ContentTooShortError: (422, "content_too_short"),
    FetchTimeoutError: (504, "fetch_timeout"),
    FetchError: (502, "fetch_error"),
    ResponseParseError: (502, "llm_output_not_json"),
    KeywordValidationError: (502, "llm_output_invalid"),
    LlmConfigError: (500, "llm_not_configured"),
    LlmProviderError: (502, "llm_provider_error"),
}


def _error_response(exc: Exception) -> JSONResponse:
    for exc_type, (status, kind) in ERROR_STATUS.items():
        if isinstance(exc, exc_type):
            break
    else:
        status, kind = 500, "internal_error"

    content = {"error": kind, "detail": str(exc)}
    if isinstance(exc, KeywordValidationError):
        content["counts"] = exc.counts
        content["expected"] = {name: rng.label() for name, rng in exc.policy.required.items()}
    if isinstance(exc, ResponseParseError):
        content["preview"] = exc.preview

    logger.warning("[api] request failed status=%s error=%s detail=%s", status, kind, exc)
    return JSONResponse(status_code=status, content=content)


async def _handle_domain_error(request: Request, exc: Exception) -> JSONResponse:
    return _error_response(exc)


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(title="News Keyword Assistant")
    app.include_router(api_router, prefix="/api")

    for exc_type in ERROR_STATUS:
        app.add_exception_handler(exc_type, _handle_domain_error)

    return app


app = create_app()
