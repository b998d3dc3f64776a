# services/crawler.py

from __future__ import annotations

import logging
from typing import Optional
from urllib.parse import quote, urlparse

import requests

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0

DEFAULT_HEADERS = {
    "User-Agent": "news-keyword-assistant/0.1 (+dev)",
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
}


# ============================================================
# 例外
# ============================================================

class InvalidUrlError(ValueError):
    """http(s) の URL として解釈できない。"""


class FetchError(RuntimeError):
    """記事の取得に失敗した（ネットワーク系）。"""


class FetchTimeoutError(FetchError):
    pass


class FetchNetworkError(FetchError):
    pass


class FetchStatusError(FetchError):
    def __init__(self, status_code: int, url: str) -> None:
        self.status_code = status_code
        self.url = url
        super().__init__(
            f"Failed to fetch article (Status {status_code}). The URL may be inaccessible or blocked."
        )


# ============================================================
# 取得処理
# ============================================================

def validate_url(url: str) -> str:
    """前後の空白を落とし、http/https かつホスト名付きであることを確認する。"""
    cleaned = (url or "").strip()
    parsed = urlparse(cleaned)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise InvalidUrlError(
            "Invalid URL format. Please enter a valid web address starting with http:// or https://"
        )
    return cleaned


def build_request_url(url: str, proxy_url: Optional[str] = None) -> str:
    """
    プロキシテンプレートがあれば経由先 URL を組み立てる。
    テンプレートは "{url}" を含む形（例: https://api.allorigins.win/raw?url={url}）。
    """
    if not proxy_url:
        return url
    return proxy_url.format(url=quote(url, safe=""))


def fetch_html(
    url: str,
    *,
    proxy_url: Optional[str] = None,
    timeout: float = DEFAULT_TIMEOUT,
    session: Optional[requests.Session] = None,
) -> str:
    """
    記事 URL の HTML を取得する。
    リトライはしない（再実行するかどうかは呼び出し側が決める）。
    """
    target = validate_url(url)
    request_url = build_request_url(target, proxy_url)
    http = session or requests

    logger.info("[crawler] fetch start url=%s via_proxy=%s timeout=%s", target, bool(proxy_url), timeout)

    try:
        resp = http.get(request_url, headers=DEFAULT_HEADERS, timeout=timeout)
    except requests.Timeout as e:
        raise FetchTimeoutError(
            f"Request timed out after {timeout:g} seconds. Please try again or check the URL."
        ) from e
    except requests.RequestException as e:
        raise FetchNetworkError(
            "Network error: Unable to reach the article URL. "
            "Please check the URL and your internet connection."
        ) from e

    if not 200 <= resp.status_code < 300:
        logger.error("[crawler] non-2xx status=%s url=%s", resp.status_code, target)
        raise FetchStatusError(resp.status_code, target)

    html = resp.text
    logger.info("[crawler] fetch done url=%s length=%d", target, len(html))
    return html
