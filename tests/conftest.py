"""Shared fixtures for the keyword assistant tests."""

from __future__ import annotations

import json
from typing import Any, Callable, Dict, List, Optional

import pytest
import requests

from services.count_policies import FLEXIBLE_POLICY, STRICT_POLICY
from services.llm_client import LlmResponse

LONG_PARAGRAPHS = [
    "Gold prices in Bangladesh rose 15% this year, according to analysts at the central bank, "
    "who said import costs and a weaker taka pushed jewellers to raise rates again.",
    "The Bangladesh Jewellers Association said on Tuesday that the price of 22-carat gold "
    "reached a record high, the third increase this month, after global bullion prices climbed.",
    "Traders in Dhaka and Chattogram reported thinner sales ahead of the wedding season, "
    "while economists warned that higher gold prices could feed into broader inflation.",
    "Officials said the government was monitoring the market closely, and would consider "
    "measures to stabilise supply if prices kept rising through the next quarter.",
]


def _make_items(count: int, prefix: str = "keyword") -> List[Dict[str, str]]:
    return [{"term": f"{prefix} {i}", "rationale": f"reason for {prefix} {i}"} for i in range(count)]


@pytest.fixture()
def flexible_policy():
    return FLEXIBLE_POLICY


@pytest.fixture()
def strict_policy():
    return STRICT_POLICY


@pytest.fixture()
def make_payload() -> Callable[..., Dict[str, Any]]:
    """Build a keyword payload that satisfies the flexible policy unless overridden."""

    def _make(**overrides: Any) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "primary": [{"term": "gold price", "rationale": "main topic"}],
            "secondary": _make_items(12, "secondary"),
            "longtail": _make_items(10, "longtail"),
            "competitorInsights": "Competitors cover the price, not the wedding-season angle.",
        }
        payload.update(overrides)
        return payload

    return _make


@pytest.fixture()
def make_article_html() -> Callable[..., str]:
    """Build a news page with chrome around an <article> body."""

    def _make(
        paragraphs: Optional[List[str]] = None,
        *,
        h1: Optional[str] = "Gold prices hit record high",
        title: str = "Gold prices | Daily News",
    ) -> str:
        paras = "".join(f"<p>{p}</p>" for p in (paragraphs or LONG_PARAGRAPHS))
        heading = f"<h1>{h1}</h1>" if h1 else ""
        return (
            f"<html><head><title>{title}</title><script>var x = 1;</script></head><body>"
            '<header class="site-header"><a href="/">Home</a><a href="/business">Business</a></header>'
            '<nav class="nav"><ul><li><a href="/">Menu item with a fairly long label</a></li></ul></nav>'
            f"<article>{heading}{paras}</article>"
            '<aside class="sidebar"><p>Most read stories from around the country today</p></aside>'
            "<footer><p>Copyright Daily News, all rights reserved, 2024.</p></footer>"
            "</body></html>"
        )

    return _make


class FakeLlmClient:
    """LlmClient stand-in: JSON-mode calls get keyword_text, others get content_type_text."""

    provider = "fake"

    def __init__(self, keyword_text: str = "{}", content_type_text: str = "News Article") -> None:
        self.keyword_text = keyword_text
        self.content_type_text = content_type_text
        self.calls: List[Dict[str, Any]] = []

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
        self.calls.append(
            {
                "system_prompt": system_prompt,
                "user_prompt": user_prompt,
                "deep": deep,
                "temperature": temperature,
                "max_tokens": max_tokens,
                "json_mode": json_mode,
            }
        )
        return LlmResponse(text=self.keyword_text if json_mode else self.content_type_text)


@pytest.fixture()
def make_llm() -> Callable[..., FakeLlmClient]:
    return FakeLlmClient


@pytest.fixture()
def fake_llm(make_payload) -> FakeLlmClient:
    return FakeLlmClient(keyword_text=json.dumps(make_payload()))


class FakeResponse:
    def __init__(self, text: str = "", status_code: int = 200) -> None:
        self.text = text
        self.status_code = status_code


class FakeSession:
    """requests.Session stand-in returning a canned response or raising an error."""

    def __init__(self, response: Optional[FakeResponse] = None, error: Optional[Exception] = None) -> None:
        self.response = response or FakeResponse()
        self.error = error
        self.requests: List[Dict[str, Any]] = []

    def get(self, url: str, headers: Optional[Dict[str, str]] = None, timeout: Optional[float] = None):
        self.requests.append({"url": url, "headers": headers, "timeout": timeout})
        if self.error is not None:
            raise self.error
        return self.response


@pytest.fixture()
def fake_session_factory() -> Callable[..., FakeSession]:
    def _make(
        text: str = "",
        status_code: int = 200,
        error: Optional[Exception] = None,
    ) -> FakeSession:
        return FakeSession(FakeResponse(text, status_code), error)

    return _make


@pytest.fixture()
def timeout_error() -> requests.Timeout:
    return requests.Timeout("read timed out")


@pytest.fixture()
def make_items() -> Callable[..., List[Dict[str, str]]]:
    return _make_items
