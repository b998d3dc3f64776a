"""Main-content extraction tests."""

from __future__ import annotations

import pytest

from services.content_extractor import (
    DEFAULT_TITLE,
    MIN_ARTICLE_CHARS,
    NOISE_SCORE,
    ContentTooShortError,
    HtmlParseError,
    extract_article,
    extract_clean_text,
    extract_title,
    parse_document,
    score_element,
    select_best_container,
    strip_noise,
)

GOLD_PAGE = (
    '<html><body><nav class="nav">Menu</nav><article><p>Gold prices in Bangladesh rose 15% '
    "this year, according to analysts.</p></article></body></html>"
)

LONG_TEXT = (
    "Dhaka's stock market closed higher on Thursday, as investors bought banking shares, "
    "and turnover rose to its highest level in three weeks. "
) * 4


def test_gold_page_selects_article_and_falls_back_to_untitled():
    document = parse_document(GOLD_PAGE)
    assert score_element(document.find("nav")) == NOISE_SCORE

    strip_noise(document)
    container = select_best_container(document)

    assert container.name == "article"
    assert extract_title(document) == DEFAULT_TITLE
    assert extract_clean_text(container) == (
        "Gold prices in Bangladesh rose 15% this year, according to analysts."
    )


def test_gold_page_is_too_short_for_generation():
    with pytest.raises(ContentTooShortError) as exc_info:
        extract_article(GOLD_PAGE)

    assert exc_info.value.minimum == MIN_ARTICLE_CHARS
    assert exc_info.value.length < MIN_ARTICLE_CHARS
    assert "500" in str(exc_info.value)


@pytest.mark.parametrize(
    "noise_class",
    ["related-content", "comment-content", "share-post", "sidebar-content", "promo-post", "social-content"],
)
def test_noise_container_is_not_selected(noise_class):
    html = (
        "<html><body>"
        f'<div class="{noise_class}"><p>{LONG_TEXT}</p><p>{LONG_TEXT}</p></div>'
        f'<div class="post-body"><p>{LONG_TEXT}</p></div>'
        "</body></html>"
    )
    document = parse_document(html)

    best = select_best_container(document)

    assert best.get("class") == ["post-body"]


def test_all_noise_candidates_fall_back_to_body():
    html = f'<html><body><div class="sidebar-content"><p>{LONG_TEXT}</p></div></body></html>'
    document = parse_document(html)

    assert select_best_container(document).name == "body"


def test_no_candidates_uses_body():
    html = f"<html><body><section><p>{LONG_TEXT}</p></section></body></html>"
    document = parse_document(html)

    assert select_best_container(document).name == "body"


def test_ties_keep_first_candidate():
    html = (
        "<html><body>"
        f'<article id="first"><p>{LONG_TEXT}</p></article>'
        f'<article id="second"><p>{LONG_TEXT}</p></article>'
        "</body></html>"
    )
    document = parse_document(html)

    assert select_best_container(document)["id"] == "first"


def test_score_counts_long_blocks_and_commas():
    document = parse_document("<div><p>One, two, three, four and more words here.</p></div>")

    # 42 chars of paragraph text + 3 commas * 10
    assert score_element(document.div) == 72


def test_score_ignores_short_fragments():
    document = parse_document("<div><p>Short caption</p><li>Share</li></div>")

    assert score_element(document.div) == 0


def test_link_density_scales_score_without_zeroing():
    link_text = "Read more about the economy and the markets today"
    linked = parse_document(f'<div><p><a href="/x">{link_text}</a> plus some words</p></div>')
    plain = parse_document(f"<div><p>{link_text} plus some words</p></div>")

    plain_score = score_element(plain.div)
    linked_score = score_element(linked.div)

    # 49 chars of link text out of 65
    assert plain_score == 65
    assert linked_score == pytest.approx(65 * (1 - 49 / 65))
    assert 0 < linked_score < plain_score


def test_strip_noise_removes_chrome_and_hidden_elements():
    html = (
        "<html><head><style>p{}</style></head><body>"
        '<header><svg><path d="M0"></path></svg><form><input></form></header>'
        '<div aria-hidden="true"><p>hidden text</p></div>'
        "<noscript>enable js</noscript><p>kept text</p></body></html>"
    )
    document = parse_document(html)

    strip_noise(document)

    for name in ("style", "header", "svg", "form", "noscript"):
        assert document.find(name) is None
    assert document.find(attrs={"aria-hidden": "true"}) is None
    assert document.get_text() == "kept text"


def test_title_prefers_h1_then_title_tag():
    with_h1 = parse_document("<html><head><title>Site title</title></head><body><h1> Headline </h1></body></html>")
    empty_h1 = parse_document("<html><head><title> Site title </title></head><body><h1> </h1></body></html>")

    assert extract_title(with_h1) == "Headline"
    assert extract_title(empty_h1) == "Site title"


def test_clean_text_keeps_block_order():
    document = parse_document(
        "<article><h2>Market update</h2><p>First paragraph.</p><ul><li>Point one</li></ul>"
        "<blockquote>A quote</blockquote></article>"
    )

    assert extract_clean_text(document.article) == (
        "Market update\n\nFirst paragraph.\n\nPoint one\n\nA quote"
    )


@pytest.mark.parametrize(
    "html",
    [
        "<div><pre>line one\n\n\n\n\nline two</pre><p>after</p></div>",
        "<div><p>a</p><p>   </p><p></p><p>b</p></div>",
        "<div><pre>\n\n\n</pre><h3>x</h3><pre>y\r\n\r\n\r\n\r\nz</pre></div>",
    ],
)
def test_clean_text_never_has_three_newlines(html):
    document = parse_document(html)

    text = extract_clean_text(document.div)

    assert "\n\n\n" not in text


def test_extract_article_from_news_page(make_article_html):
    article = extract_article(make_article_html())

    assert article.title == "Gold prices hit record high"
    assert article.body.startswith("Gold prices hit record high\n\nGold prices in Bangladesh rose 15%")
    assert "Menu item" not in article.body
    assert "Most read stories" not in article.body
    assert "Copyright" not in article.body
    assert article.text.startswith("Gold prices hit record high\n\n")
    assert article.char_count >= MIN_ARTICLE_CHARS


def test_extract_article_is_idempotent(make_article_html):
    html = make_article_html()

    first = extract_article(html)
    second = extract_article(html)

    assert first.text == second.text
    assert first == second


def test_extract_article_falls_back_to_plain_text():
    html = (
        "<html><head><title>Plain layout</title></head><body>"
        f"<article><div>{LONG_TEXT}</div><div>{LONG_TEXT}</div></article>"
        "</body></html>"
    )

    article = extract_article(html)

    assert article.title == "Plain layout"
    assert LONG_TEXT.strip() in article.body
    assert "\n\n\n" not in article.text


@pytest.mark.parametrize("html", [None, 42, ["<p>a</p>"]])
def test_non_text_input_raises_parse_error(html):
    with pytest.raises(HtmlParseError):
        parse_document(html)


def test_tagless_text_is_extracted_as_plain_text():
    text = (
        "Dhaka's stock market closed higher on Thursday, as investors bought banking shares, "
        "and turnover rose to its highest level in three weeks. "
    ) * 6

    article = extract_article(text)

    assert article.title == DEFAULT_TITLE
    assert article.body == text.strip()
    assert article.char_count >= MIN_ARTICLE_CHARS


@pytest.mark.parametrize("html", ["", "   \n", "just some text without markup"])
def test_short_tagless_input_is_too_short(html):
    with pytest.raises(ContentTooShortError):
        extract_article(html)
