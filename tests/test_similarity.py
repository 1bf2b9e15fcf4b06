from __future__ import annotations

from conftest import make_article
from newsdeck.services.similarity import (
    build_search_query,
    extract_keywords,
    find_related,
    similarity,
)


def test_extract_keywords_filters_stop_words_short_and_numeric_tokens():
    keywords = extract_keywords("<p>The 2024 budget vote: MPs back budget in 300-200 vote</p>")

    assert keywords[:2] == ["budget", "vote"]
    assert "the" not in keywords
    assert "mps" in keywords
    assert "2024" not in keywords
    assert not any(len(k) < 3 for k in keywords)


def test_extract_keywords_caps_at_fifteen():
    text = " ".join(f"token{chr(97 + i)}word" for i in range(20))
    assert len(extract_keywords(text)) == 15


def test_extract_keywords_empty_text():
    assert extract_keywords("") == []
    assert extract_keywords(None) == []


def test_similarity_is_symmetric_and_bounded():
    a = ["central", "bank", "rates", "inflation"]
    b = ["bank", "rates", "housing"]

    forward = similarity(a, b)
    backward = similarity(b, a)

    assert forward.score == backward.score == 2 / 5
    assert 0.0 <= forward.score <= 1.0
    assert forward.matched == ["bank", "rates"]


def test_similarity_with_empty_side_is_zero():
    assert similarity([], ["bank"]).score == 0.0
    assert similarity(["bank"], []).score == 0.0


def test_identical_keyword_sets_score_one():
    assert similarity(["alpha", "beta"], ["beta", "alpha"]).score == 1.0


def test_find_related_respects_threshold_limit_and_order():
    target = make_article(
        "t",
        "Central bank raises interest rates amid inflation fears",
        snippet="The central bank raised interest rates to fight inflation.",
    )
    close = make_article(
        "close",
        "Central bank raises interest rates as inflation fears grow",
        snippet="Interest rates rise at the central bank amid inflation.",
    )
    partial = make_article(
        "partial",
        "Inflation fears hit housing market",
        snippet="Mortgage costs climb with interest rates.",
    )
    unrelated = make_article("u", "Football club signs new striker", snippet="Transfer fee undisclosed.")

    related = find_related(target, [target, unrelated, partial, close], max_results=5, min_score=0.15)

    ids = [c.article.id for c in related]
    assert ids[0] == "close"
    assert "t" not in ids
    assert "u" not in ids
    assert all(c.score >= 0.15 for c in related)
    assert [c.score for c in related] == sorted((c.score for c in related), reverse=True)

    assert len(find_related(target, [close, partial], max_results=1)) == 1


def test_find_related_honours_exclusions():
    target = make_article("t", "Election results announced tonight")
    twin = make_article("twin", "Election results announced tonight")

    assert find_related(target, [twin], exclude_ids=["twin"]) == []
    assert [c.article.id for c in find_related(target, [twin])] == ["twin"]


def test_build_search_query_uses_top_title_keywords():
    article = make_article("q", "Apple unveils new iPhone with satellite messaging and bigger battery")

    query = build_search_query(article)

    assert query.split() == ["apple", "unveils", "iphone", "satellite", "messaging"]
