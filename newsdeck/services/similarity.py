"""Bag-of-keywords similarity between articles.

Keywords are the most frequent non-trivial tokens of an article's title and
body; two articles are compared by the Jaccard coefficient of their keyword
sets. Good enough to surface "same story, other outlet" from the user's own
feeds; not a semantic ranker.
"""
from __future__ import annotations

import re
from collections import Counter
from dataclasses import dataclass, field
from typing import Iterable

from newsdeck.models.article import Article

MAX_KEYWORDS = 15

STOP_WORDS = frozenset(
    """
    a an the and or but is are was were be been being have has had do does did
    will would could should may might must shall can need dare ought used to of
    in for on with at by from as into through during before after above below
    between under again further then once here there when where why how all each
    few more most other some such no nor not only own same so than too very just
    also now this that these those about which who whom what their them they its
    it his her he she you your we our my me him us says said new like get got
    make made take took come came go went see seen know known think thought want
    give gave use find found tell told ask asked work seem feel try leave call
    called keep let begin began show shown hear heard play run move live believe
    hold bring happen write wrote provide sit stand lose pay meet include continue
    set learn change lead understand watch follow stop create speak read allow add
    spend grow open walk win offer remember love consider appear buy wait serve
    die send expect build stay fall cut reach kill remain many much over year
    years time first last long great little old right big high different small
    large next early young important public bad good
    """.split()
)

_TAG_RE = re.compile(r"<[^>]*>")
_PUNCT_RE = re.compile(r"[^\w\s-]")
_NUMERIC_RE = re.compile(r"^\d+$")


@dataclass(frozen=True)
class SimilarityResult:
    score: float
    matched: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class RelatedCandidate:
    article: Article
    score: float
    matched: list[str] = field(default_factory=list)


def _tokens(text: str) -> Iterable[str]:
    text = _TAG_RE.sub(" ", text).lower()
    text = _PUNCT_RE.sub(" ", text)
    for raw in text.split():
        token = raw.strip("-")
        if len(token) < 3 or _NUMERIC_RE.match(token) or token in STOP_WORDS:
            continue
        yield token


def extract_keywords(text: str | None, limit: int = MAX_KEYWORDS) -> list[str]:
    """Top ``limit`` tokens by frequency; ties keep first-encountered order."""
    if not text:
        return []
    counts = Counter(_tokens(text))
    ranked = sorted(counts.items(), key=lambda item: item[1], reverse=True)
    return [token for token, _ in ranked[:limit]]


def similarity(keywords_a: Iterable[str], keywords_b: Iterable[str]) -> SimilarityResult:
    """Jaccard coefficient over the two keyword sets."""
    ordered_a = list(dict.fromkeys(keywords_a))
    set_b = set(keywords_b)
    if not ordered_a or not set_b:
        return SimilarityResult(score=0.0, matched=[])

    matched = [k for k in ordered_a if k in set_b]
    union = set(ordered_a) | set_b
    return SimilarityResult(score=len(matched) / len(union), matched=matched)


def find_related(
    target: Article,
    pool: Iterable[Article],
    *,
    max_results: int = 5,
    min_score: float = 0.15,
    exclude_ids: Iterable[str] = (),
) -> list[RelatedCandidate]:
    target_keywords = extract_keywords(target.text)
    if not target_keywords or max_results <= 0:
        return []

    excluded = {target.id, *exclude_ids}
    candidates: list[RelatedCandidate] = []
    for article in pool:
        if article.id in excluded:
            continue
        result = similarity(target_keywords, extract_keywords(article.text))
        if result.score >= min_score:
            candidates.append(
                RelatedCandidate(article=article, score=result.score, matched=result.matched)
            )

    candidates.sort(key=lambda c: c.score, reverse=True)
    return candidates[:max_results]


def build_search_query(article: Article, max_terms: int = 5) -> str:
    """Short web query from the article's top title keywords."""
    return " ".join(extract_keywords(article.title)[:max_terms])
