"""One-shot text tasks outside the research pipeline: short summary, translation,
headline sentiment and a cross-grouping briefing."""
from __future__ import annotations

from enum import Enum
from typing import Mapping, Sequence

from newsdeck.config import settings
from newsdeck.llm_client import TextGenerator
from newsdeck.models.article import Article
from newsdeck.services.prompt_store import language_instruction, render_prompt
from newsdeck.tools.web_utils import strip_tags

BRIEFING_ARTICLES_PER_GROUP = 3


class Sentiment(str, Enum):
    POSITIVE = "Positive"
    NEGATIVE = "Negative"
    NEUTRAL = "Neutral"


def parse_sentiment(raw: str) -> Sentiment:
    """Models rarely answer with just the word; first recognised label wins."""
    lowered = (raw or "").lower()
    positions = {
        label: lowered.find(label.value.lower())
        for label in Sentiment
        if label.value.lower() in lowered
    }
    if not positions:
        return Sentiment.NEUTRAL
    return min(positions, key=positions.get)


class TextTasks:
    def __init__(self, generator: TextGenerator | None = None, *, language: str | None = None):
        self.generator = generator or TextGenerator()
        self.language = (language or settings.summary_language).strip() or "English"

    async def summarize_brief(self, article: Article, content: str | None = None) -> str:
        body = content or strip_tags(article.body_html) or strip_tags(article.snippet)
        prompt = render_prompt(
            "summary.simple",
            language=language_instruction(self.language, variant="original_simple"),
            title=article.title,
            content=body,
        )
        return await self.generator.generate(prompt, caller="summarize_brief")

    async def translate(self, text: str, target_language: str | None = None) -> str:
        if not text.strip():
            return ""
        target = (target_language or self.language).strip() or "English"
        prompt = render_prompt("tasks.translate", target_language=target, content=text)
        return await self.generator.generate(prompt, caller="translate")

    async def classify_sentiment(self, headline: str) -> Sentiment:
        raw = await self.generator.generate(
            render_prompt("tasks.sentiment", headline=headline), caller="sentiment"
        )
        return parse_sentiment(raw)

    async def generate_briefing(self, groups: Mapping[str, Sequence[Article]]) -> str | None:
        """Briefing over the newest few headlines of every grouping. None when there are none."""
        lines = [
            f"- {article.title} ({article.source_name or key})"
            for key, articles in groups.items()
            for article in list(articles)[:BRIEFING_ARTICLES_PER_GROUP]
        ]
        if not lines:
            return None
        prompt = render_prompt("tasks.briefing", headlines="\n".join(lines))
        return await self.generator.generate(prompt, caller="briefing")
