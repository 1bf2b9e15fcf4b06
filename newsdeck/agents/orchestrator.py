from __future__ import annotations

import asyncio
from contextlib import aclosing
from typing import AsyncIterator, Protocol, Sequence

from loguru import logger

from newsdeck.config import settings
from newsdeck.llm_client import TextGenerator
from newsdeck.models.article import Article
from newsdeck.models.cache import (
    ArticleSummary,
    ChatMessage,
    ChatThread,
    RelatedRef,
    ScrapedContent,
    WebRef,
)
from newsdeck.models.research import (
    ChatPhase,
    ChatReply,
    Done,
    Failed,
    FindingRelated,
    Generating,
    Idle,
    ResearchResult,
    ResearchState,
    Scraping,
    SearchingWeb,
)
from newsdeck.services import logger as log_service
from newsdeck.services.article_cache import ArticleCache
from newsdeck.services.prompt_store import language_instruction, render_prompt
from newsdeck.services.similarity import RelatedCandidate, build_search_query, find_related
from newsdeck.services.working_set import WorkingSet
from newsdeck.tools.page_extractor import PageExtractor
from newsdeck.tools.search_provider import WebSearcher
from newsdeck.tools.web_utils import find_embedded_article_url, strip_tags

RELATED_SNIPPET_CHARS = 200
# Most recent research states kept for research_state(); oldest dropped first
STATE_HISTORY_LIMIT = 256


class ResearchInputError(ValueError):
    """Request rejected before any stage ran."""


class PageExtraction(Protocol):
    async def extract(self, url: str) -> ScrapedContent: ...


class WebSearch(Protocol):
    async def search(self, query: str, max_results: int) -> list[WebRef]: ...


class Generator(Protocol):
    def is_configured(self) -> bool: ...

    async def generate(self, prompt_or_messages, config=None, *, caller: str = "generate") -> str: ...


class CancellationToken:
    """Request-scoped flag bound to the article identity captured at request start."""

    def __init__(self, article_id: str):
        self.article_id = article_id
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class ArticleFocus:
    """The article the caller is attending to. Moving elsewhere supersedes in-flight work."""

    def __init__(self) -> None:
        self._current: CancellationToken | None = None

    @property
    def current(self) -> CancellationToken | None:
        return self._current

    def switch_to(self, article_id: str) -> CancellationToken:
        current = self._current
        if current is not None and current.article_id == article_id and not current.cancelled:
            return current
        if current is not None:
            current.cancel()
        self._current = CancellationToken(article_id)
        return self._current


class ResearchOrchestrator:
    """Runs the per-article research pipeline.

    Flow:
      1. Cached summary short-circuit (no network at all)
      2. Optional full-content scrape, with one fallback URL taken from the feed body
      3. Related articles from the local working set (keyword similarity)
      4. Best-effort web search
      5. Summary generation; the only stage whose failure fails the request

    ``request_research`` yields one typed state per phase, ending in ``Done`` or
    ``Failed``. Scrape and search failures degrade to whatever text and sources
    are already at hand.
    """

    def __init__(
        self,
        cache: ArticleCache,
        working_set: WorkingSet,
        *,
        extractor: PageExtraction | None = None,
        searcher: WebSearch | None = None,
        generator: Generator | None = None,
        focus: ArticleFocus | None = None,
    ):
        self.cache = cache
        self.working_set = working_set
        self.extractor = extractor or PageExtractor()
        self.searcher = searcher or WebSearcher()
        self.generator = generator or TextGenerator()
        self.focus = focus or ArticleFocus()

        self.scrape_timeout = max(float(settings.scrape_timeout_seconds), 0.1)
        self.search_timeout = max(float(settings.search_timeout_seconds), 0.1)
        self.generation_timeout = max(float(settings.generation_timeout_seconds), 0.1)
        self.min_content_chars = max(int(settings.scrape_min_content_chars), 0)
        self.search_max_results = max(int(settings.search_max_results), 1)
        self.related_max_results = max(int(settings.related_max_results), 0)
        self.related_min_score = float(settings.related_min_score)
        self.summary_language = str(settings.summary_language).strip() or "English"
        self.chat_context_chars = max(int(settings.chat_context_chars), 200)

        self._states: dict[str, ResearchState] = {}
        self._chat_pending: frozenset[str] = frozenset()

    # --- cache inspection -------------------------------------------------

    def peek_cached_summary(self, article_id: str) -> ArticleSummary | None:
        return self.cache.get_summary(article_id)

    def peek_scraped_content(self, link: str) -> ScrapedContent | None:
        return self.cache.get_scraped(link)

    def peek_chat_thread(self, article_id: str) -> ChatThread | None:
        return self.cache.get_chat(article_id)

    def clear_chat(self, article_id: str) -> None:
        self.cache.clear_chat(article_id)

    def research_state(self, article_id: str) -> ResearchState:
        return self._states.get(article_id) or Idle(article_id=article_id)

    def chat_phase(self, article_id: str) -> ChatPhase:
        if article_id in self._chat_pending:
            return ChatPhase.AWAITING_REPLY
        return ChatPhase.IDLE

    # --- request validation -----------------------------------------------

    @staticmethod
    def _validate(article: Article) -> None:
        if not (article.id or "").strip():
            raise ResearchInputError("Article identity is required")
        if not (article.title or "").strip():
            raise ResearchInputError("Article title is required")

    def _require_generator(self) -> None:
        if not self.generator.is_configured():
            raise ResearchInputError(
                "No language model credentials configured (set OPENROUTER_API_KEY "
                "or point OPENROUTER_BASE_URL at a local endpoint)"
            )

    def _claim(self, article: Article, token: CancellationToken | None) -> CancellationToken:
        if token is None:
            return self.focus.switch_to(article.id)
        if token.article_id != article.id:
            raise ResearchInputError(
                f"Cancellation token belongs to {token.article_id!r}, not {article.id!r}"
            )
        return token

    def _track(self, state: ResearchState) -> ResearchState:
        states = {k: v for k, v in self._states.items() if k != state.article_id}
        states[state.article_id] = state
        while len(states) > STATE_HISTORY_LIMIT:
            del states[next(iter(states))]
        self._states = states
        return state

    def _forget(self, article_id: str) -> None:
        self._states = {k: v for k, v in self._states.items() if k != article_id}

    def _superseded(self, article_id: str, phase: str) -> None:
        self._forget(article_id)
        log_service.log_research_step(article_id, phase, "superseded")

    # --- research pipeline ------------------------------------------------

    def request_research(
        self,
        article: Article,
        *,
        force_full_scrape: bool = False,
        force_refresh: bool = False,
        token: CancellationToken | None = None,
    ) -> AsyncIterator[ResearchState]:
        """Validate, then return the phase stream for one research request."""
        self._validate(article)
        if force_refresh or self.cache.get_summary(article.id) is None:
            self._require_generator()
        claimed = self._claim(article, token)
        return self._run_research(article, claimed, force_full_scrape, force_refresh)

    async def _run_research(
        self,
        article: Article,
        token: CancellationToken,
        force_full_scrape: bool,
        force_refresh: bool,
    ) -> AsyncIterator[ResearchState]:
        last: ResearchState | None = None
        try:
            async with aclosing(
                self._research_phases(article, token, force_full_scrape, force_refresh)
            ) as phases:
                async for state in phases:
                    last = state
                    yield state
        finally:
            # A consumer that stops listening leaves no phase behind
            if (
                last is not None
                and not isinstance(last, (Done, Failed))
                and self._states.get(article.id) is last
            ):
                self._forget(article.id)
                log_service.log_research_step(article.id, last.phase.value, "abandoned")

    async def _research_phases(
        self,
        article: Article,
        token: CancellationToken,
        force_full_scrape: bool,
        force_refresh: bool,
    ) -> AsyncIterator[ResearchState]:
        article_id = article.id

        if not force_refresh:
            cached = self.cache.get_summary(article_id)
            if cached is not None:
                log_service.log_research_step(article_id, "done", "cache_hit")
                yield self._track(
                    Done(
                        article_id=article_id,
                        result=ResearchResult.from_summary(article_id, cached, from_cache=True),
                    )
                )
                return

        working_text = self._working_text(article)

        if force_full_scrape and article.link and self.cache.get_scraped(article.link) is None:
            yield self._track(Scraping(article_id=article_id, url=article.link))
            content = await self._scrape(article, token)
            if token.cancelled:
                self._superseded(article_id, "scraping")
                return
            if content is not None:
                working_text = content.plain_text

        yield self._track(FindingRelated(article_id=article_id))
        related = find_related(
            article,
            self.working_set.all_articles(),
            max_results=self.related_max_results,
            min_score=self.related_min_score,
        )
        log_service.log_research_step(
            article_id, "finding-related", "completed", {"count": len(related)}
        )

        query = build_search_query(article)
        yield self._track(
            SearchingWeb(article_id=article_id, query=query, related_count=len(related))
        )
        web_results = await self._search_web(article_id, query)
        if token.cancelled:
            self._superseded(article_id, "searching-web")
            return

        yield self._track(
            Generating(
                article_id=article_id,
                related_count=len(related),
                web_count=len(web_results),
            )
        )
        prompt = self._summary_prompt(article, working_text, related, web_results)
        error: str | None = None
        summary_text = ""
        try:
            summary_text = await asyncio.wait_for(
                self.generator.generate(prompt, caller="summarize"),
                timeout=self.generation_timeout,
            )
        except asyncio.TimeoutError:
            error = f"Summary generation timed out after {self.generation_timeout:g}s"
        except Exception as exc:
            error = str(exc) or exc.__class__.__name__

        if token.cancelled:
            self._superseded(article_id, "generating")
            return

        if error is not None:
            log_service.log_research_step(article_id, "generating", "failed", {"error": error})
            yield self._track(Failed(article_id=article_id, message=error))
            return

        result = ResearchResult(
            article_id=article_id,
            summary_text=summary_text,
            related=[self._related_ref(candidate) for candidate in related],
            web_results=list(web_results),
        )
        self.cache.set_summary(article_id, result.to_summary())
        log_service.log_research_step(
            article_id,
            "done",
            "completed",
            {"related": len(result.related), "web_results": len(result.web_results)},
        )
        yield self._track(Done(article_id=article_id, result=result))

    async def fetch_full_content(
        self,
        article: Article,
        *,
        token: CancellationToken | None = None,
    ) -> ScrapedContent | None:
        """The scraping stage on its own: cache, extraction, one fallback URL."""
        self._validate(article)
        if not article.link:
            return None
        cached = self.cache.get_scraped(article.link)
        if cached is not None:
            return cached
        return await self._scrape(article, self._claim(article, token))

    async def _scrape(self, article: Article, token: CancellationToken) -> ScrapedContent | None:
        content, error = await self._try_extract(article.link)

        if content is None:
            fallback_url = find_embedded_article_url(
                f"{article.body_html} {article.snippet}",
                exclude_url=article.link,
            )
            if fallback_url:
                logger.info(f"Primary extraction failed ({error}); trying fallback {fallback_url}")
                content, error = await self._try_extract(fallback_url)

        if content is None:
            log_service.log_research_step(article.id, "scraping", "degraded", {"error": error})
            return None

        if token.cancelled:
            return None
        # Keyed by the article's own link even when the fallback URL produced it
        self.cache.set_scraped(article.link, content)
        return content

    async def _try_extract(self, url: str) -> tuple[ScrapedContent | None, str | None]:
        try:
            content = await asyncio.wait_for(self.extractor.extract(url), timeout=self.scrape_timeout)
        except asyncio.TimeoutError:
            return None, f"extraction timed out after {self.scrape_timeout:g}s"
        except Exception as exc:
            return None, str(exc) or exc.__class__.__name__

        text_length = len(content.plain_text.strip())
        if text_length < self.min_content_chars:
            return None, f"extracted text too short ({text_length} chars)"
        return content, None

    async def _search_web(self, article_id: str, query: str) -> list[WebRef]:
        if not query.strip():
            return []
        try:
            results = await asyncio.wait_for(
                self.searcher.search(query, self.search_max_results),
                timeout=self.search_timeout,
            )
        except asyncio.TimeoutError:
            log_service.log_research_step(
                article_id, "searching-web", "degraded", {"error": "timeout", "query": query}
            )
            return []
        except Exception as exc:
            log_service.log_research_step(
                article_id, "searching-web", "degraded", {"error": str(exc), "query": query}
            )
            return []
        return list(results or [])[: self.search_max_results]

    # --- prompt assembly --------------------------------------------------

    def _working_text(self, article: Article) -> str:
        if article.link:
            cached = self.cache.get_scraped(article.link)
            if cached is not None:
                return cached.plain_text
        return strip_tags(article.body_html) or strip_tags(article.snippet)

    @staticmethod
    def _related_ref(candidate: RelatedCandidate) -> RelatedRef:
        related = candidate.article
        return RelatedRef(
            title=related.title,
            source=related.source_name or "Unknown",
            url=related.link,
            score=round(candidate.score, 4),
        )

    def _summary_prompt(
        self,
        article: Article,
        working_text: str,
        related: Sequence[RelatedCandidate],
        web_results: Sequence[WebRef],
    ) -> str:
        related_section = ""
        if related:
            items = "\n\n".join(
                f"{i}. **{c.article.title}** ({c.article.source_name or 'Unknown'})\n"
                f"   {strip_tags(c.article.snippet or c.article.body_html)[:RELATED_SNIPPET_CHARS]}"
                for i, c in enumerate(related, 1)
            )
            related_section = render_prompt("summary.related_section", items=items)

        web_section = ""
        if web_results:
            items = "\n\n".join(
                f"{i}. **{w.title}**\n   {w.snippet}" for i, w in enumerate(web_results, 1)
            )
            web_section = render_prompt("summary.web_section", items=items)

        return render_prompt(
            "summary.enhanced",
            language=language_instruction(self.summary_language),
            title=article.title,
            content=working_text,
            related_section=related_section,
            web_section=web_section,
        )

    def _chat_system_prompt(self, article: Article, web_results: Sequence[WebRef]) -> str:
        content = self._working_text(article)
        if len(content) > self.chat_context_chars:
            content = content[: self.chat_context_chars] + "..."

        web_section = ""
        if web_results:
            items = "\n\n".join(
                f"{i}. **{r.title}**\n   {r.snippet}\n   Source: {r.url}"
                for i, r in enumerate(web_results, 1)
            )
            web_section = render_prompt("chat.web_section", items=items)

        return render_prompt(
            "chat.system",
            title=article.title,
            source=article.source_name or "Unknown",
            content=content,
            web_section=web_section,
        )

    # --- chat follow-up ---------------------------------------------------

    async def send_chat_message(
        self,
        article: Article,
        user_text: str,
        *,
        thread: ChatThread | None = None,
        use_web_search: bool = False,
        token: CancellationToken | None = None,
    ) -> ChatReply:
        """Append a question to the article's thread and ask the model about it.

        A failed reply is recorded in the thread as an assistant error message,
        so the user's question is never dropped.
        """
        self._validate(article)
        text = (user_text or "").strip()
        if not text:
            raise ResearchInputError("Message text is required")
        self._require_generator()
        token = self._claim(article, token)
        article_id = article.id

        if thread is None:
            thread = self.cache.get_chat(article_id) or ChatThread()
        messages = [*thread.messages, ChatMessage(role="user", text=text)]

        self._chat_pending = self._chat_pending | {article_id}
        web_results: list[WebRef] = []
        reply_text: str | None = None
        error: str | None = None
        try:
            if use_web_search:
                web_results = await self._search_web(article_id, f"{article.title} {text}")

            llm_messages = [
                {"role": "system", "content": self._chat_system_prompt(article, web_results)},
                *({"role": m.role, "content": m.text} for m in messages if not m.is_error),
            ]
            try:
                reply_text = await asyncio.wait_for(
                    self.generator.generate(llm_messages, caller="chat"),
                    timeout=self.generation_timeout,
                )
            except asyncio.TimeoutError:
                error = f"Chat reply timed out after {self.generation_timeout:g}s"
            except Exception as exc:
                error = str(exc) or exc.__class__.__name__
        finally:
            self._chat_pending = self._chat_pending - {article_id}

        if error is not None:
            logger.warning(f"Chat reply failed for {article_id}: {error}")
            assistant = ChatMessage(role="assistant", text=f"Error: {error}", is_error=True)
        else:
            assistant = ChatMessage(
                role="assistant", text=(reply_text or "").strip(), web_results=web_results
            )
        final_thread = ChatThread(messages=[*messages, assistant])

        if token.cancelled:
            log_service.log_research_step(article_id, "chat", "superseded")
        else:
            self.cache.set_chat(article_id, final_thread)

        return ChatReply(
            article_id=article_id,
            thread=final_thread,
            reply_text=None if error is not None else assistant.text,
            error_message=error,
            web_results=web_results if error is None else [],
        )
