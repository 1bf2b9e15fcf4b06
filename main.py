"""NewsDeck - research a news article from the command line.

Fetches one or more feeds, picks an article, and runs the research pipeline
against it, printing each phase as it happens.
"""

import argparse
import asyncio
import sys

from newsdeck.agents.orchestrator import ResearchInputError, ResearchOrchestrator
from newsdeck.models.research import Done, Failed, Generating, Scraping, SearchingWeb
from newsdeck.services.article_cache import cache_from_settings
from newsdeck.services.ingestion import AgeFilter, filter_by_age, refresh_group
from newsdeck.services.working_set import WorkingSet


async def run_research(
    feeds: list[str],
    index: int,
    age: AgeFilter,
    force_full_scrape: bool,
    force_refresh: bool,
) -> int:
    working_set = WorkingSet()
    articles = filter_by_age(await refresh_group(working_set, "cli", feeds), age)
    if not articles:
        print("[!] No articles found in the given feeds")
        return 1

    if index < 0:
        for i, article in enumerate(articles):
            stamp = article.published_at.strftime("%Y-%m-%d %H:%M") if article.published_at else "undated"
            print(f"{i:3d}. [{stamp}] {article.title} ({article.source_name})")
        return 0

    if index >= len(articles):
        print(f"[!] Article index {index} out of range (0-{len(articles) - 1})")
        return 1

    article = articles[index]
    print(f"Article: {article.title}")
    print("-" * 50)

    orchestrator = ResearchOrchestrator(cache_from_settings(), working_set)
    try:
        states = orchestrator.request_research(
            article, force_full_scrape=force_full_scrape, force_refresh=force_refresh
        )
    except ResearchInputError as exc:
        print(f"[!] {exc}")
        return 1

    async for state in states:
        if isinstance(state, Scraping):
            print(f"[~] Fetching full article from {state.url}")
        elif isinstance(state, SearchingWeb):
            print(f"[+] {state.related_count} related articles in feeds")
            print(f"[~] Searching the web for: {state.query}")
        elif isinstance(state, Generating):
            print(f"[+] {state.web_count} web sources")
            print("[~] Generating summary...")
        elif isinstance(state, Done):
            result = state.result
            print(f"\n[*] Research complete{' (cached)' if result.from_cache else ''}")
            print(f"{'=' * 50}")
            print(result.summary_text)
            for ref in result.related:
                print(f"  related: {ref.title} ({ref.source}) {ref.score:.2f}")
            for ref in result.web_results:
                print(f"  web: {ref.title} {ref.url}")
        elif isinstance(state, Failed):
            print(f"\n[!] Error: {state.message}")
            return 1
        else:
            print(f"[~] {state.phase.value}...")
    return 0


def main():
    parser = argparse.ArgumentParser(description="NewsDeck article research")
    parser.add_argument("--feed", "-f", action="append", required=True, help="Feed URL (repeatable)")
    parser.add_argument(
        "--index", "-i", type=int, default=-1, help="Article to research (default: list articles)"
    )
    parser.add_argument(
        "--age", choices=[a.value for a in AgeFilter], default=AgeFilter.ALL.value, help="Age filter"
    )
    parser.add_argument("--full", action="store_true", help="Scrape the full article page first")
    parser.add_argument("--refresh", action="store_true", help="Ignore a cached summary")

    args = parser.parse_args()

    sys.exit(
        asyncio.run(run_research(args.feed, args.index, AgeFilter(args.age), args.full, args.refresh))
    )


if __name__ == "__main__":
    main()
