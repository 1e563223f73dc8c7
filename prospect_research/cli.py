"""CLI entry point: research prospects, search places, serve the API."""

from __future__ import annotations

import asyncio
import json
import logging
import sys
import uuid
from contextlib import AsyncExitStack
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from prospect_research.apify.backend import ActorPlatformBackend
from prospect_research.browser.backend import BrowserAutomationBackend
from prospect_research.browser.session import BrowserSessionManager
from prospect_research.config import Config, load_config
from prospect_research.models import PlacesSearchResult, Prospect, ResearchOutcome
from prospect_research.research.orchestrator import ResearchOrchestrator
from prospect_research.settings import SettingsStore

console = Console()

BACKENDS = ("playwright", "apify")


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False, show_time=False)],
    )


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose debug logging")
@click.pass_context
def main(ctx: click.Context, verbose: bool) -> None:
    """Research CRM prospects online via Playwright or Apify."""
    _setup_logging(verbose)
    ctx.obj = load_config()


@main.command()
@click.option("--name", default="", help="Prospect display name")
@click.option("--company", default="", help="Company name")
@click.option("--linkedin", default="", help="LinkedIn profile URL")
@click.option("--website", default="", help="Company website")
@click.option("--backend", "backend_name", type=click.Choice(BACKENDS), default="playwright")
@click.option("--json", "as_json", is_flag=True, help="Print the raw aggregate as JSON")
@click.pass_obj
def research(
    config: Config,
    name: str,
    company: str,
    linkedin: str,
    website: str,
    backend_name: str,
    as_json: bool,
) -> None:
    """Research a single ad-hoc prospect.

    Example: prospect-research research --name "Jane Doe" --company Acme --website acme.com
    """
    prospect = Prospect(
        id=f"cli_{uuid.uuid4().hex[:8]}",
        name=name,
        company=company,
        linkedin_url=linkedin,
        website=website,
    )
    if not (prospect.linkedin_url or prospect.website or prospect.search_query):
        console.print("[red]Give at least one of --name, --company, --linkedin, --website[/red]")
        sys.exit(1)

    outcomes = asyncio.run(_research_many(config, [prospect], backend_name))
    _report(outcomes[0], as_json)


@main.command("research-file")
@click.argument("input_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--backend", "backend_name", type=click.Choice(BACKENDS), default="playwright")
@click.option("--concurrency", "-c", type=int, default=None, help="Max prospects in flight")
@click.option("--output", "-o", type=click.Path(dir_okay=False), default=None, help="Write outcomes as JSON")
@click.pass_obj
def research_file(
    config: Config,
    input_file: str,
    backend_name: str,
    concurrency: int | None,
    output: str | None,
) -> None:
    """Research every prospect in a JSON list file."""
    try:
        raw = json.loads(Path(input_file).read_text(encoding="utf-8"))
        prospects = [Prospect.model_validate(p) for p in raw]
    except (ValueError, TypeError) as e:
        console.print(f"[red]Input error: {e}[/red]")
        sys.exit(1)

    if concurrency:
        config.research_concurrency = concurrency
    console.print(f"Researching {len(prospects)} prospects via {backend_name} "
                  f"(concurrency {config.research_concurrency})...\n")

    outcomes = asyncio.run(_research_many(config, prospects, backend_name))
    for outcome in outcomes:
        _report(outcome, as_json=False)

    if output:
        Path(output).write_text(
            json.dumps([o.to_api() for o in outcomes], indent=2), encoding="utf-8",
        )
        console.print(f"[bold]Saved: {output}[/bold]")


@main.command()
@click.argument("query")
@click.option("--location", "-l", required=True, help='e.g. "Lyon, France"')
@click.option("--max-results", "-n", type=int, default=20)
@click.option("--has-website", is_flag=True, help="Only keep places with a website")
@click.option("--max-reviews", type=int, default=None, help="Drop places with more reviews")
@click.pass_obj
def places(
    config: Config,
    query: str,
    location: str,
    max_results: int,
    has_website: bool,
    max_reviews: int | None,
) -> None:
    """Search Google Maps for businesses through Apify."""
    backend = ActorPlatformBackend.from_config(config, SettingsStore(config.settings_file))

    async def run() -> PlacesSearchResult:
        try:
            return await backend.search_places(
                query, location, max_results=max_results,
                has_website=has_website, max_reviews=max_reviews,
            )
        finally:
            await backend.close()

    result = asyncio.run(run())
    if not result.success:
        console.print(f"[red]{result.error}[/red]")
        sys.exit(1)

    table = Table(title=f"{result.total_results} places for '{query}' in {location}")
    for col in ("Name", "Category", "Rating", "Reviews", "Phone", "Website"):
        table.add_column(col)
    for p in result.data:
        table.add_row(
            p.name, p.category,
            f"{p.rating:.1f}" if p.rating is not None else "-",
            str(p.review_count), p.phone, p.website,
        )
    console.print(table)


@main.command()
@click.option("--host", default=None)
@click.option("--port", type=int, default=None)
@click.pass_obj
def serve(config: Config, host: str | None, port: int | None) -> None:
    """Run the HTTP API."""
    import uvicorn

    uvicorn.run(
        "prospect_research.web.app:app",
        host=host or config.web_host,
        port=port or config.web_port,
    )


async def _research_many(config: Config, prospects: list[Prospect], backend_name: str) -> list[ResearchOutcome]:
    """Research prospects under a semaphore; the playwright backend shares one browser."""
    async with AsyncExitStack() as stack:
        if backend_name == "apify":
            backend = ActorPlatformBackend.from_config(config, SettingsStore(config.settings_file))
            stack.push_async_callback(backend.close)
        else:
            sessions = await stack.enter_async_context(
                BrowserSessionManager(headless=config.browser_headless),
            )
            backend = BrowserAutomationBackend.from_config(config, sessions)
        orchestrator = ResearchOrchestrator(backend)
        sem = asyncio.Semaphore(max(1, config.research_concurrency))

        async def one(prospect: Prospect) -> ResearchOutcome:
            async with sem:
                return await orchestrator.research(prospect)

        return await asyncio.gather(*(one(p) for p in prospects))


def _report(outcome: ResearchOutcome, as_json: bool) -> None:
    if as_json:
        console.print_json(json.dumps(outcome.to_api()))
        return
    if not outcome.success or outcome.data is None:
        console.print(f"[red]Research failed: {outcome.error}[/red]")
        return

    aggregate = outcome.data
    table = Table(title=f"{aggregate.prospect.name or aggregate.prospect.id} via {aggregate.source.value}")
    table.add_column("Lookup")
    table.add_column("Status")
    table.add_column("Details")
    for slot in ("profile", "website", "contacts", "search_results"):
        result = getattr(aggregate, slot)
        if result is None:
            table.add_row(slot, "[dim]skipped[/dim]", "")
        elif result.success:
            table.add_row(slot, "[green]ok[/green]", _summary(result.data, result.note))
        else:
            table.add_row(slot, "[red]failed[/red]", result.error or "")
    console.print(table)


def _summary(data, note: str | None) -> str:
    if isinstance(data, list):
        text = f"{len(data)} results"
    elif hasattr(data, "model_dump"):
        fields = {k: v for k, v in data.model_dump().items() if v and k != "scraped_at"}
        text = ", ".join(f"{k}={v}" for k, v in list(fields.items())[:4])
    else:
        text = str(data)[:120]
    return f"{text} ({note})" if note else text


if __name__ == "__main__":
    main()
