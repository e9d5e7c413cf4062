"""Context CLI commands: merged injection block and local notes."""

import asyncio

import click
from rich.console import Console

from cli.utils import get_components, merged_context_builder

console = Console()


@click.group()
def context():
    """Inspect and add to the context served to assistants."""
    pass


@context.command("show")
@click.option("--browsing", is_flag=True, help="Include recently browsed sites")
def context_show(browsing: bool):
    """Print the merged context block used for prompt injection."""
    c = get_components(skip_llm=True)
    builder = merged_context_builder(c)

    async def _gather():
        merged = await builder.merge_facts_for_injection()
        pages = await builder.merged_browsing_context() if browsing else ""
        if c["remote"]:
            await c["remote"].aclose()
        return merged, pages

    merged, pages = asyncio.run(_gather())
    if merged.failed_sources:
        console.print(f"[yellow]Unavailable sources:[/] {', '.join(merged.failed_sources)}")
    if merged.is_empty and not pages:
        console.print("[yellow]No context yet. Run [cyan]persona onboard[/] first.[/]")
        return

    block = merged.render()
    if block:
        click.echo(block)
    if pages:
        click.echo(f"\n{pages}" if block else pages)


@context.command("add")
@click.option(
    "-t",
    "--type",
    "event_type",
    default="insight",
    type=click.Choice(["insight", "conversation", "selection", "file"]),
    help="Event type",
)
@click.argument("text")
def context_add(event_type: str, text: str):
    """Record a context note in the local cache."""
    from memory.models import ContextEvent
    from memory.storage import PersistenceError

    c = get_components(skip_llm=True)
    key = "insight" if event_type == "insight" else "text"
    event = ContextEvent(type=event_type, source="cli", data={key: text})
    try:
        c["context_storage"].add_event(event)
    except PersistenceError as e:
        console.print(f"[red]Error:[/] {e}")
        raise SystemExit(1)
    console.print(f"[green]Added {event_type}:[/] {event.id}")
