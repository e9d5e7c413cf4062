"""Onboarding interview CLI commands."""

import asyncio

import click
from rich.console import Console
from rich.table import Table

from cli.utils import get_components

console = Console()


def _print_result(result) -> None:
    if result.recent_facts:
        console.print(f"[dim]Learned: {', '.join(result.recent_facts)}[/]")
    if result.warning:
        console.print(f"[yellow]Warning:[/] {result.warning}")


def _ask(question) -> str:
    console.print(f"\n[cyan bold]Question {question.number}/{question.total}:[/] {question.text}")
    if question.nudge:
        console.print(f"[dim]{question.nudge}[/]")
    while True:
        answer = click.prompt("", prompt_suffix="> ", default="", show_default=False)
        if answer.strip():
            return answer
        console.print("[yellow]Please type an answer.[/]")


async def _run_interview(service) -> None:
    from interview import InterviewError

    status = service.status()
    if status.phase == "complete":
        console.print(f"[green]{status.message}[/]")
        console.print("[dim]Run [cyan]persona identity[/] to view it.[/]")
        return

    if status.phase == "starting":
        result = service.start()
    else:
        console.print(f"[dim]Resuming: {status.message}[/]")
        result = status
        if status.phase == "questioning":
            result.question = service.pending_question()
            if result.question is None:
                console.print("[yellow]Nothing to resume. Starting over.[/]")
                result = service.start()

    while result.phase != "complete":
        if result.phase == "questioning":
            answer = _ask(result.question)
            result = await service.answer(answer)
            _print_result(result)
        elif result.phase == "branching":
            console.print(f"\n[bold]{result.summary}[/]")
            if result.suggestions:
                console.print("\nSuggested follow-ups:")
                for s in result.suggestions:
                    console.print(f"  [cyan]{s.id}[/] {s.text} [dim]({s.explores})[/]")
            proceed = bool(result.suggestions) and click.confirm(
                "\nExplore these follow-ups?", default=True
            )
            result = await service.branch(proceed)
            _print_result(result)
        else:
            raise InterviewError(f"Unexpected phase: {result.phase}")

    console.print(f"\n[green]Interview complete![/] {result.facts_extracted} facts saved.")
    if result.summary:
        console.print(f"[dim]{result.summary}[/]")


@click.command("onboard")
def onboard():
    """Run (or resume) the onboarding interview."""
    from interview import InterviewError

    c = get_components()
    try:
        asyncio.run(_run_interview(c["service"]))
    except InterviewError as e:
        console.print(f"[red]Interview error:[/] {e}")
        raise SystemExit(1)


@click.command("status")
def status():
    """Show identity and interview status."""
    c = get_components(skip_llm=True)
    identity = c["identity_storage"].load()
    pending = c["state_storage"].latest()

    table = Table(show_header=False)
    table.add_column("Key", style="cyan")
    table.add_column("Value")
    table.add_row("Data dir", str(c["paths"]["data_dir"]))
    table.add_row("Identity facts", str(len(identity.facts)) if identity else "none")
    if pending:
        table.add_row(
            "Interview",
            f"{pending.status} ({len(pending.core_exchanges)} core, "
            f"{len(pending.branch_exchanges)} follow-up answers)",
        )
    else:
        table.add_row("Interview", "none")
    table.add_row("Remote store", "enabled" if c["remote"] else "disabled")
    console.print(table)
