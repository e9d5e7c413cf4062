"""Identity CLI commands."""

import click
from rich.console import Console
from rich.table import Table

from cli.utils import get_components

console = Console()


@click.command("identity")
@click.option("--json", "as_json", is_flag=True, help="Print the raw identity document")
def identity(as_json: bool):
    """Show the stored identity facts."""
    c = get_components(skip_llm=True)
    record = c["identity_storage"].load()
    if not record:
        console.print("[yellow]No identity found. Run [cyan]persona onboard[/] to create one.[/]")
        return

    if as_json:
        click.echo(record.model_dump_json(indent=2))
        return

    if record.core.role or record.core.name:
        console.print(f"\n[cyan bold]{record.core.name or ''}[/] {record.core.role or ''}".rstrip())

    table = Table(show_header=True)
    table.add_column("Category", style="cyan")
    table.add_column("Fact")
    table.add_column("Maturity", style="green")
    table.add_column("Confidence", justify="right")
    table.add_column("Visibility", style="dim")
    for fact in record.facts:
        table.add_row(
            str(fact.category),
            fact.content,
            str(fact.maturity),
            f"{fact.effective_confidence(half_life_days=c['config'].injection.half_life_days):.2f}",
            str(fact.visibility),
        )
    console.print(table)
    console.print(f"[dim]Saved at: {c['identity_storage'].path}[/]")
