"""CLI entry point for persona."""

import sys
from pathlib import Path

import click

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from cli.commands import context, identity, onboard, status
from cli.config import load_config_model
from cli.logging_config import setup_logging
from cli.utils import console


@click.group()
@click.version_option(version="0.1.0")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
def cli(verbose: bool):
    """persona - build and serve a personal identity for AI assistants."""
    try:
        config = load_config_model()
    except ValueError as e:
        console.print(f"[red]Config error:[/] {e}")
        sys.exit(1)
    level = "DEBUG" if verbose else config.logging.level
    log_file = config.paths.log_file if config.logging.log_to_file else None
    setup_logging(json_mode=config.logging.json_mode, level=level, log_file=log_file)


cli.add_command(onboard)
cli.add_command(status)
cli.add_command(identity)
cli.add_command(context)


if __name__ == "__main__":
    cli()
