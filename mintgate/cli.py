"""CLI entrypoint for mintgate."""

import sys
from pathlib import Path

import click

from . import __version__


@click.group()
@click.version_option(__version__, prog_name="mintgate")
def cli() -> None:
    """mintgate - capped, role-gated token minting.

    Inspect collection files, replay scripted operations against them,
    and read event journals.
    """


@cli.command()
@click.argument(
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "--json",
    "output_json",
    is_flag=True,
    help="Output reservations as JSON",
)
def inspect(config_path: Path, output_json: bool) -> None:
    """Show the reservations declared in a collection file."""
    from .commands.collection_cmd import run_inspect

    sys.exit(run_inspect(config_path, output_json=output_json))


@cli.command()
@click.argument(
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "--json",
    "output_json",
    is_flag=True,
    help="Output step results and final state as JSON",
)
@click.option(
    "--journal",
    "journal_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Append emitted events to this JSONL file",
)
@click.option(
    "--fail-fast",
    is_flag=True,
    help="Stop at the first step that does not match its expectation",
)
@click.option("--verbose", is_flag=True, help="Print engine status lines to stderr")
def replay(
    config_path: Path,
    output_json: bool,
    journal_path: Path | None,
    fail_fast: bool,
    verbose: bool,
) -> None:
    """Replay the [[operations]] script of a collection file."""
    from .commands.collection_cmd import run_replay

    exit_code = run_replay(
        config_path,
        output_json=output_json,
        journal_path=journal_path,
        fail_fast=fail_fast,
        verbose=verbose,
    )
    sys.exit(exit_code)


@cli.command()
@click.argument(
    "journal_path",
    type=click.Path(dir_okay=False, path_type=Path),
)
@click.option("--token", "token_id", type=int, default=None, help="Only events for this token id")
@click.option("--last", "last_n", type=int, default=None, help="Only the last N events")
@click.option(
    "--json",
    "output_json",
    is_flag=True,
    help="Output events as JSON",
)
def journal(journal_path: Path, token_id: int | None, last_n: int | None, output_json: bool) -> None:
    """Print an event journal written by `replay --journal`."""
    from .commands.journal_cmd import run_journal

    sys.exit(run_journal(journal_path, token_id=token_id, last_n=last_n, output_json=output_json))


if __name__ == "__main__":
    cli()
