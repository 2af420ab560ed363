"""Event journal CLI command."""

from __future__ import annotations

import json
from pathlib import Path

from rich.console import Console
from rich.table import Table

from ..journal import read_journal


def run_journal(
    journal_path: Path,
    *,
    token_id: int | None = None,
    last_n: int | None = None,
    output_json: bool = False,
) -> int:
    err = Console(stderr=True)
    if not journal_path.exists():
        err.print(f"Journal not found: {journal_path}", style="bold red")
        return 1

    events = read_journal(journal_path)
    if token_id is not None:
        events = [e for e in events if e.token_id == token_id]
    if last_n is not None:
        events = events[-last_n:] if last_n > 0 else []

    if output_json:
        print(json.dumps([e.to_dict() for e in events], indent=2, sort_keys=True))
        return 0

    table = Table(title=f"Journal: {journal_path.name}")
    table.add_column("timestamp", style="dim", no_wrap=True)
    table.add_column("event", style="magenta")
    table.add_column("token", style="cyan", justify="right")
    table.add_column("actor")
    table.add_column("payload", style="dim")
    for e in events:
        table.add_row(
            e.timestamp.isoformat(timespec="seconds"),
            e.event_type,
            "" if e.token_id is None else str(e.token_id),
            e.actor,
            " ".join(f"{k}={v}" for k, v in e.payload.items()),
        )
    Console().print(table)
    return 0
