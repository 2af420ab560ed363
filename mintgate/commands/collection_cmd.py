"""Collection CLI commands: inspect and replay."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.table import Table

from ..config import Collection, apply_operation, build_collection, load_collection
from ..errors import ConfigError, MintError
from ..journal import EventJournal


def _load(path: Path, err: Console, **kwargs: Any) -> Collection | None:
    try:
        return build_collection(load_collection(path), **kwargs)
    except (ConfigError, MintError) as e:
        err.print(f"Invalid collection file: {e}", style="bold red")
        return None


def _reservation_table(collection: Collection) -> Table:
    engine = collection.engine
    table = Table(title=f"Reservations: {collection.config.name}")
    table.add_column("seq", style="dim", justify="right")
    table.add_column("token", style="cyan", justify="right")
    table.add_column("minted", justify="right")
    table.add_column("max", justify="right")
    table.add_column("limit", justify="right")
    table.add_column("price", justify="right")
    table.add_column("locks", style="magenta")
    table.add_column("uri", style="dim")

    for record in engine.store:
        engaged = [c.value for c in record.locks.engaged()]
        table.add_row(
            str(record.sequence),
            str(record.token_id),
            str(record.minted_count),
            str(record.max_supply),
            str(record.user_limit),
            str(record.unit_price),
            ", ".join(engaged) or "-",
            engine.uri(record.token_id),
        )
    return table


def _state(collection: Collection) -> dict[str, Any]:
    engine = collection.engine
    return {
        "collection": collection.config.name,
        "payee": engine.payee,
        "paused": collection.pause.is_paused(),
        "payee_received": collection.sink.received.get(engine.payee, 0),
        "reservations": [
            {**record.to_dict(), "uri": engine.uri(record.token_id)}
            for record in engine.store
        ],
    }


def run_inspect(config_path: Path, *, output_json: bool = False) -> int:
    err = Console(stderr=True)
    collection = _load(config_path, err)
    if collection is None:
        return 1

    if output_json:
        print(json.dumps(_state(collection), indent=2, sort_keys=True))
        return 0

    Console().print(_reservation_table(collection))
    return 0


def run_replay(
    config_path: Path,
    *,
    output_json: bool = False,
    journal_path: Path | None = None,
    fail_fast: bool = False,
    verbose: bool = False,
) -> int:
    err = Console(stderr=True)
    journal = EventJournal(journal_path)
    collection = _load(config_path, err, journal=journal, console=err if verbose else None)
    if collection is None:
        return 1

    steps: list[dict[str, Any]] = []
    failures = 0
    for i, op in enumerate(collection.config.operations):
        step: dict[str, Any] = {"step": i, "op": op.describe(), "caller": op.caller}
        try:
            result = apply_operation(collection, op)
        except ConfigError as e:
            err.print(f"step {i}: {e}", style="bold red")
            return 1
        except MintError as e:
            step["outcome"] = e.code
            step["detail"] = str(e)
            step["ok"] = op.expect == e.code
        else:
            step["outcome"] = "ok"
            step["detail"] = json.dumps(result.to_dict()) if hasattr(result, "to_dict") else (
                "" if result is None else str(result)
            )
            step["ok"] = op.expect is None
        steps.append(step)
        if not step["ok"]:
            failures += 1
            if fail_fast:
                break

    if output_json:
        print(json.dumps({"steps": steps, "failures": failures, "state": _state(collection)}, indent=2, sort_keys=True))
        return 1 if failures else 0

    console = Console()
    table = Table(title=f"Replay: {collection.config.name}")
    table.add_column("#", style="dim", justify="right")
    table.add_column("caller", style="cyan")
    table.add_column("operation")
    table.add_column("outcome")
    table.add_column("detail", style="dim")
    for step in steps:
        style = "green" if step["ok"] else "bold red"
        table.add_row(
            str(step["step"]),
            step["caller"],
            step["op"],
            f"[{style}]{step['outcome']}[/{style}]",
            step["detail"],
        )
    console.print(table)
    console.print(_reservation_table(collection))

    if failures:
        err.print(f"{failures} step(s) did not match expectations", style="bold red")
        return 1
    console.print("All steps matched expectations", style="green")
    return 0
