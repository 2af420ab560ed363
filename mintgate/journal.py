"""
Append-only event journal.

Events are kept in memory in emission order. When a path is given, each
event is also appended to it as one JSON line, the same format
read_journal() parses back.

The journal reports on operations that have already been applied, so a
failing file write or subscriber is logged and counted, never raised.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Callable, Iterator

from .events import MintEvent

Subscriber = Callable[[MintEvent], None]

logger = logging.getLogger(__name__)


class EventJournal:
    def __init__(self, path: Path | None = None):
        self.path = path
        self._events: list[MintEvent] = []
        self._subscribers: list[Subscriber] = []
        self.delivery_failures = 0
        if path is not None:
            path.parent.mkdir(parents=True, exist_ok=True)

    def subscribe(self, callback: Subscriber) -> None:
        self._subscribers.append(callback)

    def append(self, event: MintEvent) -> None:
        self._events.append(event)
        if self.path is not None:
            try:
                with self.path.open("a", encoding="utf-8") as f:
                    f.write(event.to_json() + "\n")
            except OSError as e:
                self.delivery_failures += 1
                logger.warning(f"Failed to write {event.event_type} to {self.path}: {e}")
        for callback in self._subscribers:
            try:
                callback(event)
            except Exception as e:
                self.delivery_failures += 1
                logger.warning(f"Subscriber {callback!r} failed on {event.event_type}: {e}")

    def events(
        self,
        *,
        token_id: int | None = None,
        event_type: str | None = None,
    ) -> list[MintEvent]:
        """Events in emission order, optionally filtered."""
        result = self._events
        if token_id is not None:
            result = [e for e in result if e.token_id == token_id]
        if event_type is not None:
            result = [e for e in result if e.event_type == event_type]
        return list(result)

    def last(self) -> MintEvent | None:
        return self._events[-1] if self._events else None

    def __len__(self) -> int:
        return len(self._events)

    def __iter__(self) -> Iterator[MintEvent]:
        return iter(list(self._events))


def read_journal(path: Path, last_n: int | None = None) -> list[MintEvent]:
    """
    Read events from a JSONL journal file.

    Malformed lines are skipped. Returns [] when the file does not exist.
    """
    if not path.exists():
        return []

    events: list[MintEvent] = []
    with path.open("r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            try:
                events.append(MintEvent.from_json(line))
            except (json.JSONDecodeError, KeyError, ValueError):
                continue  # Skip malformed lines

    if last_n is not None:
        return events[-last_n:] if last_n > 0 else []
    return events
