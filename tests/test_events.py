"""Tests for notification events and the event journal."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path

import pytest

from mintgate.engine import MintEngine
from mintgate.errors import ExceedsUserLimit
from mintgate.events import (
    LIMIT_CHANGED,
    LOCK_TOGGLED,
    MINT_COMMITTED,
    MINT_REJECTED,
    RESERVATION_CREATED,
    MintEvent,
    create_event,
)
from mintgate.journal import EventJournal, read_journal
from mintgate.ledger import InMemoryBalanceLedger

from .conftest import ADMIN, BUYER, MINTER, PAYEE


class TestMintEvent:
    def test_rejects_unknown_type(self):
        with pytest.raises(ValueError):
            create_event("mint.maybe", 1, "system")

    def test_json_line_parses_back(self):
        event = create_event(
            MINT_COMMITTED,
            7,
            "alice",
            payload={"amount": 3, "minted_count": 3},
            timestamp=datetime(2024, 1, 1, tzinfo=timezone.utc),
        )
        line = event.to_json()

        assert "\n" not in line
        assert MintEvent.from_json(line) == event

    def test_payload_omitted_when_empty(self):
        assert "payload" not in create_event(LOCK_TOGGLED, 1, "system").to_dict()


class TestEngineNotifications:
    def test_lifecycle_events(self, engine: MintEngine, journal: EventJournal):
        engine.reserve(ADMIN, 3, 50, "3.json", 5, unit_price=2)
        engine.mint_admin(MINTER, 3, 4)
        engine.set_user_limit(ADMIN, 3, 1)
        engine.set_user_lock(ADMIN, 3, True)

        types = [e.event_type for e in journal.events(token_id=3)]
        assert types == [RESERVATION_CREATED, MINT_COMMITTED, LIMIT_CHANGED, LOCK_TOGGLED]

        created = journal.events(event_type=RESERVATION_CREATED)[0]
        assert created.payload["sequence"] == 0
        assert created.payload["max_supply"] == 50

        committed = journal.events(event_type=MINT_COMMITTED)[0]
        assert committed.actor == MINTER
        assert committed.payload["minted_count"] == 4
        assert committed.payload["path"] == "admin"

        limit = journal.events(event_type=LIMIT_CHANGED)[0]
        assert limit.payload == {"requested": 1, "user_limit": 4}

        lock = journal.last()
        assert lock is not None
        assert lock.payload == {"category": "user_restricted", "locked": True}

    def test_rejection_event(self, engine: MintEngine, journal: EventJournal):
        engine.reserve(ADMIN, 3, 50, "", 5)
        with pytest.raises(ExceedsUserLimit):
            engine.mint_public(BUYER, 3, 6, 0)

        rejected = journal.events(event_type=MINT_REJECTED)
        assert len(rejected) == 1
        assert rejected[0].payload["code"] == "exceeds_user_limit"
        assert rejected[0].payload["path"] == "public"

    def test_subscribers_see_events(self, engine: MintEngine, journal: EventJournal):
        seen: list[str] = []
        journal.subscribe(lambda e: seen.append(e.event_type))

        engine.reserve(ADMIN, 1, 5, "", 5)

        assert seen == [RESERVATION_CREATED]

    def test_failing_subscriber_does_not_fail_committed_mint(
        self, engine: MintEngine, journal: EventJournal, ledger: InMemoryBalanceLedger, caplog
    ):
        engine.reserve(ADMIN, 1, 10, "", 10)

        def indexer(event: MintEvent) -> None:
            if event.event_type == MINT_COMMITTED:
                raise RuntimeError("indexer down")

        journal.subscribe(indexer)
        with caplog.at_level(logging.WARNING, logger="mintgate.journal"):
            receipt = engine.mint_admin(MINTER, 1, 4)

        assert receipt.minted_count == 4
        assert engine.minted_count(1) == 4
        assert ledger.balance_of(PAYEE, 1) == 4
        assert journal.delivery_failures == 1
        assert journal.last().event_type == MINT_COMMITTED
        assert "indexer down" in caplog.text


class TestJournalFile:
    def test_appends_jsonl(self, tmp_path: Path):
        path = tmp_path / "audit" / "events.jsonl"
        journal = EventJournal(path)
        journal.append(create_event(RESERVATION_CREATED, 1, ADMIN, payload={"sequence": 0}))
        journal.append(create_event(MINT_COMMITTED, 1, MINTER, payload={"amount": 2}))

        lines = path.read_text(encoding="utf-8").splitlines()
        assert len(lines) == 2
        assert [e.event_type for e in read_journal(path)] == [RESERVATION_CREATED, MINT_COMMITTED]

    def test_read_skips_malformed_lines(self, tmp_path: Path):
        path = tmp_path / "events.jsonl"
        good = create_event(MINT_COMMITTED, 1, MINTER).to_json()
        path.write_text(f"{good}\nnot json\n{{\"event_type\": \"bogus\"}}\n\n{good}\n", encoding="utf-8")

        assert len(read_journal(path)) == 2
        assert len(read_journal(path, last_n=1)) == 1

    def test_last_zero_reads_nothing(self, tmp_path: Path):
        path = tmp_path / "events.jsonl"
        journal = EventJournal(path)
        for amount in (1, 2, 3):
            journal.append(create_event(MINT_COMMITTED, 1, MINTER, payload={"amount": amount}))

        assert read_journal(path, last_n=0) == []
        assert [e.payload["amount"] for e in read_journal(path, last_n=2)] == [2, 3]

    def test_unwritable_file_does_not_raise(self, tmp_path: Path):
        path = tmp_path / "events.jsonl"
        path.mkdir()
        journal = EventJournal(path)

        journal.append(create_event(RESERVATION_CREATED, 1, ADMIN, payload={"sequence": 0}))

        assert len(journal) == 1
        assert journal.delivery_failures == 1

    def test_missing_file(self, tmp_path: Path):
        assert read_journal(tmp_path / "nope.jsonl") == []
