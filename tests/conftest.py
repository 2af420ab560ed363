"""Pytest configuration and fixtures."""

from pathlib import Path

import pytest

from mintgate.engine import MintEngine
from mintgate.journal import EventJournal
from mintgate.ledger import InMemoryBalanceLedger
from mintgate.roles import PauseSwitch, Role, RoleTable
from mintgate.settlement import InMemoryPaymentSink

ADMIN = "admin"
MINTER = "minter"
BUYER = "buyer"
PAYEE = "treasury"


@pytest.fixture
def roles() -> RoleTable:
    """Role table where ADMIN holds everything and MINTER can only mint."""
    table = RoleTable(ADMIN)
    table.grant(ADMIN, MINTER, Role.MINTER)
    return table


@pytest.fixture
def pause(roles: RoleTable) -> PauseSwitch:
    return PauseSwitch(roles)


@pytest.fixture
def ledger() -> InMemoryBalanceLedger:
    return InMemoryBalanceLedger()


@pytest.fixture
def sink() -> InMemoryPaymentSink:
    return InMemoryPaymentSink()


@pytest.fixture
def journal() -> EventJournal:
    return EventJournal()


@pytest.fixture
def engine(
    roles: RoleTable,
    pause: PauseSwitch,
    ledger: InMemoryBalanceLedger,
    sink: InMemoryPaymentSink,
    journal: EventJournal,
) -> MintEngine:
    return MintEngine(
        payee=PAYEE,
        ledger=ledger,
        oracle=roles,
        pause_flag=pause,
        sink=sink,
        journal=journal,
        base_uri="ipfs://collection/",
    )


@pytest.fixture
def collection_file(tmp_path: Path) -> Path:
    """A small TOML collection with a scripted replay."""
    path = tmp_path / "collection.toml"
    path.write_text(
        """
[collection]
name = "Editions"
admin = "alice"
payee = "treasury"
base_uri = "ipfs://bafy/"

[[roles]]
account = "bob"
role = "minter"

[[reservations]]
token_id = 7
max_supply = 100
user_limit = 10
price = 5
metadata_ref = "7.json"

[[reservations]]
token_id = 3
max_supply = 50
user_limit = 5
price = 2
metadata_ref = "3.json"

[[operations]]
op = "mint_admin"
caller = "bob"
token_id = 7
amount = 100

[[operations]]
op = "mint_public"
caller = "carol"
token_id = 7
amount = 1
payment = 5
expect = "globally_locked"

[[operations]]
op = "mint_public"
caller = "carol"
token_id = 3
amount = 5
payment = 10
""",
        encoding="utf-8",
    )
    return path
