"""
Collection files: TOML describing a collection, its role grants, its
reservations and, optionally, a script of operations to replay.

The schema is intentionally small: the file is data, the engine is code.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from rich.console import Console

from .engine import MintEngine
from .errors import ERROR_CODES, ConfigError
from .journal import EventJournal
from .ledger import InMemoryBalanceLedger
from .roles import PauseSwitch, Role, RoleTable
from .settlement import InMemoryPaymentSink

OPERATIONS = frozenset({
    "mint_admin",
    "mint_public",
    "set_user_limit",
    "set_price",
    "set_user_lock",
    "set_metadata_ref",
    "burn",
    "pause",
    "unpause",
})


@dataclass(frozen=True)
class RoleGrant:
    account: str
    role: Role


@dataclass(frozen=True)
class ReservationDef:
    token_id: int
    max_supply: int
    user_limit: int
    price: int = 0
    metadata_ref: str = ""
    lock_users: bool = False


@dataclass(frozen=True)
class OperationDef:
    op: str
    caller: str
    params: dict[str, Any] = field(default_factory=dict)
    expect: str | None = None  # Error code this step is expected to fail with

    def describe(self) -> str:
        args = " ".join(f"{k}={v}" for k, v in self.params.items())
        return f"{self.op} {args}".strip()


@dataclass(frozen=True)
class CollectionConfig:
    name: str
    admin: str
    payee: str
    base_uri: str = ""
    roles: list[RoleGrant] = field(default_factory=list)
    reservations: list[ReservationDef] = field(default_factory=list)
    operations: list[OperationDef] = field(default_factory=list)


@dataclass
class Collection:
    """A wired engine plus the in-memory collaborators behind it."""

    config: CollectionConfig
    engine: MintEngine
    roles: RoleTable
    pause: PauseSwitch
    ledger: InMemoryBalanceLedger
    sink: InMemoryPaymentSink


def _coerce_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _require_str(raw: dict[str, Any], key: str, where: str) -> str:
    value = raw.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ConfigError(f"{where}: '{key}' is required")
    return value.strip()


def _require_int(raw: dict[str, Any], key: str, where: str, default: int | None = None) -> int:
    value = raw.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(f"{where}: '{key}' must be an integer")
    return value


def parse_collection(data: dict[str, Any]) -> CollectionConfig:
    """Build a CollectionConfig from already-parsed TOML data."""
    collection = _coerce_dict(data.get("collection"))
    admin = _require_str(collection, "admin", "[collection]")
    payee = _require_str(collection, "payee", "[collection]")
    name = str(collection.get("name", "")).strip() or "collection"
    base_uri = str(collection.get("base_uri", ""))

    roles: list[RoleGrant] = []
    for i, raw in enumerate(data.get("roles", [])):
        where = f"roles[{i}]"
        if not isinstance(raw, dict):
            raise ConfigError(f"{where}: expected a table")
        role_name = _require_str(raw, "role", where)
        try:
            role = Role(role_name)
        except ValueError:
            valid = ", ".join(r.value for r in Role)
            raise ConfigError(f"{where}: unknown role '{role_name}' (expected one of {valid})") from None
        roles.append(RoleGrant(account=_require_str(raw, "account", where), role=role))

    reservations: list[ReservationDef] = []
    for i, raw in enumerate(data.get("reservations", [])):
        where = f"reservations[{i}]"
        if not isinstance(raw, dict):
            raise ConfigError(f"{where}: expected a table")
        reservations.append(
            ReservationDef(
                token_id=_require_int(raw, "token_id", where),
                max_supply=_require_int(raw, "max_supply", where),
                user_limit=_require_int(raw, "user_limit", where),
                price=_require_int(raw, "price", where, default=0),
                metadata_ref=str(raw.get("metadata_ref", "")),
                lock_users=bool(raw.get("lock_users", False)),
            )
        )

    operations: list[OperationDef] = []
    for i, raw in enumerate(data.get("operations", [])):
        where = f"operations[{i}]"
        if not isinstance(raw, dict):
            raise ConfigError(f"{where}: expected a table")
        op = _require_str(raw, "op", where)
        if op not in OPERATIONS:
            raise ConfigError(f"{where}: unknown op '{op}'")
        expect = raw.get("expect")
        if expect is not None and expect not in ERROR_CODES:
            raise ConfigError(f"{where}: unknown expected error code '{expect}'")
        operations.append(
            OperationDef(
                op=op,
                caller=_require_str(raw, "caller", where),
                params={k: v for k, v in raw.items() if k not in {"op", "caller", "expect"}},
                expect=str(expect) if isinstance(expect, str) else None,
            )
        )

    return CollectionConfig(
        name=name,
        admin=admin,
        payee=payee,
        base_uri=base_uri,
        roles=roles,
        reservations=reservations,
        operations=operations,
    )


def load_collection(path: Path) -> CollectionConfig:
    """Load a collection file from TOML, or YAML for .yml/.yaml files."""
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() in {".yml", ".yaml"}:
        import yaml

        try:
            data = yaml.safe_load(text) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"{path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"{path}: expected a mapping at the top level")
    else:
        import tomllib

        try:
            data = tomllib.loads(text)
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(f"{path}: {e}") from e
    return parse_collection(data)


def build_collection(
    config: CollectionConfig,
    *,
    journal: EventJournal | None = None,
    console: Console | None = None,
) -> Collection:
    """Wire an engine with in-memory collaborators and apply grants and reservations."""
    roles = RoleTable(config.admin)
    for grant in config.roles:
        roles.grant(config.admin, grant.account, grant.role)

    pause = PauseSwitch(roles)
    ledger = InMemoryBalanceLedger()
    sink = InMemoryPaymentSink()
    engine = MintEngine(
        payee=config.payee,
        ledger=ledger,
        oracle=roles,
        pause_flag=pause,
        sink=sink,
        journal=journal,
        base_uri=config.base_uri,
        console=console,
    )
    for r in config.reservations:
        engine.reserve(
            config.admin,
            r.token_id,
            r.max_supply,
            r.metadata_ref,
            r.user_limit,
            r.lock_users,
            unit_price=r.price,
        )
    return Collection(config=config, engine=engine, roles=roles, pause=pause, ledger=ledger, sink=sink)


def apply_operation(collection: Collection, op: OperationDef) -> Any:
    """Run one scripted operation against a wired collection."""
    try:
        return _dispatch(collection, op)
    except KeyError as e:
        raise ConfigError(f"{op.op}: missing parameter {e}") from None


def _dispatch(collection: Collection, op: OperationDef) -> Any:
    engine = collection.engine
    p = op.params
    if op.op == "mint_admin":
        return engine.mint_admin(op.caller, p["token_id"], p["amount"])
    if op.op == "mint_public":
        return engine.mint_public(
            op.caller,
            p["token_id"],
            p["amount"],
            p.get("payment", 0),
            recipient=p.get("recipient"),
        )
    if op.op == "set_user_limit":
        return engine.set_user_limit(op.caller, p["token_id"], p["user_limit"])
    if op.op == "set_price":
        return engine.set_price(op.caller, p["token_id"], p["price"])
    if op.op == "set_user_lock":
        return engine.set_user_lock(op.caller, p["token_id"], bool(p.get("locked", True)))
    if op.op == "set_metadata_ref":
        return engine.set_metadata_ref(op.caller, p["token_id"], p["metadata_ref"])
    if op.op == "burn":
        return engine.burn(op.caller, p.get("holder", op.caller), p["token_id"], p["amount"])
    if op.op == "pause":
        return collection.pause.pause(op.caller)
    if op.op == "unpause":
        return collection.pause.unpause(op.caller)
    raise ConfigError(f"unknown op '{op.op}'")
