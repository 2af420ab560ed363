"""
Authorization oracle and pause flag.

The core only queries these collaborators. RoleTable and PauseSwitch are
small reference implementations used by the config loader, the CLI and
the tests.
"""

from __future__ import annotations

from enum import Enum
from typing import Protocol, runtime_checkable

from .errors import Unauthorized


class Role(str, Enum):
    DEFAULT_ADMIN = "default_admin"
    MINTER = "minter"
    BURNER = "burner"
    PAUSER = "pauser"  # Consumed by PauseSwitch, not by the engine
    URI_SETTER = "uri_setter"


@runtime_checkable
class AuthorizationOracle(Protocol):
    """Answers role membership queries."""

    def has_role(self, account: str, role: Role) -> bool:
        ...


@runtime_checkable
class PauseFlag(Protocol):
    """Global pause consulted before any balance-mutating operation."""

    def is_paused(self) -> bool:
        ...


def require_role(oracle: AuthorizationOracle, account: str, role: Role, *, token_id: int | None = None) -> None:
    """Raise Unauthorized unless account holds role."""
    if not oracle.has_role(account, role):
        raise Unauthorized(f"{account} lacks role {role.value}", token_id=token_id)


class RoleTable:
    """
    In-memory role membership.

    The deploying admin starts with every role. Only DEFAULT_ADMIN holders
    may grant or revoke.
    """

    def __init__(self, admin: str):
        self._members: dict[Role, set[str]] = {role: set() for role in Role}
        for role in Role:
            self._members[role].add(admin)

    def has_role(self, account: str, role: Role) -> bool:
        return account in self._members[Role(role)]

    def grant(self, caller: str, account: str, role: Role | str) -> None:
        require_role(self, caller, Role.DEFAULT_ADMIN)
        self._members[Role(role)].add(account)

    def revoke(self, caller: str, account: str, role: Role | str) -> None:
        require_role(self, caller, Role.DEFAULT_ADMIN)
        self._members[Role(role)].discard(account)

    def members(self, role: Role | str) -> list[str]:
        return sorted(self._members[Role(role)])


class PauseSwitch:
    """Pause flag toggled by PAUSER holders."""

    def __init__(self, oracle: AuthorizationOracle, *, paused: bool = False):
        self._oracle = oracle
        self._paused = paused

    def is_paused(self) -> bool:
        return self._paused

    def pause(self, caller: str) -> None:
        require_role(self._oracle, caller, Role.PAUSER)
        self._paused = True

    def unpause(self, caller: str) -> None:
        require_role(self._oracle, caller, Role.PAUSER)
        self._paused = False
