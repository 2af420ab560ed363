"""
Per-token lock flags.

Each reserve record embeds a fixed-size LockSet indexed by LockCategory,
so lock state is never shared between records.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Iterable

from .errors import NotReserved

if TYPE_CHECKING:
    from .store import ReserveStore


class LockCategory(str, Enum):
    GLOBAL = "global"  # Engaged when max supply is reached; terminal
    ADMIN_RESTRICTED = "admin_restricted"
    USER_RESTRICTED = "user_restricted"  # Blocks the public mint path only


_CATEGORIES: tuple[LockCategory, ...] = tuple(LockCategory)
_INDEX = {category: i for i, category in enumerate(_CATEGORIES)}


class LockSet:
    """Fixed array of boolean flags, one slot per LockCategory."""

    __slots__ = ("_flags",)

    def __init__(self, engaged: Iterable[LockCategory | str] = ()):
        self._flags = [False] * len(_CATEGORIES)
        for category in engaged:
            self._flags[_INDEX[LockCategory(category)]] = True

    def __getitem__(self, category: LockCategory | str) -> bool:
        return self._flags[_INDEX[LockCategory(category)]]

    def __setitem__(self, category: LockCategory | str, value: bool) -> None:
        self._flags[_INDEX[LockCategory(category)]] = bool(value)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, LockSet):
            return NotImplemented
        return self._flags == other._flags

    def __repr__(self) -> str:
        return f"LockSet({', '.join(c.value for c in self.engaged()) or '-'})"

    def __deepcopy__(self, memo: dict) -> LockSet:
        return self.copy()

    def engaged(self) -> list[LockCategory]:
        return [c for c in _CATEGORIES if self._flags[_INDEX[c]]]

    def copy(self) -> LockSet:
        clone = LockSet()
        clone._flags = list(self._flags)
        return clone

    def to_dict(self) -> dict[str, bool]:
        return {c.value: self._flags[_INDEX[c]] for c in _CATEGORIES}


class LockRegistry:
    """
    Query/toggle view over the locks held in a ReserveStore.

    Unknown tokens read as unlocked. Callers cannot tell "no record" from
    "reserved and unlocked" through this view; use the store for that.
    """

    def __init__(self, store: ReserveStore):
        self._store = store

    def is_locked(self, token_id: int, category: LockCategory | str) -> bool:
        category = LockCategory(category)
        record = self._store.find(token_id)
        if record is None:
            return False
        return record.locks[category]

    def set_lock(self, token_id: int, category: LockCategory | str, value: bool) -> None:
        record = self._store.find(token_id)
        if record is None:
            raise NotReserved(f"token {token_id} is not reserved", token_id=token_id)
        record.locks[category] = value
