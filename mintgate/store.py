"""
Reserve store: the per-token metadata records.

The store exclusively owns every ReserveRecord. Callers read and mutate
records through the store's methods; records handed out by snapshot() are
independent copies.

Records are created once (reserve), mutated many times, never deleted.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any, Iterator

from .errors import AlreadyReserved, InvalidParameter, NotReserved
from .locks import LockCategory, LockSet


@dataclass
class ReserveRecord:
    """Metadata for one reserved token identifier."""

    token_id: int
    max_supply: int  # Immutable once reserved
    metadata_ref: str = ""
    user_limit: int = 0
    unit_price: int = 0
    minted_count: int = 0
    locks: LockSet = field(default_factory=LockSet)
    reserved: bool = False
    sequence: int = -1  # Position in reservation history

    @property
    def globally_locked(self) -> bool:
        return self.locks[LockCategory.GLOBAL]

    @property
    def user_locked(self) -> bool:
        return self.locks[LockCategory.USER_RESTRICTED]

    @property
    def remaining(self) -> int:
        return self.max_supply - self.minted_count

    def to_dict(self) -> dict[str, Any]:
        return {
            "token_id": self.token_id,
            "sequence": self.sequence,
            "metadata_ref": self.metadata_ref,
            "max_supply": self.max_supply,
            "minted_count": self.minted_count,
            "user_limit": self.user_limit,
            "unit_price": self.unit_price,
            "locks": self.locks.to_dict(),
            "reserved": self.reserved,
        }


def _require_int(name: str, value: Any, *, minimum: int, token_id: int | None = None) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidParameter(f"{name} must be an integer, got {value!r}", token_id=token_id)
    if value < minimum:
        raise InvalidParameter(f"{name} must be >= {minimum}, got {value}", token_id=token_id)
    return value


class ReserveStore:
    """In-memory reserve records plus the ordered reservation history."""

    def __init__(self) -> None:
        self._records: dict[int, ReserveRecord] = {}
        self._history: list[int] = []

    # -------------------------------------------------------------------------
    # Reservation
    # -------------------------------------------------------------------------

    def reserve(
        self,
        token_id: int,
        max_supply: int,
        metadata_ref: str,
        user_limit: int,
        lock_users_initially: bool = False,
        *,
        unit_price: int = 0,
    ) -> ReserveRecord:
        """
        Register a token identifier. One-shot: a second call raises
        AlreadyReserved and leaves the first record untouched.
        """
        token_id = _require_int("token_id", token_id, minimum=0)
        if self.is_reserved(token_id):
            raise AlreadyReserved(f"token {token_id} is already reserved", token_id=token_id)

        record = ReserveRecord(
            token_id=token_id,
            max_supply=_require_int("max_supply", max_supply, minimum=1, token_id=token_id),
            metadata_ref=str(metadata_ref),
            user_limit=_require_int("user_limit", user_limit, minimum=0, token_id=token_id),
            unit_price=_require_int("unit_price", unit_price, minimum=0, token_id=token_id),
            reserved=True,
            sequence=len(self._history),
        )
        if lock_users_initially:
            record.locks[LockCategory.USER_RESTRICTED] = True

        self._records[token_id] = record
        self._history.append(token_id)
        return record

    def is_reserved(self, token_id: int) -> bool:
        record = self._records.get(token_id)
        return record is not None and record.reserved

    def find(self, token_id: int) -> ReserveRecord | None:
        """Return the live record, or None if the token was never reserved."""
        record = self._records.get(token_id)
        if record is None or not record.reserved:
            return None
        return record

    def get(self, token_id: int) -> ReserveRecord:
        record = self.find(token_id)
        if record is None:
            raise NotReserved(f"token {token_id} is not reserved", token_id=token_id)
        return record

    # -------------------------------------------------------------------------
    # Field updates
    # -------------------------------------------------------------------------

    def set_user_limit(self, token_id: int, new_limit: int) -> int:
        """Store a new user limit, clamped up to the minted count. Returns the stored value."""
        record = self.get(token_id)
        new_limit = _require_int("user_limit", new_limit, minimum=0, token_id=token_id)
        record.user_limit = max(new_limit, record.minted_count)
        return record.user_limit

    def set_price(self, token_id: int, price: int) -> None:
        record = self.get(token_id)
        record.unit_price = _require_int("unit_price", price, minimum=0, token_id=token_id)

    def set_metadata_ref(self, token_id: int, ref: str) -> None:
        self.get(token_id).metadata_ref = str(ref)

    def record_mint(self, token_id: int, amount: int) -> ReserveRecord:
        """
        Commit step: add amount to the minted count.

        Bounds are the caller's responsibility. Reaching max supply engages
        the GLOBAL lock, which nothing unsets.
        """
        record = self.get(token_id)
        record.minted_count += amount
        if record.minted_count == record.max_supply:
            record.locks[LockCategory.GLOBAL] = True
        return record

    # -------------------------------------------------------------------------
    # Compensation primitives
    # -------------------------------------------------------------------------

    def snapshot(self, token_id: int) -> ReserveRecord:
        """Independent copy of a record."""
        return copy.deepcopy(self.get(token_id))

    def revert_mint(self, token_id: int, amount: int, *, release_global: bool) -> ReserveRecord:
        """
        Undo one record_mint() of amount within the same call.

        Only the counter moves back. GLOBAL is cleared only when that mint
        engaged it (release_global); other fields edited meanwhile are kept.
        """
        record = self.get(token_id)
        record.minted_count -= amount
        if release_global:
            record.locks[LockCategory.GLOBAL] = False
        return record

    # -------------------------------------------------------------------------
    # Accessors
    # -------------------------------------------------------------------------

    def max_supply(self, token_id: int) -> int:
        return self.get(token_id).max_supply

    def user_limit(self, token_id: int) -> int:
        return self.get(token_id).user_limit

    def minted_count(self, token_id: int) -> int:
        return self.get(token_id).minted_count

    def price(self, token_id: int) -> int:
        return self.get(token_id).unit_price

    def metadata_ref(self, token_id: int) -> str:
        return self.get(token_id).metadata_ref

    def history(self) -> tuple[int, ...]:
        """Reserved token ids in reservation order."""
        return tuple(self._history)

    def reserved_at(self, sequence: int) -> int:
        """Token id reserved at the given sequence number."""
        if not 0 <= sequence < len(self._history):
            raise IndexError(f"no reservation with sequence {sequence}")
        return self._history[sequence]

    def __len__(self) -> int:
        return len(self._history)

    def __contains__(self, token_id: object) -> bool:
        return isinstance(token_id, int) and self.is_reserved(token_id)

    def __iter__(self) -> Iterator[ReserveRecord]:
        for token_id in self._history:
            yield self._records[token_id]
