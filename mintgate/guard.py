"""
Admission guard: ordered preconditions checked before any mint mutates state.

Checks short-circuit on the first failure. Nothing here mutates a record;
the guard only reads the store, the lock flags, the authorization oracle
and the pause flag.

Admin path:  reserved -> positive amount -> GLOBAL -> max supply -> MINTER -> pause
Public path: reserved -> positive amount -> GLOBAL -> USER_RESTRICTED
             -> user limit -> max supply -> payment -> pause

Reentrancy is enforced separately by ReentrancyGuard, which wraps each
entry point and rejects nested calls before any of the above runs.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Iterator

from .errors import (
    ExceedsMax,
    ExceedsUserLimit,
    GloballyLocked,
    InsufficientPayment,
    MintError,
    Paused,
    ReentrantCall,
    UserLocked,
)
from .locks import LockCategory
from .roles import AuthorizationOracle, PauseFlag, Role, require_role
from .store import ReserveRecord, ReserveStore


class ReentrancyGuard:
    """
    Engine-wide exclusion for mint entry points.

    exclusive() rejects a nested call from the thread already inside an
    entry point and serializes calls from other threads. serialized() only
    serializes; administrative updates use it so they never interleave
    with a mint's read-check-mutate sequence.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._owner: int | None = None

    @property
    def entered(self) -> bool:
        return self._owner is not None

    @contextmanager
    def exclusive(self, operation: str = "mint") -> Iterator[None]:
        me = threading.get_ident()
        # Only this thread ever writes its own id, so the unlocked read is safe
        if self._owner == me:
            raise ReentrantCall(f"nested {operation} while a mint call is in flight")
        with self._lock:
            self._owner = me
            try:
                yield
            finally:
                self._owner = None

    @contextmanager
    def serialized(self) -> Iterator[None]:
        with self._lock:
            yield


class AdmissionGuard:
    """Validation pipelines for the two mint entry points."""

    def __init__(self, store: ReserveStore, oracle: AuthorizationOracle, pause_flag: PauseFlag):
        self.store = store
        self.oracle = oracle
        self.pause_flag = pause_flag

    # -------------------------------------------------------------------------
    # Individual checks
    # -------------------------------------------------------------------------

    @staticmethod
    def check_positive_amount(record: ReserveRecord, amount: int, error: type[MintError]) -> None:
        """Zero or negative amounts never pass a bound check."""
        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            raise error(f"amount must be a positive integer, got {amount!r}", token_id=record.token_id)

    @staticmethod
    def check_not_globally_locked(record: ReserveRecord) -> None:
        if record.locks[LockCategory.GLOBAL]:
            raise GloballyLocked(f"token {record.token_id} is globally locked", token_id=record.token_id)

    @staticmethod
    def check_not_user_locked(record: ReserveRecord) -> None:
        if record.locks[LockCategory.USER_RESTRICTED]:
            raise UserLocked(f"token {record.token_id} is closed to public minting", token_id=record.token_id)

    @staticmethod
    def check_max_supply(record: ReserveRecord, amount: int) -> None:
        total = record.minted_count + amount
        if total > record.max_supply:
            raise ExceedsMax(
                f"minting {amount} would bring token {record.token_id} to {total} "
                f"(max supply {record.max_supply})",
                token_id=record.token_id,
            )

    @staticmethod
    def check_user_limit(record: ReserveRecord, amount: int) -> None:
        total = record.minted_count + amount
        if total > record.user_limit:
            raise ExceedsUserLimit(
                f"minting {amount} would bring token {record.token_id} to {total} "
                f"(user limit {record.user_limit})",
                token_id=record.token_id,
            )

    @staticmethod
    def check_payment(record: ReserveRecord, amount: int, payment: int) -> None:
        required = record.unit_price * amount
        if payment < required:
            raise InsufficientPayment(
                f"payment {payment} below required {required} for {amount} of token {record.token_id}",
                token_id=record.token_id,
            )

    def check_not_paused(self, token_id: int | None = None) -> None:
        if self.pause_flag.is_paused():
            raise Paused("transfers are paused", token_id=token_id)

    # -------------------------------------------------------------------------
    # Pipelines
    # -------------------------------------------------------------------------

    def admit_admin(self, caller: str, token_id: int, amount: int) -> ReserveRecord:
        """Validate an admin mint. Returns the live record on admission."""
        record = self.store.get(token_id)
        self.check_positive_amount(record, amount, ExceedsMax)
        self.check_not_globally_locked(record)
        self.check_max_supply(record, amount)
        require_role(self.oracle, caller, Role.MINTER, token_id=token_id)
        self.check_not_paused(token_id)
        return record

    def admit_public(self, token_id: int, amount: int, payment: int) -> ReserveRecord:
        """Validate a public mint. Returns the live record on admission."""
        record = self.store.get(token_id)
        self.check_positive_amount(record, amount, ExceedsUserLimit)
        self.check_not_globally_locked(record)
        self.check_not_user_locked(record)
        self.check_user_limit(record, amount)
        self.check_max_supply(record, amount)
        self.check_payment(record, amount, payment)
        self.check_not_paused(token_id)
        return record
