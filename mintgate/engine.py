"""
Mint engine: single chokepoint for every state-changing call.

Orchestrates: reentrancy exclusion -> admission guard -> ledger issue
-> counter commit -> fee settlement (public path) -> notification

Key invariants:
- No mint mutates anything before the admission guard admits it
- Issue, commit and settlement are all-or-nothing: when a later step
  fails, earlier steps are reversed before the error is raised
- GLOBAL, once engaged by reaching max supply, is never cleared
- Rejections are auditable (mint.rejected events emitted)
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Iterator

from rich.console import Console

from .errors import (
    GloballyLocked,
    InvalidParameter,
    LedgerFailure,
    MintError,
    Unauthorized,
)
from .events import (
    LIMIT_CHANGED,
    LOCK_TOGGLED,
    METADATA_CHANGED,
    MINT_COMMITTED,
    MINT_REJECTED,
    PRICE_CHANGED,
    RESERVATION_CREATED,
    TOKENS_BURNED,
    create_event,
)
from .guard import AdmissionGuard, ReentrancyGuard
from .journal import EventJournal
from .ledger import BalanceLedger, LedgerError
from .locks import LockCategory, LockRegistry
from .roles import AuthorizationOracle, PauseFlag, Role, require_role
from .settlement import FeeSettlement, PaymentSink
from .store import ReserveRecord, ReserveStore


@dataclass(frozen=True)
class MintReceipt:
    """Outcome of a committed mint."""

    token_id: int
    path: str  # "admin" | "public"
    recipient: str
    amount: int
    minted_count: int
    payment: int = 0
    globally_locked: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "token_id": self.token_id,
            "path": self.path,
            "recipient": self.recipient,
            "amount": self.amount,
            "minted_count": self.minted_count,
            "payment": self.payment,
            "globally_locked": self.globally_locked,
        }


class MintEngine:
    """
    Reservation and mint state machine for one collection.

    Per token: Unreserved -(reserve)-> Active -(mint...)-> Active [GLOBAL].
    USER_RESTRICTED is an orthogonal flag on Active records.

    Two mint entry points:
    - mint_admin(): MINTER-gated, capped by max supply, credits the payee
    - mint_public(): open, capped by the user limit, paid, fee forwarded
    """

    def __init__(
        self,
        *,
        payee: str,
        ledger: BalanceLedger,
        oracle: AuthorizationOracle,
        pause_flag: PauseFlag,
        sink: PaymentSink,
        store: ReserveStore | None = None,
        journal: EventJournal | None = None,
        base_uri: str = "",
        console: Console | None = None,
    ):
        self.payee = payee
        self.ledger = ledger
        self.oracle = oracle
        self.pause_flag = pause_flag
        self.store = store or ReserveStore()
        self.locks = LockRegistry(self.store)
        self.guard = AdmissionGuard(self.store, oracle, pause_flag)
        self.reentrancy = ReentrancyGuard()
        self.settlement = FeeSettlement(sink, payee)
        self.journal = journal if journal is not None else EventJournal()
        self.base_uri = base_uri
        self.console = console

    # -------------------------------------------------------------------------
    # Reservation and administrative updates
    # -------------------------------------------------------------------------

    def reserve(
        self,
        caller: str,
        token_id: int,
        max_supply: int,
        metadata_ref: str,
        user_limit: int,
        lock_users: bool = False,
        *,
        unit_price: int = 0,
    ) -> ReserveRecord:
        """Reserve a token id. Returns a copy of the new record."""
        with self.reentrancy.serialized():
            require_role(self.oracle, caller, Role.DEFAULT_ADMIN, token_id=token_id)
            record = self.store.reserve(
                token_id,
                max_supply,
                metadata_ref,
                user_limit,
                lock_users,
                unit_price=unit_price,
            )
            self._emit(
                RESERVATION_CREATED,
                token_id,
                caller,
                sequence=record.sequence,
                max_supply=record.max_supply,
                user_limit=record.user_limit,
                unit_price=record.unit_price,
                metadata_ref=record.metadata_ref,
                user_locked=record.user_locked,
            )
            self._say(f"reserved token {token_id} (max {max_supply}, limit {user_limit})")
            return self.store.snapshot(token_id)

    def set_user_limit(self, caller: str, token_id: int, new_limit: int) -> int:
        """Update the public-path ceiling. Values below the minted count are clamped up."""
        with self.reentrancy.serialized():
            require_role(self.oracle, caller, Role.DEFAULT_ADMIN, token_id=token_id)
            stored = self.store.set_user_limit(token_id, new_limit)
            self._emit(LIMIT_CHANGED, token_id, caller, requested=new_limit, user_limit=stored)
            return stored

    def set_price(self, caller: str, token_id: int, price: int) -> None:
        with self.reentrancy.serialized():
            require_role(self.oracle, caller, Role.DEFAULT_ADMIN, token_id=token_id)
            self.store.set_price(token_id, price)
            self._emit(PRICE_CHANGED, token_id, caller, unit_price=price)

    def set_metadata_ref(self, caller: str, token_id: int, ref: str) -> None:
        with self.reentrancy.serialized():
            require_role(self.oracle, caller, Role.URI_SETTER, token_id=token_id)
            self.store.set_metadata_ref(token_id, ref)
            self._emit(METADATA_CHANGED, token_id, caller, metadata_ref=str(ref))

    def set_base_uri(self, caller: str, base_uri: str) -> None:
        with self.reentrancy.serialized():
            require_role(self.oracle, caller, Role.URI_SETTER)
            self.base_uri = str(base_uri)
            self._emit(METADATA_CHANGED, None, caller, base_uri=self.base_uri)

    def set_lock(self, caller: str, token_id: int, category: LockCategory | str, locked: bool) -> None:
        """
        Toggle an administrative lock category.

        GLOBAL is engaged only by reaching max supply and cannot be set here.
        No lock may be toggled while GLOBAL is engaged.
        """
        category = LockCategory(category)
        with self.reentrancy.serialized():
            require_role(self.oracle, caller, Role.DEFAULT_ADMIN, token_id=token_id)
            if category is LockCategory.GLOBAL:
                raise InvalidParameter("the global lock cannot be set directly", token_id=token_id)
            record = self.store.get(token_id)
            if record.globally_locked:
                raise GloballyLocked(
                    f"token {token_id} is globally locked; {category.value} cannot change",
                    token_id=token_id,
                )
            self.locks.set_lock(token_id, category, locked)
            self._emit(LOCK_TOGGLED, token_id, caller, category=category.value, locked=bool(locked))

    def set_user_lock(self, caller: str, token_id: int, locked: bool) -> None:
        self.set_lock(caller, token_id, LockCategory.USER_RESTRICTED, locked)

    def toggle_user_lock(self, caller: str, token_id: int) -> bool:
        """Flip USER_RESTRICTED. Returns the new value."""
        with self.reentrancy.serialized():
            locked = not self.locks.is_locked(token_id, LockCategory.USER_RESTRICTED)
            self.set_user_lock(caller, token_id, locked)
            return locked

    # -------------------------------------------------------------------------
    # Minting
    # -------------------------------------------------------------------------

    def mint_admin(self, caller: str, token_id: int, amount: int, data: bytes = b"") -> MintReceipt:
        """
        Mint amount units to the payee.

        Capped by max supply; requires MINTER. Reaching max supply engages
        GLOBAL.
        """
        with self._rejections("admin", caller, token_id, amount):
            with self.reentrancy.exclusive("mint_admin"):
                self.guard.admit_admin(caller, token_id, amount)
                prior = self.store.snapshot(token_id)

                self._issue(self.payee, token_id, amount, data)
                try:
                    record = self.store.record_mint(token_id, amount)
                except Exception:
                    self._unwind(prior, self.payee, amount, committed=False)
                    raise

                receipt = MintReceipt(
                    token_id=token_id,
                    path="admin",
                    recipient=self.payee,
                    amount=amount,
                    minted_count=record.minted_count,
                    globally_locked=record.globally_locked and not prior.globally_locked,
                )
                self._committed(caller, receipt)
                return receipt

    def mint_public(
        self,
        caller: str,
        token_id: int,
        amount: int,
        payment: int,
        *,
        recipient: str | None = None,
        data: bytes = b"",
    ) -> MintReceipt:
        """
        Paid mint on the public path.

        Capped by the user limit (and max supply). The whole payment is
        forwarded to the payee; overpayment is not refunded. If forwarding
        fails, the issue and the counter update are reversed.
        """
        recipient = recipient or caller
        with self._rejections("public", caller, token_id, amount):
            with self.reentrancy.exclusive("mint_public"):
                self.guard.admit_public(token_id, amount, payment)
                prior = self.store.snapshot(token_id)

                self._issue(recipient, token_id, amount, data)
                committed = False
                try:
                    record = self.store.record_mint(token_id, amount)
                    committed = True
                    minted_count = record.minted_count
                    engaged = record.globally_locked and not prior.globally_locked
                    self.settlement.settle(caller, payment, token_id=token_id)
                except Exception:
                    self._unwind(prior, recipient, amount, committed=committed)
                    raise

                receipt = MintReceipt(
                    token_id=token_id,
                    path="public",
                    recipient=recipient,
                    amount=amount,
                    minted_count=minted_count,
                    payment=payment,
                    globally_locked=engaged,
                )
                self._committed(caller, receipt)
                return receipt

    def burn(self, caller: str, holder: str, token_id: int, amount: int) -> None:
        """
        Retire units held by holder.

        Allowed for the holder or a BURNER. The minted count is a lifetime
        counter and does not go down.
        """
        with self.reentrancy.exclusive("burn"):
            self.store.get(token_id)
            if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
                raise InvalidParameter(f"amount must be a positive integer, got {amount!r}", token_id=token_id)
            if caller != holder and not self.oracle.has_role(caller, Role.BURNER):
                raise Unauthorized(f"{caller} may not burn tokens held by {holder}", token_id=token_id)
            self.guard.check_not_paused(token_id)
            try:
                self.ledger.retire(holder, token_id, amount)
            except LedgerError as e:
                raise LedgerFailure(str(e), token_id=token_id) from e
            self._emit(TOKENS_BURNED, token_id, caller, holder=holder, amount=amount)

    # -------------------------------------------------------------------------
    # Read accessors (no locking)
    # -------------------------------------------------------------------------

    def is_reserved(self, token_id: int) -> bool:
        return self.store.is_reserved(token_id)

    def is_locked(self, token_id: int, category: LockCategory | str) -> bool:
        return self.locks.is_locked(token_id, category)

    def max_supply(self, token_id: int) -> int:
        return self.store.max_supply(token_id)

    def user_limit(self, token_id: int) -> int:
        return self.store.user_limit(token_id)

    def minted_count(self, token_id: int) -> int:
        return self.store.minted_count(token_id)

    def price(self, token_id: int) -> int:
        return self.store.price(token_id)

    def uri(self, token_id: int) -> str:
        return self.base_uri + self.store.metadata_ref(token_id)

    def reserved_tokens(self) -> tuple[int, ...]:
        """Reserved token ids in reservation order."""
        return self.store.history()

    def record(self, token_id: int) -> ReserveRecord:
        """Independent copy of a token's record."""
        return self.store.snapshot(token_id)

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _issue(self, recipient: str, token_id: int, amount: int, data: bytes) -> None:
        try:
            self.ledger.issue(recipient, token_id, amount, data)
        except LedgerError as e:
            raise LedgerFailure(f"issuing {amount} of token {token_id} failed: {e}", token_id=token_id) from e

    def _unwind(self, prior: ReserveRecord, recipient: str, amount: int, *, committed: bool) -> None:
        """Reverse a counter commit (when it happened) and an issue, in that order."""
        if committed:
            self.store.revert_mint(prior.token_id, amount, release_global=not prior.globally_locked)
        try:
            self.ledger.revoke(recipient, prior.token_id, amount)
        except LedgerError as e:
            raise LedgerFailure(
                f"could not revoke {amount} of token {prior.token_id} from {recipient}: {e}",
                token_id=prior.token_id,
            ) from e
        self._say(f"unwound mint of {amount} on token {prior.token_id}", style="yellow")

    @contextmanager
    def _rejections(self, path: str, caller: str, token_id: int, amount: int) -> Iterator[None]:
        try:
            yield
        except MintError as e:
            self._emit(MINT_REJECTED, token_id, caller, path=path, amount=amount, code=e.code, reason=str(e))
            self._say(f"{path} mint on token {token_id} rejected: {e.code}", style="red")
            raise

    def _committed(self, caller: str, receipt: MintReceipt) -> None:
        self._emit(
            MINT_COMMITTED,
            receipt.token_id,
            caller,
            path=receipt.path,
            recipient=receipt.recipient,
            amount=receipt.amount,
            minted_count=receipt.minted_count,
            payment=receipt.payment,
            globally_locked=receipt.globally_locked,
        )
        self._say(f"{receipt.path} mint: {receipt.amount} of token {receipt.token_id} -> {receipt.recipient}")
        if receipt.globally_locked:
            self._say(f"token {receipt.token_id} reached max supply; globally locked", style="yellow")

    def _emit(self, event_type: str, token_id: int | None, actor: str, **payload: Any) -> None:
        self.journal.append(create_event(event_type, token_id, actor, payload=payload))

    def _say(self, message: str, *, style: str = "dim") -> None:
        if self.console is not None:
            self.console.print(message, style=style)
