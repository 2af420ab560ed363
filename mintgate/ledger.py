"""
Balance ledger collaborator.

The core never does token accounting itself. It issues units through a
BalanceLedger and, when a later step of the same mint fails, revokes them
again.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Callable, Protocol, runtime_checkable


class LedgerError(Exception):
    """Raised by a ledger that cannot apply a balance change."""


@runtime_checkable
class BalanceLedger(Protocol):
    def issue(self, recipient: str, token_id: int, amount: int, data: bytes = b"") -> None:
        """Credit amount units of token_id to recipient."""
        ...

    def revoke(self, recipient: str, token_id: int, amount: int) -> None:
        """Reverse a prior issue() within the same call."""
        ...

    def retire(self, holder: str, token_id: int, amount: int) -> None:
        """Burn amount units held by holder."""
        ...

    def balance_of(self, account: str, token_id: int) -> int:
        ...


# Receive hook: (recipient, token_id, amount, data). Raising rejects the issue.
IssueHook = Callable[[str, int, int, bytes], None]


class InMemoryBalanceLedger:
    """
    Dict-backed balances keyed by (account, token_id).

    on_issue runs after the balance is credited, mirroring a recipient
    acceptance callback. If it raises, the credit is undone and the
    exception surfaces as LedgerError.
    """

    def __init__(
        self,
        *,
        on_issue: IssueHook | None = None,
        rejects: set[str] | None = None,
    ):
        self._balances: defaultdict[tuple[str, int], int] = defaultdict(int)
        self.on_issue = on_issue
        self.rejects = set(rejects or ())

    def issue(self, recipient: str, token_id: int, amount: int, data: bytes = b"") -> None:
        if recipient in self.rejects:
            raise LedgerError(f"recipient {recipient} rejected token {token_id}")
        self._balances[(recipient, token_id)] += amount
        if self.on_issue is None:
            return
        try:
            self.on_issue(recipient, token_id, amount, data)
        except LedgerError:
            self._balances[(recipient, token_id)] -= amount
            raise
        except Exception as e:
            self._balances[(recipient, token_id)] -= amount
            raise LedgerError(f"receive hook failed: {e}") from e

    def revoke(self, recipient: str, token_id: int, amount: int) -> None:
        self._debit(recipient, token_id, amount)

    def retire(self, holder: str, token_id: int, amount: int) -> None:
        self._debit(holder, token_id, amount)

    def balance_of(self, account: str, token_id: int) -> int:
        return self._balances.get((account, token_id), 0)

    def total_supply(self, token_id: int) -> int:
        return sum(v for (_, tid), v in self._balances.items() if tid == token_id)

    def _debit(self, account: str, token_id: int, amount: int) -> None:
        held = self.balance_of(account, token_id)
        if amount > held:
            raise LedgerError(f"{account} holds {held} of token {token_id}, cannot debit {amount}")
        self._balances[(account, token_id)] = held - amount
