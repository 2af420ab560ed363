"""
Fee settlement: forward the received payment to the payee.

Settlement is the terminal step of a public mint. Whatever the sink
raises is reported as SettlementFailure so the engine can unwind the mint.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Callable, Protocol, runtime_checkable

from .errors import SettlementFailure


@runtime_checkable
class PaymentSink(Protocol):
    """Moves value from payer to payee."""

    def transfer(self, payer: str, payee: str, amount: int) -> None:
        ...


TransferHook = Callable[[str, str, int], None]


class InMemoryPaymentSink:
    """Records value received per payee. Payees in `rejects` refuse funds."""

    def __init__(self, *, rejects: set[str] | None = None, on_transfer: TransferHook | None = None):
        self.received: defaultdict[str, int] = defaultdict(int)
        self.transfers: list[tuple[str, str, int]] = []
        self.rejects = set(rejects or ())
        self.on_transfer = on_transfer

    def transfer(self, payer: str, payee: str, amount: int) -> None:
        if payee in self.rejects:
            raise RuntimeError(f"payee {payee} rejected {amount}")
        if self.on_transfer is not None:
            self.on_transfer(payer, payee, amount)
        self.received[payee] += amount
        self.transfers.append((payer, payee, amount))


class FeeSettlement:
    """Forward exactly the received amount. No split, no refund."""

    def __init__(self, sink: PaymentSink, payee: str):
        self.sink = sink
        self.payee = payee

    def settle(self, payer: str, amount: int, *, token_id: int | None = None) -> None:
        try:
            self.sink.transfer(payer, self.payee, amount)
        except SettlementFailure:
            raise
        except Exception as e:
            raise SettlementFailure(
                f"forwarding {amount} to {self.payee} failed: {e}", token_id=token_id
            ) from e
