"""
mintgate: reservation and mint state machine for capped, role-gated tokens.

Token ids are reserved once, then minted through an admission guard that
enforces supply caps, user limits, lock flags and payment before the
balance ledger is touched.
"""

from __future__ import annotations

__version__ = "0.1.0"

from .engine import MintEngine, MintReceipt
from .errors import (
    AlreadyReserved,
    ExceedsMax,
    ExceedsUserLimit,
    GloballyLocked,
    InsufficientPayment,
    InvalidParameter,
    LedgerFailure,
    MintError,
    NotReserved,
    Paused,
    ReentrantCall,
    SettlementFailure,
    Unauthorized,
    UserLocked,
)
from .journal import EventJournal
from .ledger import BalanceLedger, InMemoryBalanceLedger, LedgerError
from .locks import LockCategory
from .roles import AuthorizationOracle, PauseFlag, PauseSwitch, Role, RoleTable
from .settlement import FeeSettlement, InMemoryPaymentSink, PaymentSink
from .store import ReserveRecord, ReserveStore

__all__ = [
    "__version__",
    # Engine
    "MintEngine",
    "MintReceipt",
    # Store
    "LockCategory",
    "ReserveRecord",
    "ReserveStore",
    # Collaborators
    "AuthorizationOracle",
    "BalanceLedger",
    "EventJournal",
    "FeeSettlement",
    "InMemoryBalanceLedger",
    "InMemoryPaymentSink",
    "LedgerError",
    "PauseFlag",
    "PauseSwitch",
    "PaymentSink",
    "Role",
    "RoleTable",
    # Errors
    "AlreadyReserved",
    "ExceedsMax",
    "ExceedsUserLimit",
    "GloballyLocked",
    "InsufficientPayment",
    "InvalidParameter",
    "LedgerFailure",
    "MintError",
    "NotReserved",
    "Paused",
    "ReentrantCall",
    "SettlementFailure",
    "Unauthorized",
    "UserLocked",
]
